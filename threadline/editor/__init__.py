"""Rich text editing surface."""

from .commands import FormatCommand
from .display import format_rich_text
from .document import (
    Block,
    BlockKind,
    Document,
    FormattingError,
    InlineStyle,
    Selection,
    TextRun,
    parse_markup,
    render_markup,
)
from .host import DocumentHost, EditingHost
from .surface import RichTextSurface

__all__ = [
    "FormatCommand",
    "format_rich_text",
    "Block",
    "BlockKind",
    "Document",
    "FormattingError",
    "InlineStyle",
    "Selection",
    "TextRun",
    "parse_markup",
    "render_markup",
    "DocumentHost",
    "EditingHost",
    "RichTextSurface",
]
