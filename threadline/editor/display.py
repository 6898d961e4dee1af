"""Read-only rendering of stored comment bodies."""

import re
from typing import Optional

from ..markup import sanitize
from ..parsers.mention_parser import MentionParser

_BOLD = re.compile(r"\*\*(.+?)\*\*")
_ITALIC = re.compile(r"(?<!\*)\*(?!\*)(.+?)(?<!\*)\*(?!\*)")
_UNDERLINE = re.compile(r"(?<![A-Za-z0-9])_(.+?)_(?![A-Za-z0-9])")
_LIST_ITEM = re.compile(r"^- (.+)$")


def format_rich_text(content: Optional[str], parser: Optional[MentionParser] = None) -> str:
    """Turn a body into display markup.

    Lightweight markdown (``**bold**``, ``*italic*``, ``_underline_``,
    ``- item`` lines) is converted first; the result is then restricted to
    the trusted tag set. With a parser, mentions are highlighted as well.
    """
    if not content:
        return ""
    text = content.replace("\r\n", "\n")
    text = _BOLD.sub(r"<strong>\1</strong>", text)
    text = _ITALIC.sub(r"<em>\1</em>", text)
    text = _UNDERLINE.sub(r"<u>\1</u>", text)

    pieces: list[str] = []
    items: list[str] = []
    previous_line = False
    for line in text.split("\n"):
        match = _LIST_ITEM.match(line)
        if match:
            items.append(f"<li>{match.group(1)}</li>")
            continue
        if items:
            pieces.append(f"<ul>{''.join(items)}</ul>")
            items = []
            previous_line = False
        if previous_line:
            pieces.append("<br>")
        pieces.append(line)
        previous_line = True
    if items:
        pieces.append(f"<ul>{''.join(items)}</ul>")

    markup = "".join(pieces)
    if parser is not None:
        return parser.extract_display_markup(markup)
    return sanitize(markup)
