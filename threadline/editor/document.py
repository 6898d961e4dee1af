"""Styled text-run document model and pure editing functions.

A document is an ordered sequence of blocks (paragraphs or list items), each
an ordered sequence of styled text runs. Offsets address the document's
plain text, where blocks are joined by a single newline.
"""

import html
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from ..markup import tokenize


class FormattingError(Exception):
    """A formatting primitive could not be applied."""


class InlineStyle(Enum):
    """Character styles."""

    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"


class BlockKind(Enum):
    """Block types."""

    PARAGRAPH = "paragraph"
    BULLET = "bullet"
    NUMBERED = "numbered"


# Nesting order used when rendering, outermost first.
STYLE_TAGS = (
    (InlineStyle.BOLD, "strong"),
    (InlineStyle.ITALIC, "em"),
    (InlineStyle.UNDERLINE, "u"),
)
TAG_STYLES = {
    "b": InlineStyle.BOLD,
    "strong": InlineStyle.BOLD,
    "i": InlineStyle.ITALIC,
    "em": InlineStyle.ITALIC,
    "u": InlineStyle.UNDERLINE,
}
LIST_TAGS = {"ul": BlockKind.BULLET, "ol": BlockKind.NUMBERED}
KIND_TAGS = {BlockKind.BULLET: "ul", BlockKind.NUMBERED: "ol"}

Char = tuple[str, frozenset]


@dataclass(frozen=True)
class TextRun:
    """Text sharing one set of styles."""

    text: str
    styles: frozenset = frozenset()


@dataclass(frozen=True)
class Block:
    """A paragraph or list item."""

    kind: BlockKind = BlockKind.PARAGRAPH
    runs: tuple[TextRun, ...] = ()

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    @property
    def is_list_item(self) -> bool:
        return self.kind != BlockKind.PARAGRAPH


@dataclass(frozen=True)
class Document:
    """Immutable rich text document."""

    blocks: tuple[Block, ...] = ()

    @property
    def text(self) -> str:
        return "\n".join(block.text for block in self.blocks)

    def __len__(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class Selection:
    """A range of document offsets; collapsed when start == end."""

    start: int = 0
    end: int = 0

    @classmethod
    def caret(cls, offset: int) -> "Selection":
        return cls(offset, offset)

    @property
    def collapsed(self) -> bool:
        return self.start == self.end

    def normalized(self, length: int) -> "Selection":
        """Ordered and clamped to ``[0, length]``."""
        start, end = sorted((self.start, self.end))
        return Selection(max(0, min(start, length)), max(0, min(end, length)))


# Character level helpers

def _explode(document: Document) -> list[tuple[BlockKind, list[Char]]]:
    return [
        (block.kind, [(ch, run.styles) for run in block.runs for ch in run.text])
        for block in document.blocks
    ]


def _merge(chars: Iterable[Char]) -> tuple[TextRun, ...]:
    runs: list[TextRun] = []
    for ch, styles in chars:
        if runs and runs[-1].styles == styles:
            runs[-1] = TextRun(runs[-1].text + ch, styles)
        else:
            runs.append(TextRun(ch, styles))
    return tuple(runs)


def _implode(blocks: list[tuple[BlockKind, list[Char]]]) -> Document:
    return Document(tuple(Block(kind, _merge(chars)) for kind, chars in blocks))


def _locate(blocks: list[tuple[BlockKind, list[Char]]], offset: int) -> tuple[int, int]:
    """Block index and in-block offset for a document offset."""
    pos = 0
    for index, (_, chars) in enumerate(blocks):
        if offset <= pos + len(chars):
            return index, max(0, offset - pos)
        pos += len(chars) + 1
    last = len(blocks) - 1
    return last, len(blocks[last][1])


def _spans(blocks: list[tuple[BlockKind, list[Char]]], start: int, end: int):
    """Yield ``(block_index, lo, hi)`` character slices covered by a range."""
    pos = 0
    for index, (_, chars) in enumerate(blocks):
        lo = max(start - pos, 0)
        hi = min(end - pos, len(chars))
        if lo < hi:
            yield index, lo, hi
        pos += len(chars) + 1


def styles_at(document: Document, offset: int) -> frozenset:
    """Styles of the character just before offset (what typing inherits)."""
    if not document.blocks:
        return frozenset()
    blocks = _explode(document)
    index, local = _locate(blocks, offset)
    chars = blocks[index][1]
    if local > 0:
        return chars[local - 1][1]
    return chars[0][1] if chars else frozenset()


# Editing functions

def delete_range(document: Document, selection: Selection) -> Document:
    """Remove the selected text, joining the blocks at both ends."""
    sel = selection.normalized(len(document))
    if sel.collapsed or not document.blocks:
        return document
    blocks = _explode(document)
    first, lo = _locate(blocks, sel.start)
    last, hi = _locate(blocks, sel.end)
    kind, head = blocks[first]
    tail = blocks[last][1][hi:]
    blocks[first:last + 1] = [(kind, head[:lo] + tail)]
    return _implode(blocks)


def insert_text(
    document: Document,
    selection: Selection,
    text: str,
    styles: frozenset = frozenset(),
) -> tuple[Document, int]:
    """Replace the selection with plain text; newlines start new blocks.

    Returns the new document and the caret offset after the inserted text.
    """
    sel = selection.normalized(len(document))
    document = delete_range(document, sel)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    blocks = _explode(document) or [(BlockKind.PARAGRAPH, [])]
    index, local = _locate(blocks, sel.start)
    kind, chars = blocks[index]
    head, tail = chars[:local], chars[local:]

    lines = text.split("\n")
    new_blocks = []
    for i, line in enumerate(lines):
        line_chars = [(ch, styles) for ch in line]
        if i == 0:
            line_chars = head + line_chars
        if i == len(lines) - 1:
            line_chars = line_chars + tail
        new_blocks.append((kind, line_chars))
    blocks[index:index + 1] = new_blocks
    return _implode(blocks), sel.start + len(text)


def toggle_style(
    document: Document, selection: Selection, style: InlineStyle
) -> Document:
    """Remove style when every selected character has it, otherwise add it."""
    sel = selection.normalized(len(document))
    if sel.collapsed:
        return document
    blocks = _explode(document)
    covered = list(_spans(blocks, sel.start, sel.end))
    selected = [c for i, lo, hi in covered for c in blocks[i][1][lo:hi]]
    if not selected:
        return document
    remove = all(style in styles for _, styles in selected)
    for index, lo, hi in covered:
        chars = blocks[index][1]
        for k in range(lo, hi):
            ch, styles = chars[k]
            chars[k] = (ch, styles - {style} if remove else styles | {style})
    return _implode(blocks)


def toggle_list(
    document: Document, selection: Selection, kind: BlockKind
) -> Document:
    """Turn the blocks touched by the selection into list items of kind.

    When all of them already are, they revert to paragraphs.
    """
    if kind == BlockKind.PARAGRAPH:
        raise FormattingError("toggle_list needs a list kind")
    if not document.blocks:
        raise FormattingError("no block to turn into a list")
    sel = selection.normalized(len(document))
    blocks = _explode(document)
    first, _ = _locate(blocks, sel.start)
    last, _ = _locate(blocks, sel.end)
    touched = range(first, last + 1)
    target = (
        BlockKind.PARAGRAPH
        if all(blocks[i][0] == kind for i in touched)
        else kind
    )
    for i in touched:
        blocks[i] = (target, blocks[i][1])
    return _implode(blocks)


def insert_blocks(
    document: Document, caret: int, blocks: Iterable[Block]
) -> tuple[Document, int]:
    """Splice blocks in at the caret, splitting the block under it.

    An empty block under the caret is replaced. Returns the new document and
    the caret offset at the end of the last inserted block.
    """
    inserted = [(b.kind, [(ch, run.styles) for run in b.runs for ch in run.text]) for b in blocks]
    if not inserted:
        return document, caret
    current = _explode(document)
    if not current:
        result = _implode(inserted)
        return result, len(result)
    caret = max(0, min(caret, len(document)))
    index, local = _locate(current, caret)
    kind, chars = current[index]
    head, tail = chars[:local], chars[local:]
    replacement = []
    if head:
        replacement.append((kind, head))
    replacement.extend(inserted)
    if tail:
        replacement.append((kind, tail))
    current[index:index + 1] = replacement
    result = _implode(current)
    end = sum(len(c) + 1 for _, c in current[:index + len(inserted) + (1 if head else 0)]) - 1
    return result, end


# Markup conversion

def parse_markup(markup: Optional[str]) -> Document:
    """Build a document from trusted markup.

    ``<br>`` and raw newlines break paragraphs; ``ul``/``ol`` items become
    list blocks (nested lists are flattened); unknown tags are dropped but
    their text is kept.
    """
    blocks: list[tuple[BlockKind, list[Char]]] = []
    counts = {style: 0 for style in InlineStyle}
    lists: list[BlockKind] = []
    paragraph: Optional[list[Char]] = None
    item: Optional[tuple[BlockKind, list[Char]]] = None

    def current_styles() -> frozenset:
        return frozenset(s for s, n in counts.items() if n > 0)

    def flush_paragraph() -> None:
        nonlocal paragraph
        if paragraph is not None:
            blocks.append((BlockKind.PARAGRAPH, paragraph))
            paragraph = None

    def flush_item() -> None:
        nonlocal item
        if item is not None:
            blocks.append(item)
            item = None

    def add_text(text: str) -> None:
        nonlocal paragraph, item
        styles = current_styles()
        for i, line in enumerate(text.split("\n")):
            if i > 0:
                line_break()
            chars = [(ch, styles) for ch in line]
            if not chars:
                continue
            if item is not None:
                item[1].extend(chars)
            elif lists:
                item = (lists[-1], chars)
            else:
                if paragraph is None:
                    paragraph = []
                paragraph.extend(chars)

    def line_break() -> None:
        nonlocal paragraph, item
        if item is not None:
            if item[1]:
                kind = item[0]
                flush_item()
                item = (kind, [])
            return
        if lists:
            return
        if paragraph is None:
            paragraph = []
        flush_paragraph()
        paragraph = []

    for segment in tokenize(markup or ""):
        if not segment.is_tag:
            text = html.unescape(segment.raw)
            if (lists and item is None) and not text.strip():
                continue
            add_text(text)
            continue
        name = segment.tag
        if name in TAG_STYLES:
            style = TAG_STYLES[name]
            counts[style] = max(0, counts[style] + (-1 if segment.closing else 1))
        elif name == "br":
            line_break()
        elif name in LIST_TAGS:
            if segment.closing:
                flush_item()
                if lists:
                    lists.pop()
            else:
                flush_paragraph()
                flush_item()
                lists.append(LIST_TAGS[name])
        elif name == "li":
            flush_item()
            if not segment.closing:
                flush_paragraph()
                item = (lists[-1] if lists else BlockKind.BULLET, [])
        elif name in ("p", "div"):
            if item is None and (segment.closing or paragraph):
                flush_paragraph()
    flush_item()
    flush_paragraph()
    return _implode(blocks)


def _render_runs(runs: Iterable[TextRun]) -> str:
    out = []
    for run in runs:
        if not run.text:
            continue
        text = html.escape(run.text, quote=False)
        for style, tag in reversed(STYLE_TAGS):
            if style in run.styles:
                text = f"<{tag}>{text}</{tag}>"
        out.append(text)
    return "".join(out)


def render_markup(document: Document) -> str:
    """Canonical markup for a document.

    ``render_markup(parse_markup(m))`` is a fixed point for any markup this
    function produced.
    """
    out = []
    previous: Optional[BlockKind] = None
    for block in document.blocks:
        if block.kind == BlockKind.PARAGRAPH:
            if previous is not None and previous != BlockKind.PARAGRAPH:
                out.append(f"</{KIND_TAGS[previous]}>")
            elif previous == BlockKind.PARAGRAPH:
                out.append("<br>")
            out.append(_render_runs(block.runs))
        else:
            if previous != block.kind:
                if previous is not None and previous != BlockKind.PARAGRAPH:
                    out.append(f"</{KIND_TAGS[previous]}>")
                out.append(f"<{KIND_TAGS[block.kind]}>")
            out.append(f"<li>{_render_runs(block.runs) or '<br>'}</li>")
        previous = block.kind
    if previous is not None and previous != BlockKind.PARAGRAPH:
        out.append(f"</{KIND_TAGS[previous]}>")
    return "".join(out)
