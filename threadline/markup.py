"""Trusted markup subset shared by the parser, the editor and the display.

Only bold, italic, underline, list and line-break tags survive, plus the
mention highlight span. Everything else is escaped and shown as text.
"""

import re
from dataclasses import dataclass
from typing import Iterator, Optional

FORMAT_TAGS = frozenset({"b", "strong", "i", "em", "u", "ul", "ol", "li"})
VOID_TAGS = frozenset({"br"})

MENTION_CLASS = "mention"
MENTION_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_](?:[A-Za-z0-9._-]*[A-Za-z0-9_])?$")

_CANDIDATE = re.compile(r"<[^<>]*>")
_TAG = re.compile(r"^<(/?)([A-Za-z][A-Za-z0-9]*)((?:\s[^<>]*?)?)\s*/?>$")
_ATTR = re.compile(r"""([A-Za-z_:][-A-Za-z0-9_:.]*)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""")
_BARE_AMP = re.compile(r"&(?!(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#[xX][0-9A-Fa-f]+);)")


@dataclass(frozen=True)
class Segment:
    """A piece of markup: either a tag or a run of text."""

    raw: str
    tag: Optional[str] = None  # lowercase tag name, None for text
    closing: bool = False
    attrs: str = ""

    @property
    def is_tag(self) -> bool:
        return self.tag is not None

    def attributes(self) -> dict[str, str]:
        found = {}
        for match in _ATTR.finditer(self.attrs):
            value = next(g for g in match.groups()[1:] if g is not None)
            found[match.group(1).lower()] = value
        return found

    def mention_name(self) -> Optional[str]:
        """Name carried by a mention highlight span, if this is one."""
        if self.tag != "span" or self.closing:
            return None
        attrs = self.attributes()
        if MENTION_CLASS not in attrs.get("class", "").split():
            return None
        name = attrs.get("data-mention", "")
        return name if MENTION_NAME_PATTERN.match(name) else None


def tokenize(markup: str) -> list[Segment]:
    """Split markup into tag and text segments, in order."""
    segments: list[Segment] = []
    pos = 0
    for match in _CANDIDATE.finditer(markup):
        raw = match.group(0)
        tag = _TAG.match(raw)
        if not tag:
            continue
        if match.start() > pos:
            segments.append(Segment(raw=markup[pos:match.start()]))
        segments.append(
            Segment(
                raw=raw,
                tag=tag.group(2).lower(),
                closing=bool(tag.group(1)),
                attrs=tag.group(3) or "",
            )
        )
        pos = match.end()
    if pos < len(markup):
        segments.append(Segment(raw=markup[pos:]))
    return segments


def escape_text(text: str) -> str:
    """Escape text for markup; existing character entities are left alone."""
    text = _BARE_AMP.sub("&amp;", text)
    return text.replace("<", "&lt;").replace(">", "&gt;")


def mention_span(name: str, label: str) -> str:
    return f'<span class="{MENTION_CLASS}" data-mention="{name}">{label}</span>'


def walk(markup: str, trigger: Optional[str] = None) -> Iterator[tuple[Segment, Optional[str]]]:
    """Yield ``(segment, canonical)`` pairs.

    ``canonical`` is the trusted form of a tag segment, or None when the
    segment is text or a tag that must be escaped. A mention highlight is
    trusted only when it is closed and wraps exactly its own label
    (``trigger + name``); its label is yielded with ``canonical`` set to
    ``""`` so callers can tell it apart from free text. Any other span is
    escaped together with its closing tag.
    """
    segments = tokenize(markup)
    i = 0
    while i < len(segments):
        segment = segments[i]
        i += 1
        if not segment.is_tag:
            yield segment, None
            continue
        name = segment.tag
        if name in FORMAT_TAGS:
            yield segment, f"</{name}>" if segment.closing else f"<{name}>"
        elif name in VOID_TAGS:
            yield segment, (None if segment.closing else f"<{name}>")
        elif _is_highlight(segments, i - 1, trigger):
            mention = segment.mention_name()
            yield segment, f'<span class="{MENTION_CLASS}" data-mention="{mention}">'
            yield segments[i], ""
            yield segments[i + 1], "</span>"
            i += 2
        else:
            yield segment, None


def _is_highlight(segments: list[Segment], index: int, trigger: Optional[str]) -> bool:
    mention = segments[index].mention_name()
    if mention is None or index + 2 >= len(segments):
        return False
    label, close = segments[index + 1], segments[index + 2]
    if label.is_tag or close.tag != "span" or not close.closing:
        return False
    if trigger is not None and not label.raw.startswith(trigger):
        return False
    return label.raw[1:] == mention


def sanitize(markup: str) -> str:
    """Keep trusted tags in canonical form and escape everything else."""
    out = []
    for segment, canonical in walk(markup):
        if segment.is_tag and canonical:
            out.append(canonical)
        else:
            out.append(escape_text(segment.raw))
    return "".join(out)


def strip_tags(markup: str) -> str:
    """Text content of markup with tags removed (entities kept)."""
    return "".join(s.raw for s in tokenize(markup) if not s.is_tag)
