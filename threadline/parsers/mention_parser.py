"""Parser for @mentions in comment bodies."""

import re
from typing import Optional

from ..domain.models import MentionToken
from ..markup import escape_text, mention_span, walk

NAME_CHARS = r"A-Za-z0-9._\-"
NAME = r"[A-Za-z0-9_](?:[A-Za-z0-9._-]*[A-Za-z0-9_])?"


class MentionParser:
    """Finds mention tokens and produces highlighted display markup.

    A mention is the trigger character followed by name characters (letters,
    digits, ``.``, ``-``, ``_``). The trigger must start the text or follow a
    non-name character, so e-mail addresses are not mentions, and a name
    never ends in ``.`` or ``-``. The parser never raises.
    """

    def __init__(self, trigger: str = "@") -> None:
        if (
            len(trigger) != 1
            or trigger in "<>&;\"'"
            or re.match(f"[{NAME_CHARS}\\s]", trigger)
        ):
            raise ValueError(f"Invalid mention trigger: {trigger!r}")
        self._trigger = trigger
        t = re.escape(trigger)
        self._pattern = re.compile(rf"(?<![{NAME_CHARS}{t}]){t}({NAME})")
        self._partial = re.compile(rf"(?:^|(?<=[^{NAME_CHARS}{t}])){t}([{NAME_CHARS}]*)$")

    @property
    def trigger(self) -> str:
        return self._trigger

    def tokenize(self, body: str) -> list[MentionToken]:
        """Mention tokens in order of appearance.

        Offsets refer to positions in ``body``. Trusted tags are skipped, so
        markup attributes never produce tokens.
        """
        tokens = []
        pos = 0
        for segment, canonical in walk(body or "", self._trigger):
            start = pos
            pos += len(segment.raw)
            if segment.is_tag and canonical:
                continue
            for match in self._pattern.finditer(segment.raw):
                tokens.append(
                    MentionToken(
                        raw_match=match.group(0),
                        referenced_name=match.group(1),
                        start=start + match.start(),
                        end=start + match.end(),
                    )
                )
        return tokens

    def extract_mention_targets(self, body: str) -> set[str]:
        """Distinct names mentioned in body, case preserved."""
        return {token.referenced_name for token in self.tokenize(body)}

    def extract_display_markup(self, body: str) -> str:
        """Sanitized markup with every mention wrapped in a highlight span.

        Running the result through this method again returns it unchanged.
        """
        out = []
        for segment, canonical in walk(body or "", self._trigger):
            if segment.is_tag and canonical:
                out.append(canonical)
            elif canonical == "":
                # already inside a highlight
                out.append(escape_text(segment.raw))
            else:
                out.append(self._highlight(escape_text(segment.raw)))
        return "".join(out)

    def find_partial_mention(self, text: str, cursor: Optional[int] = None) -> Optional[str]:
        """Name prefix being typed just before the cursor, or None.

        ``"ping @gra"`` gives ``"gra"``; a bare trigger gives ``""``.
        """
        if cursor is None:
            cursor = len(text)
        match = self._partial.search(text[:cursor])
        return match.group(1) if match else None

    def _highlight(self, escaped: str) -> str:
        return self._pattern.sub(
            lambda m: mention_span(m.group(1), m.group(0)), escaped
        )
