"""Formatting commands and keyboard shortcuts."""

from enum import Enum
from typing import Optional


class FormatCommand(Enum):
    """Commands accepted by a rich text surface."""

    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    INSERT_UNORDERED_LIST = "insertUnorderedList"
    INSERT_ORDERED_LIST = "insertOrderedList"
    UNDO = "undo"
    REDO = "redo"
    INSERT_TEXT = "insertText"
    INSERT_HTML = "insertHTML"

    @classmethod
    def parse(cls, value: "FormatCommand | str") -> Optional["FormatCommand"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


LIST_SKELETONS = {
    FormatCommand.INSERT_UNORDERED_LIST: "<ul><li><br></li></ul>",
    FormatCommand.INSERT_ORDERED_LIST: "<ol><li><br></li></ol>",
}

# Ctrl/Cmd + key
SHORTCUTS = {
    "b": FormatCommand.BOLD,
    "i": FormatCommand.ITALIC,
    "u": FormatCommand.UNDERLINE,
    "z": FormatCommand.UNDO,
    "y": FormatCommand.REDO,
}
