"""Editing hosts: the live surface formatting commands act on."""

import logging
from typing import Optional, Protocol, runtime_checkable

from .commands import FormatCommand
from .document import (
    BlockKind,
    Document,
    FormattingError,
    InlineStyle,
    Selection,
    insert_blocks,
    insert_text,
    parse_markup,
    render_markup,
    styles_at,
    toggle_list,
    toggle_style,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class EditingHost(Protocol):
    """Host-side text editing primitives."""

    def execute(self, command: FormatCommand, arg: Optional[str] = None) -> bool:
        """Run a primitive, return False when it could not be applied."""
        ...

    def read_markup(self) -> str:
        """Current content as markup."""
        ...

    def load_markup(self, markup: str) -> None:
        """Replace the content, resetting the caret."""
        ...

    def select(self, start: int, end: Optional[int] = None) -> None:
        """Move the selection."""
        ...


_STYLE_COMMANDS = {
    FormatCommand.BOLD: InlineStyle.BOLD,
    FormatCommand.ITALIC: InlineStyle.ITALIC,
    FormatCommand.UNDERLINE: InlineStyle.UNDERLINE,
}
_LIST_COMMANDS = {
    FormatCommand.INSERT_UNORDERED_LIST: BlockKind.BULLET,
    FormatCommand.INSERT_ORDERED_LIST: BlockKind.NUMBERED,
}


class DocumentHost:
    """Editing host backed by the text-run document model.

    Keeps the selection, the pending typing styles for a collapsed caret and
    an in-session undo/redo history.
    """

    def __init__(self, markup: str = "", *, history_limit: int = 100) -> None:
        self._document = parse_markup(markup)
        self._selection = Selection.caret(len(self._document))
        self._typing: dict[InlineStyle, bool] = {}
        self._undo: list[tuple[Document, Selection]] = []
        self._redo: list[tuple[Document, Selection]] = []
        self._history_limit = history_limit

    @property
    def document(self) -> Document:
        return self._document

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def typing_styles(self) -> frozenset:
        """Styles the next typed character will carry."""
        inherited = set(styles_at(self._document, self._selection.start))
        for style, on in self._typing.items():
            if on:
                inherited.add(style)
            else:
                inherited.discard(style)
        return frozenset(inherited)

    def read_markup(self) -> str:
        return render_markup(self._document)

    def load_markup(self, markup: str) -> None:
        """Replace the content; history from the previous value is dropped."""
        self._document = parse_markup(markup)
        self._selection = Selection.caret(len(self._document))
        self._typing.clear()
        self._undo.clear()
        self._redo.clear()

    def select(self, start: int, end: Optional[int] = None) -> None:
        self._selection = Selection(start, start if end is None else end).normalized(
            len(self._document)
        )
        self._typing.clear()

    def execute(self, command: FormatCommand, arg: Optional[str] = None) -> bool:
        if command in _STYLE_COMMANDS:
            return self._toggle_style(_STYLE_COMMANDS[command])
        if command in _LIST_COMMANDS:
            try:
                document = toggle_list(
                    self._document, self._selection, _LIST_COMMANDS[command]
                )
            except FormattingError as e:
                logger.debug(f"List command {command.value} not applied: {e}")
                return False
            return self._commit(document, self._selection)
        if command == FormatCommand.UNDO:
            return self._step(self._undo, self._redo)
        if command == FormatCommand.REDO:
            return self._step(self._redo, self._undo)
        if command == FormatCommand.INSERT_TEXT:
            if not arg:
                return False
            styles = self.typing_styles()
            document, caret = insert_text(self._document, self._selection, arg, styles)
            return self._commit(document, Selection.caret(caret))
        if command == FormatCommand.INSERT_HTML:
            blocks = parse_markup(arg).blocks if arg else ()
            if not blocks:
                return False
            base = self._document
            if not self._selection.collapsed:
                base, caret = insert_text(base, self._selection, "")
            else:
                caret = self._selection.start
            document, caret = insert_blocks(base, caret, blocks)
            return self._commit(document, Selection.caret(caret))
        return False

    def _toggle_style(self, style: InlineStyle) -> bool:
        if self._selection.collapsed:
            self._typing[style] = style not in self.typing_styles()
            return True
        document = toggle_style(self._document, self._selection, style)
        return self._commit(document, self._selection)

    def _commit(self, document: Document, selection: Selection) -> bool:
        previous = self._selection
        self._selection = selection.normalized(len(document))
        if document == self._document:
            return True
        self._undo.append((self._document, previous))
        if len(self._undo) > self._history_limit:
            self._undo.pop(0)
        self._redo.clear()
        self._document = document
        self._typing.clear()
        return True

    def _step(self, source: list, target: list) -> bool:
        if not source:
            return False
        target.append((self._document, self._selection))
        self._document, selection = source.pop()
        self._selection = selection.normalized(len(self._document))
        self._typing.clear()
        return True
