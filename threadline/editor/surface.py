"""Rich text surface: single source of truth for an editable value."""

import logging
from typing import Callable, Mapping, Optional, Union

from ..domain.models import EditorBuffer
from .commands import LIST_SKELETONS, SHORTCUTS, FormatCommand
from .host import DocumentHost, EditingHost

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[str], None]


class RichTextSurface:
    """Owns one editor buffer and routes every formatting action through
    :meth:`apply_format_command`.

    External values are only pushed into the host when they differ from the
    rendered markup and no formatting command is running, so echoing the
    surface's own change events back into ``value`` never resets the caret.
    Change handlers are not called while ``is_programmatic_update`` is set.
    """

    def __init__(
        self,
        value: str = "",
        *,
        host: Optional[EditingHost] = None,
        history_limit: int = 100,
    ) -> None:
        if host is None:
            host = DocumentHost(value or "", history_limit=history_limit)
        elif value:
            host.load_markup(value)
        self._host = host
        self._buffer = EditorBuffer(rendered_markup=host.read_markup())
        self._handlers: list[ChangeHandler] = []
        self._render_count = 0

    @property
    def buffer(self) -> EditorBuffer:
        return self._buffer

    @property
    def host(self) -> EditingHost:
        return self._host

    @property
    def value(self) -> str:
        return self._buffer.rendered_markup

    @value.setter
    def value(self, markup: str) -> None:
        self.set_external_value(markup)

    @property
    def render_count(self) -> int:
        """Times the host content was replaced from an external value."""
        return self._render_count

    def on_user_change(self, handler: ChangeHandler) -> Callable[[], None]:
        """Subscribe to user changes; returns an unsubscribe callable."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def set_external_value(self, markup: Optional[str]) -> bool:
        """Sync an externally supplied value into the surface.

        Returns True when the host was re-rendered.
        """
        markup = markup or ""
        if self._buffer.is_programmatic_update:
            logger.debug("External value ignored while formatting is in flight")
            return False
        if markup == self._buffer.rendered_markup:
            return False
        self._buffer.is_programmatic_update = True
        try:
            self._host.load_markup(markup)
            self._render_count += 1
        finally:
            self._buffer.rendered_markup = self._host.read_markup()
            self._buffer.is_programmatic_update = False
        return True

    def apply_format_command(
        self,
        command: Union[FormatCommand, str],
        arg: Optional[str] = None,
    ) -> bool:
        """Run a formatting command against the host.

        List commands whose primitive fails fall back to inserting an empty
        list. The buffer is re-derived from the host afterwards whatever the
        outcome. Returns whether the command (or its fallback) applied.
        """
        parsed = FormatCommand.parse(command)
        if parsed is None:
            logger.warning(f"Unknown formatting command: {command}")
            return False
        if self._buffer.is_programmatic_update:
            logger.warning(f"Formatting command {parsed.value} ignored: another is running")
            return False

        before = self._buffer.rendered_markup
        self._buffer.is_programmatic_update = True
        self._buffer.last_error = None
        try:
            success = self._run(parsed, arg)
            if not success and parsed in LIST_SKELETONS:
                logger.info(f"{parsed.value} failed, inserting list skeleton")
                success = self._run(FormatCommand.INSERT_HTML, LIST_SKELETONS[parsed])
        finally:
            # Primitives do not reliably report their own changes.
            self._buffer.rendered_markup = self._host.read_markup()
            self._buffer.is_programmatic_update = False

        if self._buffer.rendered_markup != before:
            self._emit()
        return success

    def handle_key(self, key: str, *, ctrl: bool = False, meta: bool = False) -> bool:
        """Route a keyboard shortcut; True when the key was consumed."""
        if not (ctrl or meta):
            return False
        command = SHORTCUTS.get(key.lower())
        if command is None:
            return False
        self.apply_format_command(command)
        return True

    def handle_paste(self, data: Union[Mapping[str, str], str]) -> bool:
        """Insert clipboard content as plain text only."""
        text = data if isinstance(data, str) else data.get("text/plain", "")
        if not text:
            return False
        return self.apply_format_command(FormatCommand.INSERT_TEXT, text)

    def type_text(self, text: str) -> None:
        """User typing at the current selection."""
        if self._host.execute(FormatCommand.INSERT_TEXT, text):
            self.handle_input()

    def select(self, start: int, end: Optional[int] = None) -> None:
        self._host.select(start, end)

    def handle_input(self) -> None:
        """The host content changed through direct user input."""
        if self._buffer.is_programmatic_update:
            return
        markup = self._host.read_markup()
        if markup == self._buffer.rendered_markup:
            return
        self._buffer.rendered_markup = markup
        self._emit()

    def _run(self, command: FormatCommand, arg: Optional[str]) -> bool:
        try:
            return bool(self._host.execute(command, arg))
        except Exception as e:
            logger.warning(f"Formatting command {command.value} failed: {e}")
            self._buffer.last_error = str(e)
            return False

    def _emit(self) -> None:
        if self._buffer.is_programmatic_update:
            return
        markup = self._buffer.rendered_markup
        for handler in list(self._handlers):
            handler(markup)
