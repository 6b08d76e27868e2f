"""Interactive session state: modes, search, filters, scrolling and kill confirmation."""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol as Interface

from portman.errors import KillError
from portman.filters import Criterion, FilterState, apply_filters
from portman.models import Process

logger = logging.getLogger(__name__)

FILTER_KEYS: dict[str, Criterion] = {
    "t": Criterion.TCP,
    "u": Criterion.UDP,
    "l": Criterion.LISTEN,
    "e": Criterion.ESTABLISHED,
}


class Mode(Enum):
    """Input modes of the session."""

    NORMAL = "normal"
    SEARCHING = "searching"
    CONFIRMING_KILL = "confirming_kill"


class StatusKind(Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class StatusMessage:
    """A transient message shown in the status line until it expires."""

    text: str
    kind: StatusKind
    expires_at: float

    def is_visible(self, now: float) -> bool:
        """True until the message expires."""
        return now < self.expires_at


class Killer(Interface):
    def kill(self, pid: int) -> None: ...


class SearchField:
    """Single line text input with a cursor."""

    def __init__(self) -> None:
        self._value = ""
        self._cursor = 0

    @property
    def value(self) -> str:
        """The current text."""
        return self._value

    @property
    def cursor(self) -> int:
        """Insertion point, from 0 to len(value)."""
        return self._cursor

    def set_value(self, value: str) -> None:
        """Replace the text and move the cursor to its end."""
        self._value = value
        self._cursor = len(value)

    def clear(self) -> None:
        self.set_value("")

    def handle_key(self, key: str, character: str | None = None) -> bool:
        """Apply one key press. Returns True if the key was consumed."""
        if key == "backspace":
            if self._cursor > 0:
                self._value = self._value[: self._cursor - 1] + self._value[self._cursor :]
                self._cursor -= 1
        elif key == "delete":
            self._value = self._value[: self._cursor] + self._value[self._cursor + 1 :]
        elif key == "left":
            self._cursor = max(0, self._cursor - 1)
        elif key == "right":
            self._cursor = min(len(self._value), self._cursor + 1)
        elif key == "home":
            self._cursor = 0
        elif key == "end":
            self._cursor = len(self._value)
        elif key == "ctrl+u":
            self.clear()
        elif character is not None and len(character) == 1 and character.isprintable():
            self._value = self._value[: self._cursor] + character + self._value[self._cursor :]
            self._cursor += 1
        else:
            return False
        return True


class Session:
    """
    Controller for the interactive table.

    Owns the input mode, the search query, the structural filters, the
    horizontal scroll offset, the transient status message and, while a
    kill is being confirmed, a copy of the targeted row. Keys are handled
    one at a time through handle_key(); the dispatch depends only on the
    current mode.
    """

    def __init__(
        self,
        killer: Killer,
        status_duration: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._killer = killer
        self._status_duration = status_duration
        self._clock = clock
        self.mode = Mode.NORMAL
        self.filters = FilterState()
        self.search = SearchField()
        self.scroll_offset = 0
        self._scroll_limit: int | None = None
        self.confirm_target: Process | None = None
        self._status: StatusMessage | None = None

    @property
    def query(self) -> str:
        """The current search text."""
        return self.search.value

    def visible(self, processes: Iterable[Process]) -> list[Process]:
        """Apply the active filters and search query to a snapshot."""
        return apply_filters(processes, self.filters, self.query)

    # Status line

    def set_status(self, text: str, kind: StatusKind = StatusKind.INFO) -> None:
        """Show a message for status_duration seconds."""
        self._status = StatusMessage(text, kind, self._clock() + self._status_duration)

    def status(self) -> StatusMessage | None:
        """The current status message, or None once it has expired."""
        if self._status is not None and self._status.is_visible(self._clock()):
            return self._status
        return None

    # Scrolling

    def set_scroll_limit(self, limit: int) -> None:
        """Record the largest useful offset and clamp the current one to it."""
        self._scroll_limit = max(0, limit)
        self.scroll_offset = min(self.scroll_offset, self._scroll_limit)

    def scroll(self, delta: int) -> None:
        """Move the horizontal offset, clamped to the current limit."""
        offset = max(0, self.scroll_offset + delta)
        if self._scroll_limit is not None:
            offset = min(offset, self._scroll_limit)
        self.scroll_offset = offset

    # Input

    def handle_key(
        self,
        key: str,
        character: str | None = None,
        selected: Process | None = None,
    ) -> bool:
        """
        Process one key press.

        Args:
            key: Key name, e.g. "k", "slash", "escape", "enter".
            character: Printable character for the key, if any.
            selected: The row under the cursor, used when a kill is requested.

        Returns:
            True if the key was consumed.
        """
        if self.mode is Mode.SEARCHING:
            return self._handle_searching(key, character)
        if self.mode is Mode.CONFIRMING_KILL:
            return self._handle_confirming(key, character)
        return self._handle_normal(key, character, selected)

    def _handle_normal(
        self,
        key: str,
        character: str | None,
        selected: Process | None,
    ) -> bool:
        char = character or key
        if key == "slash" or char == "/":
            self.mode = Mode.SEARCHING
            self.search.set_value(self.search.value)
            return True
        if char == "k":
            self.request_kill(selected)
            return True
        if char in FILTER_KEYS:
            self.filters = self.filters.toggle(FILTER_KEYS[char])
            return True
        if char == "c":
            self.filters = self.filters.cleared()
            return True
        if key == "left":
            self.scroll(-1)
            return True
        if key == "right":
            self.scroll(1)
            return True
        if key == "escape" and self.query:
            self.search.clear()
            return True
        return False

    def _handle_searching(self, key: str, character: str | None) -> bool:
        if key == "escape":
            self.search.clear()
            self.mode = Mode.NORMAL
            return True
        if key == "enter":
            self.mode = Mode.NORMAL
            return True
        self.search.handle_key(key, character)
        # Swallow everything else so typing never triggers table bindings
        return True

    def _handle_confirming(self, key: str, character: str | None) -> bool:
        char = character or key
        if char == "y" or key == "enter":
            self.confirm_kill()
        elif char == "n" or key == "escape":
            self.cancel_kill()
        return True

    # Kill flow

    def request_kill(self, selected: Process | None) -> None:
        """Ask for confirmation before killing the selected row's process."""
        if selected is None:
            self.set_status("No process selected", StatusKind.ERROR)
            return
        self.confirm_target = selected
        self.mode = Mode.CONFIRMING_KILL

    def confirm_kill(self) -> None:
        """Kill the captured target and report the outcome."""
        target = self.confirm_target
        self.confirm_target = None
        self.mode = Mode.NORMAL
        if target is None:
            return
        try:
            self._killer.kill(target.pid)
        except (KillError, OSError) as exc:
            logger.warning("kill of pid %d failed: %s", target.pid, exc)
            reason = getattr(exc, "reason", None) or str(exc)
            self.set_status(
                f"Failed to kill {target.display_name} (PID {target.pid}): {reason}",
                StatusKind.ERROR,
            )
            return
        self.set_status(f"Killed {target.display_name} (PID {target.pid})")

    def cancel_kill(self) -> None:
        """Drop the captured target without killing it."""
        self.confirm_target = None
        self.mode = Mode.NORMAL
        self.set_status("Kill cancelled")
