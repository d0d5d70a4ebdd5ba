"""Terminal input events.

RawInputReader turns raw terminal bytes into these events:
- InputEvent: a key press (the only kind the chat loop acts on)
- PasteEvent, FocusEvent, MouseEvent: non-key events, ignored by the loop
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class InputEvent:
    """A single key press.

    Attributes:
        key: Key name ("Enter", "Backspace", "Up", ...) or the character itself
        char: The character produced, None for non-character keys
        ctrl: Control modifier held
        alt: Alt/Meta modifier held (sent as an ESC prefix)
        shift: Shift modifier held
    """

    key: str
    char: str | None = None
    ctrl: bool = False
    alt: bool = False
    shift: bool = False

    def is_ctrl(self, key: str) -> bool:
        return self.ctrl and not self.alt and self.key == key

    def is_printable(self) -> bool:
        """True for a character typed with no modifier or with Shift only."""
        if self.char is None or self.ctrl or self.alt:
            return False
        return self.char.isprintable()


@dataclass(frozen=True)
class PasteEvent:
    """Text delivered through bracketed paste."""

    text: str


@dataclass(frozen=True)
class FocusEvent:
    gained: bool


@dataclass(frozen=True)
class MouseEvent:
    """Mouse report, kept as the raw escape sequence."""

    sequence: str


TerminalEvent = Union[InputEvent, PasteEvent, FocusEvent, MouseEvent]
