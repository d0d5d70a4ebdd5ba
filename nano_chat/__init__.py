"""nano-chat: a minimal terminal chat interface.

- Raw-mode terminal on the alternate screen
- Messages rendered one per row from the top, input row at the bottom
- Enter commits the typed line, Backspace edits it, Ctrl+C exits

Usage:
    nano-chat
"""

from .app import ChatApp, main
from .events import FocusEvent, InputEvent, MouseEvent, PasteEvent, TerminalEvent
from .messages import ChatState, Message, Origin
from .terminal import ANSI, RawInputReader, TerminalSession, query_terminal_size

__all__ = [
    # Main app
    "ChatApp",
    "main",
    # State
    "ChatState",
    "Message",
    "Origin",
    # Events
    "InputEvent",
    "PasteEvent",
    "FocusEvent",
    "MouseEvent",
    "TerminalEvent",
    # Terminal
    "ANSI",
    "TerminalSession",
    "RawInputReader",
    "query_terminal_size",
]
