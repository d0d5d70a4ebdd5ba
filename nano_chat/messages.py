"""Chat data structures.

- Origin: who authored a message (user or assistant)
- Message: an immutable chat message
- ChatState: history, pending input and quit flag owned by the chat loop
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .terminal import ANSI


class Origin(Enum):
    """Author of a Message."""

    USER = "user"
    ASSISTANT = "assistant"


# Row label and label color per origin
LABELS: dict[Origin, tuple[str, str]] = {
    Origin.USER: ("You: ", ANSI.BLUE),
    Origin.ASSISTANT: ("Assistant: ", ANSI.GREEN),
}


def styled_label(origin: Origin) -> str:
    """Colored row label for an origin."""
    label, color = LABELS[origin]
    return ANSI.colored(label, color)


@dataclass(frozen=True)
class Message:
    """A chat message. Frozen once created."""

    content: str
    origin: Origin = Origin.USER

    def render(self) -> str:
        """Label followed by the unstyled content, no wrapping."""
        return styled_label(self.origin) + self.content


@dataclass
class ChatState:
    """Mutable state of the chat loop.

    Attributes:
        history: Committed messages in display order (append-only)
        pending_input: Text typed but not yet committed
        quit_requested: Set once, ends the loop
    """

    history: list[Message] = field(default_factory=list)
    pending_input: str = ""
    quit_requested: bool = False

    def type_char(self, char: str) -> None:
        self.pending_input += char

    def backspace(self) -> None:
        self.pending_input = self.pending_input[:-1]

    def commit(self) -> Message | None:
        """Move pending input into history.

        Returns the new message, or None if the buffer was empty.
        The buffer is cleared either way.
        """
        message = None
        if self.pending_input:
            message = Message(content=self.pending_input, origin=Origin.USER)
            self.history.append(message)
        self.pending_input = ""
        return message

    def request_quit(self) -> None:
        self.quit_requested = True
