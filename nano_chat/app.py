"""Terminal chat application.

The screen is a list of committed messages, one per row from the top,
and a single input row near the bottom:

    row 0        You: first message
    row 1        You: second message
    ...
    rows - 2     You: <pending input>

Every input event runs the same cycle: read event -> update ChatState ->
repaint all messages -> repaint the input row -> flush. Repaints are full
and deterministic, so drawing the same state twice writes the same bytes.
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass, field
from typing import IO, AsyncIterator

from rich.console import Console
from rich.markup import escape

from .events import InputEvent, TerminalEvent
from .messages import ChatState, Origin, styled_label
from .terminal import ANSI, RawInputReader, TerminalSession, query_terminal_size

# The input row sits this many rows above the bottom edge
INPUT_ROW_OFFSET = 2


@dataclass
class ChatApp:
    """Single-task chat loop over terminal input events.

    Collaborators are fields so tests can swap in a StringIO and fakes.
    """

    state: ChatState = field(default_factory=ChatState)
    out: IO[str] = field(default_factory=lambda: sys.stdout)
    session: TerminalSession | None = None
    reader: RawInputReader | None = None
    console: Console = field(default_factory=lambda: Console(stderr=True))

    input_row: int = field(default=0, init=False)

    def handle_key(self, event: InputEvent) -> None:
        """Apply a key press to the chat state (first match wins)."""
        if event.is_ctrl("c"):
            self.state.request_quit()
        elif event.is_printable():
            self.state.type_char(event.char or "")
        elif event.key == "Enter":
            self.state.commit()
        elif event.key == "Backspace":
            self.state.backspace()

    def measure(self) -> tuple[int, int]:
        """Query (columns, rows), falling back to a zero-sized terminal."""
        try:
            return query_terminal_size()
        except OSError as e:
            self.console.print(
                "[yellow]Warning:[/yellow] could not get terminal size: "
                f"{escape(str(e))}"
            )
            return 0, 0

    def draw_messages(self) -> None:
        for row, message in enumerate(self.state.history):
            self.out.write(ANSI.move_to(0, row))
            self.out.write(message.render())

    def draw_input(self) -> None:
        prompt = styled_label(Origin.USER)
        self.out.write(ANSI.move_to(0, self.input_row))
        self.out.write(ANSI.CLEAR_LINE)
        self.out.write(prompt + self.state.pending_input)
        # Park the cursor after the typed text
        column = ANSI.visual_len(prompt + self.state.pending_input)
        self.out.write(ANSI.move_to(column, self.input_row))

    def redraw(self) -> None:
        """Repaint history and input row, then flush."""
        self.draw_messages()
        self.draw_input()
        self.out.flush()

    async def run_loop(self, events: AsyncIterator[TerminalEvent]) -> None:
        """Consume events until quit is requested or the stream ends."""
        _, rows = self.measure()
        self.input_row = max(rows - INPUT_ROW_OFFSET, 0)

        self.draw_input()
        self.out.flush()

        while not self.state.quit_requested:
            try:
                event = await anext(events)
            except StopAsyncIteration:
                self.state.request_quit()
                break

            if isinstance(event, InputEvent):
                self.handle_key(event)
            if self.state.quit_requested:
                break

            self.redraw()

    async def run(self) -> None:
        """Main application loop, bracketed by the terminal session."""
        if self.session is None:
            self.session = TerminalSession(out=self.out)
        if self.reader is None:
            self.reader = RawInputReader()

        session, reader = self.session, self.reader
        session.start()
        events = reader.events()
        try:
            await self.run_loop(events)
        finally:
            await events.aclose()
            self._stop_session(session)

    def _stop_session(self, session: TerminalSession) -> None:
        try:
            session.stop()
        except OSError as e:
            self.console.print(
                f"[red]Error:[/red] could not restore terminal: {escape(str(e))}"
            )


def main() -> None:
    """Entry point for the chat application."""
    app = ChatApp()
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        sys.exit(0)
    except OSError as e:
        app.console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)


if __name__ == "__main__":
    main()
