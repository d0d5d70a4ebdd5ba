"""Terminal control for the chat screen.

This module provides:
- ANSI: Centralized terminal escape sequences and helpers
- TerminalSession: Raw mode + alternate screen lifecycle
- RawInputReader: Reads keystrokes in raw mode and yields events
- query_terminal_size: One-shot terminal size measurement
"""

from __future__ import annotations

import asyncio
import dataclasses
import fcntl
import os
import re
import sys
import termios
import tty
from typing import IO, Any, AsyncGenerator

import wcwidth

from .events import FocusEvent, InputEvent, MouseEvent, PasteEvent, TerminalEvent


class ANSI:
    """Centralized ANSI escape sequences and terminal control helpers.

    Usage:
        from .terminal import ANSI

        out.write(f"{ANSI.BLUE}You: {ANSI.RESET}")
        out.write(ANSI.move_to(0, row) + ANSI.CLEAR_LINE)
    """

    # Colors
    RESET = "\033[0m"
    GREEN = "\033[32m"
    BLUE = "\033[34m"

    # Line control
    CLEAR_LINE = "\033[2K"

    # Screen control
    ENTER_ALT_SCREEN = "\033[?1049h"
    LEAVE_ALT_SCREEN = "\033[?1049l"

    # Pattern to match ANSI escape sequences (for stripping)
    _ANSI_PATTERN = re.compile(r"\033\[[0-9;]*m")

    @classmethod
    def move_to(cls, column: int, row: int) -> str:
        """Move cursor to a zero-based (column, row) position."""
        return f"\033[{row + 1};{column + 1}H"

    @classmethod
    def colored(cls, text: str, color: str) -> str:
        return f"{color}{text}{cls.RESET}"

    @classmethod
    def strip_ansi(cls, s: str) -> str:
        """Remove ANSI escape sequences from string."""
        return cls._ANSI_PATTERN.sub("", s)

    @classmethod
    def visual_len(cls, s: str) -> int:
        """Calculate visual length of string, excluding ANSI escape codes.

        Uses wcwidth for proper handling of:
        - Wide characters (CJK, emoji): count as 2 columns
        - Zero-width characters (combining marks): count as 0 columns
        - Control characters: count as 0 columns
        """
        width = 0
        for char in cls.strip_ansi(s):
            w = wcwidth.wcwidth(char)
            width += w if w > 0 else 0
        return width


def query_terminal_size(fd: int | None = None) -> tuple[int, int]:
    """Return (columns, rows) of the terminal behind fd.

    Raises OSError when fd is not a terminal.
    """
    if fd is None:
        fd = sys.stdout.fileno()
    size = os.get_terminal_size(fd)
    return size.columns, size.lines


class TerminalSession:
    """Raw input mode plus alternate screen, entered and left symmetrically.

    start() enables raw mode first and then switches to the alternate screen;
    stop() undoes both in the opposite order. Both mutate global terminal
    state, so only one session should be active per process.
    """

    def __init__(self, fd: int | None = None, out: IO[str] | None = None) -> None:
        self.fd = sys.stdin.fileno() if fd is None else fd
        self.out = sys.stdout if out is None else out
        self.old_settings: list[Any] | None = None

    @property
    def active(self) -> bool:
        return self.old_settings is not None

    def start(self) -> None:
        """Enter raw mode and the alternate screen.

        Raises OSError if the terminal cannot be reconfigured.
        """
        if self.old_settings is not None:
            return  # Already started - no-op
        try:
            old_settings = termios.tcgetattr(self.fd)
            tty.setraw(self.fd)
        except termios.error as e:
            raise OSError(f"cannot enable raw mode: {e}") from e
        self.old_settings = old_settings

        try:
            self.out.write(ANSI.ENTER_ALT_SCREEN)
            self.out.flush()
        except OSError:
            self._restore_mode()
            raise

    def stop(self) -> None:
        """Leave the alternate screen and restore the saved terminal mode."""
        try:
            self.out.write(ANSI.LEAVE_ALT_SCREEN)
            self.out.flush()
        finally:
            self._restore_mode()

    def _restore_mode(self) -> None:
        if self.old_settings is None:
            return
        settings, self.old_settings = self.old_settings, None
        try:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, settings)
        except termios.error as e:
            raise OSError(f"cannot restore terminal mode: {e}") from e


class RawInputReader:
    """Reads keystrokes from a raw-mode terminal and decodes them into events."""

    # CSI sequences that map to named keys
    _CSI_KEYS = {
        "[A": "Up",
        "[B": "Down",
        "[C": "Right",
        "[D": "Left",
        "[H": "Home",
        "[F": "End",
        "[3~": "Delete",
        "[Z": "BackTab",
        "OA": "Up",
        "OB": "Down",
        "OC": "Right",
        "OD": "Left",
        "OH": "Home",
        "OF": "End",
    }

    # Key for bytes that do not decode to a character
    INVALID_BYTE = "\ufffd"

    def __init__(self, fd: int | None = None) -> None:
        self.fd = sys.stdin.fileno() if fd is None else fd
        # One byte read ahead of a malformed UTF-8 sequence, replayed next
        self._lookahead = b""

    async def read(self) -> TerminalEvent | None:
        """Read a single input event (async-friendly).

        Returns None once the input reaches end of file.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_sync)

    async def events(self) -> AsyncGenerator[TerminalEvent, None]:
        """Yield input events lazily until end of input."""
        while True:
            event = await self.read()
            if event is None:
                return
            yield event

    def _read_sync(self) -> TerminalEvent | None:
        """Synchronous read of a single key."""
        first = self._read_byte()
        if not first:
            return None

        if first[0] >= 0x80:
            return self._read_utf8(first)

        ch = first.decode("ascii")
        if ch == "\r":
            return InputEvent(key="Enter")
        if ch == "\x1b":
            return self._read_escape()
        if ch in ("\x7f", "\x08"):
            return InputEvent(key="Backspace")
        if ord(ch) < 32:
            # Map Ctrl+<letter> to its letter (Ctrl+C -> "c", etc.)
            letter = chr(ord(ch) + 96)
            if "a" <= letter <= "z":
                return InputEvent(key=letter, char=letter, ctrl=True)
            return InputEvent(key=ch, ctrl=True)
        return InputEvent(key=ch, char=ch, shift=ch.isupper())

    def _read_byte(self) -> bytes:
        if self._lookahead:
            b, self._lookahead = self._lookahead, b""
            return b
        return os.read(self.fd, 1)

    def _read_utf8(self, first: bytes) -> InputEvent:
        """Read the continuation bytes of a multi-byte UTF-8 character.

        A byte that cannot start a character yields an INVALID_BYTE key with
        no char. A byte that breaks the sequence is kept as lookahead and
        decoded on the next read, so the following keystroke is not lost.
        """
        lead = first[0]
        if 0xC2 <= lead <= 0xDF:
            remaining = 1
        elif 0xE0 <= lead <= 0xEF:
            remaining = 2
        elif 0xF0 <= lead <= 0xF4:
            remaining = 3
        else:
            return InputEvent(key=self.INVALID_BYTE)
        data = bytearray(first)
        for _ in range(remaining):
            b = os.read(self.fd, 1)
            if not b:
                return InputEvent(key=self.INVALID_BYTE)
            if not 0x80 <= b[0] <= 0xBF:
                self._lookahead = b
                return InputEvent(key=self.INVALID_BYTE)
            data.extend(b)
        try:
            ch = data.decode("utf-8")
        except UnicodeDecodeError:
            # Overlong or surrogate encodings
            return InputEvent(key=self.INVALID_BYTE)
        return InputEvent(key=ch, char=ch, shift=ch.isupper())

    def _read_escape(self) -> TerminalEvent:
        """Decode what follows an ESC byte."""
        # Set non-blocking mode to check for more chars
        flags = fcntl.fcntl(self.fd, fcntl.F_GETFL)
        fcntl.fcntl(self.fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)
        try:
            seq = self._read_escape_sequence()
        finally:
            # Restore blocking mode
            fcntl.fcntl(self.fd, fcntl.F_SETFL, flags)

        if not seq:
            if self._lookahead:
                # ESC + multi-byte character: Alt modifier
                event = self._read_utf8(self._read_byte())
                if event.char is None:
                    return event
                return dataclasses.replace(event, alt=True)
            return InputEvent(key="Escape")
        if seq in self._CSI_KEYS:
            return InputEvent(key=self._CSI_KEYS[seq])
        if seq == "[I":
            return FocusEvent(gained=True)
        if seq == "[O":
            return FocusEvent(gained=False)
        if seq == "[200~":
            return PasteEvent(text=self._read_bracketed_paste())
        if seq == "[M":
            # X10 mouse report: three payload bytes follow
            payload = os.read(self.fd, 3)
            return MouseEvent(sequence=seq + payload.decode("latin-1"))
        if seq.startswith("[<"):
            return MouseEvent(sequence=seq)
        if len(seq) == 1 and seq.isprintable():
            return InputEvent(key=seq, char=seq, alt=True, shift=seq.isupper())
        return InputEvent(key="Escape")

    def _read_escape_sequence(self) -> str | None:
        """Read an escape sequence after ESC in non-blocking mode."""
        try:
            ch2 = os.read(self.fd, 1)
        except (BlockingIOError, OSError):
            return None
        if ch2 == b"[":
            seq = bytearray()
            # CSI: read until final byte in 0x40..0x7E
            while True:
                try:
                    b = os.read(self.fd, 1)
                except (BlockingIOError, OSError):
                    break
                if not b:
                    break
                seq.extend(b)
                if 0x40 <= b[0] <= 0x7E:
                    break
                if len(seq) >= 16:
                    break
            return "[" + seq.decode("utf-8", errors="ignore")
        if ch2 == b"O":
            try:
                ch3 = os.read(self.fd, 1)
            except (BlockingIOError, OSError):
                return "O"
            return "O" + ch3.decode("utf-8", errors="ignore")
        if ch2 and ch2[0] >= 0x80:
            # Finished in blocking mode by _read_escape
            self._lookahead = ch2
            return None
        return ch2.decode("utf-8", errors="ignore")

    def _read_bracketed_paste(self) -> str:
        """Read until bracketed paste terminator (ESC [ 201 ~)."""
        terminator = b"\x1b[201~"
        buf = bytearray()
        while True:
            b = os.read(self.fd, 1)
            if not b:
                break
            buf.extend(b)
            if len(buf) >= len(terminator) and buf[-len(terminator) :] == terminator:
                content = buf[: -len(terminator)]
                return content.decode("utf-8", errors="ignore")
        return buf.decode("utf-8", errors="ignore")
