"""Raw terminal driver: key decoding, raw mode, and the input reader thread."""

import codecs
import os
import select
import shutil
import signal
import sys
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TextIO

from ..utils.logging import get_logger
from .events import Event, KeyEvent, Keys, QuitEvent

logger = get_logger(__name__)

# Alternate screen and cursor visibility
ENTER_ALT_SCREEN = "\x1b[?1049h"
EXIT_ALT_SCREEN = "\x1b[?1049l"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"

ESCAPE_SEQUENCES = {
    "\x1b[A": Keys.UP,
    "\x1b[B": Keys.DOWN,
    "\x1b[C": Keys.RIGHT,
    "\x1b[D": Keys.LEFT,
    "\x1bOA": Keys.UP,
    "\x1bOB": Keys.DOWN,
    "\x1bOC": Keys.RIGHT,
    "\x1bOD": Keys.LEFT,
    "\x1b[H": Keys.HOME,
    "\x1b[F": Keys.END,
    "\x1bOH": Keys.HOME,
    "\x1bOF": Keys.END,
    "\x1b[1~": Keys.HOME,
    "\x1b[4~": Keys.END,
    "\x1b[5~": Keys.PAGE_UP,
    "\x1b[6~": Keys.PAGE_DOWN,
}

CONTROL_KEYS = {
    "\r": Keys.ENTER,
    "\n": Keys.ENTER,
    "\x7f": Keys.BACKSPACE,
    "\x08": Keys.BACKSPACE,
    "\x03": Keys.CTRL_C,
    "\t": Keys.TAB,
}


# Wait this long for the rest of an escape sequence before a lone ESC counts
# as the escape key.
ESCAPE_DELAY = 0.05


def _sequence_end(data: str, start: int) -> Optional[int]:
    """Index just past the escape sequence at ``start``, None if data ends inside it."""
    if start + 1 >= len(data):
        return None
    introducer = data[start + 1]
    if introducer == "O":
        return start + 3 if start + 3 <= len(data) else None
    if introducer != "[":
        return start + 1
    # CSI: parameters and intermediates, then one final byte in @..~
    index = start + 2
    while index < len(data):
        if "@" <= data[index] <= "~":
            return index + 1
        index += 1
    return None


class KeyDecoder:
    """
    Incremental key decoder.

    Input arrives in arbitrary chunks, so an escape sequence can be split
    across two reads. An unfinished sequence is held in ``pending`` until
    the next ``feed`` completes it or ``flush`` gives up on it.
    """

    def __init__(self) -> None:
        self.pending = ""

    def feed(self, data: str) -> list[str]:
        """Decode a chunk of input, holding back a trailing partial sequence."""
        data = self.pending + data
        self.pending = ""
        keys: list[str] = []
        index = 0
        while index < len(data):
            ch = data[index]
            if ch == "\x1b":
                end = _sequence_end(data, index)
                if end is None:
                    self.pending = data[index:]
                    break
                self._add_sequence(data[index:end], keys)
                index = end
                continue
            if ch in CONTROL_KEYS:
                keys.append(CONTROL_KEYS[ch])
            elif ch.isprintable():
                keys.append(ch)
            index += 1
        return keys

    def flush(self) -> list[str]:
        """Resolve held-back input once no more bytes are coming."""
        data, self.pending = self.pending, ""
        if not data:
            return []
        keys: list[str] = []
        self._add_sequence(data, keys)
        return keys

    @staticmethod
    def _add_sequence(sequence: str, keys: list[str]) -> None:
        if sequence == "\x1b":
            keys.append(Keys.ESCAPE)
        elif sequence in ESCAPE_SEQUENCES:
            keys.append(ESCAPE_SEQUENCES[sequence])
        else:
            logger.debug(f"Ignoring escape sequence {sequence!r}")


def decode_keys(data: str) -> list[str]:
    """
    Decode a complete chunk of raw terminal input into key names.

    Recognized escape sequences become names from ``Keys``; unrecognized
    sequences are dropped whole. A lone ESC is the escape key.
    """
    decoder = KeyDecoder()
    return decoder.feed(data) + decoder.flush()


class Terminal:
    """
    The controlling terminal.

    Owns raw mode: ``raw_mode()`` saves the terminal attributes on entry
    and restores them on every exit path.
    """

    def __init__(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def size(self) -> tuple[int, int]:
        """Current (width, height) in cells."""
        size = shutil.get_terminal_size()
        return (size.columns, size.lines)

    def is_interactive(self) -> bool:
        return self.stdin.isatty() and self.stdout.isatty()

    @contextmanager
    def raw_mode(self) -> Iterator["Terminal"]:
        """Switch to raw mode and the alternate screen for the duration."""
        import termios
        import tty

        fd = self.stdin.fileno()
        saved = termios.tcgetattr(fd)
        previous_handler = signal.getsignal(signal.SIGTERM)

        def _terminate(signum, frame):
            raise SystemExit(128 + signum)

        try:
            signal.signal(signal.SIGTERM, _terminate)
            tty.setraw(fd)
            self.write(ENTER_ALT_SCREEN + HIDE_CURSOR)
            yield self
        finally:
            self.write(SHOW_CURSOR + EXIT_ALT_SCREEN)
            termios.tcsetattr(fd, termios.TCSADRAIN, saved)
            signal.signal(signal.SIGTERM, previous_handler)
            logger.debug("Terminal restored")

    def read(self, timeout: float) -> str:
        """
        Read whatever input is available within ``timeout`` seconds.

        Returns:
            Decoded text, empty if nothing arrived
        """
        fd = self.stdin.fileno()
        readable, _, _ = select.select([fd], [], [], timeout)
        if not readable:
            return ""
        data = os.read(fd, 1024)
        if not data:
            raise EOFError("Terminal input closed")
        return self._decoder.decode(data)

    def write(self, text: str) -> None:
        if text:
            self.stdout.write(text)
            self.stdout.flush()


class InputReader:
    """Background thread turning terminal input into KeyEvents."""

    def __init__(
        self,
        terminal: Terminal,
        post: Callable[[Event], None],
        poll_interval: float = 0.1,
    ) -> None:
        self.terminal = terminal
        self.post = post
        self.poll_interval = poll_interval

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def start(self) -> None:
        """Start reading in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Input reader already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._read_loop, name="sentry-tui-input", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the reader."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.poll_interval + 1)
            self._thread = None

    def _read_loop(self) -> None:
        decoder = KeyDecoder()
        while not self._stop_event.is_set():
            timeout = ESCAPE_DELAY if decoder.pending else self.poll_interval
            try:
                data = self.terminal.read(timeout)
            except (OSError, EOFError, ValueError) as e:
                logger.error(f"Terminal input failed: {e}")
                self.post(QuitEvent(f"input closed: {e}"))
                return
            keys = decoder.feed(data) if data else decoder.flush()
            for key in keys:
                self.post(KeyEvent(key))
