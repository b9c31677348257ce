"""
Console collaborators.

The engine never reads input itself. It asks the console for the next line
with a one-shot callback and writes everything it has to say through
`write`. Registering a callback while another is still waiting cancels the
older one by calling it with None.
"""

from __future__ import annotations

import logging
import sys
from io import StringIO
from typing import Optional, Protocol, TextIO

from shard import InputHandler
from shard.config import MIN_LINE_WIDTH, MIN_MAX_LINES, get_line_width, get_max_lines

logger = logging.getLogger(__name__)

PROMPT = ">>>"
CONTINUATION_PROMPT = "..."


class Console(Protocol):
    def write(self, text: str) -> None:
        ...

    def read_line_async(self, callback: InputHandler, prompt: str = PROMPT) -> None:
        ...

    def line_width(self) -> int:
        ...

    def max_lines(self) -> int:
        ...


class _CallbackSlot:
    """Holds the single outstanding input callback."""

    def __init__(self):
        self.handler: Optional[InputHandler] = None
        self.prompt = PROMPT

    def install(self, callback: InputHandler, prompt: str) -> None:
        previous = self.handler
        self.handler = callback
        self.prompt = prompt
        if previous is not None:
            previous(None)

    def take(self) -> Optional[InputHandler]:
        handler, self.handler = self.handler, None
        return handler


class BufferConsole:
    """In-memory console; input is supplied with submit()."""

    def __init__(self, width: int | None = None, lines: int | None = None):
        self._out = StringIO()
        self._slot = _CallbackSlot()
        self.width = max(width if width is not None else get_line_width(), MIN_LINE_WIDTH)
        self.lines = max(lines if lines is not None else get_max_lines(), MIN_MAX_LINES)

    @property
    def output(self) -> str:
        return self._out.getvalue()

    @property
    def prompt(self) -> str:
        return self._slot.prompt

    @property
    def waiting(self) -> bool:
        return self._slot.handler is not None

    def clear(self) -> str:
        """Return the output written so far and start a fresh buffer."""
        text = self.output
        self._out = StringIO()
        return text

    def write(self, text: str) -> None:
        self._out.write(text)

    def read_line_async(self, callback: InputHandler, prompt: str = PROMPT) -> None:
        self._slot.install(callback, prompt)

    def line_width(self) -> int:
        return self.width

    def max_lines(self) -> int:
        return self.lines

    def submit(self, line: str) -> bool:
        """Deliver `line` to the waiting callback; False when nobody was waiting."""
        handler = self._slot.take()
        if handler is None:
            return False
        return bool(handler(line))

    def cancel(self) -> None:
        handler = self._slot.take()
        if handler is not None:
            handler(None)


class StreamConsole:
    """Line console over text streams, stdin and stdout by default."""

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self._slot = _CallbackSlot()

    def write(self, text: str) -> None:
        self.stdout.write(text)
        self.stdout.flush()

    def read_line_async(self, callback: InputHandler, prompt: str = PROMPT) -> None:
        self._slot.install(callback, prompt)

    def line_width(self) -> int:
        return get_line_width()

    def max_lines(self) -> int:
        return get_max_lines()

    def run(self) -> None:
        """Feed lines to waiting callbacks until end of input or nobody waits."""
        while self._slot.handler is not None:
            self.write(self._slot.prompt + " ")
            line = self.stdin.readline()
            if not line:
                logger.debug("end of input")
                self.write("\n")
                break
            handler = self._slot.take()
            if not handler(line.rstrip("\r\n")):
                break
