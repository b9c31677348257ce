"""Multi-line input accumulation.

Physical lines are classified and appended to a buffer until the count of
opening minus closing braces, ignoring braces inside string and character
literals, is back to zero at the end of a line. The buffered lines then form
one fragment.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from shard.reader.scanner import match_using_directive


class FeedKind(Enum):
    BLANK = "blank"
    COMMENT = "comment"
    COMMAND = "command"
    USING = "using"
    PENDING = "pending"
    READY = "ready"


@dataclass(frozen=True)
class FeedResult:
    kind: FeedKind
    text: str = ""


def brace_delta(line: str) -> int:
    """Net brace count of one line; quote state does not carry across lines."""
    depth = 0
    quote = ""
    escaped = False
    for ch in line:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = ""
        elif ch == '"' or ch == "'":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
    return depth


class LineAccumulator:
    def __init__(self):
        self._lines: list[str] = []
        self.depth = 0

    @property
    def pending(self) -> bool:
        return bool(self._lines)

    def reset(self) -> None:
        self._lines.clear()
        self.depth = 0

    def feed(self, line: str) -> FeedResult:
        """Classify one physical line and advance the buffer."""
        if not line.strip():
            return FeedResult(FeedKind.BLANK)
        if line.startswith("/") and not line.startswith("/*"):
            if line.startswith("//"):
                return FeedResult(FeedKind.COMMENT, line)
            return FeedResult(FeedKind.COMMAND, line)
        ns = match_using_directive(line)
        if ns is not None:
            return FeedResult(FeedKind.USING, ns)

        self._lines.append(line)
        self.depth += brace_delta(line)
        if self.depth > 0:
            return FeedResult(FeedKind.PENDING)
        # a surplus of closing braces is left for the compiler to report
        fragment = "\n".join(self._lines)
        self.reset()
        return FeedResult(FeedKind.READY, fragment)

    def feed_text(self, text: str) -> list[FeedResult]:
        return [self.feed(line) for line in text.splitlines()]
