"""Console output helpers used by fragment code and the executor."""

from __future__ import annotations

from typing import Any, Iterable

from shard.console import Console

NULL_TEXT = "<null>"
ELLIPSIS = "....."


def item_text(item: Any) -> str:
    """Display form of one element of a dumped sequence; strings are quoted."""
    if item is None:
        return NULL_TEXT
    if isinstance(item, str):
        return f'"{item}"'
    return str(item)


class OutputWriter:
    def __init__(self, console: Console):
        self.console = console

    def write(self, text: str) -> None:
        self.console.write(text)

    def print(self, *objs: Any) -> None:
        self.write(" ".join("" if o is None else str(o) for o in objs) + "\n")

    def printl(self, items: Iterable[Any]) -> None:
        self.write(" ".join(NULL_TEXT if o is None else str(o) for o in items) + "\n")

    def dumpl(self, items: Iterable[Any]) -> None:
        """
        Write `items` as `{a,b,c}` wrapped at the console line width.

        Output stops with an ellipsis once the console's maximum line count
        would be exceeded, so an endless iterable is safe to dump.
        """
        width = self.console.line_width()
        max_lines = self.console.max_lines() - 1
        self.write("{")
        line = ""
        lines = 0
        first = True
        for item in items:
            if first:
                first = False
            else:
                line += ","
            text = item_text(item)
            if len(line) + len(text) >= width:
                if line:
                    self.write(line + "\n")
                    line = ""
                lines += 1
                if lines > max_lines:
                    line += ELLIPSIS
                    break
            line += text
        self.write(line + "}\n")
