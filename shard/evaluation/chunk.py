"""
Base classes for compiled units.

Every unit compiled in a session derives from one of these: statement and
expression fragments from CodeChunk, function fragments from
FunctionContext. Their methods are what fragment code sees as `Print`,
`Dumpl`, `Meta` and friends.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from shard.types.environment import VariableEnvironment

if TYPE_CHECKING:
    from shard.interpreter import Interpreter

__all__ = ["Utils", "CodeChunk", "FunctionContext", "VariableEnvironment"]

# method names per line in an MInfo listing
_NAMES_PER_LINE = 5


class Utils:
    def __init__(self, session: Interpreter):
        self.session = session

    def Write(self, text: Any) -> None:
        self.session.output.write(str(text))

    def Print(self, *objs: Any) -> None:
        self.session.output.print(*objs)

    print = Print

    def Printl(self, items: Iterable[Any]) -> None:
        self.session.output.printl(items)

    def Dumpl(self, items: Iterable[Any]) -> None:
        self.session.output.dumpl(items)

    def GetMeta(self, subject: Any = None, pattern: str | None = None) -> list[str]:
        return self.session.meta.list_members(subject, pattern)

    def Meta(self, subject: Any = None, pattern: str | None = None) -> None:
        names = self.GetMeta(subject, pattern)
        if names:
            self.Write(" ".join(names) + "\n")

    def MInfo(self, subject: Any = None, name: str | None = None) -> None:
        """Print the signatures of `name`, or every method name of the subject."""
        meta = self.session.meta
        if name is not None:
            for signature in meta.describe_member(subject, name):
                self.Print(signature)
            return
        names = meta.method_names(subject)
        for i in range(0, len(names), _NAMES_PER_LINE):
            self.Print(" ".join(names[i:i + _NAMES_PER_LINE]))

    def Include(self, path: str) -> None:
        self.session.include_file(path)


class CodeChunk(Utils):
    def Go(self, V: VariableEnvironment) -> None:
        pass


class FunctionContext(Utils):
    # set by the executor once the unit is loaded
    V: VariableEnvironment | None = None
