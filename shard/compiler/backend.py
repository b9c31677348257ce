from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import ModuleType
from typing import Protocol, Sequence, Union

# Diagnostic codes shared by compiler backends
CONVERSION = "SH0029"          # cannot implicitly convert (a void call used as a value says 'void')
UNKNOWN_NAME = "SH0103"
NO_MEMBER = "SH0117"
BAD_ASSIGNMENT_TARGET = "SH0131"
NOT_A_STATEMENT = "SH0201"
UNKNOWN_TYPE = "SH0246"
MISSING_REFERENCE = "SH0006"
SYNTAX = "SH1002"
INVALID_TERM = "SH1525"
UNSUPPORTED = "SH8000"
INTERNAL = "SH9999"

Reference = Union[str, ModuleType]


class OutputKind(Enum):
    TRANSIENT = "transient"
    PERSISTED = "persisted"


@dataclass(frozen=True)
class Diagnostic:
    code: str
    message: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.message} [{self.code}]"


@dataclass
class CompileResult:
    success: bool
    diagnostics: list[Diagnostic] = field(default_factory=list)
    unit: ModuleType | None = None

    def has_code(self, code: str) -> bool:
        return any(d.code == code for d in self.diagnostics)


class Compiler(Protocol):
    """
    Compiles a complete generated unit into a loaded module.

    `references` are the modules (or importable module names) whose public
    names the unit may use without qualification, in addition to its `using`
    directives.
    """

    def compile_from_source(self, source: str, output_kind: OutputKind,
                            references: Sequence[Reference]) -> CompileResult:
        ...
