"""Session-variable rewriting.

Fragment text refers to session variables either with a sigil (`$name`,
`${any name}`) or, in declared mode, by bare identifier. Each reference is
rewritten to an explicit lookup in the environment, `V["name"]`, wrapped in a
cast to the variable's current public runtime type unless the reference is the
target of an assignment.

References are rewritten right to left so earlier match positions stay valid.
A reference with an odd number of unescaped double quotes on both sides sits
inside a string literal and is left alone.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable

from shard import Value
from shard.reader.scanner import iter_identifiers
from shard.types.environment import VariableEnvironment

DECLARATION_KEYWORD = "var"

SIGIL_RE = re.compile(r'\$(?:\w+|\{[^{}\r\n\t\f\v"]+\})')

TypeNameFn = Callable[[Value], "str | None"]


@dataclass
class Reference:
    text: str
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.text)


@dataclass
class RewriteResult:
    text: str
    was_assignment: bool = False
    declared: list[str] = field(default_factory=list)


def unescaped_quotes(text: str) -> int:
    count = 0
    for i, ch in enumerate(text):
        if ch == '"' and (i == 0 or text[i - 1] != "\\"):
            count += 1
    return count


def is_assignment_target(text: str, end: int) -> bool:
    """True when the reference ending at `end` is followed by `=` but not `==`."""
    i = end
    while i < len(text) and text[i].isspace():
        i += 1
    return i + 1 < len(text) and text[i] == "=" and text[i + 1] != "="


class SymbolRewriter:
    def __init__(self, env: VariableEnvironment, type_name: TypeNameFn, must_declare: bool = False):
        self.env = env
        self.type_name = type_name
        self.must_declare = must_declare

    def references(self, text: str) -> list[Reference]:
        if self.must_declare:
            return [Reference(i.text, i.start) for i in iter_identifiers(text)]
        return [Reference(m.group(), m.start()) for m in SIGIL_RE.finditer(text)]

    def rewrite(self, text: str) -> RewriteResult:
        refs = self.references(text)
        result = RewriteResult(text)
        declaring = False
        for i in range(len(refs) - 1, -1, -1):
            ref = refs[i]
            if ref.start > 0 and unescaped_quotes(text[:ref.start]) % 2 == 1 \
                    and unescaped_quotes(text[ref.start:]) % 2 == 1:
                continue

            if self.must_declare:
                if ref.text == DECLARATION_KEYWORD:
                    if declaring:
                        text = _strip_keyword(text, ref)
                        declaring = False
                    continue
                # member access is never a session variable
                if ref.start > 0 and text[ref.start - 1] == ".":
                    continue
                name = ref.text
                if i > 0 and refs[i - 1].text == DECLARATION_KEYWORD:
                    declaring = True
                    result.declared.append(name)
                elif self.env.lookup(name) is None:
                    continue
            else:
                name = ref.text[1:]
                if name.startswith("{"):
                    name = name[1:-1]

            assigned = is_assignment_target(text, ref.end)
            slot = f'V["{name}"]'
            if not assigned:
                type_name = self.type_name(self.env.lookup(name))
                if type_name is not None:
                    slot = f"(({type_name}){slot})"
            text = text[:ref.start] + slot + text[ref.end:]
            result.was_assignment = assigned

        result.text = text
        return result


def _strip_keyword(text: str, ref: Reference) -> str:
    end = ref.end
    while end < len(text) and text[end].isspace():
        end += 1
    return text[:ref.start] + text[end:]
