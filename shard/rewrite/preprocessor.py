"""Textual macro preprocessing.

Macros are defined with `#def` and expanded by scanning a fragment left to
right for identifiers on a word boundary. A plain macro is replaced by its
template; a parameterized one only when a parenthesized argument list follows
its name. Replacement text is scanned again, so macros may expand to other
macros.

Inside a template `#param` stringizes the argument, `a##b` pastes tokens, and
every `#` is removed from the final text.
"""

from __future__ import annotations

import logging

from shard.errors import ShardMacroError
from shard.reader.scanner import find_identifier, match_define_directive
from shard.types.macro_table import MacroEntry, MacroTable

logger = logging.getLogger(__name__)

BAD_MACRO_CALL = "**Badly formed macro call**"

# expansions per line before giving up on a self-referential macro
MAX_EXPANSIONS = 10_000

_OPENERS = "({["
_CLOSERS = ")}]"


class MacroPreprocessor:
    def __init__(self, table: MacroTable | None = None):
        self.table = table if table is not None else MacroTable()

    def define(self, name: str, template: str, params: list[str] | None = None,
               unit: str | None = None) -> MacroEntry:
        logger.debug("define macro %s%s", name, "" if params is None else f"({', '.join(params)})")
        return self.table.define(name, template, params, unit)

    def remove(self, name: str) -> bool:
        return self.table.remove(name)

    def lookup(self, name: str) -> MacroEntry | None:
        return self.table.lookup(name)

    def process_line(self, line: str) -> str:
        """Register a `#def` line (yielding empty text) or expand any other line."""
        definition = match_define_directive(line)
        if definition is not None:
            name, params, template = definition
            self.define(name, template, params)
            return ""
        return self.expand(line)

    def replace_params(self, entry: MacroEntry, actuals: list[str]) -> str:
        """Substitute `actuals` for the formals of a parameterized macro's template."""
        params = entry.params or []
        if len(actuals) == 1 and not params and not actuals[0].strip():
            actuals = []
        if len(actuals) != len(params):
            raise ShardMacroError(
                f"macro '{entry.name}' takes {len(params)} argument(s), got {len(actuals)}")

        text = entry.template
        pos = 0
        while (ident := find_identifier(text, pos)) is not None:
            if ident.text not in params:
                pos = ident.end
                continue
            actual = actuals[params.index(ident.text)]
            start = ident.start
            # a single '#' stringizes, '##' pastes
            if start > 0 and text[start - 1] == "#" and not (start > 1 and text[start - 2] == "#"):
                actual = f'"{actual}"'
            text = text[:start] + actual + text[ident.end:]
            pos = start + len(actual)
        return text.replace("#", "")

    def expand(self, line: str) -> str:
        text = line
        pos = 0
        expansions = 0
        while (ident := find_identifier(text, pos)) is not None:
            entry = self.table.lookup(ident.text)
            if entry is None:
                pos = ident.end
                continue

            if entry.is_parameterized:
                call = _argument_list(text, ident.end)
                if call is None:
                    # not a call: leave the name alone
                    pos = ident.end
                    continue
                actuals, end = call
                replacement = self.replace_params(entry, actuals)
            else:
                replacement, end = entry.template, ident.end

            expansions += 1
            if expansions > MAX_EXPANSIONS:
                raise ShardMacroError(f"macro expansion of '{ident.text}' does not terminate")
            text = text[:ident.start] + replacement + text[end:]
            pos = ident.start
        return text


def _argument_list(text: str, after_name: int) -> tuple[list[str], int] | None:
    """
    Split the parenthesized argument list following a macro name.

    Commas separate arguments only at the outermost level; parentheses, braces
    and brackets nest jointly. Returns (arguments, index past ')'), None when
    no '(' follows the name, and raises for an unbalanced call.
    """
    i = after_name
    while i < len(text) and text[i].isspace():
        i += 1
    if i >= len(text) or text[i] != "(":
        return None
    i += 1
    depth = 1
    actuals: list[str] = []
    arg_start = i
    while i < len(text):
        ch = text[i]
        if depth == 1 and ch in ",)":
            actuals.append(text[arg_start:i])
            arg_start = i + 1
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if depth == 0:
                if ch != ")":
                    raise ShardMacroError(BAD_MACRO_CALL)
                return actuals, i + 1
        i += 1
    raise ShardMacroError(BAD_MACRO_CALL)
