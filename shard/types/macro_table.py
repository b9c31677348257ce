from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MacroEntry:
    """A textual macro: its replacement template and, when parameterized, its formals.

    `unit` names the session unit that backs a macro registered for a
    function definition; such macros are plain name substitutions.
    """
    name: str
    template: str
    params: list[str] | None = None
    unit: str | None = None

    @property
    def is_parameterized(self) -> bool:
        return self.params is not None

    @property
    def is_function(self) -> bool:
        return self.unit is not None


class MacroTable:
    """
    Mapping of macro names to MacroEntry.

    Entries are created or overwritten by a definition directive or by
    function-definition promotion, and removed when a same-named function is
    redefined.
    """

    def __init__(self):
        self.macros: dict[str, MacroEntry] = {}

    def define(self, name: str, template: str, params: list[str] | None = None,
               unit: str | None = None) -> MacroEntry:
        entry = MacroEntry(name, template, params, unit)
        self.macros[name] = entry
        return entry

    def remove(self, name: str) -> bool:
        return self.macros.pop(name, None) is not None

    def lookup(self, name: str) -> MacroEntry | None:
        return self.macros.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.macros

    def __len__(self) -> int:
        return len(self.macros)
