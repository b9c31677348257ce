"""Session variable environment.

The VariableEnvironment maps variable names to arbitrary runtime values and is
shared between the console engine and every compiled fragment, which sees it as
its `V` parameter. Reading a name that has never been stored is not an error:
an optional fallback resolver (installed by the embedding host) is consulted,
and without one the lookup yields None.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from io import StringIO
from typing import Callable, Iterator, Optional

from shard import Value

# Reserved slots
RESULT_SLOT = "_"
SESSION_SLOT = "interpreter"

FallbackResolver = Callable[[str], Value]


class VariableEnvironment(MutableMapping):
    """Flat, mutable mapping from names to session values with a miss hook."""

    __slots__ = ("vars", "fallback")

    def __init__(self, fallback: Optional[FallbackResolver] = None):
        self.vars: dict[str, Value] = {}
        self.fallback: FallbackResolver | None = fallback

    def define(self, name: str, value: Value) -> None:
        self.vars[name] = value

    def lookup(self, name: str) -> Value:
        """Return the stored value, else whatever the fallback resolves, else None.

        The fallback is consulted only on a definite miss, never when a name is
        stored with a None value.
        """
        if name in self.vars:
            return self.vars[name]
        if self.fallback is None:
            return None
        return self.fallback(name)

    def remove(self, name: str) -> bool:
        return self.vars.pop(name, _MISSING) is not _MISSING

    def is_bound(self, name: str) -> bool:
        return name in self.vars

    # --- MutableMapping protocol ---

    def __getitem__(self, name: str) -> Value:
        return self.lookup(name)

    def get(self, name: str, default: Value = None) -> Value:
        value = self.lookup(name)
        return default if value is None else value

    def __setitem__(self, name: str, value: Value) -> None:
        self.vars[name] = value

    def __delitem__(self, name: str) -> None:
        del self.vars[name]

    def __contains__(self, name: object) -> bool:
        return name in self.vars

    def __iter__(self) -> Iterator[str]:
        return iter(list(self.vars))

    def __len__(self) -> int:
        return len(self.vars)

    def __str__(self) -> str:
        buf = StringIO()
        buf.write("{")
        buf.write(", ".join(f"{k}: {v!r}" for k, v in self.vars.items()))
        buf.write("}")
        return buf.getvalue()

    __repr__ = __str__


_MISSING = object()
