"""Type resolution by name with a lock-guarded cache.

Names are looked up in a fixed order:

1. the dialect's well-known type names and the builtins,
2. every loaded program unit, by exact name,
3. every registered namespace, as `namespace.name`, across all loaded units.

Both found and not-found outcomes are cached. A not-found entry is replaced
when a later search succeeds, but a found entry is never replaced.
"""

from __future__ import annotations

import builtins
import logging
import threading
from typing import Sequence

from shard.introspection.reflection import Reflector

logger = logging.getLogger(__name__)

WELL_KNOWN_TYPES: dict[str, type] = {
    "object": object,
    "string": str,
    "char": str,
    "bool": bool,
    "int": int,
    "long": int,
    "short": int,
    "byte": int,
    "sbyte": int,
    "uint": int,
    "ulong": int,
    "ushort": int,
    "double": float,
    "float": float,
    "decimal": float,
    "Object": object,
    "String": str,
    "Boolean": bool,
    "Int32": int,
    "Int64": int,
    "Double": float,
    "List": list,
    "ArrayList": list,
    "Dictionary": dict,
    "Hashtable": dict,
    "HashSet": set,
}

_UNSET = object()


class TypeResolver:
    """Resolve type names against builtins, loaded units and registered namespaces."""

    def __init__(self, namespaces: Sequence[str] | None = None, reflector: Reflector | None = None):
        # shared with the session, which appends to it
        self.namespaces: Sequence[str] = namespaces if namespaces is not None else []
        self.reflector = reflector or Reflector()
        self._cache: dict[str, type | None] = {}
        self._lock = threading.Lock()
        self.searches = 0

    def resolve(self, name: str) -> type | None:
        with self._lock:
            cached = self._cache.get(name, _UNSET)
            if cached is not _UNSET:
                return cached
            self.searches += 1

        found = self._search(name)

        with self._lock:
            cached = self._cache.get(name, _UNSET)
            if cached is _UNSET or cached is None:
                self._cache[name] = found
            return self._cache[name]

    def is_cached(self, name: str) -> bool:
        with self._lock:
            return name in self._cache

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def _search(self, name: str) -> type | None:
        known = WELL_KNOWN_TYPES.get(name)
        if known is not None:
            return known
        builtin = vars(builtins).get(name)
        if isinstance(builtin, type):
            return builtin

        units = self.reflector.loaded_units()
        for unit in units:
            found = self.reflector.find_type(unit, name)
            if found is not None:
                return found

        for ns in list(self.namespaces):
            qualified = f"{ns}.{name}"
            for unit in units:
                found = self.reflector.find_type(unit, qualified)
                if found is not None:
                    return found

        logger.debug("type %r not found", name)
        return None
