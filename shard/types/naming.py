from __future__ import annotations

from collections import abc
from typing import Any, Sequence

from shard.evaluation.runtime import Array
from shard.introspection.reflection import Reflector

# Names the dialect uses for the core value types
KEYWORD_NAMES: dict[type, str] = {
    int: "int",
    float: "double",
    str: "string",
    bool: "bool",
    object: "object",
}

# Most specific first
_COLLECTION_INTERFACES: tuple[type, ...] = (
    abc.Generator,
    abc.Iterator,
    abc.KeysView,
    abc.ItemsView,
    abc.ValuesView,
    abc.MutableMapping,
    abc.Mapping,
    abc.MutableSet,
    abc.Set,
    abc.MutableSequence,
    abc.Sequence,
    abc.Collection,
    abc.Iterable,
    abc.Callable,
)


class TypeNamer:
    """
    Produces the type names used for casts and for result display.

    A value's runtime type may not be nameable from fragment code (a private
    class, a class local to a function, an implementation type like dict_keys).
    The public runtime type is the nearest base class that is nameable, or when
    that is only `object`, the most specific collection interface it implements.
    """

    def __init__(self, namespaces: Sequence[str] | None = None, reflector: Reflector | None = None):
        self.namespaces: Sequence[str] = namespaces if namespaces is not None else []
        self.reflector = reflector or Reflector()

    def public_runtime_type(self, t: type) -> type:
        base = next((k for k in t.__mro__ if self.reflector.is_public_type(k)), object)
        if base is object and t is not object:
            for iface in _COLLECTION_INTERFACES:
                if issubclass(t, iface) and self.reflector.is_public_type(iface):
                    return iface
        return base

    def type_name(self, t: type, simplified: bool = False) -> str:
        keyword = KEYWORD_NAMES.get(t)
        if keyword is not None:
            return keyword
        module = t.__module__
        if module == "builtins" or self.reflector.is_session_unit(module):
            name = t.__qualname__
        else:
            name = f"{module}.{t.__qualname__}"
        return self.simplify(name) if simplified else name

    def simplify(self, name: str) -> str:
        """Drop the longest registered namespace prefix from a qualified name."""
        for ns in sorted(self.namespaces, key=len, reverse=True):
            if name.startswith(ns + "."):
                return name[len(ns) + 1:]
        return name

    def public_runtime_type_name(self, value: Any, simplified: bool = False) -> str | None:
        if value is None:
            return None
        if isinstance(value, Array):
            if value.element_type is None:
                return self.type_name(list)
            element = self.public_runtime_type(value.element_type)
            return self.type_name(element, simplified) + "[]"
        return self.type_name(self.public_runtime_type(type(value)), simplified)
