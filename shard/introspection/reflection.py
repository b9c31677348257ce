"""Reflection over loaded program units.

A program unit is either an imported module (anything in sys.modules) or a
unit compiled during the session. Session units are registered explicitly and
form the global namespace: their types are found by bare name, while types of
imported modules are found by their dotted module path.
"""

from __future__ import annotations

import inspect
import logging
import sys
from dataclasses import dataclass
from types import GetSetDescriptorType, MemberDescriptorType, ModuleType
from typing import Any

logger = logging.getLogger(__name__)

ACCESSOR_PREFIXES = ("get_", "set_")

# dict.fromkeys and friends on builtin types
_ClassMethodDescriptor = type(dict.__dict__["fromkeys"])
_STATIC_KINDS = (staticmethod, classmethod, _ClassMethodDescriptor)
_FIELD_DESCRIPTORS = (GetSetDescriptorType, MemberDescriptorType)


@dataclass(frozen=True)
class ProgramUnit:
    name: str
    module: ModuleType
    is_global: bool


@dataclass(frozen=True)
class MemberInfo:
    """One reflected member; property accessors are reported as get_/set_ members."""
    name: str
    kind: str  # 'method', 'accessor', 'field' or 'type'
    is_static: bool
    is_virtual: bool
    owner: type
    obj: Any = None

    @property
    def display_name(self) -> str:
        if self.kind == "accessor" and self.name.startswith(ACCESSOR_PREFIXES):
            return self.name[len("get_"):]
        return self.name


class Reflector:
    def __init__(self):
        self._units: dict[str, ModuleType] = {}

    # --- program units ---

    def register_unit(self, module: ModuleType) -> None:
        self._units[module.__name__] = module
        logger.debug("registered session unit %s", module.__name__)

    def session_units(self) -> list[ModuleType]:
        return list(self._units.values())

    def is_session_unit(self, module_name: str) -> bool:
        return module_name in self._units

    def loaded_units(self) -> list[ProgramUnit]:
        """Snapshot of every unit currently loaded, imported modules first."""
        units = [ProgramUnit(name, module, False)
                 for name, module in list(sys.modules.items())
                 if isinstance(module, ModuleType)]
        units.extend(ProgramUnit(name, module, True) for name, module in list(self._units.items()))
        return units

    def find_type(self, unit: ProgramUnit, name: str) -> type | None:
        if unit.is_global:
            path = name
        elif name.startswith(unit.name + "."):
            path = name[len(unit.name) + 1:]
        else:
            return None
        found = _walk(unit.module, path)
        return found if isinstance(found, type) else None

    def module_of(self, t: type) -> ModuleType | None:
        name = getattr(t, "__module__", None)
        if name is None:
            return None
        return self._units.get(name) or sys.modules.get(name)

    def is_public_type(self, t: type) -> bool:
        """True when `t` has a public name and is reachable from its unit by that name."""
        qualname = getattr(t, "__qualname__", t.__name__)
        if "<locals>" in qualname or any(part.startswith("_") for part in qualname.split(".")):
            return False
        module = self.module_of(t)
        if module is None:
            return False
        if not self.is_session_unit(module.__name__) and any(
                part.startswith("_") for part in module.__name__.split(".")):
            return False
        return _walk(module, qualname) is t

    # --- members ---

    def members(self, subject: Any, static: bool) -> list[MemberInfo]:
        """
        Reflect the public members of `subject`.

        With static=True `subject` is a type (or module) and only members that need
        no instance are listed; otherwise `subject` is a value and only instance
        members are listed. Order follows dir().
        """
        if isinstance(subject, ModuleType):
            return [self._module_member(name, raw) for name, raw in public_items(subject)]
        if static:
            return self._reflect(subject, dir(subject), True, {})
        return self._reflect(type(subject), dir(subject), False, getattr(subject, "__dict__", {}))

    def methods(self, subject: Any) -> list[MemberInfo]:
        """Instance and static methods of a type or of a value's type."""
        if isinstance(subject, ModuleType):
            return [m for m in self.members(subject, True) if m.kind == "method"]
        cls = subject if isinstance(subject, type) else type(subject)
        listed = self._reflect(cls, dir(cls), True, {}) + self._reflect(cls, dir(cls), False, {})
        return [m for m in listed if m.kind in ("method", "accessor")]

    def _reflect(self, cls: type, names: list[str], static: bool,
                 instance_attrs: Any) -> list[MemberInfo]:
        found: list[MemberInfo] = []
        for name in names:
            if name.startswith("_"):
                continue
            owners = [k for k in cls.__mro__ if name in vars(k)]
            owner = owners[0] if owners else cls
            if name in instance_attrs:
                if not static:
                    found.append(MemberInfo(name, "field", False, False, owner, instance_attrs[name]))
                continue
            if not owners:
                continue
            raw = vars(owner)[name]
            virtual = len(owners) > 1
            if isinstance(raw, property):
                if static:
                    continue
                if raw.fget is not None:
                    found.append(MemberInfo("get_" + name, "accessor", False, virtual, owner, raw.fget))
                if raw.fset is not None:
                    found.append(MemberInfo("set_" + name, "accessor", False, virtual, owner, raw.fset))
            elif isinstance(raw, _STATIC_KINDS):
                if static:
                    found.append(MemberInfo(name, "method", True, virtual, owner, raw))
            elif isinstance(raw, type):
                if static:
                    found.append(MemberInfo(name, "type", True, False, owner, raw))
            elif isinstance(raw, _FIELD_DESCRIPTORS):
                # slots and builtin getset attributes live on the instance
                if not static:
                    found.append(MemberInfo(name, "field", False, False, owner, raw))
            elif callable(raw) or inspect.ismethoddescriptor(raw):
                if not static:
                    found.append(MemberInfo(name, "method", False, virtual, owner, raw))
            elif static:
                found.append(MemberInfo(name, "field", True, False, owner, raw))
        return found

    def _module_member(self, name: str, raw: Any) -> MemberInfo:
        owner = ModuleType
        if isinstance(raw, type):
            return MemberInfo(name, "type", True, False, owner, raw)
        if callable(raw):
            return MemberInfo(name, "method", True, False, owner, raw)
        return MemberInfo(name, "field", True, False, owner, raw)

    def signature(self, member: MemberInfo) -> str:
        if member.kind == "method":
            text = member.name + _render_signature(member.obj)
        elif member.kind == "accessor":
            text = member.name + ("()" if member.name.startswith("get_") else "(value)")
        elif member.kind == "type":
            text = "class " + member.name
        else:
            text = f"{type(member.obj).__name__} {member.name}"
        if member.is_static:
            text = "static " + text
        if member.is_virtual:
            text = "virtual " + text
        return text.replace("builtins.", "")


def _walk(root: Any, path: str) -> Any:
    obj = root
    for part in path.split("."):
        if isinstance(obj, ModuleType):
            obj = vars(obj).get(part)
        else:
            try:
                obj = inspect.getattr_static(obj, part)
            except AttributeError:
                return None
        if obj is None:
            return None
    return obj


def _render_signature(fn: Any) -> str:
    bound = not isinstance(fn, staticmethod)
    if isinstance(fn, (staticmethod, classmethod)):
        fn = fn.__func__
    try:
        try:
            sig = inspect.signature(fn, eval_str=True)
        except NameError:
            sig = inspect.signature(fn)
    except (TypeError, ValueError):
        logger.debug("no signature for %r", fn)
        return "(...)"
    params = list(sig.parameters.values())
    if bound and params and params[0].name in ("self", "cls", "type"):
        params = params[1:]
    return str(sig.replace(parameters=params))


def public_items(module: ModuleType) -> list[tuple[str, Any]]:
    exported = getattr(module, "__all__", None)
    names = list(exported) if exported is not None else sorted(vars(module))
    return [(name, vars(module)[name]) for name in names
            if not name.startswith("_") and name in vars(module)]
