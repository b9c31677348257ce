"""Member listing and signature lookup for the console's Meta helpers."""

from __future__ import annotations

import logging
import re
from types import ModuleType
from typing import Any

from shard.errors import ShardTypeError
from shard.introspection.reflection import MemberInfo, Reflector
from shard.types.resolver import TypeResolver

logger = logging.getLogger(__name__)


class MetaService:
    """
    Answers "what can I do with this?" for values, types and modules.

    A value lists its instance members, a type or module its static ones. The
    subject of the last query is remembered and used when a later query names
    none.
    """

    def __init__(self, reflector: Reflector, resolver: TypeResolver):
        self.reflector = reflector
        self.resolver = resolver
        self.last_type: type | ModuleType | None = None

    def list_members(self, subject: Any = None, pattern: str | None = None) -> list[str]:
        if subject is None:
            subject = self.last_type
            if subject is None:
                return []
        static = isinstance(subject, (type, ModuleType))
        members = self.reflector.members(subject, static)
        if not members:
            return []
        self.last_type = subject if static else type(subject)

        entries = [(m.display_name, m.name) for m in members]
        # sort is stable, so equal names keep their reflected order
        entries.sort(key=lambda e: e[0].casefold())
        regex = re.compile(pattern, re.IGNORECASE) if pattern else None

        names: list[str] = []
        last = None
        for shown, raw in entries:
            if shown == last:
                continue
            if regex is not None and not regex.search(shown) and not regex.search(raw):
                continue
            last = shown
            names.append(shown)
        return names

    def subject_type(self, subject: Any) -> type | ModuleType | None:
        """The type (or module) a describe/method query is about."""
        if subject is None:
            return self.last_type
        if isinstance(subject, str):
            found = self.resolver.resolve(subject)
            if found is None:
                raise ShardTypeError(f"'{subject}' is not a type")
            subject = found
        if not isinstance(subject, (type, ModuleType)):
            subject = type(subject)
        self.last_type = subject
        return subject

    def describe_member(self, subject: Any, name: str) -> list[str]:
        """Signatures of every method or accessor of `subject` called `name`."""
        t = self.subject_type(subject)
        if t is None:
            return []
        return [self.reflector.signature(m) for m in self._methods(t)
                if m.name == name or m.display_name == name]

    def method_names(self, subject: Any) -> list[str]:
        t = self.subject_type(subject)
        if t is None:
            return []
        return sorted({m.name for m in self._methods(t) if m.kind != "accessor"}, key=str.casefold)

    def _methods(self, t: type | ModuleType) -> list[MemberInfo]:
        return self.reflector.methods(t)
