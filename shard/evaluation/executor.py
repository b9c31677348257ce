from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from shard.compiler.pipeline import CompiledFragment
from shard.compiler.templates import CHUNK_CLASS
from shard.types.environment import RESULT_SLOT

if TYPE_CHECKING:
    from shard.interpreter import Interpreter

logger = logging.getLogger(__name__)


def exception_kind(exc: BaseException) -> str:
    t = type(exc)
    if t.__module__ == "builtins":
        return t.__qualname__
    return f"{t.__module__}.{t.__qualname__}"


class Executor:
    """
    Runs compiled fragments against the session environment.

    Exceptions raised by fragment code stop at this boundary and are reported
    on the console; whatever the fragment changed before raising stays changed.
    """

    def __init__(self, session: Interpreter):
        self.session = session
        self.dumping_value = True
        self.returns_value = False

    @property
    def output(self):
        return self.session.output

    def run_chunk(self, compiled: CompiledFragment) -> None:
        self.returns_value = compiled.returns_value
        chunk_cls = getattr(compiled.unit, CHUNK_CLASS)
        env = self.session.env
        try:
            chunk_cls(self.session).Go(env)
            if compiled.returns_value and self.dumping_value:
                self.show_result(env.lookup(RESULT_SLOT))
        except Exception as exc:
            logger.debug("fragment raised", exc_info=True)
            self.output.print(f"{exception_kind(exc)} was thrown: {exc}")

    def instantiate_function(self, compiled: CompiledFragment) -> None:
        """Create the function unit's instance and store it under its class name."""
        self.returns_value = False
        unit_cls = getattr(compiled.unit, compiled.class_name)
        env = self.session.env
        try:
            instance = unit_cls(self.session)
        except Exception as exc:
            self.output.print(f"{exception_kind(exc)} was thrown: {exc}")
            return
        # static members read the class attribute
        unit_cls.V = env
        instance.V = env
        env.define(compiled.class_name, instance)

    def show_result(self, value: Any) -> None:
        if value is None:
            self.output.print("null")
            return
        stype = f"({self.session.namer.public_runtime_type_name(value, simplified=True)})"
        if isinstance(value, str):
            self.output.print(stype, f"'{value}'")
        elif isinstance(value, Iterable):
            self.output.print(stype)
            self.output.dumpl(value.items() if isinstance(value, Mapping) else value)
        else:
            self.output.print(stype, value)
