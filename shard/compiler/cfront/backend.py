from __future__ import annotations

import importlib
import logging
from types import ModuleType
from typing import Any, Callable, Optional, Sequence

from shard.compiler.backend import (
    INTERNAL, MISSING_REFERENCE, SYNTAX, UNKNOWN_TYPE, CompileResult, Diagnostic, OutputKind, Reference,
)
from shard.compiler.cfront.codegen import CodeGenerator
from shard.compiler.cfront.parser import parse_unit
from shard.errors import ShardSyntaxError
from shard.evaluation import runtime
from shard.introspection.reflection import public_items
from shard.types.resolver import TypeResolver

logger = logging.getLogger(__name__)

TRANSIENT_MODULE = "shard_chunk"
PERSISTED_PREFIX = "shard_unit_"


class CFrontCompiler:
    """
    Compiler backend for the C-family fragment dialect.

    Implements the Compiler protocol: parse the unit, check it against the
    names its `using` directives and references make visible, translate it to
    Python and execute the result as a fresh in-memory module.
    """

    def __init__(self, resolve_type: Optional[Callable[[str], Optional[type]]] = None):
        self.resolve_type = resolve_type or TypeResolver().resolve

    def compile_from_source(self, source: str, output_kind: OutputKind,
                            references: Sequence[Reference]) -> CompileResult:
        try:
            unit = parse_unit(source)
        except ShardSyntaxError as exc:
            code = getattr(exc, "code", SYNTAX)
            return CompileResult(False, [Diagnostic(code, str(exc), exc.line, exc.column)])

        names, diagnostics = self.visible_names(unit.usings, references)
        if diagnostics:
            return CompileResult(False, diagnostics)

        gen = CodeGenerator(names, self.resolve_type)
        py_source = gen.generate(unit)
        if gen.diagnostics:
            return CompileResult(False, gen.diagnostics)

        if output_kind is OutputKind.PERSISTED:
            module_name = PERSISTED_PREFIX + unit.cls.name
        else:
            module_name = TRANSIENT_MODULE
        try:
            code = compile(py_source, f"<{module_name}>", "exec")
        except SyntaxError as exc:
            logger.error("generated code for %s does not compile: %s\n%s", module_name, exc, py_source)
            return CompileResult(False, [Diagnostic(INTERNAL, f"code generation failed: {exc.msg}")])

        module = ModuleType(module_name)
        module.__dict__.update(names)
        module.__dict__.update(__refs__=gen.refs, __rt__=runtime, __source__=py_source, __all__=[unit.cls.name])
        try:
            exec(code, module.__dict__)
        except Exception as exc:
            return CompileResult(False, [Diagnostic(INTERNAL, f"unit initialization failed: {exc}")])
        logger.debug("compiled %s", module_name)
        return CompileResult(True, [], module)

    def visible_names(self, usings: Sequence[str],
                      references: Sequence[Reference]) -> tuple[dict[str, Any], list[Diagnostic]]:
        """Public names a unit sees unqualified; earlier sources win."""
        names: dict[str, Any] = {}
        diagnostics: list[Diagnostic] = []
        for ns in usings:
            try:
                module = importlib.import_module(ns)
            except ImportError:
                diagnostics.append(Diagnostic(
                    UNKNOWN_TYPE,
                    f"The type or namespace name '{ns}' could not be found "
                    "(are you missing a using directive or an assembly reference?)"))
                continue
            for name, value in public_items(module):
                names.setdefault(name, value)
        for ref in references:
            if isinstance(ref, ModuleType):
                module = ref
            else:
                try:
                    module = importlib.import_module(ref)
                except ImportError:
                    diagnostics.append(Diagnostic(MISSING_REFERENCE, f"Metadata file '{ref}' could not be found"))
                    continue
            for name, value in public_items(module):
                names.setdefault(name, value)
        return names, diagnostics
