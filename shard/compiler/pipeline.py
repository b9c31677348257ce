"""
Fragment compilation pipeline.

A fragment goes through:

1. function classification: `Type name(...) {` makes it a function unit whose
   method is stored as `_name` in a fresh class `Unit<n>`,
2. macro preprocessing (a `#def` fragment stops here),
3. call and declaration promotion (`f` -> `f()`, `int x = 5;` -> `$x = (int)(5);`),
4. session-variable rewriting,
5. framing in a unit template and compilation.

Expression fragments are first framed as an assignment to the result slot.
When that fails the bare statement is tried; if both fail, the diagnostics of
the more informative attempt are reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from itertools import count
from types import ModuleType
from typing import Callable, Sequence

from shard.compiler.backend import CONVERSION, NOT_A_STATEMENT, CompileResult, Compiler, OutputKind, Reference
from shard.compiler.templates import render_chunk, render_function
from shard.errors import ShardCompileError
from shard.reader.scanner import Scanner, match_function_definition
from shard.rewrite.preprocessor import MacroPreprocessor
from shard.rewrite.symbols import DECLARATION_KEYWORD, SymbolRewriter
from shard.types.environment import RESULT_SLOT

logger = logging.getLogger(__name__)

# Leading words of fragments that are statements, never values
STATEMENT_KEYWORDS = frozenset({"for", "foreach", "while", "using", "if", "switch", "do"})

UNIT_PREFIX = "Unit"


class FragmentKind(Enum):
    EXPRESSION = "expression"
    ASSIGNMENT = "assignment"
    FUNCTION = "function"


@dataclass
class CompiledFragment:
    unit: ModuleType
    kind: FragmentKind
    returns_value: bool
    source: str
    class_name: str | None = None
    function_name: str | None = None


class CompilationPipeline:
    def __init__(
        self,
        compiler: Compiler,
        preprocessor: MacroPreprocessor,
        rewriter: SymbolRewriter,
        namespaces: Sequence[str],
        references: Sequence[Reference],
        resolve_type: Callable[[str], type | None] | None = None,
        echo: Callable[[str], None] | None = None,
    ):
        self.compiler = compiler
        self.preprocessor = preprocessor
        self.rewriter = rewriter
        self.namespaces = namespaces
        self.references = references
        self.resolve_type = resolve_type
        self.echo = echo
        self.show_code = False
        self._unit_ids = count(1)

    @property
    def variable_prefix(self) -> str:
        return "" if self.rewriter.must_declare else "$"

    def next_unit_name(self) -> str:
        return f"{UNIT_PREFIX}{next(self._unit_ids)}"

    def compile_fragment(self, fragment: str) -> CompiledFragment | None:
        """Compile one complete fragment; None when it only defined a macro."""
        header = match_function_definition(fragment)
        if header is not None:
            self.preprocessor.remove(header.name)
            class_name = self.next_unit_name()
            # calls by the plain name inside the body are resolved by the compiler
            code = fragment[:header.name_index] + "_" + fragment[header.name_index:]
            code = self.preprocessor.process_line(code)
            kind = FragmentKind.FUNCTION
        else:
            class_name = None
            code = self.preprocessor.process_line(self.promote_call(fragment))
            if not code.strip():
                return None
            code = self.promote_declaration(code)
            kind = FragmentKind.EXPRESSION

        rewritten = self.rewriter.rewrite(code)
        if rewritten.was_assignment and kind is FragmentKind.EXPRESSION:
            kind = FragmentKind.ASSIGNMENT
        compiled = self.compile(rewritten.text.lstrip(), kind, class_name)
        if header is not None:
            compiled.function_name = header.name
        return compiled

    def compile(self, code: str, kind: FragmentKind, class_name: str | None = None) -> CompiledFragment:
        returns_value = False
        body = code
        if kind is FragmentKind.EXPRESSION and code and code[0] != "{" \
                and _leading_word(code) not in STATEMENT_KEYWORDS:
            returns_value = True
            body = f'V["{RESULT_SLOT}"] = {code}'

        result = self._compile_unit(body, kind, class_name)
        if result.success:
            return CompiledFragment(result.unit, kind, returns_value, code, class_name)

        if returns_value:
            retry = self._compile_unit(code, kind, class_name)
            if retry.success:
                return CompiledFragment(retry.unit, kind, False, code, class_name)
            first_is_void = any(d.code == CONVERSION and "void" in d.message for d in result.diagnostics)
            if not retry.has_code(NOT_A_STATEMENT) or first_is_void:
                result = retry

        raise ShardCompileError(code, result.diagnostics)

    def register_function(self, compiled: CompiledFragment) -> None:
        """Make a compiled function callable by its plain name."""
        name = compiled.function_name
        template = f"{self.variable_prefix}{compiled.class_name}._{name}"
        self.preprocessor.define(name, template, unit=compiled.class_name)

    def promote_call(self, fragment: str) -> str:
        """A fragment naming a session function alone becomes a call with no arguments."""
        name = fragment.strip().rstrip(";").strip()
        entry = self.preprocessor.lookup(name)
        if entry is not None and entry.is_function:
            return name + "()"
        return fragment

    def promote_declaration(self, code: str) -> str:
        """Turn a single typed declaration into an assignment to a session variable."""
        s = Scanner(code)
        s.skip_spaces()
        type_text, base = _scan_type(s)
        if type_text is None or s.skip_spaces() == 0:
            return code
        name = s.identifier()
        if name is None:
            return code
        s.skip_spaces()
        if not s.expect("=") or s.peek() == "=":
            return code
        value = s.rest().strip()
        if value.endswith(";"):
            value = value[:-1].rstrip()
        if not value or ";" in value:
            return code

        prefix = "var " if self.rewriter.must_declare else "$"
        if type_text == DECLARATION_KEYWORD:
            return f"{prefix}{name} = {value};"
        if self.resolve_type is None or self.resolve_type(base) is None:
            return code
        return f"{prefix}{name} = ({type_text})({value});"

    def _compile_unit(self, body: str, kind: FragmentKind, class_name: str | None) -> CompileResult:
        if kind is FragmentKind.FUNCTION:
            source = render_function(body, class_name, self.namespaces)
            output = OutputKind.PERSISTED
        else:
            source = render_chunk(body, self.namespaces)
            output = OutputKind.TRANSIENT
        if self.show_code and self.echo is not None:
            self.echo(f"code: {body}\n")
        logger.debug("compiling %s unit:\n%s", output.value, source)
        return self.compiler.compile_from_source(source, output, list(self.references))


def _leading_word(code: str) -> str:
    return Scanner(code).word() or ""


def _scan_type(s: Scanner) -> tuple[str | None, str]:
    """Scan `Name`, `ns.Name`, `Name<args>` or `Name[]` ; returns (text, base name)."""
    start = s.pos
    base = s.dotted_name()
    if base is None:
        return None, ""
    if s.peek() == "<":
        depth = 0
        while not s.at_end():
            ch = s.peek()
            if ch == "<":
                depth += 1
            elif ch == ">":
                depth -= 1
            elif not (ch.isalnum() or ch in "_., []"):
                return None, ""
            s.pos += 1
            if depth == 0:
                break
        if depth != 0:
            return None, ""
    while s.peek() == "[" and s.peek(1) == "]":
        s.pos += 2
    return s.text[start:s.pos], base
