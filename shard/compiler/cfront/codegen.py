"""
  Python code generation for parsed units.

The generated module defines one class. Names are resolved at generation time
in this order: locals and parameters, members of the class being compiled,
members inherited from its base class, names exported by `using` directives
and references, builtins, and finally types known to the type resolver.
Anything else is reported as an unknown name.

Objects that have no plain name in the module (resolved types, dotted module
paths) are reached through the module-level `__refs__` table; dialect
semantics with no direct Python operator go through `__rt__`, the runtime
helper module.

A light static typing pass tracks literal, declared and cast types. It is
enough to report a void call used as a value, an expression used as a
statement, and obviously mismatched declarations.
"""

from __future__ import annotations

import builtins
import inspect
import keyword
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Callable, Iterator, Optional

from shard.compiler.backend import (
    BAD_ASSIGNMENT_TARGET, CONVERSION, NO_MEMBER, NOT_A_STATEMENT, UNKNOWN_NAME, UNKNOWN_TYPE,
    UNSUPPORTED, Diagnostic,
)
from shard.compiler.cfront import ast
from shard.types.naming import KEYWORD_NAMES
from shard.types.resolver import WELL_KNOWN_TYPES

VOID = "void"

_LITERAL_TYPES: dict[str, type] = {"int": int, "real": float, "string": str, "char": str, "bool": bool}
_DEFAULTS: dict[type, str] = {int: "0", float: "0.0", bool: "False"}
_RESERVED = frozenset({"self", "__refs__", "__rt__"})
_ARITHMETIC = frozenset({"+", "-", "*", "/", "%"})
_COMPARISON = frozenset({"==", "!=", "<", ">", "<=", ">=", "&&", "||"})
_PRIMITIVES = (int, float, str, bool)
_MISSING = object()


def py_name(name: str) -> str:
    if keyword.iskeyword(name) or name in _RESERVED:
        return name + "_"
    return name


def returns_none(fn: Any) -> bool:
    """True when `fn` is declared to return nothing."""
    if fn is print:
        return True
    if isinstance(fn, (staticmethod, classmethod)):
        fn = fn.__func__
    annotations = getattr(fn, "__annotations__", None)
    if not isinstance(annotations, dict):
        return False
    ret = annotations.get("return", _MISSING)
    return ret is None or ret is type(None) or ret == "None"


def type_display(t: Any) -> str:
    if t is VOID:
        return "void"
    if isinstance(t, type):
        return KEYWORD_NAMES.get(t, t.__name__)
    return "object"


class Scope:
    def __init__(self, parent: Optional[Scope] = None):
        self.names: dict[str, Any] = {}
        self.parent = parent

    def declare(self, name: str, static_type: Any) -> None:
        self.names[name] = static_type

    def lookup(self, name: str) -> tuple[bool, Any]:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.names:
                return True, scope.names[name]
            scope = scope.parent
        return False, None


@dataclass
class _Breakable:
    kind: str  # 'loop' or 'switch'
    on_continue: list[str] = field(default_factory=list)


class CodeGenerator:
    def __init__(self, names: dict[str, Any], resolve_type: Callable[[str], Optional[type]]):
        self.names = names
        self.resolve_type = resolve_type
        self.refs: dict[str, Any] = {}
        self.diagnostics: list[Diagnostic] = []
        self.lines: list[str] = []
        self.indent = 0
        self.scope = Scope()
        self.cls: ast.ClassDecl | None = None
        self.base: type | None = None
        self.methods: dict[str, ast.MethodDecl] = {}
        self.fields: dict[str, ast.FieldDecl] = {}
        self.static_context = False
        self.breakables: list[_Breakable] = []
        self._temps = count(1)

    # --- output helpers ---

    def emit(self, line: str) -> None:
        self.lines.append("    " * self.indent + line)

    @contextmanager
    def indented(self) -> Iterator[None]:
        self.indent += 1
        try:
            yield
        finally:
            self.indent -= 1

    @contextmanager
    def nested_scope(self) -> Iterator[None]:
        self.scope = Scope(self.scope)
        try:
            yield
        finally:
            self.scope = self.scope.parent or Scope()

    def capture(self, fn: Callable[[], None]) -> list[str]:
        """Run `fn` and return the lines it emits, relative to the current indent."""
        saved_lines, saved_indent = self.lines, self.indent
        self.lines, self.indent = [], 0
        try:
            fn()
            return self.lines
        finally:
            self.lines, self.indent = saved_lines, saved_indent

    def error(self, code: str, message: str, node: ast.Node) -> None:
        self.diagnostics.append(Diagnostic(code, message, node.line, node.column))

    def ref(self, key: str, obj: Any) -> str:
        self.refs[key] = obj
        return f"__refs__[{key!r}]"

    # --- unit ---

    def generate(self, unit: ast.Unit) -> str:
        cls = unit.cls
        self.cls = cls
        self.methods = {m.name: m for m in cls.members if isinstance(m, ast.MethodDecl)}
        self.fields = {f.name: f for f in cls.members if isinstance(f, ast.FieldDecl)}
        base_text = "object"
        if cls.base is not None:
            base = self.type_object(cls.base)
            if isinstance(base, type):
                self.base = base
                base_text = self.ref(str(cls.base), base)
        self.emit(f"class {cls.name}({base_text}):")
        with self.indented():
            self.emit("__shard_unit__ = True")
            for f in self.fields.values():
                self.field_decl(f)
            for m in self.methods.values():
                self.method(m)
        return "\n".join(self.lines) + "\n"

    def field_decl(self, f: ast.FieldDecl) -> None:
        declared = self.type_object(f.type)
        self.scope = Scope()
        self.static_context = True
        value = self.initializer(f.init, declared, f.type) if f.init is not None else self.default_for(declared)
        self.emit(f"{py_name(f.name)} = {value}")

    def method(self, m: ast.MethodDecl) -> None:
        self.scope = Scope()
        self.static_context = m.is_static
        self.breakables = []
        params = []
        for p in m.params:
            self.scope.declare(p.name, self.type_object(p.type))
            params.append(py_name(p.name))
        if not m.return_type.is_void:
            self.type_object(m.return_type)
        if m.is_static:
            self.emit("@staticmethod")
        else:
            params.insert(0, "self")
        ret = " -> None" if m.return_type.is_void else ""
        self.emit(f"def {py_name(m.name)}({', '.join(params)}){ret}:")
        with self.indented():
            self.body(m.body.body)

    # --- types ---

    def quiet_type(self, t: ast.TypeRef) -> Optional[type]:
        if t.rank:
            return list
        known = WELL_KNOWN_TYPES.get(t.name)
        if known is not None:
            return known
        named = self.names.get(t.name)
        if isinstance(named, type):
            return named
        return self.resolve_type(t.name)

    def type_object(self, t: ast.TypeRef) -> Optional[type]:
        if t.is_var or t.is_void:
            return None
        found = self.quiet_type(t)
        if found is None:
            self.error(UNKNOWN_TYPE,
                       f"The type or namespace name '{t.name}' could not be found "
                       "(are you missing a using directive or an assembly reference?)", t)
        return found

    def type_value(self, t: ast.TypeRef) -> str:
        found = self.type_object(t)
        if found is None:
            return "object"
        if t.rank:
            return "list"
        return self.ref(t.name, found)

    def default_for(self, t: Optional[type]) -> str:
        return _DEFAULTS.get(t, "None") if t is not None else "None"

    # --- statements ---

    def body(self, stmts: list[ast.Stmt]) -> None:
        start = len(self.lines)
        for s in stmts:
            self.statement(s)
        if len(self.lines) == start:
            self.emit("pass")

    def sub_statement(self, s: ast.Stmt) -> None:
        with self.indented(), self.nested_scope():
            self.body(s.body if isinstance(s, ast.Block) else [s])

    def statement(self, s: ast.Stmt) -> None:
        getattr(self, "_s_" + type(s).__name__)(s)

    def _s_Block(self, s: ast.Block) -> None:
        with self.nested_scope():
            for inner in s.body:
                self.statement(inner)

    def _s_Empty(self, s: ast.Empty) -> None:
        pass

    def _s_LocalDecl(self, s: ast.LocalDecl) -> None:
        declared = self.type_object(s.type)
        for name, init in s.declarators:
            if init is None:
                if s.type.is_var:
                    self.error("SH0818", "Implicitly-typed variables must be initialized", s)
                value = self.default_for(declared)
                static = declared
            else:
                value = self.initializer(init, declared, s.type)
                static = self.static_type(init) if s.type.is_var else declared
            self.scope.declare(name, static)
            self.emit(f"{py_name(name)} = {value}")

    def _s_ExprStmt(self, s: ast.ExprStmt) -> None:
        e = s.expr
        if isinstance(e, ast.Assign):
            self.assign_statement(e)
        elif isinstance(e, ast.IncDec):
            target = self.target(e.target)
            self.emit(f"{target} {'+=' if e.op == '++' else '-='} 1")
        elif isinstance(e, (ast.Call, ast.New)):
            self.emit(self.expr(e))
        else:
            self.error(NOT_A_STATEMENT,
                       "Only assignment, call, increment, decrement, and new object expressions "
                       "can be used as a statement", s)
            self.value(e)

    def _s_If(self, s: ast.If) -> None:
        self.emit(f"if {self.value(s.cond)}:")
        self.sub_statement(s.then)
        orelse = s.orelse
        while isinstance(orelse, ast.If):
            self.emit(f"elif {self.value(orelse.cond)}:")
            self.sub_statement(orelse.then)
            orelse = orelse.orelse
        if orelse is not None:
            self.emit("else:")
            self.sub_statement(orelse)

    def loop_body(self, body: ast.Stmt, on_continue: list[str], trailer: list[str]) -> None:
        self.breakables.append(_Breakable("loop", on_continue))
        try:
            with self.indented(), self.nested_scope():
                start = len(self.lines)
                for inner in (body.body if isinstance(body, ast.Block) else [body]):
                    self.statement(inner)
                for line in trailer:
                    self.emit(line)
                if len(self.lines) == start:
                    self.emit("pass")
        finally:
            self.breakables.pop()

    def _s_While(self, s: ast.While) -> None:
        self.emit(f"while {self.value(s.cond)}:")
        self.loop_body(s.body, [], [])

    def _s_DoWhile(self, s: ast.DoWhile) -> None:
        check = [f"if not ({self.value(s.cond)}):", "    break"]
        self.emit("while True:")
        self.loop_body(s.body, check, check)

    def _s_For(self, s: ast.For) -> None:
        with self.nested_scope():
            for init in s.init:
                self.statement(init)
            cond = self.value(s.cond) if s.cond is not None else "True"
            update: list[str] = []
            for u in s.update:
                update += self.capture(lambda u=u: self._s_ExprStmt(ast.ExprStmt(u, line=u.line, column=u.column)))
            self.emit(f"while {cond}:")
            self.loop_body(s.body, update, update)

    def _s_Foreach(self, s: ast.Foreach) -> None:
        iterable = self.value(s.iterable)
        with self.nested_scope():
            declared = None if s.type.is_var else self.type_object(s.type)
            self.scope.declare(s.name, declared)
            self.emit(f"for {py_name(s.name)} in {iterable}:")
            self.loop_body(s.body, [], [])

    def _s_Switch(self, s: ast.Switch) -> None:
        subject = f"__switch{next(self._temps)}__"
        self.emit(f"{subject} = {self.value(s.subject)}")
        default: list[ast.Stmt] | None = None
        first = True
        for section in s.sections:
            body = list(section.body)
            if body and isinstance(body[-1], ast.Break):
                body.pop()
            elif not body or not isinstance(body[-1], (ast.Return, ast.Throw, ast.Continue)):
                self.error("SH0163", "Control cannot fall through from one case label to another", section)
            if None in section.labels:
                default = body
                continue
            tests = " or ".join(f"{subject} == {self.value(label)}" for label in section.labels)
            self.emit(f"{'if' if first else 'elif'} {tests}:")
            first = False
            self.switch_section(body)
        if default is not None:
            self.emit("if True:" if first else "else:")
            self.switch_section(default)

    def switch_section(self, body: list[ast.Stmt]) -> None:
        self.breakables.append(_Breakable("switch"))
        try:
            with self.indented(), self.nested_scope():
                self.body(body)
        finally:
            self.breakables.pop()

    def _s_Break(self, s: ast.Break) -> None:
        if not self.breakables:
            self.error("SH0139", "No enclosing loop out of which to break or continue", s)
        elif self.breakables[-1].kind == "switch":
            self.error(UNSUPPORTED, "break is only supported as the last statement of a switch section", s)
        else:
            self.emit("break")

    def _s_Continue(self, s: ast.Continue) -> None:
        loop = next((b for b in reversed(self.breakables) if b.kind == "loop"), None)
        if loop is None:
            self.error("SH0139", "No enclosing loop out of which to break or continue", s)
            return
        for line in loop.on_continue:
            self.emit(line)
        self.emit("continue")

    def _s_Return(self, s: ast.Return) -> None:
        self.emit("return" if s.value is None else f"return {self.value(s.value)}")

    def _s_Throw(self, s: ast.Throw) -> None:
        self.emit("raise" if s.value is None else f"raise {self.value(s.value)}")

    def _s_Try(self, s: ast.Try) -> None:
        self.emit("try:")
        self.sub_statement(s.body)
        for c in s.catches:
            caught = self.type_value(c.type) if c.type is not None else "Exception"
            with self.nested_scope():
                if c.name is not None:
                    self.scope.declare(c.name, self.quiet_type(c.type) if c.type else Exception)
                    self.emit(f"except {caught} as {py_name(c.name)}:")
                else:
                    self.emit(f"except {caught}:")
                self.sub_statement(c.body)
        if s.final is not None:
            self.emit("finally:")
            self.sub_statement(s.final)

    # --- assignment ---

    def assign_statement(self, e: ast.Assign) -> None:
        if e.op == "=":
            targets = [e.target]
            value = e.value
            while isinstance(value, ast.Assign) and value.op == "=":
                targets.append(value.target)
                value = value.value
            texts = [self.target(t) for t in targets]
            val = self.initializer(value, self.static_type(targets[0]), None)
            self.emit(" = ".join(texts + [val]))
            return
        target = self.target(e.target)
        val = self.value(e.value)
        op = e.op[:-1]
        if op in ("+", "/", "%"):
            self.emit(f"{target} = {self.binop(op, target, val, e.target, e.value)}")
        else:
            self.emit(f"{target} {e.op} {val}")

    def target(self, t: ast.Expr) -> str:
        """Python assignment target for `t`."""
        if isinstance(t, ast.Name):
            found, _ = self.scope.lookup(t.id)
            if found:
                return py_name(t.id)
            if t.id in self.fields or (self.base is not None and hasattr(self.base, t.id)):
                return self.member_owner(t) + "." + t.id
            if self.is_bound(t.id):
                self.error(BAD_ASSIGNMENT_TARGET,
                           "The left-hand side of an assignment must be a variable, property or indexer", t)
            else:
                self.unknown_name(t)
            return py_name(t.id)
        if isinstance(t, ast.Member):
            if keyword.iskeyword(t.name):
                self.error(UNSUPPORTED, f"member name '{t.name}' cannot be assigned", t)
            return f"{self.value(t.target)}.{t.name}"
        if isinstance(t, ast.Index):
            return f"{self.value(t.target)}[{self.index_key(t)}]"
        self.error(BAD_ASSIGNMENT_TARGET,
                   "The left-hand side of an assignment must be a variable, property or indexer", t)
        return "_"

    def index_key(self, t: ast.Index) -> str:
        keys = [self.value(a) for a in t.args]
        return keys[0] if len(keys) == 1 else "(" + ", ".join(keys) + ")"

    def initializer(self, init: ast.Expr, declared: Optional[type], typeref: Optional[ast.TypeRef]) -> str:
        text = self.value(init)
        if declared is None:
            return text
        source = self.static_type(init)
        if source is None or source is VOID or source is declared:
            return text
        if declared is float and source is int:
            return repr(float(init.value)) if isinstance(init, ast.Literal) else f"float({text})"
        if declared in _PRIMITIVES and source in _PRIMITIVES:
            shown = str(typeref) if typeref is not None else type_display(declared)
            message = f"Cannot implicitly convert type '{type_display(source)}' to '{shown}'"
            if declared is int and source is float:
                message += ". An explicit conversion exists (are you missing a cast?)"
            self.error(CONVERSION, message, init)
        return text

    # --- names ---

    def own_method(self, name: str) -> Optional[ast.MethodDecl]:
        """A method of the class being compiled; a session function `f` is stored as `_f`."""
        method = self.methods.get(name)
        if method is None and name not in self.fields:
            method = self.methods.get("_" + name)
        return method

    def is_bound(self, name: str) -> bool:
        found, _ = self.scope.lookup(name)
        return (found or self.own_method(name) is not None or name in self.fields
                or (self.base is not None and hasattr(self.base, name))
                or name in self.names or hasattr(builtins, name))

    def member_owner(self, node: ast.Node) -> str:
        assert self.cls is not None
        return self.cls.name if self.static_context else "self"

    def unknown_name(self, e: ast.Name) -> None:
        self.error(UNKNOWN_NAME, f"The name '{e.id}' does not exist in the current context", e)

    def name_ref(self, e: ast.Name) -> str:
        found, _ = self.scope.lookup(e.id)
        if found:
            return py_name(e.id)
        member = self.own_method(e.id) or self.fields.get(e.id)
        if member is not None:
            if "static" in member.modifiers or isinstance(member, ast.FieldDecl) and "const" in member.modifiers:
                assert self.cls is not None
                return f"{self.cls.name}.{member.name}"
            if self.static_context:
                self.error("SH0120", f"An object reference is required for the non-static member '{e.id}'", e)
            return "self." + member.name
        if self.base is not None and hasattr(self.base, e.id):
            return self.member_owner(e) + "." + e.id
        if e.id in self.names:
            return e.id if not keyword.iskeyword(e.id) else self.ref(e.id, self.names[e.id])
        if hasattr(builtins, e.id):
            return e.id
        found_type = WELL_KNOWN_TYPES.get(e.id) or self.resolve_type(e.id)
        if found_type is not None:
            return self.ref(e.id, found_type)
        self.unknown_name(e)
        return py_name(e.id)

    def dotted_parts(self, e: ast.Expr) -> Optional[list[str]]:
        if isinstance(e, ast.Name):
            return [e.id]
        if isinstance(e, ast.Member):
            head = self.dotted_parts(e.target)
            return head + [e.name] if head is not None else None
        return None

    # --- expressions ---

    def value(self, e: ast.Expr) -> str:
        """Expression text in a context that needs a value."""
        text = self.expr(e)
        if isinstance(e, ast.Call) and self.static_type(e) is VOID:
            self.error(CONVERSION, "Cannot implicitly convert type 'void' to 'object'", e)
        return text

    def expr(self, e: ast.Expr) -> str:
        return getattr(self, "_e_" + type(e).__name__)(e)

    def _e_Literal(self, e: ast.Literal) -> str:
        if e.kind == "null":
            return "None"
        return repr(e.value)

    def _e_Name(self, e: ast.Name) -> str:
        return self.name_ref(e)

    def _e_This(self, e: ast.This) -> str:
        if self.static_context:
            self.error("SH0026", "Keyword 'this' is not valid in a static member", e)
        return "self"

    def _e_Member(self, e: ast.Member) -> str:
        parts = self.dotted_parts(e)
        if parts is not None and not self.is_bound(parts[0]):
            for k in range(len(parts), 0, -1):
                prefix = ".".join(parts[:k])
                obj = WELL_KNOWN_TYPES.get(prefix) or self.resolve_type(prefix) or sys.modules.get(prefix)
                if obj is not None:
                    return self.ref(prefix, obj) + "".join(f".{p}" for p in parts[k:])
            self.unknown_name(ast.Name(parts[0], line=e.line, column=e.column))
            return ".".join(parts)
        target = self.value(e.target)
        owner = self.static_type(e.target)
        if isinstance(owner, type) and getattr(owner, "__shard_unit__", False) and not hasattr(owner, e.name):
            self.error(NO_MEMBER, f"'{owner.__name__}' does not contain a definition for '{e.name}'", e)
        if keyword.iskeyword(e.name):
            return f"getattr({target}, {e.name!r})"
        return f"{target}.{e.name}"

    def _e_Index(self, e: ast.Index) -> str:
        return f"{self.value(e.target)}[{self.index_key(e)}]"

    def _e_Call(self, e: ast.Call) -> str:
        args = ", ".join(self.value(a) for a in e.args)
        return f"{self.expr(e.callee)}({args})"

    def _e_Unary(self, e: ast.Unary) -> str:
        operand = self.value(e.operand)
        if e.op == "!":
            return f"(not {operand})"
        return f"({e.op}{operand})"

    def binop(self, op: str, left: str, right: str, lnode: ast.Expr, rnode: ast.Expr) -> str:
        if op == "&&":
            return f"({left} and {right})"
        if op == "||":
            return f"({left} or {right})"
        if op == "??":
            return f"__rt__.coalesce({left}, lambda: {right})"
        if op == "/":
            return f"__rt__.div({left}, {right})"
        if op == "%":
            return f"__rt__.mod({left}, {right})"
        if op == "+":
            lt, rt = self.static_type(lnode), self.static_type(rnode)
            if lt in (int, float) and rt in (int, float):
                return f"({left} + {right})"
            return f"__rt__.add({left}, {right})"
        if op in ("==", "!="):
            test = "is" if op == "==" else "is not"
            if isinstance(rnode, ast.Literal) and rnode.kind == "null":
                return f"({left} {test} None)"
            if isinstance(lnode, ast.Literal) and lnode.kind == "null":
                return f"({right} {test} None)"
        return f"({left} {op} {right})"

    def _e_Binary(self, e: ast.Binary) -> str:
        return self.binop(e.op, self.value(e.left), self.value(e.right), e.left, e.right)

    def _e_Conditional(self, e: ast.Conditional) -> str:
        return f"({self.value(e.then)} if {self.value(e.cond)} else {self.value(e.orelse)})"

    def _e_Assign(self, e: ast.Assign) -> str:
        val = self.value(e.value)
        if e.op != "=":
            current = self.expr(e.target)
            val = self.binop(e.op[:-1], current, val, e.target, e.value)
        return self.store(e.target, val)

    def store(self, t: ast.Expr, val: str) -> str:
        """An expression that assigns `val` to `t` and yields the assigned value."""
        if isinstance(t, ast.Name):
            found, _ = self.scope.lookup(t.id)
            if found:
                return f"({py_name(t.id)} := {val})"
            if t.id in self.fields or (self.base is not None and hasattr(self.base, t.id)):
                return f"__rt__.set_attr({self.member_owner(t)}, {t.id!r}, {val})"
            self.target(t)
            return val
        if isinstance(t, ast.Member):
            return f"__rt__.set_attr({self.value(t.target)}, {t.name!r}, {val})"
        if isinstance(t, ast.Index):
            return f"__rt__.set_item({self.value(t.target)}, {self.index_key(t)}, {val})"
        self.target(t)
        return val

    def _e_IncDec(self, e: ast.IncDec) -> str:
        delta = "1" if e.op == "++" else "-1"
        t = e.target
        if isinstance(t, ast.Name):
            found, _ = self.scope.lookup(t.id)
            if found:
                n = py_name(t.id)
                return f"({n} := {n} + {delta})" if e.prefix else f"(({n} := {n} + {delta}) - {delta})"
            if t.id in self.fields or (self.base is not None and hasattr(self.base, t.id)):
                return f"__rt__.incr_attr({self.member_owner(t)}, {t.id!r}, {delta}, {not e.prefix})"
        if isinstance(t, ast.Member):
            return f"__rt__.incr_attr({self.value(t.target)}, {t.name!r}, {delta}, {not e.prefix})"
        if isinstance(t, ast.Index):
            return f"__rt__.incr_item({self.value(t.target)}, {self.index_key(t)}, {delta}, {not e.prefix})"
        self.error(BAD_ASSIGNMENT_TARGET,
                   "The operand of an increment or decrement operator must be a variable, property or indexer", e)
        return self.expr(t)

    def _e_Cast(self, e: ast.Cast) -> str:
        operand = self.value(e.operand)
        t = e.type
        if t.name == "char" and not t.rank:
            return f"__rt__.to_char({operand})"
        return f"__rt__.cast({self.type_value(t)}, {operand})"

    def _e_IsType(self, e: ast.IsType) -> str:
        return f"isinstance({self.value(e.operand)}, {self.type_value(e.type)})"

    def _e_AsType(self, e: ast.AsType) -> str:
        return f"__rt__.as_type({self.value(e.operand)}, {self.type_value(e.type)})"

    def _e_New(self, e: ast.New) -> str:
        args = ", ".join(self.value(a) for a in e.args)
        return f"{self.type_value(e.type)}({args})"

    def _e_NewArray(self, e: ast.NewArray) -> str:
        element = self.array_element(e)
        element_text = "None"
        if element is not None:
            element_text = self.ref(f"{element.__module__}.{element.__qualname__}", element)
        if e.items is not None:
            items = ", ".join(self.value(i) for i in e.items)
            return f"__rt__.array({element_text}, [{items}])"
        return f"__rt__.new_array({self.default_for(element)}, {self.value(e.size)}, {element_text})"

    def array_element(self, e: ast.NewArray) -> Optional[type]:
        """The declared element type, or for `new[]` the one static type all items share."""
        if e.type is not None:
            return self.type_object(e.type)
        kinds = {self.static_type(i) for i in e.items or ()}
        if len(kinds) == 1:
            only = kinds.pop()
            if isinstance(only, type):
                return only
        return None

    def _e_TypeOf(self, e: ast.TypeOf) -> str:
        return self.type_value(e.type)

    # --- static types ---

    def static_type(self, e: Optional[ast.Expr]) -> Any:
        """Python type of `e` when evident, VOID for a call to a void method, else None."""
        if e is None:
            return None
        if isinstance(e, ast.Literal):
            return _LITERAL_TYPES.get(e.kind)
        if isinstance(e, ast.Name):
            found, static = self.scope.lookup(e.id)
            if found:
                return static
            f = self.fields.get(e.id)
            return self.quiet_type(f.type) if f is not None and not f.type.is_var else None
        if isinstance(e, (ast.Cast, ast.AsType)):
            return str if e.type.name == "char" and not e.type.rank else self.quiet_type(e.type)
        if isinstance(e, ast.New):
            return self.quiet_type(e.type)
        if isinstance(e, ast.NewArray):
            return list
        if isinstance(e, ast.IsType):
            return bool
        if isinstance(e, ast.TypeOf):
            return type
        if isinstance(e, ast.Assign):
            return self.static_type(e.value)
        if isinstance(e, ast.Unary):
            return bool if e.op == "!" else self.static_type(e.operand)
        if isinstance(e, ast.Conditional):
            then = self.static_type(e.then)
            return then if then == self.static_type(e.orelse) else None
        if isinstance(e, ast.Binary):
            return self.binary_type(e)
        if isinstance(e, ast.Call):
            return self.call_type(e)
        return None

    def binary_type(self, e: ast.Binary) -> Any:
        if e.op in _COMPARISON:
            return bool
        if e.op not in _ARITHMETIC:
            return None
        lt, rt = self.static_type(e.left), self.static_type(e.right)
        if e.op == "+" and str in (lt, rt):
            return str
        if lt is int and rt is int:
            return int
        if lt in (int, float) and rt in (int, float):
            return float
        return None

    def call_type(self, e: ast.Call) -> Any:
        callee = e.callee
        if isinstance(callee, ast.Name):
            name = callee.id
            found, _ = self.scope.lookup(name)
            if found:
                return None
            method = self.own_method(name)
            if method is not None:
                return VOID if method.return_type.is_void else self.quiet_type(method.return_type)
            if self.base is not None and hasattr(self.base, name):
                return VOID if returns_none(inspect.getattr_static(self.base, name)) else None
            obj = self.names.get(name, getattr(builtins, name, None))
            if isinstance(obj, type):
                return obj
            if obj is not None:
                return VOID if returns_none(obj) else None
            return None
        if isinstance(callee, ast.Member):
            owner = self.static_type(callee.target)
            if isinstance(owner, type):
                try:
                    attr = inspect.getattr_static(owner, callee.name)
                except AttributeError:
                    return None
                return VOID if returns_none(attr) else None
        return None
