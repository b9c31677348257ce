"""Syntax tree of the fragment dialect."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(kw_only=True)
class Node:
    line: int = field(default=0, compare=False, repr=False)
    column: int = field(default=0, compare=False, repr=False)


# --- types and declarations ---

@dataclass
class TypeRef(Node):
    name: str
    args: list[TypeRef] = field(default_factory=list)
    rank: int = 0

    @property
    def is_var(self) -> bool:
        return self.name == "var" and not self.args and not self.rank

    @property
    def is_void(self) -> bool:
        return self.name == "void" and not self.args and not self.rank

    def __str__(self) -> str:
        text = self.name
        if self.args:
            text += "<" + ", ".join(str(a) for a in self.args) + ">"
        return text + "[]" * self.rank


@dataclass
class Param(Node):
    type: TypeRef
    name: str


@dataclass
class MethodDecl(Node):
    name: str
    return_type: TypeRef
    params: list[Param]
    body: Block
    modifiers: frozenset[str] = frozenset()

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers


@dataclass
class FieldDecl(Node):
    type: TypeRef
    name: str
    init: Optional[Expr] = None
    modifiers: frozenset[str] = frozenset()


@dataclass
class ClassDecl(Node):
    name: str
    base: Optional[TypeRef]
    members: list[MethodDecl | FieldDecl]


@dataclass
class Unit(Node):
    usings: list[str]
    cls: ClassDecl


# --- statements ---

class Stmt(Node):
    pass


@dataclass
class Block(Stmt):
    body: list[Stmt]


@dataclass
class LocalDecl(Stmt):
    type: TypeRef
    declarators: list[tuple[str, Optional[Expr]]]


@dataclass
class ExprStmt(Stmt):
    expr: Expr


@dataclass
class If(Stmt):
    cond: Expr
    then: Stmt
    orelse: Optional[Stmt] = None


@dataclass
class While(Stmt):
    cond: Expr
    body: Stmt


@dataclass
class DoWhile(Stmt):
    body: Stmt
    cond: Expr


@dataclass
class For(Stmt):
    init: list[Stmt]
    cond: Optional[Expr]
    update: list[Expr]
    body: Stmt


@dataclass
class Foreach(Stmt):
    type: TypeRef
    name: str
    iterable: Expr
    body: Stmt


@dataclass
class SwitchSection(Node):
    labels: list[Optional[Expr]]  # None is 'default'
    body: list[Stmt]


@dataclass
class Switch(Stmt):
    subject: Expr
    sections: list[SwitchSection]


@dataclass
class Return(Stmt):
    value: Optional[Expr] = None


@dataclass
class Break(Stmt):
    pass


@dataclass
class Continue(Stmt):
    pass


@dataclass
class Throw(Stmt):
    value: Optional[Expr] = None


@dataclass
class Catch(Node):
    type: Optional[TypeRef]
    name: Optional[str]
    body: Block


@dataclass
class Try(Stmt):
    body: Block
    catches: list[Catch]
    final: Optional[Block] = None


@dataclass
class Empty(Stmt):
    pass


# --- expressions ---

class Expr(Node):
    pass


@dataclass
class Literal(Expr):
    value: Any
    kind: str  # 'int', 'real', 'string', 'char', 'bool' or 'null'


@dataclass
class Name(Expr):
    id: str


@dataclass
class This(Expr):
    pass


@dataclass
class Member(Expr):
    target: Expr
    name: str


@dataclass
class Index(Expr):
    target: Expr
    args: list[Expr]


@dataclass
class Call(Expr):
    callee: Expr
    args: list[Expr]


@dataclass
class Unary(Expr):
    op: str
    operand: Expr


@dataclass
class Binary(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass
class Conditional(Expr):
    cond: Expr
    then: Expr
    orelse: Expr


@dataclass
class Assign(Expr):
    op: str  # '=', '+=', ...
    target: Expr
    value: Expr


@dataclass
class IncDec(Expr):
    op: str  # '++' or '--'
    target: Expr
    prefix: bool


@dataclass
class Cast(Expr):
    type: TypeRef
    operand: Expr


@dataclass
class IsType(Expr):
    operand: Expr
    type: TypeRef


@dataclass
class AsType(Expr):
    operand: Expr
    type: TypeRef


@dataclass
class New(Expr):
    type: TypeRef
    args: list[Expr]


@dataclass
class NewArray(Expr):
    type: Optional[TypeRef]
    size: Optional[Expr]
    items: Optional[list[Expr]]


@dataclass
class TypeOf(Expr):
    type: TypeRef
