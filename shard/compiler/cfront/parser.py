"""
  Parser for the fragment dialect.

Recursive descent over a TokenStream, with C precedence for operators.
Statement-level declarations and parenthesized casts are recognized by
speculative parsing with mark/reset.
"""

from __future__ import annotations

from typing import Iterable, Optional

from shard.compiler.backend import INVALID_TERM, SYNTAX
from shard.compiler.cfront import ast
from shard.compiler.cfront.lexer import (
    MODIFIERS, Token, decode_char, decode_int, decode_real, decode_string, lex,
)
from shard.errors import ShardSyntaxError


ASSIGN_OPS = frozenset({"=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>="})

# Loosest to tightest; 'is' and 'as' bind with the relational operators
BINARY_LEVELS: list[frozenset[str]] = [
    frozenset({"||"}),
    frozenset({"&&"}),
    frozenset({"|"}),
    frozenset({"^"}),
    frozenset({"&"}),
    frozenset({"==", "!="}),
    frozenset({"<", ">", "<=", ">="}),
    frozenset({"<<", ">>"}),
    frozenset({"+", "-"}),
    frozenset({"*", "/", "%"}),
]
_RELATIONAL = 6

KEYWORD_TYPES = frozenset({
    "int", "long", "short", "byte", "sbyte", "uint", "ulong", "ushort",
    "double", "float", "decimal", "string", "char", "bool", "object",
})

_CAST_FOLLOWERS = frozenset({"ident", "int", "real", "string", "char"})


class ParseError(ShardSyntaxError):
    def __init__(self, message: str, token: Token, code: str = SYNTAX):
        super().__init__(message, token.line, token.column)
        self.code = code


class TokenStream:
    def __init__(self, tokens: Iterable[Token]):
        self.tokens: list[Token] = list(tokens)
        self.pos = 0

    def peek(self, k: int = 0) -> Token:
        return self.tokens[min(self.pos + k, len(self.tokens) - 1)]

    def advance(self) -> Token:
        tok = self.peek()
        if tok.kind != "eof":
            self.pos += 1
        return tok

    def at_op(self, *ops: str) -> bool:
        return self.peek().is_op(*ops)

    def at_keyword(self, *words: str) -> bool:
        return self.peek().is_keyword(*words)

    def accept_op(self, op: str) -> bool:
        if self.at_op(op):
            self.pos += 1
            return True
        return False

    def accept_keyword(self, word: str) -> bool:
        if self.at_keyword(word):
            self.pos += 1
            return True
        return False

    def expect_op(self, op: str) -> Token:
        if not self.at_op(op):
            raise ParseError(f"{op} expected", self.peek())
        return self.advance()

    def expect_keyword(self, word: str) -> Token:
        if not self.at_keyword(word):
            raise ParseError(f"{word} expected", self.peek())
        return self.advance()

    def expect_ident(self) -> Token:
        tok = self.peek()
        if tok.kind != "ident":
            raise ParseError("Identifier expected", tok)
        return self.advance()

    def split_shift(self) -> None:
        """Split a '>>' token into two '>' so nested generic arguments can close."""
        tok = self.peek()
        if tok.is_op(">>"):
            first = Token("op", ">", tok.line, tok.column)
            second = Token("op", ">", tok.line, tok.column + 1)
            self.tokens[self.pos:self.pos + 1] = [first, second]


class Parser:
    def __init__(self, tokens: TokenStream):
        self.ts = tokens

    # --- units and members ---

    def unit(self) -> ast.Unit:
        start = self.ts.peek()
        usings: list[str] = []
        while self.ts.accept_keyword("using"):
            usings.append(self.dotted_name())
            self.ts.expect_op(";")
        cls = self.class_decl()
        if self.ts.peek().kind != "eof":
            raise ParseError("Type or namespace definition, or end-of-file expected", self.ts.peek())
        return ast.Unit(usings, cls, line=start.line, column=start.column)

    def dotted_name(self) -> str:
        parts = [self.ts.expect_ident().text]
        while self.ts.accept_op("."):
            parts.append(self.ts.expect_ident().text)
        return ".".join(parts)

    def modifiers(self) -> frozenset[str]:
        found = set()
        while self.ts.peek().kind == "keyword" and self.ts.peek().text in MODIFIERS:
            found.add(self.ts.advance().text)
        return frozenset(found)

    def class_decl(self) -> ast.ClassDecl:
        self.modifiers()
        tok = self.ts.expect_keyword("class")
        name = self.ts.expect_ident().text
        base = None
        if self.ts.accept_op(":"):
            base = self.required_type()
        self.ts.expect_op("{")
        members: list[ast.MethodDecl | ast.FieldDecl] = []
        while not self.ts.at_op("}"):
            if self.ts.peek().kind == "eof":
                raise ParseError("} expected", self.ts.peek())
            members.append(self.member())
        self.ts.expect_op("}")
        return ast.ClassDecl(name, base, members, line=tok.line, column=tok.column)

    def member(self) -> ast.MethodDecl | ast.FieldDecl:
        start = self.ts.peek()
        mods = self.modifiers()
        rtype = self.type_ref()
        if rtype is None:
            raise ParseError(f"Invalid token '{self.ts.peek().text}' in class member declaration", self.ts.peek())
        name = self.ts.expect_ident().text
        if self.ts.at_op("("):
            params = self.params()
            body = self.block()
            return ast.MethodDecl(name, rtype, params, body, mods, line=start.line, column=start.column)
        init = None
        if self.ts.accept_op("="):
            init = self.array_initializer() if self.ts.at_op("{") else self.expression()
        self.ts.expect_op(";")
        return ast.FieldDecl(rtype, name, init, mods, line=start.line, column=start.column)

    def params(self) -> list[ast.Param]:
        self.ts.expect_op("(")
        params: list[ast.Param] = []
        if not self.ts.at_op(")"):
            while True:
                tok = self.ts.peek()
                ptype = self.required_type()
                pname = self.ts.expect_ident().text
                params.append(ast.Param(ptype, pname, line=tok.line, column=tok.column))
                if not self.ts.accept_op(","):
                    break
        self.ts.expect_op(")")
        return params

    # --- types ---

    def type_ref(self, allow_rank: bool = True) -> Optional[ast.TypeRef]:
        tok = self.ts.peek()
        if tok.kind != "ident":
            return None
        self.ts.advance()
        name = tok.text
        while self.ts.at_op(".") and self.ts.peek(1).kind == "ident":
            self.ts.advance()
            name += "." + self.ts.advance().text
        args: list[ast.TypeRef] = []
        if self.ts.at_op("<"):
            self.ts.advance()
            while True:
                arg = self.type_ref()
                if arg is None:
                    return None
                args.append(arg)
                if not self.ts.accept_op(","):
                    break
            self.ts.split_shift()
            if not self.ts.accept_op(">"):
                return None
        rank = 0
        while allow_rank and self.ts.at_op("[") and self.ts.peek(1).is_op("]"):
            self.ts.advance()
            self.ts.advance()
            rank += 1
        return ast.TypeRef(name, args, rank, line=tok.line, column=tok.column)

    def required_type(self) -> ast.TypeRef:
        tok = self.ts.peek()
        found = self.type_ref()
        if found is None:
            raise ParseError("Type expected", tok)
        return found

    # --- statements ---

    def block(self) -> ast.Block:
        tok = self.ts.expect_op("{")
        body: list[ast.Stmt] = []
        while not self.ts.at_op("}"):
            if self.ts.peek().kind == "eof":
                raise ParseError("} expected", self.ts.peek())
            body.append(self.statement())
        self.ts.expect_op("}")
        return ast.Block(body, line=tok.line, column=tok.column)

    def statement(self) -> ast.Stmt:
        tok = self.ts.peek()
        if tok.is_op("{"):
            return self.block()
        if tok.is_op(";"):
            self.ts.advance()
            return ast.Empty(line=tok.line, column=tok.column)
        if tok.kind == "keyword":
            handler = getattr(self, f"_stmt_{tok.text}", None)
            if handler is not None:
                return handler(tok)
            if tok.text in ("else", "case", "default", "catch", "finally", "in"):
                raise ParseError(f"Invalid expression term '{tok.text}'", tok, INVALID_TERM)
        decl = self.local_decl()
        if decl is not None:
            self.ts.expect_op(";")
            return decl
        expr = self.expression()
        self.ts.expect_op(";")
        return ast.ExprStmt(expr, line=tok.line, column=tok.column)

    def local_decl(self) -> Optional[ast.LocalDecl]:
        mark = self.ts.pos
        tok = self.ts.peek()
        dtype = self.type_ref()
        if dtype is None or self.ts.peek().kind != "ident" or not self.ts.peek(1).is_op("=", ";", ","):
            self.ts.pos = mark
            return None
        declarators: list[tuple[str, Optional[ast.Expr]]] = []
        while True:
            name = self.ts.expect_ident().text
            init = None
            if self.ts.accept_op("="):
                init = self.array_initializer() if self.ts.at_op("{") else self.expression()
            declarators.append((name, init))
            if not self.ts.accept_op(","):
                break
        return ast.LocalDecl(dtype, declarators, line=tok.line, column=tok.column)

    def condition(self) -> ast.Expr:
        self.ts.expect_op("(")
        cond = self.expression()
        self.ts.expect_op(")")
        return cond

    def _stmt_if(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        cond = self.condition()
        then = self.statement()
        orelse = self.statement() if self.ts.accept_keyword("else") else None
        return ast.If(cond, then, orelse, line=tok.line, column=tok.column)

    def _stmt_while(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        cond = self.condition()
        return ast.While(cond, self.statement(), line=tok.line, column=tok.column)

    def _stmt_do(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        body = self.statement()
        self.ts.expect_keyword("while")
        cond = self.condition()
        self.ts.expect_op(";")
        return ast.DoWhile(body, cond, line=tok.line, column=tok.column)

    def _stmt_for(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        self.ts.expect_op("(")
        init: list[ast.Stmt] = []
        if not self.ts.at_op(";"):
            decl = self.local_decl()
            if decl is not None:
                init.append(decl)
            else:
                init.extend(ast.ExprStmt(e, line=e.line, column=e.column) for e in self.expression_list())
        self.ts.expect_op(";")
        cond = None if self.ts.at_op(";") else self.expression()
        self.ts.expect_op(";")
        update = [] if self.ts.at_op(")") else self.expression_list()
        self.ts.expect_op(")")
        return ast.For(init, cond, update, self.statement(), line=tok.line, column=tok.column)

    def _stmt_foreach(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        self.ts.expect_op("(")
        vtype = self.required_type()
        name = self.ts.expect_ident().text
        self.ts.expect_keyword("in")
        iterable = self.expression()
        self.ts.expect_op(")")
        return ast.Foreach(vtype, name, iterable, self.statement(), line=tok.line, column=tok.column)

    def _stmt_switch(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        subject = self.condition()
        self.ts.expect_op("{")
        sections: list[ast.SwitchSection] = []
        while not self.ts.accept_op("}"):
            start = self.ts.peek()
            labels: list[Optional[ast.Expr]] = []
            while self.ts.at_keyword("case", "default"):
                if self.ts.advance().text == "case":
                    labels.append(self.expression())
                else:
                    labels.append(None)
                self.ts.expect_op(":")
            if not labels:
                raise ParseError("case expected", start)
            body: list[ast.Stmt] = []
            while not (self.ts.at_keyword("case", "default") or self.ts.at_op("}")):
                if self.ts.peek().kind == "eof":
                    raise ParseError("} expected", self.ts.peek())
                body.append(self.statement())
            sections.append(ast.SwitchSection(labels, body, line=start.line, column=start.column))
        return ast.Switch(subject, sections, line=tok.line, column=tok.column)

    def _stmt_return(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        value = None if self.ts.at_op(";") else self.expression()
        self.ts.expect_op(";")
        return ast.Return(value, line=tok.line, column=tok.column)

    def _stmt_throw(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        value = None if self.ts.at_op(";") else self.expression()
        self.ts.expect_op(";")
        return ast.Throw(value, line=tok.line, column=tok.column)

    def _stmt_break(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        self.ts.expect_op(";")
        return ast.Break(line=tok.line, column=tok.column)

    def _stmt_continue(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        self.ts.expect_op(";")
        return ast.Continue(line=tok.line, column=tok.column)

    def _stmt_try(self, tok: Token) -> ast.Stmt:
        self.ts.advance()
        body = self.block()
        catches: list[ast.Catch] = []
        while self.ts.at_keyword("catch"):
            ctok = self.ts.advance()
            ctype = cname = None
            if self.ts.accept_op("("):
                ctype = self.required_type()
                if self.ts.peek().kind == "ident":
                    cname = self.ts.advance().text
                self.ts.expect_op(")")
            catches.append(ast.Catch(ctype, cname, self.block(), line=ctok.line, column=ctok.column))
        final = self.block() if self.ts.accept_keyword("finally") else None
        if not catches and final is None:
            raise ParseError("catch or finally expected", self.ts.peek())
        return ast.Try(body, catches, final, line=tok.line, column=tok.column)

    # --- expressions ---

    def expression_list(self) -> list[ast.Expr]:
        items = [self.expression()]
        while self.ts.accept_op(","):
            items.append(self.expression())
        return items

    def expression(self) -> ast.Expr:
        left = self.conditional()
        tok = self.ts.peek()
        if tok.kind == "op" and tok.text in ASSIGN_OPS:
            self.ts.advance()
            value = self.expression()
            return ast.Assign(tok.text, left, value, line=tok.line, column=tok.column)
        return left

    def conditional(self) -> ast.Expr:
        cond = self.coalesce()
        tok = self.ts.peek()
        if self.ts.accept_op("?"):
            then = self.expression()
            self.ts.expect_op(":")
            orelse = self.conditional()
            return ast.Conditional(cond, then, orelse, line=tok.line, column=tok.column)
        return cond

    def coalesce(self) -> ast.Expr:
        left = self.binary(0)
        tok = self.ts.peek()
        if self.ts.accept_op("??"):
            right = self.coalesce()
            return ast.Binary("??", left, right, line=tok.line, column=tok.column)
        return left

    def binary(self, level: int) -> ast.Expr:
        if level == len(BINARY_LEVELS):
            return self.unary()
        left = self.binary(level + 1)
        while True:
            tok = self.ts.peek()
            if level == _RELATIONAL and tok.is_keyword("is", "as"):
                self.ts.advance()
                target = self.required_type()
                node = ast.IsType if tok.text == "is" else ast.AsType
                left = node(left, target, line=tok.line, column=tok.column)
            elif tok.kind == "op" and tok.text in BINARY_LEVELS[level]:
                self.ts.advance()
                right = self.binary(level + 1)
                left = ast.Binary(tok.text, left, right, line=tok.line, column=tok.column)
            else:
                return left

    def unary(self) -> ast.Expr:
        tok = self.ts.peek()
        if tok.is_op("-", "+", "!", "~"):
            self.ts.advance()
            return ast.Unary(tok.text, self.unary(), line=tok.line, column=tok.column)
        if tok.is_op("++", "--"):
            self.ts.advance()
            return ast.IncDec(tok.text, self.unary(), True, line=tok.line, column=tok.column)
        if tok.is_op("("):
            cast = self.cast()
            if cast is not None:
                return cast
        return self.postfix(self.primary())

    def cast(self) -> Optional[ast.Expr]:
        mark = self.ts.pos
        tok = self.ts.advance()
        target = self.type_ref()
        if target is None or not self.ts.at_op(")"):
            self.ts.pos = mark
            return None
        self.ts.advance()
        nxt = self.ts.peek()
        keyword_type = target.name in KEYWORD_TYPES and not target.args
        if keyword_type or nxt.kind in _CAST_FOLLOWERS or nxt.is_op("(", "!", "~") \
                or nxt.is_keyword("this", "new", "typeof", "true", "false", "null"):
            return ast.Cast(target, self.unary(), line=tok.line, column=tok.column)
        self.ts.pos = mark
        return None

    def postfix(self, expr: ast.Expr) -> ast.Expr:
        while True:
            tok = self.ts.peek()
            if tok.is_op("."):
                self.ts.advance()
                name = self.ts.peek()
                if name.kind not in ("ident", "keyword"):
                    raise ParseError("Identifier expected", name)
                self.ts.advance()
                expr = ast.Member(expr, name.text, line=tok.line, column=tok.column)
            elif tok.is_op("("):
                expr = ast.Call(expr, self.arguments(), line=tok.line, column=tok.column)
            elif tok.is_op("["):
                self.ts.advance()
                args = self.expression_list()
                self.ts.expect_op("]")
                expr = ast.Index(expr, args, line=tok.line, column=tok.column)
            elif tok.is_op("++", "--"):
                self.ts.advance()
                expr = ast.IncDec(tok.text, expr, False, line=tok.line, column=tok.column)
            else:
                return expr

    def arguments(self) -> list[ast.Expr]:
        self.ts.expect_op("(")
        args: list[ast.Expr] = []
        if not self.ts.at_op(")"):
            args = self.expression_list()
        self.ts.expect_op(")")
        return args

    def array_initializer(self) -> ast.NewArray:
        tok = self.ts.expect_op("{")
        items: list[ast.Expr] = []
        while not self.ts.at_op("}"):
            items.append(self.array_initializer() if self.ts.at_op("{") else self.expression())
            if not self.ts.accept_op(","):
                break
        self.ts.expect_op("}")
        return ast.NewArray(None, None, items, line=tok.line, column=tok.column)

    def primary(self) -> ast.Expr:
        tok = self.ts.peek()
        pos = dict(line=tok.line, column=tok.column)
        kind = tok.kind
        if kind == "int":
            self.ts.advance()
            return ast.Literal(decode_int(tok), "int", **pos)
        if kind == "real":
            self.ts.advance()
            return ast.Literal(decode_real(tok), "real", **pos)
        if kind == "string":
            self.ts.advance()
            return ast.Literal(decode_string(tok), "string", **pos)
        if kind == "char":
            self.ts.advance()
            return ast.Literal(decode_char(tok), "char", **pos)
        if kind == "ident":
            self.ts.advance()
            return ast.Name(tok.text, **pos)
        if tok.is_keyword("true", "false"):
            self.ts.advance()
            return ast.Literal(tok.text == "true", "bool", **pos)
        if tok.is_keyword("null"):
            self.ts.advance()
            return ast.Literal(None, "null", **pos)
        if tok.is_keyword("this"):
            self.ts.advance()
            return ast.This(**pos)
        if tok.is_keyword("typeof"):
            self.ts.advance()
            self.ts.expect_op("(")
            target = self.required_type()
            self.ts.expect_op(")")
            return ast.TypeOf(target, **pos)
        if tok.is_keyword("new"):
            self.ts.advance()
            return self.new_expression(tok)
        if tok.is_op("("):
            self.ts.advance()
            inner = self.expression()
            self.ts.expect_op(")")
            return inner
        if kind == "eof":
            raise ParseError("; expected", tok)
        raise ParseError(f"Invalid expression term '{tok.text}'", tok, INVALID_TERM)

    def new_expression(self, tok: Token) -> ast.Expr:
        pos = dict(line=tok.line, column=tok.column)
        if self.ts.at_op("["):
            self.ts.advance()
            self.ts.expect_op("]")
            return ast.NewArray(None, None, self.array_initializer().items, **pos)
        target = self.type_ref(allow_rank=False)
        if target is None:
            raise ParseError("Type expected", self.ts.peek())
        if self.ts.accept_op("["):
            if self.ts.accept_op("]"):
                while self.ts.at_op("[") and self.ts.peek(1).is_op("]"):
                    self.ts.advance()
                    self.ts.advance()
                return ast.NewArray(target, None, self.array_initializer().items, **pos)
            size = self.expression()
            self.ts.expect_op("]")
            return ast.NewArray(target, size, None, **pos)
        if self.ts.at_op("("):
            return ast.New(target, self.arguments(), **pos)
        raise ParseError("( expected", self.ts.peek())


def _parser(source: str) -> Parser:
    return Parser(TokenStream(lex(source)))


def parse_unit(source: str) -> ast.Unit:
    return _parser(source).unit()


def parse_statements(source: str) -> list[ast.Stmt]:
    p = _parser(source)
    body: list[ast.Stmt] = []
    while p.ts.peek().kind != "eof":
        body.append(p.statement())
    return body


def parse_expression(source: str) -> ast.Expr:
    p = _parser(source)
    expr = p.expression()
    if p.ts.peek().kind != "eof":
        raise ParseError("; expected", p.ts.peek())
    return expr
