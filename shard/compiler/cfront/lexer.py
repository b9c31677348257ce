from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from shard.errors import ShardSyntaxError


TOKEN_RE = re.compile(
    r"(?P<ws>\s+)"
    r"|(?P<comment>//[^\n]*|/\*.*?(?:\*/|\Z))"  # line and block comments
    r"|(?P<real>(?:\d+\.\d+(?:[eE][+-]?\d+)?|\d+[eE][+-]?\d+)[fFdDmM]?|\d+[fFdDmM])"
    r"|(?P<int>0[xX][0-9A-Fa-f]+[uUlL]*|\d+[uUlL]*)"
    r'|(?P<string>@"(?:""|[^"])*"|"(?:\\.|[^\\"\n])*")'  # verbatim and regular strings
    r"|(?P<char>'(?:\\.[0-9A-Fa-f]*|[^\\'\n])')"
    r"|(?P<ident>[A-Za-z_]\w*)"
    r"|(?P<op><<=|>>=|\?\?|=>|\+\+|--|&&|\|\||==|!=|<=|>=|\+=|-=|\*=|/=|%=|&=|\|=|\^="
    r"|<<|>>|[-+*/%<>=!~&|^?:;,.(){}\[\]])",
    re.DOTALL,
)

KEYWORDS = frozenset({
    "if", "else", "while", "do", "for", "foreach", "in", "return", "break", "continue",
    "throw", "try", "catch", "finally", "new", "typeof", "this", "true", "false", "null",
    "class", "using", "public", "private", "protected", "internal", "static", "override",
    "virtual", "readonly", "const", "is", "as", "switch", "case", "default",
})

MODIFIERS = frozenset({
    "public", "private", "protected", "internal", "static", "override", "virtual", "readonly", "const",
})

SIMPLE_ESCAPES = {
    "'": "'", '"': '"', "\\": "\\", "0": "\0", "a": "\a", "b": "\b",
    "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v",
}


@dataclass(frozen=True)
class Token:
    kind: str  # 'int', 'real', 'string', 'char', 'ident', 'keyword', 'op' or 'eof'
    text: str
    line: int
    column: int

    def is_op(self, *ops: str) -> bool:
        return self.kind == "op" and self.text in ops

    def is_keyword(self, *words: str) -> bool:
        return self.kind == "keyword" and self.text in words


def lex(source: str) -> Iterator[Token]:
    """Token generator; always ends with a single 'eof' token."""
    pos = 0
    line = 1
    line_start = 0
    n = len(source)
    while pos < n:
        match = TOKEN_RE.match(source, pos)
        column = pos - line_start + 1
        if not match:
            if source[pos] in "\"'":
                raise ShardSyntaxError("Newline in constant", line, column)
            raise ShardSyntaxError(f"Unexpected character '{source[pos]}'", line, column)
        kind = match.lastgroup
        text = match.group()
        if kind == "comment" and text.startswith("/*") and (len(text) < 4 or not text.endswith("*/")):
            raise ShardSyntaxError("End-of-file found, '*/' expected", line, column)
        if kind not in ("ws", "comment"):
            if kind == "ident" and text in KEYWORDS:
                kind = "keyword"
            yield Token(kind, text, line, column)
        newlines = text.count("\n")
        if newlines:
            line += newlines
            line_start = pos + text.rindex("\n") + 1
        pos = match.end()
    yield Token("eof", "", line, pos - line_start + 1)


def decode_string(token: Token) -> str:
    text = token.text
    if text.startswith("@"):
        return text[2:-1].replace('""', '"')
    return _unescape(text[1:-1], token)


def decode_char(token: Token) -> str:
    value = _unescape(token.text[1:-1], token)
    if len(value) != 1:
        raise ShardSyntaxError("Too many characters in character literal", token.line, token.column)
    return value


def decode_int(token: Token) -> int:
    text = token.text.rstrip("uUlL")
    return int(text, 16) if text[:2] in ("0x", "0X") else int(text)


def decode_real(token: Token) -> float:
    return float(token.text.rstrip("fFdDmM"))


def _unescape(body: str, token: Token) -> str:
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        esc = body[i + 1] if i + 1 < len(body) else ""
        if esc in SIMPLE_ESCAPES:
            out.append(SIMPLE_ESCAPES[esc])
            i += 2
        elif esc in ("u", "U", "x"):
            width = {"u": 4, "U": 8}.get(esc)
            j = i + 2
            limit = j + (width or 4)
            while j < min(limit, len(body)) and body[j] in "0123456789abcdefABCDEF":
                j += 1
            digits = body[i + 2:j]
            if not digits or (width and len(digits) != width):
                raise ShardSyntaxError("Unrecognized escape sequence", token.line, token.column)
            out.append(chr(int(digits, 16)))
            i = j
        else:
            raise ShardSyntaxError("Unrecognized escape sequence", token.line, token.column)
    return "".join(out)
