"""
  Line grammars for console input.

A tiny cursor (Scanner) plus the recognizers built on it:

- using directives:       using collections.abc;
- function definitions:   int square(int x) {
- console directives:     /name rest of line
- macro definitions:      #def NAME template   |   #def NAME(a, b) template
- identifiers:            the word-boundary identifier scan macro expansion uses
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from shard.errors import ShardSyntaxError

DEFINE_DIRECTIVE = "#def"

# Leading words that open a statement, never a function's return type
_NOT_RETURN_TYPES = frozenset({
    "else", "new", "return", "throw", "case", "goto", "await", "yield", "lock",
    "using", "if", "while", "for", "foreach", "switch", "do", "catch",
})


def is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def is_ident_start(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


class Scanner:
    """Cursor over a single piece of text."""

    __slots__ = ("text", "pos")

    def __init__(self, text: str, pos: int = 0):
        self.text = text
        self.pos = pos

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.text[i] if i < len(self.text) else ""

    def skip_spaces(self) -> int:
        start = self.pos
        while not self.at_end() and self.text[self.pos].isspace():
            self.pos += 1
        return self.pos - start

    def expect(self, ch: str) -> bool:
        if self.peek() == ch:
            self.pos += 1
            return True
        return False

    def word(self) -> str | None:
        start = self.pos
        while not self.at_end() and is_word_char(self.text[self.pos]):
            self.pos += 1
        return self.text[start:self.pos] or None

    def identifier(self, letters_only: bool = False) -> str | None:
        ch = self.peek()
        if not ch or not is_ident_start(ch) or (letters_only and ch == "_"):
            return None
        return self.word()

    def dotted_name(self) -> str | None:
        start = self.pos
        if self.identifier() is None:
            return None
        while self.peek() == "." and is_ident_start(self.peek(1)):
            self.pos += 1
            self.word()
        return self.text[start:self.pos]

    def rest(self) -> str:
        return self.text[self.pos:]


@dataclass(frozen=True)
class Identifier:
    text: str
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def find_identifier(text: str, start: int = 0) -> Identifier | None:
    """First identifier at or after `start` that begins on a word boundary."""
    i = max(start, 0)
    n = len(text)
    while i < n:
        ch = text[i]
        if is_ident_start(ch) and (i == 0 or not is_word_char(text[i - 1])):
            j = i + 1
            while j < n and is_word_char(text[j]):
                j += 1
            return Identifier(text[i:j], i)
        i += 1
    return None


def iter_identifiers(text: str) -> Iterator[Identifier]:
    pos = 0
    while (ident := find_identifier(text, pos)) is not None:
        yield ident
        pos = ident.end


def match_using_directive(line: str) -> str | None:
    """Namespace named by `using ns;`, or None when the line is anything else."""
    s = Scanner(line)
    s.skip_spaces()
    if s.word() != "using" or s.skip_spaces() == 0:
        return None
    ns = s.dotted_name()
    if ns is None:
        return None
    s.skip_spaces()
    s.expect(";")
    s.skip_spaces()
    return ns if s.at_end() else None


@dataclass(frozen=True)
class FunctionHeader:
    return_type: str
    name: str
    name_index: int


def match_function_definition(code: str) -> FunctionHeader | None:
    """
    Recognize `ReturnType name(params) {` at the start of a fragment.

    The parameter list may span lines; the opening brace must follow the
    closing parenthesis after optional whitespace.
    """
    s = Scanner(code)
    s.skip_spaces()
    return_type = s.identifier(letters_only=True)
    if return_type is None or return_type in _NOT_RETURN_TYPES:
        return None
    if s.skip_spaces() == 0:
        return None
    name_index = s.pos
    name = s.identifier(letters_only=True)
    if name is None:
        return None
    s.skip_spaces()
    if not s.expect("("):
        return None
    close = code.find(")", s.pos)
    while close != -1:
        after = Scanner(code, close + 1)
        after.skip_spaces()
        if after.peek() == "{":
            return FunctionHeader(return_type, name, name_index)
        close = code.find(")", close + 1)
    return None


def split_command(line: str) -> tuple[str, str] | None:
    """Split `/name args` into (name, args); None when no directive name follows."""
    s = Scanner(line)
    while not s.at_end() and not is_word_char(s.peek()):
        s.pos += 1
    name = s.word()
    if name is None:
        return None
    if not s.at_end() and not s.peek().isspace():
        return None
    return name, s.rest().strip()


def match_define_directive(line: str) -> tuple[str, list[str] | None, str] | None:
    """
    Parse `#def NAME template` or `#def NAME(a, b) template`.

    Returns (name, params, template), params being None for a plain macro, or
    None when the line is not a definition. Raises ShardSyntaxError for a
    definition that has no name or no template.
    """
    s = Scanner(line)
    s.skip_spaces()
    if not line.startswith(DEFINE_DIRECTIVE, s.pos):
        return None
    s.pos += len(DEFINE_DIRECTIVE)
    if s.skip_spaces() == 0:
        return None
    name = s.word()
    if name is None:
        raise ShardSyntaxError("macro definition needs a name", column=s.pos)
    params: list[str] | None = None
    if s.expect("("):
        close = line.find(")", s.pos)
        if close == -1:
            raise ShardSyntaxError(f"unterminated parameter list in definition of '{name}'", column=s.pos)
        inner = line[s.pos:close].strip()
        params = [p.strip() for p in inner.split(",")] if inner else []
        s.pos = close + 1
    if s.skip_spaces() == 0 or s.at_end():
        raise ShardSyntaxError(f"definition of '{name}' has no replacement text", column=s.pos)
    return name, params, s.rest()
