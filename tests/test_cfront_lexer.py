import pytest

from shard.compiler.cfront.lexer import decode_char, decode_int, decode_real, decode_string, lex
from shard.errors import ShardSyntaxError


def _kinds(source):
    return [(t.kind, t.text) for t in lex(source)]


@pytest.mark.parametrize(
    "source,expected",
    [
        ("x = 1.5e3f;", [("ident", "x"), ("op", "="), ("real", "1.5e3f"), ("op", ";"), ("eof", "")]),
        ("a >>= 0x1F", [("ident", "a"), ("op", ">>="), ("int", "0x1F"), ("eof", "")]),
        ("if (a ?? b) return;", [
            ("keyword", "if"), ("op", "("), ("ident", "a"), ("op", "??"), ("ident", "b"),
            ("op", ")"), ("keyword", "return"), ("op", ";"), ("eof", ""),
        ]),
        ("int x // trailing\n/* block */ x++", [
            ("ident", "int"), ("ident", "x"), ("ident", "x"), ("op", "++"), ("eof", ""),
        ]),
        ("'a' \"b\" @\"c\"", [("char", "'a'"), ("string", '"b"'), ("string", '@"c"'), ("eof", "")]),
        ("", [("eof", "")]),
    ],
)
def test_token_kinds(source, expected):
    assert _kinds(source) == expected


def test_positions():
    tokens = list(lex("a\n  bb\n"))
    assert (tokens[1].text, tokens[1].line, tokens[1].column) == ("bb", 2, 3)
    assert tokens[-1].kind == "eof"


def _first(source):
    return next(iter(lex(source)))


@pytest.mark.parametrize(
    "source,value",
    [
        (r'"tab\there"', "tab\there"),
        (r'"quote\"d"', 'quote"d'),
        (r'"\u0041"', "A"),
        ('@"c:\\dir ""x"""', 'c:\\dir "x"'),
    ],
)
def test_decode_string(source, value):
    assert decode_string(_first(source)) == value


def test_decode_numbers_and_chars():
    assert decode_int(_first("0xFF")) == 255
    assert decode_int(_first("10L")) == 10
    assert decode_real(_first("2.5d")) == 2.5
    assert decode_real(_first("3f")) == 3.0
    assert decode_char(_first(r"'\n'")) == "\n"


@pytest.mark.parametrize("source", ['"open', "/* never closed", "#", r'"\q"'])
def test_lex_errors(source):
    with pytest.raises(ShardSyntaxError):
        for tok in lex(source):
            if tok.kind == "string":
                decode_string(tok)
