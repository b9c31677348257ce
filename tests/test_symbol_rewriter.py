import pytest

from shard.rewrite.symbols import SymbolRewriter, is_assignment_target, unescaped_quotes
from shard.types.environment import VariableEnvironment


def _type_name(value):
    return {int: "int", str: "string"}.get(type(value))


@pytest.fixture
def env():
    e = VariableEnvironment()
    e.define("x", 5)
    e.define("s", "text")
    return e


@pytest.fixture
def sigil(env):
    return SymbolRewriter(env, _type_name)


@pytest.fixture
def declared(env):
    return SymbolRewriter(env, _type_name, must_declare=True)


@pytest.mark.parametrize(
    "source,expected,assigned",
    [
        ("$x*2", '((int)V["x"])*2', False),
        ("$x = 3", 'V["x"] = 3', True),
        ("$x == 3", '((int)V["x"]) == 3', False),
        ("$y = $x + 1", 'V["y"] = ((int)V["x"]) + 1', True),
        ("$s.Length", '((string)V["s"]).Length', False),
        ("${my var} = 1", 'V["my var"] = 1', True),
        ("$nope", 'V["nope"]', False),
        ("print($x)", 'print(((int)V["x"]))', False),
    ],
)
def test_sigil_mode(sigil, source, expected, assigned):
    result = sigil.rewrite(source)
    assert result.text == expected
    assert result.was_assignment is assigned


def test_sigil_inside_string_literal_is_left_alone(sigil):
    assert sigil.rewrite('print("$x")').text == 'print("$x")'
    assert sigil.rewrite('print("cost: " + $x)').text == 'print("cost: " + ((int)V["x"]))'


def test_declared_mode_rewrites_known_names_only(declared):
    assert declared.rewrite("x + y").text == '((int)V["x"]) + y'


def test_declared_mode_declaration(declared):
    result = declared.rewrite("var z = x;")
    assert result.text == 'V["z"] = ((int)V["x"]);'
    assert result.was_assignment
    assert result.declared == ["z"]


def test_declared_mode_skips_member_access(declared):
    assert declared.rewrite("obj.x").text == "obj.x"


def test_toggling_mode(env):
    rw = SymbolRewriter(env, _type_name)
    assert rw.rewrite("x").text == "x"
    rw.must_declare = True
    assert rw.rewrite("x").text == '((int)V["x"])'


def test_helpers():
    assert unescaped_quotes('a "b\\" c"') == 2
    assert is_assignment_target("x = 1", 1)
    assert is_assignment_target("x += 1", 1) is False
    assert is_assignment_target("x == 1", 1) is False
