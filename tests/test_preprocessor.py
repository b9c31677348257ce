import pytest
from hypothesis import given, strategies as st

from shard.errors import ShardMacroError
from shard.rewrite.preprocessor import BAD_MACRO_CALL, MacroPreprocessor
from shard.types.macro_table import MacroTable


@pytest.fixture
def pp():
    p = MacroPreprocessor()
    p.process_line("#def SQ(a) ((a)*(a))")
    p.process_line("#def PI 3.14159")
    return p


def test_define_line_yields_empty_text(pp):
    assert pp.process_line("#def TWICE(x) (2*(x))") == ""
    entry = pp.lookup("TWICE")
    assert entry.params == ["x"]
    assert entry.template == "(2*(x))"


def test_plain_macro_replaces_bare_identifier(pp):
    assert pp.expand("PI * r") == "3.14159 * r"
    assert pp.expand("PIE + xPI") == "PIE + xPI"


def test_parameterized_macro(pp):
    assert pp.expand("SQ(3+1)") == "((3+1)*(3+1))"


def test_parameterized_macro_without_arguments_is_left_alone(pp):
    assert pp.expand("var f = SQ;") == "var f = SQ;"


def test_nested_brackets_do_not_split_arguments():
    p = MacroPreprocessor()
    p.process_line("#def FIRST(a, b) a")
    assert p.expand("FIRST(m[1,2], {3,4})") == "m[1,2]"
    assert p.expand("FIRST(f(1, 2), 3)") == "f(1, 2)"


def test_expansion_rescans_replacement(pp):
    pp.process_line("#def AREA(r) PI*SQ(r)")
    assert pp.expand("AREA(2)") == "3.14159*((2)*(2))"


def test_stringize_and_token_paste():
    p = MacroPreprocessor()
    p.process_line("#def STR(a) #a")
    p.process_line("#def CAT(a, b) a##b")
    assert p.expand("STR(x + 1)") == '"x + 1"'
    assert p.expand("CAT(foo,bar)") == "foobar"


@pytest.mark.parametrize("line", ["SQ(1", "SQ(1]", "SQ((1)"])
def test_badly_formed_call(pp, line):
    with pytest.raises(ShardMacroError) as info:
        pp.expand(line)
    assert str(info.value) == BAD_MACRO_CALL


def test_wrong_argument_count(pp):
    with pytest.raises(ShardMacroError):
        pp.expand("SQ(1, 2)")


def test_zero_parameter_macro():
    p = MacroPreprocessor()
    p.process_line("#def NOW() 42")
    assert p.expand("NOW() + 1") == "42 + 1"


def test_self_referential_macro_is_bounded():
    p = MacroPreprocessor()
    p.process_line("#def X X+1")
    with pytest.raises(ShardMacroError):
        p.expand("X")


def test_remove_and_shared_table():
    table = MacroTable()
    p = MacroPreprocessor(table)
    p.define("f", "$Unit1._f", unit="Unit1")
    assert "f" in table
    assert table.lookup("f").is_function
    assert not table.lookup("f").is_parameterized
    assert p.remove("f")
    assert not p.remove("f")
    assert len(table) == 0


@given(st.text(alphabet="abcxyz 0123+-*/()[]{},;.", max_size=40))
def test_expand_is_identity_without_macro_names(text):
    p = MacroPreprocessor()
    p.process_line("#def SQ(a) ((a)*(a))")
    p.process_line("#def PI 3.14159")
    assert p.expand(text) == text


@given(st.text(alphabet="abc123+-* .", max_size=20))
def test_stringize_wraps_argument_once(arg):
    p = MacroPreprocessor()
    p.process_line("#def STR(a) #a")
    assert p.expand(f"STR({arg})") == f'"{arg}"'
