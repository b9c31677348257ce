import pytest

from shard.compiler.backend import (
    BAD_ASSIGNMENT_TARGET, CONVERSION, MISSING_REFERENCE, NO_MEMBER, NOT_A_STATEMENT, SYNTAX,
    UNKNOWN_NAME, UNKNOWN_TYPE, OutputKind,
)
from shard.compiler.cfront.backend import PERSISTED_PREFIX, TRANSIENT_MODULE, CFrontCompiler
from shard.compiler.cfront.codegen import returns_none
from shard.compiler.templates import render_chunk, render_function
from shard.types.environment import VariableEnvironment

NAMESPACES = ["builtins", "collections"]
REFERENCES = ["shard.evaluation.chunk"]


def compile_chunk(body, namespaces=NAMESPACES, references=REFERENCES):
    source = render_chunk(body, namespaces)
    return CFrontCompiler().compile_from_source(source, OutputKind.TRANSIENT, references)


def run_chunk(body, **values):
    result = compile_chunk(body)
    assert result.success, [str(d) for d in result.diagnostics]
    env = VariableEnvironment()
    for name, value in values.items():
        env.define(name, value)
    result.unit.Chunk(None).Go(env)
    return env


@pytest.mark.parametrize(
    "body,expected",
    [
        ('V["_"] = 2 + 2', 4),
        ('V["_"] = -7 / 2', -3),
        ('V["_"] = -7 % 2', -1),
        ('V["_"] = 7.0 / 2', 3.5),
        ('V["_"] = "a" + 1', "a1"),
        ('V["_"] = "n: " + null', "n: "),
        ('V["_"] = (int)2.9', 2),
        ('V["_"] = (char)65', "A"),
        ('V["_"] = null ?? "fallback"', "fallback"),
        ('V["_"] = 3 > 2 && !(1 == 2)', True),
    ],
)
def test_expression_chunks(body, expected):
    assert run_chunk(body).lookup("_") == expected


def test_statements_run_against_the_environment():
    env = run_chunk(
        'for (int i = 0; i < 4; i++) { if (i == 2) continue; V["total"] = (int)V["total"] + i; }',
        total=0,
    )
    assert env.lookup("total") == 4


def test_switch_and_loops():
    body = (
        'int n = 0; string s = "";\n'
        'do { n++; } while (n < 3);\n'
        'switch (n) { case 1: case 2: s = "small"; break; default: s = "big"; break; }\n'
        'foreach (var c in "ab") { s = s + c; }\n'
        'V["_"] = s'
    )
    assert run_chunk(body).lookup("_") == "bigab"


def test_assignment_as_value():
    env = run_chunk('int a; int b = (a = 5) + 1; V["_"] = a * b')
    assert env.lookup("_") == 30


def test_increments_on_session_values():
    env = run_chunk('var xs = new int[3]; xs[1]++; ++xs[1]; V["_"] = xs')
    assert env.lookup("_") == [0, 2, 0]


def test_arrays_carry_their_element_type():
    env = run_chunk('V["a"] = new string[] {"x"}; V["b"] = new double[2]; V["c"] = new[] {true}')
    assert env.lookup("a").element_type is str
    assert env.lookup("b") == [0.0, 0.0] and env.lookup("b").element_type is float
    assert env.lookup("c").element_type is bool


def test_try_catch():
    body = (
        'try { V["_"] = (int)V["missing"]; }\n'
        'catch (Exception e) { V["_"] = "caught"; }\n'
        'finally { V["done"] = true; }'
    )
    env = run_chunk(body)
    assert env.lookup("_") == "caught" and env.lookup("done") is True


def test_module_shape():
    result = compile_chunk('V["_"] = 1')
    module = result.unit
    assert module.__name__ == TRANSIENT_MODULE
    assert module.__all__ == ["Chunk"]
    assert "class Chunk(" in module.__source__


def test_persisted_function_unit():
    source = render_function("int _sq(int x) { return x * x; }", "Unit1", NAMESPACES)
    result = CFrontCompiler().compile_from_source(source, OutputKind.PERSISTED, REFERENCES)
    assert result.success
    assert result.unit.__name__ == PERSISTED_PREFIX + "Unit1"
    assert result.unit.Unit1(None)._sq(4) == 16


def test_function_calls_itself_by_plain_name():
    source = render_function("int _fact(int n) { return n < 2 ? 1 : n * fact(n - 1); }", "Unit3", NAMESPACES)
    result = CFrontCompiler().compile_from_source(source, OutputKind.PERSISTED, REFERENCES)
    assert result.success, [str(d) for d in result.diagnostics]
    assert "self._fact(" in result.unit.__source__
    assert result.unit.Unit3(None)._fact(5) == 120


def test_void_method_is_annotated():
    source = render_function('void _hi() { Print("hi"); }', "Unit2", NAMESPACES)
    result = CFrontCompiler().compile_from_source(source, OutputKind.PERSISTED, REFERENCES)
    assert result.success
    assert returns_none(result.unit.Unit2._hi)
    assert "def _hi(self) -> None:" in result.unit.__source__


@pytest.mark.parametrize(
    "body,code",
    [
        ('V["_"] = nosuchname + 1', UNKNOWN_NAME),
        ('V["_"] = Print(1)', CONVERSION),
        ("1 + 2", NOT_A_STATEMENT),
        ('Print(1) Print(2)', SYNTAX),
        ("Frobnicator x = 1;", UNKNOWN_TYPE),
        ("int x = 1.5;", CONVERSION),
        ("len = 1;", BAD_ASSIGNMENT_TARGET),
        ("3 = 1;", BAD_ASSIGNMENT_TARGET),
    ],
)
def test_diagnostics(body, code):
    result = compile_chunk(body)
    assert not result.success
    assert result.has_code(code), [str(d) for d in result.diagnostics]


def test_void_conversion_message():
    result = compile_chunk('V["_"] = Print(1)')
    assert "'void'" in result.diagnostics[0].message


def test_missing_member_of_session_unit():
    unit_source = render_function("int _f() { return 1; }", "Unit7", NAMESPACES)
    unit = CFrontCompiler().compile_from_source(unit_source, OutputKind.PERSISTED, REFERENCES).unit
    result = compile_chunk('V["_"] = ((Unit7)V["Unit7"])._g()', references=REFERENCES + [unit])
    assert result.has_code(NO_MEMBER)


def test_unknown_using_and_reference():
    assert compile_chunk('V["_"] = 1', namespaces=["no_such_namespace_here"]).has_code(UNKNOWN_TYPE)
    assert compile_chunk('V["_"] = 1', references=["no_such_reference_here"]).has_code(MISSING_REFERENCE)


def test_diagnostic_text_carries_code():
    diagnostic = compile_chunk("1 + 2").diagnostics[0]
    assert str(diagnostic).endswith("[SH0201]")
