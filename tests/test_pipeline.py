from types import ModuleType

import pytest

from shard.compiler.backend import CONVERSION, NOT_A_STATEMENT, UNKNOWN_NAME, CompileResult, Diagnostic, OutputKind
from shard.compiler.pipeline import CompilationPipeline, FragmentKind
from shard.errors import ShardCompileError
from shard.rewrite.preprocessor import MacroPreprocessor
from shard.rewrite.symbols import SymbolRewriter
from shard.types.environment import VariableEnvironment
from shard.types.resolver import TypeResolver


def ok():
    return CompileResult(True, [], ModuleType("unit"))


def fail(code, message="failed"):
    return CompileResult(False, [Diagnostic(code, message)])


def make_pipeline(compiler, must_declare=False):
    rewriter = SymbolRewriter(VariableEnvironment(), lambda v: None, must_declare)
    return CompilationPipeline(
        compiler, MacroPreprocessor(), rewriter, ["builtins"], ["shard.evaluation.chunk"],
        resolve_type=TypeResolver().resolve,
    )


def test_expression_is_framed_as_result_assignment(fake_compiler):
    compiler = fake_compiler(ok())
    compiled = make_pipeline(compiler).compile_fragment("2+2")
    assert compiled.kind is FragmentKind.EXPRESSION
    assert compiled.returns_value
    assert 'V["_"] = 2+2' in compiler.sources[0]
    assert "class Chunk : CodeChunk" in compiler.sources[0]


def test_falls_back_to_plain_statement(fake_compiler):
    compiler = fake_compiler(fail(CONVERSION, "Cannot implicitly convert type 'void' to 'object'"), ok())
    compiled = make_pipeline(compiler).compile_fragment("Print(1)")
    assert not compiled.returns_value
    assert len(compiler.sources) == 2
    assert 'V["_"]' not in compiler.sources[1]


@pytest.mark.parametrize(
    "first,retry,reported",
    [
        # the statement form is no better than the value form
        (fail(CONVERSION, "Cannot implicitly convert type 'int' to 'string'"), fail(NOT_A_STATEMENT), CONVERSION),
        # a void value is never worth reporting
        (fail(CONVERSION, "Cannot implicitly convert type 'void' to 'object'"), fail(NOT_A_STATEMENT), NOT_A_STATEMENT),
        (fail(UNKNOWN_NAME, "first"), fail(UNKNOWN_NAME, "retry"), UNKNOWN_NAME),
    ],
)
def test_retry_tie_break(fake_compiler, first, retry, reported):
    compiler = fake_compiler(first, retry)
    with pytest.raises(ShardCompileError) as info:
        make_pipeline(compiler).compile_fragment("f(1)")
    assert [d.code for d in info.value.diagnostics] == [reported]
    assert info.value.source == "f(1)"


def test_unknown_name_reports_retry(fake_compiler):
    compiler = fake_compiler(fail(UNKNOWN_NAME, "first"), fail(UNKNOWN_NAME, "retry"))
    with pytest.raises(ShardCompileError) as info:
        make_pipeline(compiler).compile_fragment("g(2)")
    assert info.value.diagnostics[0].message == "retry"


@pytest.mark.parametrize("fragment", ["if (true) Print(1);", "{ Print(1); }", "for (;;) { }", "while (false) { }"])
def test_statements_are_not_framed(fake_compiler, fragment):
    compiler = fake_compiler(fail(UNKNOWN_NAME))
    with pytest.raises(ShardCompileError):
        make_pipeline(compiler).compile_fragment(fragment)
    assert len(compiler.sources) == 1
    assert 'V["_"]' not in compiler.sources[0]


def test_define_directive_only_registers(fake_compiler):
    compiler = fake_compiler()
    pipeline = make_pipeline(compiler)
    assert pipeline.compile_fragment("#def SQ(x) x*x") is None
    assert pipeline.preprocessor.lookup("SQ").params == ["x"]
    assert compiler.sources == []


def test_macros_expand_before_compilation(fake_compiler):
    compiler = fake_compiler(ok())
    pipeline = make_pipeline(compiler)
    pipeline.compile_fragment("#def SQ(x) x*x")
    pipeline.compile_fragment("SQ(4)")
    assert 'V["_"] = 4*4' in compiler.sources[0]


def test_assignment_fragment(fake_compiler):
    compiler = fake_compiler(ok())
    compiled = make_pipeline(compiler).compile_fragment("$x = 3;")
    assert compiled.kind is FragmentKind.ASSIGNMENT
    assert not compiled.returns_value
    assert 'V["x"] = 3;' in compiler.sources[0]


def test_function_definition(fake_compiler):
    compiler = fake_compiler(ok(), ok())
    pipeline = make_pipeline(compiler)
    compiled = pipeline.compile_fragment("int fact(int n) { return n < 2 ? 1 : n * fact(n - 1); }")
    assert compiled.kind is FragmentKind.FUNCTION
    assert (compiled.class_name, compiled.function_name) == ("Unit1", "fact")
    source = compiler.sources[0]
    assert "public class Unit1 : FunctionContext" in source
    assert "int _fact(int n)" in source and "n * fact(n - 1)" in source
    assert pipeline.preprocessor.lookup("fact") is None

    pipeline.register_function(compiled)
    entry = pipeline.preprocessor.lookup("fact")
    assert entry.template == "$Unit1._fact" and entry.unit == "Unit1"

    again = pipeline.compile_fragment("int fact(int n) { return 1; }")
    assert again.class_name == "Unit2"


def test_function_name_is_renamed_only_in_its_header(fake_compiler):
    compiler = fake_compiler(ok())
    make_pipeline(compiler).compile_fragment('string upper(string s) { Print("upper"); return s.upper(); }')
    source = compiler.sources[0]
    assert "string _upper(string s)" in source
    assert 'Print("upper")' in source and "s.upper()" in source


def test_function_macro_in_declared_mode(fake_compiler):
    pipeline = make_pipeline(fake_compiler(ok()), must_declare=True)
    compiled = pipeline.compile_fragment("void hello() { Print(1); }")
    pipeline.register_function(compiled)
    assert pipeline.preprocessor.lookup("hello").template == "Unit1._hello"


def test_function_uses_persisted_output(fake_compiler):
    kinds = []

    class Recording(fake_compiler):
        def compile_from_source(self, source, output_kind, references):
            kinds.append(output_kind)
            return super().compile_from_source(source, output_kind, references)

    pipeline = make_pipeline(Recording(ok(), ok()))
    pipeline.compile_fragment("void f() { }")
    pipeline.compile_fragment("1")
    assert kinds == [OutputKind.PERSISTED, OutputKind.TRANSIENT]


def test_promote_call(fake_compiler):
    pipeline = make_pipeline(fake_compiler())
    pipeline.preprocessor.define("greet", "$Unit1._greet", unit="Unit1")
    pipeline.preprocessor.define("PLAIN", "42")
    assert pipeline.promote_call("greet") == "greet()"
    assert pipeline.promote_call(" greet; ") == "greet()"
    assert pipeline.promote_call("PLAIN") == "PLAIN"
    assert pipeline.promote_call("greet(1)") == "greet(1)"


@pytest.mark.parametrize(
    "code,expected",
    [
        ("int x = 5;", "$x = (int)(5);"),
        ("int x = 5", "$x = (int)(5);"),
        ("var y = 1 + 2;", "$y = 1 + 2;"),
        ("List<int> xs = new List<int>();", "$xs = (List<int>)(new List<int>());"),
        ("string[] names = null;", "$names = (string[])(null);"),
        ("Frobnicator f = 1;", "Frobnicator f = 1;"),
        ("int x == 5", "int x == 5"),
        ("int x = 1; int y = 2;", "int x = 1; int y = 2;"),
        ("x = 1;", "x = 1;"),
        ("Print(x);", "Print(x);"),
    ],
)
def test_promote_declaration(fake_compiler, code, expected):
    assert make_pipeline(fake_compiler()).promote_declaration(code) == expected


def test_promote_declaration_in_declared_mode(fake_compiler):
    pipeline = make_pipeline(fake_compiler(), must_declare=True)
    assert pipeline.promote_declaration("int x = 5;") == "var x = (int)(5);"


def test_show_code_echoes_each_attempt(fake_compiler):
    echoed = []
    pipeline = make_pipeline(fake_compiler(fail(UNKNOWN_NAME), ok()))
    pipeline.echo = echoed.append
    pipeline.show_code = True
    pipeline.compile_fragment("f()")
    assert echoed == ['code: V["_"] = f()\n', "code: f()\n"]
