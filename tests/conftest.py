import pytest

from shard.compiler.backend import CompileResult, Diagnostic
from shard.console import BufferConsole
from shard.interpreter import Interpreter

# Session settings read from the environment; tests start from the defaults
_SETTINGS = ("SHARD_LINE_WIDTH", "SHARD_MAX_LINES", "SHARD_INCLUDE", "SHARD_DECLARE", "SHARD_SHOW_CODE")


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    for var in _SETTINGS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def console():
    return BufferConsole(width=80, lines=10)


@pytest.fixture
def interp(console):
    return Interpreter(console)


class FakeCompiler:
    """Records every unit source it sees and answers from a script of results."""

    def __init__(self, *results):
        self.results = list(results)
        self.sources = []

    def compile_from_source(self, source, output_kind, references):
        self.sources.append(source)
        if self.results:
            return self.results.pop(0)
        return CompileResult(False, [Diagnostic("SH9999", "no result scripted")])


@pytest.fixture
def fake_compiler():
    return FakeCompiler
