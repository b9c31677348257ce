import io
import sys

import pytest

from shard import __version__
from shard.__main__ import main


@pytest.fixture
def stdin(monkeypatch):
    def feed(text):
        monkeypatch.setattr(sys, "stdin", io.StringIO(text))
    return feed


def test_interactive_loop(stdin, capsys):
    stdin("2+2\nint x = 3;\n$x * 3\n")
    assert main(["--no-include"]) == 0
    out = capsys.readouterr().out
    assert out == ">>> (int) 4\n>>> >>> (int) 9\n>>> \n"


def test_continuation_prompt(stdin, capsys):
    stdin('if (true) {\nPrint("in");\n}\n')
    main(["--no-include"])
    assert capsys.readouterr().out == '>>> ... ... in\n>>> \n'


def test_files_are_included_first(stdin, capsys, tmp_path):
    script = tmp_path / "setup.csx"
    script.write_text("int seed = 7;\n", encoding="utf-8")
    stdin("$seed\n")
    assert main(["--no-include", str(script)]) == 0
    assert "(int) 7\n" in capsys.readouterr().out


def test_missing_file(stdin, capsys, tmp_path):
    stdin("")
    assert main(["--no-include", str(tmp_path / "absent.csx")]) == 1
    assert "cannot read" in capsys.readouterr().err


def test_startup_include_from_environment(stdin, capsys, tmp_path, monkeypatch):
    script = tmp_path / "rc.csx"
    script.write_text("#def GREETING \"hi\"\n", encoding="utf-8")
    monkeypatch.setenv("SHARD_INCLUDE", str(script))
    stdin("GREETING\n")
    main([])
    assert "(string) 'hi'\n" in capsys.readouterr().out


def test_declare_flag(stdin, capsys):
    stdin("var n = 2;\nn * 21\n")
    main(["--no-include", "--declare"])
    assert "(int) 42\n" in capsys.readouterr().out


def test_version(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--version"])
    assert info.value.code == 0
    assert __version__ in capsys.readouterr().out
