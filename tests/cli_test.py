import os
import subprocess
import sys

import pytest

from cli import ReplSession
from errors import AnalysisError, PlcRuntimeError

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
CLI = os.path.join(ROOT, "cli.py")

HELLO = 'FUN main(): Integer DO\n    print("Hello, World!");\n    RETURN 0;\nEND\n'


def run_cli(*args):
    return subprocess.run(
        [sys.executable, CLI, *args],
        text=True,
        capture_output=True,
        cwd=ROOT,
        timeout=10,
    )


def write(tmp_path, text, name="main.plc"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_run_prints_output_and_result(tmp_path):
    proc = run_cli("run", write(tmp_path, HELLO))
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert proc.stdout == "Hello, World!\n0\n"


def test_check(tmp_path):
    proc = run_cli("check", write(tmp_path, HELLO))
    assert proc.returncode == 0
    assert proc.stdout.strip() == "ok"


def test_parse_error_shows_location(tmp_path):
    path = write(tmp_path, "FUN main(): Integer DO\n    RETURN 0\nEND\n")
    proc = run_cli("run", path)
    assert proc.returncode == 1
    assert "Parse error: Expected ';' after RETURN value" in proc.stdout
    assert f"{path}:3:1" in proc.stdout
    assert "  END\n  ^" in proc.stdout


def test_analysis_error_exits_nonzero(tmp_path):
    proc = run_cli("check", write(tmp_path, 'FUN main(): Integer DO RETURN "x"; END'))
    assert proc.returncode == 1
    assert "Analysis error" in proc.stdout


def test_no_check_skips_analysis(tmp_path):
    path = write(tmp_path, "FUN main(): Integer DO RETURN 1 == 1.0; END")
    assert run_cli("run", path).returncode == 1
    proc = run_cli("run", path, "--no-check")
    assert proc.returncode == 0
    assert proc.stdout == "false\n"


def test_max_steps(tmp_path):
    path = write(tmp_path, "FUN main(): Integer DO WHILE TRUE DO END RETURN 0; END")
    proc = run_cli("run", path, "--max-steps", "50")
    assert proc.returncode == 1
    assert "Step limit exceeded" in proc.stdout


def test_emit(tmp_path):
    proc = run_cli("emit", write(tmp_path, HELLO))
    assert proc.returncode == 0
    assert proc.stdout.startswith("public class Main {\n")
    assert 'System.out.println("Hello, World!");' in proc.stdout


def test_fmt(tmp_path):
    proc = run_cli("fmt", write(tmp_path, 'FUN main(): Integer DO print("Hello, World!"); RETURN 0; END'))
    assert proc.returncode == 0
    assert proc.stdout == HELLO


def test_lex_and_parse(tmp_path):
    path = write(tmp_path, HELLO)
    lexed = run_cli("lex", path)
    assert lexed.returncode == 0
    assert "IDENTIFIER" in lexed.stdout and "STRING" in lexed.stdout

    parsed = run_cli("parse", path)
    assert parsed.returncode == 0
    assert "type: Source" in parsed.stdout
    assert "literal: \"Hello, World!\"" in parsed.stdout


def test_usage():
    proc = run_cli()
    assert proc.returncode == 1
    assert "Usage:" in proc.stdout


def test_repl_failed_declarations_leave_session_unchanged(capsys):
    session = ReplSession()
    with pytest.raises(AnalysisError):
        session.submit('VAR a: Integer = 1; VAR b: Integer = "x";\n')
    session.submit("VAR a: Integer = 1; VAR b: Integer = 2;\n")
    session.submit("a + b\n")
    assert capsys.readouterr().out == "3\n"


def test_repl_failed_global_initializer_leaves_session_unchanged(capsys):
    session = ReplSession()
    with pytest.raises(PlcRuntimeError):
        session.submit("VAR a: Integer = 1; VAR b: Decimal = 1.0 / 0.0;\n")
    session.submit("VAR a: Integer = 5;\n")
    session.submit("a\n")
    assert capsys.readouterr().out == "5\n"
