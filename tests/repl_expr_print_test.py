import os
import subprocess
import sys


def run_repl_with_input(inp: str) -> str:
    root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    cli = os.path.join(root, "cli.py")

    proc = subprocess.run(
        [sys.executable, cli, "repl"],
        input=inp,
        text=True,
        capture_output=True,
        cwd=root,
        timeout=10,
    )

    # REPL should exit cleanly after :q
    if proc.returncode != 0:
        raise AssertionError(f"REPL exited with code {proc.returncode}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}")

    return proc.stdout


def test_auto_print_expression():
    out = run_repl_with_input("1 + 2\n:q\n")
    assert "3" in out


def test_persistent_state_expression():
    out = run_repl_with_input("VAR x: Integer = 2;\nx + 5\n:q\n")
    assert "7" in out


def test_statements_run_in_session_scope():
    out = run_repl_with_input('LET greeting = "hi";\nprint(greeting + "!");\n:q\n')
    assert "hi!" in out


def test_multiline_function_definition():
    out = run_repl_with_input("FUN twice(n: Integer): Integer DO\nRETURN n * 2;\nEND\ntwice(21)\n:q\n")
    assert "42" in out


def test_errors_do_not_end_session():
    out = run_repl_with_input('LET s: String = 1;\n"still" + " here"\n:q\n')
    assert "Analysis error" in out
    assert "still here" in out


def test_eof_exits_cleanly():
    out = run_repl_with_input("1 + 1\n")
    assert "2" in out
