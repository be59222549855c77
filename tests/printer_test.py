import pytest

from lexer import lex
from parser import parse
from printer import to_source

PROGRAMS = [
    'FUN main(): Integer DO print("Hello, World!"); RETURN 0; END',
    "VAR x: Integer = 1; VAL y: Decimal = -0.50; VAR z: String; LIST xs: Integer = [1, -2, 3];",
    "FUN f(a: Integer, b: Boolean): Integer DO RETURN (a - (1 - 2)) * a ^ 2 / 3; END",
    "FUN f() DO IF a && b || c == d DO LET x; ELSE LET y: Integer = 1; END END",
    "FUN f() DO IF TRUE DO END END",
    "FUN f() DO SWITCH x CASE 'a': print(1); CASE '\\'': DEFAULT END END",
    "FUN f() DO WHILE i < 10 DO xs[i] = i + 1; i = i + 1; END END",
    "FUN f(): String DO RETURN \"tab\\tquote\\\"slash\\\\\" + NIL + FALSE; END",
    "FUN f() DO g(); g(1, h(2)); END",
    "FUN f(): Decimal DO RETURN 0.0000001; END",
]


@pytest.mark.parametrize("text", PROGRAMS)
def test_round_trip(text):
    source = parse(lex(text))
    printed = to_source(source)
    assert parse(lex(printed)) == source
    assert to_source(parse(lex(printed))) == printed


def test_canonical_layout():
    source = parse(lex("VAR n: Integer = 2; FUN main(): Integer DO SWITCH n CASE 1: print(n); DEFAULT RETURN n; END RETURN 0; END"))
    assert to_source(source) == (
        "VAR n: Integer = 2;\n"
        "\n"
        "FUN main(): Integer DO\n"
        "    SWITCH n\n"
        "        CASE 1:\n"
        "            print(n);\n"
        "        DEFAULT\n"
        "            RETURN n;\n"
        "    END\n"
        "    RETURN 0;\n"
        "END\n"
    )


def test_functions_are_separated_by_blank_lines():
    source = parse(lex("FUN a() DO END FUN b() DO END"))
    assert to_source(source) == "FUN a() DO\nEND\n\nFUN b() DO\nEND\n"
