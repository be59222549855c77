from decimal import Decimal

import pytest

from ast_nodes import (
    Source, Global, Function,
    ExpressionStatement, Declaration, Assignment, If, Switch, Case, While, Return,
    Literal, Group, Binary, Access, Call, ListLiteral,
)
from environment import Character, INTEGER
from errors import ParseError
from lexer import lex
from parser import parse


def parse_text(text):
    return parse(lex(text))


def parse_body(body):
    source = parse_text(f"FUN f() DO\n{body}\nEND")
    return source.functions[0].statements


def test_hello_world():
    source = parse_text('FUN main(): Integer DO print("Hello, World!"); RETURN 0; END')
    assert source == Source([], [
        Function("main", [], [], "Integer", [
            ExpressionStatement(Call("print", [Literal("Hello, World!")])),
            Return(Literal(0)),
        ]),
    ])


def test_globals():
    source = parse_text('VAR x: Integer = 1; VAL name: String = "a"; VAR y: Decimal; LIST xs: Integer = [1, 2];')
    assert source.globals == [
        Global("x", "Integer", True, Literal(1)),
        Global("name", "String", False, Literal("a")),
        Global("y", "Decimal", True),
        Global("xs", "Integer", True, ListLiteral([Literal(1), Literal(2)])),
    ]


def test_function_parameters_and_offsets():
    source = parse_text("FUN add(a: Integer, b: Integer): Integer DO RETURN a + b; END")
    function = source.functions[0]
    assert function.parameters == ["a", "b"]
    assert function.parameter_type_names == ["Integer", "Integer"]
    assert function.return_type_name == "Integer"
    assert function.index == 0
    assert function.statements[0].value.index == 53


def test_declarations():
    assert parse_body("LET x;") == [Declaration("x")]
    assert parse_body("LET x: Integer;") == [Declaration("x", "Integer")]
    assert parse_body("LET x = 1.5;") == [Declaration("x", None, Literal(Decimal("1.5")))]


def test_assignment_and_indexed_assignment():
    assert parse_body("x = 1;") == [Assignment(Access("x"), Literal(1))]
    assert parse_body("xs[0] = 1;") == [Assignment(Access("xs", Literal(0)), Literal(1))]


def test_precedence():
    [stmt] = parse_body("x = 1 + 2 * 3;")
    assert stmt.value == Binary("+", Literal(1), Binary("*", Literal(2), Literal(3)))


def test_left_associative():
    [stmt] = parse_body("RETURN 1 - 2 - 3;")
    assert stmt.value == Binary("-", Binary("-", Literal(1), Literal(2)), Literal(3))


def test_logical_binds_loosest():
    [stmt] = parse_body("RETURN a && b == c || d;")
    assert stmt.value == Binary(
        "||",
        Binary("&&", Access("a"), Binary("==", Access("b"), Access("c"))),
        Access("d"),
    )


def test_group():
    [stmt] = parse_body("RETURN (1 + 2) * 3;")
    assert stmt.value == Binary("*", Group(Binary("+", Literal(1), Literal(2))), Literal(3))


def test_literals_and_escapes():
    [stmt] = parse_body("print(NIL, TRUE, FALSE, 'a', '\\'', \"a\\nb\", -4);")
    assert stmt.expression.arguments == [
        Literal(None),
        Literal(True),
        Literal(False),
        Literal(Character("a")),
        Literal(Character("'")),
        Literal("a\nb"),
        Literal(-4),
    ]


def test_literal_kinds_are_distinct():
    assert Literal(True) != Literal(1)
    assert Literal(1) != Literal(Decimal("1"))


def test_equality_ignores_annotations():
    first = Binary("+", Literal(1), Literal(2))
    second = Binary("+", Literal(1), Literal(2))
    first.type = INTEGER
    first.index = 7
    assert first == second


def test_if_else():
    assert parse_body("IF x DO print(1); ELSE print(2); END") == [
        If(
            Access("x"),
            [ExpressionStatement(Call("print", [Literal(1)]))],
            [ExpressionStatement(Call("print", [Literal(2)]))],
        ),
    ]


def test_switch():
    body = """
    SWITCH n
        CASE 1: print("one");
        CASE 2:
        DEFAULT print("other");
    END
    """
    assert parse_body(body) == [
        Switch(Access("n"), [
            Case(Literal(1), [ExpressionStatement(Call("print", [Literal("one")]))]),
            Case(Literal(2), []),
            Case(None, [ExpressionStatement(Call("print", [Literal("other")]))]),
        ]),
    ]


def test_switch_requires_default():
    with pytest.raises(ParseError):
        parse_body("SWITCH n CASE 1: print(1); END")


def test_while():
    assert parse_body("WHILE i < 10 DO i = i + 1; END") == [
        While(
            Binary("<", Access("i"), Literal(10)),
            [Assignment(Access("i"), Binary("+", Access("i"), Literal(1)))],
        ),
    ]


def test_missing_semicolon_points_at_next_token():
    with pytest.raises(ParseError) as exc:
        parse_text("FUN main() DO RETURN 0 END")
    assert exc.value.index == 23


def test_missing_semicolon_at_end_of_input():
    with pytest.raises(ParseError) as exc:
        parse_text("VAR x: Integer = 1")
    assert exc.value.index == 18


def test_missing_end():
    with pytest.raises(ParseError):
        parse_text("FUN main() DO RETURN 0;")


def test_val_requires_initializer():
    with pytest.raises(ParseError):
        parse_text("VAL x: Integer;")


def test_list_requires_elements():
    with pytest.raises(ParseError):
        parse_text("LIST xs: Integer = [];")


def test_comparison_operators_are_limited():
    with pytest.raises(ParseError):
        parse_body("RETURN 1 <= 2;")


def test_top_level_statement_rejected():
    with pytest.raises(ParseError) as exc:
        parse_text('print("hi");')
    assert exc.value.index == 0
