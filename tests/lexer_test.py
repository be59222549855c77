import pytest

from errors import LexError
from lexer import Token, TokenType, lex


def ident(literal, index):
    return Token(TokenType.IDENTIFIER, literal, index)


def op(literal, index):
    return Token(TokenType.OPERATOR, literal, index)


def test_identifiers():
    assert lex("getName") == [ident("getName", 0)]
    assert lex("@thelegend27") == [ident("@thelegend27", 0)]
    assert lex("first_name last-name") == [ident("first_name", 0), ident("last-name", 11)]


def test_dash_inside_identifier_is_part_of_it():
    assert lex("x-1") == [ident("x-1", 0)]


def test_keywords_are_identifiers():
    assert [t.type for t in lex("FUN main DO END")] == [TokenType.IDENTIFIER] * 4


def test_call_and_index_punctuation():
    assert lex("main()") == [ident("main", 0), op("(", 4), op(")", 5)]
    assert lex("xs[0]") == [ident("xs", 0), op("[", 2), Token(TokenType.INTEGER, "0", 3), op("]", 4)]


def test_numbers():
    assert lex("123") == [Token(TokenType.INTEGER, "123", 0)]
    assert lex("-1") == [Token(TokenType.INTEGER, "-1", 0)]
    assert lex("0") == [Token(TokenType.INTEGER, "0", 0)]
    assert lex("1.50") == [Token(TokenType.DECIMAL, "1.50", 0)]
    assert lex("-0.5") == [Token(TokenType.DECIMAL, "-0.5", 0)]


def test_minus_without_digit_is_operator():
    assert lex("- five") == [op("-", 0), ident("five", 2)]
    assert lex("1 - 2") == [
        Token(TokenType.INTEGER, "1", 0),
        op("-", 2),
        Token(TokenType.INTEGER, "2", 4),
    ]


def test_leading_zero_rejected():
    with pytest.raises(LexError) as exc:
        lex("007")
    assert exc.value.index == 0


def test_trailing_decimal_point_rejected():
    with pytest.raises(LexError):
        lex("1.")


@pytest.mark.parametrize("text", ["12abc", "abc$", "a'b'"])
def test_invalid_trailing_character(text):
    with pytest.raises(LexError):
        lex(text)


def test_characters():
    assert lex("'c'") == [Token(TokenType.CHARACTER, "'c'", 0)]
    assert lex("'\\n'") == [Token(TokenType.CHARACTER, "'\\n'", 0)]


@pytest.mark.parametrize("text", ["''", "'abc'", "'a", "'\n'"])
def test_invalid_characters(text):
    with pytest.raises(LexError):
        lex(text)


def test_strings():
    assert lex('"Hello, World!"') == [Token(TokenType.STRING, '"Hello, World!"', 0)]
    assert lex('"1\\t2"') == [Token(TokenType.STRING, '"1\\t2"', 0)]


def test_unterminated_string():
    with pytest.raises(LexError):
        lex('"unterminated')
    with pytest.raises(LexError):
        lex('"line\nbreak"')


def test_invalid_escape():
    with pytest.raises(LexError) as exc:
        lex('"a\\qb"')
    assert "escape" in exc.value.message


def test_operators():
    literals = [t.literal for t in lex("<= >= == != && || < ! ; =")]
    assert literals == ["<=", ">=", "==", "!=", "&&", "||", "<", "!", ";", "="]


def test_whitespace_is_skipped_with_offsets_kept():
    assert lex(" \b\t\r\n one ") == [ident("one", 6)]
    assert lex("") == []
