import logging
import string
from enum import Enum

from errors import LexError

logger = logging.getLogger(__name__)

WHITESPACE = " \b\n\r\t"
DIGITS = string.digits
IDENTIFIER_START = string.ascii_letters + "@"
IDENTIFIER_CHARS = string.ascii_letters + string.digits + "_-"
# Characters allowed directly after an identifier or number.
TERMINATORS = WHITESPACE + ";,()[]:=<>!+-*/^&|"
ESCAPES = "bnrt'\"\\"


class TokenType(Enum):
    IDENTIFIER = "IDENTIFIER"
    INTEGER = "INTEGER"
    DECIMAL = "DECIMAL"
    CHARACTER = "CHARACTER"
    STRING = "STRING"
    OPERATOR = "OPERATOR"


class Token:
    __slots__ = ("type", "literal", "index")

    def __init__(self, type, literal, index):
        self.type = type
        self.literal = literal
        self.index = index

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return (self.type, self.literal, self.index) == (other.type, other.literal, other.index)

    def __hash__(self):
        return hash((self.type, self.literal, self.index))

    def __repr__(self):
        return f"{self.type.name}({self.literal!r}@{self.index})"


class CharStream:
    """Input cursor plus the length of the token currently being scanned."""

    def __init__(self, text):
        self.text = text
        self.index = 0
        self.length = 0

    def has(self, offset=0):
        return self.index + offset < len(self.text)

    def get(self, offset=0):
        return self.text[self.index + offset]

    def advance(self):
        self.index += 1
        self.length += 1

    def skip(self):
        self.length = 0

    def emit(self, type):
        start = self.index - self.length
        self.skip()
        return Token(type, self.text[start:self.index], start)


class Lexer:
    def __init__(self, text):
        self.chars = CharStream(text)

    def lex(self):
        tokens = []
        while True:
            self.skip_whitespace()
            if not self.chars.has():
                break
            tokens.append(self.lex_token())
        return tokens

    def skip_whitespace(self):
        while self.chars.has() and self.chars.get() in WHITESPACE:
            self.chars.advance()
        self.chars.skip()

    # peek/match take one character class per position
    def peek(self, *classes):
        for offset, chars in enumerate(classes):
            if not self.chars.has(offset) or self.chars.get(offset) not in chars:
                return False
        return True

    def match(self, *classes):
        if not self.peek(*classes):
            return False
        for _ in classes:
            self.chars.advance()
        return True

    def error_here(self, message, offset=0):
        raise LexError(message, self.chars.index + offset)

    def lex_token(self):
        if self.peek(IDENTIFIER_START):
            return self.lex_identifier()
        if self.peek(DIGITS) or self.peek("-", DIGITS):
            return self.lex_number()
        if self.peek("'"):
            return self.lex_character()
        if self.peek('"'):
            return self.lex_string()
        return self.lex_operator()

    def require_terminator(self, what, allowed=TERMINATORS):
        if self.chars.has() and self.chars.get() not in allowed:
            self.error_here(f"Invalid character {self.chars.get()!r} after {what}")

    def lex_identifier(self):
        self.chars.advance()
        while self.match(IDENTIFIER_CHARS):
            pass
        self.require_terminator("identifier")
        return self.chars.emit(TokenType.IDENTIFIER)

    def lex_number(self):
        self.match("-")
        if self.peek("0", DIGITS):
            self.error_here("Leading zeros are not allowed")
        while self.match(DIGITS):
            pass

        if self.match("."):
            if not self.peek(DIGITS):
                self.error_here("Expected a digit after the decimal point")
            while self.match(DIGITS):
                pass
            self.require_terminator("decimal")
            return self.chars.emit(TokenType.DECIMAL)

        self.require_terminator("integer")
        return self.chars.emit(TokenType.INTEGER)

    def lex_character(self):
        self.chars.advance()  # opening quote
        if not self.chars.has():
            self.error_here("Unterminated character literal")
        if self.peek("'"):
            self.error_here("Empty character literal")
        if self.peek("\n\r"):
            self.error_here("Invalid character literal")

        if self.peek("\\"):
            self.lex_escape()
        else:
            self.chars.advance()

        if not self.match("'"):
            self.error_here("Unterminated character literal")
        return self.chars.emit(TokenType.CHARACTER)

    def lex_string(self):
        self.chars.advance()  # opening quote
        while not self.peek('"'):
            if not self.chars.has() or self.peek("\n\r"):
                self.error_here("Unterminated string literal")
            if self.peek("\\"):
                self.lex_escape()
            else:
                self.chars.advance()

        self.chars.advance()  # closing quote
        return self.chars.emit(TokenType.STRING)

    def lex_escape(self):
        self.chars.advance()  # backslash
        if not self.match(ESCAPES):
            self.error_here("Invalid escape sequence")

    def lex_operator(self):
        if self.match("<>=!"):
            self.match("=")
        elif self.match("&", "&") or self.match("|", "|"):
            pass
        else:
            self.chars.advance()
        return self.chars.emit(TokenType.OPERATOR)


def lex(source):
    logger.debug("Lexing %d characters", len(source))
    tokens = Lexer(source).lex()
    logger.debug("Lexed %d tokens", len(tokens))
    return tokens
