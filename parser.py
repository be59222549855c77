import logging
import re
from decimal import Decimal

from ast_nodes import (
    Source, Global, Function,
    ExpressionStatement, Declaration, Assignment, If, Switch, Case, While, Return,
    Literal, Group, Binary, Access, Call, ListLiteral,
)
from environment import Character
from errors import ParseError
from lexer import TokenType

logger = logging.getLogger(__name__)

BLOCK_END = ("END", "ELSE", "CASE", "DEFAULT")
ESCAPES = {"b": "\b", "n": "\n", "r": "\r", "t": "\t", "'": "'", '"': '"', "\\": "\\"}
ESCAPE_RE = re.compile(r"\\(.)")


def unescape(text):
    return ESCAPE_RE.sub(lambda m: ESCAPES[m.group(1)], text)


class Parser:
    def __init__(self, tokens):
        self.tokens = tokens
        self.pos = 0

    # ---------- TOKEN STREAM ----------
    def has(self, offset=0):
        return self.pos + offset < len(self.tokens)

    def get(self, offset=0):
        return self.tokens[self.pos + offset]

    # A pattern is either a TokenType (matches the kind) or a str (matches the literal).
    def peek(self, *patterns):
        for offset, pattern in enumerate(patterns):
            if not self.has(offset):
                return False
            tok = self.get(offset)
            if isinstance(pattern, TokenType):
                if tok.type != pattern:
                    return False
            elif tok.literal != pattern:
                return False
        return True

    def match(self, *patterns):
        if not self.peek(*patterns):
            return False
        self.pos += len(patterns)
        return True

    def error_here(self, message):
        if self.has():
            index = self.get().index
        elif self.tokens:
            last = self.tokens[-1]
            index = last.index + len(last.literal)
        else:
            index = 0
        raise ParseError(message, index)

    # move past the next token, but only if it matches what we expect
    def eat(self, pattern, message):
        if not self.peek(pattern):
            self.error_here(message)
        tok = self.get()
        self.pos += 1
        return tok

    def eat_identifier(self, what):
        return self.eat(TokenType.IDENTIFIER, f"Expected {what}").literal

    def eat_type_name(self):
        self.eat(":", "Expected ':' before type name")
        return self.eat_identifier("type name")

    # ---------- TOP LEVEL ----------
    def parse_source(self):
        globals = []
        functions = []

        while self.has():
            if self.peek("FUN"):
                functions.append(self.parse_function())
            elif self.peek("VAL") or self.peek("VAR") or self.peek("LIST"):
                globals.append(self.parse_global())
            else:
                self.error_here("Expected a global (VAR, VAL, LIST) or function (FUN)")

        node = Source(globals, functions)
        node.index = 0
        return node

    def parse_global(self):
        tok = self.get()
        if self.match("LIST"):
            node = self.parse_list()
        elif self.match("VAR"):
            node = self.parse_mutable()
        elif self.match("VAL"):
            node = self.parse_immutable()
        else:
            self.error_here("Expected VAR, VAL or LIST")

        self.eat(";", "Expected ';' after global declaration")
        node.index = tok.index
        return node

    def parse_list(self):
        name = self.eat_identifier("list name")
        type_name = self.eat_type_name()
        self.eat("=", "LIST must be initialized with '='")

        open_tok = self.eat("[", "Expected '[' to start list")
        values = [self.parse_expression()]
        while self.match(","):
            values.append(self.parse_expression())
        self.eat("]", "Expected ']' to close list")

        value = ListLiteral(values)
        value.index = open_tok.index
        return Global(name, type_name, True, value)

    def parse_mutable(self):
        name = self.eat_identifier("variable name")
        type_name = self.eat_type_name()
        value = None
        if self.match("="):
            value = self.parse_expression()
        return Global(name, type_name, True, value)

    def parse_immutable(self):
        name = self.eat_identifier("variable name")
        type_name = self.eat_type_name()
        self.eat("=", "VAL must be initialized with '='")
        return Global(name, type_name, False, self.parse_expression())

    def parse_function(self):
        tok = self.eat("FUN", "Expected FUN")
        name = self.eat_identifier("function name")
        self.eat("(", "Expected '(' after function name")

        parameters = []
        parameter_type_names = []
        if not self.peek(")"):
            while True:
                parameters.append(self.eat_identifier("parameter name"))
                parameter_type_names.append(self.eat_type_name())
                if not self.match(","):
                    break
        self.eat(")", "Expected ')' after parameters")

        return_type_name = None
        if self.peek(":"):
            return_type_name = self.eat_type_name()

        self.eat("DO", "Expected DO before function body")
        statements = self.parse_block()
        self.eat("END", "Expected END after function body")

        node = Function(name, parameters, parameter_type_names, return_type_name, statements)
        node.index = tok.index
        return node

    # blocks stop before END/ELSE/CASE/DEFAULT without consuming them
    def parse_block(self):
        statements = []
        while not any(self.peek(word) for word in BLOCK_END):
            if not self.has():
                self.error_here("Expected END")
            statements.append(self.parse_statement())
        return statements

    # ---------- STATEMENTS ----------
    def parse_statement(self):
        if self.peek("LET"):
            return self.parse_declaration()
        if self.peek("SWITCH"):
            return self.parse_switch()
        if self.peek("IF"):
            return self.parse_if()
        if self.peek("WHILE"):
            return self.parse_while()
        if self.peek("RETURN"):
            return self.parse_return()

        tok = self.get()
        expression = self.parse_expression()
        if self.match("="):
            value = self.parse_expression()
            self.eat(";", "Expected ';' after assignment")
            node = Assignment(expression, value)
        else:
            self.eat(";", "Expected ';' after expression")
            node = ExpressionStatement(expression)
        node.index = tok.index
        return node

    def parse_declaration(self):
        tok = self.eat("LET", "Expected LET")
        name = self.eat_identifier("variable name")

        type_name = None
        if self.peek(":"):
            type_name = self.eat_type_name()

        value = None
        if self.match("="):
            value = self.parse_expression()
        self.eat(";", "Expected ';' after declaration")

        node = Declaration(name, type_name, value)
        node.index = tok.index
        return node

    def parse_if(self):
        tok = self.eat("IF", "Expected IF")
        condition = self.parse_expression()
        self.eat("DO", "Expected DO after IF condition")
        then_statements = self.parse_block()

        else_statements = []
        if self.match("ELSE"):
            else_statements = self.parse_block()
        self.eat("END", "Expected END after IF")

        node = If(condition, then_statements, else_statements)
        node.index = tok.index
        return node

    def parse_switch(self):
        tok = self.eat("SWITCH", "Expected SWITCH")
        condition = self.parse_expression()

        cases = []
        while not self.peek("DEFAULT"):
            if not self.peek("CASE"):
                self.error_here("Expected CASE or DEFAULT")
            cases.append(self.parse_case())
        cases.append(self.parse_case())
        self.eat("END", "Expected END after SWITCH")

        node = Switch(condition, cases)
        node.index = tok.index
        return node

    def parse_case(self):
        tok = self.get()
        if self.match("CASE"):
            value = self.parse_expression()
            self.eat(":", "Expected ':' after CASE value")
            node = Case(value, self.parse_block())
        elif self.match("DEFAULT"):
            node = Case(None, self.parse_block())
        else:
            self.error_here("Expected CASE or DEFAULT")
        node.index = tok.index
        return node

    def parse_while(self):
        tok = self.eat("WHILE", "Expected WHILE")
        condition = self.parse_expression()
        self.eat("DO", "Expected DO after WHILE condition")
        statements = self.parse_block()
        self.eat("END", "Expected END after WHILE")

        node = While(condition, statements)
        node.index = tok.index
        return node

    def parse_return(self):
        tok = self.eat("RETURN", "Expected RETURN")
        value = self.parse_expression()
        self.eat(";", "Expected ';' after RETURN value")

        node = Return(value)
        node.index = tok.index
        return node

    # ---------- EXPRESSIONS ----------
    # expression -> logical
    def parse_expression(self):
        return self.parse_logical()

    def peek_operator(self, *operators):
        return self.peek(TokenType.OPERATOR) and self.get().literal in operators

    def advance(self):
        tok = self.get()
        self.pos += 1
        return tok

    def binary(self, op_tok, left, right):
        node = Binary(op_tok.literal, left, right)
        node.index = op_tok.index
        return node

    # logical -> comparison (('&&' | '||') comparison)*
    def parse_logical(self):
        node = self.parse_comparison()
        while self.peek_operator("&&", "||"):
            op_tok = self.advance()
            node = self.binary(op_tok, node, self.parse_comparison())
        return node

    # comparison -> additive (('<' | '>' | '==' | '!=') additive)*
    def parse_comparison(self):
        node = self.parse_additive()
        while self.peek_operator("<", ">", "==", "!="):
            op_tok = self.advance()
            node = self.binary(op_tok, node, self.parse_additive())
        return node

    # additive -> multiplicative (('+' | '-') multiplicative)*
    def parse_additive(self):
        node = self.parse_multiplicative()
        while self.peek_operator("+", "-"):
            op_tok = self.advance()
            node = self.binary(op_tok, node, self.parse_multiplicative())
        return node

    # multiplicative -> primary (('*' | '/' | '^') primary)*
    def parse_multiplicative(self):
        node = self.parse_primary()
        while self.peek_operator("*", "/", "^"):
            op_tok = self.advance()
            node = self.binary(op_tok, node, self.parse_primary())
        return node

    def parse_primary(self):
        if not self.has():
            self.error_here("Expected an expression")
        tok = self.get()

        if self.match("NIL"):
            node = Literal(None)
        elif self.match("TRUE"):
            node = Literal(True)
        elif self.match("FALSE"):
            node = Literal(False)
        elif self.match(TokenType.INTEGER):
            node = Literal(int(tok.literal))
        elif self.match(TokenType.DECIMAL):
            node = Literal(Decimal(tok.literal))
        elif self.match(TokenType.CHARACTER):
            node = Literal(Character(unescape(tok.literal[1:-1])))
        elif self.match(TokenType.STRING):
            node = Literal(unescape(tok.literal[1:-1]))
        elif self.match("("):
            inner = self.parse_expression()
            self.eat(")", "Expected ')' to close group")
            node = Group(inner)
        elif self.match(TokenType.IDENTIFIER):
            node = self.parse_identifier_tail(tok.literal)
        else:
            self.error_here(f"Expected an expression, got {tok.literal!r}")

        node.index = tok.index
        return node

    # identifier, identifier(args) or identifier[index]
    def parse_identifier_tail(self, name):
        if self.match("("):
            arguments = []
            if not self.peek(")"):
                arguments.append(self.parse_expression())
                while self.match(","):
                    arguments.append(self.parse_expression())
            self.eat(")", "Expected ')' after call arguments")
            return Call(name, arguments)

        if self.match("["):
            offset = self.parse_expression()
            self.eat("]", "Expected ']' after index")
            return Access(name, offset)

        return Access(name)


def parse(tokens):
    logger.debug("Parsing %d tokens", len(tokens))
    source = Parser(tokens).parse_source()
    logger.debug("Parsed %d globals and %d functions", len(source.globals), len(source.functions))
    return source
