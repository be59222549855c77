"""Render an AST back to PLC surface syntax.

The output is canonical: four-space indents, one statement per line and single
spaces around binary operators. Grouping is only ever printed where the tree
holds a Group node, which is enough because the parser builds left-associative
chains and records every parenthesis it sees.
"""

from decimal import Decimal

from ast_nodes import (
    Global, Function,
    ExpressionStatement, Declaration, Assignment, If, Switch, While, Return,
    Literal, Group, Binary, Access, Call, ListLiteral,
)
from environment import Character

STRING_ESCAPES = {"\b": "\\b", "\n": "\\n", "\r": "\\r", "\t": "\\t", '"': '\\"', "\\": "\\\\"}
CHARACTER_ESCAPES = {"\b": "\\b", "\n": "\\n", "\r": "\\r", "\t": "\\t", "'": "\\'", "\\": "\\\\"}


def escape(text, escapes):
    return "".join(escapes.get(ch, ch) for ch in text)


class LineWriter:
    """Collects output lines at the current indentation level."""

    INDENT = "    "

    def __init__(self):
        self.lines = []
        self.depth = 0

    def line(self, text=""):
        self.lines.append(self.INDENT * self.depth + text if text else "")

    def indent(self):
        self.depth += 1

    def dedent(self):
        self.depth -= 1

    def text(self):
        return "\n".join(self.lines) + "\n"


class Printer(LineWriter):
    def print_source(self, source):
        for node in source.globals:
            self.print_global(node)
        if source.globals and source.functions:
            self.line()
        for i, node in enumerate(source.functions):
            if i:
                self.line()
            self.print_function(node)
        return self.text()

    def print_global(self, node):
        if isinstance(node.value, ListLiteral):
            self.line(f"LIST {node.name}: {node.type_name} = {self.expression(node.value)};")
            return
        keyword = "VAR" if node.mutable else "VAL"
        text = f"{keyword} {node.name}: {node.type_name}"
        if node.value is not None:
            text += f" = {self.expression(node.value)}"
        self.line(text + ";")

    def print_function(self, node):
        parameters = ", ".join(
            f"{name}: {type_name}" for name, type_name in zip(node.parameters, node.parameter_type_names)
        )
        header = f"FUN {node.name}({parameters})"
        if node.return_type_name is not None:
            header += f": {node.return_type_name}"
        self.line(header + " DO")
        self.block(node.statements)
        self.line("END")

    def block(self, statements):
        self.indent()
        for stmt in statements:
            self.statement(stmt)
        self.dedent()

    def statement(self, node):
        if isinstance(node, ExpressionStatement):
            self.line(self.expression(node.expression) + ";")
        elif isinstance(node, Declaration):
            text = f"LET {node.name}"
            if node.type_name is not None:
                text += f": {node.type_name}"
            if node.value is not None:
                text += f" = {self.expression(node.value)}"
            self.line(text + ";")
        elif isinstance(node, Assignment):
            self.line(f"{self.expression(node.receiver)} = {self.expression(node.value)};")
        elif isinstance(node, If):
            self.line(f"IF {self.expression(node.condition)} DO")
            self.block(node.then_statements)
            if node.else_statements:
                self.line("ELSE")
                self.block(node.else_statements)
            self.line("END")
        elif isinstance(node, Switch):
            self.line(f"SWITCH {self.expression(node.condition)}")
            self.indent()
            for case in node.cases:
                if case.value is None:
                    self.line("DEFAULT")
                else:
                    self.line(f"CASE {self.expression(case.value)}:")
                self.block(case.statements)
            self.dedent()
            self.line("END")
        elif isinstance(node, While):
            self.line(f"WHILE {self.expression(node.condition)} DO")
            self.block(node.statements)
            self.line("END")
        elif isinstance(node, Return):
            self.line(f"RETURN {self.expression(node.value)};")
        else:
            raise TypeError(f"Cannot print statement node: {node.__class__.__name__}")

    def expression(self, node):
        if isinstance(node, Literal):
            return self.literal(node.literal)
        if isinstance(node, Group):
            return f"({self.expression(node.expression)})"
        if isinstance(node, Binary):
            return f"{self.expression(node.left)} {node.operator} {self.expression(node.right)}"
        if isinstance(node, Access):
            if node.offset is None:
                return node.name
            return f"{node.name}[{self.expression(node.offset)}]"
        if isinstance(node, Call):
            return f"{node.name}({', '.join(self.expression(a) for a in node.arguments)})"
        if isinstance(node, ListLiteral):
            return f"[{', '.join(self.expression(v) for v in node.values)}]"
        raise TypeError(f"Cannot print expression node: {node.__class__.__name__}")

    def literal(self, value):
        if value is None:
            return "NIL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, Character):
            return "'" + escape(value.value, CHARACTER_ESCAPES) + "'"
        if isinstance(value, str):
            return '"' + escape(value, STRING_ESCAPES) + '"'
        if isinstance(value, Decimal):
            return format(value, "f")
        if isinstance(value, int):
            return str(value)
        raise TypeError(f"Cannot print literal: {value!r}")


def to_source(node):
    """Print a Source, Global or Function node as PLC source text."""
    printer = Printer()
    if isinstance(node, Global):
        printer.print_global(node)
        return printer.text()
    if isinstance(node, Function):
        printer.print_function(node)
        return printer.text()
    return printer.print_source(node)
