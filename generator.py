import logging
from decimal import Decimal

from ast_nodes import (
    ExpressionStatement, Declaration, Assignment, If, Switch, While, Return,
    Literal, Group, Binary, Access, Call, ListLiteral,
)
from environment import Character
from errors import AnalysisError
from printer import LineWriter, STRING_ESCAPES, CHARACTER_ESCAPES, escape

logger = logging.getLogger(__name__)


class Generator(LineWriter):
    """Emit Java source for an analyzed Source tree.

    Types and JVM names come from the analyzer's annotations, so the tree must
    have been through analyzer.analyze first.
    """

    def generate(self, source):
        self.line("public class Main {")
        self.line()
        self.indent()

        if source.globals:
            for node in source.globals:
                self.generate_global(node)
            self.line()

        self.line("public static void main(String[] args) {")
        self.indent()
        self.line("System.exit(new Main().main());")
        self.dedent()
        self.line("}")

        for node in source.functions:
            self.line()
            self.generate_function(node)

        self.dedent()
        self.line()
        self.line("}")
        return self.text()

    def annotation(self, node, attr):
        value = getattr(node, attr)
        if value is None:
            raise AnalysisError(f"{node.__class__.__name__} has not been analyzed", node.index)
        return value

    def generate_global(self, node):
        variable = self.annotation(node, "variable")
        jvm_type = variable.type.jvm_name
        if isinstance(node.value, ListLiteral):
            jvm_type += "[]"

        text = f"{jvm_type} {variable.jvm_name}"
        if node.value is not None:
            text += f" = {self.expression(node.value)}"
        self.line(text + ";")

    def generate_function(self, node):
        function = self.annotation(node, "function")
        parameters = ", ".join(
            f"{type.jvm_name} {name}" for type, name in zip(function.parameter_types, node.parameters)
        )
        self.line(f"{function.return_type.jvm_name} {function.jvm_name}({parameters}) {{")
        self.block(node.statements)
        self.line("}")

    def block(self, statements):
        self.indent()
        for stmt in statements:
            self.statement(stmt)
        self.dedent()

    def statement(self, node):
        if isinstance(node, ExpressionStatement):
            self.line(self.expression(node.expression) + ";")
        elif isinstance(node, Declaration):
            variable = self.annotation(node, "variable")
            text = f"{variable.type.jvm_name} {variable.jvm_name}"
            if node.value is not None:
                text += f" = {self.expression(node.value)}"
            self.line(text + ";")
        elif isinstance(node, Assignment):
            self.line(f"{self.expression(node.receiver)} = {self.expression(node.value)};")
        elif isinstance(node, If):
            self.line(f"if ({self.expression(node.condition)}) {{")
            self.block(node.then_statements)
            if node.else_statements:
                self.line("} else {")
                self.block(node.else_statements)
            self.line("}")
        elif isinstance(node, Switch):
            self.line(f"switch ({self.expression(node.condition)}) {{")
            self.indent()
            for case in node.cases:
                if case.value is None:
                    self.line("default:")
                    self.block(case.statements)
                else:
                    self.line(f"case {self.expression(case.value)}:")
                    self.block(case.statements)
                    self.indent()
                    self.line("break;")
                    self.dedent()
            self.dedent()
            self.line("}")
        elif isinstance(node, While):
            if not node.statements:
                self.line(f"while ({self.expression(node.condition)}) {{}}")
                return
            self.line(f"while ({self.expression(node.condition)}) {{")
            self.block(node.statements)
            self.line("}")
        elif isinstance(node, Return):
            self.line(f"return {self.expression(node.value)};")
        else:
            raise AnalysisError(f"Cannot generate statement node: {node.__class__.__name__}", node.index)

    def expression(self, node):
        if isinstance(node, Literal):
            return self.literal(node.literal)
        if isinstance(node, Group):
            return f"({self.expression(node.expression)})"
        if isinstance(node, Binary):
            left = self.expression(node.left)
            right = self.expression(node.right)
            if node.operator == "^":
                return f"Math.pow({left}, {right})"
            return f"{left} {node.operator} {right}"
        if isinstance(node, Access):
            name = node.variable.jvm_name if node.variable is not None else node.name
            if node.offset is None:
                return name
            return f"{name}[{self.expression(node.offset)}]"
        if isinstance(node, Call):
            function = self.annotation(node, "function")
            arguments = ", ".join(self.expression(arg) for arg in node.arguments)
            return f"{function.jvm_name}({arguments})"
        if isinstance(node, ListLiteral):
            return "{" + ", ".join(self.expression(v) for v in node.values) + "}"
        raise AnalysisError(f"Cannot generate expression node: {node.__class__.__name__}", node.index)

    def literal(self, value):
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, Character):
            return "'" + escape(value.value, CHARACTER_ESCAPES) + "'"
        if isinstance(value, str):
            return '"' + escape(value, STRING_ESCAPES) + '"'
        if isinstance(value, Decimal):
            return format(value, "f")
        return str(value)


def generate(source):
    logger.debug("Generating Java for %d globals and %d functions", len(source.globals), len(source.functions))
    return Generator().generate(source)
