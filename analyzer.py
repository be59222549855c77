import logging
import math
import sys
from decimal import Decimal

from ast_nodes import (
    ExpressionStatement, Declaration, Assignment, If, Switch, While, Return,
    Literal, Group, Binary, Access, Call, ListLiteral,
)
from environment import (
    ANY, NIL, COMPARABLE, BOOLEAN, INTEGER, DECIMAL, CHARACTER, STRING,
    Character, get_type,
)
from errors import AnalysisError, ScopeError
from scope import Scope

logger = logging.getLogger(__name__)

# Integer literals must fit the runtime's 32-bit machine word.
INTEGER_MIN = -(2 ** 31)
INTEGER_MAX = 2 ** 31 - 1


def require_assignable(target, type, index=None):
    # ANY and COMPARABLE accept every type without further checks.
    if target is type or target is ANY or target is COMPARABLE:
        return
    raise AnalysisError(f"Expected type {target.name}, received {type.name}", index)


def _placeholder(args):
    return None


class Analyzer:
    def __init__(self, parent=None):
        self.scope = Scope(parent)
        self.scope.define_function("print", 1, _placeholder, [ANY], NIL, jvm_name="System.out.println")
        self.scope.define_function("logarithm", 1, _placeholder, [DECIMAL], DECIMAL, jvm_name="Math.log")
        self.function = None  # environment.Function whose body is being checked

    def analyze(self, source):
        self.declare(source)
        main = self.lookup_function(self.scope, "main", 0, source)
        main.invoke([])
        return source

    # Checks globals and functions into scope (the root scope by default) without requiring main.
    def declare(self, source, scope=None):
        if scope is None:
            scope = self.scope
        for node in source.globals:
            self.visit_global(node, scope)
        for node in source.functions:
            self.visit_function(node, scope)
        return source

    # ---------- SCOPE HELPERS ----------
    def define_variable(self, scope, node, name, type, mutable):
        try:
            return scope.define_variable(name, mutable, type=type)
        except ScopeError as e:
            raise AnalysisError(e.message, node.index) from e

    def lookup_variable(self, scope, name, node):
        try:
            return scope.lookup_variable(name)
        except ScopeError as e:
            raise AnalysisError(e.message, node.index) from e

    def lookup_function(self, scope, name, arity, node):
        try:
            return scope.lookup_function(name, arity)
        except ScopeError as e:
            raise AnalysisError(e.message, node.index) from e

    # ---------- DECLARATIONS ----------
    def visit_global(self, node, scope):
        type = get_type(node.type_name, node.index)
        if node.value is not None:
            # List elements are checked against the declared type, not an inferred one.
            if isinstance(node.value, ListLiteral):
                node.value.type = type
            self.visit_expression(node.value, scope)
            require_assignable(type, node.value.type, node.value.index)

        node.variable = self.define_variable(scope, node, node.name, type, node.mutable)

    def visit_function(self, node, scope):
        if len(node.parameters) != len(node.parameter_type_names):
            raise AnalysisError(f"Parameters and parameter types of {node.name} differ in length", node.index)

        parameter_types = [get_type(name, node.index) for name in node.parameter_type_names]
        return_type = NIL
        if node.return_type_name is not None:
            return_type = get_type(node.return_type_name, node.index)

        # Registered before the body so the function can call itself.
        try:
            node.function = scope.define_function(
                node.name, len(node.parameters), _placeholder, parameter_types, return_type,
            )
        except ScopeError as e:
            raise AnalysisError(e.message, node.index) from e

        body = Scope(scope)
        for name, type in zip(node.parameters, parameter_types):
            self.define_variable(body, node, name, type, True)

        saved = self.function
        self.function = node.function
        try:
            self.visit_block(node.statements, body)
        finally:
            self.function = saved

    # ---------- STATEMENTS ----------
    def visit_block(self, statements, scope):
        for stmt in statements:
            self.visit_statement(stmt, scope)

    def visit_statement(self, node, scope):
        if isinstance(node, ExpressionStatement):
            self.visit_expression(node.expression, scope)
            return

        if isinstance(node, Declaration):
            self.visit_declaration(node, scope)
            return

        if isinstance(node, Assignment):
            if not isinstance(node.receiver, Access):
                raise AnalysisError("Receiver of an assignment must be a variable or list element", node.index)
            self.visit_expression(node.receiver, scope)
            self.visit_expression(node.value, scope)
            require_assignable(node.receiver.type, node.value.type, node.value.index)
            return

        if isinstance(node, If):
            self.visit_expression(node.condition, scope)
            require_assignable(BOOLEAN, node.condition.type, node.condition.index)
            if not node.then_statements:
                raise AnalysisError("IF must have at least one statement before ELSE/END", node.index)
            self.visit_block(node.then_statements, Scope(scope))
            self.visit_block(node.else_statements, Scope(scope))
            return

        if isinstance(node, Switch):
            self.visit_switch(node, scope)
            return

        if isinstance(node, While):
            self.visit_expression(node.condition, scope)
            require_assignable(BOOLEAN, node.condition.type, node.condition.index)
            self.visit_block(node.statements, Scope(scope))
            return

        if isinstance(node, Return):
            if self.function is None:
                raise AnalysisError("RETURN used outside of a function", node.index)
            self.visit_expression(node.value, scope)
            require_assignable(self.function.return_type, node.value.type, node.value.index)
            return

        raise AnalysisError(f"Unknown statement node: {node.__class__.__name__}", node.index)

    def visit_declaration(self, node, scope):
        if node.type_name is None and node.value is None:
            raise AnalysisError(f"Declaration of {node.name} needs a type or an initial value", node.index)

        type = None
        if node.type_name is not None:
            type = get_type(node.type_name, node.index)

        if node.value is not None:
            if type is not None and isinstance(node.value, ListLiteral):
                node.value.type = type
            self.visit_expression(node.value, scope)
            if type is None:
                type = node.value.type
            else:
                require_assignable(type, node.value.type, node.value.index)

        node.variable = self.define_variable(scope, node, node.name, type, True)

    def visit_switch(self, node, scope):
        if not node.cases:
            raise AnalysisError("SWITCH must end with a DEFAULT case", node.index)

        self.visit_expression(node.condition, scope)
        last = len(node.cases) - 1
        for i, case in enumerate(node.cases):
            if case.value is None:
                if i != last:
                    raise AnalysisError("DEFAULT must be the last case of a SWITCH", case.index)
                continue
            if i == last:
                raise AnalysisError("DEFAULT case cannot carry a value", case.index)
            self.visit_expression(case.value, scope)
            require_assignable(node.condition.type, case.value.type, case.value.index)

        for case in node.cases:
            self.visit_block(case.statements, Scope(scope))

    # ---------- EXPRESSIONS ----------
    def visit_expression(self, node, scope):
        if isinstance(node, Literal):
            node.type = self.literal_type(node)
        elif isinstance(node, Group):
            if not isinstance(node.expression, Binary):
                raise AnalysisError("A grouped expression must contain a binary expression", node.index)
            node.type = self.visit_expression(node.expression, scope)
        elif isinstance(node, Binary):
            node.type = self.visit_binary(node, scope)
        elif isinstance(node, Access):
            node.variable = self.lookup_variable(scope, node.name, node)
            if node.offset is not None:
                self.visit_expression(node.offset, scope)
                require_assignable(INTEGER, node.offset.type, node.offset.index)
            node.type = node.variable.type
        elif isinstance(node, Call):
            node.function = self.lookup_function(scope, node.name, len(node.arguments), node)
            for arg, parameter_type in zip(node.arguments, node.function.parameter_types):
                self.visit_expression(arg, scope)
                require_assignable(parameter_type, arg.type, arg.index)
            node.type = node.function.return_type
        elif isinstance(node, ListLiteral):
            self.visit_list(node, scope)
        else:
            raise AnalysisError(f"Unknown expression node: {node.__class__.__name__}", node.index)
        return node.type

    def literal_type(self, node):
        value = node.literal
        if value is None:
            return NIL
        if isinstance(value, bool):
            return BOOLEAN
        if isinstance(value, Character):
            return CHARACTER
        if isinstance(value, str):
            return STRING
        if isinstance(value, int):
            if not INTEGER_MIN <= value <= INTEGER_MAX:
                raise AnalysisError(f"Integer literal out of range: {value}", node.index)
            return INTEGER
        if isinstance(value, Decimal):
            as_float = float(value)
            if math.isinf(as_float) or abs(as_float) == sys.float_info.max:
                raise AnalysisError(f"Decimal literal out of range: {value}", node.index)
            return DECIMAL
        raise AnalysisError(f"Unsupported literal: {value!r}", node.index)

    def visit_binary(self, node, scope):
        left = self.visit_expression(node.left, scope)
        right = self.visit_expression(node.right, scope)
        op = node.operator

        if op in ("&&", "||"):
            require_assignable(BOOLEAN, left, node.left.index)
            require_assignable(BOOLEAN, right, node.right.index)
            return BOOLEAN

        if op in ("<", ">", "==", "!="):
            require_assignable(COMPARABLE, left, node.left.index)
            require_assignable(COMPARABLE, right, node.right.index)
            require_assignable(left, right, node.right.index)
            return BOOLEAN

        if op == "+" and (left is STRING or right is STRING):
            return STRING

        if op in ("+", "-", "*", "/"):
            if left is not INTEGER and left is not DECIMAL:
                raise AnalysisError(f"Operator '{op}' expects Integer or Decimal operands, received {left.name}", node.index)
            require_assignable(left, right, node.right.index)
            return left

        if op == "^":
            require_assignable(INTEGER, left, node.left.index)
            require_assignable(INTEGER, right, node.right.index)
            return INTEGER

        raise AnalysisError(f"Unknown operator: {op}", node.index)

    def visit_list(self, node, scope):
        if node.type is None:
            types = [self.visit_expression(v, scope) for v in node.values]
            node.type = types[0] if types else ANY
            for value in node.values:
                require_assignable(node.type, value.type, value.index)
            return

        for value in node.values:
            self.visit_expression(value, scope)
            require_assignable(node.type, value.type, value.index)


def analyze(source, parent=None):
    logger.debug("Type checking %d globals and %d functions", len(source.globals), len(source.functions))
    Analyzer(parent).analyze(source)
    logger.debug("Type checking finished")
    return source
