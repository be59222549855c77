import logging
import math
from decimal import Decimal, DecimalException, Inexact, localcontext

from ast_nodes import (
    ExpressionStatement, Declaration, Assignment, If, Switch, While, Return,
    Literal, Group, Binary, Access, Call, ListLiteral,
)
from environment import Character, to_text, type_name_of
from errors import PlcRuntimeError, ScopeError
from scope import Scope

logger = logging.getLogger(__name__)

COMPARABLE_TYPES = (bool, int, Decimal, Character, str)


class Returned:
    """Result of a statement that executed RETURN; only a call boundary unwraps it."""

    __slots__ = ("value",)

    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return f"Returned({self.value!r})"


def is_integer(value):
    return isinstance(value, int) and not isinstance(value, bool)


def values_equal(left, right):
    # Same runtime class and same value; NIL only equals NIL.
    if type(left) is not type(right) or left != right:
        return False
    if isinstance(left, Decimal):
        # scale is significant: 1.0 != 1.00
        return left.as_tuple().exponent == right.as_tuple().exponent
    return True


def exact_precision(op, left, right):
    """Digits needed to hold left op right exactly, for +, - and *."""
    if op == "*":
        return len(left.as_tuple().digits) + len(right.as_tuple().digits)
    top = max(left.adjusted(), right.adjusted()) + 1
    bottom = min(left.as_tuple().exponent, right.as_tuple().exponent)
    return top - bottom + 1


def coefficient(value):
    sign, digits, _ = value.as_tuple()
    magnitude = int("".join(map(str, digits))) if digits else 0
    return -magnitude if sign else magnitude


def divide_decimal(left, right):
    """left / right at the dividend's scale, rounding half to even, without a context."""
    scale = left.as_tuple().exponent
    numerator = coefficient(left)
    denominator = coefficient(right)
    shift = right.as_tuple().exponent
    if shift < 0:
        numerator *= 10 ** -shift
    else:
        denominator *= 10 ** shift

    quotient, remainder = divmod(abs(numerator), abs(denominator))
    twice = 2 * remainder
    if twice > abs(denominator) or (twice == abs(denominator) and quotient % 2 == 1):
        quotient += 1

    negative = quotient != 0 and (numerator < 0) != (denominator < 0)
    return Decimal((1 if negative else 0, tuple(int(d) for d in str(quotient)), scale))


class Interpreter:
    def __init__(self, parent=None, out=None, max_call_depth=1000, max_steps=None):
        self.scope = Scope(parent)
        self.out = out                # None -> sys.stdout at print time
        self.max_call_depth = max_call_depth
        self.max_steps = max_steps    # set to an int to guard against infinite loops
        self.call_depth = 0
        self.steps = 0

        self.scope.define_function("print", 1, self.builtin_print)
        self.scope.define_function("logarithm", 1, self.builtin_logarithm)

    # ---------- BUILTINS ----------
    def builtin_print(self, args):
        print(to_text(args[0]), file=self.out)
        return None

    def builtin_logarithm(self, args):
        value = args[0]
        if not isinstance(value, Decimal):
            raise PlcRuntimeError(f"logarithm() expects a Decimal, received {type_name_of(value)}")
        if value <= 0:
            raise PlcRuntimeError(f"logarithm() expects a positive Decimal, received {value}")
        return Decimal(repr(math.log(float(value))))

    # ---------- ENTRY POINTS ----------
    def run(self, source):
        try:
            self.declare(source)
            main = self.lookup_function(self.scope, "main", 0, source)
            logger.debug("Invoking main/0")
            return main.invoke([])
        except RecursionError as e:
            raise PlcRuntimeError("Maximum recursion depth exceeded") from e

    def declare(self, source, scope=None):
        if scope is None:
            scope = self.scope
        for node in source.globals:
            value = None
            if node.value is not None:
                value = self.evaluate(node.value, scope)
            self.define_variable(scope, node, node.name, node.mutable, value)

        for node in source.functions:
            self.define_function(node, scope)

    def define_function(self, node, scope):
        def invoke(args):
            return self.call_function(node, scope, args)

        try:
            return scope.define_function(node.name, len(node.parameters), invoke)
        except ScopeError as e:
            raise PlcRuntimeError(e.message, node.index) from e

    def call_function(self, node, scope, args):
        if len(args) != len(node.parameters):
            raise PlcRuntimeError(
                f"{node.name}() expects {len(node.parameters)} arguments, received {len(args)}", node.index,
            )
        if self.call_depth >= self.max_call_depth:
            raise PlcRuntimeError(f"Max call depth exceeded ({self.max_call_depth})", node.index)

        frame = Scope(scope)
        for name, value in zip(node.parameters, args):
            self.define_variable(frame, node, name, True, value)

        self.call_depth += 1
        try:
            result = self.execute_block(node.statements, frame)
        finally:
            self.call_depth -= 1

        if isinstance(result, Returned):
            return result.value
        return None

    # ---------- SCOPE HELPERS ----------
    def define_variable(self, scope, node, name, mutable, value):
        try:
            return scope.define_variable(name, mutable, value)
        except ScopeError as e:
            raise PlcRuntimeError(e.message, node.index) from e

    def lookup_variable(self, scope, name, node):
        try:
            return scope.lookup_variable(name)
        except ScopeError as e:
            raise PlcRuntimeError(e.message, node.index) from e

    def lookup_function(self, scope, name, arity, node):
        try:
            return scope.lookup_function(name, arity)
        except ScopeError as e:
            raise PlcRuntimeError(e.message, node.index) from e

    def require_bool(self, value, context, node):
        if isinstance(value, bool):
            return value
        raise PlcRuntimeError(f"{context} must be a Boolean, received {type_name_of(value)}", node.index)

    def require_index(self, target, offset, node):
        if not isinstance(target, list):
            raise PlcRuntimeError(f"{node.name} is not a list", node.index)
        if not is_integer(offset):
            raise PlcRuntimeError(f"List index must be an Integer, received {type_name_of(offset)}", node.index)
        if offset < 0 or offset >= len(target):
            raise PlcRuntimeError(f"Index {offset} out of range for {node.name} (length {len(target)})", node.index)
        return offset

    def tick(self, node):
        if self.max_steps is None:
            return
        self.steps += 1
        if self.steps > self.max_steps:
            raise PlcRuntimeError("Step limit exceeded (possible infinite loop)", node.index)

    # ---------- STATEMENTS ----------
    # Each returns None to continue, or a Returned to unwind to the call boundary.
    def execute_block(self, statements, scope):
        for stmt in statements:
            result = self.execute(stmt, scope)
            if result is not None:
                return result
        return None

    def execute(self, node, scope):
        if isinstance(node, ExpressionStatement):
            self.evaluate(node.expression, scope)
            return None

        if isinstance(node, Declaration):
            value = None
            if node.value is not None:
                value = self.evaluate(node.value, scope)
            self.define_variable(scope, node, node.name, True, value)
            return None

        if isinstance(node, Assignment):
            self.assign(node, scope)
            return None

        if isinstance(node, If):
            condition = self.require_bool(self.evaluate(node.condition, scope), "IF condition", node)
            branch = node.then_statements if condition else node.else_statements
            return self.execute_block(branch, Scope(scope))

        if isinstance(node, Switch):
            condition = self.evaluate(node.condition, scope)
            for case in node.cases:
                if case.value is None or values_equal(condition, self.evaluate(case.value, scope)):
                    return self.execute_block(case.statements, Scope(scope))
            return None

        if isinstance(node, While):
            while self.require_bool(self.evaluate(node.condition, scope), "WHILE condition", node):
                self.tick(node)
                result = self.execute_block(node.statements, Scope(scope))
                if result is not None:
                    return result
            return None

        if isinstance(node, Return):
            return Returned(self.evaluate(node.value, scope))

        raise PlcRuntimeError(f"Unknown statement node: {node.__class__.__name__}", node.index)

    def assign(self, node, scope):
        receiver = node.receiver
        if not isinstance(receiver, Access):
            raise PlcRuntimeError("Receiver of an assignment must be a variable or list element", node.index)

        variable = self.lookup_variable(scope, receiver.name, receiver)
        if not variable.mutable:
            raise PlcRuntimeError(f"Cannot assign to immutable variable {receiver.name}", node.index)

        if receiver.offset is None:
            variable.value = self.evaluate(node.value, scope)
            return

        target = variable.value
        index = self.require_index(target, self.evaluate(receiver.offset, scope), receiver)
        target[index] = self.evaluate(node.value, scope)

    # ---------- EXPRESSIONS ----------
    def evaluate(self, node, scope):
        if isinstance(node, Literal):
            return node.literal

        if isinstance(node, Group):
            return self.evaluate(node.expression, scope)

        if isinstance(node, Binary):
            return self.evaluate_binary(node, scope)

        if isinstance(node, Access):
            variable = self.lookup_variable(scope, node.name, node)
            if node.offset is None:
                return variable.value
            target = variable.value
            index = self.require_index(target, self.evaluate(node.offset, scope), node)
            return target[index]

        if isinstance(node, Call):
            function = self.lookup_function(scope, node.name, len(node.arguments), node)
            args = [self.evaluate(arg, scope) for arg in node.arguments]
            return function.invoke(args)

        if isinstance(node, ListLiteral):
            return [self.evaluate(value, scope) for value in node.values]

        raise PlcRuntimeError(f"Unknown expression node: {node.__class__.__name__}", node.index)

    def evaluate_binary(self, node, scope):
        op = node.operator

        # short-circuit: the right operand is only evaluated when needed
        if op == "&&":
            if not self.require_bool(self.evaluate(node.left, scope), "Left operand of &&", node):
                return False
            return self.require_bool(self.evaluate(node.right, scope), "Right operand of &&", node)
        if op == "||":
            if self.require_bool(self.evaluate(node.left, scope), "Left operand of ||", node):
                return True
            return self.require_bool(self.evaluate(node.right, scope), "Right operand of ||", node)

        left = self.evaluate(node.left, scope)
        right = self.evaluate(node.right, scope)

        if op == "==":
            return values_equal(left, right)
        if op == "!=":
            return not values_equal(left, right)

        if op in ("<", ">"):
            if type(left) is not type(right) or not isinstance(left, COMPARABLE_TYPES):
                raise PlcRuntimeError(
                    f"Cannot compare {type_name_of(left)} with {type_name_of(right)}", node.index,
                )
            return left < right if op == "<" else left > right

        if op == "+" and (isinstance(left, str) or isinstance(right, str)):
            return to_text(left) + to_text(right)

        if op in ("+", "-", "*", "/"):
            try:
                return self.arithmetic(op, left, right, node)
            except (DecimalException, OverflowError) as e:
                raise PlcRuntimeError(f"Arithmetic error: {e}", node.index) from e

        if op == "^":
            if not is_integer(left) or not is_integer(right):
                raise PlcRuntimeError(
                    f"Operator '^' expects Integer operands, received {type_name_of(left)} and {type_name_of(right)}",
                    node.index,
                )
            if right < 0:
                raise PlcRuntimeError(f"Negative exponent: {right}", node.index)
            return left ** right

        raise PlcRuntimeError(f"Unknown operator: {op}", node.index)

    def arithmetic(self, op, left, right, node):
        # The left operand's runtime class picks Integer or Decimal arithmetic.
        if is_integer(left):
            if not is_integer(right):
                raise PlcRuntimeError(f"Operator '{op}' expects an Integer right operand, received {type_name_of(right)}", node.index)
        elif isinstance(left, Decimal):
            if not isinstance(right, Decimal):
                raise PlcRuntimeError(f"Operator '{op}' expects a Decimal right operand, received {type_name_of(right)}", node.index)
        else:
            raise PlcRuntimeError(f"Operator '{op}' expects Integer or Decimal operands, received {type_name_of(left)}", node.index)

        if op in ("+", "-", "*") and isinstance(left, Decimal):
            # Exact: the context holds every digit of the result and traps rounding.
            with localcontext() as ctx:
                ctx.prec = exact_precision(op, left, right)
                ctx.traps[Inexact] = True
                return self.apply(op, left, right)
        if op in ("+", "-", "*"):
            return self.apply(op, left, right)

        if right == 0:
            raise PlcRuntimeError("Division by zero", node.index)
        if is_integer(left):
            # truncate toward zero
            quotient = abs(left) // abs(right)
            return -quotient if (left < 0) != (right < 0) else quotient

        return divide_decimal(left, right)

    def apply(self, op, left, right):
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        return left * right


def run(source, parent=None, out=None, max_steps=None):
    return Interpreter(parent, out=out, max_steps=max_steps).run(source)
