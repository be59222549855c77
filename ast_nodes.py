class ASTNode:
    # Offset of the node's leading token. Parser sets this.
    index: int | None = None

    # Slots filled in by the analyzer; not part of structural equality.
    ANNOTATIONS = ("index", "type", "variable", "function")

    def fields(self):
        return {k: v for k, v in vars(self).items() if k not in self.ANNOTATIONS}

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self.fields() == other.fields()

    __hash__ = None

    def __repr__(self):
        args = ", ".join(f"{k}={v!r}" for k, v in self.fields().items())
        return f"{type(self).__name__}({args})"


class Source(ASTNode):
    def __init__(self, globals, functions):
        self.globals = globals        # list[Global]
        self.functions = functions    # list[Function]


class Global(ASTNode):
    def __init__(self, name, type_name, mutable, value=None):
        self.name = name
        self.type_name = type_name
        self.mutable = mutable
        self.value = value            # Expression | None
        self.variable = None          # environment.Variable, set by the analyzer


class Function(ASTNode):
    def __init__(self, name, parameters, parameter_type_names, return_type_name, statements):
        self.name = name
        self.parameters = parameters                      # list[str]
        self.parameter_type_names = parameter_type_names  # list[str], parallel to parameters
        self.return_type_name = return_type_name          # str | None
        self.statements = statements
        self.function = None          # environment.Function, set by the analyzer


# ---------- STATEMENTS ----------
class Statement(ASTNode):
    pass


class ExpressionStatement(Statement):
    def __init__(self, expression):
        self.expression = expression


class Declaration(Statement):
    def __init__(self, name, type_name=None, value=None):
        self.name = name
        self.type_name = type_name
        self.value = value
        self.variable = None


class Assignment(Statement):
    def __init__(self, receiver, value):
        self.receiver = receiver      # must be an Access to be valid
        self.value = value


class If(Statement):
    def __init__(self, condition, then_statements, else_statements=None):
        self.condition = condition
        self.then_statements = then_statements
        self.else_statements = else_statements if else_statements is not None else []


class Case(Statement):
    def __init__(self, value, statements):
        self.value = value            # Expression | None (None for DEFAULT)
        self.statements = statements


class Switch(Statement):
    def __init__(self, condition, cases):
        self.condition = condition
        self.cases = cases            # list[Case], DEFAULT last


class While(Statement):
    def __init__(self, condition, statements):
        self.condition = condition
        self.statements = statements


class Return(Statement):
    def __init__(self, value):
        self.value = value


# ---------- EXPRESSIONS ----------
class Expression(ASTNode):
    type = None                       # environment.Type, set by the analyzer


class Literal(Expression):
    def __init__(self, literal):
        # None, bool, int, Decimal, environment.Character or str
        self.literal = literal

    def fields(self):
        # True == 1 in Python; keep literal kinds distinct.
        return {"literal": (type(self.literal), self.literal)}


class Group(Expression):
    def __init__(self, expression):
        self.expression = expression


class Binary(Expression):
    def __init__(self, operator, left, right):
        self.operator = operator
        self.left = left
        self.right = right


class Access(Expression):
    def __init__(self, name, offset=None):
        self.name = name
        self.offset = offset          # index expression for list element access
        self.variable = None


class Call(Expression):
    def __init__(self, name, arguments):
        self.name = name
        self.arguments = arguments
        self.function = None


class ListLiteral(Expression):
    def __init__(self, values):
        self.values = values
