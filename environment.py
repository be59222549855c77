"""Types, bindings and runtime values shared by the analyzer and the interpreter."""

from dataclasses import dataclass
from decimal import Decimal

from errors import AnalysisError


class Type:
    def __init__(self, name, jvm_name):
        self.name = name
        self.jvm_name = jvm_name

    def __repr__(self):
        return f"Type({self.name})"


ANY = Type("Any", "Object")
NIL = Type("Nil", "Void")
COMPARABLE = Type("Comparable", "Comparable")
BOOLEAN = Type("Boolean", "boolean")
INTEGER = Type("Integer", "int")
DECIMAL = Type("Decimal", "double")
CHARACTER = Type("Character", "char")
STRING = Type("String", "String")

TYPES = {t.name: t for t in (ANY, NIL, COMPARABLE, BOOLEAN, INTEGER, DECIMAL, CHARACTER, STRING)}


def get_type(name, index=None):
    if name not in TYPES:
        raise AnalysisError(f"Unknown type: {name}", index)
    return TYPES[name]


@dataclass(frozen=True, order=True)
class Character:
    value: str

    def __str__(self):
        return self.value


class Variable:
    def __init__(self, name, jvm_name, type, mutable, value=None):
        self.name = name
        self.jvm_name = jvm_name
        self.type = type
        self.mutable = mutable
        self.value = value

    def __repr__(self):
        return f"Variable({self.name}: {self.type.name if self.type else '?'})"


class Function:
    def __init__(self, name, jvm_name, arity, function, parameter_types=None, return_type=None):
        self.name = name
        self.jvm_name = jvm_name
        self.arity = arity
        self.function = function      # callable(list) -> value
        self.parameter_types = parameter_types
        self.return_type = return_type

    def invoke(self, args):
        return self.function(args)

    def __repr__(self):
        return f"Function({self.name}/{self.arity})"


def to_text(value):
    if value is None:
        return "NIL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return "[" + ", ".join(to_text(v) for v in value) + "]"
    return str(value)


def type_name_of(value):
    if value is None:
        return "Nil"
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Integer"
    if isinstance(value, Decimal):
        return "Decimal"
    if isinstance(value, Character):
        return "Character"
    if isinstance(value, str):
        return "String"
    if isinstance(value, list):
        return "List"
    return type(value).__name__
