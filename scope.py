from environment import Function, Variable
from errors import ScopeError


class Scope:
    """One frame of the lexical environment chain.

    Variables are keyed by name and functions by (name, arity). Lookups walk
    outward through parent frames so inner definitions shadow outer ones.
    """

    def __init__(self, parent=None):
        self.parent = parent
        self.variables = {}
        self.functions = {}

    def define_variable(self, name, mutable, value=None, type=None, jvm_name=None):
        if name in self.variables:
            raise ScopeError(f"Variable already defined in this scope: {name}")
        variable = Variable(name, jvm_name or name, type, mutable, value)
        self.variables[name] = variable
        return variable

    def lookup_variable(self, name):
        scope = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope.parent
        raise ScopeError(f"Undefined variable: {name}")

    def define_function(self, name, arity, function, parameter_types=None, return_type=None, jvm_name=None):
        key = (name, arity)
        if key in self.functions:
            raise ScopeError(f"Function already defined in this scope: {name}/{arity}")
        binding = Function(name, jvm_name or name, arity, function, parameter_types, return_type)
        self.functions[key] = binding
        return binding

    def lookup_function(self, name, arity):
        scope = self
        while scope is not None:
            if (name, arity) in scope.functions:
                return scope.functions[(name, arity)]
            scope = scope.parent
        raise ScopeError(f"Undefined function: {name}/{arity}")

    def check_merge(self, child):
        for name in child.variables:
            if name in self.variables:
                raise ScopeError(f"Variable already defined in this scope: {name}")
        for name, arity in child.functions:
            if (name, arity) in self.functions:
                raise ScopeError(f"Function already defined in this scope: {name}/{arity}")

    def merge(self, child):
        """Move a child frame's bindings into this frame, or none of them on a clash."""
        self.check_merge(child)
        self.variables.update(child.variables)
        self.functions.update(child.functions)

    def __repr__(self):
        return f"Scope(variables={list(self.variables)}, functions={list(self.functions)})"
