class PlcError(Exception):
    kind = "Plc"

    def __init__(self, message: str, index: int | None = None):
        super().__init__(message)
        self.message = message
        self.index = index

    def format(self) -> str:
        if self.index is None:
            return f"{self.kind} error: {self.message}"
        return f"{self.kind} error: {self.message} (at index {self.index})"

    def __str__(self) -> str:
        return self.format()


class LexError(PlcError):
    kind = "Lex"


class ParseError(PlcError):
    kind = "Parse"


class AnalysisError(PlcError):
    kind = "Analysis"


class PlcRuntimeError(PlcError):
    kind = "Runtime"


class ScopeError(PlcError):
    # Raised by Scope lookups and redefinitions; each pass re-raises it as its own kind.
    kind = "Scope"
