import logging
import sys
import traceback

import colorama
from colorama import Fore, Style

from analyzer import Analyzer, analyze
from ast_nodes import ASTNode, ExpressionStatement, Literal
from environment import to_text
from errors import LexError, ParseError, PlcError, PlcRuntimeError
from generator import generate
from interpreter import Interpreter
from lexer import TokenType, lex
from parser import Parser, parse
from printer import Printer, to_source
from scope import Scope

USAGE = """Usage:
  python cli.py lex <file.plc>
  python cli.py parse <file.plc>
  python cli.py check <file.plc>
  python cli.py run <file.plc> [--no-check] [--max-steps N]
  python cli.py emit <file.plc>
  python cli.py fmt <file.plc>
  python cli.py repl [--no-check] [--max-steps N]
  (optional) --debug to show Python traceback and debug logs"""

DECLARATION_KEYWORDS = ("VAR", "VAL", "LIST", "FUN")
BLOCK_OPENERS = ("DO", "SWITCH")

_colorama_inited = False


def colour(text, *styles):
    global _colorama_inited
    if not sys.stdout.isatty():
        return text
    if not _colorama_inited:
        colorama.just_fix_windows_console()
        _colorama_inited = True
    return "".join(styles) + text + Style.RESET_ALL


# AST printer (so you can SEE what the parser built)
def ast_to_dict(node):
    if node is None:
        return None
    if isinstance(node, Literal):
        return {"type": "Literal", "literal": Printer().literal(node.literal)}

    d = {"type": node.__class__.__name__}
    for key, value in node.fields().items():
        if isinstance(value, ASTNode):
            d[key] = ast_to_dict(value)
        elif isinstance(value, list):
            d[key] = [ast_to_dict(v) if isinstance(v, ASTNode) else v for v in value]
        else:
            d[key] = value
    return d


def pretty(obj, indent=0):
    sp = "  " * indent
    if isinstance(obj, dict):
        lines = []
        for k, v in obj.items():
            if isinstance(v, (dict, list)) and v:
                lines.append(f"{sp}{k}:")
                lines.append(pretty(v, indent + 1))
            else:
                lines.append(f"{sp}{k}: {v}")
        return "\n".join(lines)
    if isinstance(obj, list):
        lines = []
        for item in obj:
            lines.append(f"{sp}-")
            lines.append(pretty(item, indent + 1))
        return "\n".join(lines)
    return f"{sp}{obj}"


def describe(error, code, path):
    """Format a PlcError with the offending source line and a caret under its offset."""
    lines = [colour(error.format(), Fore.RED, Style.BRIGHT)]
    if error.index is None or code is None:
        return "\n".join(lines)

    index = min(error.index, len(code))
    start = code.rfind("\n", 0, index) + 1
    end = code.find("\n", index)
    if end == -1:
        end = len(code)
    line_no = code.count("\n", 0, index) + 1
    column = index - start

    lines.append(colour(f"  --> {path}:{line_no}:{column + 1}", Fore.CYAN))
    lines.append("  " + code[start:end])
    lines.append("  " + " " * column + colour("^", Fore.YELLOW, Style.BRIGHT))
    return "\n".join(lines)


def fail(error, code, path, debug):
    if debug:
        traceback.print_exc()
    else:
        print(describe(error, code, path))
    sys.exit(1)


def read_source(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def cmd_lex(path, debug=False):
    code = read_source(path)
    try:
        tokens = lex(code)
    except PlcError as e:
        fail(e, code, path, debug)
    for tok in tokens:
        print(f"{tok.index:5d}  {tok.type.name:<10}  {tok.literal}")


def cmd_parse(path, debug=False):
    code = read_source(path)
    try:
        source = parse(lex(code))
    except PlcError as e:
        fail(e, code, path, debug)
    print(pretty(ast_to_dict(source)))


def cmd_check(path, debug=False):
    code = read_source(path)
    try:
        analyze(parse(lex(code)))
    except PlcError as e:
        fail(e, code, path, debug)
    print(colour("ok", Fore.GREEN))


def cmd_run(path, debug=False, check=True, max_steps=None):
    code = read_source(path)
    try:
        source = parse(lex(code))
        if check:
            analyze(source)
        result = Interpreter(max_steps=max_steps).run(source)
    except PlcError as e:
        fail(e, code, path, debug)
    if result is not None:
        print(to_text(result))


def cmd_emit(path, debug=False):
    code = read_source(path)
    try:
        java = generate(analyze(parse(lex(code))))
    except PlcError as e:
        fail(e, code, path, debug)
    sys.stdout.write(java)


def cmd_fmt(path, debug=False):
    code = read_source(path)
    try:
        source = parse(lex(code))
    except PlcError as e:
        fail(e, code, path, debug)
    sys.stdout.write(to_source(source))


def _block_depth_delta(line):
    # DO and SWITCH open a block that END closes.
    try:
        tokens = lex(line)
    except LexError:
        return 0
    delta = 0
    for tok in tokens:
        if tok.type != TokenType.IDENTIFIER:
            continue
        if tok.literal in BLOCK_OPENERS:
            delta += 1
        elif tok.literal == "END":
            delta -= 1
    return delta


def _parse_statements(tokens):
    parser = Parser(tokens)
    statements = parser.parse_block()
    if parser.has():
        parser.error_here(f"Unexpected {parser.get().literal}")
    return statements


def _parse_expression(tokens):
    parser = Parser(tokens)
    expression = parser.parse_expression()
    if parser.has():
        parser.error_here(f"Unexpected {parser.get().literal}")
    return expression


class ReplSession:
    """Analyzer and interpreter scopes that persist across REPL inputs."""

    def __init__(self, check=True, max_steps=None):
        self.check = check
        self.analyzer = Analyzer()
        self.interpreter = Interpreter(max_steps=max_steps)

    def submit(self, code):
        tokens = lex(code)
        if not tokens:
            return

        first = tokens[0]
        if first.type == TokenType.IDENTIFIER and first.literal in DECLARATION_KEYWORDS:
            source = Parser(tokens).parse_source()
            self.declare(source)
            return

        try:
            statements = _parse_statements(tokens)
        except ParseError as statement_error:
            # Not a statement list; try a single expression and echo its value.
            try:
                expression = _parse_expression(tokens)
            except ParseError:
                raise statement_error
            if self.check:
                self.analyzer.visit_expression(expression, self.analyzer.scope)
            self.echo(self.interpreter.evaluate(expression, self.interpreter.scope))
            return

        if self.check:
            self.analyzer.visit_block(statements, self.analyzer.scope)
        if len(statements) == 1 and isinstance(statements[0], ExpressionStatement):
            self.echo(self.interpreter.evaluate(statements[0].expression, self.interpreter.scope))
            return
        self.interpreter.execute_block(statements, self.interpreter.scope)

    def declare(self, source):
        # Declarations land in staging frames and join the session only if all of them succeed.
        analysis = Scope(self.analyzer.scope)
        runtime = Scope(self.interpreter.scope)
        if self.check:
            self.analyzer.declare(source, analysis)
        self.interpreter.declare(source, runtime)

        self.analyzer.scope.check_merge(analysis)
        self.interpreter.scope.check_merge(runtime)
        self.analyzer.scope.merge(analysis)
        self.interpreter.scope.merge(runtime)

    def echo(self, value):
        if value is not None:
            print(to_text(value))


def cmd_repl(debug=False, check=True, max_steps=None):
    session = ReplSession(check=check, max_steps=max_steps)
    print("PLC REPL. Type :q to quit.")

    buffer_lines = []
    depth = 0
    while True:
        prompt = "plc> " if not buffer_lines else "...> "
        try:
            line = input(prompt)
        except (EOFError, KeyboardInterrupt):
            print()
            break

        stripped = line.strip()
        if not buffer_lines and stripped in (":q", ":quit", "quit", "exit"):
            break

        # Allow blank lines to submit when not inside a block.
        if not stripped and not buffer_lines:
            continue

        buffer_lines.append(line)
        depth += _block_depth_delta(line)

        # Wait for END if a block is still open.
        if depth > 0:
            continue

        code = "\n".join(buffer_lines) + "\n"
        buffer_lines = []
        depth = 0

        try:
            session.submit(code)
        except PlcError as e:
            if debug:
                traceback.print_exc()
            else:
                print(describe(e, code, "<repl>"))
        except RecursionError:
            print(describe(PlcRuntimeError("Maximum recursion depth exceeded"), code, "<repl>"))


def main():
    debug = False
    if "--debug" in sys.argv:
        debug = True
        sys.argv.remove("--debug")
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    check = True
    if "--no-check" in sys.argv:
        check = False
        sys.argv.remove("--no-check")

    max_steps = None
    if "--max-steps" in sys.argv:
        i = sys.argv.index("--max-steps")
        try:
            max_steps = int(sys.argv[i + 1])
        except (IndexError, ValueError):
            print("--max-steps expects an integer.")
            sys.exit(1)
        del sys.argv[i:i + 2]

    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    cmd = sys.argv[1]

    if cmd == "repl":
        if len(sys.argv) != 2:
            print(USAGE)
            sys.exit(1)
        cmd_repl(debug=debug, check=check, max_steps=max_steps)
        return

    if len(sys.argv) != 3:
        print(USAGE)
        sys.exit(1)

    path = sys.argv[2]

    if cmd == "lex":
        cmd_lex(path, debug=debug)
    elif cmd == "parse":
        cmd_parse(path, debug=debug)
    elif cmd == "check":
        cmd_check(path, debug=debug)
    elif cmd == "run":
        cmd_run(path, debug=debug, check=check, max_steps=max_steps)
    elif cmd == "emit":
        cmd_emit(path, debug=debug)
    elif cmd == "fmt":
        cmd_fmt(path, debug=debug)
    else:
        print(f"Unknown command: {cmd}")
        sys.exit(1)


if __name__ == "__main__":
    main()
