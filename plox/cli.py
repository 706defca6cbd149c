"""Lox CLI — run a script file or start an interactive prompt."""

from __future__ import annotations

import logging
import sys

from . import Session, parse
from .emit import to_sexpr
from .errors import Diagnostics

EX_OK = 0
EX_USAGE = 64
EX_DATAERR = 65
EX_NOINPUT = 66
EX_SOFTWARE = 70

USAGE: str = """\
plox [OPTIONS] [SCRIPT]

Run a Lox script, or start an interactive prompt when no script is given.

Options:
  --debug      Log pipeline phases to stderr
  --dump-ast   Print the parsed program as s-expressions instead of running it
  --help       Show this help message
"""


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    debug = False
    dump_ast = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return EX_OK
        elif arg == "--debug":
            debug = True
            i += 1
        elif arg == "--dump-ast":
            dump_ast = True
            i += 1
        elif arg.startswith("-"):
            print("plox: unknown flag '" + arg + "'", file=sys.stderr)
            print(USAGE, end="", file=sys.stderr)
            return EX_USAGE
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("plox: unexpected argument '" + arg + "'", file=sys.stderr)
            print(USAGE, end="", file=sys.stderr)
            return EX_USAGE

    if debug:
        logging.basicConfig(
            level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr
        )

    if filepath == "":
        if dump_ast:
            print("plox: --dump-ast requires a script", file=sys.stderr)
            return EX_USAGE
        return run_prompt()

    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("plox: " + filepath + ": No such file or directory", file=sys.stderr)
        return EX_NOINPUT
    except OSError as e:
        print("plox: " + filepath + ": " + str(e), file=sys.stderr)
        return EX_NOINPUT
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("plox: " + filepath + ": invalid utf-8", file=sys.stderr)
        return EX_DATAERR

    if dump_ast:
        return dump(source)
    return run_source(source)


def run_source(source: str) -> int:
    """Run a whole program and map its diagnostics to an exit code."""
    session = Session()
    session.run(source)
    if session.diagnostics.had_error:
        return EX_USAGE
    if session.diagnostics.had_runtime_error:
        return EX_SOFTWARE
    return EX_OK


def dump(source: str) -> int:
    diagnostics = Diagnostics()
    stmts = parse(source, diagnostics)
    for st in stmts:
        try:
            print(to_sexpr(st))
        except RecursionError:
            print("plox: statement too deeply nested to print", file=sys.stderr)
            return EX_SOFTWARE
    return EX_USAGE if diagnostics.had_error else EX_OK


def run_prompt() -> int:
    """Read-eval-print loop over one persistent session; EOF ends it."""
    session = Session()
    while True:
        session.diagnostics.reset()
        try:
            line = input("> ")
        except EOFError:
            print()
            return EX_OK
        except KeyboardInterrupt:
            print()
            continue
        session.run(line)


if __name__ == "__main__":
    sys.exit(main())
