"""Lox tree-walking interpreter — public API."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from .ast import Expr, Stmt
from .errors import Diagnostics, LoxError, LoxRuntimeError, ParseError
from .parse import Parser
from .resolve import Resolver
from .runtime import Interpreter
from .tokens import tokenize

__all__ = [
    "Diagnostics",
    "LoxError",
    "LoxRuntimeError",
    "ParseError",
    "Session",
    "parse",
    "resolve",
    "run",
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# Each nested expression or Lox call costs several Python frames.
RECURSION_LIMIT = 10_000


def _raise_recursion_limit() -> None:
    if sys.getrecursionlimit() < RECURSION_LIMIT:
        sys.setrecursionlimit(RECURSION_LIMIT)


def parse(source: str, diagnostics: Diagnostics | None = None) -> list[Stmt]:
    """Tokenize and parse Lox source. Errors are reported to `diagnostics`."""
    _raise_recursion_limit()
    diag = diagnostics if diagnostics is not None else Diagnostics()
    tokens = tokenize(source, diag)
    return Parser(tokens, diag).parse()


def resolve(
    stmts: list[Stmt], diagnostics: Diagnostics | None = None
) -> dict[Expr, int]:
    """Compute the scope-distance table for parsed statements."""
    _raise_recursion_limit()
    return Resolver(diagnostics).resolve(stmts)


class Session:
    """One interpreter with persistent globals, as used by a REPL.

    Each `run` goes tokenize → parse → resolve → interpret, stopping before
    interpretation if any compile-time error was reported. Sessions share no
    state, so independent programs should each get their own.
    """

    def __init__(
        self,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ):
        _raise_recursion_limit()
        self.diagnostics = Diagnostics(stderr)
        self.interpreter = Interpreter(stdout)

    def run(self, source: str) -> None:
        logger.debug("scanning and parsing")
        stmts = parse(source, self.diagnostics)
        if self.diagnostics.had_error:
            return
        logger.debug("resolving")
        table = resolve(stmts, self.diagnostics)
        if self.diagnostics.had_error:
            return
        for expr, depth in table.items():
            self.interpreter.resolve(expr, depth)
        logger.debug("running")
        self.interpreter.interpret(stmts, self.diagnostics)


def run(
    source: str,
    *,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> Diagnostics:
    """Run a whole program in a fresh session and return its diagnostics."""
    session = Session(stdout, stderr)
    session.run(source)
    return session.diagnostics
