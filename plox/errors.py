"""Lox diagnostics — error types and the reporting sink."""

from __future__ import annotations

import sys
from typing import TextIO

from .tokens import TK_EOF, Token


class LoxError(Exception):
    """Base error for Lox parsing/evaluation."""

    def __init__(self, msg: str, token: Token | None = None):
        if token is None:
            super().__init__(msg)
        else:
            super().__init__(f"{msg} at line {token.line}")
        self.msg = msg
        self.token = token


class ParseError(LoxError):
    """Unwinds the parser to the nearest declaration boundary."""


class LoxRuntimeError(LoxError):
    """Runtime fault (type mismatch, bad call, undefined name, etc.)."""

    token: Token

    def __init__(self, msg: str, token: Token):
        super().__init__(msg, token)


class Diagnostics:
    """Collects compile-time and runtime errors for one session.

    Compile-time errors set `had_error` and runtime errors set
    `had_runtime_error`. Every formatted line goes to `stream` and is also
    kept in `messages`.
    """

    def __init__(self, stream: TextIO | None = None):
        self.stream: TextIO | None = stream
        self.had_error: bool = False
        self.had_runtime_error: bool = False
        self.messages: list[str] = []

    def reset(self) -> None:
        """Clear the compile-time flag. The runtime flag is sticky."""
        self.had_error = False

    def error(self, line: int, message: str) -> None:
        self._report(line, "", message)

    def token_error(self, token: Token, message: str) -> None:
        if token.type == TK_EOF:
            self._report(token.line, " at end", message)
        else:
            self._report(token.line, " at '" + token.lexeme + "'", message)

    def runtime_error(self, err: LoxRuntimeError) -> None:
        self.runtime_fault(err.token.line, err.msg)

    def runtime_fault(self, line: int, message: str) -> None:
        self._write(message + "\n[line " + str(line) + "]")
        self.had_runtime_error = True

    def _report(self, line: int, where: str, message: str) -> None:
        self._write("[line " + str(line) + "] Error" + where + ": " + message)
        self.had_error = True

    def _write(self, text: str) -> None:
        self.messages.append(text)
        stream = self.stream if self.stream is not None else sys.stderr
        print(text, file=stream)
