"""Lox tokenizer — lexes source into a flat token list."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .errors import Diagnostics


# Token type constants
TK_NUMBER = "NUMBER"
TK_STRING = "STRING"
TK_IDENT = "IDENT"
TK_OP = "OP"
TK_EOF = "EOF"

# Keywords use the keyword itself as the token type.
KEYWORDS: set[str] = {
    "and",
    "class",
    "else",
    "false",
    "for",
    "fun",
    "if",
    "nil",
    "or",
    "print",
    "return",
    "super",
    "this",
    "true",
    "var",
    "while",
}

# Two-character operators, checked before single characters
MULTI_OPS: list[str] = [
    "!=",
    "==",
    ">=",
    "<=",
]

SINGLE_OPS: set[str] = {
    "(",
    ")",
    "{",
    "}",
    ",",
    ".",
    "-",
    "+",
    ";",
    "/",
    "*",
    "!",
    "=",
    ">",
    "<",
}


class Token:
    """A token with type, raw lexeme, literal value, and position."""

    def __init__(
        self,
        type_: str,
        lexeme: str,
        literal: float | str | None,
        line: int,
        col: int = 0,
    ):
        self.type: str = type_
        self.lexeme: str = lexeme
        self.literal: float | str | None = literal
        self.line: int = line
        self.col: int = col

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.lexeme)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def tokenize(source: str, diagnostics: Diagnostics | None = None) -> list[Token]:
    """Tokenize Lox source into a flat list ending with TK_EOF.

    Lexical errors are reported to `diagnostics` and scanning continues past
    the offending text. Without a sink they are silently skipped.
    """
    tokens: list[Token] = []
    pos = 0
    line = 1
    col = 1
    length = len(source)

    def report(err_line: int, msg: str) -> None:
        if diagnostics is not None:
            diagnostics.error(err_line, msg)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            col = 1
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r":
            pos += 1
            col += 1
            continue

        # Line comment: //
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        start_pos = pos
        start_line = line
        start_col = col

        # Number: digits with optional fraction
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
                col += 1
            if (
                pos + 1 < length
                and source[pos] == "."
                and _is_digit(source[pos + 1])
            ):
                pos += 1
                col += 1
                while pos < length and _is_digit(source[pos]):
                    pos += 1
                    col += 1
            raw = source[start_pos:pos]
            tokens.append(Token(TK_NUMBER, raw, float(raw), start_line, start_col))
            continue

        # String literal: "..." (may span lines, no escapes)
        if c == '"':
            pos += 1
            col += 1
            while pos < length and source[pos] != '"':
                if source[pos] == "\n":
                    line += 1
                    col = 0
                pos += 1
                col += 1
            if pos >= length:
                report(start_line, "Unterminated string.")
                continue
            pos += 1  # skip closing "
            col += 1
            raw = source[start_pos:pos]
            tokens.append(Token(TK_STRING, raw, raw[1:-1], start_line, start_col))
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
                col += 1
            word = source[start_pos:pos]
            if word in KEYWORDS:
                tokens.append(Token(word, word, None, start_line, start_col))
            else:
                tokens.append(Token(TK_IDENT, word, None, start_line, start_col))
            continue

        # Two-character operators
        matched = False
        for op in MULTI_OPS:
            if source[pos : pos + 2] == op:
                tokens.append(Token(TK_OP, op, None, start_line, start_col))
                pos += 2
                col += 2
                matched = True
                break
        if matched:
            continue

        # Single-character operators
        if c in SINGLE_OPS:
            tokens.append(Token(TK_OP, c, None, start_line, start_col))
            pos += 1
            col += 1
            continue

        report(line, "Unexpected character " + repr(c) + ".")
        pos += 1
        col += 1

    tokens.append(Token(TK_EOF, "", None, line, col))
    return tokens
