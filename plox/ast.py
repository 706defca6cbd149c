"""Lox AST — parse-time node definitions.

Expression nodes compare and hash by identity (`eq=False`): the resolver keys
its scope-distance table on the node object itself, so two structurally equal
references to the same name in different scopes stay distinct.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

from .tokens import Token


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(eq=False)
class Expr:
    """Base for all expressions."""


@dataclass(eq=False)
class Assign(Expr):
    """name = value."""

    name: Token
    value: Expr


@dataclass(eq=False)
class Binary(Expr):
    """left op right for arithmetic, comparison and equality."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Call(Expr):
    """callee(args). paren is the closing ')' for error location."""

    callee: Expr
    paren: Token
    arguments: list[Expr]


@dataclass(eq=False)
class Get(Expr):
    """obj.name."""

    obj: Expr
    name: Token


@dataclass(eq=False)
class Grouping(Expr):
    """( expression )."""

    expression: Expr


@dataclass(eq=False)
class Literal(Expr):
    """Number, string, boolean, or nil (None)."""

    value: float | str | bool | None


@dataclass(eq=False)
class Logical(Expr):
    """left and/or right."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Set(Expr):
    """obj.name = value."""

    obj: Expr
    name: Token
    value: Expr


@dataclass(eq=False)
class This(Expr):
    keyword: Token


@dataclass(eq=False)
class Unary(Expr):
    """! or - applied to right."""

    operator: Token
    right: Expr


@dataclass(eq=False)
class Variable(Expr):
    name: Token


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(eq=False)
class Stmt:
    """Base for all statements."""


@dataclass(eq=False)
class BlockStmt(Stmt):
    """{ statements }."""

    statements: list[Stmt]


@dataclass(eq=False)
class ExprStmt(Stmt):
    """Expression evaluated for effect."""

    expression: Expr


@dataclass(eq=False)
class FunctionStmt(Stmt):
    """fun name(params) { body }, also used for methods."""

    name: Token
    params: list[Token]
    body: list[Stmt]


@dataclass(eq=False)
class IfStmt(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass(eq=False)
class PrintStmt(Stmt):
    expression: Expr


@dataclass(eq=False)
class ReturnStmt(Stmt):
    """return value?; keyword is kept for error location."""

    keyword: Token
    value: Expr | None


@dataclass(eq=False)
class VarStmt(Stmt):
    """var name = initializer?;"""

    name: Token
    initializer: Expr | None


@dataclass(eq=False)
class WhileStmt(Stmt):
    condition: Expr
    body: Stmt


@dataclass(eq=False)
class ClassStmt(Stmt):
    """class Name < Superclass { methods }."""

    name: Token
    superclass: Variable | None
    methods: list[FunctionStmt]


def first_line(node: Expr | Stmt) -> int:
    """Line of the first token found under `node`, or 1 if it holds none.

    Walks with an explicit stack so it works on trees too deep to recurse.
    """
    pending: list[object] = [node]
    while pending:
        item = pending.pop()
        if isinstance(item, Token):
            return item.line
        if isinstance(item, list):
            pending.extend(reversed(item))
        elif isinstance(item, (Expr, Stmt)):
            pending.extend(reversed([getattr(item, f.name) for f in fields(item)]))
    return 1
