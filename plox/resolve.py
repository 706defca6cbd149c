"""Lox resolver — static scope-distance pass run before interpretation.

For every variable reference and assignment the resolver records how many
scopes lie between the expression and the scope that declares the name.
Names not found in any local scope are left out of the table and looked up
in the globals at run time. The scope structure here must mirror the
environments the interpreter creates exactly: one per block, one per call,
and one holding `this` around each class's methods.
"""

from __future__ import annotations

import logging
from enum import Enum

from .ast import (
    Assign,
    Binary,
    BlockStmt,
    Call,
    ClassStmt,
    Expr,
    ExprStmt,
    FunctionStmt,
    Get,
    Grouping,
    IfStmt,
    Literal,
    Logical,
    PrintStmt,
    ReturnStmt,
    Set,
    Stmt,
    This,
    Unary,
    VarStmt,
    Variable,
    WhileStmt,
    first_line,
)
from .errors import Diagnostics
from .tokens import Token

logger = logging.getLogger(__name__)


class FunctionKind(Enum):
    NONE = "none"
    FUNCTION = "function"
    METHOD = "method"
    INITIALIZER = "initializer"


class ClassKind(Enum):
    NONE = "none"
    CLASS = "class"


class Resolver:
    """Computes the scope-distance table for a list of statements.

    `locals` maps expression nodes (by identity) to their distance. Errors go
    to `diagnostics` and resolution continues past them.
    """

    def __init__(self, diagnostics: Diagnostics | None = None):
        self.diagnostics: Diagnostics = (
            diagnostics if diagnostics is not None else Diagnostics()
        )
        self.locals: dict[Expr, int] = {}
        # name -> defined? ; the global scope is never on this stack
        self._scopes: list[dict[str, bool]] = []
        self._function: FunctionKind = FunctionKind.NONE
        self._class: ClassKind = ClassKind.NONE

    def resolve(self, stmts: list[Stmt]) -> dict[Expr, int]:
        for st in stmts:
            try:
                self._resolve_stmt(st)
            except RecursionError:
                self._scopes = []
                self._function = FunctionKind.NONE
                self._class = ClassKind.NONE
                self.diagnostics.error(
                    first_line(st), "Expression too deeply nested."
                )
        return self.locals

    def _resolve_stmts(self, stmts: list[Stmt]) -> None:
        for st in stmts:
            self._resolve_stmt(st)

    # ---- Scopes -------------------------------------------------------------

    def _begin_scope(self) -> None:
        self._scopes.append({})

    def _end_scope(self) -> None:
        self._scopes.pop()

    def _declare(self, name: Token) -> None:
        if not self._scopes:
            return
        scope = self._scopes[-1]
        if name.lexeme in scope:
            self.diagnostics.token_error(
                name, "Already a variable with this name in this scope."
            )
        scope[name.lexeme] = False

    def _define(self, name: Token) -> None:
        if not self._scopes:
            return
        self._scopes[-1][name.lexeme] = True

    def _resolve_local(self, expr: Expr, name: Token) -> None:
        for i in range(len(self._scopes) - 1, -1, -1):
            if name.lexeme in self._scopes[i]:
                depth = len(self._scopes) - 1 - i
                self.locals[expr] = depth
                logger.debug(
                    "resolved '%s' at line %d to depth %d", name.lexeme, name.line, depth
                )
                return
        # Not found locally: global, looked up by name at run time.

    def _resolve_function(self, fn: FunctionStmt, kind: FunctionKind) -> None:
        enclosing = self._function
        self._function = kind
        self._begin_scope()
        try:
            for param in fn.params:
                self._declare(param)
                self._define(param)
            self._resolve_stmts(fn.body)
        finally:
            self._end_scope()
            self._function = enclosing

    # ---- Statements ---------------------------------------------------------

    def _resolve_stmt(self, st: Stmt) -> None:
        if isinstance(st, BlockStmt):
            self._begin_scope()
            self._resolve_stmts(st.statements)
            self._end_scope()
            return

        if isinstance(st, VarStmt):
            self._declare(st.name)
            if st.initializer is not None:
                self._resolve_expr(st.initializer)
            self._define(st.name)
            return

        if isinstance(st, FunctionStmt):
            # Defined before the body so the function can recurse.
            self._declare(st.name)
            self._define(st.name)
            self._resolve_function(st, FunctionKind.FUNCTION)
            return

        if isinstance(st, ClassStmt):
            self._resolve_class(st)
            return

        if isinstance(st, ExprStmt):
            self._resolve_expr(st.expression)
            return

        if isinstance(st, IfStmt):
            self._resolve_expr(st.condition)
            self._resolve_stmt(st.then_branch)
            if st.else_branch is not None:
                self._resolve_stmt(st.else_branch)
            return

        if isinstance(st, PrintStmt):
            self._resolve_expr(st.expression)
            return

        if isinstance(st, ReturnStmt):
            if self._function == FunctionKind.NONE:
                self.diagnostics.token_error(
                    st.keyword, "Can't return from top-level code."
                )
            if st.value is not None:
                if self._function == FunctionKind.INITIALIZER:
                    self.diagnostics.token_error(
                        st.keyword, "Can't return a value from an initializer."
                    )
                self._resolve_expr(st.value)
            return

        if isinstance(st, WhileStmt):
            self._resolve_expr(st.condition)
            self._resolve_stmt(st.body)
            return

        raise TypeError("unhandled stmt type: " + type(st).__name__)

    def _resolve_class(self, st: ClassStmt) -> None:
        enclosing = self._class
        self._class = ClassKind.CLASS
        self._declare(st.name)
        self._define(st.name)

        if st.superclass is not None:
            if st.superclass.name.lexeme == st.name.lexeme:
                self.diagnostics.token_error(
                    st.superclass.name, "A class can't inherit from itself."
                )
            self._resolve_expr(st.superclass)

        self._begin_scope()
        self._scopes[-1]["this"] = True
        for method in st.methods:
            kind = FunctionKind.METHOD
            if method.name.lexeme == "init":
                kind = FunctionKind.INITIALIZER
            self._resolve_function(method, kind)
        self._end_scope()
        self._class = enclosing

    # ---- Expressions --------------------------------------------------------

    def _resolve_expr(self, expr: Expr) -> None:
        if isinstance(expr, Variable):
            if self._scopes and self._scopes[-1].get(expr.name.lexeme) is False:
                self.diagnostics.token_error(
                    expr.name, "Can't read local variable in its own initializer."
                )
            self._resolve_local(expr, expr.name)
            return

        if isinstance(expr, Assign):
            self._resolve_expr(expr.value)
            self._resolve_local(expr, expr.name)
            return

        if isinstance(expr, (Binary, Logical)):
            self._resolve_expr(expr.left)
            self._resolve_expr(expr.right)
            return

        if isinstance(expr, Call):
            self._resolve_expr(expr.callee)
            for arg in expr.arguments:
                self._resolve_expr(arg)
            return

        if isinstance(expr, Get):
            # Properties are looked up dynamically; only the object resolves.
            self._resolve_expr(expr.obj)
            return

        if isinstance(expr, Set):
            self._resolve_expr(expr.value)
            self._resolve_expr(expr.obj)
            return

        if isinstance(expr, This):
            if self._class == ClassKind.NONE:
                self.diagnostics.token_error(
                    expr.keyword, "Can't use 'this' outside of a class."
                )
                return
            self._resolve_local(expr, expr.keyword)
            return

        if isinstance(expr, Grouping):
            self._resolve_expr(expr.expression)
            return

        if isinstance(expr, Unary):
            self._resolve_expr(expr.right)
            return

        if isinstance(expr, Literal):
            return

        raise TypeError("unhandled expr type: " + type(expr).__name__)
