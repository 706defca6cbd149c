"""Lox emitter — renders the AST as source text or as a debug s-expression.

Both renderers are total over `plox/ast.py`: if a node type is added, update
them alongside it.

`to_source` adds no parentheses of its own. Every `Grouping` node prints as a
pair of parentheses and the parser only builds trees that already respect
precedence, so parsing the emitted text gives back the same tree.
"""

from __future__ import annotations

from decimal import Decimal

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
)
from .runtime import format_number


def to_source(stmts: list[Stmt]) -> str:
    """Render statements back into Lox source text."""
    return _Emitter().emit_program(stmts)


def expr_to_source(expr: Expr) -> str:
    return _render_expr(expr)


def to_sexpr(node: Expr | Stmt) -> str:
    """Debug form, e.g. `(* (group (+ 1 2)) x)`."""
    if isinstance(node, Stmt):
        return _sexpr_stmt(node)
    return _sexpr_expr(node)


# ============================================================
# Source text
# ============================================================


def _literal_source(value: float | str | bool | None) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return '"' + value + '"'
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    # Scanner literals are plain decimals; never emit exponent notation.
    return format(Decimal(repr(value)), "f")


def _render_expr(expr: Expr) -> str:
    if isinstance(expr, Literal):
        return _literal_source(expr.value)
    if isinstance(expr, Grouping):
        return "(" + _render_expr(expr.expression) + ")"
    if isinstance(expr, Variable):
        return expr.name.lexeme
    if isinstance(expr, This):
        return "this"
    if isinstance(expr, Assign):
        return expr.name.lexeme + " = " + _render_expr(expr.value)
    if isinstance(expr, (Binary, Logical)):
        return (
            _render_expr(expr.left)
            + " "
            + expr.operator.lexeme
            + " "
            + _render_expr(expr.right)
        )
    if isinstance(expr, Unary):
        return expr.operator.lexeme + _render_expr(expr.right)
    if isinstance(expr, Call):
        args = ", ".join(_render_expr(a) for a in expr.arguments)
        return _render_expr(expr.callee) + "(" + args + ")"
    if isinstance(expr, Get):
        return _render_expr(expr.obj) + "." + expr.name.lexeme
    if isinstance(expr, Set):
        return (
            _render_expr(expr.obj)
            + "."
            + expr.name.lexeme
            + " = "
            + _render_expr(expr.value)
        )
    raise TypeError("unhandled expr type")


class _Emitter:
    _INDENT: str = "    "

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent_level: int = 0

    # ── Public ──────────────────────────────────────────────

    def emit_program(self, stmts: list[Stmt]) -> str:
        self._lines = []
        self._indent_level = 0
        for st in stmts:
            self._emit_stmt(st)
        text = "\n".join(self._lines)
        if text == "":
            return ""
        return text + "\n"

    # ── Lines / Blocks ──────────────────────────────────────

    def _emit_line(self, line: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + line)

    def _emit_stmt_block(self, stmts: list[Stmt]) -> None:
        self._indent_level += 1
        for st in stmts:
            self._emit_stmt(st)
        self._indent_level -= 1

    def _emit_branch(self, header: str, body: Stmt) -> None:
        """Header followed by a braced block or a single indented statement."""
        if isinstance(body, BlockStmt):
            self._emit_line(header + " {")
            self._emit_stmt_block(body.statements)
            self._emit_line("}")
            return
        self._emit_line(header)
        self._indent_level += 1
        self._emit_stmt(body)
        self._indent_level -= 1

    # ── Stmts ───────────────────────────────────────────────

    def _emit_stmt(self, st: Stmt) -> None:
        if isinstance(st, ExprStmt):
            self._emit_line(_render_expr(st.expression) + ";")
            return
        if isinstance(st, PrintStmt):
            self._emit_line("print " + _render_expr(st.expression) + ";")
            return
        if isinstance(st, VarStmt):
            line = "var " + st.name.lexeme
            if st.initializer is not None:
                line += " = " + _render_expr(st.initializer)
            self._emit_line(line + ";")
            return
        if isinstance(st, ReturnStmt):
            if st.value is None:
                self._emit_line("return;")
            else:
                self._emit_line("return " + _render_expr(st.value) + ";")
            return
        if isinstance(st, BlockStmt):
            self._emit_line("{")
            self._emit_stmt_block(st.statements)
            self._emit_line("}")
            return
        if isinstance(st, IfStmt):
            self._emit_branch("if (" + _render_expr(st.condition) + ")", st.then_branch)
            if st.else_branch is not None:
                self._emit_branch("else", st.else_branch)
            return
        if isinstance(st, WhileStmt):
            self._emit_branch("while (" + _render_expr(st.condition) + ")", st.body)
            return
        if isinstance(st, FunctionStmt):
            self._emit_function("fun ", st)
            return
        if isinstance(st, ClassStmt):
            header = "class " + st.name.lexeme
            if st.superclass is not None:
                header += " < " + st.superclass.name.lexeme
            self._emit_line(header + " {")
            self._indent_level += 1
            for method in st.methods:
                self._emit_function("", method)
            self._indent_level -= 1
            self._emit_line("}")
            return
        raise TypeError("unhandled stmt type")

    def _emit_function(self, prefix: str, fn: FunctionStmt) -> None:
        params = ", ".join(p.lexeme for p in fn.params)
        self._emit_line(prefix + fn.name.lexeme + "(" + params + ") {")
        self._emit_stmt_block(fn.body)
        self._emit_line("}")


# ============================================================
# S-expressions
# ============================================================


def _parenthesize(name: str, *parts: str) -> str:
    if not parts:
        return "(" + name + ")"
    return "(" + name + " " + " ".join(parts) + ")"


def _sexpr_expr(expr: Expr) -> str:
    if isinstance(expr, Literal):
        if isinstance(expr.value, str):
            return '"' + expr.value + '"'
        if isinstance(expr.value, float):
            return format_number(expr.value)
        return _literal_source(expr.value)
    if isinstance(expr, Grouping):
        return _parenthesize("group", _sexpr_expr(expr.expression))
    if isinstance(expr, Variable):
        return expr.name.lexeme
    if isinstance(expr, This):
        return "this"
    if isinstance(expr, Assign):
        return _parenthesize("=", expr.name.lexeme, _sexpr_expr(expr.value))
    if isinstance(expr, (Binary, Logical)):
        return _parenthesize(
            expr.operator.lexeme, _sexpr_expr(expr.left), _sexpr_expr(expr.right)
        )
    if isinstance(expr, Unary):
        return _parenthesize(expr.operator.lexeme, _sexpr_expr(expr.right))
    if isinstance(expr, Call):
        return _parenthesize(
            "call",
            _sexpr_expr(expr.callee),
            *[_sexpr_expr(a) for a in expr.arguments],
        )
    if isinstance(expr, Get):
        return _parenthesize(".", _sexpr_expr(expr.obj), expr.name.lexeme)
    if isinstance(expr, Set):
        return _parenthesize(
            "=.", _sexpr_expr(expr.obj), expr.name.lexeme, _sexpr_expr(expr.value)
        )
    raise TypeError("unhandled expr type")


def _sexpr_stmt(st: Stmt) -> str:
    if isinstance(st, ExprStmt):
        return _parenthesize(";", _sexpr_expr(st.expression))
    if isinstance(st, PrintStmt):
        return _parenthesize("print", _sexpr_expr(st.expression))
    if isinstance(st, VarStmt):
        if st.initializer is None:
            return _parenthesize("var", st.name.lexeme)
        return _parenthesize("var", st.name.lexeme, _sexpr_expr(st.initializer))
    if isinstance(st, ReturnStmt):
        if st.value is None:
            return _parenthesize("return")
        return _parenthesize("return", _sexpr_expr(st.value))
    if isinstance(st, BlockStmt):
        return _parenthesize("block", *[_sexpr_stmt(s) for s in st.statements])
    if isinstance(st, IfStmt):
        parts = [_sexpr_expr(st.condition), _sexpr_stmt(st.then_branch)]
        if st.else_branch is not None:
            parts.append(_sexpr_stmt(st.else_branch))
        return _parenthesize("if", *parts)
    if isinstance(st, WhileStmt):
        return _parenthesize("while", _sexpr_expr(st.condition), _sexpr_stmt(st.body))
    if isinstance(st, FunctionStmt):
        params = "(" + " ".join(p.lexeme for p in st.params) + ")"
        return _parenthesize(
            "fun", st.name.lexeme, params, *[_sexpr_stmt(s) for s in st.body]
        )
    if isinstance(st, ClassStmt):
        parts = [st.name.lexeme]
        if st.superclass is not None:
            parts += ["<", st.superclass.name.lexeme]
        parts += [_sexpr_stmt(m) for m in st.methods]
        return _parenthesize("class", *parts)
    raise TypeError("unhandled stmt type")
