"""Lox parser — recursive descent, one method per grammar production."""

from __future__ import annotations

import logging

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
from .errors import Diagnostics, ParseError
from .tokens import TK_EOF, TK_IDENT, TK_NUMBER, TK_STRING, Token

logger = logging.getLogger(__name__)

MAX_ARGS = 255

EQUALITY_OPS: tuple[str, ...] = ("!=", "==")
COMPARE_OPS: tuple[str, ...] = (">", ">=", "<", "<=")

# Tokens that begin a statement; panic-mode recovery stops in front of them.
STMT_STARTS: set[str] = {
    "class",
    "fun",
    "var",
    "for",
    "if",
    "while",
    "print",
    "return",
}


class Parser:
    """Recursive descent parser for Lox.

    Syntax errors are reported to `diagnostics` and never escape `parse()`:
    the failing declaration is dropped and parsing resumes at the next
    statement boundary, so one pass can report several errors.
    """

    def __init__(self, tokens: list[Token], diagnostics: Diagnostics | None = None):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.diagnostics: Diagnostics = (
            diagnostics if diagnostics is not None else Diagnostics()
        )

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def at_end(self) -> bool:
        return self.current().type == TK_EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if not self.at_end():
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        tok = self.current()
        return tok.type != TK_STRING and tok.lexeme == value

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def match(self, *values: str) -> bool:
        for value in values:
            if self.at(value):
                self.advance()
                return True
        return False

    def expect(self, value: str, msg: str) -> Token:
        if self.at(value):
            return self.advance()
        raise self.error(self.current(), msg)

    def expect_ident(self, msg: str) -> Token:
        if self.at_type(TK_IDENT):
            return self.advance()
        raise self.error(self.current(), msg)

    def error(self, tok: Token, msg: str) -> ParseError:
        """Report a syntax error and return the signal for the caller to raise."""
        self.diagnostics.token_error(tok, msg)
        return ParseError(msg, tok)

    def synchronize(self) -> None:
        """Discard tokens until the next statement boundary."""
        self.advance()
        while not self.at_end():
            prev = self.previous()
            if prev.type != TK_STRING and prev.lexeme == ";":
                return
            if self.current().type in STMT_STARTS:
                return
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse(self) -> list[Stmt]:
        stmts: list[Stmt] = []
        while not self.at_end():
            try:
                decl = self.parse_decl()
            except RecursionError:
                self.error(self.current(), "Expression too deeply nested.")
                self.synchronize()
                continue
            if decl is not None:
                stmts.append(decl)
        logger.debug("parsed %d statements", len(stmts))
        return stmts

    def parse_decl(self) -> Stmt | None:
        """Declaration, or None if it failed to parse and was skipped."""
        try:
            if self.match("class"):
                return self.parse_class_decl()
            if self.match("fun"):
                return self.parse_function("function")
            if self.match("var"):
                return self.parse_var_decl()
            return self.parse_stmt()
        except ParseError as e:
            logger.debug("recovering from parse error: %s", e)
            self.synchronize()
            return None

    def parse_class_decl(self) -> ClassStmt:
        name = self.expect_ident("Expect class name.")
        superclass: Variable | None = None
        if self.match("<"):
            superclass = Variable(self.expect_ident("Expect superclass name."))
        self.expect("{", "Expect '{' before class body.")
        methods: list[FunctionStmt] = []
        while not self.at("}") and not self.at_end():
            methods.append(self.parse_function("method"))
        self.expect("}", "Expect '}' after class body.")
        return ClassStmt(name, superclass, methods)

    def parse_function(self, kind: str) -> FunctionStmt:
        name = self.expect_ident("Expect " + kind + " name.")
        self.expect("(", "Expect '(' after " + kind + " name.")
        params: list[Token] = []
        if not self.at(")"):
            params.append(self.expect_ident("Expect parameter name."))
            while self.match(","):
                if len(params) >= MAX_ARGS:
                    self.error(
                        self.current(),
                        "Can't have more than " + str(MAX_ARGS) + " parameters.",
                    )
                params.append(self.expect_ident("Expect parameter name."))
        self.expect(")", "Expect ')' after parameters.")
        self.expect("{", "Expect '{' before " + kind + " body.")
        body = self.parse_block()
        return FunctionStmt(name, params, body)

    def parse_var_decl(self) -> VarStmt:
        name = self.expect_ident("Expect variable name.")
        initializer: Expr | None = None
        if self.match("="):
            initializer = self.parse_expr()
        self.expect(";", "Expect ';' after variable declaration.")
        return VarStmt(name, initializer)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Stmt:
        if self.match("for"):
            return self.parse_for_stmt()
        if self.match("if"):
            return self.parse_if_stmt()
        if self.match("print"):
            return self.parse_print_stmt()
        if self.match("return"):
            return self.parse_return_stmt()
        if self.match("while"):
            return self.parse_while_stmt()
        if self.match("{"):
            return BlockStmt(self.parse_block())
        return self.parse_expr_stmt()

    def parse_block(self) -> list[Stmt]:
        """Declarations up to the closing '}'; the '{' is already consumed."""
        stmts: list[Stmt] = []
        while not self.at("}") and not self.at_end():
            decl = self.parse_decl()
            if decl is not None:
                stmts.append(decl)
        self.expect("}", "Expect '}' after block.")
        return stmts

    def parse_for_stmt(self) -> Stmt:
        """Desugar `for (init; cond; incr) body` into a while loop."""
        self.expect("(", "Expect '(' after 'for'.")
        initializer: Stmt | None
        if self.match(";"):
            initializer = None
        elif self.match("var"):
            initializer = self.parse_var_decl()
        else:
            initializer = self.parse_expr_stmt()

        condition: Expr | None = None
        if not self.at(";"):
            condition = self.parse_expr()
        self.expect(";", "Expect ';' after loop condition.")

        increment: Expr | None = None
        if not self.at(")"):
            increment = self.parse_expr()
        self.expect(")", "Expect ')' after for clauses.")

        body = self.parse_stmt()
        if increment is not None:
            body = BlockStmt([body, ExprStmt(increment)])
        if condition is None:
            condition = Literal(True)
        body = WhileStmt(condition, body)
        if initializer is not None:
            body = BlockStmt([initializer, body])
        return body

    def parse_if_stmt(self) -> IfStmt:
        self.expect("(", "Expect '(' after 'if'.")
        condition = self.parse_expr()
        self.expect(")", "Expect ')' after if condition.")
        then_branch = self.parse_stmt()
        else_branch: Stmt | None = None
        if self.match("else"):
            else_branch = self.parse_stmt()
        return IfStmt(condition, then_branch, else_branch)

    def parse_print_stmt(self) -> PrintStmt:
        value = self.parse_expr()
        self.expect(";", "Expect ';' after value.")
        return PrintStmt(value)

    def parse_return_stmt(self) -> ReturnStmt:
        keyword = self.previous()
        value: Expr | None = None
        if not self.at(";"):
            value = self.parse_expr()
        self.expect(";", "Expect ';' after return value.")
        return ReturnStmt(keyword, value)

    def parse_while_stmt(self) -> WhileStmt:
        self.expect("(", "Expect '(' after 'while'.")
        condition = self.parse_expr()
        self.expect(")", "Expect ')' after condition.")
        body = self.parse_stmt()
        return WhileStmt(condition, body)

    def parse_expr_stmt(self) -> ExprStmt:
        expr = self.parse_expr()
        self.expect(";", "Expect ';' after expression.")
        return ExprStmt(expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        return self.parse_assignment()

    def parse_assignment(self) -> Expr:
        """Assignment = ( Call '.' )? IDENT '=' Assignment | Or"""
        expr = self.parse_or()
        if self.match("="):
            equals = self.previous()
            value = self.parse_assignment()
            if isinstance(expr, Variable):
                return Assign(expr.name, value)
            if isinstance(expr, Get):
                return Set(expr.obj, expr.name, value)
            # Reported but not raised: the left-hand side is kept as is.
            self.error(equals, "Invalid assignment target.")
        return expr

    def parse_or(self) -> Expr:
        """Or = And ( 'or' And )*"""
        expr = self.parse_and()
        while self.match("or"):
            op = self.previous()
            right = self.parse_and()
            expr = Logical(expr, op, right)
        return expr

    def parse_and(self) -> Expr:
        """And = Equality ( 'and' Equality )*"""
        expr = self.parse_equality()
        while self.match("and"):
            op = self.previous()
            right = self.parse_equality()
            expr = Logical(expr, op, right)
        return expr

    def parse_equality(self) -> Expr:
        """Equality = Comparison ( ( '!=' | '==' ) Comparison )*"""
        expr = self.parse_comparison()
        while self.match(*EQUALITY_OPS):
            op = self.previous()
            right = self.parse_comparison()
            expr = Binary(expr, op, right)
        return expr

    def parse_comparison(self) -> Expr:
        """Comparison = Term ( ( '>' | '>=' | '<' | '<=' ) Term )*"""
        expr = self.parse_term()
        while self.match(*COMPARE_OPS):
            op = self.previous()
            right = self.parse_term()
            expr = Binary(expr, op, right)
        return expr

    def parse_term(self) -> Expr:
        """Term = Factor ( ( '-' | '+' ) Factor )*"""
        expr = self.parse_factor()
        while self.match("-", "+"):
            op = self.previous()
            right = self.parse_factor()
            expr = Binary(expr, op, right)
        return expr

    def parse_factor(self) -> Expr:
        """Factor = Unary ( ( '/' | '*' ) Unary )*"""
        expr = self.parse_unary()
        while self.match("/", "*"):
            op = self.previous()
            right = self.parse_unary()
            expr = Binary(expr, op, right)
        return expr

    def parse_unary(self) -> Expr:
        """Unary = ( '!' | '-' ) Unary | Call"""
        if self.match("!", "-"):
            op = self.previous()
            right = self.parse_unary()
            return Unary(op, right)
        return self.parse_call()

    def parse_call(self) -> Expr:
        """Call = Primary ( '(' Args? ')' | '.' IDENT )*"""
        expr = self.parse_primary()
        while True:
            if self.match("("):
                expr = self.finish_call(expr)
            elif self.match("."):
                name = self.expect_ident("Expect property name after '.'.")
                expr = Get(expr, name)
            else:
                break
        return expr

    def finish_call(self, callee: Expr) -> Call:
        args: list[Expr] = []
        if not self.at(")"):
            args.append(self.parse_expr())
            while self.match(","):
                if len(args) >= MAX_ARGS:
                    self.error(
                        self.current(),
                        "Can't have more than " + str(MAX_ARGS) + " arguments.",
                    )
                args.append(self.parse_expr())
        paren = self.expect(")", "Expect ')' after arguments.")
        return Call(callee, paren, args)

    def parse_primary(self) -> Expr:
        """Parse a primary expression."""
        if self.match("false"):
            return Literal(False)
        if self.match("true"):
            return Literal(True)
        if self.match("nil"):
            return Literal(None)
        if self.at_type(TK_NUMBER) or self.at_type(TK_STRING):
            return Literal(self.advance().literal)
        if self.match("this"):
            return This(self.previous())
        if self.at_type(TK_IDENT):
            return Variable(self.advance())
        if self.match("("):
            expr = self.parse_expr()
            self.expect(")", "Expect ')' after expression.")
            return Grouping(expr)
        raise self.error(self.current(), "Expect expression.")
