"""Lox runtime — values, environments, and the tree-walking interpreter."""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import TextIO

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
from .errors import Diagnostics, LoxRuntimeError
from .tokens import Token

logger = logging.getLogger(__name__)


# ============================================================
# Values
# ============================================================


class Value:
    """A runtime value."""

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass(unsafe_hash=True)
class VNil(Value):
    def to_string(self) -> str:
        return "nil"


@dataclass(unsafe_hash=True)
class VBool(Value):
    value: bool

    def to_string(self) -> str:
        return "true" if self.value else "false"


@dataclass(unsafe_hash=True)
class VNumber(Value):
    value: float

    def to_string(self) -> str:
        return format_number(self.value)


@dataclass(unsafe_hash=True)
class VString(Value):
    value: str

    def to_string(self) -> str:
        return self.value


NIL = VNil()
TRUE = VBool(True)
FALSE = VBool(False)


def format_number(x: float) -> str:
    """Display form: whole values print without a trailing '.0'."""
    if x != x:
        return "NaN"
    if x == float("inf"):
        return "Infinity"
    if x == float("-inf"):
        return "-Infinity"
    if x == int(x) and abs(x) < 1e21:
        if x == 0 and math.copysign(1.0, x) < 0:
            return "-0"
        return str(int(x))
    return repr(x)


def from_literal(value: float | str | bool | None) -> Value:
    if value is None:
        return NIL
    if isinstance(value, bool):
        return TRUE if value else FALSE
    if isinstance(value, str):
        return VString(value)
    return VNumber(float(value))


def is_truthy(v: Value) -> bool:
    """Everything except nil and false is truthy, including 0 and ""."""
    if isinstance(v, VNil):
        return False
    if isinstance(v, VBool):
        return v.value
    return True


def values_equal(a: Value, b: Value) -> bool:
    if isinstance(a, VNil) or isinstance(b, VNil):
        return isinstance(a, VNil) and isinstance(b, VNil)
    if isinstance(a, VBool) and isinstance(b, VBool):
        return a.value == b.value
    if isinstance(a, VNumber) and isinstance(b, VNumber):
        return a.value == b.value
    if isinstance(a, VString) and isinstance(b, VString):
        return a.value == b.value
    # Functions, classes and instances compare by identity.
    return a is b


# ============================================================
# Environments
# ============================================================


class Environment:
    """One scope: names to values, chained to an enclosing scope.

    Closures hold references to the environment they were created in, so an
    environment lives as long as the longest-lived closure over it.
    """

    def __init__(self, enclosing: Environment | None = None):
        self.values: dict[str, Value] = {}
        self.enclosing: Environment | None = enclosing

    def define(self, name: str, value: Value) -> None:
        self.values[name] = value

    def get(self, name: Token) -> Value:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                return env.values[name.lexeme]
            env = env.enclosing
        raise LoxRuntimeError("Undefined variable '" + name.lexeme + "'.", name)

    def assign(self, name: Token, value: Value) -> None:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env.enclosing
        raise LoxRuntimeError("Undefined variable '" + name.lexeme + "'.", name)

    def ancestor(self, distance: int) -> Environment:
        env = self
        for _ in range(distance):
            assert env.enclosing is not None, "resolver distance out of range"
            env = env.enclosing
        return env

    def get_at(self, distance: int, name: str) -> Value:
        return self.ancestor(distance).values[name]

    def assign_at(self, distance: int, name: Token, value: Value) -> None:
        self.ancestor(distance).values[name.lexeme] = value


# ============================================================
# Callables and objects
# ============================================================


class LoxCallable(Value):
    def arity(self) -> int:
        raise NotImplementedError

    def call(self, interpreter: Interpreter, args: list[Value]) -> Value:
        raise NotImplementedError


class LoxFunction(LoxCallable):
    """A user-defined function or method closed over its defining scope."""

    def __init__(
        self,
        declaration: FunctionStmt,
        closure: Environment,
        is_initializer: bool = False,
    ):
        self.declaration = declaration
        self.closure = closure
        self.is_initializer = is_initializer

    def bind(self, instance: LoxInstance) -> LoxFunction:
        """A copy whose scope defines `this` as `instance`."""
        env = Environment(self.closure)
        env.define("this", instance)
        return LoxFunction(self.declaration, env, self.is_initializer)

    def arity(self) -> int:
        return len(self.declaration.params)

    def call(self, interpreter: Interpreter, args: list[Value]) -> Value:
        env = Environment(self.closure)
        for param, arg in zip(self.declaration.params, args):
            env.define(param.lexeme, arg)
        try:
            interpreter.execute_block(self.declaration.body, env)
        except _Return as r:
            if self.is_initializer:
                return self.closure.get_at(0, "this")
            return r.value
        if self.is_initializer:
            return self.closure.get_at(0, "this")
        return NIL

    def to_string(self) -> str:
        return "<fn " + self.declaration.name.lexeme + ">"


class LoxClass(LoxCallable):
    def __init__(
        self,
        name: str,
        superclass: LoxClass | None,
        methods: dict[str, LoxFunction],
    ):
        self.name = name
        self.superclass = superclass
        self.methods = methods

    def find_method(self, name: str) -> LoxFunction | None:
        klass: LoxClass | None = self
        while klass is not None:
            if name in klass.methods:
                return klass.methods[name]
            klass = klass.superclass
        return None

    def arity(self) -> int:
        init = self.find_method("init")
        if init is None:
            return 0
        return init.arity()

    def call(self, interpreter: Interpreter, args: list[Value]) -> Value:
        instance = LoxInstance(self)
        init = self.find_method("init")
        if init is not None:
            init.bind(instance).call(interpreter, args)
        return instance

    def to_string(self) -> str:
        return self.name


class LoxInstance(Value):
    def __init__(self, klass: LoxClass):
        self.klass = klass
        self.fields: dict[str, Value] = {}

    def get(self, name: Token) -> Value:
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        method = self.klass.find_method(name.lexeme)
        if method is not None:
            return method.bind(self)
        raise LoxRuntimeError("Undefined property '" + name.lexeme + "'.", name)

    def set(self, name: Token, value: Value) -> None:
        self.fields[name.lexeme] = value

    def to_string(self) -> str:
        return self.klass.name + " instance"


# ============================================================
# Control flow signals (internal)
# ============================================================


class _Return(Exception):
    """Unwinds to the enclosing function call carrying the returned value."""

    def __init__(self, value: Value):
        super().__init__()
        self.value = value


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    """Evaluates resolved statements against a persistent global scope.

    `locals` is the resolver's scope-distance table; it accumulates across
    calls to `interpret` so a REPL session keeps earlier closures working.
    """

    def __init__(self, stdout: TextIO | None = None):
        self.globals = Environment()
        self.locals: dict[Expr, int] = {}
        self.stdout: TextIO | None = stdout

    def resolve(self, expr: Expr, depth: int) -> None:
        self.locals[expr] = depth

    def interpret(self, stmts: list[Stmt], diagnostics: Diagnostics) -> None:
        """Run top-level statements; a runtime error stops the run and is reported."""
        logger.debug("executing %d statements", len(stmts))
        st: Stmt | None = None
        try:
            for st in stmts:
                self.execute(st, self.globals)
        except LoxRuntimeError as e:
            logger.debug("runtime error: %s", e)
            diagnostics.runtime_error(e)
        except RecursionError:
            line = first_line(st) if st is not None else 1
            diagnostics.runtime_fault(line, "Stack overflow.")

    # ---- Statements --------------------------------------------------------

    def execute_block(self, stmts: list[Stmt], env: Environment) -> None:
        for st in stmts:
            self.execute(st, env)

    def execute(self, st: Stmt, env: Environment) -> None:
        if isinstance(st, ExprStmt):
            self.evaluate(st.expression, env)
            return

        if isinstance(st, PrintStmt):
            value = self.evaluate(st.expression, env)
            out = self.stdout if self.stdout is not None else sys.stdout
            print(value.to_string(), file=out)
            return

        if isinstance(st, VarStmt):
            value: Value = NIL
            if st.initializer is not None:
                value = self.evaluate(st.initializer, env)
            env.define(st.name.lexeme, value)
            return

        if isinstance(st, BlockStmt):
            self.execute_block(st.statements, Environment(env))
            return

        if isinstance(st, IfStmt):
            if is_truthy(self.evaluate(st.condition, env)):
                self.execute(st.then_branch, env)
            elif st.else_branch is not None:
                self.execute(st.else_branch, env)
            return

        if isinstance(st, WhileStmt):
            while is_truthy(self.evaluate(st.condition, env)):
                self.execute(st.body, env)
            return

        if isinstance(st, FunctionStmt):
            env.define(st.name.lexeme, LoxFunction(st, env))
            return

        if isinstance(st, ReturnStmt):
            value = NIL
            if st.value is not None:
                value = self.evaluate(st.value, env)
            raise _Return(value)

        if isinstance(st, ClassStmt):
            self._execute_class(st, env)
            return

        raise TypeError("unhandled stmt type: " + type(st).__name__)

    def _execute_class(self, st: ClassStmt, env: Environment) -> None:
        superclass: LoxClass | None = None
        if st.superclass is not None:
            sc = self.evaluate(st.superclass, env)
            if not isinstance(sc, LoxClass):
                raise LoxRuntimeError(
                    "Superclass must be a class.", st.superclass.name
                )
            superclass = sc
        env.define(st.name.lexeme, NIL)
        methods: dict[str, LoxFunction] = {}
        for method in st.methods:
            methods[method.name.lexeme] = LoxFunction(
                method, env, method.name.lexeme == "init"
            )
        env.assign(st.name, LoxClass(st.name.lexeme, superclass, methods))

    # ---- Expressions -------------------------------------------------------

    def evaluate(self, expr: Expr, env: Environment) -> Value:
        if isinstance(expr, Literal):
            return from_literal(expr.value)

        if isinstance(expr, Grouping):
            return self.evaluate(expr.expression, env)

        if isinstance(expr, Variable):
            return self._look_up(expr.name, expr, env)

        if isinstance(expr, This):
            return self._look_up(expr.keyword, expr, env)

        if isinstance(expr, Assign):
            value = self.evaluate(expr.value, env)
            distance = self.locals.get(expr)
            if distance is not None:
                env.assign_at(distance, expr.name, value)
            else:
                self.globals.assign(expr.name, value)
            return value

        if isinstance(expr, Logical):
            left = self.evaluate(expr.left, env)
            if expr.operator.lexeme == "or":
                if is_truthy(left):
                    return left
            elif not is_truthy(left):
                return left
            return self.evaluate(expr.right, env)

        if isinstance(expr, Unary):
            right = self.evaluate(expr.right, env)
            if expr.operator.lexeme == "!":
                return FALSE if is_truthy(right) else TRUE
            if expr.operator.lexeme == "-":
                if not isinstance(right, VNumber):
                    raise LoxRuntimeError(
                        "Operand of '-' must be a number.", expr.operator
                    )
                return VNumber(-right.value)
            raise LoxRuntimeError("Unknown unary operator.", expr.operator)

        if isinstance(expr, Binary):
            left = self.evaluate(expr.left, env)
            right = self.evaluate(expr.right, env)
            return self._eval_binary(expr.operator, left, right)

        if isinstance(expr, Call):
            return self._eval_call(expr, env)

        if isinstance(expr, Get):
            obj = self.evaluate(expr.obj, env)
            if not isinstance(obj, LoxInstance):
                raise LoxRuntimeError("Only instances have properties.", expr.name)
            return obj.get(expr.name)

        if isinstance(expr, Set):
            obj = self.evaluate(expr.obj, env)
            if not isinstance(obj, LoxInstance):
                raise LoxRuntimeError("Only instances have fields.", expr.name)
            value = self.evaluate(expr.value, env)
            obj.set(expr.name, value)
            return value

        raise TypeError("unhandled expr type: " + type(expr).__name__)

    def _look_up(self, name: Token, expr: Expr, env: Environment) -> Value:
        distance = self.locals.get(expr)
        if distance is not None:
            return env.get_at(distance, name.lexeme)
        if name.lexeme in self.globals.values:
            return self.globals.values[name.lexeme]
        raise LoxRuntimeError("Undefined variable '" + name.lexeme + "'.", name)

    def _eval_call(self, expr: Call, env: Environment) -> Value:
        callee = self.evaluate(expr.callee, env)
        args = [self.evaluate(a, env) for a in expr.arguments]
        if not isinstance(callee, LoxCallable):
            raise LoxRuntimeError("Can only call functions and classes.", expr.paren)
        if len(args) != callee.arity():
            raise LoxRuntimeError(
                "Expected "
                + str(callee.arity())
                + " arguments but got "
                + str(len(args))
                + ".",
                expr.paren,
            )
        try:
            return callee.call(self, args)
        except RecursionError:
            raise LoxRuntimeError("Stack overflow.", expr.paren) from None

    def _eval_binary(self, op: Token, left: Value, right: Value) -> Value:
        if op.lexeme == "==":
            return VBool(values_equal(left, right))
        if op.lexeme == "!=":
            return VBool(not values_equal(left, right))

        if op.lexeme == "+":
            if isinstance(left, VNumber) and isinstance(right, VNumber):
                return VNumber(left.value + right.value)
            if isinstance(left, VString) and isinstance(right, VString):
                return VString(left.value + right.value)
            raise LoxRuntimeError(
                "Operands of '+' must be two numbers or two strings.", op
            )

        if not isinstance(left, VNumber) or not isinstance(right, VNumber):
            raise LoxRuntimeError(
                "Operands of '" + op.lexeme + "' must be numbers.", op
            )
        a = left.value
        b = right.value
        if op.lexeme == "-":
            return VNumber(a - b)
        if op.lexeme == "*":
            return VNumber(a * b)
        if op.lexeme == "/":
            return VNumber(_divide(a, b))
        if op.lexeme == ">":
            return VBool(a > b)
        if op.lexeme == ">=":
            return VBool(a >= b)
        if op.lexeme == "<":
            return VBool(a < b)
        if op.lexeme == "<=":
            return VBool(a <= b)
        raise LoxRuntimeError("Unknown binary operator.", op)


def _divide(a: float, b: float) -> float:
    """IEEE division: x/0 is a signed infinity and 0/0 is NaN."""
    if b != 0:
        return a / b
    if a == 0 or a != a:
        return float("nan")
    return math.copysign(1.0, a) * math.copysign(1.0, b) * float("inf")
