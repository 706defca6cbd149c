"""Tests for the runtime object model and interpreter."""

import io

import pytest

from plox import Session, parse, run
from plox.errors import Diagnostics, LoxRuntimeError
from plox.runtime import (
    FALSE,
    NIL,
    TRUE,
    Environment,
    LoxClass,
    LoxInstance,
    Interpreter,
    VBool,
    VNil,
    VNumber,
    VString,
    format_number,
    is_truthy,
    values_equal,
)
from plox.tokens import TK_IDENT, Token


def _name(lexeme: str) -> Token:
    return Token(TK_IDENT, lexeme, None, 1)


def _output(source: str) -> list[str]:
    out = io.StringIO()
    err = io.StringIO()
    diag = run(source, stdout=out, stderr=err)
    assert not diag.had_error, diag.messages
    assert not diag.had_runtime_error, diag.messages
    return out.getvalue().splitlines()


# ---- Environment ------------------------------------------------------------


def test_environment_define_and_get():
    env = Environment()
    env.define("a", VNumber(1.0))
    assert env.get(_name("a")) == VNumber(1.0)


def test_environment_get_walks_enclosing_chain():
    outer = Environment()
    outer.define("a", VString("outer"))
    inner = Environment(Environment(outer))
    assert inner.get(_name("a")) == VString("outer")


def test_environment_define_shadows():
    outer = Environment()
    outer.define("a", VNumber(1.0))
    inner = Environment(outer)
    inner.define("a", VNumber(2.0))
    assert inner.get(_name("a")) == VNumber(2.0)
    assert outer.get(_name("a")) == VNumber(1.0)


def test_environment_assign_updates_nearest_definition():
    outer = Environment()
    outer.define("a", VNumber(1.0))
    inner = Environment(outer)
    inner.assign(_name("a"), VNumber(5.0))
    assert outer.values["a"] == VNumber(5.0)
    assert "a" not in inner.values


def test_environment_undefined_get_and_assign():
    env = Environment()
    with pytest.raises(LoxRuntimeError, match="Undefined variable 'nope'."):
        env.get(_name("nope"))
    with pytest.raises(LoxRuntimeError, match="Undefined variable 'nope'."):
        env.assign(_name("nope"), NIL)
    assert "nope" not in env.values


def test_environment_get_at_and_assign_at():
    root = Environment()
    root.define("x", VNumber(1.0))
    leaf = Environment(Environment(root))
    assert leaf.get_at(2, "x") == VNumber(1.0)
    leaf.assign_at(2, _name("x"), VNumber(9.0))
    assert root.values["x"] == VNumber(9.0)
    assert leaf.ancestor(2) is root


# ---- Values -----------------------------------------------------------------


def test_truthiness():
    assert not is_truthy(NIL)
    assert not is_truthy(FALSE)
    assert is_truthy(TRUE)
    assert is_truthy(VNumber(0.0))
    assert is_truthy(VString(""))


def test_equality_has_no_coercion():
    assert values_equal(NIL, NIL)
    assert not values_equal(NIL, FALSE)
    assert not values_equal(VNumber(1.0), VString("1"))
    assert not values_equal(VNumber(1.0), VBool(True))
    assert values_equal(VString("a"), VString("a"))


def test_nil_is_hashable_like_other_values():
    assert hash(NIL) == hash(VNil())
    assert len({NIL, VNil(), VBool(False), VNumber(0.0)}) == 3


def test_format_number():
    assert format_number(3.0) == "3"
    assert format_number(-2.0) == "-2"
    assert format_number(2.5) == "2.5"
    assert format_number(float("inf")) == "Infinity"
    assert format_number(float("nan")) == "NaN"


# ---- Classes and instances --------------------------------------------------


def test_instance_fields_then_methods():
    klass = LoxClass("Thing", None, {})
    inst = LoxInstance(klass)
    inst.set(_name("size"), VNumber(2.0))
    assert inst.get(_name("size")) == VNumber(2.0)
    with pytest.raises(LoxRuntimeError, match="Undefined property 'color'."):
        inst.get(_name("color"))
    assert inst.to_string() == "Thing instance"


def test_class_without_init_has_zero_arity():
    assert LoxClass("Empty", None, {}).arity() == 0


def test_bound_methods_are_fresh_copies():
    out = _output(
        """
class A {
  m() { return this; }
}
var a = A();
print a.m == a.m;
print a.m() == a;
"""
    )
    assert out == ["false", "true"]


def test_find_method_walks_superclass_chain():
    out = _output(
        """
class A {
  who() { return "A"; }
  name() { return "a"; }
}
class B < A {
  who() { return "B"; }
}
class C < B {}
var c = C();
print c.who();
print c.name();
"""
    )
    assert out == ["B", "a"]


def test_inherited_init_is_called():
    out = _output(
        """
class A {
  init(v) { this.v = v; }
}
class B < A {}
print B(7).v;
"""
    )
    assert out == ["7"]


# ---- Interpreter ------------------------------------------------------------


def test_closures_capture_by_reference():
    out = _output(
        """
fun make() {
  var n = 0;
  fun get() { return n; }
  fun inc() { n = n + 1; }
  inc();
  inc();
  return get;
}
print make()();
"""
    )
    assert out == ["2"]


def test_call_uses_closure_not_caller_scope():
    out = _output(
        """
var x = "global";
fun show() { print x; }
fun caller() {
  var x = "caller";
  show();
}
caller();
"""
    )
    assert out == ["global"]


def test_runtime_error_reports_token_line():
    err = io.StringIO()
    diag = run('var a = 1;\nvar b = "s";\nprint a * b;', stdout=io.StringIO(), stderr=err)
    assert diag.had_runtime_error
    assert not diag.had_error
    assert err.getvalue() == "Operands of '*' must be numbers.\n[line 3]\n"


def test_deep_recursion_is_a_runtime_error():
    err = io.StringIO()
    diag = run("fun f() { f(); }\nf();", stdout=io.StringIO(), stderr=err)
    assert diag.had_runtime_error
    assert "Stack overflow." in err.getvalue()


def test_long_operator_chain_runs():
    assert _output("print " + " + ".join(["1"] * 1000) + ";") == ["1000"]


def test_deeply_nested_groupings_run():
    assert _output("print " + "(" * 100 + "1" + ")" * 100 + ";") == ["1"]


def test_too_deep_expression_is_a_compile_error():
    out = io.StringIO()
    err = io.StringIO()
    diag = run("print " + " + ".join(["1"] * 20000) + ";", stdout=out, stderr=err)
    assert diag.had_error
    assert not diag.had_runtime_error
    assert out.getvalue() == ""
    assert err.getvalue() == "[line 1] Error: Expression too deeply nested.\n"


def test_interpreter_reports_overflow_outside_calls():
    stmts = parse("print 0;\nprint " + " + ".join(["1"] * 20000) + ";")
    out = io.StringIO()
    err = io.StringIO()
    diag = Diagnostics(err)
    Interpreter(out).interpret(stmts, diag)
    assert diag.had_runtime_error
    assert out.getvalue() == "0\n"
    assert err.getvalue() == "Stack overflow.\n[line 2]\n"


def test_compile_error_prevents_execution():
    out = io.StringIO()
    diag = run('print "run"; return;', stdout=out, stderr=io.StringIO())
    assert diag.had_error
    assert out.getvalue() == ""


# ---- Sessions -----------------------------------------------------------------


def test_session_keeps_globals_between_runs():
    out = io.StringIO()
    session = Session(stdout=out, stderr=io.StringIO())
    session.run("var count = 1;")
    session.run("fun bump() { count = count + 1; return count; }")
    session.run("print bump();")
    session.run("print bump();")
    assert out.getvalue().splitlines() == ["2", "3"]


def test_session_closures_survive_later_inputs():
    out = io.StringIO()
    session = Session(stdout=out, stderr=io.StringIO())
    session.run("fun make() { var n = 10; fun get() { return n; } return get; }")
    session.run("var g = make();")
    session.run("var n = 99;")
    session.run("print g();")
    assert out.getvalue().splitlines() == ["10"]


def test_session_reset_clears_only_compile_flag():
    session = Session(stdout=io.StringIO(), stderr=io.StringIO())
    session.run("print nope;")
    session.run("print ;")
    assert session.diagnostics.had_error
    assert session.diagnostics.had_runtime_error
    session.diagnostics.reset()
    assert not session.diagnostics.had_error
    assert session.diagnostics.had_runtime_error
    session.run("print 1;")
    assert not session.diagnostics.had_error


def test_sessions_are_isolated():
    a = Session(stdout=io.StringIO(), stderr=io.StringIO())
    b = Session(stdout=io.StringIO(), stderr=io.StringIO())
    a.run("var shared = 1;")
    b.run("print shared;")
    assert b.diagnostics.had_runtime_error
    assert not a.diagnostics.had_runtime_error
