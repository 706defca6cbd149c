"""Tests for the source emitter and the s-expression printer."""

import io

import pytest

from plox import parse
from plox.ast import Binary, ExprStmt, Grouping, Literal
from plox.emit import expr_to_source, to_sexpr, to_source
from plox.errors import Diagnostics
from plox.tokens import TK_OP, Token


def _parse_ok(source: str):
    diag = Diagnostics(io.StringIO())
    stmts = parse(source, diag)
    assert not diag.had_error, diag.messages
    return stmts


def _expr(source: str):
    stmts = _parse_ok(source + ";")
    assert isinstance(stmts[0], ExprStmt)
    return stmts[0].expression


ROUND_TRIP_EXPRS = [
    "1 + 2 * 3",
    "(1 + 2) * 3",
    "1 - (2 - 3)",
    "-(-1)",
    "!!true",
    "- -x",
    "a = b = c",
    "a.b.c = d(e, f)",
    "a or b and c",
    "(a or b) and c",
    "x == nil != false",
    "f()()(1)",
    "this.x.y",
    '"hello" + "world"',
    "0.5 + 12.25",
    "0.00001",
    "1 <= 2 >= 3 < 4 > 5",
]


@pytest.mark.parametrize("source", ROUND_TRIP_EXPRS)
def test_expression_round_trip(source: str):
    first = _expr(source)
    printed = expr_to_source(first)
    second = _expr(printed)
    assert to_sexpr(second) == to_sexpr(first)
    assert expr_to_source(second) == printed


def test_emitted_expression_text():
    assert expr_to_source(_expr("(1+2)*3")) == "(1 + 2) * 3"
    assert expr_to_source(_expr("a.b(c,d)")) == "a.b(c, d)"


def test_number_literals_never_use_exponent():
    plus = Token(TK_OP, "+", None, 1)
    expr = Binary(Literal(1e-7), plus, Literal(3.0))
    assert expr_to_source(expr) == "0.0000001 + 3"


def test_sexpr_forms():
    assert to_sexpr(_expr("-1 * (2 + 3)")) == "(* (- 1) (group (+ 2 3)))"
    assert to_sexpr(_expr("a.b = c")) == "(=. a b c)"
    assert to_sexpr(_expr('x = "s"')) == '(= x "s")'
    assert to_sexpr(Grouping(Literal(None))) == "(group nil)"


PROGRAM = """\
var a = 1;
fun add(x, y) {
    return x + y;
}
class Point < Base {
    init(x) {
        this.x = x;
    }
    norm() {
        return;
    }
}
if (a < 2) {
    print add(a, 2);
}
else
    print "no";
while (a < 10)
    a = a + 1;
{
    var b;
}
"""


def test_program_source_is_stable():
    stmts = _parse_ok(PROGRAM)
    assert to_source(stmts) == PROGRAM


def test_program_round_trip_preserves_structure():
    stmts = _parse_ok(
        "for (var i = 0; i < 3; i = i + 1) { if (i == 1) print i; else print -i; }"
    )
    again = _parse_ok(to_source(stmts))
    assert [to_sexpr(s) for s in again] == [to_sexpr(s) for s in stmts]


def test_statement_sexpr():
    stmts = _parse_ok("class B < A { m(a) { return a; } } var x; while (x) print x;")
    assert to_sexpr(stmts[0]) == "(class B < A (fun m (a) (return a)))"
    assert to_sexpr(stmts[1]) == "(var x)"
    assert to_sexpr(stmts[2]) == "(while x (print x))"


def test_empty_program():
    assert to_source([]) == ""
