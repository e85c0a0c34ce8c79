import pytest

from cfe.catalog import default_catalog
from cfe.errors import (UnbalancedGrouping, ArityMismatch, UnknownSymbol, EmptyFormula,
                        MalformedStructure)
from cfe.engine import validate_formula, parse_formula
from cfe.parser import parse_tokens
from cfe.types import ConstantNode as C, VariableNode as V, OperatorNode as Op, FunctionNode as F
from tests.helpers import num, const, var, op, fn, LP, RP, LB, RB, COMMA

CAT = default_catalog()


def parse(tokens):
    return parse_tokens(tokens, CAT)


def test_multiplication_binds_tighter_than_addition():
    tree = parse([num(2), op("+"), num(3), op("×"), num(4)])
    assert tree == Op("+", 2, (C("2"), Op("*", 2, (C("3"), C("4")))))


def test_grouping_overrides_precedence():
    tree = parse([LP, num(2), op("+"), num(3), RP, op("*"), num(4)])
    assert tree == Op("*", 2, (Op("+", 2, (C("2"), C("3"))), C("4")))


def test_square_brackets_group_too():
    tree = parse([LB, num(2), op("+"), num(3), RB, op("*"), num(4)])
    assert tree == Op("*", 2, (Op("+", 2, (C("2"), C("3"))), C("4")))


def test_subtraction_is_left_associative():
    tree = parse([num(10), op("-"), num(3), op("−"), num(2)])
    assert tree == Op("-", 2, (Op("-", 2, (C("10"), C("3"))), C("2")))


def test_exponent_is_right_associative():
    tree = parse([num(2), op("^"), num(3), op("^"), num(2)])
    assert tree == Op("^", 2, (C("2"), Op("^", 2, (C("3"), C("2")))))


def test_unary_minus_binds_tighter_than_any_binary_operator():
    tree = parse([op("-"), num(2), op("^"), num(2)])
    assert tree == Op("^", 2, (Op("-", 1, (C("2"),)), C("2")))

    tree = parse([num(2), op("*"), op("-"), var("x")])
    assert tree == Op("*", 2, (C("2"), Op("-", 1, (V("x"),))))


def test_function_calls():
    assert parse([fn("pow"), LP, num(2), COMMA, num(3), RP]) == F("pow", (C("2"), C("3")))
    assert parse([fn("√"), LP, var("x"), RP]) == F("sqrt", (V("x"),))

    tree = parse([fn("max"), LP, num(1), COMMA, num(2), op("+"), num(3), COMMA,
                  fn("sqrt"), LP, num(4), RP, RP])
    assert tree == F("max", (C("1"), Op("+", 2, (C("2"), C("3"))), F("sqrt", (C("4"),))))


def test_function_call_inside_an_expression():
    tree = parse([num(1), op("+"), fn("sin"), LP, const("π"), op("/"), num(2), RP, op("*"), num(3)])
    call = F("sin", (Op("/", 2, (C("π"), C("2"))),))
    assert tree == Op("+", 2, (C("1"), Op("*", 2, (call, C("3")))))


def test_parsing_is_deterministic_and_cached():
    tokens = [var("a"), op("*"), LP, var("b"), op("-"), num(1), RP]
    first = parse(tokens)
    second = parse(list(tokens))
    assert first == second
    assert first is second


STRUCTURAL_ERRORS = [
    ([], EmptyFormula, None),
    ([num(2), num(3)], MalformedStructure, 1),
    ([num(2), LP, num(3), RP], MalformedStructure, 1),
    ([LP, RP], MalformedStructure, 0),
    ([LP, num(2), COMMA, num(3), RP], MalformedStructure, 2),
    ([num(2), op("+")], ArityMismatch, 1),
    ([op("*"), num(2)], ArityMismatch, 0),
    ([LP, num(2), op("+"), RP], ArityMismatch, 2),
    ([fn("pow"), LP, num(2), RP], ArityMismatch, 0),
    ([fn("pow"), LP, num(2), COMMA, RP], ArityMismatch, 0),
    ([fn("sqrt"), num(2)], ArityMismatch, 0),
    ([LP, num(2)], UnbalancedGrouping, 0),
    ([num(2), RP], UnbalancedGrouping, 1),
    ([LP, num(2), RB], UnbalancedGrouping, 2),
    ([const("tau")], UnknownSymbol, 0),
    ([fn("nope"), LP, num(1), RP], UnknownSymbol, 0),
    ([op("&"), num(1)], UnknownSymbol, 0),
    ([fn("foo"), num(1)], ArityMismatch, 0),
    ([const("tau"), RP], UnbalancedGrouping, 1),
    ([const("tau"), op("+"), LP, num(1)], UnbalancedGrouping, 2),
]


@pytest.mark.parametrize("tokens, error, position", STRUCTURAL_ERRORS)
def test_structural_errors(tokens, error, position):
    with pytest.raises(error) as exc:
        parse(tokens)
    assert exc.value.position == position


@pytest.mark.parametrize("tokens, error, position", STRUCTURAL_ERRORS)
def test_validator_and_parser_report_the_same_error(tokens, error, position):
    checked = validate_formula(tokens, CAT, deep=False)
    parsed = parse_formula(tokens, CAT)
    assert not parsed.ok
    if not checked.valid:
        assert checked.error.kind == parsed.error.kind
        assert checked.error.position == parsed.error.position
    assert validate_formula(tokens, CAT).error == parsed.error
