import math

import pytest

from cfe.catalog import default_catalog
from cfe.engine import execute_formula
from cfe.errors import (DivisionByZero, DomainError, NumericOverflow, UnboundVariable,
                        MalformedStructure)
from cfe.evaluator import Evaluator, EvalConfig
from cfe.types import FunctionNode, OperatorNode, ConstantNode
from tests.helpers import num, const, var, op, fn, LP, RP, COMMA

CAT = default_catalog()


def run(tokens, bindings=None, **config):
    return execute_formula(tokens, bindings or {}, EvalConfig(**config))


def value(tokens, bindings=None, **config):
    res = run(tokens, bindings, **config)
    assert res.ok, res.error
    return res.result


def error(tokens, bindings=None, **config):
    res = run(tokens, bindings, **config)
    assert not res.ok
    return res.error


def test_arithmetic_operators():
    assert value([num(7), op("+"), num(5)]) == 12
    assert value([num(7), op("−"), num(5)]) == 2
    assert value([num(7), op("×"), num(5)]) == 35
    assert value([num(7), op("÷"), num(2)]) == 3.5
    assert value([num(7), op("%"), num(3)]) == 1
    assert value([num(2), op("^"), num(10)]) == 1024
    assert value([op("-"), num(4), op("+"), num(1)]) == -3


def test_modulo_keeps_the_sign_of_the_dividend():
    assert value([op("-"), num(7), op("%"), num(3)]) == -1
    assert value([fn("mod"), LP, num(7), COMMA, op("-"), num(3), RP]) == 1


def test_constants_and_literals():
    assert value([const("π")]) == math.pi
    assert value([const("pi")]) == math.pi
    assert value([const("e")]) == math.e
    assert value([num("1.5"), op("*"), num("1e3")]) == 1500


def test_variables_are_looked_up_in_bindings():
    area = [const("π"), op("*"), var("r"), op("^"), num(2)]
    assert value(area, {"r": 2}) == pytest.approx(4 * math.pi)
    assert value(area, {"r": 0.5}) == pytest.approx(math.pi / 4)


def test_unbound_variable_is_a_failure_not_zero():
    err = error([var("x"), op("+"), num(1)], {"y": 3})
    assert isinstance(err, UnboundVariable)
    assert err.name == "x"


def test_division_by_runtime_zero():
    err = error([num(10), op("÷"), var("x")], {"x": 0})
    assert isinstance(err, DivisionByZero)
    assert isinstance(error([num(1), op("%"), num(0)]), DivisionByZero)
    assert isinstance(error([fn("mod"), LP, num(1), COMMA, num(0), RP]), DivisionByZero)
    assert isinstance(error([num(0), op("^"), op("-"), num(1)]), DivisionByZero)


@pytest.mark.parametrize("name, arg", [
    ("sqrt", -4), ("ln", 0), ("log", -1), ("log2", 0),
    ("asin", 2), ("acos", -1.5), ("factorial", -1), ("factorial", 2.5),
])
def test_domain_errors_name_function_and_value(name, arg):
    tokens = [fn(name), LP, var("x"), RP]
    err = error(tokens, {"x": arg})
    assert isinstance(err, DomainError)
    assert err.function == name
    assert err.value == arg


def test_negative_base_with_fractional_exponent():
    tokens = [LP, op("-"), num(8), RP, op("^"), LP, num(1), op("/"), num(3), RP]
    err = error(tokens)
    assert isinstance(err, DomainError)
    assert err.function == "^"
    assert err.value == -8


@pytest.mark.parametrize("tokens", [
    [fn("exp"), LP, num(1000), RP],
    [num(10), op("^"), num(400)],
    [fn("factorial"), LP, num(171), RP],
    [num("1e308"), op("*"), num(10)],
    [fn("cosh"), LP, num(1000), RP],
])
def test_non_finite_results_are_overflow(tokens):
    assert isinstance(error(tokens), NumericOverflow)


def test_non_finite_binding_is_overflow():
    assert isinstance(error([var("x")], {"x": float("inf")}), NumericOverflow)


def test_huge_integer_binding_is_overflow():
    err = error([var("x"), op("+"), num(1)], {"x": 10 ** 400})
    assert isinstance(err, NumericOverflow)
    assert err.symbol == "x"


def test_functions():
    assert value([fn("pow"), LP, num(2), COMMA, num(3), RP]) == 8
    assert value([fn("sqrt"), LP, num(16), RP]) == 4
    assert value([fn("cbrt"), LP, op("-"), num(27), RP]) == pytest.approx(-3)
    assert value([fn("log"), LP, num(1000), RP]) == pytest.approx(3)
    assert value([fn("ln"), LP, const("e"), RP]) == pytest.approx(1)
    assert value([fn("factorial"), LP, num(5), RP]) == 120
    assert value([fn("abs"), LP, op("-"), num(3), RP]) == 3
    assert value([fn("max"), LP, num(1), COMMA, num(5), COMMA, num(3), RP]) == 5
    assert value([fn("min"), LP, num(4), RP]) == 4
    assert value([fn("round"), LP, num(2.5), RP]) == 3
    assert value([fn("round"), LP, op("-"), num(2.5), RP]) == -3
    assert value([fn("floor"), LP, op("-"), num(1.5), RP]) == -2
    assert value([fn("sign"), LP, op("-"), num(9), RP]) == -1


def test_angle_mode_is_per_call():
    sin30 = [fn("sin"), LP, num(30), RP]
    assert value(sin30, angle_mode="degrees") == pytest.approx(0.5)
    assert value(sin30, angle_mode="radians") == pytest.approx(math.sin(30))
    assert value([fn("asin"), LP, num(1), RP], angle_mode="degrees") == pytest.approx(90)
    assert value([fn("sin"), LP, const("π"), op("/"), num(2), RP]) == pytest.approx(1)
    # explicit conversions ignore the mode
    assert value([fn("deg"), LP, const("π"), RP], angle_mode="degrees") == pytest.approx(180)


def test_precision_rounds_the_final_result():
    third = [num(1), op("/"), num(3)]
    assert value(third, precision=2) == 0.33
    assert value(third) == pytest.approx(1 / 3)


def test_config_is_validated():
    with pytest.raises(ValueError):
        EvalConfig(angle_mode="grads")
    with pytest.raises(ValueError):
        EvalConfig(precision=-1)


def test_evaluator_rejects_trees_with_broken_arity():
    ev = Evaluator(CAT)
    with pytest.raises(MalformedStructure):
        ev.evaluate(FunctionNode("sqrt", ()), {})
    with pytest.raises(MalformedStructure):
        ev.evaluate(OperatorNode("*", 1, (ConstantNode("2"),)), {})
