# -----------------------------------------------------------------------------
# Implementation registry for catalog functions and operators
# Purpose:
#   The YAML catalog names an `impl` key and an optional `domain` guard for
#   every entry; this module maps those keys to plain Python callables.
#   Implementations are pure float -> float functions.
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from typing import Callable, Dict


def _round_half_away(x: float) -> float:
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _sign(x: float) -> float:
    if x > 0:
        return 1.0
    if x < 0:
        return -1.0
    return 0.0


def _factorial(x: float) -> float:
    # 171! no longer fits in a float
    if x > 170:
        raise OverflowError("factorial result too large")
    return float(math.factorial(int(x)))


def _minimum(*xs: float) -> float:
    return min(xs)


def _maximum(*xs: float) -> float:
    return max(xs)


IMPLEMENTATIONS: Dict[str, Callable[..., float]] = {
    # arithmetic operators
    "add": lambda a, b: a + b,
    "sub": lambda a, b: a - b,
    "mul": lambda a, b: a * b,
    "div": lambda a, b: a / b,
    "fmod": math.fmod,
    "pow": math.pow,
    "neg": lambda a: -a,
    "pos": lambda a: +a,

    # trigonometric / hyperbolic
    "sin": math.sin, "cos": math.cos, "tan": math.tan,
    "asin": math.asin, "acos": math.acos, "atan": math.atan,
    "sinh": math.sinh, "cosh": math.cosh, "tanh": math.tanh,

    # logarithmic
    "log10": math.log10, "ln": math.log, "log2": math.log2, "exp": math.exp,

    # algebraic
    "sqrt": math.sqrt, "cbrt": lambda x: math.copysign(abs(x) ** (1.0 / 3.0), x),
    "abs": abs, "factorial": _factorial,

    # rounding
    "floor": lambda x: float(math.floor(x)),
    "ceil": lambda x: float(math.ceil(x)),
    "round": _round_half_away,
    "sign": _sign,

    # comparison (variadic)
    "max": _maximum, "min": _minimum,

    # angle conversion
    "deg": math.degrees, "rad": math.radians,
}


# Domain guards: predicate over ONE argument; the evaluator reports the first
# argument that fails as DomainError(function, value).
DOMAINS: Dict[str, Callable[[float], bool]] = {
    "nonnegative": lambda x: x >= 0,
    "positive": lambda x: x > 0,
    "unit_interval": lambda x: -1.0 <= x <= 1.0,
    "nonnegative_integer": lambda x: x >= 0 and float(x).is_integer(),
}
