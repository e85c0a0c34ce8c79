# -----------------------------------------------------------------------------
# Evaluator: post-order walk of a parsed tree
# Purpose:
#   Compute a finite float from a tree, a variable binding map and an explicit
#   per-call EvalConfig (angle mode, rounding). Pure: no ambient state, the
#   same tree + bindings + config always give the same result.
# Failures:
#   UnboundVariable, DivisionByZero, DomainError, NumericOverflow.
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Callable, Mapping, Optional, Sequence

from .catalog import Catalog
from .errors import (UnboundVariable, DivisionByZero, DomainError, NumericOverflow,
                     UnknownSymbol, MalformedStructure)
from .tracer import Tracer
from .types import Node, ConstantNode, VariableNode, OperatorNode, FunctionNode

ANGLE_MODES = ("radians", "degrees")


@dataclass(frozen=True)
class EvalConfig:
    angle_mode: str = "radians"
    precision: int | None = None   # decimal places for the final result

    def __post_init__(self):
        if self.angle_mode not in ANGLE_MODES:
            raise ValueError(f"angle_mode must be one of {ANGLE_MODES}, got {self.angle_mode!r}")
        if self.precision is not None and (isinstance(self.precision, bool) or self.precision < 0):
            raise ValueError(f"precision must be a non-negative int, got {self.precision!r}")


def _finite(value: float, what: str, symbol: str | None = None) -> float:
    if not math.isfinite(value):
        raise NumericOverflow(f"{what} produced a non-finite result ({value})", symbol=symbol)
    return value


def _call(fn: Callable[..., float], args: Sequence[float], what: str, symbol: str) -> float:
    try:
        value = fn(*args)
    except OverflowError:
        raise NumericOverflow(f"{what} overflowed", symbol=symbol)
    except (ValueError, ArithmeticError):
        # anything the guards did not classify is outside the domain
        raise DomainError(symbol, args[0] if len(args) == 1 else list(args))
    return _finite(float(value), what, symbol)


def _guarded(guard: Optional[str], symbol: str, args: Sequence[float]) -> None:
    if guard == "divisor":
        if args[-1] == 0:
            raise DivisionByZero(symbol)
    elif guard == "power":
        base, exponent = args
        if base == 0 and exponent < 0:
            raise DivisionByZero(symbol, "Zero raised to a negative power")
        if base < 0 and not float(exponent).is_integer():
            raise DomainError(symbol, base)


class Evaluator:
    def __init__(self, catalog: Catalog, config: EvalConfig | None = None, tracer: Tracer | None = None):
        self.catalog = catalog
        self.config = config or EvalConfig()
        self.tracer = tracer

    def evaluate(self, tree: Node, bindings: Mapping[str, Any]) -> float:
        value = self._eval(tree, bindings)
        if self.config.precision is not None:
            value = round(value, self.config.precision)
        return value

    def _trace(self, symbol: str, args: Sequence[float], value: float) -> None:
        if self.tracer is not None:
            self.tracer.add("apply", {"symbol": symbol, "args": list(args), "value": value})

    def _eval(self, node: Node, bindings: Mapping[str, Any]) -> float:
        if isinstance(node, ConstantNode):
            value = self.catalog.is_known_constant(node.symbol)
            if value is None:
                raise UnknownSymbol(f"Unknown constant {node.symbol!r}", symbol=node.symbol)
            return value

        if isinstance(node, VariableNode):
            if node.name not in bindings:
                raise UnboundVariable(node.name)
            raw = bindings[node.name]
            if isinstance(raw, bool) or not isinstance(raw, Real):
                raise DomainError(node.name, raw)
            try:
                value = float(raw)
            except OverflowError:
                # ints beyond the float range
                raise NumericOverflow(f"Binding for '{node.name}' is too large", symbol=node.name)
            return _finite(value, f"Binding for '{node.name}'", node.name)

        if isinstance(node, OperatorNode):
            spec = self.catalog.operator(node.symbol, node.arity)
            if spec is None or len(node.children) != node.arity:
                raise MalformedStructure(f"No {node.arity}-ary operator {node.symbol!r}",
                                         symbol=node.symbol)
            args = [self._eval(c, bindings) for c in node.children]
            _guarded(spec.guard, spec.symbol, args)
            value = _call(spec.impl, args, f"Operator {spec.symbol!r}", spec.symbol)
            self._trace(spec.symbol, args, value)
            return value

        if isinstance(node, FunctionNode):
            spec = self.catalog.functions.get(node.name)
            if spec is None:
                raise UnknownSymbol(f"Unknown function {node.name!r}", symbol=node.name)
            if not spec.arity.accepts(len(node.args)):
                raise MalformedStructure(f"Function {node.name!r} has {len(node.args)} argument(s)",
                                         symbol=node.name)
            args = [self._eval(a, bindings) for a in node.args]
            for a in args:
                if not spec.in_domain(a):
                    raise DomainError(spec.name, a)
            _guarded(spec.guard, spec.name, args)
            degrees = self.config.angle_mode == "degrees"
            call_args = [math.radians(a) for a in args] if degrees and spec.angle == "input" else args
            value = _call(spec.impl, call_args, f"Function {spec.name!r}", spec.name)
            if degrees and spec.angle == "output":
                value = math.degrees(value)
            self._trace(spec.name, args, value)
            return value

        raise MalformedStructure(f"Unsupported tree node {node!r}")
