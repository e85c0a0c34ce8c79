# -----------------------------------------------------------------------------
# Error taxonomy for the formula engine
# Structural errors (validator/parser) stop processing before evaluation;
# evaluation errors depend on the bindings of a single call. The engine
# surface turns all of them into result values via to_dict().
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Any, Dict


class FormulaError(Exception):
    kind = "FormulaError"
    structural = True

    def __init__(self, message: str, position: int | None = None, symbol: str | None = None):
        super().__init__(message)
        self.message = message
        self.position = position
        self.symbol = symbol

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.position is not None:
            d["position"] = self.position
        if self.symbol is not None:
            d["symbol"] = self.symbol
        return d

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash((self.kind, self.message, self.position, self.symbol))


# ---- structural -------------------------------------------------------------

class UnbalancedGrouping(FormulaError):
    kind = "UnbalancedGrouping"


class ArityMismatch(FormulaError):
    kind = "ArityMismatch"


class UnknownSymbol(FormulaError):
    kind = "UnknownSymbol"


class EmptyFormula(FormulaError):
    kind = "EmptyFormula"

    def __init__(self, message: str = "Formula has no tokens."):
        super().__init__(message)


class MalformedStructure(FormulaError):
    kind = "MalformedStructure"


# ---- evaluation-time --------------------------------------------------------

class EvaluationError(FormulaError):
    structural = False


class UnboundVariable(EvaluationError):
    kind = "UnboundVariable"

    def __init__(self, name: str):
        super().__init__(f"Missing required variable '{name}'", symbol=name)
        self.name = name

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["name"] = self.name
        return d


class DivisionByZero(EvaluationError):
    kind = "DivisionByZero"

    def __init__(self, symbol: str, message: str = "Division by zero"):
        super().__init__(message, symbol=symbol)


class DomainError(EvaluationError):
    kind = "DomainError"

    def __init__(self, function: str, value: float):
        super().__init__(f"{function}: argument {value!r} is outside the function's domain",
                         symbol=function)
        self.function = function
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["function"] = self.function
        d["value"] = self.value
        return d


class NumericOverflow(EvaluationError):
    kind = "NumericOverflow"
