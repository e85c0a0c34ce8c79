# -----------------------------------------------------------------------------
# Engine: the public surface of the formula engine
# Operations (each a stateless call):
#   • validate_formula  tokens              -> ValidationResult
#   • parse_formula     tokens              -> ParseResult
#   • execute_formula   tokens, bindings    -> ExecutionResult
#   • render_formula    tokens | tree       -> RenderResult
#   • list_functions                        -> function catalog by category
# Every FormulaError becomes a result value here; nothing escapes to callers.
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Union

from .catalog import Catalog, default_catalog
from .errors import FormulaError, MalformedStructure
from .evaluator import Evaluator, EvalConfig
from .parser import parse_tokens
from .renderer import render_tree, concat_display
from .tracer import Tracer
from .types import Node, Token, ConstantNode, VariableNode, OperatorNode, FunctionNode
from .validator import check_tokens

logger = logging.getLogger(__name__)

_NODE_TYPES = (ConstantNode, VariableNode, OperatorNode, FunctionNode)


def _too_deep() -> MalformedStructure:
    return MalformedStructure("Formula is nested too deeply to process")


@dataclass
class ValidationResult:
    valid: bool
    error: FormulaError | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "error": self.error.to_dict() if self.error else None}


@dataclass
class ParseResult:
    ok: bool
    tree: Node | None = None
    error: FormulaError | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok,
                "tree": self.tree.to_dict() if self.tree is not None else None,
                "error": self.error.to_dict() if self.error else None}


@dataclass
class ExecutionResult:
    # Structured response used by the API layer
    ok: bool
    result: float | None = None
    error: FormulaError | None = None
    trace: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def error_kind(self) -> str | None:
        if self.error is None:
            return None
        return "structure" if self.error.structural else "evaluation"

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "result": self.result,
                "error": self.error.to_dict() if self.error else None,
                "error_kind": self.error_kind, "trace": self.trace}


@dataclass
class RenderResult:
    ok: bool
    display: str | None = None
    expression: str | None = None
    latex: str | None = None
    source: str | None = None     # token-by-token text, when tokens were given
    error: FormulaError | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "display": self.display, "expression": self.expression,
                "latex": self.latex, "source": self.source,
                "error": self.error.to_dict() if self.error else None}


def validate_formula(tokens: Sequence[Token], catalog: Catalog | None = None,
                     deep: bool = True) -> ValidationResult:
    """
    Static check of a token list. With deep=True (default) a formula that
    passes the fast checks is also parsed, so structural problems only the
    parser can see (e.g. two adjacent operands) are reported too.
    """
    catalog = catalog or default_catalog()
    try:
        if deep:
            parse_tokens(tokens, catalog)
        else:
            check_tokens(tokens, catalog)
    except FormulaError as e:
        logger.info("validate: %s at %s: %s", e.kind, e.position, e.message)
        return ValidationResult(False, e)
    logger.debug("validate: %d tokens ok", len(tokens))
    return ValidationResult(True)


def parse_formula(tokens: Sequence[Token], catalog: Catalog | None = None) -> ParseResult:
    catalog = catalog or default_catalog()
    try:
        tree = parse_tokens(tokens, catalog)
    except FormulaError as e:
        logger.info("parse: %s at %s: %s", e.kind, e.position, e.message)
        return ParseResult(False, error=e)
    return ParseResult(True, tree=tree)


def execute_formula(tokens: Sequence[Token], bindings: Mapping[str, Any],
                    config: EvalConfig | None = None,
                    catalog: Catalog | None = None) -> ExecutionResult:
    """
    Validate, parse and evaluate a formula against one set of bindings.
    A formula that validates can still fail here (unbound variable, division
    by zero, domain or overflow), since those depend on the bindings.
    """
    catalog = catalog or default_catalog()
    config = config or EvalConfig()
    trace = Tracer()
    try:
        check_tokens(tokens, catalog)
        trace.add("validate", {"tokens": len(tokens)})
        tree = parse_tokens(tokens, catalog)
        trace.add("parse", {"tree": tree.to_dict()})
        value = Evaluator(catalog, config, trace).evaluate(tree, bindings)
    except FormulaError as e:
        trace.add("error", e.to_dict())
        logger.info("execute: %s: %s", e.kind, e.message)
        return ExecutionResult(False, error=e, trace=trace.steps())
    except RecursionError:
        e = _too_deep()
        trace.add("error", e.to_dict())
        return ExecutionResult(False, error=e, trace=trace.steps())
    trace.add("result", {"value": value, "angle_mode": config.angle_mode})
    if trace.truncated:
        logger.debug("execute: %d trace steps dropped", trace.dropped)
    logger.debug("execute: result %r", value)
    return ExecutionResult(True, result=value, trace=trace.steps())


def render_formula(formula: Union[Sequence[Token], Node],
                   catalog: Catalog | None = None) -> RenderResult:
    """
    Render a token list or an already parsed tree. Token lists are parsed
    first; structural errors are returned, with the raw token text in
    `source` so callers can still show what was authored.
    """
    catalog = catalog or default_catalog()
    source = None
    try:
        if isinstance(formula, _NODE_TYPES):
            tree = formula
        else:
            source = concat_display(formula)
            tree = parse_tokens(formula, catalog)
        r = render_tree(tree, catalog)
    except FormulaError as e:
        logger.info("render: %s: %s", e.kind, e.message)
        return RenderResult(False, source=source, error=e)
    except RecursionError:
        return RenderResult(False, source=source, error=_too_deep())
    return RenderResult(True, display=r.display, expression=r.expression, latex=r.latex, source=source)


def list_functions(catalog: Catalog | None = None) -> Dict[str, List[Dict[str, Any]]]:
    return (catalog or default_catalog()).list_functions()
