# -----------------------------------------------------------------------------
# Renderer: parsed tree -> display text, Python expression, LaTeX
# A child sub-expression is parenthesized only when it binds looser than its
# parent, or equally on the side that conflicts with the parent's
# associativity. The Python target uses Python's own precedence for unary
# minus (looser than '**'), so its parentheses can differ from the display.
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence

from .catalog import Catalog, OperatorSpec
from .errors import MalformedStructure, UnknownSymbol
from .types import (Node, Token, ConstantNode, VariableNode, OperatorNode, FunctionNode,
                    display_of)

DISPLAY, EXPRESSION, LATEX = "display", "expression", "latex"


@dataclass(frozen=True)
class Rendering:
    display: str
    expression: str
    latex: str


class _Target:
    def __init__(self, catalog: Catalog, target: str):
        self.catalog = catalog
        self.target = target

    # ---------------- precedence ----------------

    def _op(self, node: OperatorNode) -> OperatorSpec:
        spec = self.catalog.operator(node.symbol, node.arity)
        if spec is None or len(node.children) != node.arity:
            raise MalformedStructure(f"No {node.arity}-ary operator {node.symbol!r}", symbol=node.symbol)
        return spec

    def _prec(self, spec: OperatorSpec) -> float:
        return spec.expression_precedence if self.target == EXPRESSION else spec.precedence

    def _signed_literal_prec(self) -> float:
        # '-3' as a literal behaves like unary minus applied to 3
        neg = self.catalog.operator("-", 1)
        return self._prec(neg) if neg is not None else float("inf")

    def _child_prec(self, node: Node) -> Optional[float]:
        if isinstance(node, OperatorNode):
            return self._prec(self._op(node))
        if isinstance(node, ConstantNode) and node.symbol.startswith(("+", "-")):
            return self._signed_literal_prec()
        return None

    def _needs_parens(self, child: Node, parent: OperatorSpec, side: str) -> bool:
        cp = self._child_prec(child)
        if cp is None:
            return False
        pp = self._prec(parent)
        if parent.arity == 1:
            return cp <= pp
        if cp < pp:
            return True
        if cp == pp:
            return (side == "left") == parent.right_assoc
        return False

    def _wrap(self, text: str) -> str:
        if self.target == LATEX:
            return f"\\left({text}\\right)"
        return f"({text})"

    def _child(self, child: Node, parent: OperatorSpec, side: str) -> str:
        text = self.render(child)
        return self._wrap(text) if self._needs_parens(child, parent, side) else text

    # ---------------- nodes ----------------

    def _constant(self, node: ConstantNode) -> str:
        spec = self.catalog.constants.get(node.symbol)
        if spec is not None:
            if self.target == EXPRESSION:
                return spec.expression
            if self.target == LATEX:
                return spec.latex
            return spec.symbol
        if self.catalog.is_known_constant(node.symbol) is None:
            raise UnknownSymbol(f"Unknown constant {node.symbol!r}", symbol=node.symbol)
        return node.symbol

    def _operator(self, node: OperatorNode) -> str:
        spec = self._op(node)
        token = {DISPLAY: spec.display, EXPRESSION: spec.expression, LATEX: spec.latex}[self.target]
        if spec.arity == 1:
            return f"{token}{self._child(node.children[0], spec, 'right')}"
        left = self._child(node.children[0], spec, "left")
        if self.target == LATEX and spec.guard == "power":
            # the exponent is grouped by braces, never by parentheses
            return f"{{{left}}}^{{{self.render(node.children[1])}}}"
        right = self._child(node.children[1], spec, "right")
        return f"{left} {token} {right}"

    def _function(self, node: FunctionNode) -> str:
        spec = self.catalog.functions.get(node.name)
        if spec is None:
            raise UnknownSymbol(f"Unknown function {node.name!r}", symbol=node.name)
        args = [self.render(a) for a in node.args]
        if self.target == LATEX:
            args = [self._wrap(text) if i in spec.latex_wrap and self._child_prec(a) is not None else text
                    for i, (a, text) in enumerate(zip(node.args, args))]
            return spec.latex.format(*args, args=", ".join(args))
        return f"{spec.name}({', '.join(args)})"

    def render(self, node: Node) -> str:
        if isinstance(node, ConstantNode):
            return self._constant(node)
        if isinstance(node, VariableNode):
            if self.target == DISPLAY:
                return node.display_text or node.name
            return node.name
        if isinstance(node, OperatorNode):
            return self._operator(node)
        if isinstance(node, FunctionNode):
            return self._function(node)
        raise MalformedStructure(f"Unsupported tree node {node!r}")


def render_tree(tree: Node, catalog: Catalog) -> Rendering:
    return Rendering(
        display=_Target(catalog, DISPLAY).render(tree),
        expression=_Target(catalog, EXPRESSION).render(tree),
        latex=_Target(catalog, LATEX).render(tree),
    )


def concat_display(tokens: Sequence[Token]) -> str:
    """Token-by-token display text, as authored (no tree needed)."""
    return " ".join(display_of(t) for t in tokens)
