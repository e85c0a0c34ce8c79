# -----------------------------------------------------------------------------
# Parser: flat token sequence -> precedence-respecting expression tree
# Algorithm: shunting-yard with an operand stack and an operator stack.
#   • constant / variable   -> push leaf
#   • operator              -> unary in prefix position, else binary; reduce
#                              while the stack top binds tighter (or equally,
#                              for left-associative operators), then push
#   • function + '('        -> push a call frame that counts its arguments
#   • '('                   -> push a group frame (barrier)
#   • ','                   -> reduce to the enclosing call frame, next argument
#   • ')'                   -> reduce to the barrier; close call or group
# The validator's static checks run before the loop; the loop then reports
# what only the tree shows (adjacent operands, empty brackets, stray
# separators). At the end exactly one operand must remain.
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Sequence, Tuple, Union

from .catalog import Catalog, OperatorSpec
from .errors import UnbalancedGrouping, ArityMismatch, MalformedStructure
from .types import (Token, Formula, Node, ConstantToken, VariableToken, OperatorToken,
                    FunctionToken, GroupingToken, Side, BRACKETS,
                    ConstantNode, VariableNode, OperatorNode, FunctionNode, display_of)
from .validator import check_tokens


@dataclass
class _PendingOp:
    spec: OperatorSpec
    position: int


@dataclass
class _Group:
    # Barrier for a bracket; `function` is set when the bracket opens a call
    position: int
    symbol: str
    function: FunctionToken | None = None
    function_position: int = -1
    argc: int = 0


_StackItem = Union[_PendingOp, _Group]


class _ShuntingYard:
    def __init__(self, tokens: Sequence[Token], catalog: Catalog):
        self.tokens = tokens
        self.catalog = catalog
        self.output: List[Node] = []
        self.stack: List[_StackItem] = []

    # ---------------- stack helpers ----------------

    def _apply(self, op: _PendingOp) -> None:
        n = op.spec.arity
        if len(self.output) < n:
            raise MalformedStructure(f"Operator {op.spec.symbol!r} lacks operands",
                                     op.position, op.spec.symbol)
        children = tuple(self.output[-n:])
        del self.output[-n:]
        self.output.append(OperatorNode(op.spec.symbol, n, children))

    def _reduce_while(self, spec: OperatorSpec) -> None:
        while self.stack and isinstance(self.stack[-1], _PendingOp):
            top = self.stack[-1].spec
            if top.precedence > spec.precedence or (
                    top.precedence == spec.precedence and not spec.right_assoc):
                self._apply(self.stack.pop())
            else:
                break

    def _reduce_to_group(self) -> _Group | None:
        while self.stack and isinstance(self.stack[-1], _PendingOp):
            self._apply(self.stack.pop())
        return self.stack[-1] if self.stack else None

    def _missing_operand(self, i: int, what: str):
        """Error for a token at `i` that arrives where an operand was expected."""
        prev = self.tokens[i - 1] if i > 0 else None
        if isinstance(prev, OperatorToken):
            return ArityMismatch(f"Operator {prev.symbol!r} is missing its right operand",
                                 i - 1, prev.symbol)
        group = self.stack[-1] if self.stack else None
        if isinstance(group, _Group) and group.function is not None:
            return ArityMismatch(f"Empty argument in call to {group.function.symbol!r}",
                                 group.function_position, group.function.symbol)
        return MalformedStructure(f"Expected an operand before {what}", i, what)

    # ---------------- main loop ----------------

    def run(self) -> Node:
        tokens = self.tokens
        # the static checks run first so both entry points report the same error
        check_tokens(tokens, self.catalog)

        expect_operand = True
        i = 0
        while i < len(tokens):
            tok = tokens[i]

            if isinstance(tok, (ConstantToken, VariableToken)):
                if not expect_operand:
                    raise MalformedStructure(
                        f"{display_of(tok)!r} follows a complete expression without an operator",
                        i, tok.symbol)
                if isinstance(tok, ConstantToken):
                    self.output.append(ConstantNode(tok.symbol, tok.display_text))
                else:
                    self.output.append(VariableNode(tok.symbol, tok.display_text))
                expect_operand = False

            elif isinstance(tok, OperatorToken):
                arity = 1 if expect_operand else 2
                if tok.arity is not None and tok.arity != arity:
                    raise ArityMismatch(
                        f"Operator {tok.symbol!r} declared with arity {tok.arity} "
                        f"but used with arity {arity}", i, tok.symbol)
                spec = self.catalog.operator(tok.symbol, arity)
                if spec is None:
                    where = "without a left operand" if arity == 1 else "as a binary operator"
                    raise ArityMismatch(f"Operator {tok.symbol!r} cannot be used {where}",
                                        i, tok.symbol)
                if arity == 2:
                    self._reduce_while(spec)
                self.stack.append(_PendingOp(spec, i))
                expect_operand = True

            elif isinstance(tok, FunctionToken):
                if not expect_operand:
                    raise MalformedStructure(
                        f"Function {tok.symbol!r} follows a complete expression without an operator",
                        i, tok.symbol)
                nxt = tokens[i + 1] if i + 1 < len(tokens) else None
                if not (isinstance(nxt, GroupingToken) and nxt.side is Side.OPEN):
                    raise ArityMismatch(
                        f"Function {tok.symbol!r} must be followed by an opening bracket",
                        i, tok.symbol)
                self.stack.append(_Group(i + 1, nxt.symbol, tok, i))
                i += 1  # the bracket belongs to the call
                expect_operand = True

            elif isinstance(tok, GroupingToken):
                if tok.side is Side.OPEN:
                    if not expect_operand:
                        raise MalformedStructure(
                            f"{tok.symbol!r} follows a complete expression without an operator",
                            i, tok.symbol)
                    self.stack.append(_Group(i, tok.symbol))
                    expect_operand = True

                elif tok.side is Side.SEPARATOR:
                    if expect_operand:
                        raise self._missing_operand(i, tok.symbol)
                    group = self._reduce_to_group()
                    if group is None or group.function is None:
                        raise MalformedStructure(
                            f"Separator {tok.symbol!r} outside of a function call", i, tok.symbol)
                    group.argc += 1
                    expect_operand = True

                else:
                    self._close(i, tok, expect_operand)
                    expect_operand = False
            else:
                raise MalformedStructure(f"Unsupported token {tok!r}", i)
            i += 1

        # ---- end of stream ----
        groups = [s for s in self.stack if isinstance(s, _Group)]
        if groups:
            g = groups[-1]
            raise UnbalancedGrouping(f"Unclosed {g.symbol!r}", g.position, g.symbol)
        if expect_operand:
            last = tokens[-1]
            raise ArityMismatch(f"Operator {last.symbol!r} is missing its right operand",
                                len(tokens) - 1, last.symbol)
        self._reduce_to_group()
        if len(self.output) != 1:
            raise MalformedStructure(
                f"Formula reduces to {len(self.output)} disconnected expressions")
        return self.output[0]

    def _close(self, i: int, tok: GroupingToken, expect_operand: bool) -> None:
        group = None
        for item in reversed(self.stack):
            if isinstance(item, _Group):
                group = item
                break
        if group is None:
            raise UnbalancedGrouping(f"Unmatched closing {tok.symbol!r}", i, tok.symbol)
        if BRACKETS[group.symbol] != tok.symbol:
            raise UnbalancedGrouping(
                f"Expected {BRACKETS[group.symbol]!r} to close {group.symbol!r}, got {tok.symbol!r}",
                i, tok.symbol)

        empty_call = (expect_operand and group.function is not None and group.argc == 0
                      and i - 1 == group.position)
        if expect_operand and not empty_call:
            if i - 1 == group.position:
                raise MalformedStructure(f"Empty brackets {group.symbol}{tok.symbol}",
                                         group.position, group.symbol)
            raise self._missing_operand(i, tok.symbol)

        self._reduce_to_group()
        self.stack.pop()
        if group.function is None:
            return

        argc = 0 if empty_call else group.argc + 1
        fn = group.function
        arity = self.catalog.is_known_function(fn.symbol)
        if not arity.accepts(argc):
            raise ArityMismatch(
                f"Function {fn.symbol!r} expects {arity.describe()} argument(s), got {argc}",
                group.function_position, fn.symbol)
        args: Tuple[Node, ...] = ()
        if argc:
            args = tuple(self.output[-argc:])
            del self.output[-argc:]
        spec = self.catalog.functions[fn.symbol]
        self.output.append(FunctionNode(spec.name, args))


@lru_cache(maxsize=512)
def _parse_cached(tokens: Formula, catalog: Catalog) -> Node:
    return _ShuntingYard(tokens, catalog).run()


def parse_tokens(tokens: Sequence[Token], catalog: Catalog) -> Node:
    """
    Parse a token sequence into a tree, raising a structural FormulaError.
    Trees are cached by token content; failures are not cached.
    """
    return _parse_cached(tuple(tokens), catalog)
