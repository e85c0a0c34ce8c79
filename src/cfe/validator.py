# -----------------------------------------------------------------------------
# Validator: static pre-check of a token sequence (no evaluation)
# An empty formula is rejected up front; the other checks run in order and
# stop at the first failure:
#   1) grouping balance (bracket matching)
#   2) immediate arity context around operators / functions
#   3) unknown function and constant symbols
# The parser re-derives structure independently and is the authority on
# whether a formula can be evaluated.
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import List, Optional, Sequence

from .catalog import Catalog
from .errors import (FormulaError, UnbalancedGrouping, ArityMismatch, UnknownSymbol,
                     EmptyFormula, MalformedStructure)
from .types import (Token, ConstantToken, OperatorToken, FunctionToken,
                    GroupingToken, Side, BRACKETS, SEPARATORS)

MAX_TOKENS = 512


def _check_balance(tokens: Sequence[Token]) -> None:
    stack: List[int] = []
    for i, tok in enumerate(tokens):
        if not isinstance(tok, GroupingToken):
            continue
        if tok.side is Side.OPEN:
            if tok.symbol not in BRACKETS:
                raise UnbalancedGrouping(f"Unknown opening symbol {tok.symbol!r}", i, tok.symbol)
            stack.append(i)
        elif tok.side is Side.CLOSE:
            if not stack:
                raise UnbalancedGrouping(f"Unmatched closing {tok.symbol!r}", i, tok.symbol)
            opener = tokens[stack[-1]].symbol
            if BRACKETS[opener] != tok.symbol:
                expected = BRACKETS[opener]
                raise UnbalancedGrouping(f"Expected {expected!r} to close {opener!r}, got {tok.symbol!r}",
                                         i, tok.symbol)
            stack.pop()
    if stack:
        i = stack[-1]
        raise UnbalancedGrouping(f"Unclosed {tokens[i].symbol!r}", i, tokens[i].symbol)


def _starts_operand(prev: Optional[Token]) -> bool:
    """True when the token after `prev` must begin an operand (prefix position)."""
    if prev is None or isinstance(prev, OperatorToken):
        return True
    if isinstance(prev, GroupingToken):
        return prev.side is not Side.CLOSE
    return isinstance(prev, FunctionToken)


def _ends_operand(nxt: Optional[Token]) -> bool:
    """True when `nxt` cannot continue an operand (end, close or separator)."""
    return nxt is None or (isinstance(nxt, GroupingToken) and nxt.side is not Side.OPEN)


def _argument_count(tokens: Sequence[Token], open_index: int) -> int:
    # caller guarantees the grouping is balanced
    depth, count, empty = 0, 1, True
    for tok in tokens[open_index + 1:]:
        if isinstance(tok, GroupingToken):
            if tok.side is Side.OPEN:
                depth += 1
            elif tok.side is Side.CLOSE:
                if depth == 0:
                    break
                depth -= 1
            elif depth == 0:
                count += 1
                continue
        empty = False
    return 0 if empty and count == 1 else count


def _check_arity_context(tokens: Sequence[Token], catalog: Catalog) -> None:
    n = len(tokens)
    for i, tok in enumerate(tokens):
        prev = tokens[i - 1] if i > 0 else None
        nxt = tokens[i + 1] if i + 1 < n else None

        if isinstance(tok, OperatorToken):
            if catalog.has_operator(tok.symbol):
                arity = 1 if _starts_operand(prev) else 2
                if tok.arity is not None and tok.arity != arity:
                    raise ArityMismatch(
                        f"Operator {tok.symbol!r} declared with arity {tok.arity} "
                        f"but used with arity {arity}", i, tok.symbol)
                if catalog.operator(tok.symbol, arity) is None:
                    where = "without a left operand" if arity == 1 else "as a binary operator"
                    raise ArityMismatch(f"Operator {tok.symbol!r} cannot be used {where}",
                                        i, tok.symbol)
            if _ends_operand(nxt):
                raise ArityMismatch(f"Operator {tok.symbol!r} is missing its right operand",
                                    i, tok.symbol)

        elif isinstance(tok, FunctionToken):
            if not (isinstance(nxt, GroupingToken) and nxt.side is Side.OPEN):
                raise ArityMismatch(f"Function {tok.symbol!r} must be followed by an opening bracket",
                                    i, tok.symbol)
            arity = catalog.is_known_function(tok.symbol)
            if arity is not None:
                got = _argument_count(tokens, i + 1)
                if not arity.accepts(got):
                    raise ArityMismatch(
                        f"Function {tok.symbol!r} expects {arity.describe()} argument(s), got {got}",
                        i, tok.symbol)

        elif isinstance(tok, GroupingToken) and tok.side is Side.SEPARATOR:
            if isinstance(prev, GroupingToken) and prev.side is not Side.CLOSE:
                raise ArityMismatch(f"Empty argument before {tok.symbol!r}", i, tok.symbol)


def _check_symbols(tokens: Sequence[Token], catalog: Catalog) -> None:
    for i, tok in enumerate(tokens):
        if isinstance(tok, FunctionToken) and catalog.is_known_function(tok.symbol) is None:
            raise UnknownSymbol(f"Unknown function {tok.symbol!r}", i, tok.symbol)
        if isinstance(tok, ConstantToken) and catalog.is_known_constant(tok.symbol) is None:
            raise UnknownSymbol(f"Unknown constant {tok.symbol!r}", i, tok.symbol)
        if isinstance(tok, OperatorToken) and not catalog.has_operator(tok.symbol):
            raise UnknownSymbol(f"Unknown operator {tok.symbol!r}", i, tok.symbol)
        if isinstance(tok, GroupingToken) and tok.side is Side.SEPARATOR and tok.symbol not in SEPARATORS:
            raise UnknownSymbol(f"Unknown separator {tok.symbol!r}", i, tok.symbol)


def check_tokens(tokens: Sequence[Token], catalog: Catalog) -> None:
    """Raise the first FormulaError found in `tokens`; return None when valid."""
    if not tokens:
        raise EmptyFormula()
    if len(tokens) > MAX_TOKENS:
        raise MalformedStructure(f"Formula has {len(tokens)} tokens (limit {MAX_TOKENS})")
    _check_balance(tokens)
    _check_arity_context(tokens, catalog)
    _check_symbols(tokens, catalog)


def validate(tokens: Sequence[Token], catalog: Catalog) -> Optional[FormulaError]:
    try:
        check_tokens(tokens, catalog)
    except FormulaError as e:
        return e
    return None
