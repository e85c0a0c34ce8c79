# -----------------------------------------------------------------------------
# Types module: Token model and parsed-tree nodes for the formula engine
# Purpose:
#   Define the closed set of formula elements (constant, variable, operator,
#   function, grouping) and the tree nodes derived from them. Every class is a
#   frozen dataclass so token sequences and trees are value-comparable and
#   hashable (usable as cache keys).
# -----------------------------------------------------------------------------

from __future__ import annotations
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Tuple, Union


class TokenKind(str, Enum):
    CONSTANT = "constant"
    VARIABLE = "variable"
    OPERATOR = "operator"
    FUNCTION = "function"
    GROUPING = "grouping"


class Side(str, Enum):
    OPEN = "open"
    CLOSE = "close"
    SEPARATOR = "separator"


# Opening bracket -> the closing bracket that must match it
BRACKETS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in BRACKETS.items()}
SEPARATORS = {",", ";"}

_IDENT = re.compile(r"^[^\W\d]\w*$", re.UNICODE)


class TokenDecodeError(ValueError):
    """Raised when a wire dict cannot be turned into a Token."""


# ----------------------------- Tokens -----------------------------------------

@dataclass(frozen=True)
class ConstantToken:
    # Catalog constant ('π', 'e') or a decimal literal ('2', '3.5')
    symbol: str
    display_text: str = ""
    kind = TokenKind.CONSTANT


@dataclass(frozen=True)
class VariableToken:
    # Declarative hole, bound by name at evaluation time
    symbol: str
    display_text: str = ""
    kind = TokenKind.VARIABLE


@dataclass(frozen=True)
class OperatorToken:
    # arity None means "infer from position" (prefix position -> unary)
    symbol: str
    display_text: str = ""
    arity: int | None = None
    kind = TokenKind.OPERATOR


@dataclass(frozen=True)
class FunctionToken:
    symbol: str
    display_text: str = ""
    kind = TokenKind.FUNCTION


@dataclass(frozen=True)
class GroupingToken:
    symbol: str
    display_text: str = ""
    side: Side = Side.OPEN
    kind = TokenKind.GROUPING


Token = Union[ConstantToken, VariableToken, OperatorToken, FunctionToken, GroupingToken]
Formula = Tuple[Token, ...]


def display_of(token: Token) -> str:
    return token.display_text or token.symbol


# ----------------------------- Tree nodes -------------------------------------

@dataclass(frozen=True)
class ConstantNode:
    symbol: str
    display_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"node": "constant", "symbol": self.symbol}


@dataclass(frozen=True)
class VariableNode:
    name: str
    display_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"node": "variable", "name": self.name}


@dataclass(frozen=True)
class OperatorNode:
    # symbol is the catalog's canonical symbol; arity == len(children)
    symbol: str
    arity: int
    children: Tuple["Node", ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"node": "operator", "symbol": self.symbol, "arity": self.arity,
                "children": [c.to_dict() for c in self.children]}


@dataclass(frozen=True)
class FunctionNode:
    name: str
    args: Tuple["Node", ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"node": "function", "name": self.name,
                "args": [a.to_dict() for a in self.args]}


Node = Union[ConstantNode, VariableNode, OperatorNode, FunctionNode]


# ----------------------------- Wire decoding ----------------------------------

def _pick(d: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if d.get(k) is not None:
            return d[k]
    return None


def _side_for(symbol: str, side: Any) -> Side:
    if side is not None:
        try:
            return Side(str(side).lower())
        except ValueError:
            raise TokenDecodeError(f"Invalid grouping side: {side!r}")
    if symbol in BRACKETS:
        return Side.OPEN
    if symbol in CLOSERS:
        return Side.CLOSE
    if symbol in SEPARATORS:
        return Side.SEPARATOR
    raise TokenDecodeError(f"Cannot infer grouping side for {symbol!r}")


def token_from_dict(d: Dict[str, Any]) -> Token:
    """
    Build a Token from its wire form.
    Accepted keys:
      kind | type           : constant | variable | operator | function | grouping
      symbol | value | name : canonical identifier
      display_text | display: optional human-readable text
      side                  : open | close | separator (grouping only)
      arity                 : 1 | 2 (operator only, optional)
    Older payloads tagged brackets as operators; those are normalized here.
    """
    if not isinstance(d, dict):
        raise TokenDecodeError(f"Token must be an object, got {type(d).__name__}")
    raw_kind = _pick(d, "kind", "type")
    symbol = _pick(d, "symbol", "value", "name")
    if raw_kind is None or symbol is None:
        raise TokenDecodeError(f"Token needs a kind and a symbol: {d!r}")
    symbol = str(symbol).strip()
    if not symbol:
        raise TokenDecodeError("Token symbol must not be empty")
    display = str(_pick(d, "display_text", "display") or "")
    try:
        kind = TokenKind(str(raw_kind).lower())
    except ValueError:
        raise TokenDecodeError(f"Unknown token kind: {raw_kind!r}")

    # legacy: '(' / ')' / ',' sent as operators
    if kind is TokenKind.OPERATOR and (symbol in BRACKETS or symbol in CLOSERS or symbol in SEPARATORS):
        kind = TokenKind.GROUPING

    if kind is TokenKind.CONSTANT:
        return ConstantToken(symbol, display)
    if kind is TokenKind.VARIABLE:
        if not _IDENT.match(symbol):
            raise TokenDecodeError(f"Invalid variable name: {symbol!r}")
        return VariableToken(symbol, display)
    if kind is TokenKind.OPERATOR:
        arity = d.get("arity")
        if arity is not None:
            if isinstance(arity, bool) or not isinstance(arity, int) or arity not in (1, 2):
                raise TokenDecodeError(f"Operator arity must be 1 or 2, got {arity!r}")
        return OperatorToken(symbol, display, arity)
    if kind is TokenKind.FUNCTION:
        return FunctionToken(symbol, display)
    if kind is TokenKind.GROUPING:
        return GroupingToken(symbol, display, _side_for(symbol, d.get("side")))
    raise TokenDecodeError(f"Unhandled token kind: {kind}")


def tokens_from_dicts(items: Iterable[Dict[str, Any]]) -> Formula:
    out = []
    for i, d in enumerate(items):
        try:
            out.append(token_from_dict(d))
        except TokenDecodeError as e:
            raise TokenDecodeError(f"Token {i}: {e}") from e
    return tuple(out)


def token_to_dict(token: Token) -> Dict[str, Any]:
    d: Dict[str, Any] = {"kind": token.kind.value, "symbol": token.symbol,
                         "display_text": display_of(token)}
    if isinstance(token, GroupingToken):
        d["side"] = token.side.value
    if isinstance(token, OperatorToken) and token.arity is not None:
        d["arity"] = token.arity
    return d
