# -----------------------------------------------------------------------------
# Catalog loader & accessor
# Purpose: Parse the YAML catalog (constants, operators, functions) into
# read-only, typed specs. The validator, parser, evaluator and renderer all
# consult this one table instead of carrying their own rules.
# - Depends on .functions for the impl / domain registries.
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import yaml

from .functions import IMPLEMENTATIONS, DOMAINS

DEFAULT_CATALOG_PATH = Path(__file__).with_name("catalog.yaml")


# Domain-specific error to signal malformed catalog inputs, missing fields, etc.
class CatalogError(Exception): pass


@dataclass(frozen=True)
class Arity:
    # Fixed arity: minimum == maximum; variadic: maximum is None
    minimum: int
    maximum: int | None

    @property
    def variadic(self) -> bool:
        return self.maximum is None

    def accepts(self, n: int) -> bool:
        return n >= self.minimum and (self.maximum is None or n <= self.maximum)

    def describe(self) -> str:
        if self.maximum is None:
            return f"at least {self.minimum}"
        return str(self.minimum)

    def to_json(self) -> Any:
        return {"min": self.minimum} if self.variadic else self.minimum


@dataclass(frozen=True)
class ConstantSpec:
    symbol: str
    value: float
    expression: str
    latex: str
    description: str = ""


@dataclass(frozen=True)
class OperatorSpec:
    symbol: str
    arity: int
    precedence: float
    associativity: str          # "left" | "right"
    impl: Callable[..., float] = field(compare=False)
    display: str
    latex: str
    expression: str
    expression_precedence: float
    guard: str | None = None

    @property
    def right_assoc(self) -> bool:
        return self.associativity == "right"


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    arity: Arity
    category: str
    impl: Callable[..., float] = field(compare=False)
    latex: str
    description: str = ""
    domain: str | None = None
    guard: str | None = None
    angle: str | None = None    # "input" | "output"
    # argument slots the LaTeX template leaves undelimited (e.g. "{0}!")
    latex_wrap: Tuple[int, ...] = ()

    def in_domain(self, value: float) -> bool:
        return self.domain is None or DOMAINS[self.domain](value)


def _arity_from(raw: Any, name: str) -> Arity:
    if isinstance(raw, int) and not isinstance(raw, bool) and raw >= 0:
        return Arity(raw, raw)
    if isinstance(raw, dict) and isinstance(raw.get("min"), int):
        return Arity(int(raw["min"]), raw.get("max"))
    raise CatalogError(f"Invalid arity for {name!r}: {raw!r}")


def _impl(key: Any, owner: str) -> Callable[..., float]:
    fn = IMPLEMENTATIONS.get(str(key))
    if fn is None:
        raise CatalogError(f"Unknown implementation {key!r} for {owner!r}")
    return fn


@dataclass(eq=False)
class Catalog:
    # Read-only lookups; aliases already folded into the mappings
    constants: Mapping[str, ConstantSpec]
    operators: Mapping[Tuple[str, int], OperatorSpec]
    functions: Mapping[str, FunctionSpec]

    @staticmethod
    def from_yaml_dict(d: Dict[str, Any]) -> "Catalog":
        """
        Build a Catalog from a pre-parsed YAML dictionary.
        Expected YAML high-level shape:
          constants:
            "π": { value: 3.14159..., aliases: [pi], expression: pi, latex: "\\pi" }
          operators:
            - { symbol: "*", arity: 2, precedence: 2, associativity: left,
                impl: mul, aliases: ["×"], display: "×", latex: "\\times", expression: "*" }
          functions:
            - { name: sqrt, arity: 1, category: algebraic, impl: sqrt,
                domain: nonnegative, latex: "\\sqrt{{{0}}}" }
        """
        if not isinstance(d, dict):
            raise CatalogError("Catalog root must be a mapping")

        consts: Dict[str, ConstantSpec] = {}
        # ---- Parse constants --------------------------------------------------
        for sym, c in (d.get("constants") or {}).items():
            try:
                spec = ConstantSpec(symbol=str(sym), value=float(c["value"]),
                                    expression=str(c.get("expression", sym)),
                                    latex=str(c.get("latex", sym)),
                                    description=str(c.get("description", "")))
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(f"Bad constant {sym!r}: {e}")
            for name in [spec.symbol] + list(c.get("aliases") or []):
                consts[str(name)] = spec

        ops: Dict[Tuple[str, int], OperatorSpec] = {}
        # ---- Parse operators --------------------------------------------------
        for od in d.get("operators") or []:
            try:
                sym = str(od["symbol"])
                arity = int(od["arity"])
                if arity not in (1, 2):
                    raise CatalogError(f"Operator {sym!r} must have arity 1 or 2")
                assoc = str(od.get("associativity", "left"))
                if assoc not in ("left", "right"):
                    raise CatalogError(f"Operator {sym!r}: bad associativity {assoc!r}")
                prec = float(od["precedence"])
                spec = OperatorSpec(
                    symbol=sym, arity=arity, precedence=prec, associativity=assoc,
                    impl=_impl(od["impl"], sym),
                    display=str(od.get("display", sym)),
                    latex=str(od.get("latex", sym)),
                    expression=str(od.get("expression", sym)),
                    expression_precedence=float(od.get("expression_precedence", prec)),
                    guard=od.get("guard"),
                )
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(f"Bad operator entry {od!r}: {e}")
            for name in [sym] + list(od.get("aliases") or []):
                ops[(str(name), arity)] = spec

        funcs: Dict[str, FunctionSpec] = {}
        # ---- Parse functions --------------------------------------------------
        for fd in d.get("functions") or []:
            try:
                name = str(fd["name"])
                domain = fd.get("domain")
                if domain is not None and domain not in DOMAINS:
                    raise CatalogError(f"Function {name!r}: unknown domain {domain!r}")
                spec = FunctionSpec(
                    name=name, arity=_arity_from(fd["arity"], name),
                    category=str(fd.get("category", "other")),
                    impl=_impl(fd["impl"], name),
                    latex=str(fd.get("latex", name + "\\left({args}\\right)")),
                    description=str(fd.get("description", "")),
                    domain=domain, guard=fd.get("guard"), angle=fd.get("angle"),
                    latex_wrap=tuple(int(s) for s in fd.get("latex_wrap") or ()),
                )
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(f"Bad function entry {fd!r}: {e}")
            for alias in [name] + list(fd.get("aliases") or []):
                funcs[str(alias)] = spec

        return Catalog(constants=MappingProxyType(consts),
                       operators=MappingProxyType(ops),
                       functions=MappingProxyType(funcs))

    @staticmethod
    def from_yaml_text(text: str) -> "Catalog":
        """
        Convenience: parse raw YAML string into a Catalog.
        Uses yaml.safe_load for security (no arbitrary object constructors).
        """
        return Catalog.from_yaml_dict(yaml.safe_load(text))

    @staticmethod
    def from_file(path: str | Path) -> "Catalog":
        with open(path, "r", encoding="utf-8") as f:
            return Catalog.from_yaml_text(f.read())

    # ---------------- lookups ----------------

    def is_known_function(self, name: str) -> Optional[Arity]:
        spec = self.functions.get(name)
        return spec.arity if spec else None

    def is_known_constant(self, name: str) -> Optional[float]:
        """Catalog value for a named constant, or the value of a finite decimal literal."""
        spec = self.constants.get(name)
        if spec is not None:
            return spec.value
        return parse_literal(name)

    def operator(self, symbol: str, arity: int) -> Optional[OperatorSpec]:
        return self.operators.get((symbol, arity))

    def has_operator(self, symbol: str) -> bool:
        return (symbol, 1) in self.operators or (symbol, 2) in self.operators

    def list_functions(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Function catalog grouped by category, one row per canonical function
        (aliases are listed on the row, not as separate entries).
        """
        seen = set()
        aliases: Dict[str, List[str]] = {}
        for alias, spec in self.functions.items():
            if alias != spec.name:
                aliases.setdefault(spec.name, []).append(alias)
        out: Dict[str, List[Dict[str, Any]]] = {}
        for spec in self.functions.values():
            if spec.name in seen:
                continue
            seen.add(spec.name)
            out.setdefault(spec.category, []).append({
                "name": spec.name,
                "args": spec.arity.to_json(),
                "description": spec.description,
                "aliases": aliases.get(spec.name, []),
            })
        return out


def parse_literal(text: str) -> Optional[float]:
    # only plain decimal literals; 'inf', 'nan' and '1_000' are rejected
    s = text.strip()
    if not s or not all(ch.isdigit() or ch in ".eE+-" for ch in s):
        return None
    try:
        value = float(s)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


@lru_cache(maxsize=1)
def default_catalog() -> Catalog:
    """The bundled catalog, loaded once per process."""
    return Catalog.from_file(DEFAULT_CATALOG_PATH)
