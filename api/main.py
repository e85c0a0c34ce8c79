# --- Custom Calculator Formula API (FastAPI) ----------------------------------
# Purpose: Thin HTTP boundary over the formula engine. Decodes token lists,
# forwards them to the engine's validate / parse / execute / render calls and
# returns their result values as JSON. No state is kept between requests.
# ------------------------------------------------------------------------------

from __future__ import annotations
import os
import logging
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Literal

from cfe.catalog import Catalog, CatalogError, default_catalog
from cfe.engine import validate_formula, parse_formula, execute_formula, render_formula
from cfe.evaluator import EvalConfig, ANGLE_MODES
from cfe.types import Formula, TokenDecodeError, tokens_from_dicts

# Load .env for external configuration (catalog path, defaults, log level)
load_dotenv()
CATALOG_PATH = os.getenv("CFE_CATALOG_PATH")
DEFAULT_ANGLE_MODE = os.getenv("CFE_ANGLE_MODE", "radians")
DEFAULT_PRECISION = os.getenv("CFE_PRECISION")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

logging.basicConfig(level=LOG_LEVEL.upper(), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def _load_catalog() -> Catalog:
    """Bundled catalog unless CFE_CATALOG_PATH points at another YAML file."""
    if not CATALOG_PATH:
        return default_catalog()
    try:
        return Catalog.from_file(CATALOG_PATH)
    except (OSError, CatalogError) as e:
        # a broken catalog is a deployment error; refuse to start
        raise RuntimeError(f"Cannot load catalog {CATALOG_PATH!r}: {e}") from e


def _default_precision() -> Optional[int]:
    if DEFAULT_PRECISION in (None, ""):
        return None
    try:
        return int(DEFAULT_PRECISION)
    except ValueError:
        raise RuntimeError(f"CFE_PRECISION must be an integer, got {DEFAULT_PRECISION!r}")


app = FastAPI(title="Custom Calculator Formula API")

if DEFAULT_ANGLE_MODE not in ANGLE_MODES:
    raise RuntimeError(f"CFE_ANGLE_MODE must be one of {ANGLE_MODES}, got {DEFAULT_ANGLE_MODE!r}")

_catalog = _load_catalog()
_precision = _default_precision()

# ----------------------------- Schemas ----------------------------------------
class TokenIn(BaseModel):
    # One formula element as sent by the editor; legacy keys are accepted too
    kind: Optional[str] = None
    type: Optional[str] = None
    symbol: Optional[str] = None
    value: Optional[Any] = None
    name: Optional[str] = None
    display_text: Optional[str] = None
    display: Optional[str] = None
    side: Optional[str] = None
    arity: Optional[int] = None

class FormulaRequest(BaseModel):
    formula: List[TokenIn]

class ExecuteRequest(FormulaRequest):
    # /formula/execute also accepts the older `values` key for bindings
    variables: Dict[str, float] = Field(default_factory=dict)
    values: Optional[Dict[str, float]] = None
    angle_mode: Optional[Literal["radians", "degrees"]] = None
    precision: Optional[int] = Field(default=None, ge=0, le=15)


def _decode(req: FormulaRequest) -> Formula:
    """Wire tokens -> engine tokens; malformed tokens are the client's fault (400)."""
    try:
        return tokens_from_dicts(t.model_dump(exclude_none=True) for t in req.formula)
    except TokenDecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))

# ----------------------------- Routes -----------------------------------------
@app.get("/health")
def health(): return {"ok": True}

@app.get("/formula/functions")
def list_functions():
    """Function catalog grouped by category (name, args, description, aliases)."""
    return _catalog.list_functions()

@app.post("/formula/validate")
def validate(req: FormulaRequest):
    tokens = _decode(req)
    return validate_formula(tokens, _catalog).to_dict()

@app.post("/formula/parse")
def parse(req: FormulaRequest):
    tokens = _decode(req)
    return parse_formula(tokens, _catalog).to_dict()

@app.post("/formula/execute")
def execute(req: ExecuteRequest):
    """
    Validate + parse + evaluate with the request's bindings.
    Formula failures come back as ok=False with a typed error (HTTP 200);
    only malformed requests are HTTP errors.
    """
    tokens = _decode(req)
    bindings = dict(req.variables)
    if req.values:
        bindings.update(req.values)
    config = EvalConfig(
        angle_mode=req.angle_mode or DEFAULT_ANGLE_MODE,
        precision=req.precision if req.precision is not None else _precision,
    )
    res = execute_formula(tokens, bindings, config, _catalog)
    if not res.ok:
        logger.info("execute failed: %s", res.error.kind)
    return res.to_dict()

@app.post("/formula/render")
def render(req: FormulaRequest):
    tokens = _decode(req)
    return render_formula(tokens, _catalog).to_dict()

# Older clients call the render step "convert"
app.post("/formula/convert")(render)
