import pytest
from fastapi.testclient import TestClient

from api.main import app


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


def tok(kind, symbol, **extra):
    return {"kind": kind, "symbol": symbol, **extra}


AREA = [tok("constant", "π"), tok("operator", "*", display_text="×"),
        tok("variable", "r"), tok("operator", "^"), tok("constant", "2")]


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_function_catalog(client):
    body = client.get("/formula/functions").json()
    names = {row["name"] for rows in body.values() for row in rows}
    assert {"sin", "sqrt", "pow", "max"} <= names


def test_validate(client):
    r = client.post("/formula/validate", json={"formula": AREA})
    assert r.status_code == 200
    assert r.json() == {"valid": True, "error": None}


def test_validate_legacy_payload(client):
    # older editor payloads: type/value keys and brackets tagged as operators
    formula = [{"type": "operator", "value": "("}, {"type": "constant", "value": "2"},
               {"type": "operator", "value": "+"}, {"type": "constant", "value": "3"}]
    body = client.post("/formula/validate", json={"formula": formula}).json()
    assert body["valid"] is False
    assert body["error"]["kind"] == "UnbalancedGrouping"
    assert body["error"]["position"] == 0


def test_parse(client):
    body = client.post("/formula/parse", json={"formula": AREA}).json()
    assert body["ok"] is True
    assert body["tree"]["symbol"] == "*"


def test_execute(client):
    body = client.post("/formula/execute", json={"formula": AREA, "variables": {"r": 2}}).json()
    assert body["ok"] is True
    assert body["result"] == pytest.approx(12.566370614359172)
    assert body["trace"][-1]["kind"] == "result"


def test_execute_failure_is_a_result(client):
    formula = [tok("constant", "10"), tok("operator", "÷"), tok("variable", "x")]
    r = client.post("/formula/execute", json={"formula": formula, "variables": {"x": 0}})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is False
    assert body["error"]["kind"] == "DivisionByZero"
    assert body["error_kind"] == "evaluation"


def test_execute_with_legacy_values_and_degrees(client):
    formula = [tok("function", "sin"), tok("grouping", "("), tok("variable", "a"), tok("grouping", ")")]
    body = client.post("/formula/execute", json={
        "formula": formula, "values": {"a": 30}, "angle_mode": "degrees", "precision": 6,
    }).json()
    assert body["ok"] is True
    assert body["result"] == 0.5


def test_render_and_convert(client):
    formula = [tok("grouping", "("), tok("constant", "2"), tok("operator", "+"), tok("constant", "3"),
               tok("grouping", ")"), tok("operator", "*", display_text="×"), tok("constant", "4")]
    for path in ("/formula/render", "/formula/convert"):
        body = client.post(path, json={"formula": formula}).json()
        assert body["ok"] is True
        assert body["display"] == "(2 + 3) × 4"
        assert body["expression"] == "(2 + 3) * 4"


def test_bad_token_is_a_client_error(client):
    r = client.post("/formula/validate", json={"formula": [tok("variable", "2x")]})
    assert r.status_code == 400


def test_missing_formula_is_rejected_by_schema(client):
    assert client.post("/formula/execute", json={"variables": {}}).status_code == 422
    r = client.post("/formula/execute", json={"formula": AREA, "angle_mode": "grads"})
    assert r.status_code == 422
