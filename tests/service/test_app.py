"""Tests for the FastAPI service mode."""

from __future__ import annotations

import base64
import json

import pytest
from fastapi.testclient import TestClient

from sketchgen.analyzers import analyze_sketch
from sketchgen.pipeline import Pipeline
from sketchgen.service.app import create_app, load_example_sketch

METADATA = {"attributes": [{"trait_type": "Color", "value": "Green"}]}


def _encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.fixture
def client(config, make_resolver, fake_contract) -> TestClient:
    resolver = make_resolver(fake_contract(token_metadata=json.dumps(METADATA)))
    app = create_app(lambda: Pipeline(config, resolver))
    return TestClient(app)


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_endpoint(client: TestClient, sketch_a: str) -> None:
    response = client.post("/api/analyze", json={"code": sketch_a})

    assert response.status_code == 200
    data = response.json()
    assert data["collections"][0] == {
        "name": "A",
        "address": "0xAA",
        "sourceLocation": {"line": 1, "column": 6},
    }
    assert data["issues"] == []


def test_analyze_endpoint_rejects_empty_code(client: TestClient) -> None:
    response = client.post("/api/analyze", json={"code": ""})

    assert response.status_code == 400
    assert response.json() == {"detail": "Missing required field: code"}


def test_preview_endpoint_round_trips_base64(client: TestClient, sketch_a: str) -> None:
    response = client.post("/api/preview", json={"code": _encode(sketch_a)})

    assert response.status_code == 200
    data = response.json()
    assert data["warning"] == ""
    code = base64.b64decode(data["code"]).decode("utf-8")
    assert code.startswith("const A = {")
    assert 'return "Green";' in code
    assert code.endswith(sketch_a)


def test_preview_endpoint_rejects_invalid_base64(client: TestClient) -> None:
    response = client.post("/api/preview", json={"code": "not base64!"})

    assert response.status_code == 400
    assert "base64" in response.json()["detail"]


def test_contract_endpoint(client: TestClient, sketch_a: str) -> None:
    response = client.post("/api/contract", json={"code": _encode(sketch_a), "contract_name": "Garden"})

    assert response.status_code == 200
    data = response.json()
    assert data["analysis"]["tokenIndexes"] == [{"collection": "A", "tokenId": 3}]
    assert "contract Garden is ERC721" in data["contract"]


def test_contract_endpoint_reports_parse_errors(client: TestClient) -> None:
    response = client.post("/api/contract", json={"code": _encode("function setup( {")})

    assert response.status_code == 400
    assert "Failed to parse code" in response.json()["detail"]


def test_editor_example_endpoint(client: TestClient) -> None:
    response = client.get("/api/editor/example")

    assert response.status_code == 200
    assert response.json() == {"code": load_example_sketch()}


def test_example_sketch_analyzes_cleanly() -> None:
    result = analyze_sketch(load_example_sketch())

    assert result.issues == ()
    assert [collection.name for collection in result.collections] == ["Mammoths"]
    assert {(trait.key, trait.type) for trait in result.traits} == {("Hooves", "asString"), ("Tusks", "asInt")}
    assert [index.token_id for index in result.token_indexes] == [1]
