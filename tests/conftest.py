from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest

from sketchgen.config import SketchGenConfig
from sketchgen.metadata import MetadataResolver, RpcError

SKETCH_A = """const A = FormaCollection("0xAA");

function setup() {
  createCanvas(400, 400);
  let color = A.metadata("Color").asString();
  A.useToken(3);
}

function draw() {
  background(220);
}
"""

SKETCH_B = SKETCH_A.replace('FormaCollection("0xAA")', "FormaCollection()")


class FakeContract:
    """Collection contract double; each read returns its value or raises it."""

    def __init__(
        self,
        *,
        token_metadata: Any = RpcError("execution reverted"),
        token_uri: Any = RpcError("execution reverted"),
        uri: Any = RpcError("execution reverted"),
    ) -> None:
        self._responses = {
            "get_token_metadata": token_metadata,
            "token_uri": token_uri,
            "uri": uri,
        }
        self.calls: List[tuple[str, int]] = []

    def _read(self, name: str, token_id: int) -> str:
        self.calls.append((name, token_id))
        response = self._responses[name]
        if isinstance(response, Exception):
            raise response
        return response

    def get_token_metadata(self, token_id: int) -> str:
        return self._read("get_token_metadata", token_id)

    def token_uri(self, token_id: int) -> str:
        return self._read("token_uri", token_id)

    def uri(self, token_id: int) -> str:
        return self._read("uri", token_id)


def json_data_uri(payload: Dict[str, Any]) -> str:
    encoded = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    return f"data:application/json;base64,{encoded}"


@pytest.fixture
def sketch_a() -> str:
    return SKETCH_A


@pytest.fixture
def sketch_b() -> str:
    return SKETCH_B


@pytest.fixture
def config(tmp_path: Path) -> SketchGenConfig:
    return SketchGenConfig(root=tmp_path)


@pytest.fixture
def make_resolver() -> Callable[..., MetadataResolver]:
    """Build a resolver whose contracts and HTTP fetches never touch the network."""

    def _factory(
        contract: FakeContract | None = None,
        fetched: Dict[str, Any] | None = None,
    ) -> MetadataResolver:
        contract = contract or FakeContract()
        documents = fetched or {}

        def fetcher(url: str) -> Any:
            if url not in documents:
                raise OSError(f"unreachable: {url}")
            return documents[url]

        resolver = MetadataResolver(contract_factory=lambda _address: contract, fetcher=fetcher)
        return resolver

    return _factory


@pytest.fixture
def fake_contract() -> Callable[..., FakeContract]:
    return FakeContract


@pytest.fixture
def data_uri() -> Callable[[Dict[str, Any]], str]:
    return json_data_uri
