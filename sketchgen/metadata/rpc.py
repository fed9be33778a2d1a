"""Read-only access to collection contracts through web3."""

from __future__ import annotations

from http.client import HTTPException
from typing import Any, Dict, List, Optional

from web3 import Web3
from web3.exceptions import Web3Exception
from web3.providers import BaseProvider


def _view(name: str, inputs: List[Dict[str, str]], output: str) -> Dict[str, Any]:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": inputs,
        "outputs": [{"name": "", "type": output}],
    }


_TOKEN_ID = [{"name": "tokenId", "type": "uint256"}]

COLLECTION_ABI: List[Dict[str, Any]] = [
    _view("getTokenMetadata", _TOKEN_ID, "string"),
    _view("tokenURI", _TOKEN_ID, "string"),
    _view("uri", _TOKEN_ID, "string"),
    _view("name", [], "string"),
    _view("symbol", [], "string"),
    _view("totalSupply", [], "uint256"),
    _view("tokenByIndex", [{"name": "index", "type": "uint256"}], "uint256"),
    _view("balanceOf", [{"name": "owner", "type": "address"}], "uint256"),
]

# web3 raises Web3Exception subclasses for reverts and bad output, ValueError for
# node error responses on older releases, and requests/http.client errors for transport.
_CALL_ERRORS = (Web3Exception, ValueError, OSError, HTTPException)


class RpcError(RuntimeError):
    """Raised when a contract read fails at the transport or protocol level."""


def connect(
    url: str,
    *,
    request_timeout: Optional[float] = None,
    provider: BaseProvider | None = None,
) -> Web3:
    """Return a Web3 instance for ``url``; nothing is sent until the first read."""
    if provider is None:
        request_kwargs = {"timeout": request_timeout} if request_timeout is not None else None
        provider = Web3.HTTPProvider(url, request_kwargs=request_kwargs)
    return Web3(provider)


class CollectionContract:
    """Metadata reads against an ERC-721 style collection contract."""

    def __init__(self, web3: Web3, address: str) -> None:
        self.address = address
        try:
            checksum = Web3.to_checksum_address(address)
        except ValueError as exc:
            raise RpcError(f"Invalid collection address: {address}") from exc
        self._contract = web3.eth.contract(address=checksum, abi=COLLECTION_ABI)

    def get_token_metadata(self, token_id: int) -> str:
        return self._read("getTokenMetadata", token_id)

    def token_uri(self, token_id: int) -> str:
        return self._read("tokenURI", token_id)

    def uri(self, token_id: int) -> str:
        return self._read("uri", token_id)

    def _read(self, function_name: str, *args: Any) -> Any:
        function = getattr(self._contract.functions, function_name)
        try:
            return function(*args).call()
        except _CALL_ERRORS as exc:
            raise RpcError(f"{function_name} call failed: {exc}") from exc


__all__ = ["COLLECTION_ABI", "CollectionContract", "RpcError", "connect"]
