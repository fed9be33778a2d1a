"""On-chain metadata retrieval for sketch collections."""

from .resolver import MetadataError, MetadataResolver
from .rpc import CollectionContract, RpcError, connect

__all__ = [
    "CollectionContract",
    "MetadataError",
    "MetadataResolver",
    "RpcError",
    "connect",
]
