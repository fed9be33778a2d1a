"""Configuration loading for sketchgen (.sketchgen.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

CONFIG_FILENAME = ".sketchgen.yml"

ENV_RPC_URL = "SKETCHGEN_RPC_URL"
ENV_CHAIN_ID = "SKETCHGEN_CHAIN_ID"
ENV_IPFS_GATEWAY = "SKETCHGEN_IPFS_GATEWAY"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class RpcConfig:
    """JSON-RPC endpoint used for metadata lookups."""

    url: str = "https://rpc.forma.art"
    chain_id: int = 984122
    request_timeout: Optional[float] = None


@dataclass
class IpfsConfig:
    """Gateway used to rewrite ipfs:// metadata URIs."""

    gateway: str = "https://ipfs.io/ipfs"


@dataclass
class GeneratorConfig:
    """Contract generation settings."""

    contract_name: str = "NFTCollection"
    chunk_size: int = 512
    template: Optional[Path] = None


@dataclass
class SketchGenConfig:
    """Represents the settings defined in .sketchgen.yml."""

    root: Path
    rpc: RpcConfig = field(default_factory=RpcConfig)
    ipfs: IpfsConfig = field(default_factory=IpfsConfig)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)


def load_config(
    config_path: Path, *, environ: Mapping[str, str] | None = None
) -> SketchGenConfig:
    """Load configuration from disk, applying environment overrides."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()
    env = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    rpc_data = _as_dict(data.get("rpc"))
    rpc = RpcConfig()
    if rpc_data:
        rpc.url = _as_str(rpc_data.get("url")) or rpc.url
        chain_id = _as_int(rpc_data.get("chain_id"))
        if chain_id is not None:
            rpc.chain_id = chain_id
        rpc.request_timeout = _as_float(rpc_data.get("request_timeout"))

    ipfs_data = _as_dict(data.get("ipfs"))
    ipfs = IpfsConfig()
    if ipfs_data:
        ipfs.gateway = _as_str(ipfs_data.get("gateway")) or ipfs.gateway

    generator_data = _as_dict(data.get("generator"))
    generator = GeneratorConfig()
    if generator_data:
        generator.contract_name = _as_str(generator_data.get("contract_name")) or generator.contract_name
        chunk_size = _as_int(generator_data.get("chunk_size"))
        if chunk_size is not None:
            if chunk_size <= 0:
                raise ConfigError("generator.chunk_size must be a positive integer")
            generator.chunk_size = chunk_size
        template = _as_str(generator_data.get("template"))
        generator.template = root / template if template else None

    if env.get(ENV_RPC_URL):
        rpc.url = env[ENV_RPC_URL]
    if env.get(ENV_CHAIN_ID):
        chain_id = _as_int(env[ENV_CHAIN_ID])
        if chain_id is None:
            raise ConfigError(f"{ENV_CHAIN_ID} must be an integer")
        rpc.chain_id = chain_id
    if env.get(ENV_IPFS_GATEWAY):
        ipfs.gateway = env[ENV_IPFS_GATEWAY]

    return SketchGenConfig(root=root, rpc=rpc, ipfs=ipfs, generator=generator)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = Path(config_path).expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
    return loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            return None
    return None


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "GeneratorConfig",
    "IpfsConfig",
    "RpcConfig",
    "SketchGenConfig",
    "load_config",
]
