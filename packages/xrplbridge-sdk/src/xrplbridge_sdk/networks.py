"""Destination networks reachable through the exchange withdrawal.

The built-in list can be replaced by a ``networks`` section in
``bridge-config.yaml``. Resolution order:

1. ``BRIDGE_CONFIG`` env var (explicit path)
2. ``BRIDGE_DATA_DIR / "bridge-config.yaml"`` (convention)
3. ``DEFAULT_NETWORKS``
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from xrplbridge_sdk.config import DATA_DIR
from xrplbridge_sdk.models import SupportedNetwork

log = logging.getLogger(__name__)

DEFAULT_NETWORKS: list[SupportedNetwork] = [
    SupportedNetwork(id="ethereum", name="Ethereum", exchange_chain="ERC20"),
    SupportedNetwork(id="polygon", name="Polygon", exchange_chain="Polygon"),
    SupportedNetwork(id="bsc", name="BSC", exchange_chain="BEP20"),
    SupportedNetwork(id="arbitrum", name="Arbitrum", exchange_chain="ArbitrumOne"),
    SupportedNetwork(id="optimism", name="Optimism", exchange_chain="Optimism"),
    SupportedNetwork(id="avalanche", name="Avalanche", exchange_chain="AVAXC-Chain"),
    SupportedNetwork(id="solana", name="Solana", exchange_chain="SOL"),
]


def _resolve_config_path() -> Path | None:
    """Find the config file, or return None if it doesn't exist."""
    explicit = os.environ.get("BRIDGE_CONFIG")
    if explicit:
        p = Path(explicit)
        return p if p.is_file() else None
    default = DATA_DIR / "bridge-config.yaml"
    return default if default.is_file() else None


def _parse_networks(raw: Any) -> list[SupportedNetwork]:
    if not isinstance(raw, list) or not raw:
        raise ValueError("networks must be a non-empty list in bridge-config.yaml")

    networks = []
    for entry in raw:
        try:
            networks.append(SupportedNetwork.model_validate(entry))
        except PydanticValidationError as exc:
            raise ValueError(f"Invalid network entry {entry!r}: {exc}") from exc

    return networks


def load_supported_networks() -> list[SupportedNetwork]:
    """Return the configured destination networks, in display order."""
    path = _resolve_config_path()
    if path is None:
        return list(DEFAULT_NETWORKS)

    log.info("Loading networks from %s", path)
    with open(path) as f:
        cfg: dict[str, Any] = yaml.safe_load(f) or {}

    if "networks" not in cfg:
        return list(DEFAULT_NETWORKS)

    return _parse_networks(cfg["networks"])
