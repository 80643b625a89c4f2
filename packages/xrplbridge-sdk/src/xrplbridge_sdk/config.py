"""Configuration from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path


DATA_DIR = Path(os.environ.get("BRIDGE_DATA_DIR", "."))

_PLACEHOLDER_PREFIX = "YOUR_BITGET_"


@dataclass
class ExchangeCredentials:
    api_key: str
    secret_key: str
    passphrase: str
    base_url: str = "https://api.bitget.com"

    @property
    def is_configured(self) -> bool:
        """False when any credential is missing or still a placeholder."""

        values = (self.api_key, self.secret_key, self.passphrase)

        return all(v and not v.startswith(_PLACEHOLDER_PREFIX) for v in values)


@dataclass
class LedgerConfig:
    network: str = "mainnet"
    websocket_url: str = "wss://xrplcluster.com/"
    stablecoin_issuer: str = "rMxCKbEDwqr76QuheSUMdEGf4B9xJ8m5De"


@dataclass
class BridgeSettings:
    source_asset: str = "RLUSD"
    source_chain: str = "XRPL"
    target_asset: str = "USDC"
    poll_interval: float = 30.0
    max_wait: float = 900.0
    lookback: float = 1800.0


def get_exchange_credentials() -> ExchangeCredentials:
    """Get Bitget API credentials from environment variables.

    Expected env vars: BITGET_API_KEY, BITGET_SECRET_KEY, BITGET_PASSPHRASE,
    BITGET_BASE_URL (optional). Missing values leave the gateway in
    simulation mode instead of failing.
    """

    return ExchangeCredentials(
        api_key=os.environ.get("BITGET_API_KEY", ""),
        secret_key=os.environ.get("BITGET_SECRET_KEY", ""),
        passphrase=os.environ.get("BITGET_PASSPHRASE", ""),
        base_url=os.environ.get("BITGET_BASE_URL", "https://api.bitget.com"),
    )


def get_ledger_config() -> LedgerConfig:
    """Get XRPL connection settings from environment variables.

    Expected env vars: XRPL_NETWORK, XRPL_WEBSOCKET_URL, RLUSD_ISSUER (all optional)
    """

    return LedgerConfig(
        network=os.environ.get("XRPL_NETWORK", "mainnet"),
        websocket_url=os.environ.get("XRPL_WEBSOCKET_URL", "wss://xrplcluster.com/"),
        stablecoin_issuer=os.environ.get(
            "RLUSD_ISSUER", "rMxCKbEDwqr76QuheSUMdEGf4B9xJ8m5De"
        ),
    )


def get_bridge_settings() -> BridgeSettings:
    """Get transfer pipeline timing from environment variables.

    Expected env vars: BRIDGE_POLL_INTERVAL_SECONDS,
    BRIDGE_CONFIRMATION_TIMEOUT_SECONDS, BRIDGE_LOOKBACK_SECONDS (all optional)
    """

    return BridgeSettings(
        poll_interval=float(os.environ.get("BRIDGE_POLL_INTERVAL_SECONDS", "30")),
        max_wait=float(os.environ.get("BRIDGE_CONFIRMATION_TIMEOUT_SECONDS", "900")),
        lookback=float(os.environ.get("BRIDGE_LOOKBACK_SECONDS", "1800")),
    )
