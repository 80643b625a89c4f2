import os
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class ServerConfig:
    api_key: str = ""
    host: str = "0.0.0.0"
    port: int = 5000
    max_transfer_amount: Decimal = Decimal("10000")
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


def get_server_config() -> ServerConfig:
    """Get API server configuration from environment variables.

    Expected env vars: BRIDGE_API_KEY (empty disables the X-API-Key check),
    BRIDGE_SERVER_HOST, BRIDGE_SERVER_PORT, BRIDGE_MAX_TRANSFER_AMOUNT,
    BRIDGE_CORS_ORIGINS (comma-separated; all optional)
    """

    origins = os.environ.get("BRIDGE_CORS_ORIGINS", "*")

    return ServerConfig(
        api_key=os.environ.get("BRIDGE_API_KEY", ""),
        host=os.environ.get("BRIDGE_SERVER_HOST", "0.0.0.0"),
        port=int(os.environ.get("BRIDGE_SERVER_PORT", "5000")),
        max_transfer_amount=Decimal(
            os.environ.get("BRIDGE_MAX_TRANSFER_AMOUNT", "10000")
        ),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )
