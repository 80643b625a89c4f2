from xrplbridge_sdk.bitget import BitgetClient
from xrplbridge_sdk.config import (
    BridgeSettings,
    ExchangeCredentials,
    LedgerConfig,
    get_bridge_settings,
    get_exchange_credentials,
    get_ledger_config,
)
from xrplbridge_sdk.exceptions import (
    BridgeError,
    ConfirmationTimeoutError,
    ExchangeError,
    GatewayError,
    LedgerError,
    TransientQueryError,
    ValidationError,
)
from xrplbridge_sdk.exchange import ExchangeGateway, create_exchange_gateway
from xrplbridge_sdk.ledger import LedgerGateway, address_from_seed
from xrplbridge_sdk.networks import load_supported_networks
from xrplbridge_sdk.orchestrator import TransferOrchestrator
