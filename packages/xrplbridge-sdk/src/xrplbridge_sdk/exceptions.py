
class BridgeError(Exception):
    """Base exception for bridge errors."""


class ValidationError(BridgeError):
    """Malformed transfer request, amount, or seed."""


class GatewayError(BridgeError):
    """A ledger or exchange call failed."""


class LedgerError(GatewayError):
    """XRPL query or submission could not be completed."""


class ExchangeError(GatewayError):
    """Exchange returned a non-success status code or HTTP error."""

    def __init__(self, code: str, msg: str):
        self.code = code
        self.msg = msg
        super().__init__(f"Exchange error {code}: {msg}")


class TransientQueryError(GatewayError):
    """Deposit history query failed during a confirmation poll cycle."""


class ConfirmationTimeoutError(BridgeError):
    """Deposit was not confirmed before the polling deadline."""
