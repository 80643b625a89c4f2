from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from xrplbridge_sdk.exceptions import BridgeError, ConfirmationTimeoutError
from xrplbridge_sdk.types import ConfirmationState, DepositStatus, TransferStage


# Deposits within this distance of the expected amount count as the same size
AMOUNT_TOLERANCE = Decimal("0.001")


def _text(value: Any) -> str | None:
    return str(value) if value is not None else None


class AssetDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    currency: str
    issuer: str


class SupportedNetwork(BaseModel):
    id: str
    name: str
    settlement_token: str = "USDC"
    exchange_chain: str


class DepositTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    tag: str | None = None


class SendReceipt(BaseModel):
    success: bool
    transaction_hash: str | None = None
    failure_reason: str | None = None

    @classmethod
    def succeeded(cls, transaction_hash: str) -> "SendReceipt":
        return cls(success=True, transaction_hash=transaction_hash)

    @classmethod
    def failed(cls, reason: str) -> "SendReceipt":
        return cls(success=False, failure_reason=reason)


class AccountSnapshot(BaseModel):
    address: str
    exists: bool
    native_balance: Decimal = Decimal("0")


class DepositRecord(BaseModel):
    """One deposit history entry, evaluated against an expected amount."""

    exchange_trade_id: str | None = None
    size: Decimal | None = None
    status: str | None = None
    created_time: str | None = None
    size_matches_expected: bool = False
    status_confirmed: bool = False

    @classmethod
    def from_entry(
        cls, entry: dict[str, Any], expected_amount: Decimal
    ) -> "DepositRecord":
        try:
            size = Decimal(str(entry.get("size")))
        except (InvalidOperation, ValueError):
            size = None

        if size is not None and not size.is_finite():
            size = None

        status = _text(entry.get("status"))

        return cls(
            exchange_trade_id=_text(entry.get("tradeId")),
            size=size,
            status=status,
            created_time=_text(entry.get("cTime") or entry.get("createdTime")),
            size_matches_expected=(
                size is not None and abs(size - expected_amount) < AMOUNT_TOLERANCE
            ),
            status_confirmed=str(status).lower() == DepositStatus.SUCCESS,
        )

    def matches(self, transaction_reference: str) -> bool:
        return (
            self.size_matches_expected
            and self.status_confirmed
            and self.exchange_trade_id == transaction_reference
        )


class ConfirmationResult(BaseModel):
    state: ConfirmationState
    deposit: DepositRecord | None = None
    error: str | None = None
    polls: int = 0

    @property
    def success(self) -> bool:
        return self.state == ConfirmationState.CONFIRMED

    def raise_for_state(self) -> None:
        if self.state == ConfirmationState.TIMED_OUT:
            raise ConfirmationTimeoutError(self.error or "Deposit confirmation timeout")

        if self.state != ConfirmationState.CONFIRMED:
            raise BridgeError(self.error or f"Deposit confirmation {self.state}")


class ConversionQuote(BaseModel):
    converted_price: Decimal
    converted_amount: Decimal
    trace_id: str


class ConversionResult(BaseModel):
    converted_amount: Decimal
    order_id: str


class WithdrawalResult(BaseModel):
    order_id: str
    external_tx_id: str | None = None


class TransferRequest(BaseModel):
    source_seed: SecretStr
    amount: Decimal = Field(gt=0)
    destination_network: str = Field(min_length=1)
    destination_address: str = Field(min_length=1)


class TransferOutcome(BaseModel):
    """Terminal record of one pipeline run."""

    model_config = ConfigDict(frozen=True)

    stage_reached: TransferStage
    success: bool
    original_amount: Decimal
    destination_network: str
    destination_address: str
    converted_amount: Decimal | None = None
    xrpl_transaction_hash: str | None = None
    convert_order_id: str | None = None
    withdraw_order_id: str | None = None
    withdraw_tx_id: str | None = None
    error_message: str | None = None
