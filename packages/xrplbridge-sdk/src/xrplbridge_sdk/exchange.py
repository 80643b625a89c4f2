"""Exchange-side stages of a transfer: deposit, conversion and withdrawal.

Without API credentials the gateway runs in simulation mode: quotes,
conversions and withdrawals are synthetic, deposit history is empty and
deposit confirmation succeeds on the first cycle.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from xrplbridge_sdk.bitget import BitgetClient
from xrplbridge_sdk.config import ExchangeCredentials
from xrplbridge_sdk.exceptions import (
    ExchangeError,
    GatewayError,
    TransientQueryError,
    ValidationError,
)
from xrplbridge_sdk.models import (
    ConfirmationResult,
    ConversionQuote,
    ConversionResult,
    DepositRecord,
    DepositTarget,
    WithdrawalResult,
)
from xrplbridge_sdk.types import ConfirmationState, DepositStatus


log = logging.getLogger(__name__)

# Known-good deposit targets used instead of a live lookup
PINNED_DEPOSIT_TARGETS: dict[tuple[str, str], DepositTarget] = {
    ("RLUSD", "XRPL"): DepositTarget(
        address="rGDreBvnHrX1get7na3J4oowN19ny4GzFn",
        tag="102717160",
    ),
}

DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_MAX_WAIT = 900.0
DEFAULT_LOOKBACK = 1800.0

SIMULATED_QUOTE_RATE = Decimal("0.99")
SIMULATED_CONVERSION_RATE = Decimal("0.998")


def _to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _decimal(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ExchangeError("invalid_response", f"{field}={value!r}") from exc


def find_matching_deposit(
    entries: list[dict[str, Any]],
    expected_amount: Decimal,
    transaction_reference: str,
) -> DepositRecord | None:
    """First entry matching amount, success status and trade id, if any."""

    for entry in entries:
        if not isinstance(entry, dict):
            log.warning("Skipping malformed deposit entry %r", entry)
            continue

        try:
            record = DepositRecord.from_entry(entry, expected_amount)

        except PydanticValidationError as exc:
            log.warning("Skipping unparseable deposit entry %r: %s", entry, exc)
            continue

        log.debug(
            "Deposit %s size=%s status=%s size_ok=%s confirmed=%s",
            record.exchange_trade_id,
            record.size,
            record.status,
            record.size_matches_expected,
            record.status_confirmed,
        )

        if record.matches(transaction_reference):
            return record

        if record.exchange_trade_id == transaction_reference:
            status = str(record.status).lower()

            if status == DepositStatus.PENDING:
                log.info("Deposit %s still pending", transaction_reference)
            elif status == DepositStatus.FAIL:
                log.warning("Deposit %s reported as failed", transaction_reference)

    return None


class ExchangeGateway:
    """Bitget operations used by the transfer pipeline."""

    def __init__(self, client: BitgetClient | None = None) -> None:
        self._client = client

    @property
    def simulated(self) -> bool:
        return self._client is None

    # -- deposits ----------------------------------------------------------

    async def get_deposit_address(self, asset: str, chain: str) -> DepositTarget:
        pinned = PINNED_DEPOSIT_TARGETS.get((asset, chain))

        if pinned is not None:
            log.info("Using pinned deposit address for %s on %s", asset, chain)
            return pinned

        if self._client is None:
            raise ExchangeError(
                "simulation",
                f"No deposit address for {asset} on {chain} "
                "without exchange credentials",
            )

        data = await self._client.get_deposit_address(asset, chain)

        if not isinstance(data, dict) or not data.get("address"):
            raise ExchangeError(
                "invalid_response", "Deposit address missing from response"
            )

        log.info("Deposit address for %s on %s: %s", asset, chain, data["address"])

        return DepositTarget(address=data["address"], tag=data.get("tag") or None)

    async def get_deposit_records(
        self,
        asset: str,
        window_start: datetime,
        window_end: datetime,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Raw deposit history entries for ``asset`` inside the window."""

        if self._client is None:
            return []

        records = await self._client.get_deposit_records(
            asset, _to_ms(window_start), _to_ms(window_end), limit
        )

        log.debug("Deposit records retrieved: %d", len(records))

        return records

    async def _poll_once(
        self,
        asset: str,
        expected_amount: Decimal,
        transaction_reference: str,
        lookback: float,
    ) -> DepositRecord | None:
        now = time.time()
        window_start = datetime.fromtimestamp(now - lookback, tz=timezone.utc)
        window_end = datetime.fromtimestamp(now, tz=timezone.utc)

        try:
            entries = await self.get_deposit_records(asset, window_start, window_end)

        except GatewayError as exc:
            raise TransientQueryError(str(exc)) from exc

        return find_matching_deposit(entries, expected_amount, transaction_reference)

    @staticmethod
    async def _pause(delay: float, cancel_event: asyncio.Event | None) -> bool:
        """Sleep without blocking the loop. Returns True if cancelled meanwhile."""

        if cancel_event is None:
            await asyncio.sleep(delay)
            return False

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)

        except TimeoutError:
            return False

        return True

    async def wait_for_deposit_confirmation(
        self,
        asset: str,
        expected_amount: Decimal,
        transaction_reference: str,
        max_wait: float = DEFAULT_MAX_WAIT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        lookback: float = DEFAULT_LOOKBACK,
        cancel_event: asyncio.Event | None = None,
    ) -> ConfirmationResult:
        """Poll deposit history until the transfer shows up as credited.

        A deposit matches when its size is within 0.001 of
        ``expected_amount``, its status is success, and its trade id equals
        ``transaction_reference``; the first match wins. Query errors are
        logged and retried on the next cycle. At least one cycle always
        runs, and no wait extends past ``max_wait``.
        """

        if self.simulated:
            log.warning("Simulation mode: treating %s deposit as confirmed", asset)

            return ConfirmationResult(
                state=ConfirmationState.CONFIRMED,
                polls=1,
                deposit=DepositRecord(
                    exchange_trade_id=transaction_reference,
                    size=expected_amount,
                    status=DepositStatus.SUCCESS,
                    created_time=str(int(time.time() * 1000)),
                    size_matches_expected=True,
                    status_confirmed=True,
                ),
            )

        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + max_wait
        polls = 0

        log.info(
            "Waiting for %s %s deposit (tx %s, max %.0fs)",
            expected_amount,
            asset,
            transaction_reference,
            max_wait,
        )

        while True:
            if cancel_event is not None and cancel_event.is_set():
                log.warning("Deposit confirmation cancelled after %d polls", polls)
                return ConfirmationResult(
                    state=ConfirmationState.CANCELLED,
                    polls=polls,
                    error="Deposit confirmation cancelled",
                )

            polls += 1
            log.info(
                "%s: checking deposits (poll %d, %.0fs elapsed)",
                ConfirmationState.POLLING,
                polls,
                loop.time() - started,
            )

            try:
                deposit = await self._poll_once(
                    asset, expected_amount, transaction_reference, lookback
                )

            except TransientQueryError as exc:
                log.warning("Deposit query failed, retrying: %s", exc)

            else:
                if deposit is not None:
                    log.info(
                        "Deposit confirmed: %s %s (trade %s)",
                        deposit.size,
                        asset,
                        deposit.exchange_trade_id,
                    )
                    return ConfirmationResult(
                        state=ConfirmationState.CONFIRMED, deposit=deposit, polls=polls
                    )

            remaining = deadline - loop.time()

            if remaining <= 0:
                break

            if await self._pause(min(poll_interval, remaining), cancel_event):
                continue

        log.error("Timed out waiting for %s deposit after %.0fs", asset, max_wait)

        return ConfirmationResult(
            state=ConfirmationState.TIMED_OUT,
            polls=polls,
            error="Deposit confirmation timeout",
        )

    # -- conversion --------------------------------------------------------

    async def get_quoted_price(
        self, from_asset: str, to_asset: str, amount: Decimal
    ) -> ConversionQuote:
        """A single-use quote; its trace id must not be reused."""

        if not amount.is_finite() or amount <= 0:
            raise ValidationError(
                f"Invalid conversion amount {amount}: must be positive"
            )

        if self._client is None:
            quote = ConversionQuote(
                converted_price=SIMULATED_QUOTE_RATE,
                converted_amount=(amount * SIMULATED_QUOTE_RATE).quantize(
                    Decimal("0.00000001")
                ),
                trace_id=f"simulated_trace_{uuid.uuid4().hex}",
            )
            log.info("Simulated quote %s", quote.trace_id)
            return quote

        data = await self._client.get_quoted_price(
            from_asset, to_asset, format(amount, "f")
        )

        required = ("cnvtPrice", "toCoinSize", "traceId")

        if not isinstance(data, dict) or not all(data.get(k) for k in required):
            raise ExchangeError("invalid_response", f"Incomplete quote: {data!r}")

        return ConversionQuote(
            converted_price=_decimal(data["cnvtPrice"], "cnvtPrice"),
            converted_amount=_decimal(data["toCoinSize"], "toCoinSize"),
            trace_id=data["traceId"],
        )

    async def convert(
        self, from_asset: str, to_asset: str, amount: Decimal
    ) -> ConversionResult:
        """Convert at a freshly obtained quote."""

        quote = await self.get_quoted_price(from_asset, to_asset, amount)

        log.info(
            "Converting %s %s to %s at %s (trace %s)",
            amount,
            from_asset,
            to_asset,
            quote.converted_price,
            quote.trace_id,
        )

        if self._client is None:
            return ConversionResult(
                converted_amount=(amount * SIMULATED_CONVERSION_RATE).quantize(
                    Decimal("0.01")
                ),
                order_id=f"convert_{uuid.uuid4().hex}",
            )

        data = await self._client.convert(
            from_asset,
            to_asset,
            format(amount, "f"),
            str(quote.converted_price),
            str(quote.converted_amount),
            quote.trace_id,
        )
        data = data if isinstance(data, dict) else {}

        result = ConversionResult(
            converted_amount=_decimal(
                data.get("toCoinSize") or quote.converted_amount, "toCoinSize"
            ),
            order_id=str(data.get("orderId") or data.get("traceId") or quote.trace_id),
        )

        log.info(
            "Conversion complete: %s %s (order %s)",
            result.converted_amount,
            to_asset,
            result.order_id,
        )

        return result

    # -- withdrawal --------------------------------------------------------

    async def withdraw(
        self, asset: str, address: str, chain: str, amount: Decimal
    ) -> WithdrawalResult:
        """Submit one on-chain withdrawal. Not retried."""

        log.info("Withdrawing %s %s to %s on %s", amount, asset, address, chain)

        if self._client is None:
            return WithdrawalResult(
                order_id=f"withdraw_{uuid.uuid4().hex}",
                external_tx_id=f"simulated_tx_{uuid.uuid4().hex}",
            )

        data = await self._client.submit_withdrawal(
            asset, address, chain, format(amount, "f")
        )

        if not isinstance(data, dict) or not data.get("orderId"):
            raise ExchangeError(
                "invalid_response", f"Withdrawal order id missing: {data!r}"
            )

        return WithdrawalResult(
            order_id=str(data["orderId"]), external_tx_id=data.get("txId")
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


def create_exchange_gateway(credentials: ExchangeCredentials) -> ExchangeGateway:
    """Live gateway when credentials are configured, simulated otherwise."""

    if not credentials.is_configured:
        log.warning(
            "Bitget API credentials not configured; exchange running in simulation mode"
        )
        return ExchangeGateway()

    return ExchangeGateway(BitgetClient(credentials))
