"""XRPL gateway for the RLUSD leg of a transfer.

Every operation opens its own websocket connection and closes it before
returning, whatever the outcome. Nothing is shared between calls, so one
gateway instance can serve concurrent transfers.
"""

import logging
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any

from websockets.exceptions import WebSocketException
from xrpl.asyncio.clients import AsyncWebsocketClient
from xrpl.asyncio.transaction import XRPLReliableSubmissionException, submit_and_wait
from xrpl.constants import XRPLException
from xrpl.models.amounts import IssuedCurrencyAmount
from xrpl.models.requests import AccountInfo, AccountLines
from xrpl.models.transactions import Payment
from xrpl.utils import drops_to_xrp
from xrpl.wallet import Wallet

from xrplbridge_sdk.config import LedgerConfig
from xrplbridge_sdk.exceptions import LedgerError, ValidationError
from xrplbridge_sdk.models import AccountSnapshot, AssetDescriptor, SendReceipt


log = logging.getLogger(__name__)

# "RLUSD" as a 160-bit currency code
RLUSD_CURRENCY_CODE = "524C555344000000000000000000000000000000"

SUCCESS_CODE = "tesSUCCESS"

_QUERY_ERRORS = (XRPLException, WebSocketException, OSError, TimeoutError)


def address_from_seed(seed: str) -> str:
    """Derive the classic address for a family seed."""

    try:
        return Wallet.from_seed(seed).classic_address

    except (XRPLException, ValueError) as exc:
        raise ValidationError("Invalid XRPL seed provided.") from exc


def _failure_code(exc: XRPLReliableSubmissionException) -> str:
    """Pull the engine result code out of a reliable-submission error."""

    text = str(exc).removeprefix("Transaction failed:").strip()

    return text.split(":", 1)[0].strip() or str(exc)


class LedgerGateway:
    """Reads trust lines and sends issued-currency payments on the XRPL."""

    def __init__(
        self,
        config: LedgerConfig,
        client_factory: Callable[[str], Any] = AsyncWebsocketClient,
    ) -> None:
        self._config = config
        self._client_factory = client_factory

    @property
    def stablecoin(self) -> AssetDescriptor:
        return AssetDescriptor(
            currency=RLUSD_CURRENCY_CODE,
            issuer=self._config.stablecoin_issuer,
        )

    def _connect(self) -> Any:
        log.debug("Connecting to XRPL %s", self._config.network)
        return self._client_factory(self._config.websocket_url)

    async def get_trust_lines(
        self, address: str, peer: str | None = None
    ) -> list[dict[str, Any]]:
        """Return every trust line of an account in the validated ledger."""

        lines: list[dict[str, Any]] = []
        marker = None

        async with self._connect() as client:
            while True:
                resp = await client.request(
                    AccountLines(
                        account=address,
                        ledger_index="validated",
                        peer=peer,
                        marker=marker,
                    )
                )

                if not resp.is_successful():
                    raise LedgerError(
                        f"account_lines failed for {address}: "
                        f"{resp.result.get('error', resp.result)}"
                    )

                lines.extend(resp.result.get("lines", []))
                marker = resp.result.get("marker")

                if not marker:
                    break

        log.debug("Found %d trust lines for %s", len(lines), address)

        return lines

    async def get_balance(self, address: str, asset: AssetDescriptor) -> Decimal:
        """Balance of ``asset`` held by ``address``.

        Best-effort: a missing trust line or any query failure reads as zero.
        """

        try:
            lines = await self.get_trust_lines(address, peer=asset.issuer)

        except Exception:
            log.warning(
                "Balance query failed for %s, reporting 0", address, exc_info=True
            )
            return Decimal("0")

        for line in lines:
            if (
                line.get("currency") == asset.currency
                and line.get("account") == asset.issuer
            ):
                try:
                    return Decimal(str(line.get("balance", "0")))
                except InvalidOperation:
                    log.warning(
                        "Unparseable trust line balance %r", line.get("balance")
                    )
                    return Decimal("0")

        log.info("No %s trust line to %s on %s", asset.currency, asset.issuer, address)

        return Decimal("0")

    async def get_account_snapshot(self, address: str) -> AccountSnapshot:
        """Whether the account is funded, and its XRP balance."""

        try:
            async with self._connect() as client:
                resp = await client.request(
                    AccountInfo(account=address, ledger_index="validated")
                )

        except _QUERY_ERRORS as exc:
            raise LedgerError(f"account_info failed for {address}: {exc}") from exc

        if not resp.is_successful():
            error = resp.result.get("error")

            if error == "actNotFound":
                return AccountSnapshot(address=address, exists=False)

            raise LedgerError(f"account_info failed for {address}: {error}")

        account_data = resp.result["account_data"]

        return AccountSnapshot(
            address=address,
            exists=True,
            native_balance=drops_to_xrp(str(account_data.get("Balance", "0"))),
        )

    async def send(
        self,
        seed: str,
        destination: str,
        amount: Decimal,
        destination_tag: str | None = None,
    ) -> SendReceipt:
        """Pay ``amount`` of the stablecoin and wait for validation.

        Only ``tesSUCCESS`` is a success; any other engine result comes back
        as a failed receipt carrying that code. Connection problems raise
        ``LedgerError``.
        """

        try:
            wallet = Wallet.from_seed(seed)

        except (XRPLException, ValueError) as exc:
            raise ValidationError("Invalid XRPL seed provided.") from exc

        try:
            tag = int(destination_tag) if destination_tag not in (None, "") else None

        except ValueError as exc:
            raise ValidationError(
                f"Invalid destination tag: {destination_tag!r}"
            ) from exc

        payment = Payment(
            account=wallet.classic_address,
            destination=destination,
            destination_tag=tag,
            amount=IssuedCurrencyAmount(
                currency=RLUSD_CURRENCY_CODE,
                issuer=self._config.stablecoin_issuer,
                value=format(amount, "f"),
            ),
        )

        log.info(
            "Sending %s RLUSD from %s to %s (tag %s)",
            amount,
            wallet.classic_address,
            destination,
            tag,
        )

        try:
            async with self._connect() as client:
                resp = await submit_and_wait(payment, client, wallet)

        except XRPLReliableSubmissionException as exc:
            code = _failure_code(exc)
            log.error("XRPL transaction failed: %s", code)
            return SendReceipt.failed(code)

        except _QUERY_ERRORS as exc:
            raise LedgerError(f"XRPL submission failed: {exc}") from exc

        result = resp.result
        code = result.get("meta", {}).get("TransactionResult")

        if code != SUCCESS_CODE:
            log.error("XRPL transaction failed: %s", code)
            return SendReceipt.failed(code or "unknown")

        log.info("XRPL transaction validated: %s", result["hash"])

        return SendReceipt.succeeded(result["hash"])
