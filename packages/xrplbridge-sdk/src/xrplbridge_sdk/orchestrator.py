"""RLUSD (XRPL) -> USDC (target chain) transfer pipeline.

Stages run strictly in order:

1. Resolve the exchange deposit target for RLUSD on the XRPL
2. Send RLUSD from the user's account to that target
3. Wait for the exchange to credit the deposit
4. Convert RLUSD to USDC at a fresh quote
5. Withdraw USDC to the destination address

The first failing stage ends the run. Nothing is compensated: once stage 2
succeeds the funds sit with the exchange and any later failure needs
manual reconciliation.
"""

import asyncio
import logging

from xrplbridge_sdk.config import BridgeSettings
from xrplbridge_sdk.exceptions import BridgeError, ValidationError
from xrplbridge_sdk.exchange import ExchangeGateway
from xrplbridge_sdk.ledger import LedgerGateway
from xrplbridge_sdk.models import SupportedNetwork, TransferOutcome, TransferRequest
from xrplbridge_sdk.types import TransferStage


log = logging.getLogger(__name__)


class TransferOrchestrator:
    """Drives one transfer at a time per call; holds no per-transfer state."""

    def __init__(
        self,
        ledger: LedgerGateway,
        exchange: ExchangeGateway,
        networks: list[SupportedNetwork],
        settings: BridgeSettings | None = None,
    ) -> None:
        self._ledger = ledger
        self._exchange = exchange
        self._networks = {n.id: n for n in networks}
        self._settings = settings or BridgeSettings()

    def resolve_network(self, network_id: str) -> SupportedNetwork:
        network = self._networks.get(network_id)

        if network is None:
            raise ValidationError(f"Unsupported destination network: {network_id}")

        return network

    async def run(
        self,
        request: TransferRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> TransferOutcome:
        """Execute the pipeline and return its terminal outcome.

        Raises ``ValidationError`` before any stage runs if the destination
        network is not supported. Every later failure is reported in the
        returned outcome rather than raised.
        """

        network = self.resolve_network(request.destination_network)
        settings = self._settings
        tx_hash: str | None = None

        def failed(stage: TransferStage, message: str) -> TransferOutcome:
            log.error("Transfer aborted at %s: %s", stage, message)

            if tx_hash is not None:
                log.error(
                    "Funds left the XRPL in %s; manual reconciliation required", tx_hash
                )

            return TransferOutcome(
                stage_reached=stage,
                success=False,
                original_amount=request.amount,
                destination_network=network.id,
                destination_address=request.destination_address,
                xrpl_transaction_hash=tx_hash,
                error_message=message,
            )

        # Step 1: deposit target
        log.info("Step 1: resolving %s deposit address", settings.source_asset)
        try:
            target = await self._exchange.get_deposit_address(
                settings.source_asset, settings.source_chain
            )
        except BridgeError as exc:
            return failed(
                TransferStage.DEPOSIT_ADDRESS, f"Failed to get deposit address: {exc}"
            )

        # Step 2: ledger send
        log.info(
            "Step 2: sending %s %s to exchange", request.amount, settings.source_asset
        )
        try:
            receipt = await self._ledger.send(
                request.source_seed.get_secret_value(),
                target.address,
                request.amount,
                target.tag,
            )
        except BridgeError as exc:
            return failed(TransferStage.SEND, f"Failed to send RLUSD: {exc}")

        if not receipt.success:
            return failed(
                TransferStage.SEND, f"Failed to send RLUSD: {receipt.failure_reason}"
            )

        tx_hash = receipt.transaction_hash

        # Step 3: deposit confirmation
        log.info("Step 3: waiting for deposit confirmation of %s", tx_hash)
        confirmation = await self._exchange.wait_for_deposit_confirmation(
            settings.source_asset,
            request.amount,
            tx_hash,
            max_wait=settings.max_wait,
            poll_interval=settings.poll_interval,
            lookback=settings.lookback,
            cancel_event=cancel_event,
        )

        try:
            confirmation.raise_for_state()

        except BridgeError as exc:
            return failed(
                TransferStage.CONFIRM, f"RLUSD deposit confirmation failed: {exc}"
            )

        # Step 4: conversion
        log.info(
            "Step 4: converting %s to %s", settings.source_asset, settings.target_asset
        )
        try:
            conversion = await self._exchange.convert(
                settings.source_asset, settings.target_asset, request.amount
            )
        except BridgeError as exc:
            return failed(TransferStage.CONVERT, f"Failed to convert currency: {exc}")

        # Step 5: withdrawal
        log.info(
            "Step 5: withdrawing %s %s to %s address %s",
            conversion.converted_amount,
            settings.target_asset,
            network.id,
            request.destination_address,
        )
        try:
            withdrawal = await self._exchange.withdraw(
                settings.target_asset,
                request.destination_address,
                network.exchange_chain,
                conversion.converted_amount,
            )
        except BridgeError as exc:
            log.error(
                "Converted %s %s (order %s) not withdrawn",
                conversion.converted_amount,
                settings.target_asset,
                conversion.order_id,
            )
            return failed(TransferStage.WITHDRAW, f"Failed to withdraw USDC: {exc}")

        log.info("Transfer complete: withdrawal order %s", withdrawal.order_id)

        return TransferOutcome(
            stage_reached=TransferStage.COMPLETE,
            success=True,
            original_amount=request.amount,
            destination_network=network.id,
            destination_address=request.destination_address,
            converted_amount=conversion.converted_amount,
            xrpl_transaction_hash=tx_hash,
            convert_order_id=conversion.order_id,
            withdraw_order_id=withdrawal.order_id,
            withdraw_tx_id=withdrawal.external_tx_id,
        )
