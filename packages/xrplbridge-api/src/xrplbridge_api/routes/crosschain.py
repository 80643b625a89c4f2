import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from xrplbridge_api.dependencies import get_networks, get_orchestrator
from xrplbridge_api.models import StartTransferRequest
from xrplbridge_sdk import TransferOrchestrator
from xrplbridge_sdk.models import SupportedNetwork, TransferRequest

log = logging.getLogger(__name__)

router = APIRouter()

# Seconds between checks for a vanished client
DISCONNECT_POLL_INTERVAL = 1.0


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    while not cancel_event.is_set():
        if await request.is_disconnected():
            log.warning("Client disconnected; cancelling deposit confirmation")
            cancel_event.set()
            return

        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)


@router.get("/crosschain/supported-networks")
def supported_networks(
    networks: list[SupportedNetwork] = Depends(get_networks),
) -> list[dict]:
    return [n.model_dump() for n in networks]


@router.post("/crosschain/start-crosschain")
async def start_crosschain(
    body: StartTransferRequest,
    request: Request,
    orchestrator: TransferOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    config = request.app.state.server_config

    # Per-transfer limit
    if body.rlusd_amount > config.max_transfer_amount:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Amount {body.rlusd_amount} RLUSD exceeds per-transfer limit "
                f"of {config.max_transfer_amount} RLUSD"
            ),
        )

    transfer = TransferRequest(
        source_seed=body.xrpl_seed,
        amount=body.rlusd_amount,
        destination_network=body.destination_network,
        destination_address=body.destination_address,
    )

    log.info(
        "Cross-chain transfer requested: %s RLUSD to %s on %s",
        transfer.amount,
        transfer.destination_address,
        transfer.destination_network,
    )

    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))

    try:
        outcome = await orchestrator.run(transfer, cancel_event=cancel_event)

    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher

    return JSONResponse(
        status_code=200 if outcome.success else 500,
        content=outcome.model_dump(mode="json"),
    )
