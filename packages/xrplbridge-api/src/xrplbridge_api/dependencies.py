import secrets

from fastapi import Header, HTTPException, Request
from xrplbridge_sdk import ExchangeGateway, LedgerGateway, TransferOrchestrator
from xrplbridge_sdk.models import SupportedNetwork


def get_ledger(request: Request) -> LedgerGateway:
    return request.app.state.ledger


def get_exchange(request: Request) -> ExchangeGateway:
    return request.app.state.exchange


def get_networks(request: Request) -> list[SupportedNetwork]:
    return request.app.state.networks


def get_orchestrator(request: Request) -> TransferOrchestrator:
    return request.app.state.orchestrator


def verify_api_key(request: Request, x_api_key: str | None = Header(None)) -> None:
    expected = request.app.state.api_key

    # No key configured: the API is open
    if not expected:
        return

    if x_api_key is None or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid API key")
