from fastapi import APIRouter, Depends
from xrplbridge_api.dependencies import get_exchange
from xrplbridge_sdk import ExchangeGateway

router = APIRouter()


@router.get("/api/health")
def health(exchange: ExchangeGateway = Depends(get_exchange)) -> dict:
    return {"status": "ok", "simulation": exchange.simulated}
