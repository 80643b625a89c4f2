from fastapi import APIRouter, Depends
from xrplbridge_api.dependencies import verify_api_key
from xrplbridge_api.routes import crosschain, health, xrpl

health_router = health.router

router = APIRouter(prefix="/api", dependencies=[Depends(verify_api_key)])

router.include_router(crosschain.router)
router.include_router(xrpl.router)
