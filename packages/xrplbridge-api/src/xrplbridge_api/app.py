import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from xrplbridge_api.config import ServerConfig, get_server_config
from xrplbridge_api.routes import health_router, router
from xrplbridge_sdk import (
    GatewayError,
    LedgerGateway,
    TransferOrchestrator,
    ValidationError,
    create_exchange_gateway,
    get_bridge_settings,
    get_exchange_credentials,
    get_ledger_config,
    load_supported_networks,
)

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config = app.state.server_config

    app.state.api_key = config.api_key

    if not config.api_key:
        log.warning("BRIDGE_API_KEY not set; API is unauthenticated")

    app.state.networks = load_supported_networks()
    app.state.ledger = LedgerGateway(get_ledger_config())
    app.state.exchange = create_exchange_gateway(get_exchange_credentials())

    app.state.orchestrator = TransferOrchestrator(
        ledger=app.state.ledger,
        exchange=app.state.exchange,
        networks=app.state.networks,
        settings=get_bridge_settings(),
    )

    try:
        yield

    finally:
        await app.state.exchange.close()


def _describe_errors(exc: RequestValidationError) -> str:
    # Only locations and messages: request inputs may contain a seed
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    )


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": _describe_errors(exc)})

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(
        request: Request, exc: GatewayError
    ) -> JSONResponse:
        log.error("Gateway error on %s: %s", request.url.path, exc)

        return JSONResponse(status_code=502, content={"detail": str(exc)})


def create_app(config: ServerConfig | None = None) -> FastAPI:
    app = FastAPI(title="RLUSD Bridge API", lifespan=lifespan)
    app.state.server_config = config or get_server_config()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app.state.server_config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(router)

    return app
