"""Shared fixtures for the SDK test suite."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from xrplbridge_sdk.config import LedgerConfig
from xrplbridge_sdk.ledger import LedgerGateway


ISSUER = "rMxCKbEDwqr76QuheSUMdEGf4B9xJ8m5De"


@dataclass
class FakeXrplClient:
    """Async context manager that replays canned responses."""

    responses: list[Any] = field(default_factory=list)
    enter_error: Exception | None = None
    requests: list[Any] = field(default_factory=list)
    opened: int = 0
    closed: int = 0

    async def __aenter__(self) -> "FakeXrplClient":
        if self.enter_error is not None:
            raise self.enter_error
        self.opened += 1
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.closed += 1

    async def request(self, req: Any) -> Any:
        self.requests.append(req)
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


@pytest.fixture
def ledger_config() -> LedgerConfig:
    return LedgerConfig(
        network="testnet",
        websocket_url="wss://s.altnet.rippletest.net:51233",
        stablecoin_issuer=ISSUER,
    )


@pytest.fixture
def make_ledger(
    ledger_config: LedgerConfig,
) -> Callable[..., tuple[LedgerGateway, FakeXrplClient]]:
    """Build a LedgerGateway wired to a FakeXrplClient."""

    def _make(
        responses: list[Any] | None = None, enter_error: Exception | None = None
    ) -> tuple[LedgerGateway, FakeXrplClient]:
        fake = FakeXrplClient(responses=list(responses or []), enter_error=enter_error)
        return LedgerGateway(ledger_config, client_factory=lambda url: fake), fake

    return _make
