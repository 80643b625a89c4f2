"""Unit tests for xrplbridge_api server."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from xrpl.wallet import Wallet
from xrplbridge_api.app import add_exception_handlers, create_app
from xrplbridge_api.config import ServerConfig
from xrplbridge_api.routes import health_router, router
from xrplbridge_sdk import ExchangeGateway, LedgerError, TransferOrchestrator
from xrplbridge_sdk.models import AccountSnapshot, AssetDescriptor, SendReceipt
from xrplbridge_sdk.networks import DEFAULT_NETWORKS

API_KEY = "test-api-key"
SEED = "sEdTM1uX8pu2do5XvTnutH6HsouMaM2"


def _build_app(
    mock_ledger: MagicMock,
    api_key: str = API_KEY,
    max_transfer_amount: Decimal = Decimal("10000"),
) -> FastAPI:
    """Build a test app around a mocked ledger and a simulated exchange."""

    app = FastAPI()

    exchange = ExchangeGateway()

    app.state.server_config = ServerConfig(
        api_key=api_key, max_transfer_amount=max_transfer_amount
    )
    app.state.api_key = api_key
    app.state.networks = list(DEFAULT_NETWORKS)
    app.state.ledger = mock_ledger
    app.state.exchange = exchange
    app.state.orchestrator = TransferOrchestrator(
        mock_ledger, exchange, app.state.networks
    )

    add_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(router)

    return app


@pytest.fixture
def mock_ledger() -> MagicMock:
    ledger = MagicMock()
    ledger.stablecoin = AssetDescriptor(
        currency="524C555344000000000000000000000000000000",
        issuer="rMxCKbEDwqr76QuheSUMdEGf4B9xJ8m5De",
    )
    ledger.get_account_snapshot = AsyncMock()
    ledger.get_balance = AsyncMock(return_value=Decimal("0"))
    ledger.send = AsyncMock(return_value=SendReceipt.succeeded("HASH123"))
    return ledger


@pytest.fixture
def app(mock_ledger: MagicMock) -> FastAPI:
    return _build_app(mock_ledger)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def _auth_headers() -> dict[str, str]:
    return {"X-API-Key": API_KEY}


def _transfer_body(**overrides) -> dict:
    body = {
        "rlusd_amount": 10,
        "destination_network": "polygon",
        "xrpl_seed": SEED,
        "destination_address": "0xABC",
    }
    body.update(overrides)
    return body


class TestAuth:
    def test_rejects_missing_api_key(self, client: TestClient) -> None:
        resp = client.get("/api/crosschain/supported-networks")
        assert resp.status_code == 401

    def test_rejects_invalid_api_key(self, client: TestClient) -> None:
        resp = client.get(
            "/api/crosschain/supported-networks", headers={"X-API-Key": "wrong"}
        )
        assert resp.status_code == 401

    def test_accepts_valid_api_key(self, client: TestClient) -> None:
        resp = client.get("/api/crosschain/supported-networks", headers=_auth_headers())
        assert resp.status_code == 200

    def test_open_when_no_key_configured(self, mock_ledger: MagicMock) -> None:
        client = TestClient(_build_app(mock_ledger, api_key=""))

        resp = client.get("/api/crosschain/supported-networks")

        assert resp.status_code == 200


class TestHealth:
    def test_health_no_auth(self, client: TestClient) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "simulation": True}


class TestSupportedNetworks:
    def test_lists_networks(self, client: TestClient) -> None:
        resp = client.get("/api/crosschain/supported-networks", headers=_auth_headers())

        data = resp.json()
        assert [n["id"] for n in data] == [n.id for n in DEFAULT_NETWORKS]
        assert data[1] == {
            "id": "polygon",
            "name": "Polygon",
            "settlement_token": "USDC",
            "exchange_chain": "Polygon",
        }


class TestAccountInfo:
    def test_by_address(self, client: TestClient, mock_ledger: MagicMock) -> None:
        mock_ledger.get_account_snapshot.return_value = AccountSnapshot(
            address="rUser", exists=True, native_balance=Decimal("25")
        )
        mock_ledger.get_balance.return_value = Decimal("12.5")

        resp = client.post(
            "/api/xrpl/account-info", json={"address": "rUser"}, headers=_auth_headers()
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "data": {
                "address": "rUser",
                "account_exists": True,
                "xrp_balance": "25",
                "rlusd_balance": "12.5",
            },
        }

    def test_by_seed(self, client: TestClient, mock_ledger: MagicMock) -> None:
        wallet = Wallet.create()
        mock_ledger.get_account_snapshot.return_value = AccountSnapshot(
            address=wallet.classic_address, exists=True
        )

        resp = client.post(
            "/api/xrpl/account-info",
            json={"xrpl_seed": wallet.seed},
            headers=_auth_headers(),
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["address"] == wallet.classic_address
        mock_ledger.get_account_snapshot.assert_awaited_once_with(
            wallet.classic_address
        )

    def test_unfunded_account(self, client: TestClient, mock_ledger: MagicMock) -> None:
        mock_ledger.get_account_snapshot.return_value = AccountSnapshot(
            address="rNew", exists=False
        )

        resp = client.post(
            "/api/xrpl/account-info", json={"address": "rNew"}, headers=_auth_headers()
        )

        data = resp.json()["data"]
        assert data["account_exists"] is False
        assert data["xrp_balance"] == "0"
        assert data["rlusd_balance"] == "0"
        mock_ledger.get_balance.assert_not_awaited()

    def test_invalid_seed(self, client: TestClient) -> None:
        resp = client.post(
            "/api/xrpl/account-info",
            json={"xrpl_seed": "not-a-seed"},
            headers=_auth_headers(),
        )

        assert resp.status_code == 400
        assert resp.json() == {"detail": "Invalid XRPL seed provided."}

    def test_requires_address_or_seed(self, client: TestClient) -> None:
        resp = client.post("/api/xrpl/account-info", json={}, headers=_auth_headers())
        assert resp.status_code == 400

    def test_ledger_error_is_502(
        self, client: TestClient, mock_ledger: MagicMock
    ) -> None:
        mock_ledger.get_account_snapshot.side_effect = LedgerError(
            "account_info failed for rUser: tooBusy"
        )

        resp = client.post(
            "/api/xrpl/account-info", json={"address": "rUser"}, headers=_auth_headers()
        )

        assert resp.status_code == 502
        assert "tooBusy" in resp.json()["detail"]


class TestBalance:
    def test_returns_balance(self, client: TestClient, mock_ledger: MagicMock) -> None:
        mock_ledger.get_balance.return_value = Decimal("42.125")

        resp = client.get("/api/xrpl/balance/rUser", headers=_auth_headers())

        assert resp.status_code == 200
        assert resp.json() == {"balance": "42.125"}
        mock_ledger.get_balance.assert_awaited_once_with(
            "rUser", mock_ledger.stablecoin
        )


class TestSend:
    def _body(self, **overrides) -> dict:
        body = {
            "sender_seed": SEED,
            "destination_address": "rDest",
            "amount": "5",
            "destination_tag": "7",
        }
        body.update(overrides)
        return body

    def test_success(self, client: TestClient, mock_ledger: MagicMock) -> None:
        resp = client.post("/api/xrpl/send", json=self._body(), headers=_auth_headers())

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "transaction_hash": "HASH123",
            "failure_reason": None,
        }
        mock_ledger.send.assert_awaited_once_with(SEED, "rDest", Decimal("5"), "7")

    def test_failed_payment(self, client: TestClient, mock_ledger: MagicMock) -> None:
        mock_ledger.send.return_value = SendReceipt.failed("tecNO_LINE")

        resp = client.post("/api/xrpl/send", json=self._body(), headers=_auth_headers())

        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert resp.json()["failure_reason"] == "tecNO_LINE"

    def test_exceeds_limit(self, mock_ledger: MagicMock) -> None:
        client = TestClient(_build_app(mock_ledger, max_transfer_amount=Decimal("1")))

        resp = client.post("/api/xrpl/send", json=self._body(), headers=_auth_headers())

        assert resp.status_code == 400
        assert "exceeds per-transfer limit" in resp.json()["detail"]
        mock_ledger.send.assert_not_awaited()

    def test_rejects_zero_amount(self, client: TestClient) -> None:
        resp = client.post(
            "/api/xrpl/send", json=self._body(amount="0"), headers=_auth_headers()
        )
        assert resp.status_code == 400


class TestStartCrosschain:
    def test_simulated_transfer(
        self, client: TestClient, mock_ledger: MagicMock
    ) -> None:
        resp = client.post(
            "/api/crosschain/start-crosschain",
            json=_transfer_body(),
            headers=_auth_headers(),
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["stage_reached"] == "complete"
        assert data["original_amount"] == "10"
        assert data["converted_amount"] == "9.98"
        assert data["destination_network"] == "polygon"
        assert data["destination_address"] == "0xABC"
        assert data["xrpl_transaction_hash"] == "HASH123"
        assert data["convert_order_id"].startswith("convert_")
        assert data["withdraw_order_id"].startswith("withdraw_")
        assert data["error_message"] is None

        seed, address, amount, tag = mock_ledger.send.await_args.args
        assert seed == SEED
        assert address == "rGDreBvnHrX1get7na3J4oowN19ny4GzFn"
        assert amount == Decimal("10")
        assert tag == "102717160"

    def test_pipeline_failure_is_500(
        self, client: TestClient, mock_ledger: MagicMock
    ) -> None:
        mock_ledger.send.return_value = SendReceipt.failed("tecUNFUNDED_PAYMENT")

        resp = client.post(
            "/api/crosschain/start-crosschain",
            json=_transfer_body(),
            headers=_auth_headers(),
        )

        assert resp.status_code == 500
        data = resp.json()
        assert data["success"] is False
        assert data["stage_reached"] == "send"
        assert data["error_message"] == "Failed to send RLUSD: tecUNFUNDED_PAYMENT"
        assert data["converted_amount"] is None

    def test_unsupported_network(
        self, client: TestClient, mock_ledger: MagicMock
    ) -> None:
        resp = client.post(
            "/api/crosschain/start-crosschain",
            json=_transfer_body(destination_network="dogechain"),
            headers=_auth_headers(),
        )

        assert resp.status_code == 400
        assert resp.json() == {
            "detail": "Unsupported destination network: dogechain"
        }
        mock_ledger.send.assert_not_awaited()

    def test_missing_fields_do_not_echo_seed(self, client: TestClient) -> None:
        resp = client.post(
            "/api/crosschain/start-crosschain",
            json={"rlusd_amount": 10, "xrpl_seed": SEED},
            headers=_auth_headers(),
        )

        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert "destination_network" in detail
        assert "destination_address" in detail
        assert SEED not in resp.text

    @pytest.mark.parametrize("amount", [0, -1, "abc"])
    def test_invalid_amount(self, client: TestClient, amount) -> None:
        resp = client.post(
            "/api/crosschain/start-crosschain",
            json=_transfer_body(rlusd_amount=amount),
            headers=_auth_headers(),
        )
        assert resp.status_code == 400

    def test_blank_seed(self, client: TestClient, mock_ledger: MagicMock) -> None:
        resp = client.post(
            "/api/crosschain/start-crosschain",
            json=_transfer_body(xrpl_seed="  "),
            headers=_auth_headers(),
        )

        assert resp.status_code == 400
        mock_ledger.send.assert_not_awaited()

    def test_exceeds_limit(self, mock_ledger: MagicMock) -> None:
        client = TestClient(_build_app(mock_ledger, max_transfer_amount=Decimal("5")))

        resp = client.post(
            "/api/crosschain/start-crosschain",
            json=_transfer_body(),
            headers=_auth_headers(),
        )

        assert resp.status_code == 400
        assert "exceeds per-transfer limit" in resp.json()["detail"]
        mock_ledger.send.assert_not_awaited()


class TestCreateApp:
    def test_lifespan_wires_simulated_gateways(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path
    ) -> None:
        for name in ("BITGET_API_KEY", "BITGET_SECRET_KEY", "BITGET_PASSPHRASE"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("BRIDGE_CONFIG", str(tmp_path / "missing.yaml"))

        app = create_app(ServerConfig(api_key=API_KEY))

        with TestClient(app) as client:
            health = client.get("/api/health")
            networks = client.get(
                "/api/crosschain/supported-networks", headers=_auth_headers()
            )

        assert health.json() == {"status": "ok", "simulation": True}
        assert len(networks.json()) == len(DEFAULT_NETWORKS)
        assert isinstance(app.state.orchestrator, TransferOrchestrator)

    def test_cors_headers(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        monkeypatch.setenv("BRIDGE_CONFIG", str(tmp_path / "missing.yaml"))
        app = create_app(ServerConfig(cors_origins=["https://app.example"]))

        with TestClient(app) as client:
            resp = client.get(
                "/api/health", headers={"Origin": "https://app.example"}
            )

        assert resp.headers["access-control-allow-origin"] == "https://app.example"
