"""HTTP client for the RLUSD bridge API server."""

import logging
from decimal import Decimal
from typing import Any

import httpx
from xrplbridge_client.exceptions import ApiError


log = logging.getLogger(__name__)

# Deposit confirmation alone may take up to 15 minutes server-side
DEFAULT_TRANSFER_TIMEOUT = 1200.0


class BridgeApiClient:
    """Client for the bridge REST API server."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transfer_timeout: float = DEFAULT_TRANSFER_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"X-API-Key": api_key} if api_key else {}

        self._transfer_timeout = transfer_timeout
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _raise_for_error(resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        payload = None
        detail = resp.text

        if resp.headers.get("content-type", "").startswith("application/json"):
            payload = resp.json()
            if isinstance(payload, dict):
                detail = payload.get("detail") or payload.get("error_message") or detail

        raise ApiError(resp.status_code, detail, payload)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self._client.request(method, path, **kwargs)
        self._raise_for_error(resp)

        return resp.json()

    # -- Ledger operations --

    def get_account_info(
        self, address: str | None = None, xrpl_seed: str | None = None
    ) -> dict[str, Any]:
        body = {k: v for k, v in (("address", address), ("xrpl_seed", xrpl_seed)) if v}

        return self._request("POST", "/api/xrpl/account-info", json=body)["data"]

    def get_balance(self, address: str) -> Decimal:
        return Decimal(self._request("GET", f"/api/xrpl/balance/{address}")["balance"])

    def send(
        self,
        sender_seed: str,
        destination_address: str,
        amount: Decimal | str,
        destination_tag: str | None = None,
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/api/xrpl/send",
            json={
                "sender_seed": sender_seed,
                "destination_address": destination_address,
                "amount": str(amount),
                "destination_tag": destination_tag,
            },
        )

    # -- Cross-chain operations --

    def get_supported_networks(self) -> list[dict[str, Any]]:
        return self._request("GET", "/api/crosschain/supported-networks")

    def start_transfer(
        self,
        rlusd_amount: Decimal | str,
        destination_network: str,
        xrpl_seed: str,
        destination_address: str,
    ) -> dict[str, Any]:
        """Run a transfer and return its outcome, successful or not.

        A pipeline failure is returned as the outcome payload (check
        ``success`` and ``stage_reached``); only rejected requests and
        transport problems raise.
        """

        resp = self._client.post(
            "/api/crosschain/start-crosschain",
            json={
                "rlusd_amount": str(rlusd_amount),
                "destination_network": destination_network,
                "xrpl_seed": xrpl_seed,
                "destination_address": destination_address,
            },
            timeout=self._transfer_timeout,
        )

        try:
            self._raise_for_error(resp)

        except ApiError as e:
            if isinstance(e.payload, dict) and "stage_reached" in e.payload:
                log.warning(
                    "Transfer failed at %s: %s",
                    e.payload["stage_reached"],
                    e.payload.get("error_message"),
                )
                return e.payload

            raise

        return resp.json()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "BridgeApiClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
