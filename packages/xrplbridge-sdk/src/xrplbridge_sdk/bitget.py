"""Bitget V2 REST API client.

Uses curl_cffi's AsyncSession so concurrent transfers share one
connection pool without blocking the event loop.
"""

import asyncio
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Any
from urllib.parse import urlencode

from curl_cffi import CurlError
from curl_cffi.requests import AsyncSession

from xrplbridge_sdk.config import ExchangeCredentials
from xrplbridge_sdk.exceptions import ExchangeError


log = logging.getLogger(__name__)

SUCCESS_CODE = "00000"

DEPOSIT_ADDRESS_PATH = "/api/v2/spot/wallet/deposit-address"
DEPOSIT_RECORDS_PATH = "/api/v2/spot/wallet/deposit-records"
QUOTED_PRICE_PATH = "/api/v2/convert/quoted-price"
CONVERT_PATH = "/api/v2/convert/trade"
WITHDRAWAL_PATH = "/api/v2/spot/wallet/withdrawal"


def sign(
    secret_key: str, timestamp: str, method: str, request_path: str, body: str
) -> str:
    """Bitget request signature: base64(HMAC-SHA256(ts + METHOD + path + body))."""

    message = f"{timestamp}{method.upper()}{request_path}{body}"
    digest = hmac.new(secret_key.encode(), message.encode(), hashlib.sha256).digest()

    return base64.b64encode(digest).decode()


class BitgetClient:
    """Signed Bitget REST client.

    Every response is the standard envelope ``{"code", "msg", "data"}``;
    any code other than ``"00000"`` raises ``ExchangeError``.
    """

    # Minimum seconds between any two requests (Bitget allows ~10 req/s per endpoint)
    _MIN_DELAY: float = 0.1

    def __init__(self, credentials: ExchangeCredentials, timeout: float = 30) -> None:
        self._credentials = credentials
        self._base_url = credentials.base_url.rstrip("/")
        self._session = AsyncSession(timeout=timeout)
        self._lock = asyncio.Lock()
        self._last_request_time: float = 0

    # -- low-level ---------------------------------------------------------

    def _headers(self, method: str, request_path: str, body: str) -> dict[str, str]:
        timestamp = str(int(time.time() * 1000))

        return {
            "ACCESS-KEY": self._credentials.api_key,
            "ACCESS-SIGN": sign(
                self._credentials.secret_key, timestamp, method, request_path, body
            ),
            "ACCESS-TIMESTAMP": timestamp,
            "ACCESS-PASSPHRASE": self._credentials.passphrase,
            "Content-Type": "application/json",
            "locale": "en-US",
        }

    async def _wait(self) -> None:
        """Space requests at least _MIN_DELAY seconds apart."""

        async with self._lock:
            if self._last_request_time:
                elapsed = time.monotonic() - self._last_request_time
                remaining = self._MIN_DELAY - elapsed

                if remaining > 0:
                    await asyncio.sleep(remaining)

            self._last_request_time = time.monotonic()

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        query = urlencode({k: v for k, v in (params or {}).items() if v is not None})
        request_path = f"{path}?{query}" if query else path
        body = json.dumps(payload) if payload is not None else ""

        await self._wait()

        try:
            resp = await self._session.request(
                method,
                f"{self._base_url}{request_path}",
                data=body or None,
                headers=self._headers(method, request_path, body),
            )

        except CurlError as exc:
            raise ExchangeError("transport", str(exc)) from exc

        try:
            data = resp.json()

        except ValueError as exc:
            raise ExchangeError(str(resp.status_code), resp.text[:500]) from exc

        if not isinstance(data, dict):
            raise ExchangeError(
                "invalid_response", f"Unexpected response body: {resp.text[:500]}"
            )

        code = str(data.get("code", resp.status_code))

        if resp.status_code >= 400 or code != SUCCESS_CODE:
            raise ExchangeError(code, data.get("msg") or resp.text[:500])

        return data.get("data")

    # -- endpoints ---------------------------------------------------------

    async def get_deposit_address(self, coin: str, chain: str) -> dict[str, Any]:
        return await self.request(
            "GET", DEPOSIT_ADDRESS_PATH, params={"coin": coin, "chain": chain}
        )

    async def get_deposit_records(
        self, coin: str, start_time_ms: int, end_time_ms: int, limit: int = 100
    ) -> list[dict[str, Any]]:
        data = await self.request(
            "GET",
            DEPOSIT_RECORDS_PATH,
            params={
                "coin": coin,
                "startTime": start_time_ms,
                "endTime": end_time_ms,
                "limit": limit,
            },
        )

        if data is None:
            return []

        if not isinstance(data, list):
            raise ExchangeError(
                "invalid_response", f"Deposit records not a list: {data!r}"
            )

        return data

    async def get_quoted_price(
        self, from_coin: str, to_coin: str, from_coin_size: str
    ) -> dict[str, Any]:
        return await self.request(
            "GET",
            QUOTED_PRICE_PATH,
            params={
                "fromCoin": from_coin,
                "toCoin": to_coin,
                "fromCoinSize": from_coin_size,
            },
        )

    async def convert(
        self,
        from_coin: str,
        to_coin: str,
        from_coin_size: str,
        cnvt_price: str,
        to_coin_size: str,
        trace_id: str,
    ) -> dict[str, Any]:
        return await self.request(
            "POST",
            CONVERT_PATH,
            payload={
                "fromCoin": from_coin,
                "toCoin": to_coin,
                "fromCoinSize": from_coin_size,
                "cnvtPrice": cnvt_price,
                "toCoinSize": to_coin_size,
                "traceId": trace_id,
            },
        )

    async def submit_withdrawal(
        self,
        coin: str,
        address: str,
        chain: str,
        size: str,
        transfer_type: str = "on_chain",
    ) -> dict[str, Any]:
        return await self.request(
            "POST",
            WITHDRAWAL_PATH,
            payload={
                "coin": coin,
                "transferType": transfer_type,
                "address": address,
                "chain": chain,
                "size": size,
            },
        )

    async def close(self) -> None:
        await self._session.close()

    async def __aenter__(self) -> "BitgetClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
