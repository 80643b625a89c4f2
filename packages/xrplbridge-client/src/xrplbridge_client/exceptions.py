from typing import Any


class ApiError(Exception):
    """HTTP error from the bridge API server."""

    def __init__(self, status_code: int, detail: str, payload: Any = None):
        self.status_code = status_code
        self.detail = detail
        self.payload = payload
        super().__init__(f"API error {status_code}: {detail}")
