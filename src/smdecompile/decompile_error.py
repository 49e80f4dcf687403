"""Exceptions raised while talking to the decompilation service."""


class NetworkError(Exception):
    """Network-related errors during a decompilation request.

    Raised when the request cannot complete, including:
    - Connection failures (aiohttp.ClientConnectionError)
    - Timeouts (asyncio.TimeoutError)
    - DNS failures (aiohttp.ClientConnectorError)

    Always retryable.
    """


class APIError(Exception):
    """Non-2xx HTTP status returned by the service."""

    RETRYABLE_STATUSES = frozenset({500, 502, 503, 504})

    def __init__(self, status: int, body: str) -> None:
        """
        Initialize API error.

        Args:
            status: HTTP status code
            body: Response body text
        """
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}")

    @property
    def retryable(self) -> bool:
        return self.status in self.RETRYABLE_STATUSES


class ResponseError(Exception):
    """Successful HTTP status but a body that is not the expected JSON payload.

    Covers JSON parse failures and payloads without a string "response" field.
    Never retried.
    """


class ServiceError(Exception):
    """Well-formed response carrying an explicit "error" field. Never retried."""
