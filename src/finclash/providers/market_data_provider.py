"""Quote API transport protocol and HTTP implementation."""

import logging
from typing import Any, Optional, Protocol

import httpx

from finclash.core.exceptions import FetchFailedError

logger = logging.getLogger(__name__)

# Query parameter carrying the API key, per provider
TOKEN_PARAMS: dict[str, str] = {
    "finnhub": "token",
    "alphavantage": "apikey",
}


class QuoteApiTransport(Protocol):
    """
    Protocol for the external market data HTTP API.

    Implementations return decoded JSON on success and raise
    FetchFailedError on non-2xx responses or transport errors.
    """

    async def fetch(self, endpoint: str, params: dict[str, Any]) -> Any:
        """Perform one request and return the decoded JSON body."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


class HttpQuoteApiTransport:
    """httpx-based transport for Finnhub-style REST endpoints."""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        provider: str = "finnhub",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._token_param = TOKEN_PARAMS.get(provider, "token")
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def fetch(self, endpoint: str, params: dict[str, Any]) -> Any:
        url = f"{self._base_url}/{endpoint.lstrip('/')}"
        query = {k: v for k, v in params.items() if v is not None}
        query[self._token_param] = self._api_token

        try:
            response = await self._client.get(url, params=query)
        except httpx.HTTPError as exc:
            # Covers connect errors and timeouts
            raise FetchFailedError(endpoint, f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise FetchFailedError(
                endpoint,
                f"API Error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise FetchFailedError(endpoint, "Response body is not valid JSON") from exc

    async def aclose(self) -> None:
        await self._client.aclose()
