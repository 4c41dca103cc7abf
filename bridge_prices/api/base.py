"""Base async HTTP client with retry logic and rate limiting."""

import asyncio
import logging
from typing import Any

import httpx

from ..errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class APIError(UpstreamUnavailableError):
    """Raised when API returns an error."""
    def __init__(self, message: str, status_code: int | None = None, retryable: bool = True):
        super().__init__(message, retryable=retryable)
        self.status_code = status_code


class RateLimitError(APIError):
    """Raised when API rate limit is hit."""
    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, status_code=429)


class BaseAPIClient:
    """Base class for API clients with retry and rate limiting support."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._get_default_headers(),
            )
        return self._client

    def _get_default_headers(self) -> dict[str, str]:
        """Override in subclass to add default headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "BridgePrices/0.1.0",
        }

    def _handle_response(self, response: httpx.Response) -> Any:
        """Process response and handle errors."""
        if response.status_code == 429:
            raise RateLimitError()

        if response.status_code >= 400:
            try:
                error_data = response.json()
                message = error_data.get("message", error_data.get("error", str(error_data)))
            except Exception:
                message = response.text or f"HTTP {response.status_code}"
            raise APIError(
                str(message),
                response.status_code,
                retryable=response.status_code >= 500,
            )

        try:
            return response.json()
        except ValueError:
            raise APIError("Malformed JSON response", response.status_code, retryable=False)

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        if not endpoint:
            return self.base_url
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make HTTP request with retry logic."""
        url = self._url(endpoint)

        last_exception: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                response = await self.client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_data,
                    headers=headers,
                    timeout=self.timeout,
                )
                return self._handle_response(response)

            except RateLimitError as e:
                # Exponential backoff for rate limits
                last_exception = e
                delay = self.retry_delay * (2 ** attempt)

            except httpx.TimeoutException:
                last_exception = APIError("Request timed out", None)
                delay = self.retry_delay

            except httpx.RequestError as e:
                last_exception = APIError(f"Request failed: {e}", None)
                delay = self.retry_delay

            logger.debug(
                "%s %s attempt %d/%d failed: %s",
                method, self.base_url, attempt + 1, self.max_retries, last_exception,
            )
            if attempt < self.max_retries - 1:
                await asyncio.sleep(delay)

        if last_exception:
            raise last_exception
        raise APIError("Request failed after retries")

    async def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make GET request."""
        return await self._request("GET", endpoint, params=params, headers=headers)

    async def post(
        self,
        endpoint: str,
        json_data: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make POST request."""
        return await self._request("POST", endpoint, params=params, json_data=json_data, headers=headers)

    async def rpc_request(
        self,
        endpoint: str,
        method: str,
        params: Any,
        request_id: str | int = 1,
    ) -> Any:
        """
        Make a JSON-RPC 2.0 request.

        Args:
            endpoint: RPC endpoint path or absolute URL
            method: RPC method name
            params: Method parameters (dict or list)
            request_id: JSON-RPC request id

        Returns:
            RPC result
        """
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params,
        }
        data = await self.post(endpoint, json_data=payload)

        if not isinstance(data, dict):
            raise APIError(f"RPC Error: unexpected payload for {method}", retryable=False)
        if data.get("error"):
            error = data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise APIError(f"RPC Error: {message}", retryable=False)

        return data.get("result")

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
