"""
Async client for the Webacy risk-analysis API.

Thin wrapper over httpx: builds the URL from the configured base, attaches the
API key header and decodes the JSON body. Any non-2xx response becomes a
WebacyAPIError; the tools surface it to the caller as their own failure.
Requests are not retried.
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger("mcp-server.webacy")

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class WebacyAPIError(Exception):
    """
    Raised when the Webacy API answers with a non-2xx status.

    Attributes:
        status_code: HTTP status returned by the API
        reason: HTTP reason phrase (e.g. "Not Found")
        endpoint: The endpoint path that was requested
    """

    def __init__(self, status_code: int, reason: str, endpoint: str):
        self.status_code = status_code
        self.reason = reason
        self.endpoint = endpoint
        super().__init__(f"Webacy API error: {status_code} {reason}")


class WebacyClient:
    """
    Webacy API client.

    A fresh httpx.AsyncClient is opened per request so the client holds no
    connection state between tool calls. Pass `transport` to route requests
    somewhere other than the network (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.webacy.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {**DEFAULT_HEADERS, "X-API-Key": self.api_key}
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Call `endpoint` (a path such as "/addresses/0xabc") and return the JSON body.

        Raises:
            WebacyAPIError: The API answered with a non-2xx status
            httpx.HTTPError: The request could not be completed
        """
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(
                    method,
                    endpoint,
                    params=params or None,
                    json=json,
                    headers=self._headers(headers),
                )
            except httpx.HTTPError as e:
                logger.error("Error calling Webacy API %s: %s", endpoint, e)
                raise

        if not response.is_success:
            error = WebacyAPIError(response.status_code, response.reason_phrase, endpoint)
            logger.error("Error calling Webacy API %s: %s", endpoint, error)
            raise error

        return response.json()
