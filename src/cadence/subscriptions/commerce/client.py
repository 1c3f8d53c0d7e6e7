"""
Commerce admin API client.

Thin async GraphQL client for the remote commerce platform, authenticated
with a merchant's offline access token.
"""

from typing import Any

import httpx
import structlog

from cadence.subscriptions.exceptions import CommerceApiError, CommerceHttpError

logger = structlog.get_logger(__name__)


class GraphQLResponse:
    """Decoded GraphQL response: ``json()`` yields ``{"data", "errors"}``."""

    def __init__(self, status_code: int, body: dict[str, Any]) -> None:
        self.status_code = status_code
        self._body = body

    def json(self) -> dict[str, Any]:
        return self._body

    @property
    def data(self) -> dict[str, Any] | None:
        return self._body.get("data")

    @property
    def errors(self) -> list[dict[str, Any]]:
        return self._body.get("errors") or []


class CommerceAdminClient:
    """GraphQL admin client for one merchant."""

    def __init__(
        self,
        merchant_key: str,
        access_token: str,
        endpoint: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            merchant_key: Merchant the token belongs to
            access_token: Offline admin API token
            endpoint: Full GraphQL endpoint URL
            timeout: Request timeout in seconds
            verify_ssl: Whether to verify SSL certificates
            transport: Optional transport override (tests)
        """
        self.merchant_key = merchant_key
        self.access_token = access_token
        self.endpoint = endpoint
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "Authorization": f"Bearer {self.access_token}",
                },
                verify=self.verify_ssl,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CommerceAdminClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def graphql(
        self, document: str, variables: dict[str, Any] | None = None
    ) -> GraphQLResponse:
        """
        Send a GraphQL document.

        Raises:
            CommerceHttpError: On HTTP error status (402/403/404/423 are terminal)
            CommerceApiError: On transport failure or a non-JSON body
        """
        client = await self._get_client()

        try:
            response = await client.post(
                self.endpoint, json={"query": document, "variables": variables or {}}
            )
        except httpx.TimeoutException as e:
            logger.error("commerce.request.timeout", merchant_key=self.merchant_key, error=str(e))
            raise CommerceApiError(f"Request timeout for {self.merchant_key}") from e
        except httpx.RequestError as e:
            logger.error("commerce.request.error", merchant_key=self.merchant_key, error=str(e))
            raise CommerceApiError(f"Request failed: {str(e)}") from e

        if response.status_code >= 400:
            logger.warning(
                "commerce.request.http_error",
                merchant_key=self.merchant_key,
                status_code=response.status_code,
            )
            raise CommerceHttpError(
                f"Commerce API responded with HTTP {response.status_code}",
                status_code=response.status_code,
                merchant_key=self.merchant_key,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise CommerceApiError("Commerce API returned a non-JSON body") from e

        return GraphQLResponse(response.status_code, body)
