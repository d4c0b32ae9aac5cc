"""
MoonClerk API client.
Pages through the customers endpoint for the membership database.
https://github.com/moonclerk/developer
"""

from typing import Any, Optional

import httpx

from membership.config import settings
from membership.services.models import Customer, customer_from_dict
from membership.utils.logging import get_logger

logger = get_logger(__name__)

MOONCLERK_ACCEPT = "application/vnd.moonclerk+json;version=1"


class MoonclerkClient:
    """
    Client for the MoonClerk REST API.
    Authenticates with the account's API token.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.moonclerk_api_key
        self.base_url = base_url or settings.moonclerk_api_url
        self.timeout = timeout or settings.moonclerk_timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Initialize HTTP client."""
        headers = {"Accept": MOONCLERK_ACCEPT}
        if self.api_key:
            headers["Authorization"] = f"Token token={self.api_key}"

        self._http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            transport=self._transport,
        )
        logger.info("MoonClerk client initialized", has_api_key=bool(self.api_key))

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> Any:
        """Make API request."""
        if not self._http_client:
            await self.initialize()

        try:
            response = await self._http_client.request(method, endpoint, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "MoonClerk API error",
                status=e.response.status_code,
                endpoint=endpoint,
                error=e.response.text[:200] if e.response.text else "",
            )
            raise
        except Exception as e:
            logger.error("MoonClerk API request failed", endpoint=endpoint, error=str(e))
            raise

    async def fetch_customers(self, limit: int, offset: int) -> list[Customer]:
        """
        Fetch one page of customers.

        Args:
            limit: Page size (MoonClerk's ``count`` parameter)
            offset: Number of customers to skip

        Returns:
            Parsed customers; an empty list once the listing is exhausted
        """
        logger.debug("Loading MoonClerk customers", count=limit, offset=offset)
        data = await self._request("GET", "/customers", params={"count": limit, "offset": offset})

        customers = [customer_from_dict(raw) for raw in data.get("customers") or []]

        logger.debug("Loaded MoonClerk customers", count=len(customers), offset=offset)
        return customers


# Module-level singleton
moonclerk_client = MoonclerkClient()
