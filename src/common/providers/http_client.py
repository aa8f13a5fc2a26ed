import logging
from typing import Any

import httpx

from src.common.resilience import provider_call
from src.configuration.config import settings

logger = logging.getLogger(__name__)


class HttpProvider:
    """Base for JSON-over-HTTP providers: one breaker per provider, Bearer auth."""

    name = "provider"

    def __init__(self, base_url: str, api_key: str | None = None, timeout: float | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout or settings.PROVIDER_TIMEOUT_SECONDS
        self.transport: httpx.AsyncBaseTransport | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body. Raises ProviderError."""
        url = f"{self.base_url}{path}"
        with provider_call(self.name):
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, headers=self._get_headers(), **kwargs)
                response.raise_for_status()
                return response.json() if response.content else {}
