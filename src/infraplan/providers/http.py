"""Generic REST provider binding."""

import os
from typing import Any, Dict, Optional
import requests
from ..utils.errors import ProviderError
from ..utils.logging import get_logger
from .base import Provider, ProviderResult

logger = get_logger("providers.http")

RETRYABLE_STATUS = (408, 429, 500, 502, 503, 504)


class HttpProvider(Provider):
    """
    Provider backed by a REST service.

    POST   {base_url}/resources        {"type": ..., "attributes": {...}} -> {"id": ..., "outputs": {...}}
    PATCH  {base_url}/resources/{id}   {"attributes": {...}}              -> {"outputs": {...}}
    DELETE {base_url}/resources/{id}
    """

    name = "http"

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0, token: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize HTTP provider.

        Args:
            base_url: Service base URL (default: INFRAPLAN_PROVIDER_URL)
            timeout: Request timeout in seconds
            token: Bearer token (default: INFRAPLAN_PROVIDER_TOKEN)
            session: Optional requests session (tests inject one)
        """
        self.base_url = (base_url or os.getenv("INFRAPLAN_PROVIDER_URL", "")).rstrip("/")
        if not self.base_url:
            raise ProviderError("HTTP provider requires a base URL (provider.http.base_url or INFRAPLAN_PROVIDER_URL)")
        self.timeout = timeout
        self.session = session or requests.Session()
        token = token or os.getenv("INFRAPLAN_PROVIDER_TOKEN")
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise ProviderError(f"{method} {url} failed: {e}", retryable=True)
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"{method} {url} failed: {e}")

        if response.status_code >= 400:
            detail = response.text[:500]
            raise ProviderError(
                f"{method} {url} returned {response.status_code}: {detail}",
                retryable=response.status_code in RETRYABLE_STATUS
            )

        if response.status_code == 204 or not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(f"{method} {url} returned invalid JSON: {e}")
        if not isinstance(body, dict):
            raise ProviderError(f"{method} {url} returned {type(body).__name__}, expected an object")
        return body

    def create(self, resource_type: str, attributes: Dict[str, Any]) -> ProviderResult:
        body = self._request("POST", "/resources", {"type": resource_type, "attributes": attributes})
        if "id" not in body:
            raise ProviderError(f"Create {resource_type} response has no 'id'")
        return ProviderResult(provider_id=str(body["id"]), outputs=body.get("outputs") or {})

    def update(self, provider_id: str, changed_attributes: Dict[str, Any]) -> Dict[str, Any]:
        body = self._request("PATCH", f"/resources/{provider_id}", {"attributes": changed_attributes})
        return body.get("outputs") or {}

    def destroy(self, provider_id: str) -> None:
        self._request("DELETE", f"/resources/{provider_id}")
