"""Thin async transport for the HubSpot REST API.

Every call returns a ``HubSpotResult`` instead of raising for the expected
failure modes (non-2xx responses, network errors, unparseable bodies,
missing credentials). Callers decide whether a failed result is fatal;
``HubSpotResult.raise_for_error`` converts it into ``HubSpotAPIError``.

Schema endpoints are create-only: this gateway never issues PATCH or DELETE
against ``/crm/v3/properties``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from sow_portal.core.config import Settings, get_settings
from sow_portal.core.exceptions import CRMConfigurationError
from sow_portal.integrations.hubspot.errors import error_from_result
from sow_portal.integrations.hubspot.schema import FieldDefinition, FieldGroup

logger = logging.getLogger(__name__)

DEALS_OBJECT = "deals"
MISSING_TOKEN_ERROR = "HUBSPOT_ACCESS_TOKEN not configured"
INVALID_JSON_ERROR = "Invalid JSON response from HubSpot API"


@dataclass
class HubSpotResult:
    """Uniform outcome of one HubSpot call."""

    ok: bool
    status: int
    data: Any = None
    error: str | None = None

    @property
    def is_conflict(self) -> bool:
        """HubSpot answers 409 when a property or group already exists."""
        return self.status == 409

    def raise_for_error(self) -> None:
        """Raise if the call failed.

        Raises:
            CRMConfigurationError: No access token is configured.
            HubSpotAPIError: Any other failure.
        """
        if self.ok:
            return
        if self.status == 0 and self.error == MISSING_TOKEN_ERROR:
            raise CRMConfigurationError()
        raise error_from_result(self.status, self.error, self.data)

    def json_or_raise(self) -> Any:
        self.raise_for_error()
        return self.data


class HubSpotGateway:
    """Authenticated HubSpot client shared by provisioning and record calls."""

    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            access_token: Private app token; defaults to ``HUBSPOT_ACCESS_TOKEN``.
            base_url: API base URL; defaults to ``HUBSPOT_API_BASE``.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
            settings: Settings to read defaults from.
        """
        cfg = settings or get_settings()
        self.access_token = (
            access_token
            if access_token is not None
            else cfg.HUBSPOT_ACCESS_TOKEN.get_secret_value()
        )
        self.base_url = (base_url or cfg.HUBSPOT_API_BASE).rstrip("/")
        self.timeout = timeout or cfg.HUBSPOT_REQUEST_TIMEOUT_SECONDS
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    # ---------- HTTP ----------

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> HubSpotResult:
        """Issue one authenticated request and normalize the outcome.

        Args:
            method: HTTP method.
            path: Path relative to the API base (``/crm/v3/...``).
            json_body: JSON request body.
            params: Query parameters.
            files: Multipart file parts.
            data: Multipart form fields.

        Returns:
            HubSpotResult; never raises for HTTP, network or decode failures.
        """
        if not self.access_token:
            return HubSpotResult(ok=False, status=0, error=MISSING_TOKEN_ERROR)

        try:
            response = await self._get_client().request(
                method.upper(),
                path,
                headers={"Authorization": f"Bearer {self.access_token}"},
                json=json_body,
                params=params,
                files=files,
                data=data,
            )
        except httpx.TimeoutException as e:
            logger.warning("HubSpot request timed out: %s %s", method.upper(), path)
            return HubSpotResult(ok=False, status=0, error=f"Request timeout: {e}")
        except httpx.RequestError as e:
            logger.warning("HubSpot request failed: %s %s: %s", method.upper(), path, e)
            return HubSpotResult(ok=False, status=0, error=str(e) or "Network error")

        ok = response.is_success
        if response.status_code == 204 or not response.content:
            return HubSpotResult(
                ok=ok,
                status=response.status_code,
                error=None if ok else f"HTTP {response.status_code}",
            )

        try:
            body = response.json()
        except ValueError:
            logger.error(
                "HubSpot JSON parse failed for %s: %s",
                path,
                response.text[:200],
            )
            return HubSpotResult(ok=False, status=response.status_code, error=INVALID_JSON_ERROR)

        return HubSpotResult(
            ok=ok,
            status=response.status_code,
            data=body,
            error=None if ok else json.dumps(body),
        )

    # ---------- Schema management (create-only) ----------

    async def create_property_group(
        self, group: FieldGroup, object_type: str = DEALS_OBJECT
    ) -> HubSpotResult:
        return await self.request(
            "POST", f"/crm/v3/properties/{object_type}/groups", json_body=group.to_payload()
        )

    async def create_property(
        self, field: FieldDefinition, object_type: str = DEALS_OBJECT
    ) -> HubSpotResult:
        return await self.request(
            "POST", f"/crm/v3/properties/{object_type}", json_body=field.to_payload()
        )

    # ---------- Records ----------

    async def search_objects(
        self,
        filter_groups: list[dict[str, Any]],
        properties: list[str] | tuple[str, ...],
        limit: int = 10,
        object_type: str = DEALS_OBJECT,
    ) -> HubSpotResult:
        """Run a filtered CRM search."""
        return await self.request(
            "POST",
            f"/crm/v3/objects/{object_type}/search",
            json_body={
                "filterGroups": filter_groups,
                "properties": list(properties),
                "limit": limit,
            },
        )

    async def get_object(
        self,
        object_id: str,
        properties: list[str] | tuple[str, ...],
        object_type: str = DEALS_OBJECT,
    ) -> HubSpotResult:
        return await self.request(
            "GET",
            f"/crm/v3/objects/{object_type}/{object_id}",
            params={"properties": ",".join(properties)},
        )

    async def update_object(
        self,
        object_id: str,
        properties: dict[str, Any],
        object_type: str = DEALS_OBJECT,
    ) -> HubSpotResult:
        """Partially update a record's properties."""
        return await self.request(
            "PATCH",
            f"/crm/v3/objects/{object_type}/{object_id}",
            json_body={"properties": properties},
        )

    async def create_object(
        self,
        object_type: str,
        properties: dict[str, Any],
        associations: list[dict[str, Any]] | None = None,
    ) -> HubSpotResult:
        body: dict[str, Any] = {"properties": properties}
        if associations:
            body["associations"] = associations
        return await self.request("POST", f"/crm/v3/objects/{object_type}", json_body=body)


_gateway: HubSpotGateway | None = None


def get_gateway() -> HubSpotGateway:
    """Get or create the shared HubSpot gateway.

    Returns:
        The process-wide HubSpotGateway instance
    """
    global _gateway
    if _gateway is None:
        _gateway = HubSpotGateway()
    return _gateway
