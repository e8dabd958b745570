"""HubSpot integration health reporting.

``HealthReporter.check`` triggers provisioning (when a token is configured)
and summarizes the outcome. Snapshots are cached briefly so uptime monitors
polling ``/health`` do not re-run a failing provisioning pass on every probe.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from cachetools import TTLCache

from sow_portal.core.config import Settings, get_settings
from sow_portal.integrations.hubspot.provisioning import SchemaProvisioner, get_provisioner

logger = logging.getLogger(__name__)

HEALTH_CACHE_TTL_SECONDS = 30
_CACHE_KEY = "hubspot_health"


@dataclass
class HealthSnapshot:
    """Point-in-time health of the HubSpot integration."""

    status: Literal["healthy", "degraded"]
    timestamp: datetime
    connected: bool
    setup_complete: bool
    has_access_token: bool
    in_progress: bool = False
    report: dict[str, Any] | None = None
    error: str | None = None

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"

    def to_public(self) -> dict[str, Any]:
        """Minimal payload safe for unauthenticated callers."""
        return {"status": self.status, "timestamp": self.timestamp.isoformat()}

    def to_detailed(self, settings: Settings) -> dict[str, Any]:
        hubspot: dict[str, Any] = {
            "connected": self.connected,
            "setup_complete": self.setup_complete,
            "setup_in_progress": self.in_progress,
        }
        if self.report:
            hubspot.update(
                group_created=self.report["group_was_created"],
                properties_created=self.report["fields_created"],
                properties_existed=self.report["fields_already_present"],
                errors=self.report["errors"],
                last_setup=self.report["completed_at"],
            )
        if self.error:
            hubspot["error"] = self.error

        return {
            **self.to_public(),
            "hubspot": hubspot,
            "environment": {
                "has_access_token": self.has_access_token,
                "base_url": settings.PUBLIC_BASE_URL or "not configured",
                "app_env": settings.APP_ENV,
            },
        }


class HealthReporter:
    """Builds ``HealthSnapshot`` objects from the provisioner state."""

    def __init__(
        self,
        provisioner: SchemaProvisioner | None = None,
        settings: Settings | None = None,
        cache_ttl: int = HEALTH_CACHE_TTL_SECONDS,
    ) -> None:
        self.provisioner = provisioner or get_provisioner()
        self.settings = settings or get_settings()
        self._cache: TTLCache[str, HealthSnapshot] = TTLCache(maxsize=1, ttl=cache_ttl)

    async def check(self, use_cache: bool = True) -> HealthSnapshot:
        """Run provisioning if possible and report the outcome.

        Healthy iff a token is configured, provisioning did not raise, and
        the last report succeeded.
        """
        if use_cache:
            cached = self._cache.get(_CACHE_KEY)
            if cached is not None:
                return cached

        has_token = self.provisioner.gateway.is_configured
        connected = False
        error: str | None = None

        if has_token:
            try:
                async with asyncio.timeout(self.settings.PROVISIONING_TIMEOUT_SECONDS):
                    await self.provisioner.ensure_provisioned()
                connected = True
            except Exception as e:
                logger.warning("HubSpot health check: setup raised: %s", e)
                error = str(e) or type(e).__name__

        summary = self.provisioner.health_summary()
        report = summary["report"]
        healthy = has_token and connected and bool(report and report["succeeded"])

        snapshot = HealthSnapshot(
            status="healthy" if healthy else "degraded",
            timestamp=datetime.fromisoformat(summary["checked_at"]),
            connected=connected,
            setup_complete=summary["provisioned"],
            has_access_token=has_token,
            in_progress=summary["in_progress"],
            report=report,
            error=error,
        )
        self._cache[_CACHE_KEY] = snapshot
        return snapshot

    def invalidate(self) -> None:
        self._cache.clear()


_reporter: HealthReporter | None = None


def get_health_reporter() -> HealthReporter:
    """Get or create the shared health reporter."""
    global _reporter
    if _reporter is None:
        _reporter = HealthReporter()
    return _reporter
