"""Health check API routes.

Provides:
- GET /health: HubSpot integration status. Public callers get
  ``{status, timestamp}``; callers presenting ``X-Health-Check-Key`` get
  full diagnostics (created/existing properties, errors, environment).
- GET /health/ping: lightweight 200 for external uptime monitors
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, status

from sow_portal.api.deps import HealthKeyAuthorized, HealthReporterDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(
    reporter: HealthReporterDep,
    settings: SettingsDep,
    authorized: HealthKeyAuthorized,
) -> dict[str, Any]:
    """HubSpot integration health.

    Always 200; ``status`` is ``healthy`` or ``degraded``. The keyed
    response bypasses the snapshot cache so operators see live state.
    """
    snapshot = await reporter.check(use_cache=not authorized)
    if not authorized:
        return snapshot.to_public()
    return snapshot.to_detailed(settings)


@router.get("/ping", status_code=status.HTTP_200_OK)
async def ping() -> dict[str, str]:
    """Lightweight ping for external uptime monitors.

    No dependency checks, no auth. Returns 200 with current timestamp.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
    }
