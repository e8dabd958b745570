"""FastAPI dependencies shared by the route modules."""

import hmac
import logging
from typing import Annotated

from fastapi import Depends, Header

from sow_portal.core.config import Settings, get_settings
from sow_portal.services.health import HealthReporter, get_health_reporter
from sow_portal.services.sow_service import SOWApprovalService, get_sow_service

logger = logging.getLogger(__name__)


def is_health_key_authorized(
    settings: Annotated[Settings, Depends(get_settings)],
    x_health_check_key: Annotated[str | None, Header()] = None,
) -> bool:
    """True when ``X-Health-Check-Key`` matches ``HEALTH_CHECK_API_KEY``.

    An unset key never authorizes, so a missing header cannot match an
    empty configuration.
    """
    expected = settings.HEALTH_CHECK_API_KEY.get_secret_value()
    if not expected or not x_health_check_key:
        return False
    authorized = hmac.compare_digest(x_health_check_key.encode(), expected.encode())
    if not authorized:
        logger.warning("Health check called with an invalid X-Health-Check-Key")
    return authorized


SettingsDep = Annotated[Settings, Depends(get_settings)]
SOWServiceDep = Annotated[SOWApprovalService, Depends(get_sow_service)]
HealthReporterDep = Annotated[HealthReporter, Depends(get_health_reporter)]
HealthKeyAuthorized = Annotated[bool, Depends(is_health_key_authorized)]
