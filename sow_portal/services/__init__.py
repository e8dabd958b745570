"""Services package."""

from sow_portal.services.health import HealthReporter, HealthSnapshot, get_health_reporter
from sow_portal.services.sow_service import SOWApprovalService, SOWDecision, get_sow_service

__all__ = [
    "HealthReporter",
    "HealthSnapshot",
    "get_health_reporter",
    "SOWApprovalService",
    "SOWDecision",
    "get_sow_service",
]
