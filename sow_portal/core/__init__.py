"""Core configuration and error types for the SOW portal."""

from sow_portal.core.config import Settings, get_settings
from sow_portal.core.exceptions import (
    HubSpotAPIError,
    OperationTimeoutError,
    SOWPortalException,
)

__all__ = [
    "Settings",
    "get_settings",
    "HubSpotAPIError",
    "OperationTimeoutError",
    "SOWPortalException",
]
