"""Models package for the SOW portal."""

from sow_portal.models.sow import (
    ApproveSOWRequest,
    DealSOWStatus,
    RejectSOWRequest,
    SOWData,
    SOWDisplayStatus,
    VerifyPinRequest,
)

__all__ = [
    "ApproveSOWRequest",
    "DealSOWStatus",
    "RejectSOWRequest",
    "SOWData",
    "SOWDisplayStatus",
    "VerifyPinRequest",
]
