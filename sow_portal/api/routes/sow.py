"""SOW approval API routes.

This module provides endpoints for:
- PIN verification before the SOW is shown
- Fetching SOW display data by token
- Approving or rejecting a SOW awaiting review
"""

import logging
from typing import Any

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from sow_portal.api.deps import SOWServiceDep
from sow_portal.models.sow import (
    ApproveSOWRequest,
    RejectSOWRequest,
    SOWData,
    VerifyPinRequest,
)

router = APIRouter(prefix="/sow", tags=["sow"])
logger = logging.getLogger(__name__)


@router.post("/verify-pin", response_model=None)
async def verify_pin(request: VerifyPinRequest, service: SOWServiceDep) -> Any:
    """Check the homeowner's PIN for a SOW token.

    Returns:
        200 ``{valid: true, status}`` on success, 401 ``{valid: false, error}``
        for a wrong token or PIN, 409 when the SOW was already decided.
    """
    result = await service.verify_pin(request.token, request.pin)
    if result.valid:
        return {"valid": True, "status": result.status}

    if result.already_decided:
        code = status.HTTP_409_CONFLICT
        content: dict[str, Any] = {"valid": False, "error": result.error, "status": result.status}
    else:
        code = status.HTTP_401_UNAUTHORIZED
        content = {"valid": False, "error": result.error}
    return JSONResponse(status_code=code, content=content)


@router.get("", response_model=SOWData)
async def get_sow(
    service: SOWServiceDep,
    token: str = Query(..., min_length=1, max_length=200),
) -> SOWData:
    """Get SOW display data for the approval page.

    Raises:
        NotFoundError: If no deal carries this token (404).
    """
    return await service.get_sow(token)


@router.post("/approve")
async def approve_sow(request: ApproveSOWRequest, service: SOWServiceDep) -> dict[str, Any]:
    """Approve a SOW.

    Raises:
        AuthenticationError: Wrong token or PIN (401).
        ConflictError: SOW already approved or rejected (409).
    """
    decision = await service.approve(
        request.token,
        request.pin,
        str(request.approver_email),
        snapshot_pdf=request.snapshot_pdf,
    )
    logger.info(
        "SOW approval recorded",
        extra={"deal_id": decision.deal_id, "note_created": decision.note_created},
    )
    return {
        "success": True,
        "approved_at": decision.decided_at.isoformat(),
        "note_created": decision.note_created,
    }


@router.post("/reject")
async def reject_sow(request: RejectSOWRequest, service: SOWServiceDep) -> dict[str, Any]:
    """Reject a SOW with a reason."""
    decision = await service.reject(
        request.token,
        request.pin,
        request.reason.strip(),
        str(request.rejecter_email),
        snapshot_pdf=request.snapshot_pdf,
    )
    logger.info(
        "SOW rejection recorded",
        extra={"deal_id": decision.deal_id, "note_created": decision.note_created},
    )
    return {
        "success": True,
        "rejected_at": decision.decided_at.isoformat(),
        "note_created": decision.note_created,
    }
