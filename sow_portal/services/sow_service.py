"""SOW approval service.

Drives the homeowner-facing flow: PIN check, SOW display, and the one-way
``needs_review -> approved | rejected`` transition. The deal update is the
commit point; the snapshot upload and timeline note that follow are best
effort and never undo a decision.

Decisions for one token are serialized inside the process, so two
concurrent requests cannot both pass the ``needs_review`` check. HubSpot
has no conditional update, so separate worker processes can still race.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sow_portal.core.config import Settings, get_settings
from sow_portal.core.exceptions import AuthenticationError, ConflictError, NotFoundError
from sow_portal.integrations.hubspot.client import (
    HubSpotDealClient,
    PinVerification,
    get_hubspot_client,
)
from sow_portal.integrations.hubspot.files import HubSpotFiles, get_hubspot_files
from sow_portal.models.sow import DealSOWStatus, SOWData

logger = logging.getLogger(__name__)


@dataclass
class SOWDecision:
    """Result of an approve or reject call."""

    deal_id: str
    status: DealSOWStatus
    decided_at: datetime
    note_created: bool
    file_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "deal_id": self.deal_id,
            "status": self.status.value,
            "decided_at": self.decided_at.isoformat(),
            "note_created": self.note_created,
            "file_id": self.file_id,
        }


class SOWApprovalService:
    """Approve/reject workflow on top of the HubSpot deal and files clients."""

    def __init__(
        self,
        client: HubSpotDealClient | None = None,
        files: HubSpotFiles | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.client = client or get_hubspot_client()
        self.files = files or get_hubspot_files()
        self.settings = settings or get_settings()
        # token -> lock held from PIN check through the status update
        self._decision_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def verify_pin(self, token: str, pin: str) -> PinVerification:
        return await self.client.verify_pin(token, pin)

    async def get_sow(self, token: str) -> SOWData:
        """Get SOW display data.

        Raises:
            NotFoundError: If no deal carries this token.
        """
        sow = await self.client.get_sow_data(token)
        if sow is None:
            raise NotFoundError("SOW")
        return sow

    async def approve(
        self,
        token: str,
        pin: str,
        approver_email: str,
        snapshot_pdf: bytes | None = None,
    ) -> SOWDecision:
        """Approve a SOW awaiting review.

        Args:
            token: SOW token from the approval URL.
            pin: Homeowner PIN.
            approver_email: Email entered by the approver.
            snapshot_pdf: Optional rendered SOW to attach to the deal.

        Returns:
            SOWDecision with the approval timestamp.

        Raises:
            AuthenticationError: If the token or PIN is wrong.
            ConflictError: If the SOW was already approved or rejected.
        """
        async with self._decision_lock(token):
            deal_id = await self._authorize(token, pin)
            decided_at = datetime.now(UTC)

            file_id = await self._upload_snapshot(
                snapshot_pdf, f"SOW-Approved-{deal_id}-{decided_at:%Y%m%d%H%M%S}.pdf"
            )

            properties: dict[str, Any] = {
                "sow_status": DealSOWStatus.APPROVED.value,
                "sow_accepted_date": decided_at.isoformat(),
            }
            if file_id:
                properties["accepted_sow"] = file_id
            await self.client.update_deal(deal_id, properties)
        logger.info("SOW approved", extra={"deal_id": deal_id})

        note_created = True
        try:
            await self.files.create_approval_note(deal_id, approver_email, file_id, decided_at)
        except Exception:
            note_created = False
            logger.exception("Failed to create approval note", extra={"deal_id": deal_id})

        return SOWDecision(deal_id, DealSOWStatus.APPROVED, decided_at, note_created, file_id)

    async def reject(
        self,
        token: str,
        pin: str,
        reason: str,
        rejecter_email: str,
        snapshot_pdf: bytes | None = None,
    ) -> SOWDecision:
        """Reject a SOW awaiting review; same contract as ``approve``."""
        async with self._decision_lock(token):
            deal_id = await self._authorize(token, pin)
            decided_at = datetime.now(UTC)

            file_id = await self._upload_snapshot(
                snapshot_pdf, f"SOW-Rejected-{deal_id}-{decided_at:%Y%m%d%H%M%S}.pdf"
            )

            properties: dict[str, Any] = {
                "sow_status": DealSOWStatus.REJECTED.value,
                "sow_rejected_date": decided_at.isoformat(),
                "sow_rejected_reason": reason,
            }
            if file_id:
                properties["rejected_sow"] = file_id
            await self.client.update_deal(deal_id, properties)
        logger.info("SOW rejected", extra={"deal_id": deal_id})

        note_created = True
        try:
            await self.files.create_rejection_note(
                deal_id, rejecter_email, reason, file_id, decided_at
            )
        except Exception:
            note_created = False
            logger.exception("Failed to create rejection note", extra={"deal_id": deal_id})

        return SOWDecision(deal_id, DealSOWStatus.REJECTED, decided_at, note_created, file_id)

    def _decision_lock(self, token: str) -> asyncio.Lock:
        lock = self._decision_locks.get(token)
        if lock is None:
            lock = asyncio.Lock()
            self._decision_locks[token] = lock
        return lock

    async def _authorize(self, token: str, pin: str) -> str:
        verification = await self.client.verify_pin(token, pin)
        if verification.valid and verification.deal_id:
            return verification.deal_id
        if verification.already_decided:
            raise ConflictError(verification.error or "SOW already decided", resource="sow")
        raise AuthenticationError(verification.error or "Invalid PIN")

    async def _upload_snapshot(self, content: bytes | None, file_name: str) -> str | None:
        if not content:
            return None
        try:
            return await self.files.upload_file(
                content, file_name, folder_path=self.settings.SOW_FILES_FOLDER
            )
        except Exception:
            logger.exception("SOW snapshot upload failed", extra={"file_name": file_name})
            return None


_service: SOWApprovalService | None = None


def get_sow_service() -> SOWApprovalService:
    """Get or create the shared SOW approval service."""
    global _service
    if _service is None:
        _service = SOWApprovalService()
    return _service
