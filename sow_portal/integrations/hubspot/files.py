"""HubSpot Files and Notes API client.

Uploads SOW snapshot PDFs and records approval/rejection notes on the deal
timeline. These calls write new objects only and do not touch deal
properties, so they are not wrapped in the self-healing runner.

Requires a private app token with the ``files`` scope.
"""

import json
import logging
from datetime import UTC, datetime
from enum import Enum
from zoneinfo import ZoneInfo

from sow_portal.core.config import Settings, get_settings
from sow_portal.integrations.hubspot.gateway import HubSpotGateway, get_gateway

logger = logging.getLogger(__name__)

# HubSpot-defined association type: note -> deal
NOTE_TO_DEAL_ASSOCIATION_TYPE_ID = 214

RULE = "━" * 30


class FileAccess(str, Enum):
    """File access levels in HubSpot's file manager."""

    PUBLIC_INDEXABLE = "PUBLIC_INDEXABLE"
    PUBLIC_NOT_INDEXABLE = "PUBLIC_NOT_INDEXABLE"
    PRIVATE = "PRIVATE"


def format_note_timestamp(moment: datetime, timezone: str) -> str:
    """Render ``moment`` like ``Dec 22, 2024, 3:04 PM`` in ``timezone``."""
    local = moment.astimezone(ZoneInfo(timezone))
    hour = local.hour % 12 or 12
    return f"{local:%b} {local.day}, {local.year}, {hour}:{local:%M %p}"


class HubSpotFiles:
    """File uploads and deal notes."""

    def __init__(
        self,
        gateway: HubSpotGateway | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.gateway = gateway or get_gateway()
        self.settings = settings or get_settings()

    async def upload_file(
        self,
        content: bytes,
        file_name: str,
        folder_path: str | None = None,
        access: FileAccess = FileAccess.PRIVATE,
        content_type: str = "application/pdf",
    ) -> str:
        """Upload a file to HubSpot's file manager.

        Args:
            content: Raw file bytes.
            file_name: Name to give the file in HubSpot.
            folder_path: Folder path, e.g. ``/SOW-Approvals``.
            access: Access level; defaults to PRIVATE.
            content_type: MIME type of the upload.

        Returns:
            The HubSpot file ID.

        Raises:
            HubSpotAPIError: If the upload or the access update fails.
        """
        form: dict[str, str] = {"options": json.dumps({"access": access.value})}
        if folder_path:
            form["folderPath"] = folder_path

        result = await self.gateway.request(
            "POST",
            "/files/v3/files",
            files={"file": (file_name, content, content_type)},
            data=form,
        )
        data = result.json_or_raise()
        file_id = str(data["id"])

        # HubSpot does not always apply the access level on upload
        if access is FileAccess.PRIVATE:
            await self.set_file_access(file_id, FileAccess.PRIVATE)

        logger.info("Uploaded file to HubSpot", extra={"file_id": file_id, "file_name": file_name})
        return file_id

    async def set_file_access(self, file_id: str, access: FileAccess) -> None:
        result = await self.gateway.request(
            "PATCH", f"/files/v3/files/{file_id}", json_body={"access": access.value}
        )
        result.raise_for_error()

    async def get_file_url(self, file_id: str) -> str | None:
        """URL of a stored file, or None if HubSpot can't provide one."""
        result = await self.gateway.request(
            "GET", f"/files/v3/files/{file_id}", params={"properties": "url"}
        )
        if not result.ok or not isinstance(result.data, dict):
            return None
        return result.data.get("url") or None

    async def create_note_with_attachment(
        self,
        deal_id: str,
        body: str,
        file_ids: str | list[str] | None = None,
    ) -> str:
        """Create a note on the deal timeline, optionally with attachments.

        Returns:
            The created note ID.
        """
        properties = {
            "hs_timestamp": datetime.now(UTC).isoformat(),
            "hs_note_body": body,
        }
        if file_ids:
            ids = [file_ids] if isinstance(file_ids, str) else list(file_ids)
            properties["hs_attachment_ids"] = ";".join(ids)

        result = await self.gateway.create_object(
            "notes",
            properties,
            associations=[
                {
                    "to": {"id": deal_id},
                    "types": [
                        {
                            "associationCategory": "HUBSPOT_DEFINED",
                            "associationTypeId": NOTE_TO_DEAL_ASSOCIATION_TYPE_ID,
                        }
                    ],
                }
            ],
        )
        data = result.json_or_raise()
        return str(data["id"])

    async def create_approval_note(
        self,
        deal_id: str,
        approver_email: str,
        file_id: str | None = None,
        approved_at: datetime | None = None,
    ) -> str:
        timestamp = format_note_timestamp(
            approved_at or datetime.now(UTC), self.settings.NOTE_TIMEZONE
        )
        lines = [
            "✅ SOW APPROVED",
            "",
            RULE,
            "APPROVAL DETAILS",
            RULE,
            "",
            f"Approved by: {approver_email.upper()}",
            f"Approved at: {timestamp}",
        ]
        if file_id:
            lines += ["", "The signed SOW document is attached to this note."]
        return await self.create_note_with_attachment(deal_id, "\n".join(lines), file_id)

    async def create_rejection_note(
        self,
        deal_id: str,
        rejecter_email: str,
        reason: str,
        file_id: str | None = None,
        rejected_at: datetime | None = None,
    ) -> str:
        timestamp = format_note_timestamp(
            rejected_at or datetime.now(UTC), self.settings.NOTE_TIMEZONE
        )
        lines = [
            "❌ SOW REJECTED",
            "",
            RULE,
            "REJECTION DETAILS",
            RULE,
            "",
            f"Rejected by: {rejecter_email.upper()}",
            f"Rejected at: {timestamp}",
            "",
            RULE,
            "REJECTION REASON",
            RULE,
            "",
            reason,
            "",
            RULE,
        ]
        if file_id:
            lines += ["", "The SOW document at time of rejection is attached to this note."]
        lines.append("Please address the concerns and resubmit for review.")
        return await self.create_note_with_attachment(deal_id, "\n".join(lines), file_id)


_files: HubSpotFiles | None = None


def get_hubspot_files() -> HubSpotFiles:
    """Get or create the shared files/notes client."""
    global _files
    if _files is None:
        _files = HubSpotFiles()
    return _files
