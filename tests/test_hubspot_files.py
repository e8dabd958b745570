"""Tests for HubSpot file uploads and timeline notes."""

from datetime import UTC, datetime

import pytest

from sow_portal.core.exceptions import HubSpotAPIError
from sow_portal.integrations.hubspot.files import (
    NOTE_TO_DEAL_ASSOCIATION_TYPE_ID,
    FileAccess,
    HubSpotFiles,
    format_note_timestamp,
)
from sow_portal.integrations.hubspot.gateway import HubSpotGateway

TEST_BASE_URL = "https://api.hubapi.test"


@pytest.fixture
def files(gateway) -> HubSpotFiles:
    return HubSpotFiles(gateway=gateway)


class TestUpload:
    @pytest.mark.asyncio
    async def test_private_upload_patches_access(self, fake_hubspot, files) -> None:
        file_id = await files.upload_file(b"%PDF-1.4", "SOW.pdf", folder_path="/SOW-Approvals")

        assert [(r.method, r.url.path) for r in fake_hubspot.requests] == [
            ("POST", "/files/v3/files"),
            ("PATCH", f"/files/v3/files/{file_id}"),
        ]
        assert fake_hubspot.files[file_id]["access"] == "PRIVATE"
        upload = fake_hubspot.files[file_id]["raw"]
        assert b"/SOW-Approvals" in upload
        assert b'"access": "PRIVATE"' in upload
        assert b"%PDF-1.4" in upload

    @pytest.mark.asyncio
    async def test_public_upload_skips_access_patch(self, fake_hubspot, files) -> None:
        await files.upload_file(b"data", "a.pdf", access=FileAccess.PUBLIC_NOT_INDEXABLE)

        assert [r.method for r in fake_hubspot.requests] == ["POST"]

    @pytest.mark.asyncio
    async def test_upload_failure_raises(self, fake_hubspot) -> None:
        bad_gateway = HubSpotGateway(
            access_token="wrong", base_url=TEST_BASE_URL, transport=fake_hubspot.transport
        )
        with pytest.raises(HubSpotAPIError) as exc_info:
            await HubSpotFiles(gateway=bad_gateway).upload_file(b"data", "a.pdf")
        assert exc_info.value.http_status == 401

    @pytest.mark.asyncio
    async def test_get_file_url(self, files) -> None:
        file_id = await files.upload_file(b"data", "a.pdf")

        assert await files.get_file_url(file_id) == f"https://files.test/{file_id}.pdf"
        assert await files.get_file_url("missing") is None


class TestNotes:
    @pytest.mark.asyncio
    async def test_note_is_associated_with_deal(self, fake_hubspot, files) -> None:
        note_id = await files.create_note_with_attachment("501", "hello", ["f-1", "f-2"])

        note = fake_hubspot.notes[0]
        assert note["id"] == note_id
        assert note["properties"]["hs_note_body"] == "hello"
        assert note["properties"]["hs_attachment_ids"] == "f-1;f-2"
        association = note["associations"][0]
        assert association["to"] == {"id": "501"}
        assert association["types"][0] == {
            "associationCategory": "HUBSPOT_DEFINED",
            "associationTypeId": NOTE_TO_DEAL_ASSOCIATION_TYPE_ID,
        }

    @pytest.mark.asyncio
    async def test_note_without_attachment(self, fake_hubspot, files) -> None:
        await files.create_note_with_attachment("501", "plain")
        assert "hs_attachment_ids" not in fake_hubspot.notes[0]["properties"]

    @pytest.mark.asyncio
    async def test_approval_note_body(self, fake_hubspot, files) -> None:
        await files.create_approval_note(
            "501", "jane@example.com", "file-9", datetime(2024, 12, 22, 20, 4, tzinfo=UTC)
        )

        note = fake_hubspot.notes[0]["properties"]
        body = note["hs_note_body"]
        assert body.startswith("✅ SOW APPROVED")
        assert "Approved by: JANE@EXAMPLE.COM" in body
        assert "Approved at: Dec 22, 2024, 3:04 PM" in body
        assert note["hs_attachment_ids"] == "file-9"

    @pytest.mark.asyncio
    async def test_rejection_note_body(self, fake_hubspot, files) -> None:
        await files.create_rejection_note("501", "jane@example.com", "Panel count is wrong")

        body = fake_hubspot.notes[0]["properties"]["hs_note_body"]
        assert body.startswith("❌ SOW REJECTED")
        assert "Rejected by: JANE@EXAMPLE.COM" in body
        assert "Panel count is wrong" in body
        assert "resubmit for review" in body

    @pytest.mark.asyncio
    async def test_note_failure_raises(self, fake_hubspot) -> None:
        bad_gateway = HubSpotGateway(
            access_token="wrong", base_url=TEST_BASE_URL, transport=fake_hubspot.transport
        )
        with pytest.raises(HubSpotAPIError):
            await HubSpotFiles(gateway=bad_gateway).create_note_with_attachment("1", "x")


@pytest.mark.parametrize(
    ("moment", "expected"),
    [
        (datetime(2024, 12, 22, 20, 4, tzinfo=UTC), "Dec 22, 2024, 3:04 PM"),
        (datetime(2024, 7, 4, 4, 30, tzinfo=UTC), "Jul 4, 2024, 12:30 AM"),
    ],
)
def test_format_note_timestamp(moment: datetime, expected: str) -> None:
    assert format_note_timestamp(moment, "America/New_York") == expected
