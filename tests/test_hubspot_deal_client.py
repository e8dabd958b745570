"""Tests for the HubSpot deal client."""

import json

import pytest

from sow_portal.core.exceptions import HubSpotAPIError
from sow_portal.integrations.hubspot.client import (
    DealRecord,
    HubSpotDealClient,
    deal_to_sow_data,
    parse_number,
)
from sow_portal.models.sow import SOWDisplayStatus


@pytest.fixture
def deal_client(gateway, runner) -> HubSpotDealClient:
    return HubSpotDealClient(gateway=gateway, runner=runner)


@pytest.fixture
def portal(fake_hubspot):
    """Fully provisioned portal with one deal awaiting review."""
    fake_hubspot.provision_all()
    fake_hubspot.add_deal(
        "501",
        sow_token="12345-20241222",
        sow_pin="4821",
        sow_status="needs_review",
        sow_needs_review_date="2024-12-22T10:00:00Z",
        dealname="Jane Homeowner",
        system_size="7.47",
        battery_type="",
        adders_total="1250.50",
        metal_roof="800",
        steep_roof="not-a-number",
        gross_ppw="3.10",
    )
    return fake_hubspot


class TestLookups:
    @pytest.mark.asyncio
    async def test_find_deal_by_token(self, portal, deal_client) -> None:
        deal = await deal_client.find_deal_by_token("12345-20241222")

        assert deal is not None
        assert deal.id == "501"
        assert deal.properties["sow_pin"] == "4821"

    @pytest.mark.asyncio
    async def test_find_deal_by_unknown_token(self, portal, deal_client) -> None:
        assert await deal_client.find_deal_by_token("nope") is None

    @pytest.mark.asyncio
    async def test_search_uses_eq_filter_limit_one(self, portal, deal_client) -> None:
        await deal_client.find_deal_by_token("12345-20241222")

        search = next(r for r in portal.requests if r.url.path.endswith("/search"))
        body = json.loads(search.content)
        assert body["limit"] == 1
        assert body["filterGroups"] == [
            {"filters": [{"propertyName": "sow_token", "operator": "EQ", "value": "12345-20241222"}]}
        ]

    @pytest.mark.asyncio
    async def test_get_deal_missing_record_raises(self, portal, deal_client) -> None:
        with pytest.raises(HubSpotAPIError) as exc_info:
            await deal_client.get_deal("999")
        assert exc_info.value.http_status == 404

    @pytest.mark.asyncio
    async def test_update_deal(self, portal, deal_client) -> None:
        deal = await deal_client.update_deal("501", {"sow_status": "approved"})

        assert deal.properties["sow_status"] == "approved"
        assert portal.deals["501"]["sow_status"] == "approved"

    @pytest.mark.asyncio
    async def test_update_heals_deleted_property(self, portal, deal_client) -> None:
        portal.delete_property("sow_accepted_date")

        await deal_client.update_deal(
            "501", {"sow_status": "approved", "sow_accepted_date": "2024-12-23T00:00:00Z"}
        )

        assert "sow_accepted_date" in portal.properties
        assert portal.deals["501"]["sow_accepted_date"] == "2024-12-23T00:00:00Z"


class TestVerifyPin:
    @pytest.mark.asyncio
    async def test_valid_pin(self, portal, deal_client) -> None:
        result = await deal_client.verify_pin("12345-20241222", "4821")

        assert result.valid is True
        assert result.deal_id == "501"
        assert result.status == "needs_review"

    @pytest.mark.asyncio
    async def test_unknown_token(self, portal, deal_client) -> None:
        result = await deal_client.verify_pin("missing", "4821")
        assert result.valid is False
        assert result.error == "Invalid token"

    @pytest.mark.asyncio
    async def test_wrong_pin(self, portal, deal_client) -> None:
        result = await deal_client.verify_pin("12345-20241222", "0000")
        assert result.valid is False
        assert result.error == "Invalid PIN"
        assert result.deal_id is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["approved", "rejected"])
    async def test_decided_sow_rejects_even_correct_pin(
        self, portal, deal_client, status: str
    ) -> None:
        portal.deals["501"]["sow_status"] = status

        result = await deal_client.verify_pin("12345-20241222", "4821")

        assert result.valid is False
        assert result.error == f"SOW already {status}"
        assert result.deal_id == "501"
        assert result.already_decided is True

    @pytest.mark.asyncio
    async def test_not_ready_sow_does_not_authenticate(self, portal, deal_client) -> None:
        portal.deals["501"]["sow_status"] = "not_ready"

        result = await deal_client.verify_pin("12345-20241222", "4821")

        assert result.valid is False
        assert result.error == "SOW already not_ready"
        assert result.already_decided is False

    @pytest.mark.asyncio
    async def test_deal_without_stored_pin(self, portal, deal_client) -> None:
        portal.deals["501"]["sow_pin"] = None
        result = await deal_client.verify_pin("12345-20241222", "4821")
        assert result.error == "Invalid PIN"


class TestSOWMapping:
    @pytest.mark.asyncio
    async def test_get_sow_data(self, portal, deal_client) -> None:
        sow = await deal_client.get_sow_data("12345-20241222")

        assert sow.deal_id == "501"
        assert sow.status is SOWDisplayStatus.PENDING
        assert sow.generated_at == "2024-12-22T10:00:00Z"
        assert sow.customer.name == "Jane Homeowner"
        assert sow.system.size == "7.47"
        assert sow.system.battery_type is None
        assert sow.adders.metal_roof == 800.0
        assert sow.adders.steep_roof is None
        assert sow.adders.adders_total == 1250.5
        assert sow.commission.gross_ppw == "3.10"

    @pytest.mark.asyncio
    async def test_get_sow_data_unknown_token(self, portal, deal_client) -> None:
        assert await deal_client.get_sow_data("nope") is None

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("approved", SOWDisplayStatus.APPROVED),
            ("rejected", SOWDisplayStatus.REJECTED),
            ("needs_review", SOWDisplayStatus.PENDING),
            ("not_ready", SOWDisplayStatus.PENDING),
            (None, SOWDisplayStatus.PENDING),
        ],
    )
    def test_status_mapping(self, raw, expected) -> None:
        sow = deal_to_sow_data(DealRecord(id="1", properties={"sow_status": raw}))
        assert sow.status is expected

    def test_adders_total_defaults_to_zero(self) -> None:
        sow = deal_to_sow_data(DealRecord(id="1"))
        assert sow.adders.adders_total == 0.0
        assert sow.rejection_reason is None

    def test_parse_number(self) -> None:
        assert parse_number("12.5") == 12.5
        assert parse_number("") is None
        assert parse_number(None) is None
        assert parse_number("abc") is None
