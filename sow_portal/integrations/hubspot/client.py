"""HubSpot deal client for the SOW approval flow.

Every record call goes through ``SelfHealingRunner.run``, so a deal property
deleted in HubSpot is recreated and the call retried once.

Usage::

    client = get_hubspot_client()
    deal = await client.find_deal_by_token("12345-20241222")
"""

import hmac
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sow_portal.integrations.hubspot.gateway import HubSpotGateway, get_gateway
from sow_portal.integrations.hubspot.schema import (
    ADDER_PROPERTIES,
    SOW_PROPERTIES,
    UNIQUE_TOKEN_FIELD,
)
from sow_portal.integrations.hubspot.self_healing import (
    SelfHealingRunner,
    get_self_healing_runner,
)
from sow_portal.models.sow import (
    AdderDetails,
    CommissionBreakdown,
    CustomerInfo,
    DealSOWStatus,
    FinancingDetails,
    SalesRepInfo,
    SOWData,
    SOWDisplayStatus,
    SystemDetails,
)

logger = logging.getLogger(__name__)


@dataclass
class DealRecord:
    """A HubSpot deal as returned by the CRM objects API."""

    id: str
    properties: dict[str, str | None] = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DealRecord":
        return cls(
            id=str(data.get("id", "")),
            properties=dict(data.get("properties") or {}),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def get(self, name: str) -> str:
        """Property value with None and missing both read as ``""``."""
        return self.properties.get(name) or ""


@dataclass
class PinVerification:
    """Outcome of checking a homeowner's PIN."""

    valid: bool
    deal_id: str | None = None
    status: str | None = None
    error: str | None = None

    @property
    def already_decided(self) -> bool:
        return self.status in (DealSOWStatus.APPROVED.value, DealSOWStatus.REJECTED.value)


def parse_number(value: str | None) -> float | None:
    """Parse a HubSpot number property, returning None if empty or invalid."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _display_status(raw: str | None) -> SOWDisplayStatus:
    if raw == DealSOWStatus.APPROVED.value:
        return SOWDisplayStatus.APPROVED
    if raw == DealSOWStatus.REJECTED.value:
        return SOWDisplayStatus.REJECTED
    return SOWDisplayStatus.PENDING


def deal_to_sow_data(deal: DealRecord) -> SOWData:
    """Map a deal's properties onto the approval page model."""
    p = deal.get
    adders = {name: parse_number(deal.properties.get(name)) for name in ADDER_PROPERTIES}
    adders["adders_total"] = adders.get("adders_total") or 0.0

    return SOWData(
        deal_id=deal.id,
        token=p("sow_token"),
        status=_display_status(deal.properties.get("sow_status")),
        generated_at=p("sow_needs_review_date") or datetime.now(UTC).isoformat(),
        approved_at=p("sow_accepted_date") or None,
        # Approver is recorded on the timeline note, not a deal property
        approved_by=None,
        rejected_at=p("sow_rejected_date") or None,
        rejection_reason=p("sow_rejected_reason") or None,
        customer=CustomerInfo(
            name=p("dealname"),
            phone=p("customer_phone"),
            email=p("customer_email"),
            address=p("customer_address"),
        ),
        sales_rep=SalesRepInfo(name=p("sales_rep_name"), email=p("sales_rep_email")),
        setter=p("setter"),
        lead_source=p("lead_source"),
        system=SystemDetails(
            size=p("system_size"),
            panel_type=p("panel_type"),
            panel_count=p("panel_count"),
            inverter_type=p("inverter_type"),
            inverter_count=p("inverter_count"),
            battery_type=p("battery_type") or None,
            battery_count=p("battery_count") or None,
        ),
        financing=FinancingDetails(
            lender=p("lender"),
            term_length=p("term_length"),
            finance_type=p("finance_type"),
            interest_rate=p("interest_rate"),
            total_contract_amount=p("total_contract_amount"),
            dealer_fee_amount=p("dealer_fee_amount") or None,
        ),
        adders=AdderDetails(**adders),
        commission=CommissionBreakdown(
            gross_ppw=p("gross_ppw"),
            total_adders_ppw=p("total_adders_ppw"),
            net_ppw=p("net_ppw"),
            total_commission=p("total_commission"),
        ),
        proposal_image_url=p("proposal_image"),
        plan_file_url=p("plan_file"),
    )


class HubSpotDealClient:
    """Deal reads and writes for the approval portal."""

    def __init__(
        self,
        gateway: HubSpotGateway | None = None,
        runner: SelfHealingRunner | None = None,
    ) -> None:
        self.gateway = gateway or get_gateway()
        self.runner = runner or get_self_healing_runner()

    async def search_deals(
        self,
        filter_groups: list[dict[str, Any]],
        properties: list[str] | tuple[str, ...] = SOW_PROPERTIES,
        limit: int = 10,
    ) -> list[DealRecord]:
        """Search deals with HubSpot's search API.

        Args:
            filter_groups: HubSpot ``filterGroups`` payload.
            properties: Properties to return on each deal.
            limit: Maximum number of results.

        Returns:
            Matching deals, possibly empty.
        """

        async def _search() -> Any:
            result = await self.gateway.search_objects(filter_groups, properties, limit)
            return result.json_or_raise()

        data = await self.runner.run(_search, "searchDeals")
        return [DealRecord.from_api(item) for item in (data or {}).get("results", [])]

    async def find_deal_by_token(self, token: str) -> DealRecord | None:
        """Find the deal whose ``sow_token`` equals ``token``."""
        deals = await self.search_deals(
            [{"filters": [{"propertyName": UNIQUE_TOKEN_FIELD, "operator": "EQ", "value": token}]}],
            SOW_PROPERTIES,
            limit=1,
        )
        return deals[0] if deals else None

    async def get_deal(
        self,
        deal_id: str,
        properties: list[str] | tuple[str, ...] = SOW_PROPERTIES,
    ) -> DealRecord:
        async def _get() -> Any:
            result = await self.gateway.get_object(deal_id, properties)
            return result.json_or_raise()

        data = await self.runner.run(_get, f"getDeal({deal_id})")
        return DealRecord.from_api(data or {})

    async def update_deal(self, deal_id: str, properties: dict[str, Any]) -> DealRecord:
        """Partially update deal properties."""

        async def _update() -> Any:
            result = await self.gateway.update_object(deal_id, properties)
            return result.json_or_raise()

        data = await self.runner.run(_update, f"updateDeal({deal_id})")
        return DealRecord.from_api(data or {"id": deal_id})

    async def verify_pin(self, token: str, pin: str) -> PinVerification:
        """Check a PIN against the deal found by token.

        Only deals in ``needs_review`` authenticate; an approved or rejected
        SOW reports ``"SOW already <status>"`` even when the PIN is right.
        """
        deal = await self.find_deal_by_token(token)
        if deal is None:
            return PinVerification(valid=False, error="Invalid token")

        status = deal.properties.get("sow_status")
        if status != DealSOWStatus.NEEDS_REVIEW.value:
            return PinVerification(
                valid=False,
                deal_id=deal.id,
                status=status or None,
                error=f"SOW already {status or 'unset'}",
            )

        stored_pin = deal.get("sow_pin")
        if not stored_pin or not hmac.compare_digest(pin.encode(), stored_pin.encode()):
            logger.info("SOW PIN mismatch", extra={"deal_id": deal.id})
            return PinVerification(valid=False, error="Invalid PIN")

        return PinVerification(valid=True, deal_id=deal.id, status=status)

    async def get_sow_data(self, token: str) -> SOWData | None:
        """SOW view model for ``token``, or None if no deal matches."""
        deal = await self.find_deal_by_token(token)
        if deal is None:
            return None
        return deal_to_sow_data(deal)


_client: HubSpotDealClient | None = None


def get_hubspot_client() -> HubSpotDealClient:
    """Get or create the shared deal client."""
    global _client
    if _client is None:
        _client = HubSpotDealClient()
    return _client
