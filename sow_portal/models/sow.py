"""SOW Pydantic models.

Read models for the approval page (``SOWData`` and its sections) plus the
request bodies of the verify/approve/reject endpoints.
"""

from enum import Enum

from pydantic import Base64Bytes, BaseModel, EmailStr, Field, field_validator

PIN_LENGTH = 4
MAX_REJECTION_REASON_LENGTH = 2000


class DealSOWStatus(str, Enum):
    """Values of the ``sow_status`` deal property.

    State transitions:
    - not_ready -> needs_review (set by the sales workflow)
    - needs_review -> approved | rejected (set by this portal)
    """

    NOT_READY = "not_ready"
    NEEDS_REVIEW = "needs_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class SOWDisplayStatus(str, Enum):
    """Status shown to the homeowner."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CustomerInfo(BaseModel):
    name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""


class SalesRepInfo(BaseModel):
    name: str = ""
    email: str = ""


class SystemDetails(BaseModel):
    """Solar system as sold (strings as stored in HubSpot, e.g. size "7.47" kW)."""

    size: str = ""
    panel_type: str = ""
    panel_count: str = ""
    inverter_type: str = ""
    inverter_count: str = ""
    battery_type: str | None = None
    battery_count: str | None = None


class FinancingDetails(BaseModel):
    lender: str = ""
    term_length: str = ""
    finance_type: str = ""
    interest_rate: str = ""
    total_contract_amount: str = ""
    dealer_fee_amount: str | None = None


class AdderDetails(BaseModel):
    """Price adders; None means the adder does not apply to this project."""

    additional_wire_run: float | None = None
    battery_adder: float | None = None
    battery_inside_garage: float | None = None
    battery_on_mobile_home: float | None = None
    concrete_coated: float | None = None
    detach_and_reset: float | None = None
    ground_mount: float | None = None
    high_roof: float | None = None
    inverter_adder: float | None = None
    level2_charger_install: float | None = None
    lightreach_adder: float | None = None
    metal_roof: float | None = None
    meter_main: float | None = None
    mpu: float | None = None
    misc_electrical: float | None = None
    module_adder: float | None = None
    mounting_adder: float | None = None
    new_roof: float | None = None
    project_hats: float | None = None
    span_smart_panel: float | None = None
    solar_insure: float | None = None
    solar_insure_with_battery: float | None = None
    steep_roof: float | None = None
    structural_reinforcement: float | None = None
    tesla_ev_charger: float | None = None
    tier2_insurance: float | None = None
    tile_roof_metal_shingle: float | None = None
    travel_adder: float | None = None
    tree_trimming: float | None = None
    trench_over_100ft: float | None = None
    wallbox_charger: float | None = None
    subpanel_100a: float | None = None
    adders_total: float = 0.0


class CommissionBreakdown(BaseModel):
    gross_ppw: str = ""
    total_adders_ppw: str = ""
    net_ppw: str = ""
    total_commission: str = ""


class SOWData(BaseModel):
    """Everything the approval page renders for one deal."""

    deal_id: str
    token: str
    status: SOWDisplayStatus
    generated_at: str
    approved_at: str | None = None
    approved_by: str | None = None
    rejected_at: str | None = None
    rejection_reason: str | None = None

    customer: CustomerInfo
    sales_rep: SalesRepInfo
    setter: str = ""
    lead_source: str = ""

    system: SystemDetails
    financing: FinancingDetails
    adders: AdderDetails
    commission: CommissionBreakdown

    proposal_image_url: str = ""
    plan_file_url: str = ""


class VerifyPinRequest(BaseModel):
    """Request model for PIN verification."""

    token: str = Field(..., min_length=1, max_length=200, description="SOW token from the URL")
    pin: str = Field(
        ...,
        min_length=PIN_LENGTH,
        max_length=PIN_LENGTH,
        pattern=r"^\d+$",
        description="4-digit PIN sent to the homeowner",
    )


class ApproveSOWRequest(VerifyPinRequest):
    """Request model for approving a SOW."""

    approver_email: EmailStr = Field(..., description="Email of the approving homeowner")
    snapshot_pdf: Base64Bytes | None = Field(
        None, description="Base64 PDF of the SOW as shown, attached to the deal"
    )


class RejectSOWRequest(VerifyPinRequest):
    """Request model for rejecting a SOW."""

    reason: str = Field(
        ...,
        min_length=1,
        max_length=MAX_REJECTION_REASON_LENGTH,
        description="Why the SOW is being rejected",
    )
    rejecter_email: EmailStr = Field(..., description="Email of the rejecting homeowner")
    snapshot_pdf: Base64Bytes | None = Field(
        None, description="Base64 PDF of the SOW as shown, attached to the deal"
    )

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Rejection reason cannot be empty")
        return v
