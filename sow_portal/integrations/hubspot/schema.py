"""Declarative HubSpot deal schema required by the SOW approval flow.

Pure data: the property group and custom properties the portal reads and
writes. The provisioner creates whatever is missing; nothing here is ever
used to modify or delete an existing property.

@see https://developers.hubspot.com/docs/api/crm/properties
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FieldValueType(str, Enum):
    """Stored value type of a property."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    DATE_TIME = "date-time"
    ENUMERATION = "enumeration"
    BOOLEAN = "boolean"


class InputShape(str, Enum):
    """Editing widget HubSpot shows for a property."""

    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    DATE = "date"
    FILE = "file"
    NUMBER = "number"
    CHECKBOX = "checkbox"


# HubSpot's wire names for the enums above
_HUBSPOT_TYPES: dict[FieldValueType, str] = {
    FieldValueType.TEXT: "string",
    FieldValueType.NUMBER: "number",
    FieldValueType.DATE: "date",
    FieldValueType.DATE_TIME: "datetime",
    FieldValueType.ENUMERATION: "enumeration",
    FieldValueType.BOOLEAN: "bool",
}

_HUBSPOT_FIELD_TYPES: dict[InputShape, str] = {
    InputShape.TEXT: "text",
    InputShape.TEXTAREA: "textarea",
    InputShape.SELECT: "select",
    InputShape.DATE: "date",
    InputShape.FILE: "file",
    InputShape.NUMBER: "number",
    InputShape.CHECKBOX: "booleancheckbox",
}


@dataclass(frozen=True)
class EnumerationOption:
    """One choice of an enumeration property."""

    label: str
    value: str
    display_order: int

    def to_payload(self) -> dict[str, Any]:
        return {"label": self.label, "value": self.value, "displayOrder": self.display_order}


@dataclass(frozen=True)
class FieldGroup:
    """Property group used to organize fields in HubSpot's settings UI."""

    key: str
    label: str
    display_order: int

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.key, "label": self.label, "displayOrder": self.display_order}


@dataclass(frozen=True)
class FieldDefinition:
    """A custom deal property that must exist remotely."""

    name: str
    label: str
    value_type: FieldValueType
    input_shape: InputShape
    group_key: str
    description: str | None = None
    enumeration_options: tuple[EnumerationOption, ...] = ()
    uniqueness_required: bool = False

    def to_payload(self) -> dict[str, Any]:
        """Render the body for ``POST /crm/v3/properties/deals``."""
        payload: dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "type": _HUBSPOT_TYPES[self.value_type],
            "fieldType": _HUBSPOT_FIELD_TYPES[self.input_shape],
            "groupName": self.group_key,
        }
        if self.description:
            payload["description"] = self.description
        if self.enumeration_options:
            payload["options"] = [option.to_payload() for option in self.enumeration_options]
        if self.uniqueness_required:
            payload["hasUniqueValue"] = True
        return payload


SOW_FIELD_GROUP = FieldGroup(key="sow_approval", label="SOW Approval", display_order=1)

# Lifecycle values of sow_status: not_ready -> needs_review -> approved | rejected
SOW_STATUS_OPTIONS: tuple[EnumerationOption, ...] = (
    EnumerationOption(label="Not Ready", value="not_ready", display_order=0),
    EnumerationOption(label="Needs Review", value="needs_review", display_order=1),
    EnumerationOption(label="Approved", value="approved", display_order=2),
    EnumerationOption(label="Rejected", value="rejected", display_order=3),
)

# Provisioned in this order.
REQUIRED_FIELDS: tuple[FieldDefinition, ...] = (
    FieldDefinition(
        name="sow_token",
        label="SOW Token",
        value_type=FieldValueType.TEXT,
        input_shape=InputShape.TEXT,
        group_key=SOW_FIELD_GROUP.key,
        description="Unique token used in SOW approval URL",
        uniqueness_required=True,
    ),
    FieldDefinition(
        name="sow_pin",
        label="SOW PIN",
        value_type=FieldValueType.TEXT,
        input_shape=InputShape.TEXT,
        group_key=SOW_FIELD_GROUP.key,
        description="4-digit PIN for SOW authentication",
    ),
    FieldDefinition(
        name="sow_status",
        label="SOW Status",
        value_type=FieldValueType.ENUMERATION,
        input_shape=InputShape.SELECT,
        group_key=SOW_FIELD_GROUP.key,
        description="Current status of the SOW approval process",
        enumeration_options=SOW_STATUS_OPTIONS,
    ),
    FieldDefinition(
        name="sow_needs_review_date",
        label="SOW Needs Review Date",
        value_type=FieldValueType.DATE_TIME,
        input_shape=InputShape.DATE,
        group_key=SOW_FIELD_GROUP.key,
        description="Date when SOW was set to needs review status",
    ),
    FieldDefinition(
        name="sow_accepted_date",
        label="SOW Accepted Date",
        value_type=FieldValueType.DATE_TIME,
        input_shape=InputShape.DATE,
        group_key=SOW_FIELD_GROUP.key,
        description="Date when SOW was approved",
    ),
    FieldDefinition(
        name="sow_rejected_date",
        label="SOW Rejected Date",
        value_type=FieldValueType.DATE_TIME,
        input_shape=InputShape.DATE,
        group_key=SOW_FIELD_GROUP.key,
        description="Date when SOW was rejected",
    ),
    FieldDefinition(
        name="sow_rejected_reason",
        label="SOW Rejected Reason",
        value_type=FieldValueType.TEXT,
        input_shape=InputShape.TEXTAREA,
        group_key=SOW_FIELD_GROUP.key,
        description="Reason provided for rejecting the SOW",
    ),
    FieldDefinition(
        name="accepted_sow",
        label="Accepted SOW",
        value_type=FieldValueType.TEXT,
        input_shape=InputShape.FILE,
        group_key=SOW_FIELD_GROUP.key,
        description="PDF snapshot of accepted SOW",
    ),
    FieldDefinition(
        name="rejected_sow",
        label="Rejected SOW",
        value_type=FieldValueType.TEXT,
        input_shape=InputShape.FILE,
        group_key=SOW_FIELD_GROUP.key,
        description="PDF snapshot of rejected SOW",
    ),
)

# Property used to look a deal up from the approval URL
UNIQUE_TOKEN_FIELD = "sow_token"

ADDER_PROPERTIES: tuple[str, ...] = (
    "additional_wire_run",
    "battery_adder",
    "battery_inside_garage",
    "battery_on_mobile_home",
    "concrete_coated",
    "detach_and_reset",
    "ground_mount",
    "high_roof",
    "inverter_adder",
    "level2_charger_install",
    "lightreach_adder",
    "metal_roof",
    "meter_main",
    "mpu",
    "misc_electrical",
    "module_adder",
    "mounting_adder",
    "new_roof",
    "project_hats",
    "span_smart_panel",
    "solar_insure",
    "solar_insure_with_battery",
    "steep_roof",
    "structural_reinforcement",
    "tesla_ev_charger",
    "tier2_insurance",
    "tile_roof_metal_shingle",
    "travel_adder",
    "tree_trimming",
    "trench_over_100ft",
    "wallbox_charger",
    "subpanel_100a",
    "adders_total",
)

# Every deal property the portal reads when displaying a SOW.
SOW_PROPERTIES: tuple[str, ...] = (
    # Core SOW
    "sow_token",
    "sow_pin",
    "sow_status",
    "sow_needs_review_date",
    "sow_accepted_date",
    "sow_rejected_date",
    "sow_rejected_reason",
    # Customer
    "dealname",
    "customer_phone",
    "customer_email",
    "customer_address",
    # Sales
    "sales_rep_name",
    "sales_rep_email",
    "setter",
    "lead_source",
    # System
    "system_size",
    "panel_type",
    "panel_count",
    "inverter_type",
    "inverter_count",
    "battery_type",
    "battery_count",
    # Financing
    "lender",
    "term_length",
    "finance_type",
    "interest_rate",
    "total_contract_amount",
    "dealer_fee_amount",
    *ADDER_PROPERTIES,
    # Commission
    "gross_ppw",
    "total_adders_ppw",
    "net_ppw",
    "total_commission",
    # Files
    "proposal_image",
    "plan_file",
)
