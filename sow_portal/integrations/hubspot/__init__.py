"""HubSpot CRM integration: schema provisioning, self-healing and deal access."""

from sow_portal.integrations.hubspot.client import (
    DealRecord,
    HubSpotDealClient,
    PinVerification,
    get_hubspot_client,
)
from sow_portal.integrations.hubspot.errors import is_schema_field_error
from sow_portal.integrations.hubspot.files import FileAccess, HubSpotFiles, get_hubspot_files
from sow_portal.integrations.hubspot.gateway import HubSpotGateway, HubSpotResult, get_gateway
from sow_portal.integrations.hubspot.provisioning import (
    ProvisioningReport,
    ProvisioningState,
    SchemaProvisioner,
    get_provisioner,
)
from sow_portal.integrations.hubspot.schema import REQUIRED_FIELDS, SOW_FIELD_GROUP, SOW_PROPERTIES
from sow_portal.integrations.hubspot.self_healing import (
    SelfHealingRunner,
    get_self_healing_runner,
    with_self_healing,
)

__all__ = [
    "DealRecord",
    "HubSpotDealClient",
    "PinVerification",
    "get_hubspot_client",
    "is_schema_field_error",
    "FileAccess",
    "HubSpotFiles",
    "get_hubspot_files",
    "HubSpotGateway",
    "HubSpotResult",
    "get_gateway",
    "ProvisioningReport",
    "ProvisioningState",
    "SchemaProvisioner",
    "get_provisioner",
    "REQUIRED_FIELDS",
    "SOW_FIELD_GROUP",
    "SOW_PROPERTIES",
    "SelfHealingRunner",
    "get_self_healing_runner",
    "with_self_healing",
]
