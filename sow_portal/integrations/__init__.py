"""Integrations with external services.

This package contains clients for integrating with third-party APIs and services.
"""

from sow_portal.integrations.hubspot import (
    HubSpotDealClient,
    HubSpotFiles,
    HubSpotGateway,
    get_hubspot_client,
    get_hubspot_files,
)

__all__ = [
    "HubSpotDealClient",
    "HubSpotFiles",
    "HubSpotGateway",
    "get_hubspot_client",
    "get_hubspot_files",
]
