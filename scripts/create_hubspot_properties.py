#!/usr/bin/env python
"""Create the SOW Approval deal properties in HubSpot.

Creates the "SOW Approval" property group and every property the portal
needs, then prints what was created, what already existed and any errors.
Safe to run repeatedly: existing properties are reported and left alone.

Requires a private app token with the ``crm.schemas.deals.write`` scope.

Usage:
    HUBSPOT_ACCESS_TOKEN=... python scripts/create_hubspot_properties.py
    python scripts/create_hubspot_properties.py --json   # machine-readable report
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from sow_portal.core.config import get_settings  # noqa: E402
from sow_portal.integrations.hubspot.gateway import HubSpotGateway  # noqa: E402
from sow_portal.integrations.hubspot.provisioning import (  # noqa: E402
    ProvisioningReport,
    SchemaProvisioner,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def print_report(report: ProvisioningReport) -> None:
    print("\n" + "=" * 50)
    print("HubSpot property setup")
    print("=" * 50)
    print(f"Property group: {'created' if report.group_was_created else 'already exists'}")
    for name in report.fields_created:
        print(f"  + {name} (created)")
    for name in report.fields_already_present:
        print(f"  = {name} (already exists)")
    for error in report.errors:
        print(f"  ! {error}")
    print("-" * 50)
    print(
        f"Created: {len(report.fields_created)}  "
        f"Existing: {len(report.fields_already_present)}  "
        f"Errors: {len(report.errors)}"
    )


async def create_properties(as_json: bool = False) -> int:
    """Run one provisioning pass.

    Returns:
        Process exit code (0 on success).
    """
    settings = get_settings()
    if not settings.hubspot_configured:
        logger.error("HUBSPOT_ACCESS_TOKEN is required. Set it in your .env file or environment.")
        return 1

    gateway = HubSpotGateway(settings=settings)
    provisioner = SchemaProvisioner(gateway)
    try:
        await provisioner.ensure_provisioned()
    finally:
        await gateway.aclose()

    report = provisioner.get_last_report()
    if report is None:
        logger.error("Provisioning finished without a report")
        return 1

    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)
    return 0 if report.succeeded else 1


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Create the SOW Approval deal properties in HubSpot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the provisioning report as JSON",
    )
    args = parser.parse_args()
    return asyncio.run(create_properties(as_json=args.json))


if __name__ == "__main__":
    sys.exit(main())
