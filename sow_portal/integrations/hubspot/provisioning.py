"""HubSpot self-healing setup: make sure every required deal property exists.

Runs automatically before the first CRM operation, so a fresh HubSpot
portal needs no manual configuration.

Safety guarantees:
- NEVER modifies existing properties (409 Conflict = already present)
- NEVER deletes anything
- Only creates missing properties and the property group
- One bad property never blocks the others; failures land in the report

State lives on an injectable ``ProvisioningState``. The process-wide
instance is owned by ``get_provisioner()``; tests build their own.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sow_portal.integrations.hubspot.gateway import HubSpotGateway, get_gateway
from sow_portal.integrations.hubspot.schema import (
    REQUIRED_FIELDS,
    SOW_FIELD_GROUP,
    FieldDefinition,
    FieldGroup,
)

logger = logging.getLogger(__name__)


class FieldOutcomeKind(str, Enum):
    """Result of trying to create one property."""

    CREATED = "created"
    ALREADY_PRESENT = "already_present"
    FAILED = "failed"


@dataclass(frozen=True)
class FieldOutcome:
    """Per-field result, folded into a ``ProvisioningReport``."""

    name: str
    kind: FieldOutcomeKind
    error: str | None = None


@dataclass
class ProvisioningReport:
    """Outcome of one provisioning run."""

    succeeded: bool
    group_was_created: bool
    fields_created: list[str] = field(default_factory=list)
    fields_already_present: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    completed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_outcomes(
        cls, group_was_created: bool, outcomes: Iterable[FieldOutcome]
    ) -> "ProvisioningReport":
        """Fold per-field outcomes (in declaration order) into a report."""
        report = cls(succeeded=True, group_was_created=group_was_created)
        for outcome in outcomes:
            if outcome.kind is FieldOutcomeKind.CREATED:
                report.fields_created.append(outcome.name)
            elif outcome.kind is FieldOutcomeKind.ALREADY_PRESENT:
                report.fields_already_present.append(outcome.name)
            else:
                report.errors.append(f"{outcome.name}: {outcome.error}")
                report.succeeded = False
        report.completed_at = datetime.now(UTC)
        return report

    def to_dict(self) -> dict[str, Any]:
        """Serialize report to dictionary."""
        return {
            "succeeded": self.succeeded,
            "group_was_created": self.group_was_created,
            "fields_created": list(self.fields_created),
            "fields_already_present": list(self.fields_already_present),
            "errors": list(self.errors),
            "completed_at": self.completed_at.isoformat(),
        }


@dataclass
class ProvisioningState:
    """Process-local provisioning cache.

    Lifecycle: not provisioned -> in progress (``in_flight`` holds the shared
    run) -> provisioned (only when the run succeeded). ``generation`` is
    bumped by every reset; a run started under an older generation cannot
    mark the state provisioned or publish its report.
    """

    provisioned: bool = False
    in_flight: "asyncio.Task[None] | None" = None
    in_flight_generation: int = 0
    last_report: ProvisioningReport | None = None
    generation: int = 0


class SchemaProvisioner:
    """Ensures every ``FieldDefinition`` exists in HubSpot.

    Usage::

        provisioner = get_provisioner()
        await provisioner.ensure_provisioned()
        report = provisioner.get_last_report()
    """

    def __init__(
        self,
        gateway: HubSpotGateway,
        fields: Sequence[FieldDefinition] = REQUIRED_FIELDS,
        group: FieldGroup = SOW_FIELD_GROUP,
        state: ProvisioningState | None = None,
    ) -> None:
        self.gateway = gateway
        self.fields = tuple(fields)
        self.group = group
        self.state = state or ProvisioningState()

    # ---------- Public API ----------

    async def ensure_provisioned(self) -> None:
        """Ensure all required properties exist.

        Idempotent and safe under concurrent callers:
        - Already provisioned: returns immediately, no HubSpot calls.
        - A run is in flight: awaits that same run.
        - Otherwise: starts a run; concurrent callers join it.

        A failed run leaves the state unprovisioned so the next call retries
        the whole pass.
        """
        while not self.state.provisioned:
            task = self.state.in_flight
            if task is None:
                # No await between the check and the set: atomic on the loop.
                generation = self.state.generation
                task = asyncio.get_running_loop().create_task(self._run(generation))
                self.state.in_flight = task
                self.state.in_flight_generation = generation
                await asyncio.shield(task)
                return

            joined_generation = self.state.in_flight_generation
            await asyncio.shield(task)
            if joined_generation == self.state.generation:
                return
            # Joined a run that predates a reset; start a fresh one.

    def get_last_report(self) -> ProvisioningReport | None:
        """Get the result of the last completed run (None if never run or reset)."""
        return self.state.last_report

    def is_provisioned(self) -> bool:
        return self.state.provisioned

    def reset_state(self) -> None:
        """Force provisioning to run again on next call.

        Does not cancel an in-flight run; callers arriving after the reset
        wait for it to settle and then start a fresh pass.
        """
        self.state.generation += 1
        self.state.provisioned = False
        self.state.last_report = None
        logger.info("HubSpot setup state reset (generation %d)", self.state.generation)

    def health_summary(self) -> dict[str, Any]:
        """Snapshot for health reporting."""
        report = self.state.last_report
        return {
            "provisioned": self.state.provisioned,
            "in_progress": self.state.in_flight is not None,
            "report": report.to_dict() if report else None,
            "checked_at": datetime.now(UTC).isoformat(),
        }

    # ---------- Run ----------

    async def _run(self, generation: int) -> None:
        try:
            report = await self._provision()
            if generation != self.state.generation:
                logger.info("Discarding HubSpot setup result started before a reset")
                return
            self.state.last_report = report
            if report.succeeded:
                self.state.provisioned = True
            else:
                logger.error(
                    "HubSpot setup failed, will retry on next call: %s",
                    report.errors,
                )
        finally:
            if self.state.in_flight is asyncio.current_task():
                self.state.in_flight = None

    async def _provision(self) -> ProvisioningReport:
        logger.info("HubSpot setup: starting property verification")

        group_was_created = await self._ensure_group()

        outcomes: list[FieldOutcome] = []
        for definition in self.fields:
            outcomes.append(await self._ensure_field(definition))

        report = ProvisioningReport.from_outcomes(group_was_created, outcomes)

        if report.fields_created:
            logger.info(
                "HubSpot setup: created %d new properties: %s",
                len(report.fields_created),
                ", ".join(report.fields_created),
            )
        if report.errors:
            logger.error("HubSpot setup: %d errors occurred: %s", len(report.errors), report.errors)
        logger.info("HubSpot setup: verification complete")
        return report

    async def _ensure_group(self) -> bool:
        try:
            result = await self.gateway.create_property_group(self.group)
        except Exception as e:
            # Non-fatal: properties fall back to HubSpot's default group
            logger.warning("HubSpot setup: group creation warning: %s", e)
            return False

        if result.ok:
            logger.info("HubSpot setup: created property group %s", self.group.label)
            return True
        if not result.is_conflict:
            logger.warning("HubSpot setup: group creation warning: %s", result.error)
        return False

    async def _ensure_field(self, definition: FieldDefinition) -> FieldOutcome:
        try:
            result = await self.gateway.create_property(definition)
        except Exception as e:
            logger.exception("HubSpot setup: unexpected error creating %s", definition.name)
            return FieldOutcome(definition.name, FieldOutcomeKind.FAILED, str(e) or type(e).__name__)

        if result.ok:
            logger.info("HubSpot setup: created property %s", definition.name)
            return FieldOutcome(definition.name, FieldOutcomeKind.CREATED)
        if result.is_conflict:
            return FieldOutcome(definition.name, FieldOutcomeKind.ALREADY_PRESENT)
        return FieldOutcome(definition.name, FieldOutcomeKind.FAILED, result.error)


_provisioner: SchemaProvisioner | None = None


def get_provisioner() -> SchemaProvisioner:
    """Get or create the process-wide provisioner.

    A fresh process always starts unprovisioned; nothing is persisted.
    """
    global _provisioner
    if _provisioner is None:
        _provisioner = SchemaProvisioner(get_gateway())
    return _provisioner
