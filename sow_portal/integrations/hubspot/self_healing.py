"""Self-healing wrapper for HubSpot operations.

If an operation fails because a deal property is missing (someone deleted
it in HubSpot's settings UI):

1. Reset setup state
2. Re-run property setup
3. Retry the operation exactly once

Any other failure is re-raised untouched, without a retry. A second
failure after the retry is re-raised as well; there is never a third
attempt.

Usage::

    async def fetch():
        result = await gateway.get_object(deal_id, SOW_PROPERTIES)
        return result.json_or_raise()

    deal = await with_self_healing(fetch, "getDeal")
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sow_portal.core.config import Settings, get_settings
from sow_portal.core.exceptions import OperationTimeoutError
from sow_portal.integrations.hubspot.errors import is_schema_field_error
from sow_portal.integrations.hubspot.provisioning import SchemaProvisioner, get_provisioner

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SETUP_TIMEOUT_SECONDS = 30.0
DEFAULT_OPERATION_TIMEOUT_SECONDS = 30.0


async def _bounded(awaitable: Awaitable[T], timeout: float, label: str) -> T:
    """Await with a ceiling; only our own deadline becomes ``OperationTimeoutError``."""
    deadline = asyncio.timeout(timeout)
    try:
        async with deadline:
            return await awaitable
    except TimeoutError as e:
        if deadline.expired():
            raise OperationTimeoutError(label, timeout) from e
        raise


class SelfHealingRunner:
    """Runs CRM operations with one-shot schema repair."""

    def __init__(
        self,
        provisioner: SchemaProvisioner,
        setup_timeout: float = DEFAULT_SETUP_TIMEOUT_SECONDS,
        operation_timeout: float = DEFAULT_OPERATION_TIMEOUT_SECONDS,
    ) -> None:
        self.provisioner = provisioner
        self.setup_timeout = setup_timeout
        self.operation_timeout = operation_timeout

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_label: str = "HubSpot operation",
    ) -> T:
        """Run ``operation`` after setup, repairing the schema once if needed.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per call.
            operation_label: Name used in logs and timeout messages.

        Returns:
            The operation's result (from the retry, if one was needed).

        Raises:
            OperationTimeoutError: If setup or an attempt exceeds its ceiling.
            Exception: Whatever the operation raised, unchanged.
        """
        await _bounded(self.provisioner.ensure_provisioned(), self.setup_timeout, "Setup")

        try:
            return await _bounded(operation(), self.operation_timeout, operation_label)
        except Exception as error:
            if not is_schema_field_error(error):
                raise
            first_error = error

        logger.warning(
            "HubSpot self-healing: %s failed due to property issue, attempting recovery: %s",
            operation_label,
            first_error,
        )

        self.provisioner.reset_state()
        await _bounded(self.provisioner.ensure_provisioned(), self.setup_timeout, "Setup recovery")

        report = self.provisioner.get_last_report()
        if report and report.fields_created:
            logger.info(
                "HubSpot self-healing: recreated %d properties: %s",
                len(report.fields_created),
                ", ".join(report.fields_created),
            )

        logger.info("HubSpot self-healing: retrying %s", operation_label)
        try:
            result = await _bounded(
                operation(), self.operation_timeout, f"{operation_label} retry"
            )
        except Exception:
            logger.exception("HubSpot self-healing: %s failed on retry", operation_label)
            raise
        logger.info("HubSpot self-healing: %s succeeded on retry", operation_label)
        return result


async def with_self_healing(
    operation: Callable[[], Awaitable[T]],
    operation_label: str = "HubSpot operation",
) -> T:
    """Run ``operation`` through the process-wide runner."""
    return await get_self_healing_runner().run(operation, operation_label)


_runner: SelfHealingRunner | None = None


def get_self_healing_runner(settings: Settings | None = None) -> SelfHealingRunner:
    """Get or create the process-wide runner bound to ``get_provisioner()``."""
    global _runner
    if _runner is None:
        cfg = settings or get_settings()
        _runner = SelfHealingRunner(
            get_provisioner(),
            setup_timeout=cfg.PROVISIONING_TIMEOUT_SECONDS,
            operation_timeout=cfg.OPERATION_TIMEOUT_SECONDS,
        )
    return _runner
