"""
Engine executor — execute-and-check over an ordered list of steps.

Every provisioning step goes through ``execute_and_check``: the step
is dispatched through the adapter registry, its receipt recorded, and
a failure logged (error message, captured output, exit status, log
file) and raised as ``StepFailedError``. Plans run strictly in
declared order and stop at the first failure.

Flow:
    plan → execute step → record receipt → (fail → log + raise) → next step
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from src.adapters.registry import AdapterRegistry
from src.core.errors import StepFailedError
from src.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


@dataclass
class ExecutionPlan:
    """An ordered set of steps for one pipeline stage."""

    stage: str = ""
    actions: list[Action] = field(default_factory=list)

    @property
    def total_actions(self) -> int:
        return len(self.actions)

    def add(self, *actions: Action) -> ExecutionPlan:
        self.actions.extend(actions)
        return self


@dataclass
class ExecutionReport:
    """Every receipt produced during a run, in execution order."""

    operation_id: str = ""
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.status == "skipped")

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    @property
    def executed_ids(self) -> list[str]:
        return [r.action_id for r in self.receipts]

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass
class StepRunner:
    """Binds a registry, a report and run options for execute-and-check."""

    registry: AdapterRegistry
    report: ExecutionReport
    work_dir: Path = Path(".")
    dry_run: bool = False
    log_file: Path | None = None

    def run(self, action: Action) -> Receipt:
        return execute_and_check(
            action,
            self.registry,
            self.report,
            work_dir=self.work_dir,
            dry_run=self.dry_run,
            log_file=self.log_file,
        )

    def run_plan(self, plan: ExecutionPlan) -> None:
        execute_plan(
            plan,
            self.registry,
            self.report,
            work_dir=self.work_dir,
            dry_run=self.dry_run,
            log_file=self.log_file,
        )


def execute_and_check(
    action: Action,
    registry: AdapterRegistry,
    report: ExecutionReport,
    work_dir: Path = Path("."),
    dry_run: bool = False,
    log_file: Path | None = None,
) -> Receipt:
    """Execute one step; raise ``StepFailedError`` if it failed.

    Args:
        action: The step to run.
        registry: Adapter registry for dispatch.
        report: Receives the receipt, whatever the outcome.
        work_dir: Default working directory for the step.
        dry_run: Validate only.
        log_file: Mentioned in the failure message so the operator
            knows where the full output is.

    Returns:
        The receipt of a successful (or dry-run skipped) step.
    """
    command = action.params.get("argv")
    if command:
        logger.debug("Executing: %s", " ".join(command))
    else:
        logger.debug("Executing: %s (%s)", action.label, action.params.get("operation", action.adapter))

    receipt = registry.execute_action(
        action=action,
        work_dir=str(work_dir),
        dry_run=dry_run,
    )
    report.receipts.append(receipt)

    if receipt.failed:
        logger.error("%s", action.failure_message)
        if receipt.output:
            logger.error("Command output: %s", receipt.output)
        status = receipt.return_code if receipt.return_code is not None else "n/a"
        logger.error(
            "%s (status %s). Check log: %s",
            receipt.error or "Step failed",
            status,
            log_file or "console output",
        )
        raise StepFailedError(action, receipt)

    if receipt.status == "skipped":
        logger.info("%s", receipt.output)
    else:
        logger.debug("Step '%s' completed in %dms", action.label, receipt.duration_ms)
    return receipt


def execute_plan(
    plan: ExecutionPlan,
    registry: AdapterRegistry,
    report: ExecutionReport,
    work_dir: Path = Path("."),
    dry_run: bool = False,
    log_file: Path | None = None,
) -> ExecutionReport:
    """Execute every step of a plan in order, stopping at the first failure."""
    for action in plan.actions:
        execute_and_check(
            action,
            registry,
            report,
            work_dir=work_dir,
            dry_run=dry_run,
            log_file=log_file,
        )
    return report


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
