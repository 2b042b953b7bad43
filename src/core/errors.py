"""
Exception taxonomy for a provisioning run.

Every failure that ends a run derives from ``ProvisioningError``; the
orchestrator catches it once at the top, logs it and exits 1.
Adapters never raise; they return failed receipts, which the engine
turns into ``StepFailedError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.core.models.action import Action, Receipt


class ProvisioningError(Exception):
    """Base class for fatal provisioning failures."""


class PreconditionError(ProvisioningError):
    """Host does not qualify: not root, unsupported OS, version or arch."""


class StepFailedError(ProvisioningError):
    """An external step reported failure."""

    def __init__(self, action: Action, receipt: Receipt):
        self.action = action
        self.receipt = receipt
        super().__init__(action.failure_message)


class DecisionAbortedError(ProvisioningError):
    """The operator declined a required install."""


class VersionRequirementError(ProvisioningError):
    """A freshly installed tool still fails its minimum version."""


class ConfigTestError(ProvisioningError):
    """The web server rejected its configuration; it was not restarted."""


class InvalidVersionError(ValueError):
    """A version string has a field that is not a non-negative integer."""
