"""
Adapter registry — resolves a step's adapter and runs it.

``execute_action`` is the one dispatch path for every step: resolve,
check availability, validate, then either skip (dry run) or execute.
It always returns a Receipt.
"""

from __future__ import annotations

import logging
import time

from src.adapters.base import Adapter, ExecutionContext
from src.core.models.action import Action, Receipt, utc_now_iso

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Adapters keyed by name, with an optional catch-all override.

    With an override set (``route_all_to``), every step goes to that
    adapter whatever its ``Action.adapter``; tests use this to run the
    whole pipeline against one ``MockAdapter``.
    """

    def __init__(self, override: Adapter | None = None):
        self._adapters: dict[str, Adapter] = {}
        self._override = override

    def route_all_to(self, adapter: Adapter | None) -> None:
        """Send every step to ``adapter``; None restores lookup by name."""
        self._override = adapter

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter: %s", adapter.name)
        self._adapters[adapter.name] = adapter
        logger.debug("Registered adapter: %s", adapter.name)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def names(self) -> list[str]:
        return list(self._adapters)

    def availability(self) -> dict[str, bool]:
        """Whether each registered adapter can run on this host."""
        return {name: adapter.is_available() for name, adapter in self._adapters.items()}

    def resolve(self, action: Action) -> Adapter | None:
        return self._override or self._adapters.get(action.adapter)

    def execute_action(
        self,
        action: Action,
        work_dir: str = ".",
        dry_run: bool = False,
    ) -> Receipt:
        """Run one step through its adapter and return the receipt."""
        started_at = utc_now_iso()
        start = time.monotonic()

        adapter = self.resolve(action)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        if not adapter.is_available():
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Adapter '{adapter.name}' is not available on this host",
            )

        context = ExecutionContext(action=action, work_dir=work_dir, dry_run=dry_run)

        try:
            valid, reason = adapter.validate(context)
        except Exception as e:
            valid, reason = False, f"validator raised {e}"
        if not valid:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation failed: {reason}",
            )

        if dry_run:
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] Would run: {action.label}",
                metadata={"dry_run": True},
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised on step %s: %s", adapter.name, action.id, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.started_at = started_at
        receipt.ended_at = utc_now_iso()
        receipt.duration_ms = int((time.monotonic() - start) * 1000)
        return receipt
