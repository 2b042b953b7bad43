"""
Action and Receipt models — the execution contract.

An Action is one provisioning step: a named unit of work with the
adapter that performs it, its parameters (argv, working directory,
environment) and the message to report when it fails. A Receipt is
the outcome. The engine sends Actions, adapters return Receipts.
Never exceptions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def utc_now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A provisioning step to be executed by an adapter.

    Command steps carry ``argv`` (list), optional ``cwd``, ``env`` and
    ``timeout`` in ``params``. Filesystem steps carry ``operation`` and
    its paths. ``success_codes`` is the success predicate applied to
    the exit status of command steps.
    """

    id: str                         # unique step identifier, e.g. "modsec:make"
    name: str = ""                  # human-readable name
    adapter: str                    # which adapter handles this
    stage: str = ""                 # pipeline stage the step belongs to
    params: dict[str, Any] = Field(default_factory=dict)
    error_message: str = ""         # reported when the step fails
    success_codes: list[int] = Field(default_factory=lambda: [0])

    @property
    def label(self) -> str:
        return self.name or self.id

    @property
    def failure_message(self) -> str:
        return self.error_message or f"Step '{self.label}' failed"


ReceiptStatus = Literal["ok", "skipped", "failed"]


class Receipt(BaseModel):
    """What happened when a step ran.

    ``output`` holds the command's combined stdout/stderr (tail-trimmed);
    ``error`` is the adapter's one-line reason on failure.
    """

    adapter: str
    action_id: str
    status: ReceiptStatus = "ok"
    started_at: str = Field(default_factory=utc_now_iso)
    ended_at: str = Field(default_factory=utc_now_iso)
    duration_ms: int = 0
    output: str = ""
    error: str | None = None
    return_code: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        """A step that was validated but deliberately not run (dry run)."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **kwargs)
