"""
Mock adapter — records steps instead of running them.

Every step succeeds unless a failure or a canned receipt was scripted
for its id. Used by the test suite to simulate command failures at
any point of the pipeline.
"""

from __future__ import annotations

from src.adapters.base import Adapter, ExecutionContext
from src.core.models.action import Receipt


class MockAdapter(Adapter):
    """Records each context it receives; succeeds unless scripted."""

    def __init__(self, adapter_name: str = "mock", output: str = "[mock] ok"):
        self._name = adapter_name
        self._output = output
        self._scripted: dict[str, Receipt] = {}
        self.calls: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def executed_ids(self) -> list[str]:
        """Step ids in the order they were executed."""
        return [ctx.action.id for ctx in self.calls]

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        self._scripted[action_id] = receipt

    def set_failure(
        self,
        action_id: str,
        error: str = "Command exited with code 1",
        return_code: int = 1,
        output: str = "",
    ) -> None:
        """Make the step with ``action_id`` fail like a non-zero exit."""
        self._scripted[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            output=output,
            return_code=return_code,
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self.calls.append(context)

        scripted = self._scripted.get(context.action.id)
        if scripted is not None:
            return scripted.model_copy()

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._output,
            return_code=0,
            metadata={"mock": True},
        )
