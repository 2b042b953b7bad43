"""
Adapter contract.

An adapter performs one kind of side effect for the pipeline (running
a program, editing a file) and reports the outcome as a Receipt. The
engine reaches adapters only through the registry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from src.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """One step as an adapter sees it: the action, the build root, dry-run."""

    action: Action
    work_dir: str = "."
    dry_run: bool = False

    @property
    def params(self) -> dict[str, Any]:
        return self.action.params

    @property
    def working_dir(self) -> str:
        """The step's ``cwd`` param, else the build root."""
        cwd = self.action.params.get("cwd")
        return str(cwd) if cwd else self.work_dir


class Adapter(ABC):
    """Base class for step adapters.

    ``execute`` reports failures in the returned Receipt and never
    raises; ``validate`` rejects malformed steps before anything runs.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, matched against ``Action.adapter``."""

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Return ``(ok, reason)``; ``reason`` is empty when ok."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
