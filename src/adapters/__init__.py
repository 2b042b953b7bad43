"""Adapters — bindings for the external tools a run drives.

Public re-exports for convenient access.
"""

from src.adapters.base import Adapter, ExecutionContext
from src.adapters.mock import MockAdapter
from src.adapters.registry import AdapterRegistry
from src.adapters.shell.command import CommandAdapter
from src.adapters.shell.filesystem import FilesystemAdapter

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "CommandAdapter",
    "ExecutionContext",
    "FilesystemAdapter",
    "MockAdapter",
    "default_registry",
]


def default_registry() -> AdapterRegistry:
    """Registry with the real command and filesystem adapters."""
    registry = AdapterRegistry()
    registry.register(CommandAdapter())
    registry.register(FilesystemAdapter())
    return registry
