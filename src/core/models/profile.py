"""
Host profile and install decision models.

The SystemProfile is a snapshot taken once at startup. It decides
whether the run proceeds at all and is never mutated afterwards.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class SystemProfile(BaseModel):
    """Immutable snapshot of the host: OS, architecture, installed nginx."""

    model_config = ConfigDict(frozen=True)

    distro: str = ""                # e.g. "Ubuntu"
    os_version: str = ""            # as reported, e.g. "22.04"
    os_major: int | None = None
    os_minor: int | None = None
    arch: str = ""                  # e.g. "x86_64"
    nginx_version: str | None = None
    nginx_path: str | None = None

    @property
    def nginx_installed(self) -> bool:
        return self.nginx_version is not None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class InstallDecision(str, Enum):
    """Outcome of an optional dependency check."""

    USE_EXISTING = "use_existing"
    INSTALL_LATEST = "install_latest"
    ABORT = "abort"
