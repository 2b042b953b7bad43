"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from src.core.models import Action, Receipt, InstallerConfig, SystemProfile
"""

from src.core.models.action import Action, Receipt
from src.core.models.config import InstallerConfig, InstallerSettings, SourceRepositories
from src.core.models.profile import InstallDecision, SystemProfile

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # config.py
    "InstallerConfig",
    "InstallerSettings",
    "SourceRepositories",
    # profile.py
    "InstallDecision",
    "SystemProfile",
]
