"""
Environment validation — linear checks, terminal on failure.

Order: RootCheck → AutomationDetection → PlatformCheck →
ExistingToolVersionCheck. Each failing check raises
``PreconditionError``; nothing is retried.
"""

from __future__ import annotations

import logging

from src.core.errors import InvalidVersionError, PreconditionError
from src.core.models.config import InstallerConfig
from src.core.models.profile import SystemProfile
from src.core.services.versioning import satisfies_minimum, version_in_range

logger = logging.getLogger(__name__)

SUPPORTED_DISTRO = "Ubuntu"
SUPPORTED_OS_MIN = "20.04"
SUPPORTED_OS_MAX = "22.04"
SUPPORTED_ARCH = "x86_64"


def check_root(euid: int) -> None:
    if euid != 0:
        raise PreconditionError("This installer must be run as root")


def report_automation(config: InstallerConfig) -> None:
    """Log the outcome of CI detection (performed when the config was built)."""
    if config.automation_signal:
        logger.info(
            "Detected automated environment (%s), AUTO_INSTALL forced to true",
            config.automation_signal,
        )


def check_platform(profile: SystemProfile) -> None:
    """Ubuntu, version within [20.04, 22.04] inclusive, x86_64."""
    if profile.distro != SUPPORTED_DISTRO:
        raise PreconditionError(
            f"This installer requires {SUPPORTED_DISTRO} "
            f"(current: {profile.distro or 'unknown'})"
        )

    if profile.os_major is None:
        raise PreconditionError(
            f"Could not determine the {SUPPORTED_DISTRO} version "
            f"(reported: {profile.os_version or 'nothing'})"
        )

    current = f"{profile.os_major}.{profile.os_minor or 0}"
    try:
        supported = version_in_range(current, SUPPORTED_OS_MIN, SUPPORTED_OS_MAX)
    except InvalidVersionError as e:
        raise PreconditionError(str(e)) from e
    if not supported:
        raise PreconditionError(
            f"This installer requires {SUPPORTED_DISTRO} version between "
            f"{SUPPORTED_OS_MIN} and {SUPPORTED_OS_MAX} "
            f"(current: {profile.os_version})"
        )

    if profile.arch != SUPPORTED_ARCH:
        raise PreconditionError(
            f"This installer requires {SUPPORTED_ARCH} architecture "
            f"(current: {profile.arch or 'unknown'})"
        )


def check_existing_nginx(profile: SystemProfile, required: str) -> bool | None:
    """Advisory check of an already installed nginx.

    Returns True/False when nginx is installed, None when it isn't.
    Never aborts: the install decision later owns the keep/upgrade/abort
    outcome for the same condition.
    """
    if not profile.nginx_installed:
        logger.info("Nginx not installed yet. Latest version will be offered")
        return None

    try:
        ok = satisfies_minimum(profile.nginx_version, required)
    except InvalidVersionError:
        ok = False

    if ok:
        logger.info("Nginx version check passed: %s", profile.nginx_version)
    else:
        logger.warning(
            "Installed Nginx %s is below the required %s; an upgrade will be offered",
            profile.nginx_version,
            required,
        )
    return ok


def run_preflight(
    config: InstallerConfig,
    profile: SystemProfile,
    euid: int,
) -> None:
    """Run every environment check in order."""
    check_root(euid)
    report_automation(config)
    check_platform(profile)
    check_existing_nginx(profile, config.required_nginx_version)
    logger.info(
        "System check passed: %s %s on %s architecture",
        profile.distro,
        profile.os_version,
        profile.arch,
    )
