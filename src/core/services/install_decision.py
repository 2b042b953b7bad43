"""
Install decision — keep, upgrade or abort for one optional dependency.

The only interactive point of a run. With ``auto_install`` the prompt
is never called and the "proceed" branch is taken.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from src.core.errors import InvalidVersionError
from src.core.models.profile import InstallDecision
from src.core.services.versioning import satisfies_minimum

logger = logging.getLogger(__name__)

Prompt = Callable[[str], bool]

INSTALL_QUESTION = "Would you like to install the latest version?"


def decide_install(
    installed: str | None,
    required: str,
    auto_install: bool,
    prompt: Prompt | None = None,
    tool: str = "Nginx",
) -> InstallDecision:
    """Decide what to do about ``tool``.

    Args:
        installed: Detected version, or None when the tool is absent.
        required: Minimum version that must be satisfied.
        auto_install: Skip the prompt and install.
        prompt: Asks the operator a yes/no question. Required when
            ``auto_install`` is False and a decision must be asked.
        tool: Display name used in log lines.

    Returns:
        USE_EXISTING, INSTALL_LATEST or ABORT.
    """
    if installed is not None:
        try:
            ok = satisfies_minimum(installed, required)
        except InvalidVersionError:
            logger.warning("Cannot parse installed %s version %r", tool, installed)
            ok = False

        if ok:
            logger.info("Using existing %s version: %s", tool, installed)
            return InstallDecision.USE_EXISTING

        logger.warning(
            "Existing %s version %s does not meet minimum requirements (>= %s)",
            tool, installed, required,
        )
    else:
        logger.info("%s is not installed", tool)

    if auto_install:
        logger.info("AUTO_INSTALL is enabled. Will install the latest version.")
        return InstallDecision.INSTALL_LATEST

    if prompt is None:
        logger.error("No operator prompt available and AUTO_INSTALL is disabled")
        return InstallDecision.ABORT

    if prompt(INSTALL_QUESTION):
        return InstallDecision.INSTALL_LATEST
    return InstallDecision.ABORT
