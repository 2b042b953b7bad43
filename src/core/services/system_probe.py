"""
Detection — Host probes.

Read-only probes: OS release files, CPU architecture, effective user,
CI/automation signals and the installed nginx version.
"""

from __future__ import annotations

import logging
import os
import platform
import re
import shutil
import subprocess
from collections.abc import Mapping
from pathlib import Path

from src.core.errors import InvalidVersionError
from src.core.models.profile import SystemProfile
from src.core.services.versioning import parse_version

logger = logging.getLogger(__name__)

LSB_RELEASE = Path("/etc/lsb-release")
OS_RELEASE = Path("/etc/os-release")

# Presence of any of these (non-empty) means nobody is at the keyboard.
AUTOMATION_SIGNALS: tuple[str, ...] = (
    "CI",
    "GITHUB_ACTIONS",
    "JENKINS_URL",
    "TRAVIS",
    "GITLAB_CI",
)

NGINX_VERSION_COMMAND = ["nginx", "-v"]
NGINX_VERSION_PATTERN = re.compile(r"nginx/(\d+(?:\.\d+)*)")


def detect_automation(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the name of the first CI signal set in the environment."""
    env = os.environ if environ is None else environ
    for name in AUTOMATION_SIGNALS:
        if env.get(name):
            return name
    return None


def effective_uid() -> int:
    return os.geteuid()


def _read_key_values(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    try:
        text = path.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return values
    for line in text.splitlines():
        if "=" not in line or line.lstrip().startswith("#"):
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def read_os_release(
    lsb_path: Path = LSB_RELEASE,
    os_release_path: Path = OS_RELEASE,
) -> tuple[str, str]:
    """Read ``(distro, version)`` from lsb-release, falling back to os-release.

    Returns ``("", "")`` when neither file is readable.
    """
    lsb = _read_key_values(lsb_path)
    if lsb.get("DISTRIB_ID"):
        return lsb["DISTRIB_ID"], lsb.get("DISTRIB_RELEASE", "")

    osr = _read_key_values(os_release_path)
    distro = osr.get("NAME", "").split(" ")[0] if osr.get("NAME") else ""
    if not distro and osr.get("ID"):
        distro = osr["ID"].capitalize()
    return distro, osr.get("VERSION_ID", "")


def get_nginx_version() -> tuple[str | None, str | None]:
    """Probe the installed nginx.

    ``nginx -v`` writes ``nginx version: nginx/1.18.0 (Ubuntu)`` to stderr.

    Returns:
        ``(version, path)``, or ``(None, None)`` if nginx is not on PATH
        or its version can't be read.
    """
    path = shutil.which(NGINX_VERSION_COMMAND[0])
    if not path:
        return None, None

    try:
        result = subprocess.run(
            [path, *NGINX_VERSION_COMMAND[1:]],
            capture_output=True, text=True, timeout=10,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning("Could not run %s -v: %s", path, e)
        return None, path

    output = (result.stdout or "") + (result.stderr or "")
    match = NGINX_VERSION_PATTERN.search(output)
    if match:
        return match.group(1), path
    logger.warning("Unrecognised nginx version output: %s", output.strip())
    return None, path


def detect_system_profile(
    lsb_path: Path = LSB_RELEASE,
    os_release_path: Path = OS_RELEASE,
) -> SystemProfile:
    """Take the one-time host snapshot."""
    distro, os_version = read_os_release(lsb_path, os_release_path)

    major: int | None = None
    minor: int | None = None
    try:
        fields = parse_version(os_version)
        major = fields[0]
        minor = fields[1] if len(fields) > 1 else 0
    except InvalidVersionError:
        logger.debug("Unparseable OS version: %r", os_version)

    nginx_version, nginx_path = get_nginx_version()

    return SystemProfile(
        distro=distro,
        os_version=os_version,
        os_major=major,
        os_minor=minor,
        arch=platform.machine(),
        nginx_version=nginx_version,
        nginx_path=nginx_path,
    )
