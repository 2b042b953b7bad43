"""
Configuration loader — builds the frozen InstallerConfig once.

Sources, highest precedence first:
    CLI flag  >  environment variable  >  YAML file (--config)  >  defaults

CI detection happens here too: a known automation signal forces
``auto_install`` on, and the config is never changed afterwards.
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from src.core.models.config import (
    DEFAULT_LOG_DIR,
    InstallerConfig,
    InstallerSettings,
)
from src.core.services.system_probe import detect_automation

logger = logging.getLogger(__name__)

ENV_AUTO_INSTALL = "AUTO_INSTALL"
ENV_KEEP_BUILD_FILES = "KEEP_BUILD_FILES"
ENV_WORK_DIR = "WORKDIR"
ENV_LOG_DIR = "MODSEC_LOG_DIR"

_TRUE = {"1", "true", "yes", "on", "y"}
_FALSE = {"0", "false", "no", "off", "n", ""}


class ConfigError(Exception):
    """Raised when installer configuration is invalid."""


def parse_bool(value: str, name: str = "value") -> bool:
    """Parse an environment-style boolean (``true``/``false``, ``1``/``0``...)."""
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


def load_settings_file(path: Path) -> InstallerSettings:
    """Read and validate the optional YAML config file.

    Raises:
        ConfigError: If the file is missing, not YAML, or has unknown keys.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading installer config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return InstallerSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid installer configuration: {e}") from e


def default_log_file(log_dir: Path, now: datetime | None = None) -> Path:
    """Unique per-run log file name."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return log_dir / f"modsecurity_install_{stamp}-{uuid.uuid4().hex[:6]}.log"


def load_config(
    *,
    auto_install: bool | None = None,
    keep_build_files: bool | None = None,
    work_dir: Path | None = None,
    config_path: Path | None = None,
    log_file: Path | None = None,
    dry_run: bool = False,
    environ: Mapping[str, str] | None = None,
) -> InstallerConfig:
    """Resolve the installer configuration.

    Args:
        auto_install: CLI value; None means "not given".
        keep_build_files: CLI value; None means "not given".
        work_dir: CLI value; None means "not given".
        config_path: Optional YAML file.
        log_file: Explicit log file; default is a unique file in the log dir.
        dry_run: Validate steps without executing them.
        environ: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigError: On an invalid file, boolean, or version string.
    """
    env = os.environ if environ is None else environ
    settings = load_settings_file(config_path) if config_path else InstallerSettings()

    values: dict[str, Any] = {}
    for key in ("work_dir", "nginx_conf_dir", "required_nginx_version", "sources"):
        file_value = getattr(settings, key)
        if file_value is not None:
            values[key] = file_value

    # auto_install
    if auto_install is None and env.get(ENV_AUTO_INSTALL) is not None:
        auto_install = parse_bool(env[ENV_AUTO_INSTALL], ENV_AUTO_INSTALL)
    if auto_install is None:
        auto_install = bool(settings.auto_install)

    # keep_build_files
    if keep_build_files is None and env.get(ENV_KEEP_BUILD_FILES) is not None:
        keep_build_files = parse_bool(env[ENV_KEEP_BUILD_FILES], ENV_KEEP_BUILD_FILES)
    if keep_build_files is None:
        keep_build_files = bool(settings.keep_build_files)

    # work_dir
    if work_dir is None and env.get(ENV_WORK_DIR):
        work_dir = Path(env[ENV_WORK_DIR])
    if work_dir is not None:
        values["work_dir"] = work_dir

    # One-way override: CI means nobody can answer a prompt
    signal = detect_automation(env)
    if signal:
        auto_install = True

    if log_file is None:
        log_dir = Path(env[ENV_LOG_DIR]) if env.get(ENV_LOG_DIR) else settings.log_dir
        log_file = default_log_file(log_dir or DEFAULT_LOG_DIR)

    try:
        return InstallerConfig(
            auto_install=auto_install,
            automation_signal=signal,
            keep_build_files=keep_build_files,
            dry_run=dry_run,
            log_file=log_file,
            **values,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid installer configuration: {e}") from e
