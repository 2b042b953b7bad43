"""
Install use case — the provisioning orchestrator.

Validates the host, then runs the fixed pipeline: baseline packages →
ModSecurity build → nginx resolution + connector module → OWASP CRS →
config test + restart → cleanup. Strictly sequential; the first
failure ends the run with exit code 1, after removing the build files
unless they are kept.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from src.adapters import default_registry
from src.adapters.registry import AdapterRegistry
from src.core.engine.executor import (
    ExecutionReport,
    StepRunner,
    generate_operation_id,
)
from src.core.errors import (
    ConfigTestError,
    DecisionAbortedError,
    InvalidVersionError,
    PreconditionError,
    ProvisioningError,
    StepFailedError,
    VersionRequirementError,
)
from src.core.models.config import InstallerConfig
from src.core.models.profile import InstallDecision, SystemProfile
from src.core.services.install_decision import Prompt, decide_install
from src.core.services.preflight import run_preflight
from src.core.services.steps import (
    cleanup_steps,
    config_test_step,
    connector_steps,
    crs_steps,
    dependency_steps,
    modsecurity_steps,
    nginx_install_steps,
    remove_build_files_step,
    restart_step,
)
from src.core.services.system_probe import (
    detect_system_profile,
    effective_uid,
    get_nginx_version,
)
from src.core.services.versioning import satisfies_minimum

logger = logging.getLogger(__name__)

VersionProbe = Callable[[], str | None]

EXIT_OK = 0
EXIT_FAILURE = 1


@dataclass
class InstallResult:
    """Outcome of a provisioning run."""

    exit_code: int = EXIT_OK
    report: ExecutionReport = field(default_factory=ExecutionReport)
    profile: SystemProfile | None = None
    decision: InstallDecision | None = None
    nginx_version: str | None = None
    cleaned_up: bool = False
    error: str | None = None
    failed_step: str | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_OK

    def to_dict(self) -> dict:
        result: dict = {
            "ok": self.ok,
            "exit_code": self.exit_code,
            "decision": self.decision.value if self.decision else None,
            "nginx_version": self.nginx_version,
            "cleaned_up": self.cleaned_up,
            "report": self.report.to_dict(),
        }
        if self.profile:
            result["profile"] = self.profile.to_dict()
        if self.error:
            result["error"] = self.error
            result["failed_step"] = self.failed_step
        return result


def _probe_nginx_version() -> str | None:
    return get_nginx_version()[0]


def _log_configuration(config: InstallerConfig) -> None:
    logger.info("Starting ModSecurity v3 installation")
    if config.log_file:
        logger.info("Log file: %s", config.log_file)
    logger.info("Configuration:")
    logger.info("- WORKDIR: %s", config.work_dir)
    logger.info("- AUTO_INSTALL: %s", str(config.auto_install).lower())
    logger.info("- KEEP_BUILD_FILES: %s", str(config.keep_build_files).lower())
    if config.dry_run:
        logger.info("- DRY_RUN: true (steps are validated, not executed)")


def _dry_run_answer(question: str) -> bool:
    logger.info("[dry-run] Would ask: %s Assuming yes.", question)
    return True


def _resolve_nginx(
    config: InstallerConfig,
    profile: SystemProfile,
    runner: StepRunner,
    result: InstallResult,
    prompt: Prompt | None,
    probe: VersionProbe,
) -> str:
    """Keep, install or abort; return the nginx version to build against."""
    required = config.required_nginx_version
    if config.dry_run and not config.auto_install:
        prompt = _dry_run_answer
    decision = decide_install(
        profile.nginx_version,
        required,
        config.auto_install,
        prompt=prompt,
    )
    result.decision = decision

    if decision is InstallDecision.ABORT:
        if profile.nginx_installed:
            raise DecisionAbortedError("Exiting as Nginx version requirements are not met.")
        raise DecisionAbortedError("Exiting as Nginx is required but not installed.")

    if decision is InstallDecision.USE_EXISTING:
        assert profile.nginx_version is not None
        return profile.nginx_version

    logger.info("Installing latest Nginx version...")
    runner.run_plan(nginx_install_steps(config))

    if config.dry_run:
        logger.info("[dry-run] Assuming Nginx %s for the connector build", required)
        return required

    installed = probe()
    try:
        ok = installed is not None and satisfies_minimum(installed, required)
    except InvalidVersionError:
        ok = False
    if not ok:
        raise VersionRequirementError(
            f"The installed Nginx version {installed or 'unknown'} does not meet "
            f"minimum requirements (>= {required})"
        )
    logger.info("Successfully installed Nginx version: %s", installed)
    return installed


def _needs_clone(path: Path, label: str) -> bool:
    """False when a checkout from an earlier run is already at ``path``."""
    if not path.exists():
        return True
    logger.warning("%s checkout already exists at %s, reusing it", label, path)
    return False


def _install_modsecurity(config: InstallerConfig, runner: StepRunner) -> None:
    logger.info("Installing ModSecurity...")
    runner.run_plan(modsecurity_steps(
        config,
        clone=_needs_clone(config.modsecurity_dir, "ModSecurity"),
        clone_connector=_needs_clone(config.connector_dir, "ModSecurity-nginx"),
    ))
    logger.info("ModSecurity installation completed")


def _install_crs(config: InstallerConfig, runner: StepRunner) -> None:
    logger.info("Installing OWASP CoreRuleSet...")
    clone = _needs_clone(config.crs_dir, "OWASP CRS")
    logger.info("Updating ModSecurity configuration to load OWASP CRS...")
    runner.run_plan(crs_steps(config, clone=clone))

    appended = runner.report.receipts[-1].metadata.get("appended")
    if appended is False:
        logger.warning("OWASP CRS configuration already exists in %s", config.modsecurity_conf)


def _test_and_restart(runner: StepRunner) -> None:
    logger.info("Testing Nginx configuration...")
    try:
        runner.run(config_test_step())
    except StepFailedError as e:
        raise ConfigTestError(str(e)) from e
    logger.info("Nginx configuration test successful")

    logger.info("Restarting Nginx service...")
    runner.run(restart_step())


def _cleanup(config: InstallerConfig, runner: StepRunner) -> bool:
    """Remove build files (unless kept) and clear the apt cache."""
    logger.info("Starting cleanup process...")
    if config.keep_build_files:
        logger.info("Skipping build file cleanup as KEEP_BUILD_FILES=true")
    else:
        logger.info("Removing build files...")

    runner.run_plan(cleanup_steps(config))
    logger.info("Cleanup completed successfully")
    return True


def _remove_build_files(config: InstallerConfig, runner: StepRunner) -> bool:
    """Remove build files after a failed run; the original error stands."""
    logger.info("Removing build files after failed run...")
    try:
        runner.run(remove_build_files_step(config))
    except StepFailedError:
        return False
    return True


def _fail(result: InstallResult, error: ProvisioningError) -> None:
    result.exit_code = EXIT_FAILURE
    result.error = str(error)
    if isinstance(error, StepFailedError):
        result.failed_step = error.action.id
    elif isinstance(error, ConfigTestError):
        result.failed_step = "service:config-test"
    else:
        logger.error("%s", error)


def run_install(
    config: InstallerConfig,
    *,
    registry: AdapterRegistry | None = None,
    profile: SystemProfile | None = None,
    euid: int | None = None,
    prompt: Prompt | None = None,
    version_probe: VersionProbe | None = None,
) -> InstallResult:
    """Provision ModSecurity v3, the nginx connector and the OWASP CRS.

    Args:
        config: Resolved installer configuration.
        registry: Adapter registry (default: real command + filesystem).
        profile: Host snapshot (default: probed now).
        euid: Effective user id (default: the process's).
        prompt: Yes/no operator question; unused when auto_install.
        version_probe: Reads the nginx version after an install.

    Returns:
        InstallResult; ``exit_code`` is 0 on success, 1 on any failure.
    """
    _log_configuration(config)

    result = InstallResult(report=ExecutionReport(operation_id=generate_operation_id()))
    result.profile = profile if profile is not None else detect_system_profile()

    # ── Environment validation ──────────────────────────────────
    try:
        run_preflight(
            config,
            result.profile,
            effective_uid() if euid is None else euid,
        )
    except PreconditionError as e:
        _fail(result, e)
        return result

    runner = StepRunner(
        registry=registry if registry is not None else default_registry(),
        report=result.report,
        work_dir=config.work_dir,
        dry_run=config.dry_run,
        log_file=config.log_file,
    )

    # ── Pipeline ────────────────────────────────────────────────
    try:
        logger.info("Installing dependencies...")
        runner.run_plan(dependency_steps(config))
        logger.info("Dependencies installed successfully")

        _install_modsecurity(config, runner)

        result.nginx_version = _resolve_nginx(
            config,
            result.profile,
            runner,
            result,
            prompt,
            version_probe or _probe_nginx_version,
        )
        logger.info("Proceeding with Nginx version: %s", result.nginx_version)
        runner.run_plan(connector_steps(config, result.nginx_version))

        _install_crs(config, runner)
        _test_and_restart(runner)
        logger.info("OWASP CoreRuleSet installation and configuration completed successfully")
    except ProvisioningError as e:
        _fail(result, e)
        if not config.keep_build_files:
            result.cleaned_up = _remove_build_files(config, runner)
        return result

    # ── Cleanup ─────────────────────────────────────────────────
    try:
        result.cleaned_up = _cleanup(config, runner)
    except ProvisioningError as e:
        _fail(result, e)
        return result

    logger.info("ModSecurity v3 installation completed successfully")
    return result
