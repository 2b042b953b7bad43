"""
Step catalog — the provisioning pipeline as typed steps.

Pure builders: each function turns the resolved config into an
``ExecutionPlan`` of ``Action`` objects (argv commands or filesystem
operations). Nothing here touches the host.
"""

from __future__ import annotations

from pathlib import Path

from src.core.engine.executor import ExecutionPlan
from src.core.models.action import Action
from src.core.models.config import InstallerConfig

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}

BASE_PACKAGES: tuple[str, ...] = (
    "apt-utils",
    "autoconf",
    "automake",
    "build-essential",
    "git",
    "libcurl4-openssl-dev",
    "libgeoip-dev",
    "liblmdb-dev",
    "libpcre3-dev",
    "libssl-dev",
    "libtool",
    "libxml2-dev",
    "libyajl-dev",
    "pkgconf",
    "wget",
    "zlib1g-dev",
    "software-properties-common",
    "g++",
    "libpcre2-dev",
    "libpcre2-posix3",
)

CONNECTOR_MODULE = "ngx_http_modsecurity_module.so"

CRS_MARKER = "Include owasp-crs/crs-setup.conf"
CRS_INCLUDE_BLOCK = (
    "# OWASP CRS Configuration\n"
    "Include owasp-crs/crs-setup.conf\n"
    "Include owasp-crs/rules/*.conf\n"
)


def _cmd(
    step_id: str,
    argv: list[str],
    error: str,
    *,
    name: str = "",
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    stage: str = "",
) -> Action:
    params: dict = {"argv": argv}
    if cwd is not None:
        params["cwd"] = str(cwd)
    if env:
        params["env"] = dict(env)
    return Action(
        id=step_id,
        name=name or " ".join(argv),
        adapter="command",
        stage=stage or step_id.split(":", 1)[0],
        params=params,
        error_message=error,
    )


def _fs(step_id: str, operation: str, error: str, *, name: str = "", **params) -> Action:
    for key, value in params.items():
        if isinstance(value, Path):
            params[key] = str(value)
    target = params.get("path") or params.get("destination") or ""
    return Action(
        id=step_id,
        name=name or f"{operation} {target}".strip(),
        adapter="filesystem",
        stage=step_id.split(":", 1)[0],
        params={"operation": operation, **params},
        error_message=error,
    )


# ── Stage 2: baseline packages ──────────────────────────────────


def dependency_steps(config: InstallerConfig) -> ExecutionPlan:
    return ExecutionPlan(stage="deps").add(
        _fs("deps:workdir", "mkdir", "Failed to create working directory",
            path=config.work_dir),
        _cmd("deps:apt-update", ["apt-get", "update", "-y"],
             "Failed to update package lists", env=APT_ENV),
        _cmd("deps:apt-upgrade", ["apt-get", "upgrade", "-y"],
             "Failed to upgrade installed packages", env=APT_ENV),
        _cmd("deps:apt-install", ["apt-get", "install", "-y", *BASE_PACKAGES],
             "Failed to install build dependencies", env=APT_ENV),
    )


# ── Stage 3: ModSecurity library + connector source ─────────────


def modsecurity_steps(
    config: InstallerConfig,
    clone: bool = True,
    clone_connector: bool = True,
) -> ExecutionPlan:
    """ModSecurity clone, build and install, then the connector source.

    ``clone=False`` or ``clone_connector=False`` builds from a checkout
    left by an earlier run instead of cloning over it.
    """
    src = config.modsecurity_dir
    plan = ExecutionPlan(stage="modsec")
    if clone:
        plan.add(
            _cmd("modsec:clone", ["git", "clone", config.sources.modsecurity, str(src)],
                 "Failed to clone ModSecurity repository", cwd=config.work_dir),
        )
    plan.add(
        _cmd("modsec:submodule-init", ["git", "submodule", "init"],
             "Failed to initialize git submodules", cwd=src),
        _cmd("modsec:submodule-update", ["git", "submodule", "update"],
             "Failed to update git submodules", cwd=src),
        _cmd("modsec:build", ["./build.sh"],
             "Failed to execute build.sh for ModSecurity", cwd=src),
        _cmd("modsec:configure", ["./configure"],
             "Failed to configure ModSecurity", cwd=src),
        _cmd("modsec:make", ["make"],
             "Failed to compile ModSecurity", cwd=src),
        _cmd("modsec:make-install", ["make", "install"],
             "Failed to install ModSecurity", cwd=src),
    )
    if clone_connector:
        plan.add(
            _cmd("modsec:clone-connector",
                 ["git", "clone", config.sources.connector, str(config.connector_dir)],
                 "Failed to clone ModSecurity-nginx repository", cwd=config.work_dir),
        )
    return plan


# ── Stage 4: nginx package + dynamic connector module ───────────


def nginx_install_steps(config: InstallerConfig) -> ExecutionPlan:
    return ExecutionPlan(stage="nginx-install").add(
        _cmd("nginx-install:add-ppa",
             ["add-apt-repository", "-y", config.sources.nginx_ppa],
             "Failed to add PPA", env=APT_ENV),
        _cmd("nginx-install:apt-update", ["apt-get", "update", "-y"],
             "Failed to update package lists", env=APT_ENV),
        _cmd("nginx-install:apt-install", ["apt-get", "install", "-y", "nginx"],
             "Failed to install Nginx", env=APT_ENV),
        _cmd("nginx-install:enable", ["systemctl", "enable", "nginx"],
             "Failed to enable the Nginx service"),
    )


def connector_steps(config: InstallerConfig, nginx_version: str) -> ExecutionPlan:
    tarball = config.work_dir / f"nginx-{nginx_version}.tar.gz"
    source = config.work_dir / f"nginx-{nginx_version}"
    conf = config.nginx_conf_dir
    return ExecutionPlan(stage="connector").add(
        _cmd("connector:download",
             ["wget", "-q", "-O", str(tarball), config.sources.nginx_tarball_url(nginx_version)],
             "Failed to download Nginx source", cwd=config.work_dir),
        _cmd("connector:extract", ["tar", "-xzf", str(tarball), "-C", str(config.work_dir)],
             "Failed to extract Nginx source", cwd=config.work_dir),
        _cmd("connector:configure",
             ["./configure", "--with-compat", f"--add-dynamic-module={config.connector_dir}"],
             "Failed to configure Nginx with ModSecurity", cwd=source),
        _cmd("connector:make", ["make"], "Failed to compile Nginx", cwd=source),
        _cmd("connector:make-modules", ["make", "modules"],
             "Failed to compile Nginx modules", cwd=source),
        _fs("connector:copy-module", "copy",
            "Failed to copy ModSecurity module to Nginx modules directory",
            source=source / "objs" / CONNECTOR_MODULE,
            destination=f"{conf / 'modules-enabled'}/"),
        _fs("connector:copy-config", "copy",
            "Failed to copy ModSecurity configuration",
            source=config.modsecurity_dir / "modsecurity.conf-recommended",
            destination=config.modsecurity_conf),
        _fs("connector:copy-unicode", "copy",
            "Failed to copy unicode mapping file",
            source=config.modsecurity_dir / "unicode.mapping",
            destination=conf / "unicode.mapping"),
    )


# ── Stage 5: OWASP Core Rule Set ────────────────────────────────


def crs_steps(config: InstallerConfig, clone: bool = True) -> ExecutionPlan:
    plan = ExecutionPlan(stage="crs")
    if clone:
        plan.add(
            _cmd("crs:clone", ["git", "clone", config.sources.crs, str(config.crs_dir)],
                 "Failed to clone OWASP CoreRuleSet repository"),
        )
    return plan.add(
        _fs("crs:setup-conf", "copy", "Failed to copy CRS setup configuration",
            source=config.crs_dir / "crs-setup.conf.example",
            destination=config.crs_dir / "crs-setup.conf"),
        _fs("crs:include", "append_once",
            "Failed to update ModSecurity configuration with CRS includes",
            path=config.modsecurity_conf,
            content=CRS_INCLUDE_BLOCK,
            marker=CRS_MARKER),
    )


# ── Stage 6: config test + restart ──────────────────────────────


def config_test_step() -> Action:
    return _cmd("service:config-test", ["nginx", "-t"],
                "Nginx configuration test failed. Please check your configuration.")


def restart_step() -> Action:
    return _cmd("service:restart", ["service", "nginx", "restart"],
                "Failed to restart Nginx service")


# ── Stage 7: cleanup ────────────────────────────────────────────


def build_artifact_patterns(config: InstallerConfig) -> list[str]:
    wd = config.work_dir
    return [
        str(wd / "nginx-*.tar.gz"),
        str(config.modsecurity_dir),
        str(config.connector_dir),
        str(wd / "nginx-*"),
    ]


def remove_build_files_step(config: InstallerConfig) -> Action:
    return _fs("cleanup:build-files", "remove", "Failed to remove build files",
               name="remove build files", patterns=build_artifact_patterns(config))


def cleanup_steps(config: InstallerConfig) -> ExecutionPlan:
    plan = ExecutionPlan(stage="cleanup")
    if not config.keep_build_files:
        plan.add(remove_build_files_step(config))
    return plan.add(
        _cmd("cleanup:apt-clean", ["apt-get", "clean"],
             "Failed to clean apt cache", env=APT_ENV),
        _cmd("cleanup:apt-autoremove", ["apt-get", "autoremove", "-y"],
             "Failed to autoremove packages", env=APT_ENV),
    )
