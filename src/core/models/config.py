"""
Installer configuration models.

``InstallerSettings`` is the optional YAML file schema (every key
optional). ``InstallerConfig`` is the resolved, frozen configuration
built once at startup and passed through the whole pipeline.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.services.versioning import parse_version

DEFAULT_WORK_DIR = Path("/opt/modsecurity-build")
DEFAULT_NGINX_CONF_DIR = Path("/etc/nginx")
DEFAULT_LOG_DIR = Path("/tmp")
REQUIRED_NGINX_VERSION = "1.21.5"


class SourceRepositories(BaseModel):
    """Where the sources and packages come from."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    modsecurity: str = "https://github.com/owasp-modsecurity/ModSecurity.git"
    connector: str = "https://github.com/owasp-modsecurity/ModSecurity-nginx.git"
    crs: str = "https://github.com/coreruleset/coreruleset.git"
    nginx_ppa: str = "ppa:ondrej/nginx"
    nginx_download_url: str = "https://nginx.org/download/nginx-{version}.tar.gz"

    def nginx_tarball_url(self, version: str) -> str:
        return self.nginx_download_url.format(version=version)


class InstallerSettings(BaseModel):
    """Schema of the optional YAML config file."""

    model_config = ConfigDict(extra="forbid")

    auto_install: bool | None = None
    keep_build_files: bool | None = None
    work_dir: Path | None = None
    log_dir: Path | None = None
    nginx_conf_dir: Path | None = None
    required_nginx_version: str | None = None
    sources: SourceRepositories | None = None


class InstallerConfig(BaseModel):
    """Resolved installer configuration. Never mutated mid-run."""

    model_config = ConfigDict(frozen=True)

    auto_install: bool = False
    automation_signal: str | None = None    # CI variable that forced auto_install
    keep_build_files: bool = False
    dry_run: bool = False
    work_dir: Path = DEFAULT_WORK_DIR
    nginx_conf_dir: Path = DEFAULT_NGINX_CONF_DIR
    log_file: Path | None = None
    required_nginx_version: str = REQUIRED_NGINX_VERSION
    sources: SourceRepositories = Field(default_factory=SourceRepositories)

    @field_validator("required_nginx_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        parse_version(value)
        return value

    @property
    def modsecurity_dir(self) -> Path:
        return self.work_dir / "ModSecurity"

    @property
    def connector_dir(self) -> Path:
        return self.work_dir / "ModSecurity-nginx"

    @property
    def crs_dir(self) -> Path:
        return self.nginx_conf_dir / "owasp-crs"

    @property
    def modsecurity_conf(self) -> Path:
        return self.nginx_conf_dir / "modsecurity.conf"
