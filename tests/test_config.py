"""
Tests for configuration loading — precedence, CI override, YAML file.
"""

import textwrap
from datetime import datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from src.core.config.loader import (
    ConfigError,
    default_log_file,
    load_config,
    load_settings_file,
    parse_bool,
)
from src.core.models.config import DEFAULT_WORK_DIR, REQUIRED_NGINX_VERSION, InstallerConfig


@pytest.fixture
def settings_yml(tmp_path: Path) -> Path:
    content = textwrap.dedent("""\
        auto_install: true
        keep_build_files: true
        work_dir: /srv/build
        nginx_conf_dir: /usr/local/nginx/conf
        required_nginx_version: "1.25.0"
        sources:
          nginx_ppa: "ppa:nginx/stable"
    """)
    path = tmp_path / "installer.yml"
    path.write_text(content)
    return path


# ── parse_bool ───────────────────────────────────────────────────────


class TestParseBool:
    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes", "on", " True "])
    def test_true(self, value: str):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "off", ""])
    def test_false(self, value: str):
        assert parse_bool(value) is False

    def test_invalid(self):
        with pytest.raises(ConfigError, match="AUTO_INSTALL"):
            parse_bool("maybe", "AUTO_INSTALL")


# ── Defaults and precedence ──────────────────────────────────────────


class TestLoadConfig:
    def test_defaults(self, tmp_path: Path):
        config = load_config(environ={"MODSEC_LOG_DIR": str(tmp_path)})
        assert config.auto_install is False
        assert config.keep_build_files is False
        assert config.dry_run is False
        assert config.work_dir == DEFAULT_WORK_DIR
        assert config.required_nginx_version == REQUIRED_NGINX_VERSION
        assert config.automation_signal is None
        assert config.log_file.parent == tmp_path
        assert config.log_file.name.startswith("modsecurity_install_")

    def test_env_values(self, tmp_path: Path):
        config = load_config(
            environ={
                "AUTO_INSTALL": "true",
                "KEEP_BUILD_FILES": "1",
                "WORKDIR": str(tmp_path / "wd"),
            },
            log_file=tmp_path / "x.log",
        )
        assert config.auto_install is True
        assert config.keep_build_files is True
        assert config.work_dir == tmp_path / "wd"

    def test_cli_beats_env(self, tmp_path: Path):
        config = load_config(
            auto_install=False,
            keep_build_files=False,
            work_dir=tmp_path / "cli",
            environ={"AUTO_INSTALL": "true", "KEEP_BUILD_FILES": "true", "WORKDIR": "/env"},
            log_file=tmp_path / "x.log",
        )
        assert config.auto_install is False
        assert config.keep_build_files is False
        assert config.work_dir == tmp_path / "cli"

    def test_env_beats_file(self, settings_yml: Path, tmp_path: Path):
        config = load_config(
            config_path=settings_yml,
            environ={"AUTO_INSTALL": "false", "KEEP_BUILD_FILES": "false"},
            log_file=tmp_path / "x.log",
        )
        assert config.auto_install is False
        assert config.keep_build_files is False
        assert config.work_dir == Path("/srv/build")

    def test_file_values(self, settings_yml: Path, tmp_path: Path):
        config = load_config(config_path=settings_yml, environ={}, log_file=tmp_path / "x.log")
        assert config.auto_install is True
        assert config.keep_build_files is True
        assert config.nginx_conf_dir == Path("/usr/local/nginx/conf")
        assert config.required_nginx_version == "1.25.0"
        assert config.sources.nginx_ppa == "ppa:nginx/stable"
        # Unset source keys keep their defaults
        assert config.sources.crs.endswith("coreruleset.git")

    def test_invalid_env_bool(self):
        with pytest.raises(ConfigError, match="KEEP_BUILD_FILES"):
            load_config(environ={"KEEP_BUILD_FILES": "sometimes"})

    def test_dry_run(self, tmp_path: Path):
        assert load_config(dry_run=True, environ={}, log_file=tmp_path / "x.log").dry_run


# ── CI override ──────────────────────────────────────────────────────


class TestAutomationOverride:
    @pytest.mark.parametrize("signal", ["CI", "GITHUB_ACTIONS", "JENKINS_URL", "TRAVIS", "GITLAB_CI"])
    def test_forces_auto_install(self, signal: str, tmp_path: Path):
        config = load_config(environ={signal: "true"}, log_file=tmp_path / "x.log")
        assert config.auto_install is True
        assert config.automation_signal == signal

    def test_beats_explicit_false(self, tmp_path: Path):
        config = load_config(
            auto_install=False,
            environ={"CI": "true", "AUTO_INSTALL": "false"},
            log_file=tmp_path / "x.log",
        )
        assert config.auto_install is True

    def test_config_is_frozen(self, tmp_path: Path):
        config = load_config(environ={}, log_file=tmp_path / "x.log")
        with pytest.raises(ValidationError):
            config.auto_install = True


# ── YAML file ────────────────────────────────────────────────────────


class TestSettingsFile:
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings_file(tmp_path / "nope.yml")

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_settings_file(path).auto_install is None

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("auto_install: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings_file(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings_file(path)

    def test_unknown_key(self, tmp_path: Path):
        path = tmp_path / "extra.yml"
        path.write_text("colour: blue\n")
        with pytest.raises(ConfigError, match="Invalid installer configuration"):
            load_settings_file(path)

    def test_invalid_required_version(self, tmp_path: Path):
        path = tmp_path / "version.yml"
        path.write_text('required_nginx_version: "1.21.x"\n')
        with pytest.raises(ConfigError):
            load_config(config_path=path, environ={}, log_file=tmp_path / "x.log")


# ── Misc ─────────────────────────────────────────────────────────────


class TestDerivedPaths:
    def test_paths(self, tmp_path: Path):
        config = InstallerConfig(work_dir=tmp_path / "w", nginx_conf_dir=tmp_path / "n")
        assert config.modsecurity_dir == tmp_path / "w" / "ModSecurity"
        assert config.connector_dir == tmp_path / "w" / "ModSecurity-nginx"
        assert config.crs_dir == tmp_path / "n" / "owasp-crs"
        assert config.modsecurity_conf == tmp_path / "n" / "modsecurity.conf"

    def test_tarball_url(self):
        url = InstallerConfig().sources.nginx_tarball_url("1.24.0")
        assert url == "https://nginx.org/download/nginx-1.24.0.tar.gz"

    def test_default_log_file_name(self, tmp_path: Path):
        path = default_log_file(tmp_path, datetime(2024, 3, 1, 9, 5, 7))
        assert path.name.startswith("modsecurity_install_20240301_090507-")
        assert path.suffix == ".log"

    def test_log_files_unique(self, tmp_path: Path):
        now = datetime(2024, 3, 1)
        assert default_log_file(tmp_path, now) != default_log_file(tmp_path, now)
