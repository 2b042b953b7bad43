"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from src.adapters import AdapterRegistry, FilesystemAdapter, MockAdapter
from src.core.models.config import InstallerConfig
from src.core.models.profile import SystemProfile
from src.core.services.system_probe import AUTOMATION_SIGNALS

_INSTALLER_ENV = ("AUTO_INSTALL", "KEEP_BUILD_FILES", "WORKDIR", "MODSEC_LOG_DIR")


@pytest.fixture(autouse=True)
def clean_installer_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Tests never inherit CI signals or installer settings from the host."""
    for name in (*AUTOMATION_SIGNALS, *_INSTALLER_ENV):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "build"
    path.mkdir()
    return path


@pytest.fixture
def conf_dir(tmp_path: Path) -> Path:
    path = tmp_path / "nginx"
    path.mkdir()
    return path


@pytest.fixture
def config(work_dir: Path, conf_dir: Path, tmp_path: Path) -> InstallerConfig:
    """Interactive config pointing at temp directories."""
    return InstallerConfig(
        work_dir=work_dir,
        nginx_conf_dir=conf_dir,
        log_file=tmp_path / "install.log",
    )


@pytest.fixture
def ubuntu_profile() -> SystemProfile:
    """A supported host with no nginx installed."""
    return SystemProfile(
        distro="Ubuntu",
        os_version="22.04",
        os_major=22,
        os_minor=4,
        arch="x86_64",
    )


@pytest.fixture
def mock_adapter() -> MockAdapter:
    return MockAdapter()


@pytest.fixture
def mock_registry(mock_adapter: MockAdapter) -> AdapterRegistry:
    """Every step goes to ``mock_adapter``; nothing touches the host."""
    return AdapterRegistry(override=mock_adapter)


@pytest.fixture
def fs_registry() -> tuple[AdapterRegistry, MockAdapter]:
    """Real filesystem adapter, mocked commands."""
    commands = MockAdapter(adapter_name="command")
    registry = AdapterRegistry()
    registry.register(commands)
    registry.register(FilesystemAdapter())
    return registry, commands
