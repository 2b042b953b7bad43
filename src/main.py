"""
ModSecurity installer — CLI entrypoint.

Usage:
    python -m src.main --help
    sudo python -m src.main
    sudo AUTO_INSTALL=true KEEP_BUILD_FILES=true python -m src.main
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from src import __version__
from src.core.config.loader import ConfigError, load_config
from src.core.observability.logging_config import setup_logging


def _confirm(question: str) -> bool:
    return click.confirm(question, default=False)


@click.command()
@click.version_option(version=__version__, prog_name="modsec-install")
@click.option(
    "--auto-install/--no-auto-install",
    default=None,
    help="Never prompt; install nginx when needed. [env: AUTO_INSTALL]",
)
@click.option(
    "--keep-build-files/--no-keep-build-files",
    default=None,
    help="Keep cloned sources and archives after the run. [env: KEEP_BUILD_FILES]",
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Build directory for sources. [env: WORKDIR]",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Optional YAML file with installer settings.",
)
@click.option("--dry-run", is_flag=True, help="Validate every step but execute nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print a JSON run summary.")
@click.option("--debug", is_flag=True, help="Show DEBUG lines on the console.")
def cli(
    auto_install: bool | None,
    keep_build_files: bool | None,
    work_dir: Path | None,
    config_path: Path | None,
    dry_run: bool,
    as_json: bool,
    debug: bool,
) -> None:
    """Install ModSecurity v3, the nginx connector and the OWASP Core Rule Set."""
    try:
        config = load_config(
            auto_install=auto_install,
            keep_build_files=keep_build_files,
            work_dir=work_dir,
            config_path=config_path,
            dry_run=dry_run,
        )
    except ConfigError as e:
        click.secho(f"[ERROR] {e}", fg="red", err=True)
        sys.exit(1)

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level="DEBUG" if debug else "INFO",
        log_file=config.log_file,
    )

    from src.core.use_cases.install import run_install

    result = run_install(
        config,
        prompt=None if config.auto_install else _confirm,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))

    sys.exit(result.exit_code)


if __name__ == "__main__":
    cli()
