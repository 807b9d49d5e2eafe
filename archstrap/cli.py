# archstrap/cli.py
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import click
import typer

from archstrap import core
from archstrap.config.loader import load_config
from archstrap.config.profiles import DEFAULT_PROFILE, profile_names
from archstrap.pipeline import run_install, run_setup
from archstrap.steps import StepRunner
from archstrap.utils.exceptions import InstallerError, ShellCommandError
from archstrap.utils.executor import Executor
from archstrap.utils.logger import initialize_app_logger
from archstrap.utils.system import check_root, check_uefi

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    # Unknown options end up in ctx.args so they can be reported with exit code 1
    "ignore_unknown_options": True,
    "allow_extra_args": True,
}

app = typer.Typer(add_completion=False)


def _usage_error(ctx: typer.Context, message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    typer.echo(ctx.get_help())
    raise typer.Exit(1)


@app.command(context_settings=CONTEXT_SETTINGS)
def main(
    ctx: typer.Context,
    install: bool = typer.Option(False, "--install", "-i", help="Run Arch Linux installation"),
    setup: bool = typer.Option(False, "--setup", "-s", help="Setup user configuration"),
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", "-p",
                                help=f"Installation profile: {', '.join(profile_names())}"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML file overriding profile values"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log every command without executing it"),
    log_dir: str = typer.Option("logs", "--log-dir", help="Directory for the detailed log file"),
):
    """
    Install and configure Arch Linux on a btrfs root.
    """
    if ctx.args:
        _usage_error(ctx, f"Unknown option: {ctx.args[0]}")
    if not install and not setup:
        _usage_error(ctx, "No arguments provided")
    if install and setup:
        _usage_error(ctx, "--install and --setup cannot be combined")

    core.app_logger = initialize_app_logger(app_name="archstrap", log_directory=log_dir)
    log = core.app_logger

    try:
        if not dry_run:
            check_root()
            if install:
                check_uefi()

        config = load_config(profile, config_file, console=log.console, need_password=install)
        typer.echo(config.display_summary())

        executor = Executor(logger_instance=log, chroot_path=config.mount_root, dry_run=dry_run)
        if dry_run:
            log.warning("Running in DRY-RUN mode. Nothing will be executed or written.")

        runner = StepRunner(executor)
        if install:
            run_install(runner, config)
        else:
            run_setup(runner, config)

    except InstallerError as e:
        log.error(str(e))
        raise typer.Exit(e.exit_code)
    except ShellCommandError as e:
        log.error(f"Aborted at command '{e.command}' (exit code {e.exit_code}). See the log file for details.")
        raise typer.Exit(1)


def run(argv: Optional[List[str]] = None) -> NoReturn:
    """Console entry point. Every usage error exits with code 1."""
    try:
        rv = app(args=argv, prog_name="archstrap", standalone_mode=False)
    except click.UsageError as e:
        typer.echo(f"Error: {e.format_message()}", err=True)
        if e.ctx is not None:
            typer.echo(e.ctx.get_help())
        sys.exit(1)
    except click.Abort:
        typer.echo("Aborted!", err=True)
        sys.exit(1)

    sys.exit(rv if isinstance(rv, int) else 0)
