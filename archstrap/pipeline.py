from typing import Callable

import typer

from archstrap.base import install_base_system
from archstrap.config.models import InstallerConfig
from archstrap.configure import configure_system
from archstrap.disk import prepare_disk
from archstrap.executors.disk import DiskManager
from archstrap.filesystem import build_filesystems, plan_filesystems
from archstrap.optimize import apply_optimizations
from archstrap.steps import StepRunner
from archstrap.userenv import configure_services, setup_user_environment
from archstrap.utils.exceptions import ConfigError


def run_install(runner: StepRunner, config: InstallerConfig,
                getchar: Callable[[], str] = typer.getchar) -> None:
    """
    The full installation, strictly in order. The first failing stage raises
    and every later stage is skipped; completed stages are left as they are.
    """
    runner.logger.info(f"Starting Arch Linux installation ({config.profile.name} profile)...")

    # The drive is only wiped once the mount plan is known to be valid
    filesystem_plan = plan_filesystems(config)

    prepare_disk(runner, config, getchar=getchar)
    build_filesystems(runner, config, filesystem_plan)
    install_base_system(runner, config)
    configure_system(runner, config)
    apply_optimizations(runner, config)

    if config.profile.user_environment_on_install:
        setup_user_environment(runner, config)
        configure_services(runner, config)

    runner.run_step(DiskManager(config.mount_root).unmount(config.mount_root, recursive=True))

    runner.logger.success("Installation completed! You can now reboot your system.")


def run_setup(runner: StepRunner, config: InstallerConfig) -> None:
    """Runs the user environment and services stages against an installed, mounted system."""
    if not config.profile.has_user_environment:
        raise ConfigError(f"Profile '{config.profile.name}' defines no user environment or services to set up")

    runner.logger.info(f"Setting up user environment in {config.mount_root} ({config.profile.name} profile)...")

    setup_user_environment(runner, config)
    configure_services(runner, config)

    runner.logger.success("User setup completed!")
