from typing import List

from archstrap.config.models import InstallerConfig
from archstrap.pacman import cachyos_repo_steps, mirror_refresh_step, pacman_tweak_steps, refresh_databases_step
from archstrap.steps import CommandStep, Step, StepRunner
from archstrap.utils.exceptions import PackageInstallError, ShellCommandError


def base_packages(config: InstallerConfig) -> List[str]:
    """The profile's base package list plus the CPU microcode package."""
    packages = list(config.profile.base_packages)
    if config.microcode_package not in packages:
        packages.append(config.microcode_package)
    return packages


def live_system_steps(config: InstallerConfig) -> List[Step]:
    """Prepares pacman on the live ISO before pacstrap, depending on the profile."""
    profile = config.profile
    steps: List[Step] = []

    if profile.cachyos_repo:
        steps += pacman_tweak_steps(in_target=False)
        steps += cachyos_repo_steps(in_target=False)
    if profile.mirror_refresh:
        steps.append(mirror_refresh_step())
    if profile.cachyos_repo or profile.mirror_refresh:
        steps.append(refresh_databases_step())

    return steps


def pacstrap_step(config: InstallerConfig) -> CommandStep:
    packages = base_packages(config)
    return CommandStep(
        description=f"Installing {len(packages)} base packages into {config.mount_root}",
        command=["pacstrap", config.mount_root] + packages,
    )


def install_base_system(runner: StepRunner, config: InstallerConfig) -> None:
    """
    Installs the base package list into the new root.

    Raises:
        PackageInstallError: pacstrap returned non-zero. Nothing is rolled back.
    """
    runner.logger.section("Installing base system")

    runner.run(live_system_steps(config))

    try:
        runner.run_step(pacstrap_step(config))
    except ShellCommandError as e:
        raise PackageInstallError("Failed to install base packages") from e
