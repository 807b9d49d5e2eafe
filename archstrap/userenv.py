import shlex
from typing import List

from archstrap.config.models import Firewall, InstallerConfig
from archstrap.steps import CommandStep, FileStep, Step, StepRunner

AUR_BASE_URL = "https://aur.archlinux.org"


def as_user(username: str, command: List[str]) -> List[str]:
    """Runs a command as the created user, with that user's HOME."""
    return ["sudo", "-H", "-u", username] + command


def aur_helper_steps(config: InstallerConfig) -> List[Step]:
    helper = config.profile.aur_helper
    build_dir = f"{config.home_dir}/{helper}"

    return [
        CommandStep(
            description=f"Cloning {helper} from the AUR",
            command=as_user(config.username, ["git", "clone", f"{AUR_BASE_URL}/{helper}.git", build_dir]),
            chroot=True,
        ),
        CommandStep(
            description=f"Building and installing {helper}",
            command=as_user(config.username, [
                "bash", "-c", f"cd {shlex.quote(build_dir)} && makepkg -si --noconfirm",
            ]),
            chroot=True,
        ),
    ]


def package_steps(config: InstallerConfig) -> List[Step]:
    profile = config.profile
    steps: List[Step] = []

    if profile.extra_packages:
        steps.append(CommandStep(
            description=f"Installing {len(profile.extra_packages)} additional packages",
            command=["pacman", "-Sy", "--needed", "--noconfirm"] + profile.extra_packages,
            chroot=True,
        ))
    if profile.aur_packages and profile.aur_helper:
        steps.append(CommandStep(
            description=f"Installing {len(profile.aur_packages)} user applications with {profile.aur_helper}",
            command=as_user(config.username, [profile.aur_helper, "-S", "--needed", "--noconfirm"] + profile.aur_packages),
            chroot=True,
        ))

    return steps


def shell_steps(config: InstallerConfig) -> List[Step]:
    profile = config.profile
    steps: List[Step] = []

    if profile.shell_exports:
        bashrc = f"{config.home_dir}/.bashrc"
        steps += [
            FileStep(
                description=f"Adding {len(profile.shell_exports)} environment exports to {bashrc}",
                path=bashrc,
                content="".join(f"{line}\n" for line in profile.shell_exports),
                append=True,
            ),
            CommandStep(
                description=f"Restoring ownership of {bashrc}",
                command=["chown", f"{config.username}:{config.username}", bashrc],
                chroot=True,
            ),
        ]

    for key, value in (("user.name", profile.git_user), ("user.email", profile.git_email)):
        if value:
            steps.append(CommandStep(
                description=f"Setting git {key} for {config.username}",
                command=as_user(config.username, ["git", "config", "--global", key, value]),
                chroot=True,
            ))

    return steps


def service_steps(services: List[str]) -> List[CommandStep]:
    return [
        CommandStep(description=f"Enabling {service}", command=["systemctl", "enable", service], chroot=True)
        for service in services
    ]


def firewall_steps(firewall: Firewall) -> List[CommandStep]:
    """Default policies, the allow-list, logging, then enabling ufw."""
    steps = [
        CommandStep(description=f"Firewall: default {firewall.incoming} incoming",
                    command=["ufw", "default", firewall.incoming, "incoming"], chroot=True),
        CommandStep(description=f"Firewall: default {firewall.outgoing} outgoing",
                    command=["ufw", "default", firewall.outgoing, "outgoing"], chroot=True),
    ]
    steps += [
        CommandStep(description=f"Firewall: allow {rule}", command=["ufw", "allow", rule], chroot=True)
        for rule in firewall.allow
    ]
    if firewall.logging:
        steps.append(CommandStep(description="Firewall: logging on", command=["ufw", "logging", "on"], chroot=True))
    steps.append(CommandStep(description="Enabling firewall", command=["ufw", "--force", "enable"], chroot=True))
    return steps


def user_environment_steps(config: InstallerConfig) -> List[Step]:
    profile = config.profile
    steps: List[Step] = []

    if profile.aur_helper:
        steps += aur_helper_steps(config)
    steps += package_steps(config)
    steps += shell_steps(config)
    return steps


def setup_user_environment(runner: StepRunner, config: InstallerConfig) -> None:
    runner.logger.section("Setting up user environment")
    runner.run(user_environment_steps(config))


def configure_services(runner: StepRunner, config: InstallerConfig) -> None:
    runner.logger.section("Configuring services")
    runner.run(service_steps(config.profile.services))
    if config.profile.firewall is not None:
        runner.run(firewall_steps(config.profile.firewall))
