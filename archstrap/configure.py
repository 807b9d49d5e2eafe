from typing import List

from pydantic import SecretStr

from archstrap.config.models import InstallerConfig
from archstrap.executors.disk import DiskManager
from archstrap.steps import CommandStep, FileStep, LineEditStep, Step, StepRunner

SUDOERS = "/etc/sudoers"
GRUB_DEFAULTS = "/etc/default/grub"
ADMIN_GROUP = "wheel"


def hosts_file(hostname: str) -> str:
    return (
        "# Standard host addresses\n"
        "127.0.0.1  localhost\n"
        "::1        localhost ip6-localhost ip6-loopback\n"
        "ff02::1    ip6-allnodes\n"
        "ff02::2    ip6-allrouters\n"
        "# This host address\n"
        f"127.0.1.1  {hostname}\n"
    )


def _sed_escape(value: str) -> str:
    return value.replace("\\", "\\\\")


def set_password_step(user: str, password: SecretStr) -> CommandStep:
    """chpasswd inside the new root, the password is passed on stdin only."""
    return CommandStep(
        description=f"Setting password for {user}",
        command=["chpasswd"],
        chroot=True,
        stdin=SecretStr(f"{user}:{password.get_secret_value()}\n"),
    )


def system_steps(config: InstallerConfig) -> List[Step]:
    """
    Every configuration step of the new system, in execution order.
    There is no conditional logic: each step always runs.
    """
    profile = config.profile

    return [
        DiskManager(config.mount_root).generate_fstab(),

        # Time
        CommandStep(
            description=f"Setting timezone to {config.timezone}",
            command=["ln", "-sf", f"/usr/share/zoneinfo/{config.timezone}", "/etc/localtime"],
            chroot=True,
        ),
        CommandStep(description="Syncing hardware clock", command=["hwclock", "--systohc"], chroot=True),

        # Locale
        FileStep(description=f"Enabling {config.locale} in /etc/locale.gen",
                 path="/etc/locale.gen", content=f"{config.locale} UTF-8\n", append=True),
        CommandStep(description="Generating locales", command=["locale-gen"], chroot=True),
        FileStep(description="Writing /etc/locale.conf",
                 path="/etc/locale.conf", content=f"LANG={config.locale}\n"),

        # Network identity
        FileStep(description=f"Setting hostname to {config.hostname}",
                 path="/etc/hostname", content=f"{config.hostname}\n"),
        FileStep(description="Writing /etc/hosts", path="/etc/hosts", content=hosts_file(config.hostname)),

        # Accounts
        set_password_step("root", config.password),
        CommandStep(
            description=f"Creating user {config.username}",
            command=["useradd", "-m", "-G", ADMIN_GROUP, "-s", "/bin/bash", config.username],
            chroot=True,
        ),
        set_password_step(config.username, config.password),
        LineEditStep(
            description=f"Allowing group {ADMIN_GROUP} to use sudo",
            path=SUDOERS,
            pattern=rf"^# %{ADMIN_GROUP} ALL=\(ALL:ALL\) ALL",
            replacement=f"%{ADMIN_GROUP} ALL=(ALL:ALL) ALL",
        ),

        # Bootloader
        LineEditStep(
            description="Setting kernel command line in /etc/default/grub",
            path=GRUB_DEFAULTS,
            pattern=r'^GRUB_CMDLINE_LINUX_DEFAULT=".*"',
            replacement=f'GRUB_CMDLINE_LINUX_DEFAULT="{_sed_escape(profile.grub_cmdline)}"',
        ),
        LineEditStep(
            description=f"Setting boot menu timeout to {profile.grub_timeout}s",
            path=GRUB_DEFAULTS,
            pattern=r"^GRUB_TIMEOUT=.*",
            replacement=f"GRUB_TIMEOUT={profile.grub_timeout}",
        ),
        CommandStep(
            description="Installing GRUB to the EFI partition",
            command=["grub-install", "--target=x86_64-efi", "--efi-directory=/boot/efi", "--bootloader-id=ARCH"],
            chroot=True,
        ),
        CommandStep(description="Generating GRUB menu",
                    command=["grub-mkconfig", "-o", "/boot/grub/grub.cfg"], chroot=True),
        CommandStep(description="Regenerating initramfs", command=["mkinitcpio", "-P"], chroot=True),
    ]


def configure_system(runner: StepRunner, config: InstallerConfig) -> None:
    runner.logger.section("Configuring system")
    runner.run(system_steps(config))
