# archstrap/pacman.py
from typing import List

from archstrap.steps import CommandStep, FileStep, LineEditStep, Step

PACMAN_CONF = "/etc/pacman.conf"
MIRRORLIST = "/etc/pacman.d/mirrorlist"

CACHYOS_KEY = "F3B607488DB35A47"
CACHYOS_KEYSERVER = "keyserver.ubuntu.com"
CACHYOS_MIRROR = "https://mirror.cachyos.org/repo/x86_64/cachyos"
CACHYOS_PACKAGES = [
    f"{CACHYOS_MIRROR}/cachyos-keyring-20240331-1-any.pkg.tar.zst",
    f"{CACHYOS_MIRROR}/cachyos-mirrorlist-18-1-any.pkg.tar.zst",
    f"{CACHYOS_MIRROR}/cachyos-v3-mirrorlist-18-1-any.pkg.tar.zst",
    f"{CACHYOS_MIRROR}/pacman-7.0.0.r3.gf3211df-3.1-x86_64.pkg.tar.zst",
]
CACHYOS_REPOSITORIES = (
    "\n"
    "[cachyos]\n"
    "Include = /etc/pacman.d/cachyos-mirrorlist\n"
    "\n"
    "[cachyos-v3]\n"
    "Include = /etc/pacman.d/cachyos-v3-mirrorlist\n"
)


def _where(in_target: bool) -> str:
    return "new system" if in_target else "live system"


def pacman_tweak_steps(in_target: bool, parallel_downloads: int = 10) -> List[Step]:
    """Enables parallel downloads, colour, the candy progress bar and no download timeout."""
    where = _where(in_target)
    return [
        LineEditStep(
            description=f"Enabling parallel downloads in pacman.conf ({where})",
            path=PACMAN_CONF,
            pattern=r"^#ParallelDownloads.*$",
            replacement=f"ParallelDownloads = {parallel_downloads}",
            in_target=in_target,
        ),
        LineEditStep(
            description=f"Enabling colour output in pacman.conf ({where})",
            path=PACMAN_CONF,
            pattern=r"^#Color$",
            replacement="Color",
            in_target=in_target,
        ),
        LineEditStep(
            description=f"Adding DisableDownloadTimeout and ILoveCandy to pacman.conf ({where})",
            path=PACMAN_CONF,
            pattern=r"^# Misc options\n(?!DisableDownloadTimeout)",
            replacement="# Misc options\nDisableDownloadTimeout\nILoveCandy\n",
            in_target=in_target,
        ),
    ]


def cachyos_repo_steps(in_target: bool) -> List[Step]:
    """
    Trusts the CachyOS signing key, installs its keyring, mirrorlists and
    pacman build, and (re)writes the [cachyos] and [cachyos-v3] stanzas.
    """
    where = _where(in_target)
    return [
        CommandStep(
            description=f"Receiving CachyOS signing key ({where})",
            command=["pacman-key", "--recv-keys", CACHYOS_KEY, "--keyserver", CACHYOS_KEYSERVER],
            chroot=in_target,
        ),
        CommandStep(
            description=f"Locally signing CachyOS key ({where})",
            command=["pacman-key", "--lsign-key", CACHYOS_KEY],
            chroot=in_target,
        ),
        CommandStep(
            description=f"Installing CachyOS keyring and mirrorlists ({where})",
            command=["pacman", "-U", "--noconfirm"] + CACHYOS_PACKAGES,
            chroot=in_target,
        ),
        LineEditStep(
            description=f"Removing existing CachyOS repositories from pacman.conf ({where})",
            path=PACMAN_CONF,
            pattern=r"^\[cachyos(?:-v3)?\]\n(?:.+\n)*\n?",
            replacement="",
            in_target=in_target,
        ),
        FileStep(
            description=f"Adding CachyOS repositories to pacman.conf ({where})",
            path=PACMAN_CONF,
            content=CACHYOS_REPOSITORIES,
            append=True,
            in_target=in_target,
        ),
    ]


def mirror_refresh_step(in_target: bool = False) -> CommandStep:
    """Keeps the 20 most recently synchronised HTTPS mirrors, sorted by rate."""
    return CommandStep(
        description=f"Updating mirrorlist with the latest 20 mirrors ({_where(in_target)})",
        command=["reflector", "--latest", "20", "--protocol", "https", "--sort", "rate", "--save", MIRRORLIST],
        chroot=in_target,
    )


def refresh_databases_step(in_target: bool = False) -> CommandStep:
    return CommandStep(
        description=f"Refreshing package databases ({_where(in_target)})",
        command=["pacman", "-Syy"],
        chroot=in_target,
    )
