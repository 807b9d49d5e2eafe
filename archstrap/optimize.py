from typing import Dict, List

from archstrap.config.models import InstallerConfig, Tuning
from archstrap.pacman import cachyos_repo_steps, mirror_refresh_step, pacman_tweak_steps, refresh_databases_step
from archstrap.steps import CommandStep, FileStep, Step, StepRunner

# --- Fixed tuning files ---

IO_SCHEDULER_RULES = """\
# HDD
ACTION=="add|change", KERNEL=="sd[a-z]*", ATTR{queue/rotational}=="1", \\
    ATTR{queue/scheduler}="bfq"

# SSD
ACTION=="add|change", KERNEL=="sd[a-z]*|mmcblk[0-9]*", ATTR{queue/rotational}=="0", \\
    ATTR{queue/scheduler}="mq-deadline"

# NVMe SSD
ACTION=="add|change", KERNEL=="nvme[0-9]*", ATTR{queue/rotational}=="0", \\
    ATTR{queue/scheduler}="none"
"""

NVIDIA_OPTIONS = """\
options nvidia NVreg_UsePageAttributeTable=1 \\
    NVreg_InitializeSystemMemoryAllocations=0 \\
    NVreg_DynamicPowerManagement=0x02 \\
    NVreg_EnableGpuFirmware=0
options nvidia_drm modeset=1 fbdev=1
"""

AMDGPU_OPTIONS = """\
options amdgpu ppfeaturemask=0xffffffff
options amdgpu dpm=1
options amdgpu audio=1
"""

POWERSAVE_RULES = """\
ACTION=="add", SUBSYSTEM=="pci", ATTR{power/control}="auto"
ACTION=="add", SUBSYSTEM=="usb", ATTR{power/control}="auto"
"""

ZRAM_RECOMPRESS_RULES = """\
ACTION=="add", KERNEL=="zram[0-9]*", ATTR{recomp_algorithm}="algo=lz4 priority=1", \\
  RUN+="/sbin/sh -c echo 'type=huge' > /sys/block/%k/recompress"

TEST!="/dev/zram0", GOTO="zram_end"

SYSCTL{vm.swappiness}="150"

LABEL="zram_end"
"""

BTRFS_SCRUB_SERVICE = """\
[Unit]
Description=BTRFS periodic scrub
After=local-fs.target
[Service]
Type=oneshot
ExecStart=/usr/bin/btrfs scrub start -B /
"""

BTRFS_SCRUB_TIMER = """\
[Unit]
Description=BTRFS periodic scrub timer
[Timer]
OnCalendar=monthly
Persistent=true
[Install]
WantedBy=timers.target
"""

# Target paths inside the new system
PATHS = {
    "io_schedulers": "/usr/lib/udev/rules.d/60-ioschedulers.rules",
    "nvidia_options": "/usr/lib/modprobe.d/nvidia.conf",
    "amdgpu_options": "/etc/modprobe.d/amdgpu.conf",
    "powersave_rules": "/etc/udev/rules.d/81-powersave.rules",
    "zram": "/etc/systemd/zram-generator.conf",
    "zram_recompress_rule": "/usr/lib/udev/rules.d/30-zram.rules",
    "btrfs_scrub_service": "/etc/systemd/system/btrfs-scrub.service",
    "btrfs_scrub_timer": "/etc/systemd/system/btrfs-scrub.timer",
}


def render_sysctl(parameters: Dict[str, str]) -> str:
    return "".join(f"{key} = {value}\n" for key, value in parameters.items())


def tuning_files(tuning: Tuning) -> List[FileStep]:
    """The tuning files enabled in a profile, as FileSteps. No value is range checked."""
    files: List[FileStep] = []

    def add(path: str, content: str, what: str) -> None:
        files.append(FileStep(description=f"Writing {what} ({path})", path=path, content=content))

    if tuning.io_schedulers:
        add(PATHS["io_schedulers"], IO_SCHEDULER_RULES, "I/O scheduler rules")
    if tuning.nvidia_options:
        add(PATHS["nvidia_options"], NVIDIA_OPTIONS, "NVIDIA driver options")
    if tuning.amdgpu_options:
        add(PATHS["amdgpu_options"], AMDGPU_OPTIONS, "AMDGPU driver options")
    if tuning.powersave_rules:
        add(PATHS["powersave_rules"], POWERSAVE_RULES, "PCI/USB power saving rules")
    if tuning.zram is not None:
        add(PATHS["zram"], tuning.zram.render(), "zram generator config")
    if tuning.zram_recompress_rule:
        add(PATHS["zram_recompress_rule"], ZRAM_RECOMPRESS_RULES, "zram recompression rule")
    if tuning.sysctl:
        add(f"/etc/sysctl.d/{tuning.sysctl_file}", render_sysctl(tuning.sysctl), "kernel parameters")
    if tuning.btrfs_scrub:
        add(PATHS["btrfs_scrub_service"], BTRFS_SCRUB_SERVICE, "btrfs scrub service")
        add(PATHS["btrfs_scrub_timer"], BTRFS_SCRUB_TIMER, "btrfs scrub timer")

    return files


def optimization_steps(config: InstallerConfig) -> List[Step]:
    profile = config.profile
    steps: List[Step] = []

    if profile.cachyos_repo:
        steps += cachyos_repo_steps(in_target=True)
    if profile.mirror_refresh:
        steps.append(mirror_refresh_step(in_target=True))
    if profile.cachyos_repo or profile.mirror_refresh:
        steps.append(refresh_databases_step(in_target=True))
    if profile.pacman_tweaks:
        steps += pacman_tweak_steps(in_target=True)

    steps += tuning_files(profile.tuning)

    if profile.tuning.btrfs_scrub:
        steps.append(CommandStep(
            description="Enabling monthly btrfs scrub",
            command=["systemctl", "enable", "btrfs-scrub.timer"],
            chroot=True,
        ))

    return steps


def apply_optimizations(runner: StepRunner, config: InstallerConfig) -> None:
    runner.logger.section("Applying system optimizations")
    runner.run(optimization_steps(config))
