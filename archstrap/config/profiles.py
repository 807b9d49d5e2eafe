# archstrap/config/profiles.py

from typing import Dict, List

from pydantic import SecretStr

from archstrap.config.models import Firewall, Profile, Subvolume, Tuning, ZramConfig
from archstrap.utils.exceptions import ConfigError

# --- Shared building blocks ---

BASE_SUBVOLUMES = [
    Subvolume(name="@", mountpoint="/"),
    Subvolume(name="@home", mountpoint="/home"),
    Subvolume(name="@cache"),
    Subvolume(name="@log", mountpoint="/var/log"),
    Subvolume(name="@pkg", mountpoint="/var/cache/pacman/pkg"),
    Subvolume(name="@.snapshots", mountpoint="/.snapshots"),
]

WORKSTATION_SYSCTL: Dict[str, str] = {
    "vm.swappiness": "100",
    "vm.vfs_cache_pressure": "50",
    "vm.dirty_bytes": "268435456",
    "vm.page-cluster": "0",
    "vm.dirty_background_bytes": "134217728",
    "vm.dirty_expire_centisecs": "3000",
    "vm.dirty_writeback_centisecs": "1500",
    "kernel.nmi_watchdog": "0",
    "kernel.unprivileged_userns_clone": "1",
    "kernel.printk": "3 3 3 3",
    "kernel.kptr_restrict": "2",
    "kernel.kexec_load_disabled": "1",
    "net.core.somaxconn": "8192",
    "net.ipv4.tcp_fastopen": "3",
    "net.ipv4.tcp_congestion_control": "bbr",
    "net.ipv4.tcp_syncookies": "1",
    "net.ipv4.tcp_ecn": "1",
    "net.ipv4.tcp_timestamps": "0",
    "net.core.netdev_max_backlog": "16384",
    "net.ipv4.tcp_slow_start_after_idle": "0",
    "net.ipv4.tcp_rfc1337": "1",
    "fs.inotify.max_user_watches": "524288",
    "fs.file-max": "2097152",
    "fs.xfs.xfssyncd_centisecs": "10000",
    "kernel.sched_rt_runtime_us": "-1",
}

# Same tunables, a low swappiness and the amdgpu feature mask
CACHYOS_SYSCTL: Dict[str, str] = {
    **WORKSTATION_SYSCTL,
    "vm.swappiness": "10",
    "dev.amdgpu.ppfeaturemask": "0xffffffff",
}

# --- Profiles ---

WORKSTATION = Profile(
    name="workstation",
    description="(AMD workstation, development and desktop applications)",
    default_password=SecretStr("1981"),
    efi_size="+2G",
    btrfs_opts="defaults,noatime,compress=zstd:1,space_cache=v2,commit=120",
    subvolumes=BASE_SUBVOLUMES,
    base_packages=[
        "base", "base-devel", "linux", "linux-headers", "linux-firmware",
        "btrfs-progs",
        "xf86-video-amdgpu", "vulkan-radeon", "vulkan-tools",
        "libva-mesa-driver", "mesa-vdpau", "mesa",
        "vulkan-icd-loader", "libva-utils", "vdpauinfo", "radeontop",
        "networkmanager", "grub", "efibootmgr",
        "neovim", "glances", "git", "nano", "sudo",
        "gcc", "gdb", "cmake", "make", "mtools",
        "python", "python-pip",
        "nodejs", "npm", "git-lfs",
    ],
    tuning=Tuning(
        io_schedulers=True,
        nvidia_options=True,
        zram=ZramConfig(settings={
            "zram-size": "8192",
            "compression-algorithm": "zstd",
            "max-comp-streams": "8",
            "writeback": "0",
            "priority": "32767",
            "device-type": "swap",
        }),
        zram_recompress_rule=True,
        sysctl=WORKSTATION_SYSCTL,
    ),
    user_environment_on_install=True,
    aur_helper="paru",
    extra_packages=[
        "nodejs", "npm",
        "virt-manager", "qemu-desktop", "libvirt", "edk2-ovmf",
        "dnsmasq", "vde2", "bridge-utils", "dmidecode", "xclip",
        "rocm-hip-sdk", "rocm-opencl-sdk",
        "python-numpy", "python-pandas", "python-scipy",
        "python-matplotlib", "python-scikit-learn",
        "zram-generator", "thermald", "ananicy-cpp",
        "gstreamer-vaapi", "ffmpeg",
        "bluez", "bluez-utils",
        "docker", "ufw",
    ],
    aur_packages=[
        "brave-bin", "zoom",
        "android-ndk", "android-tools", "android-sdk", "android-studio",
        "postman-bin", "flutter", "youtube-music-bin",
        "notion-app-electron", "zed",
    ],
    shell_exports=[
        "export ANDROID_HOME=$HOME/Android/Sdk",
        "export PATH=$PATH:$ANDROID_HOME/tools:$ANDROID_HOME/platform-tools",
    ],
    services=[
        "thermald",
        "NetworkManager",
        "bluetooth",
        "systemd-zram-setup@zram0.service",
        "fstrim.timer",
        "docker",
        "ufw",
    ],
    firewall=Firewall(allow=["ssh", "http", "https", "1714:1764/udp", "1714:1764/tcp"]),
)

CACHYOS = Profile(
    name="cachyos",
    description="(CachyOS kernels and repositories, minimal base)",
    prompt_password=True,
    efi_size="+1G",
    btrfs_opts=(
        "defaults,noatime,compress=zstd:1,compress-force=zstd,space_cache=v2,commit=120,"
        "discard=async,autodefrag,clear_cache,ssd,nodiratime"
    ),
    subvolumes=BASE_SUBVOLUMES + [
        Subvolume(name="@srv", mountpoint="/srv"),
        Subvolume(name="@tmp", mountpoint="/tmp"),
    ],
    base_packages=[
        "base", "base-devel",
        "linux", "linux-firmware",
        "linux-cachyos-autofdo", "linux-cachyos-autofdo-headers",
        "cachyos-linux", "cachyos-linux-headers",
        "networkmanager", "grub", "efibootmgr",
        "btrfs-progs", "reflector", "sudo", "git", "nano",
        "xf86-video-amdgpu",
    ],
    cachyos_repo=True,
    mirror_refresh=True,
    tuning=Tuning(
        amdgpu_options=True,
        powersave_rules=True,
        zram=ZramConfig(settings={
            "zram-size": "ram",
            "compression-algorithm": "zstd",
            "max-comp-streams": "auto",
            "swap-priority": "100",
            "fs-type": "swap",
        }),
        sysctl_file="99-system-tune.conf",
        sysctl=CACHYOS_SYSCTL,
        btrfs_scrub=True,
    ),
    aur_helper="paru",
    services=["NetworkManager", "fstrim.timer"],
)

PROFILES: Dict[str, Profile] = {p.name: p for p in (WORKSTATION, CACHYOS)}
DEFAULT_PROFILE = CACHYOS.name


def profile_names() -> List[str]:
    return sorted(PROFILES)


def get_profile(name: str) -> Profile:
    """Returns a private copy of the named profile."""
    try:
        return PROFILES[name].model_copy(deep=True)
    except KeyError:
        raise ConfigError(f"Unknown profile '{name}'. Available profiles: {', '.join(profile_names())}")
