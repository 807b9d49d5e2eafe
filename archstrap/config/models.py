# archstrap/config/models.py

import tomlkit
import typer
from pydantic import BaseModel, Field, SecretStr, computed_field
from typing import Dict, List, Optional, Literal, Any
from pathlib import Path

from archstrap.utils.exceptions import ConfigError

# --- 1. Sub-Models ---

class Subvolume(BaseModel):
    """A btrfs subvolume and where it is mounted below the new root."""
    name: str
    mountpoint: Optional[str] = Field(None, description="Absolute path inside the new system. None: created, never mounted.")

    @property
    def relative_mountpoint(self) -> Optional[str]:
        """Mountpoint without its leading slash, ready to be joined onto the mount root."""
        if self.mountpoint is None:
            return None
        return self.mountpoint.strip("/")


class ZramConfig(BaseModel):
    """Content of /etc/systemd/zram-generator.conf."""
    device: str = "zram0"
    settings: Dict[str, str]

    def render(self) -> str:
        lines = [f"[{self.device}]"] + [f"{key} = {value}" for key, value in self.settings.items()]
        return "\n".join(lines) + "\n"


class Tuning(BaseModel):
    """Which tuning files the optimizer writes into the new root."""
    io_schedulers: bool = False
    nvidia_options: bool = False
    amdgpu_options: bool = False
    powersave_rules: bool = False
    zram: Optional[ZramConfig] = Field(None)
    zram_recompress_rule: bool = False
    sysctl_file: str = "99-kernel-optimization.conf"
    sysctl: Dict[str, str] = Field(default_factory=dict)
    btrfs_scrub: bool = False


class Firewall(BaseModel):
    """ufw policy applied by the services configurator."""
    incoming: Literal["deny", "allow", "reject"] = "deny"
    outgoing: Literal["deny", "allow", "reject"] = "allow"
    allow: List[str] = Field(default_factory=list)
    logging: bool = True


class Profile(BaseModel):
    """
    A named installation variant. Everything the original script variants
    disagree on (partition size, subvolumes, packages, tuning) lives here.
    """
    name: str
    description: str = ""
    prompt_password: bool = False
    default_password: Optional[SecretStr] = Field(None)

    # Disk and filesystem
    efi_size: str = "+1G"
    btrfs_opts: str = "defaults,noatime,compress=zstd:1,space_cache=v2,commit=120"
    subvolumes: List[Subvolume]

    # Base system
    base_packages: List[str]
    pacman_tweaks: bool = True
    cachyos_repo: bool = False
    mirror_refresh: bool = False

    # Bootloader
    grub_cmdline: str = "nowatchdog nvme_load=YES zswap.enabled=0 splash loglevel=3"
    grub_timeout: int = 2

    tuning: Tuning = Field(default_factory=Tuning)

    # User environment / services
    user_environment_on_install: bool = False
    aur_helper: Optional[str] = Field(None)
    extra_packages: List[str] = Field(default_factory=list)
    aur_packages: List[str] = Field(default_factory=list)
    shell_exports: List[str] = Field(default_factory=list)
    git_user: Optional[str] = Field(None)
    git_email: Optional[str] = Field(None)
    services: List[str] = Field(default_factory=list)
    firewall: Optional[Firewall] = Field(None)

    @property
    def has_user_environment(self) -> bool:
        return bool(self.aur_helper or self.extra_packages or self.aur_packages
                    or self.shell_exports or self.services or self.firewall)


# --- 2. Top-Level Root Model ---

class InstallerConfig(BaseModel):
    """The flat installation parameters, created once per run and handed to every stage."""

    drive: str = "/dev/nvme0n1"
    hostname: str = "archlinux"
    username: str = "c0d3h01"
    password: SecretStr
    timezone: str = "Asia/Kolkata"
    locale: str = "en_US.UTF-8"
    cpu_vendor: Literal["amd", "intel"] = "amd"
    btrfs_opts: str
    mount_root: str = "/mnt"
    profile: Profile

    @computed_field
    @property
    def efi_part(self) -> str:
        return f"{self.drive}p1"

    @computed_field
    @property
    def root_part(self) -> str:
        return f"{self.drive}p2"

    @property
    def home_dir(self) -> str:
        return f"/home/{self.username}"

    @property
    def microcode_package(self) -> str:
        return f"{self.cpu_vendor}-ucode"

    @staticmethod
    def read_toml(path: Path) -> Dict[str, Any]:
        """Reads a TOML override file into plain Python containers."""
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Error reading configuration file: {e}")

        try:
            return tomlkit.parse(content).unwrap()
        except Exception as e:
            raise ConfigError(f"Invalid TOML format in file: {e}")

    # Helper to safely access sensitive fields (Pydantic V2)
    @staticmethod
    def _safe_str(s: Optional[SecretStr]) -> str:
        if not s or not s.get_secret_value():
            return "N/A"
        return "*" * 8

    def display_summary(self) -> str:
        """Generates the summary shown before anything on the disk is touched."""
        s = typer.style("\nGENERAL CONFIGURATION SUMMARY", fg=typer.colors.BLUE, bold=True) + "\n"
        s += "----------------------------------------\n"
        s += f"  Profile:            {self.profile.name} {self.profile.description}\n"
        s += f"  Hostname:           {self.hostname}\n"
        s += f"  User:               {self.username} (Pwd={self._safe_str(self.password)})\n"
        s += f"  Timezone:           {self.timezone}\n"
        s += f"  Locale:             {self.locale} | CPU: {self.cpu_vendor}\n"

        s += typer.style("\nDISK & PARTITION PLAN", fg=typer.colors.BLUE, bold=True) + "\n"
        s += "----------------------------------------\n"
        s += f"  Device: {typer.style(self.drive, fg=typer.colors.CYAN)} ({typer.style('WIPING', fg=typer.colors.RED)})\n"
        s += f"  - P1: EFI        ({self.profile.efi_size.lstrip('+'):<5}) -> FS: fat32 Mount: /boot/efi  {self.efi_part}\n"
        s += f"  - P2: ROOT       (rest ) -> FS: btrfs Mount: /          {self.root_part}\n"
        s += f"    ╰─ {typer.style('Btrfs Subvolumes', bold=True)} ({len(self.profile.subvolumes)} total):\n"
        for subvol in self.profile.subvolumes:
            s += f"       • {subvol.name:<12} {subvol.mountpoint or '(not mounted)'}\n"
        s += f"    Options: {self.btrfs_opts}\n"

        s += typer.style("\nPACKAGES & SERVICES", fg=typer.colors.BLUE, bold=True) + "\n"
        s += "----------------------------------------\n"
        s += f"  Base packages:      {len(self.profile.base_packages) + 1}\n"
        s += f"  Extra packages:     {len(self.profile.extra_packages)} (AUR: {len(self.profile.aur_packages)})\n"
        s += f"  Services:           {', '.join(self.profile.services) or 'None'}\n"

        return s
