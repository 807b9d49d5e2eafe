# archstrap/executors/disk.py
import os
import shlex
from typing import Iterable, Optional

from archstrap.steps import CommandStep

# Global constants for mount paths
MOUNT_ROOT = "/mnt"


class DiskManager:
    """
    Builds the disk, partition, filesystem and mount commands used while
    preparing a drive for an Arch Linux installation.
    Every method returns a CommandStep; nothing is executed here.
    """

    def __init__(self, mount_root: str = MOUNT_ROOT):
        self.mount_root = mount_root

    # --- DISK LEVEL OPERATIONS ---

    def zap_all(self, device: str) -> CommandStep:
        """Destroys the GPT and MBR data structures on the device ('sgdisk --zap-all')."""
        return CommandStep(
            description=f"Erasing partition tables on {device}",
            command=["sgdisk", "--zap-all", device],
        )

    def clear_partition_table(self, device: str) -> CommandStep:
        """Writes a fresh, empty GPT ('sgdisk --clear')."""
        return CommandStep(
            description=f"Clearing partition table on {device}",
            command=["sgdisk", "--clear", device],
        )

    def set_alignment(self, device: str, sectors: int = 8) -> CommandStep:
        return CommandStep(
            description=f"Setting sector alignment to {sectors} on {device}",
            command=["sgdisk", f"--set-alignment={sectors}", device],
        )

    # --- PARTITION LEVEL OPERATIONS ---

    def create_efi_and_root(self, device: str, efi_size: str) -> CommandStep:
        """
        Creates partition 1 (EFI system partition, 'ef00') of efi_size and
        partition 2 (Linux filesystem, '8300') spanning the rest of the disk,
        in a single sgdisk run.

        Args:
            device (str): The disk device path (e.g., '/dev/nvme0n1').
            efi_size (str): End of partition 1 relative to its start (e.g., '+2G').
        """
        command = [
            "sgdisk",
            f"--new=1:0:{efi_size}",
            "--typecode=1:ef00",
            "--change-name=1:EFI",
            "--new=2:0:0",
            "--typecode=2:8300",
            "--change-name=2:ROOT",
            # Attribute bit 2: legacy BIOS bootable
            "--attributes=2:set:2",
            device,
        ]
        return CommandStep(
            description=f"Creating EFI ({efi_size.lstrip('+')}) and ROOT partitions on {device}",
            command=command,
        )

    def verify(self, device: str) -> CommandStep:
        return CommandStep(
            description=f"Verifying partition table on {device}",
            command=["sgdisk", "--verify", device],
        )

    def partprobe(self, device: str) -> CommandStep:
        return CommandStep(
            description=f"Updating kernel partition table for {device}",
            command=["partprobe", device],
        )

    # --- FILESYSTEMS ---

    def format_fat32(self, partition_path: str, label: str = "EFI") -> CommandStep:
        return CommandStep(
            description=f"Formatting {partition_path} as FAT32",
            command=["mkfs.fat", "-F32", "-n", label, partition_path],
        )

    def format_btrfs(self, partition_path: str, label: str = "ROOT",
                     nodesize: str = "32k", metadata: str = "dup") -> CommandStep:
        """Creates a btrfs filesystem with duplicated metadata."""
        return CommandStep(
            description=f"Formatting {partition_path} as btrfs (nodesize {nodesize}, metadata {metadata})",
            command=["mkfs.btrfs", "-f", "-L", label, "-n", nodesize, "-m", metadata, partition_path],
        )

    # --- MOUNT/UNMOUNT OPERATIONS ---

    def make_directories(self, targets: Iterable[str]) -> CommandStep:
        """Creates mount point directories ('mkdir -p')."""
        targets = list(targets)
        return CommandStep(
            description=f"Creating mount points {', '.join(targets)}",
            command=["mkdir", "-p"] + targets,
        )

    def mount(self, source: str, target: str, options: Optional[str] = None) -> CommandStep:
        command = ["mount"]
        if options:
            command.extend(["-o", options])
        command.extend([source, target])
        return CommandStep(
            description=f"Mounting {source} to {target} (Options: {options or 'default'})",
            command=command,
        )

    def unmount(self, target: str, recursive: bool = False) -> CommandStep:
        command = ["umount", "-R", target] if recursive else ["umount", target]
        return CommandStep(
            description=f"Unmounting {target}{' recursively' if recursive else ''}",
            command=command,
        )

    # --- BTRFS SPECIFIC OPERATIONS ---

    def create_btrfs_subvolume(self, mount_point: str, subvolume_name: str) -> CommandStep:
        """
        Creates a Btrfs subvolume. Requires the filesystem to be mounted at mount_point first.

        Args:
            mount_point (str): Mount point of the top-level btrfs volume (e.g., '/mnt').
            subvolume_name (str): Name of the new subvolume (e.g., '@', '@home').
        """
        full_path = os.path.join(mount_point, subvolume_name)
        return CommandStep(
            description=f"Creating Btrfs subvolume {subvolume_name}",
            command=["btrfs", "subvolume", "create", full_path],
        )

    def mount_btrfs_subvolume(self, source: str, target: str, subvolume_name: str, options: Optional[str]) -> CommandStep:
        full_options = f"{options},subvol={subvolume_name}" if options else f"subvol={subvolume_name}"
        return self.mount(source=source, target=target, options=full_options)

    # --- FSTAB GENERATION ---

    def generate_fstab(self) -> CommandStep:
        """
        Appends UUID based fstab entries for everything mounted below the mount root.
        Runs on the live system; shell redirection writes into the new root.
        """
        fstab = os.path.join(self.mount_root, "etc/fstab")
        return CommandStep(
            description=f"Generating fstab to {fstab}",
            command=f"genfstab -U {shlex.quote(self.mount_root)} >> {shlex.quote(fstab)}",
            shell=True,
        )
