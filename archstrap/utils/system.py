# archstrap/utils/system.py
import os

from archstrap.utils.exceptions import PrivilegeError

EFI_FIRMWARE_PATH = "/sys/firmware/efi"


def check_root() -> None:
    """
    Check that the software is running with root privileges.
    Raises PrivilegeError if not.
    """
    if os.geteuid() != 0:
        raise PrivilegeError("This script must be run as root")


def check_uefi(firmware_path: str = EFI_FIRMWARE_PATH) -> None:
    """
    Check that the system is booted in UEFI mode, which grub-install --target=x86_64-efi needs.
    Raises PrivilegeError if not.
    """
    if not os.path.isdir(firmware_path):
        raise PrivilegeError("System is NOT booted in UEFI mode (likely BIOS/Legacy mode).")
