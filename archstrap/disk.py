from typing import Callable, List

import typer

from archstrap.config.models import InstallerConfig
from archstrap.executors.disk import DiskManager
from archstrap.steps import CommandStep, StepRunner
from archstrap.utils.exceptions import OperationCancelledError, PartitionVerificationError, ShellCommandError


def confirm_erase(drive: str, getchar: Callable[[], str] = typer.getchar) -> None:
    """
    Asks for a single keypress before the drive is erased.
    'y' or 'Y' continues; anything else raises OperationCancelledError.
    """
    typer.echo(f"WARNING: This will erase {drive}. Continue? (y/N) ", nl=False)
    reply = getchar()
    typer.echo(reply)

    if reply not in ("y", "Y"):
        raise OperationCancelledError("Operation cancelled by user")


def partition_steps(config: InstallerConfig) -> List[CommandStep]:
    """Wipes the drive and lays out partition 1 (EFI) and partition 2 (ROOT)."""
    dm = DiskManager(config.mount_root)
    drive = config.drive

    return [
        dm.zap_all(drive),
        dm.clear_partition_table(drive),
        dm.set_alignment(drive, 8),
        dm.create_efi_and_root(drive, config.profile.efi_size),
    ]


def prepare_disk(runner: StepRunner, config: InstallerConfig,
                 getchar: Callable[[], str] = typer.getchar) -> None:
    """
    Confirms with the operator, partitions the drive, verifies the new table
    and notifies the kernel.

    Raises:
        OperationCancelledError: The operator did not answer 'y'.
        PartitionVerificationError: 'sgdisk --verify' failed.
    """
    runner.logger.section("Preparing disk partitions")

    confirm_erase(config.drive, getchar=getchar)

    runner.run(partition_steps(config))

    dm = DiskManager(config.mount_root)
    try:
        runner.run_step(dm.verify(config.drive))
    except ShellCommandError as e:
        raise PartitionVerificationError("Partition verification failed") from e

    runner.run_step(dm.partprobe(config.drive))
