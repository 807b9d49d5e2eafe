import os
from itertools import groupby
from typing import Dict, List, Optional, Sequence, Set

from archstrap.config.models import InstallerConfig, Subvolume
from archstrap.executors.disk import DiskManager
from archstrap.steps import CommandStep, StepRunner
from archstrap.utils.exceptions import MountOrderError

EFI_MOUNTPOINT = "boot/efi"


def root_subvolume(subvolumes: Sequence[Subvolume]) -> Subvolume:
    """Returns the subvolume mounted at '/'."""
    for subvol in subvolumes:
        if subvol.mountpoint == "/":
            return subvol
    raise MountOrderError("No subvolume is mounted at '/'")


def child_subvolumes(subvolumes: Sequence[Subvolume]) -> List[Subvolume]:
    """Subvolumes with a mountpoint below '/', shallowest first, otherwise in declaration order."""
    children = [s for s in subvolumes if s.mountpoint not in (None, "/")]
    return sorted(children, key=_depth)


def _depth(subvol: Subvolume) -> int:
    return subvol.relative_mountpoint.count("/")


def filesystem_steps(config: InstallerConfig) -> List[CommandStep]:
    """
    Formats both partitions, creates the subvolumes on the top-level btrfs
    volume, then remounts them subvolume by subvolume below the mount root.

    The order is fixed:
        1. format EFI and ROOT
        2. mount the top-level volume, create every subvolume, unmount
        3. mount the root subvolume, then the children one depth level at a
           time, creating each level's mount points just before mounting it
        4. mount the EFI partition at boot/efi
    """
    dm = DiskManager(config.mount_root)
    root = config.mount_root
    opts = config.btrfs_opts
    subvolumes = config.profile.subvolumes
    base = root_subvolume(subvolumes)
    children = child_subvolumes(subvolumes)

    steps = [
        dm.format_fat32(config.efi_part, label="EFI"),
        dm.format_btrfs(config.root_part, label="ROOT"),
        dm.mount(config.root_part, root),
    ]
    steps += [dm.create_btrfs_subvolume(root, s.name) for s in subvolumes]
    steps.append(dm.unmount(root))

    steps.append(dm.mount_btrfs_subvolume(config.root_part, root, base.name, opts))

    # A mount hides whatever was created below its target, so deeper mount points come later
    for _, level in groupby(children, key=_depth):
        level = list(level)
        targets = [os.path.join(root, s.relative_mountpoint) for s in level]
        steps.append(dm.make_directories(targets))
        steps += [
            dm.mount_btrfs_subvolume(config.root_part, target, s.name, opts)
            for s, target in zip(level, targets)
        ]

    efi_target = os.path.join(root, EFI_MOUNTPOINT)
    steps.append(dm.make_directories([efi_target]))
    steps.append(dm.mount(config.efi_part, efi_target))

    return steps


def _subvol_option(argv: List[str]) -> Optional[str]:
    if "-o" not in argv:
        return None
    for option in argv[argv.index("-o") + 1].split(","):
        if option.startswith("subvol="):
            return option.split("=", 1)[1]
    return None


def _is_below(path: str, parent: str) -> bool:
    return path == parent or path.startswith(parent.rstrip("/") + "/")


def validate_mount_order(steps: Sequence[CommandStep], mount_root: str) -> None:
    """
    Replays mount, umount, mkdir and 'btrfs subvolume create' steps and raises
    MountOrderError when one of them depends on something not yet in place:

    * a subvolume is created before the top-level volume is mounted at its parent;
    * something is mounted below the mount root before the root itself is mounted;
    * a child subvolume is mounted before the root subvolume;
    * a mount point is used before it has been created;
    * a mount would cover another mount, or the mount points created below it.
    """
    root = os.path.normpath(mount_root)
    mounted: Dict[str, Optional[str]] = {}
    created: Set[str] = set()

    for step in steps:
        argv = step.argv
        tool = argv[0]

        if tool == "mount":
            target = os.path.normpath(argv[-1])
            subvol = _subvol_option(argv)
            if target != root:
                if root not in mounted:
                    raise MountOrderError(f"{target} is mounted before {root}")
                if subvol is not None and mounted[root] is None:
                    raise MountOrderError(f"Subvolume {subvol} is mounted before the root subvolume")
                if target not in created:
                    raise MountOrderError(f"Mount point {target} is used before it was created")
            hidden = [p for p in mounted if p != target and _is_below(p, target)]
            if hidden:
                raise MountOrderError(f"Mounting {target} would hide {', '.join(sorted(hidden))}")
            mounted[target] = subvol
            # Directories below the new mount now live on the covered filesystem
            created = {d for d in created if not _is_below(d, target) or d == target}

        elif tool == "umount":
            target = os.path.normpath(argv[-1])
            for path in [p for p in mounted if _is_below(p, target)]:
                del mounted[path]
            # Directories created on an unmounted filesystem are no longer visible
            created = {d for d in created if not _is_below(d, target) or d == target}

        elif tool == "mkdir":
            for path in (os.path.normpath(a) for a in argv[1:] if not a.startswith("-")):
                if _is_below(path, root) and root not in mounted:
                    raise MountOrderError(f"Mount point {path} is created before {root} is mounted")
                while _is_below(path, root) and path != root:
                    created.add(path)
                    path = os.path.dirname(path)

        elif argv[:3] == ["btrfs", "subvolume", "create"]:
            parent = os.path.dirname(os.path.normpath(argv[3]))
            if parent not in mounted or mounted[parent] is not None:
                raise MountOrderError(f"Subvolume {argv[3]} is created before the btrfs volume is mounted at {parent}")


def plan_filesystems(config: InstallerConfig) -> List[CommandStep]:
    """Builds the filesystem steps and rejects a plan whose mounts are out of order."""
    steps = filesystem_steps(config)
    validate_mount_order(steps, config.mount_root)
    return steps


def build_filesystems(runner: StepRunner, config: InstallerConfig,
                      steps: Optional[List[CommandStep]] = None) -> None:
    """Formats the partitions and mounts the subvolume layout below the mount root."""
    runner.logger.section("Setting up filesystems")

    if steps is None:
        steps = plan_filesystems(config)
    runner.run(steps)
