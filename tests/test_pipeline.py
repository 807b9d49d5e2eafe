from unittest.mock import MagicMock

import pytest

from archstrap.configure import system_steps
from archstrap.pipeline import run_install, run_setup
from archstrap.steps import CommandStep
from archstrap.utils.exceptions import ConfigError, MountOrderError, OperationCancelledError, PackageInstallError

# ======= Execute with: pytest tests/test_pipeline.py ========


def is_pacstrap(step):
    return isinstance(step, CommandStep) and step.argv[0] == "pacstrap"


def test_install_runs_every_stage_in_order(recording_runner, workstation_config):
    run_install(recording_runner, workstation_config, getchar=lambda: "y")

    commands = recording_runner.commands()
    tools = [c[0] for c in commands]

    assert tools[0] == "sgdisk"
    assert tools.index("mkfs.btrfs") < tools.index("pacstrap") < tools.index("genfstab")
    assert tools.index("mkinitcpio") < tools.index("sudo")
    assert commands[-2] == ["ufw", "--force", "enable"]
    assert commands[-1] == ["umount", "-R", "/mnt"]
    recording_runner.logger.success.assert_called_once_with(
        "Installation completed! You can now reboot your system."
    )


def test_cachyos_install_leaves_user_environment_for_setup(recording_runner, cachyos_config):
    run_install(recording_runner, cachyos_config, getchar=lambda: "Y")

    commands = recording_runner.commands()
    assert commands[-2] == ["systemctl", "enable", "btrfs-scrub.timer"]
    assert commands[-1] == ["umount", "-R", "/mnt"]
    assert not any(c[0] == "sudo" for c in commands)


def test_pacstrap_failure_skips_configuration(failing_runner, workstation_config):
    runner = failing_runner(is_pacstrap)

    with pytest.raises(PackageInstallError):
        run_install(runner, workstation_config, getchar=lambda: "y")

    assert is_pacstrap(runner.steps[-1])
    configuration = {s.description for s in system_steps(workstation_config)}
    assert not any(s.description in configuration for s in runner.steps)
    runner.logger.success.assert_not_called()


def test_declined_confirmation_touches_nothing(recording_runner, cachyos_config):
    with pytest.raises(OperationCancelledError):
        run_install(recording_runner, cachyos_config, getchar=lambda: "n")

    assert recording_runner.steps == []


def test_setup_runs_user_environment_and_services(recording_runner, workstation_config):
    run_setup(recording_runner, workstation_config)

    commands = recording_runner.commands()
    assert commands[0][:5] == ["sudo", "-H", "-u", "c0d3h01", "git"]
    assert ["systemctl", "enable", "docker"] in commands
    assert not any(c[0] in ("sgdisk", "pacstrap", "umount") for c in commands)
    recording_runner.logger.success.assert_called_once_with("User setup completed!")


def test_setup_with_empty_profile_fails(recording_runner, cachyos_config):
    profile = cachyos_config.profile
    profile.aur_helper = None
    profile.services = []

    with pytest.raises(ConfigError, match="defines no user environment"):
        run_setup(recording_runner, cachyos_config)

    assert recording_runner.steps == []


def test_invalid_mount_layout_fails_before_the_drive_is_touched(recording_runner, workstation_config):
    workstation_config.profile.subvolumes = [s for s in workstation_config.profile.subvolumes if s.name != "@"]
    getchar = MagicMock(return_value="y")

    with pytest.raises(MountOrderError, match="No subvolume is mounted at '/'"):
        run_install(recording_runner, workstation_config, getchar=getchar)

    getchar.assert_not_called()
    assert recording_runner.steps == []
