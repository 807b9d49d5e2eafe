from unittest.mock import patch

import pytest

from archstrap import core
from archstrap.cli import run
from archstrap.steps import StepRunner
from archstrap.utils.exceptions import FileWriteError, PackageInstallError, PrivilegeError, ShellCommandError

# ======= Execute with: pytest tests/test_cli.py ========


def exit_code_of(argv):
    with pytest.raises(SystemExit) as excinfo:
        run(argv)
    return excinfo.value.code


@pytest.fixture
def log_args(tmp_path):
    return ["--log-dir", str(tmp_path / "logs")]


@pytest.fixture
def no_system_checks():
    with patch("archstrap.cli.check_root") as mock_root, patch("archstrap.cli.check_uefi") as mock_uefi:
        yield mock_root, mock_uefi


# --- Usage ---

def test_no_arguments_exits_1(capsys):
    assert exit_code_of([]) == 1

    captured = capsys.readouterr()
    assert "No arguments provided" in captured.err
    assert "--install" in captured.out


def test_unknown_option_exits_1(capsys):
    assert exit_code_of(["--bogus"]) == 1

    assert "Unknown option: --bogus" in capsys.readouterr().err


def test_unknown_option_after_valid_one_exits_1(capsys):
    assert exit_code_of(["--install", "--bogus"]) == 1


def test_install_and_setup_together_exits_1(capsys):
    assert exit_code_of(["-i", "-s"]) == 1

    assert "cannot be combined" in capsys.readouterr().err


@pytest.mark.parametrize("flag", ["--help", "-h"])
def test_help_exits_0(flag, capsys):
    assert exit_code_of([flag]) == 0

    out = capsys.readouterr().out
    assert "--install" in out
    assert "--setup" in out


def test_unknown_profile_exits_1(log_args, no_system_checks):
    assert exit_code_of(["--install", "--profile", "gentoo"] + log_args) == 1


# --- Install / setup ---

@patch("archstrap.cli.run_install")
def test_install_runs_pipeline(mock_run_install, log_args, no_system_checks, tmp_path):
    mock_root, mock_uefi = no_system_checks

    assert exit_code_of(["--install", "--profile", "workstation"] + log_args) == 0

    mock_root.assert_called_once()
    mock_uefi.assert_called_once()
    runner, config = mock_run_install.call_args[0]
    assert isinstance(runner, StepRunner)
    assert config.profile.name == "workstation"
    assert config.root_part == "/dev/nvme0n1p2"
    assert core.app_logger is not None
    assert (tmp_path / "logs" / "archstrap.log").exists()


@patch("archstrap.cli.run_setup")
def test_setup_runs_without_password_or_uefi(mock_run_setup, log_args, no_system_checks):
    mock_root, mock_uefi = no_system_checks

    with patch("archstrap.config.loader.prompt_password") as mock_prompt:
        assert exit_code_of(["-s"] + log_args) == 0

    mock_prompt.assert_not_called()
    mock_root.assert_called_once()
    mock_uefi.assert_not_called()
    mock_run_setup.assert_called_once()


@patch("archstrap.cli.run_install")
def test_dry_run_skips_system_checks(mock_run_install, log_args, no_system_checks):
    mock_root, mock_uefi = no_system_checks

    assert exit_code_of(["-i", "-p", "workstation", "--dry-run"] + log_args) == 0

    mock_root.assert_not_called()
    mock_uefi.assert_not_called()
    runner = mock_run_install.call_args[0][0]
    assert runner.executor.dry_run is True


@patch("archstrap.cli.run_install", side_effect=PackageInstallError("Failed to install base packages"))
def test_install_failure_exits_1(mock_run_install, log_args, no_system_checks):
    assert exit_code_of(["-i", "-p", "workstation"] + log_args) == 1


@patch("archstrap.cli.run_install", side_effect=ShellCommandError(command="mkfs.btrfs -f /dev/nvme0n1p2", exit_code=1))
def test_command_failure_exits_1(mock_run_install, log_args, no_system_checks):
    assert exit_code_of(["-i", "-p", "workstation"] + log_args) == 1


@patch("archstrap.cli.run_install", side_effect=FileWriteError("Failed to write /etc/hostname: [Errno 28] No space left on device"))
def test_file_write_failure_exits_1(mock_run_install, log_args, no_system_checks):
    assert exit_code_of(["-i", "-p", "workstation"] + log_args) == 1


@patch("archstrap.cli.run_install")
def test_not_root_exits_1(mock_run_install, log_args):
    with patch("archstrap.cli.check_root", side_effect=PrivilegeError("This script must be run as root")):
        assert exit_code_of(["--install"] + log_args) == 1

    mock_run_install.assert_not_called()


@patch("archstrap.cli.run_install")
def test_config_file_overrides(mock_run_install, log_args, no_system_checks, tmp_path):
    config_file = tmp_path / "archstrap.toml"
    config_file.write_text('drive = "/dev/nvme1n1"\npassword = "pw"\n', encoding="utf-8")

    assert exit_code_of(["-i", "-c", str(config_file)] + log_args) == 0

    config = mock_run_install.call_args[0][1]
    assert config.profile.name == "cachyos"
    assert config.efi_part == "/dev/nvme1n1p1"
