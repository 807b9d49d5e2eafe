from unittest.mock import MagicMock

import pytest

from archstrap.config.models import InstallerConfig
from archstrap.config.profiles import get_profile
from archstrap.steps import CommandStep
from archstrap.utils.exceptions import ShellCommandError
from archstrap.utils.logger import RichAppLogger


def make_mock_logger():
    """A fully-mocked RichAppLogger whose execution_step is a usable context manager."""
    mock_logger = MagicMock(spec=RichAppLogger)

    mock_context_manager = MagicMock()
    mock_context_manager.__enter__.return_value = None
    # __exit__ returning None never suppresses the exception
    mock_context_manager.__exit__.return_value = None
    mock_logger.execution_step.return_value = mock_context_manager

    return mock_logger


class RecordingRunner:
    """
    Stands in for StepRunner: records every step instead of executing it.
    fail_when(step) returning True makes that step raise ShellCommandError.
    """

    def __init__(self, mount_root="/mnt", fail_when=None):
        self.logger = make_mock_logger()
        self.mount_root = mount_root
        self.fail_when = fail_when
        self.steps = []

    def run_step(self, step):
        self.steps.append(step)
        if self.fail_when is not None and self.fail_when(step):
            command = step.command if isinstance(step, CommandStep) else step.path
            raise ShellCommandError(command=str(command), exit_code=1, stderr="simulated failure")

    def run(self, steps):
        for step in steps:
            self.run_step(step)

    def commands(self):
        return [step.argv for step in self.steps if isinstance(step, CommandStep)]


@pytest.fixture
def mock_rich_logger():
    return make_mock_logger()


@pytest.fixture
def workstation_config():
    profile = get_profile("workstation")
    return InstallerConfig(profile=profile, password="s3cret", btrfs_opts=profile.btrfs_opts)


@pytest.fixture
def cachyos_config():
    profile = get_profile("cachyos")
    return InstallerConfig(profile=profile, password="s3cret", btrfs_opts=profile.btrfs_opts)


@pytest.fixture
def recording_runner():
    return RecordingRunner()


@pytest.fixture
def failing_runner():
    """Factory for a RecordingRunner that fails on the steps matching a predicate."""
    def make(fail_when):
        return RecordingRunner(fail_when=fail_when)
    return make
