import logging
import pytest
from unittest.mock import MagicMock, patch, call

from archstrap.utils.exceptions import ShellCommandError
from archstrap.utils.logger import (
    initialize_app_logger,
    AppLogger,
    ExecuteFilter,
    RichAppLogger,
    EXECUTE_LEVEL_NUM,
    SECTION_LEVEL_NUM,
    SUCCESS_LEVEL_NUM,
)

# --- Fixtures for Testing ---

@pytest.fixture(scope="function")
def cleanup_logging_state():
    """Fixture to reset the logging state before and after each test."""
    logging.setLoggerClass(AppLogger)

    for logger_name in list(logging.root.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        if isinstance(logger, logging.Logger):
            logger.handlers = []

    yield

    for logger_name in list(logging.root.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        if isinstance(logger, logging.Logger):
            for handler in logger.handlers:
                handler.close()
            logger.handlers = []


@pytest.fixture(scope="function")
def file_backed_logger(tmp_path, cleanup_logging_state):
    """
    Initializes RichAppLogger with a temporary log directory,
    and returns the wrapper instance and directory path.
    """
    log_dir = tmp_path / "logs"

    logger_wrapper = initialize_app_logger(
        app_name="TestApp",
        log_directory=str(log_dir),
        log_file_name="test.log",
        file_log_level=logging.DEBUG
    )

    yield logger_wrapper, log_dir


@pytest.fixture(scope="function")
def isolated_rich_logger(file_backed_logger):
    """
    Same logger with the RichHandler removed, so only the custom TUI prints reach the console.
    """
    logger_wrapper, log_dir = file_backed_logger

    for handler in logger_wrapper.logger.handlers[:]:
        if "RichHandler" in handler.__class__.__name__:
            logger_wrapper.logger.removeHandler(handler)
            break

    yield logger_wrapper, log_dir


# --- Helper Functions ---

def get_file_content(log_dir, filename="test.log"):
    """Reads the content of the log file."""
    for handler in logging.getLogger("TestApp").handlers:
        handler.flush()
    log_path = log_dir / filename
    if log_path.exists():
        return log_path.read_text(encoding='utf-8')
    return ""


def handler_types(logger):
    """Names of the handlers installed by initialize_app_logger, ignoring pytest's capture handlers."""
    return sorted(type(h).__name__ for h in logger.handlers if type(h).__name__ in ("FileHandler", "RichHandler"))


# --- Tests ---

def test_initialization_and_configuration(file_backed_logger):
    """Tests if initialization correctly sets up the logger and handlers."""
    logger_wrapper, log_dir = file_backed_logger

    assert isinstance(logger_wrapper, RichAppLogger)
    assert isinstance(logger_wrapper.logger, AppLogger)
    assert log_dir.is_dir()
    assert (log_dir / "test.log").exists()

    assert handler_types(logger_wrapper.logger) == ["FileHandler", "RichHandler"]


def test_reinitialization_does_not_duplicate_handlers(file_backed_logger, tmp_path):
    logger_wrapper, _ = file_backed_logger

    again = initialize_app_logger(app_name="TestApp", log_directory=str(tmp_path / "other"))

    assert again.logger is logger_wrapper.logger
    assert handler_types(again.logger) == ["FileHandler", "RichHandler"]


@pytest.mark.parametrize("level, passes", [
    (logging.INFO, True),
    (logging.ERROR, True),
    (EXECUTE_LEVEL_NUM, False),
    (SECTION_LEVEL_NUM, False),
    (SUCCESS_LEVEL_NUM, False),
])
def test_execute_filter(level, passes):
    record = logging.LogRecord("TestApp", level, __file__, 1, "msg", None, None)
    assert ExecuteFilter().filter(record) is passes


def test_standard_logging_to_file(file_backed_logger):
    """Tests standard log levels (INFO, ERROR, DEBUG) successfully write to the file."""
    logger_wrapper, log_dir = file_backed_logger

    logger_wrapper.info("Standard information message.")
    logger_wrapper.error("An application error.")
    logger_wrapper.debug("Debug detail only for the file.")

    file_content = get_file_content(log_dir)
    assert "Standard information message." in file_content
    assert "An application error." in file_content
    assert "Debug detail only for the file." in file_content
    assert "ERROR" in file_content


def test_execution_step_success(file_backed_logger):
    """Tests the execution_step context manager on success."""
    logger_wrapper, log_dir = file_backed_logger
    step_message = "Formatting /dev/nvme0n1p2 as btrfs"

    with patch.object(logger_wrapper.console, 'status') as mock_status, \
         patch.object(logger_wrapper.console, 'print') as mock_console_print:

        mock_status.return_value.__enter__.return_value = MagicMock()

        with logger_wrapper.execution_step(step_message):
            pass

        mock_console_print.assert_any_call(
            f"[green]✔ [COMPLETED][/green] {step_message}"
        )

    file_content = get_file_content(log_dir)
    assert f"[RUNNING] {step_message}" in file_content
    assert f"[COMPLETED] {step_message}" in file_content
    assert "EXECUTE" in file_content

    mock_status.assert_called_once()


def test_execution_step_unexpected_failure(file_backed_logger):
    """An unexpected exception is reported as FAILED with a traceback, then re-raised."""
    logger_wrapper, log_dir = file_backed_logger
    step_message = "Writing zram generator config"

    with patch.object(logger_wrapper.console, 'status') as mock_status, \
         patch.object(logger_wrapper.console, 'print') as mock_console_print, \
         patch.object(logger_wrapper.console, 'print_exception') as mock_print_exception:

        mock_status.return_value.__enter__.return_value = MagicMock()

        with pytest.raises(ValueError):
            with logger_wrapper.execution_step(step_message):
                raise ValueError("Something went wrong.")

        mock_console_print.assert_has_calls([
            call(f"[bold red]✘ [FAILED][/bold red] {step_message}"),
            call("\n[bold red]Traceback (most recent call last):[/bold red]"),
        ], any_order=True)

        mock_print_exception.assert_called_once_with(show_locals=False)

    file_content = get_file_content(log_dir)
    assert f"[RUNNING] {step_message}" in file_content
    assert f"[FAILED] {step_message}" in file_content
    assert "ValueError: Something went wrong." in file_content
    assert f"[COMPLETED] {step_message}" not in file_content


def test_execution_step_command_failure(file_backed_logger):
    """A failing command is CRITICAL and gets no console traceback."""
    logger_wrapper, log_dir = file_backed_logger
    step_message = "Installing base packages"

    with patch.object(logger_wrapper.console, 'status'), \
         patch.object(logger_wrapper.console, 'print') as mock_console_print, \
         patch.object(logger_wrapper.console, 'print_exception') as mock_print_exception:

        with pytest.raises(ShellCommandError):
            with logger_wrapper.execution_step(step_message):
                raise ShellCommandError(command="pacstrap /mnt base", exit_code=1, stderr="target not found")

        mock_console_print.assert_any_call(f"[bold red]✘ [CRITICAL][/bold red] {step_message}")
        mock_print_exception.assert_not_called()

    file_content = get_file_content(log_dir)
    assert f"[CRITICAL] {step_message}" in file_content
    assert "Exit Code: 1" in file_content


def test_exception_method(file_backed_logger):
    """Tests the explicit exception() method for logging and TUI traceback."""
    logger_wrapper, log_dir = file_backed_logger

    with patch.object(logger_wrapper.console, 'print') as mock_console_print, \
         patch.object(logger_wrapper.console, 'print_exception') as mock_print_exception:

        try:
            raise RuntimeError("External system failure")
        except RuntimeError:
            logger_wrapper.exception("Caught an unhandled error.")

        mock_console_print.assert_any_call(
            "[bold red]FATAL ERROR: Caught an unhandled error.[/bold red]"
        )
        mock_print_exception.assert_called_once_with(show_locals=False)

    file_content = get_file_content(log_dir)
    assert "ERROR" in file_content
    assert "Caught an unhandled error." in file_content
    assert "RuntimeError: External system failure" in file_content


def test_section_logging(isolated_rich_logger):
    """Tests section() writes to the file and prints exactly one TUI header."""
    logger_wrapper, log_dir = isolated_rich_logger
    section_message = "Preparing disk"

    with patch.object(logger_wrapper.console, 'print') as mock_console_print:
        logger_wrapper.section(section_message)

    file_content = get_file_content(log_dir)
    assert "SECTION: Preparing disk" in file_content

    mock_console_print.assert_called_once()
    printed_arg = str(mock_console_print.call_args[0][0])
    assert f"SECTION: {section_message}" in printed_arg


def test_success_logging(file_backed_logger):
    logger_wrapper, log_dir = file_backed_logger

    with patch.object(logger_wrapper.console, 'print') as mock_console_print:
        logger_wrapper.success("Installation completed!")

    mock_console_print.assert_called_once_with("[success]SUCCESS:[/success] Installation completed!")
    file_content = get_file_content(log_dir)
    assert "SUCCESS" in file_content
    assert "Installation completed!" in file_content
