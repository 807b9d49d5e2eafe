import logging
import os
import sys
from contextlib import contextmanager

# Import Typer/Rich components
from rich.console import Console
from rich.text import Text
from rich.logging import RichHandler
from rich.theme import Theme

from archstrap.utils.exceptions import ShellCommandError

# --- 1. Custom Log Levels and Subclassed Logger ---
# Define custom levels (must be done before setting LoggerClass)
SECTION_LEVEL_NUM = 25
EXECUTE_LEVEL_NUM = 26
SUCCESS_LEVEL_NUM = 27
logging.addLevelName(SECTION_LEVEL_NUM, 'SECTION')
logging.addLevelName(EXECUTE_LEVEL_NUM, 'EXECUTE')
logging.addLevelName(SUCCESS_LEVEL_NUM, 'SUCCESS')


class AppLogger(logging.Logger):
    """
    Subclasses logging.Logger to add custom methods for SECTION, EXECUTE and SUCCESS levels.
    """

    def section(self, msg, *args, **kwargs):
        """Logs a message at the SECTION level."""
        if self.isEnabledFor(SECTION_LEVEL_NUM):
            self._log(SECTION_LEVEL_NUM, msg, args, **kwargs)

    def execute(self, msg, *args, **kwargs):
        """Logs a message at the EXECUTE level."""
        if self.isEnabledFor(EXECUTE_LEVEL_NUM):
            self._log(EXECUTE_LEVEL_NUM, msg, args, **kwargs)

    def success(self, msg, *args, **kwargs):
        """Logs a message at the SUCCESS level."""
        if self.isEnabledFor(SUCCESS_LEVEL_NUM):
            self._log(SUCCESS_LEVEL_NUM, msg, args, **kwargs)


# Set the custom logger class globally
logging.setLoggerClass(AppLogger)


# --- 2. File Formatter (For consistent file structure) ---
class FileFormatter(logging.Formatter):
    """
    Detailed formatter for file output.
    """

    def format(self, record):
        # Prepare fixed-width attributes for consistent file structure
        record.levelname_fixed = f"{record.levelname:<9}"
        record.name_fixed = f"{record.name:<15}"
        record.filename_fixed = f"{record.filename:<20}"
        record.lineno_fixed = f"{record.lineno:<5}"

        fmt = '%(asctime)s - %(levelname_fixed)s - %(name_fixed)s - %(filename_fixed)s:%(lineno_fixed)s - %(message)s'
        self._style._fmt = fmt

        return super().format(record)


# --- 3. RichAppLogger Wrapper (Focuses on TUI presentation) ---
class RichAppLogger:
    """
    Manages TUI output via Rich Console and wraps the AppLogger instance.
    """

    def __init__(self, console: Console, logger: AppLogger):
        self.console = console
        self.logger: AppLogger = logger

    def section(self, message: str, *args, **kwargs):
        """Logs a message with the custom SECTION level and prints a styled header to TUI."""
        console_msg = Text(f"SECTION: {message}", style="section")
        self.console.print(console_msg)

        # File: the SECTION level is filtered from the console handler
        self.logger.section(f"SECTION: {message}", *args, **kwargs)

    @contextmanager
    def execution_step(self, message: str):
        """
        Context manager for a live Rich Status display, ensuring the
        [RUNNING] status is overwritten by the final [COMPLETED]/[CRITICAL] message.
        """
        with self.console.status(f"[bold green]...[/] [RUNNING] {message}", spinner="dots") as status:

            self.logger.execute(f"[RUNNING] {message}")

            try:
                yield status

                self.console.print(f"[green]✔ [COMPLETED][/green] {message}")
                self.logger.execute(f"[COMPLETED] {message}")

            except Exception as e:
                # A failing external command is expected; anything else is a bug worth a traceback
                is_critical = isinstance(e, ShellCommandError)
                status_tag = "[CRITICAL]" if is_critical else "[FAILED]"

                self.console.print(f"[bold red]✘ {status_tag}[/bold red] {message}")
                self.logger.execute(f"{status_tag} {message}")

                self.logger.exception(f"Exception during execution step: {message}")

                if not is_critical:
                    self.console.print("\n[bold red]Traceback (most recent call last):[/bold red]")
                    self.console.print_exception(show_locals=False)

                raise

    # --- Standard Logging Wrappers (Simple pass-through to logger) ---

    def info(self, message, *args, **kwargs):
        self.logger.info(message, *args, **kwargs)

    def warning(self, message, *args, **kwargs):
        self.logger.warning(message, *args, **kwargs)

    def error(self, message, *args, **kwargs):
        self.logger.error(message, *args, **kwargs)

    def debug(self, message, *args, **kwargs):
        self.logger.debug(message, *args, **kwargs)

    def success(self, message, *args, **kwargs):
        """Prints a green SUCCESS line to the TUI and records it in the log file."""
        self.console.print(f"[success]SUCCESS:[/success] {message}")
        self.logger.success(message, *args, **kwargs)

    def exception(self, message, *args, **kwargs):
        """Logs an ERROR to file with traceback and prints a rich traceback to the console."""
        self.logger.exception(message, *args, **kwargs)
        self.console.print(f"[bold red]FATAL ERROR: {message}[/bold red]")
        self.console.print_exception(show_locals=False)


# --- 4. Custom Filter to Exclude TUI-only Levels ---

class ExecuteFilter(logging.Filter):
    """
    Excludes EXECUTE, SECTION and SUCCESS records from the RichHandler.
    RichAppLogger already prints these itself, so letting them through would duplicate lines.
    """
    def filter(self, record):
        return record.levelno not in (EXECUTE_LEVEL_NUM, SECTION_LEVEL_NUM, SUCCESS_LEVEL_NUM)

# --- 5. Initialization Routine ---
def initialize_app_logger(
    app_name: str,
    log_directory: str = "logs",
    log_file_name: str = "archstrap.log",
    file_log_level: int = logging.DEBUG,
    console_log_level: int = logging.INFO,
) -> RichAppLogger:
    """
    Initializes and configures the AppLogger for file output and Rich Console for TUI.
    """
    logger: AppLogger = logging.getLogger(app_name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    # 1. File Handler Setup
    os.makedirs(log_directory, exist_ok=True)
    log_file_path = os.path.join(log_directory, log_file_name)

    file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(FileFormatter())
    logger.addHandler(file_handler)

    # 2. Rich Console Setup
    theme = Theme({"section": "bold yellow", "success": "bold green"})
    console = Console(file=sys.stderr, theme=theme, soft_wrap=True)

    # 3. Rich Handler Setup (For standard logs: INFO, WARNING, ERROR, etc.)
    stream_handler = RichHandler(
        console=console,
        show_time=False,
        show_level=True,
        show_path=False,
        keywords=[],
        level=console_log_level
    )
    stream_handler.addFilter(ExecuteFilter())
    logger.addHandler(stream_handler)

    return RichAppLogger(console, logger)
