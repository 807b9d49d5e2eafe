# archstrap/utils/executor.py

import subprocess
import shlex
from typing import Tuple, Optional, Union, List

from archstrap.utils.logger import RichAppLogger
from archstrap.utils.exceptions import (
    ShellCommandError, CommandNotFoundError, CommandTimeoutError,
    InvalidCommandError, PermissionDeniedError,
)

DRY_RUN_RESULT = (0, "DRY_RUN_STDOUT", "DRY_RUN_STDERR")


class Executor:
    """
    Executes shell commands, using Dependency Injection for logging,
    arch-chroot support, and centralized exception handling via the RichAppLogger.
    """

    def __init__(self,
                 logger_instance: RichAppLogger,
                 default_timeout: Optional[float] = None,
                 chroot_path: str = "/mnt",
                 dry_run: bool = False):
        """
        Initializes the Executor.

        Args:
            logger_instance (RichAppLogger): Logger used for TUI and file output.
            default_timeout (Optional[float]): Timeout in seconds, None waits forever.
            chroot_path (str): Root of the new system used by arch-chroot.
            dry_run (bool): If True, every run() is logged and skipped.
        """
        self.logger = logger_instance

        if default_timeout is not None and default_timeout <= 0:
            self.logger.error("Default timeout must be a positive number or None.")
            raise ValueError("Default timeout must be a positive number or None.")
        if not isinstance(chroot_path, str) or not chroot_path:
            self.logger.error("Chroot path must be a non-empty string.")
            raise ValueError("Chroot path must be a non-empty string.")

        self._default_timeout = default_timeout
        self._chroot_path = chroot_path
        self.dry_run = dry_run
        self.logger.debug(f"Executor initialized with default_timeout: {self._default_timeout}, "
                          f"chroot_path: {self._chroot_path}, dry_run: {self.dry_run}")

    @property
    def chroot_path(self) -> str:
        return self._chroot_path

    def _prepare_command(self, command: Union[str, list], chroot: bool) -> List[str]:
        """
        Prepares the command for execution by shlex.split if it's a string,
        and prepends arch-chroot if chroot is True.
        """
        if not command:
            self.logger.error("Attempted to prepare an empty command.")
            raise InvalidCommandError(str(command), "Command cannot be empty.")

        if isinstance(command, str):
            try:
                parsed_command = shlex.split(command)
            except ValueError as e:
                self.logger.error(f"Failed to parse command string '{command}': {e}")
                raise InvalidCommandError(command, f"Failed to parse command string: {e}")
        elif isinstance(command, list):
            if not all(isinstance(arg, str) for arg in command):
                raise InvalidCommandError(str(command), "All elements in command list must be strings.")
            parsed_command = command
        else:
            self.logger.error(f"Invalid command type: {type(command)}. Expected str or list.")
            raise InvalidCommandError(str(command), "Command must be a string or a list of strings.")

        if chroot:
            return ["arch-chroot", self._chroot_path] + parsed_command
        return parsed_command

    def execute_command(self,
                        command: Union[str, list],
                        capture_output: bool = True,
                        timeout: Optional[float] = None,
                        check: bool = True,
                        shell: bool = False,
                        cwd: Optional[str] = None,
                        input: Optional[str] = None
                        ) -> Tuple[int, str, str]:
        """
        Executes a shell command using subprocess.run. This is the low-level execution method.
        Data passed through 'input' is written to stdin and never logged.
        """
        actual_timeout = timeout if timeout is not None else self._default_timeout
        cmd_string_for_log = shlex.join(command) if isinstance(command, list) else command

        self.logger.debug(f"Attempting low-level execution: '{cmd_string_for_log}' "
                          f"timeout={actual_timeout}s, capture_output={capture_output}, check={check}, "
                          f"shell={shell}, stdin={'yes' if input is not None else 'no'}")

        try:
            if shell:
                command_to_execute = shlex.join(command) if isinstance(command, list) else command
            elif isinstance(command, str):
                command_to_execute = self._prepare_command(command, chroot=False)
            else:
                command_to_execute = command

            process = subprocess.run(
                command_to_execute,
                capture_output=capture_output,
                text=True,
                timeout=actual_timeout,
                check=False,
                shell=shell,
                cwd=cwd,
                input=input
            )

            stdout = process.stdout if capture_output and process.stdout else ""
            stderr = process.stderr if capture_output and process.stderr else ""
            exit_code = process.returncode

            if check and exit_code != 0:
                self.logger.error(f"Command: '{cmd_string_for_log}', Exit Code: {exit_code}, Stderr: {stderr.strip()}")

                if "command not found" in stderr.lower() or exit_code == 127:
                    raise CommandNotFoundError(command=cmd_string_for_log, stdout=stdout, stderr=stderr)
                elif "permission denied" in stderr.lower() or exit_code == 126:
                    raise PermissionDeniedError(command=cmd_string_for_log, stdout=stdout, stderr=stderr)
                else:
                    raise ShellCommandError(
                        command=cmd_string_for_log,
                        exit_code=exit_code,
                        stdout=stdout,
                        stderr=stderr,
                        message=f"Command failed with exit code {exit_code}"
                    )

            self.logger.debug(f"Low-level execution of '{cmd_string_for_log}' completed with exit code {exit_code}")
            return exit_code, stdout, stderr

        except ShellCommandError:
            raise
        except FileNotFoundError:
            self.logger.error(f"Command '{cmd_string_for_log}' not found. Ensure it's in the system's PATH.")
            raise CommandNotFoundError(command=cmd_string_for_log, stdout="", stderr="Command not found. Check PATH.")
        except subprocess.TimeoutExpired as e:
            self.logger.warning(f"Command '{cmd_string_for_log}' timed out after {actual_timeout} seconds.")
            stdout = e.stdout.decode() if isinstance(e.stdout, bytes) else (e.stdout or "")
            stderr = e.stderr.decode() if isinstance(e.stderr, bytes) else (e.stderr or "")
            raise CommandTimeoutError(command=cmd_string_for_log, timeout=actual_timeout, stdout=stdout, stderr=stderr)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Argument error during low-level command execution '{cmd_string_for_log}': {e}")
            raise InvalidCommandError(cmd_string_for_log, f"Argument error in command execution: {e}")

    def run(self,
            description: str,
            command: Union[str, list],
            chroot: bool = False,
            shell: bool = False,
            input: Optional[str] = None
            ) -> Tuple[int, str, str]:
        """
        Executes a shell command using the RichAppLogger's execution_step context manager
        for TUI feedback, logging, and centralized exception handling.
        Nothing runs when the executor is in dry-run mode.
        """
        original_command_str = shlex.join(command) if isinstance(command, list) else command

        if shell:
            if chroot:
                raise InvalidCommandError(original_command_str, "Shell commands cannot be run inside arch-chroot.")
            prepared_command_str = original_command_str
        else:
            prepared_command_str = shlex.join(self._prepare_command(command, chroot=chroot))

        if self.dry_run:
            self.logger.info(f"DRY RUN: Execution skipped for: '{description}'")
            self.logger.debug(f"DRY RUN COMMAND (Prepared): {prepared_command_str}")
            return DRY_RUN_RESULT

        with self.logger.execution_step(description):

            cmd_to_pass = original_command_str if shell else self._prepare_command(command, chroot=chroot)

            exit_code, stdout, stderr = self.execute_command(
                command=cmd_to_pass,
                shell=shell,
                input=input
            )

            # Log captured output at DEBUG level before the step is marked complete
            self.logger.debug(f"Command '{description}' successfully completed. Output details:")
            if stdout:
                self.logger.debug(f"  Stdout:\n{stdout.strip()}")
            if stderr:
                self.logger.debug(f"  Stderr:\n{stderr.strip()}")

            return exit_code, stdout, stderr
