# archstrap/utils/exceptions.py

# --- Shell command exceptions ---

class ShellCommandError(Exception):
    """Base exception for errors during shell command execution."""
    def __init__(self, command: str, exit_code: int = -1, stdout: str = "", stderr: str = "", message: str = "Shell command failed"):
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.message = message
        super().__init__(f"{self.message} (Command: '{self.command}', Exit Code: {self.exit_code})")

class CommandNotFoundError(ShellCommandError):
    """Exception raised when the command itself is not found."""
    def __init__(self, command: str, stdout: str = "", stderr: str = ""):
        super().__init__(command, 127, stdout, stderr, "Command not found") # 127 is common exit code for command not found

class CommandTimeoutError(ShellCommandError):
    """Exception raised when a shell command times out."""
    def __init__(self, command: str, timeout: float, stdout: str = "", stderr: str = ""):
        self.timeout = timeout
        super().__init__(command, 124, stdout, stderr, f"Command timed out after {timeout} seconds")

class InvalidCommandError(ShellCommandError):
    """Exception raised for invalid or malformed commands."""
    def __init__(self, command: str, message: str = "Invalid command format"):
        super().__init__(command, -2, "", "", message)

class PermissionDeniedError(ShellCommandError):
    """Exception raised when a shell command encounters a permission denied error."""
    def __init__(self, command: str, stdout: str = "", stderr: str = ""):
        super().__init__(command, 126, stdout, stderr, "Permission denied") # 126 is common exit code for permission denied


# --- Installer exceptions ---

class InstallerError(Exception):
    """Base class for conditions that abort an installation run."""
    exit_code = 1


class PrivilegeError(InstallerError):
    """Raised when a precondition on the running environment is not met (root, UEFI)."""


class OperationCancelledError(InstallerError):
    """Raised when the operator declines the disk erase confirmation."""


class PartitionVerificationError(InstallerError):
    """Raised when 'sgdisk --verify' rejects the freshly written partition table."""


class PackageInstallError(InstallerError):
    """Raised when pacstrap (or pacman) fails to install the requested packages."""


class MountOrderError(InstallerError):
    """Raised when a filesystem plan mounts or creates something before its parent exists."""


class ConfigError(InstallerError):
    """Raised for an unknown profile or an unreadable/invalid configuration file."""


class FileWriteError(InstallerError):
    """Raised when a file below the mount root (or on the live system) cannot be written or edited."""
