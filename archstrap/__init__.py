# archstrap/__init__.py

# Utility imports
from .utils.exceptions import ShellCommandError
from .utils.exceptions import CommandNotFoundError
from .utils.exceptions import CommandTimeoutError
from .utils.exceptions import InstallerError

# Import *
__all__ = [
    "ShellCommandError",
    "CommandNotFoundError",
    "CommandTimeoutError",
    "InstallerError",
]

# Versioning
__version__ = "0.1.0"
