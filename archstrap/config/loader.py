# archstrap/config/loader.py

from pathlib import Path
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError
from rich.console import Console
from rich.prompt import Prompt

from archstrap.config.models import InstallerConfig, Profile
from archstrap.config.profiles import DEFAULT_PROFILE, get_profile
from archstrap.utils.exceptions import ConfigError

AskFunc = Callable[..., str]


def prompt_password(ask: AskFunc = Prompt.ask, console: Optional[Console] = None) -> str:
    '''
    Prompts for a single password for root and the user, twice, hiding the input.
    It retries until the two entries match.

    Args:
        ask: Prompt function, called as ask(text, password=True).
        console: Console used for the mismatch message.

    Returns:
        str: The confirmed password.
    '''
    console = console or Console()

    while True:
        password = ask("[yellow]Enter a single password for root and user[/]", password=True)
        confirmation = ask("[yellow]Confirm the password[/]", password=True)

        if password == confirmation:
            return password
        console.print("Passwords do not match. Try again.", style="red")


def _apply_profile_overrides(profile: Profile, overrides: Dict[str, Any]) -> Profile:
    data = profile.model_dump()
    data.update(overrides)
    return Profile.model_validate(data)


def load_config(profile_name: str = DEFAULT_PROFILE,
                config_path: Optional[Path] = None,
                ask: AskFunc = Prompt.ask,
                console: Optional[Console] = None,
                need_password: bool = True) -> InstallerConfig:
    """
    Builds the InstallerConfig for one run.

    Values come from the profile defaults, then from the optional TOML file:
    top-level keys override InstallerConfig fields and a [profile] table
    overrides fields of the selected profile.

    Args:
        profile_name: Name of a profile in archstrap.config.profiles.
        config_path: Optional TOML file with overrides.
        ask: Prompt function used for the password pair.
        console: Console for prompt messages.
        need_password: False for runs that never set a password (setup).

    Raises:
        ConfigError: Unknown profile, unreadable file, or values pydantic rejects.
    """
    profile = get_profile(profile_name)
    data: Dict[str, Any] = {}

    if config_path is not None:
        data = InstallerConfig.read_toml(Path(config_path))

    try:
        profile_overrides = data.pop("profile", None)
        if profile_overrides:
            profile = _apply_profile_overrides(profile, profile_overrides)

        # A password from the file wins over both the prompt and the profile default
        password = data.pop("password", None)
        if password is None and need_password:
            if profile.prompt_password or profile.default_password is None:
                password = prompt_password(ask=ask, console=console)
            else:
                password = profile.default_password.get_secret_value()

        data.setdefault("btrfs_opts", profile.btrfs_opts)

        return InstallerConfig(profile=profile, password=password or "", **data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")
