"""
Configuration file for mpris-notifier.

Located at $XDG_CONFIG_HOME/mpris-notifier/config.toml (usually
~/.config/mpris-notifier/config.toml). When no file exists one is written
with the default values, which are then used to start the program.
"""

import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Tuple

from .log import log

CONFIGURATION_DIRNAME = "mpris-notifier"
CONFIGURATION_FILENAME = "config.toml"

DEFAULT_SUBJECT_FORMAT = "{track}"
DEFAULT_BODY_FORMAT = "{album} - {artist}"
DEFAULT_JOIN_STRING = ", "
DEFAULT_ENABLE_ALBUM_ART = True
DEFAULT_ALBUM_ART_DEADLINE = 1000

DEFAULT_CONFIGURATION_TOML = '''\
# Format string for the notification subject text.
# Tokens: {album} {album_artists} {album_artist} {artists} {artist}
#         {title} {track} {track_number}
subject_format = "{track}"

# Format string for the notification message text.
body_format = "{album} - {artist}"

# Joins fields holding several entries, such as "artists".
join_string = ", "

# Show album artwork, provided the fetch completes within the deadline.
enable_album_art = true

# Deadline in milliseconds for fetching album art, else the notification
# is sent without artwork.
album_art_deadline = 1000

# Commands called on each notification, each given as a list: the program
# followed by its arguments, e.g. [["pkill", "-RTMIN+2", "waybar"]]
commands = []
'''


class ConfigurationError(Exception):
    """Raised when the configuration file can't be parsed"""


@dataclass(frozen=True)
class Configuration:
    subject_format: str = DEFAULT_SUBJECT_FORMAT
    body_format: str = DEFAULT_BODY_FORMAT
    join_string: str = DEFAULT_JOIN_STRING
    enable_album_art: bool = DEFAULT_ENABLE_ALBUM_ART
    # milliseconds
    album_art_deadline: int = DEFAULT_ALBUM_ART_DEADLINE
    commands: Tuple[Tuple[str, ...], ...] = ()


def configuration_path() -> Path:
    """Default location of the configuration file"""
    config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return Path(config_home) / CONFIGURATION_DIRNAME / CONFIGURATION_FILENAME


def _check_type(key: str, value, expected):
    # bool is an int subclass: `album_art_deadline = true` is not an int here
    is_bool = isinstance(value, bool) and expected is not bool
    if is_bool or not isinstance(value, expected):
        raise ConfigurationError(f"'{key}' must be {expected.__name__}, got {value!r}")


def parse_configuration(data: dict) -> Configuration:
    """Build a Configuration from parsed TOML, using defaults for missing keys"""
    known = {f.name for f in fields(Configuration)}
    for key in data:
        if key not in known:
            log(f"[Config] Warning: ignoring unknown key '{key}'")

    values = {}
    for key in ("subject_format", "body_format", "join_string"):
        if key in data:
            _check_type(key, data[key], str)
            values[key] = data[key]

    if "enable_album_art" in data:
        _check_type("enable_album_art", data["enable_album_art"], bool)
        values["enable_album_art"] = data["enable_album_art"]

    if "album_art_deadline" in data:
        deadline = data["album_art_deadline"]
        _check_type("album_art_deadline", deadline, int)
        if deadline < 0:
            raise ConfigurationError(f"'album_art_deadline' must not be negative, got {deadline}")
        values["album_art_deadline"] = deadline

    if "commands" in data:
        commands = data["commands"]
        _check_type("commands", commands, list)
        parsed = []
        for command in commands:
            if not isinstance(command, list) or not all(isinstance(arg, str) for arg in command):
                raise ConfigurationError(f"each command must be a list of strings, got {command!r}")
            parsed.append(tuple(command))
        values["commands"] = tuple(parsed)

    return Configuration(**values)


def load_configuration_from_path(path: Path) -> Configuration:
    """
    Load a configuration. If the file is not found, one is created with
    default values and the defaults are returned.
    """
    path = Path(path)
    try:
        with open(path, 'rb') as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return _write_default_configuration(path)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"error parsing configuration {path}: {e}") from e

    log(f"[Config] Loaded {path}")
    return parse_configuration(data)


def load_configuration(path: Optional[Path] = None) -> Configuration:
    return load_configuration_from_path(path or configuration_path())


def _write_default_configuration(path: Path) -> Configuration:
    default_config = Configuration()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        log(f"[Config] Warning: unable to create configuration directory '{path.parent}', using defaults: {e}")
        return default_config

    try:
        with open(path, 'w') as f:
            f.write(DEFAULT_CONFIGURATION_TOML)
        log(f"[Config] Wrote default configuration to {path}")
    except OSError as e:
        log(f"[Config] Warning: unable to write default configuration file '{path}', using defaults: {e}")
    return default_config
