"""Configuration management for the WAL-G archive client.

Settings come from ~/.config/walgarchive/config.cfg ([DEFAULT] section), an
optional .env file and the environment, later sources winning:

    walg_socket        WALG_ARCHIVE_SOCKET             daemon socket, "" disables
    timeout            WALG_ARCHIVE_TIMEOUT_S          seconds, unset blocks
    max_send_attempts  WALG_ARCHIVE_MAX_SEND_ATTEMPTS  send calls per frame
    max_response_size  WALG_ARCHIVE_MAX_RESPONSE_SIZE  receive cap in bytes
    framed_responses   WALG_ARCHIVE_FRAMED_RESPONSES   length-prefixed replies
"""

import configparser
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values

from walgarchive.daemon.connection import (
    DEFAULT_SEND_ATTEMPTS,
    MAX_RESPONSE_SIZE,
    check_path_length,
)
from walgarchive.exceptions import ConfigurationError

CONFIG_PATH = Path.home() / ".config" / "walgarchive" / "config.cfg"

ENV_KEYS = {
    "walg_socket": "WALG_ARCHIVE_SOCKET",
    "timeout": "WALG_ARCHIVE_TIMEOUT_S",
    "max_send_attempts": "WALG_ARCHIVE_MAX_SEND_ATTEMPTS",
    "max_response_size": "WALG_ARCHIVE_MAX_RESPONSE_SIZE",
    "framed_responses": "WALG_ARCHIVE_FRAMED_RESPONSES",
}


@dataclass(frozen=True)
class ArchiveSettings:
    socket_path: str = ""
    timeout: Optional[float] = None
    max_send_attempts: int = DEFAULT_SEND_ATTEMPTS
    max_response_size: int = MAX_RESPONSE_SIZE
    framed_responses: bool = False

    @property
    def enabled(self) -> bool:
        return bool(self.socket_path)


def load_raw_config(
    path: Path = CONFIG_PATH,
    env_file: Optional[Path] = None,
) -> Dict[str, str]:
    """
    Load configuration values from the config file, .env file and environment.
    Values are returned with lowercase keys.
    """
    data: Dict[str, str] = {}

    if path.exists():
        cfg = configparser.ConfigParser()
        cfg.read(path)
        data.update({k.lower(): v for k, v in cfg["DEFAULT"].items()})

    env_file = env_file if env_file is not None else Path.cwd() / ".env"
    sources = []
    if env_file.exists():
        sources.append(dotenv_values(env_file))
    sources.append(os.environ)

    for source in sources:
        for key, env_name in ENV_KEYS.items():
            value = source.get(env_name)
            if value is not None:
                data[key] = value

    return data


def check_socket_path(path: str) -> str:
    """
    Validate the socket path when it is configured.

    The empty string is accepted and means archiving is disabled.

    Raises:
        ConfigurationError: If the path is too long or does not exist
    """
    if not path:
        return path

    check_path_length(path)

    if not os.path.exists(path):
        raise ConfigurationError(f"Specified socket {path} does not exist")

    return path


def _get_bool(raw: Dict[str, str], key: str, default: bool = False) -> bool:
    value = raw.get(key)
    if isinstance(value, bool):
        return value
    if value is None or str(value).strip() == "":
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_number(raw: Dict[str, str], key: str, cast, default):
    value = raw.get(key)
    if value is None or str(value).strip() == "":
        return default
    try:
        parsed = float(value)
        if not math.isfinite(parsed):
            raise ValueError("not a finite number")
        number = cast(parsed)
    except (TypeError, ValueError, OverflowError) as e:
        raise ConfigurationError(f"Invalid value for {key}: {value!r}") from e
    if number <= 0:
        raise ConfigurationError(f"{key} must be positive, got {value!r}")
    return number


def get_archive_settings(raw: Optional[Dict[str, str]] = None) -> ArchiveSettings:
    """
    Build ArchiveSettings from raw configuration values.
    Raises ConfigurationError if a value is invalid.
    """
    if raw is None:
        raw = load_raw_config()

    socket_path = check_socket_path(str(raw.get("walg_socket", "")).strip())

    return ArchiveSettings(
        socket_path=socket_path,
        timeout=_get_number(raw, "timeout", float, None),
        max_send_attempts=_get_number(
            raw, "max_send_attempts", int, DEFAULT_SEND_ATTEMPTS
        ),
        max_response_size=_get_number(
            raw, "max_response_size", int, MAX_RESPONSE_SIZE
        ),
        framed_responses=_get_bool(raw, "framed_responses", False),
    )
