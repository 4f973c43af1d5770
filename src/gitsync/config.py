import logging
import re
import socket
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit

from .constants import (
    APP_NAME,
    DEFAULT_BRANCH,
    DEFAULT_MAX_LOG_SIZE,
    DEFAULT_REMOTE,
    DEFAULT_SLEEP,
)

logger = logging.getLogger(APP_NAME)


class ConfigError(ValueError):
    """Raised when the configuration document or a bootstrap request is invalid."""


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '1hr', '30m') to seconds."""
    if isinstance(value, int):
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


def get_host_name() -> str:
    """Returns this machine's network name, as reported by `hostname`."""
    return socket.gethostname().strip()


def parse_bool(value: bool) -> bool:
    """Accepts only real booleans; `"false"` is not false."""
    if not isinstance(value, bool):
        raise ValueError(f"Expected true or false, got '{value}'")
    return value


def parse_log_level(value: int | str) -> int:
    """Converts a level name (e.g., 'debug') or number to a logging level."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level '{value}'")
    return level


@dataclass(frozen=True)
class RepositoryDescriptor:
    """A tracked working copy.

    Attributes:
        local_path (Path): The working copy on disk. Identifies the repository.
        remote_url (str): The URL it was cloned from.
    """

    local_path: Path
    remote_url: str = ""


@dataclass(frozen=True)
class SyncConfig:
    """Settings for a synchronization run.

    Built once at startup and never mutated afterwards.

    Attributes:
        repositories (tuple[RepositoryDescriptor, ...]): Repositories in the
            order they are processed.
        gc_enabled (bool): Garbage collect on every cycle.
        loop_enabled (bool): Repeat passes until stopped.
        sleep_interval (int): Seconds to wait between passes.
        log_level (int): Logging threshold for the application logger.
        log_file (Path | None): Optional rotating log file.
        max_log_size (int): Bytes before the log file is rotated.
        remote_name (str): The remote to pull from and push to.
        remote_branch (str): The remote default branch.
        local_host_name (str): This machine's network name.
    """

    repositories: tuple[RepositoryDescriptor, ...] = ()
    gc_enabled: bool = False
    loop_enabled: bool = False
    sleep_interval: int = DEFAULT_SLEEP
    log_level: int = logging.INFO
    log_file: Path | None = None
    max_log_size: int = DEFAULT_MAX_LOG_SIZE
    remote_name: str = DEFAULT_REMOTE
    remote_branch: str = DEFAULT_BRANCH
    local_host_name: str = field(default_factory=get_host_name)

    @property
    def quiet(self) -> bool:
        """Whether git commands should run with `--quiet`."""
        return self.log_level > logging.DEBUG

    @classmethod
    def load(
        cls, config_file: Path | None, overrides: dict[str, Any] | None = None
    ) -> "SyncConfig":
        """Reads the configuration document and merges command-line overrides.

        Args:
            config_file (Path | None): The TOML document to read. A missing
                                       file yields the defaults.
            overrides (dict[str, Any] | None): Document keys (`gc`, `loop`,
                                               `sleep`) set on the command line.

        Returns:
            SyncConfig: The merged configuration.

        Raises:
            ConfigError: If the document cannot be parsed.
        """
        data = read_document(config_file) if config_file else {}
        data.update(overrides or {})
        return cls._from_document(data)

    @classmethod
    def _from_document(cls, data: dict[str, Any]) -> "SyncConfig":
        parsers = {
            "gc": ("gc_enabled", parse_bool),
            "loop": ("loop_enabled", parse_bool),
            "sleep": ("sleep_interval", parse_time),
            "loglevel": ("log_level", parse_log_level),
            "logfile": ("log_file", lambda v: Path(v).expanduser()),
            "max_log_size": ("max_log_size", parse_size),
            "remote": ("remote_name", str),
            "branch": ("remote_branch", str),
        }

        # The host name is always derived, never taken from the document.
        data.pop("local_host", None)

        invalid_keys = set(data) - set(parsers) - {"repositories"}
        if invalid_keys:
            logger.warning(
                f"Unknown config keys: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        values: dict[str, Any] = {
            "repositories": _parse_repositories(data.get("repositories", []))
        }
        for key, (attr, parser) in parsers.items():
            if key not in data:
                continue
            try:
                values[attr] = parser(data[key])
            except (TypeError, ValueError) as e:
                logger.warning(f"Config error in {key}: {e}. Falling back to default.")

        return cls(**values)


def _parse_repositories(entries: Any) -> tuple[RepositoryDescriptor, ...]:
    if not isinstance(entries, list):
        raise ConfigError("'repositories' must be an array of tables")

    repositories = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("local_path"):
            raise ConfigError(f"Repository entry without local_path: {entry!r}")
        repositories.append(
            RepositoryDescriptor(
                local_path=Path(entry["local_path"]).expanduser(),
                remote_url=str(entry.get("url", "")),
            )
        )
    return tuple(repositories)


def read_document(path: Path) -> dict[str, Any]:
    """Parses the TOML configuration document.

    Args:
        path (Path): The document location.

    Returns:
        dict[str, Any]: The raw document, or an empty dict if it does not exist.

    Raises:
        ConfigError: If the document has a syntax error.
    """
    if not path.exists():
        logger.warning(f"Config file {path} not found. Using defaults.")
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Config syntax error in {path}: {e}") from e


def add_repository(config_file: Path, local_path: str, url: str) -> None:
    """Appends a repository entry to the configuration document.

    Existing content, including comments, is preserved.

    Args:
        config_file (Path): The document to update (created if missing).
        local_path (str): The working copy path.
        url (str): The remote URL.
    """
    if config_file.exists():
        with open(config_file) as f:
            doc = tomlkit.load(f)
    else:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        doc = tomlkit.document()

    if "repositories" not in doc:
        doc.add("repositories", tomlkit.aot())

    table = tomlkit.table()
    table.add("local_path", local_path)
    table.add("url", url)
    doc["repositories"].append(table)

    with open(config_file, "w") as f:
        tomlkit.dump(doc, f)
