"""Global constants and default values for gitsync.

This module defines application identifiers, the default configuration
location, and the tuning values that drive the synchronization cycle.
"""

from pathlib import Path

# --- Identity ---
APP_NAME = "gitsync"
"""str: The application name, also used as the logger name."""

TOOL_NAME = "gitsync"
"""str: The tool name written into automatic commit messages."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/gitsync"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The default configuration document."""

# --- Git / Logic Constants ---
DEFAULT_REMOTE = "origin"
"""str: The remote that is pulled from and pushed to."""

DEFAULT_BRANCH = "master"
"""str: The remote default branch merged on pull and updated on push."""

DEFAULT_SLEEP = 60
"""int: Seconds between passes when looping."""

DEFAULT_MAX_LOG_SIZE = 5 * 1024 * 1024
"""int: Bytes before the log file is rotated."""

GC_CYCLE_LIMIT = 10
"""
int: Highest value of the per-repository change counter. Going past it
resets the counter to zero and forces a garbage collection.
"""

COMMIT_MESSAGE = "Commited {count} files by {tool} of {host}"
"""str: Template for automatic commit messages."""

# Protocols for which an explicit port is appended to a remote URL.
PORT_PROTOCOLS = ("ssh", "git", "rsync", "http", "https", "ftp", "ftps")
