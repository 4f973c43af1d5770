"""gitsync: Unattended synchronization of git working copies.

This package provides the command-line interface, the scheduling daemon, and
the per-repository cycle that pulls remote changes, commits local ones, pushes
them back, and periodically garbage collects.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    git_wrapper,
    ops,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "git_wrapper",
    "ops",
]
