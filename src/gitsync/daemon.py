import logging
import os
import signal
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from types import FrameType
from typing import Callable, Iterator

from . import ops
from .config import SyncConfig
from .constants import APP_NAME, GC_CYCLE_LIMIT, TOOL_NAME
from .git_wrapper import GitRepo

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


@dataclass(frozen=True)
class CycleResult:
    """What happened to one repository during one cycle.

    Attributes:
        pulled (bool): Remote changes were merged.
        committed (bool): Local changes were committed.
    """

    pulled: bool = False
    committed: bool = False

    @property
    def changed(self) -> bool:
        return self.pulled or self.committed


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """Context manager that enters a directory and always returns to the previous one.

    Args:
        path (Path): The directory to enter.

    Yields:
        Path: The directory that was entered.
    """
    previous = os.getcwd()
    os.chdir(path)
    try:
        yield path
    finally:
        os.chdir(previous)


def advance_counter(prior_count: int, changed: bool) -> tuple[int, bool]:
    """Steps the per-repository change counter.

    The counter only moves on cycles that pulled or committed. It runs
    0..GC_CYCLE_LIMIT and wraps to 0 on the following change, which forces a
    garbage collection.

    Args:
        prior_count (int): The counter before this cycle.
        changed (bool): Whether the cycle pulled or committed.

    Returns:
        tuple[int, bool]: The new counter and whether gc is forced.
    """
    if not changed:
        return prior_count, False
    count = prior_count + 1
    if count > GC_CYCLE_LIMIT:
        count = 0
    return count, count == 0


def run_cycle(
    repo: GitRepo, prior_count: int, config: SyncConfig
) -> tuple[int, CycleResult]:
    """Synchronizes the repository in the current directory once.

    Pull and push failures are logged and the cycle carries on. Commit and
    garbage collection failures propagate to the caller.

    Args:
        repo (GitRepo): The repository to synchronize.
        prior_count (int): The repository's change counter before this cycle.
        config (SyncConfig): The run configuration.

    Returns:
        tuple[int, CycleResult]: The updated counter and the cycle outcome.
    """
    pulled = ops.pull(repo).recover("Could not sync from central repository")
    committed = ops.commit_local_changes(
        repo, TOOL_NAME, config.local_host_name
    ).unwrap()
    ops.push(repo, committed).recover("Could not sync to central repository")

    result = CycleResult(pulled=pulled, committed=committed)
    count, forced = advance_counter(prior_count, result.changed)
    ops.maybe_gc(repo, config.gc_enabled, forced).unwrap()

    return count, result


class Scheduler:
    """Drives `run_cycle` over every configured repository.

    A pass visits the repositories in configuration order. With looping
    enabled, passes repeat every `sleep_interval` seconds until `stop()` is
    called or the process is interrupted.

    Attributes:
        config (SyncConfig): The run configuration.
        counts (dict[Path, int]): Change counter per repository path.
    """

    def __init__(
        self,
        config: SyncConfig,
        repo_factory: Callable[[], GitRepo] | None = None,
    ):
        self.config = config
        self.counts: dict[Path, int] = {}
        self._repo_factory = repo_factory or (
            lambda: GitRepo(
                quiet=config.quiet,
                remote=config.remote_name,
                branch=config.remote_branch,
            )
        )
        self._stop = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Requests shutdown. The current cycle finishes first."""
        self._stop.set()

    def run_pass(self) -> None:
        """Synchronizes each configured repository once, in order."""
        for descriptor in self.config.repositories:
            if self.stopped:
                return
            local_path = descriptor.local_path
            prior_count = self.counts.get(local_path, 0)
            with working_directory(local_path):
                logger.info(f">> {local_path}")
                count, _ = run_cycle(self._repo_factory(), prior_count, self.config)
                logger.info(f"<< {local_path}")
            self.counts[local_path] = count

    def run(self) -> None:
        """Runs passes until done, stopped, or interrupted.

        Raises:
            Exception: Any failure that escaped a cycle, after logging it.
        """
        try:
            while not self.stopped:
                self.run_pass()
                if not self.config.loop_enabled or self.stopped:
                    break
                self._stop.wait(self.config.sleep_interval)
            if self.stopped:
                logger.info("signal")
        except KeyboardInterrupt:
            logger.info("interrupt")
        except Exception as e:
            logger.error(f"FATAL: {e}")
            raise


def setup_logging(config: SyncConfig) -> None:
    """Configures the logging subsystem.

    Logs always go to stderr; a rotating log file is added when configured.

    Args:
        config (SyncConfig): Supplies the level and the optional log file.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(config.log_level)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file,
            maxBytes=config.max_log_size,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug(f"Config: {config}")


def install_signal_handlers(scheduler: Scheduler) -> None:
    """Routes termination signals to a cooperative scheduler stop."""

    def handler(signum: int, _frame: FrameType | None) -> None:
        logger.info(f"Received {signal.Signals(signum).name}, stopping...")
        scheduler.stop()

    signal.signal(signal.SIGTERM, handler)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, handler)


def main(config: SyncConfig) -> int:
    """The daemon entry point.

    Args:
        config (SyncConfig): The run configuration.

    Returns:
        int: The process exit status: 0 on completion or interruption,
             1 if a repository failed fatally.
    """
    scheduler = Scheduler(config)
    install_signal_handlers(scheduler)
    try:
        scheduler.run()
    except Exception:
        return 1
    return 0
