import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .config import ConfigError, add_repository
from .constants import APP_NAME, COMMIT_MESSAGE, PORT_PROTOCOLS
from .git_wrapper import CommandExecutionError, GitRepo

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class StageOutcome:
    """The result of one stage of the synchronization cycle.

    Attributes:
        value (bool): What the stage reports (pulled, committed, ...).
        error (CommandExecutionError | None): The failure, if the stage failed.
    """

    value: bool = False
    error: CommandExecutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> bool:
        """Returns the value, re-raising the stage's failure if there was one."""
        if self.error is not None:
            raise self.error
        return self.value

    def recover(self, message: str, default: bool = False) -> bool:
        """Returns the value, or logs the failure and returns `default`.

        Args:
            message (str): Warning logged when the stage failed.
            default (bool, optional): Value used in place of a failed stage.
        """
        if self.error is None:
            return self.value
        logger.warning(f"{message}: {self.error}")
        return default


def attempt(stage: Callable[[], bool]) -> StageOutcome:
    """Runs a stage and captures a command failure as its outcome."""
    try:
        return StageOutcome(value=stage())
    except CommandExecutionError as e:
        return StageOutcome(error=e)


class StatusCode(enum.Enum):
    """Entry kinds reported by `git status --short`."""

    UNTRACKED = "??"
    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    UNKNOWN = None

    @classmethod
    def _missing_(cls, value: object) -> "StatusCode":
        return cls.UNKNOWN


@dataclass(frozen=True)
class StatusEntry:
    """One classified line of `git status --short`.

    Attributes:
        code (StatusCode): The entry kind, UNKNOWN for unrecognized codes.
        path (str): The path as reported by git.
        raw_code (str): The status code exactly as it appeared.
    """

    code: StatusCode
    path: str
    raw_code: str = ""


def parse_status_line(line: str) -> StatusEntry | None:
    """Classifies one line of `git status --short`.

    The code is the first whitespace-separated field, so ` M file` and
    `M  file` are both MODIFIED. Combined codes such as `MM` or `AM`, and
    renames, are UNKNOWN.

    Returns:
        StatusEntry | None: The parsed entry, or None for a blank line.
    """
    fields = line.strip().split(maxsplit=1)
    if not fields:
        return None
    raw_code = fields[0]
    path = fields[1] if len(fields) > 1 else ""
    return StatusEntry(StatusCode(raw_code), path, raw_code)


def is_divergent(repo: GitRepo) -> bool:
    """Checks whether the local HEAD differs from the remote's HEAD.

    A revision that cannot be resolved counts as "no divergence", so that an
    unreachable or empty remote never leads to a reset. Command failures
    propagate.

    Args:
        repo (GitRepo): The repository in the current directory.

    Returns:
        bool: True if both revisions are known and differ.
    """
    remote_head = repo.remote_head()
    local_head = repo.local_head()
    if not remote_head or not local_head:
        return False

    logger.debug(f"remote_head: {remote_head} local_head: {local_head}")
    return remote_head != local_head


def pull(repo: GitRepo) -> StageOutcome:
    """Brings the working copy up to date with the remote when they diverge.

    Returns:
        StageOutcome: value is True if a pull took place.
    """

    def _pull() -> bool:
        if not is_divergent(repo):
            return False
        logger.info("Pull from central repository")
        # NOTE: this runs before local changes are committed, so uncommitted
        # edits are discarded whenever the remote has moved.
        repo.reset_hard()
        repo.pull()
        return True

    return attempt(_pull)


def commit_local_changes(repo: GitRepo, tool_name: str, host_name: str) -> StageOutcome:
    """Stages and commits whatever changed in the working copy.

    Untracked files are only staged (`git add .`) when at least one exists;
    tracked changes are picked up by `commit -a`.

    Args:
        repo (GitRepo): The repository in the current directory.
        tool_name (str): Name recorded in the commit message.
        host_name (str): Host recorded in the commit message.

    Returns:
        StageOutcome: value is True if a commit was created.
    """

    def _commit() -> bool:
        untracked_count = 0
        changed_count = 0

        for line in repo.status_short():
            entry = parse_status_line(line)
            if entry is None:
                continue
            if entry.code is StatusCode.UNKNOWN:
                logger.debug(f"Ignored status '{entry.raw_code}': {entry.path}")
                continue
            logger.debug(f"{entry.code.name.capitalize()} file: {entry.path}")
            if entry.code is StatusCode.UNTRACKED:
                untracked_count += 1
            changed_count += 1

        if untracked_count > 0:
            logger.info("Added to the local repository")
            repo.add_all()

        if changed_count == 0:
            return False

        message = COMMIT_MESSAGE.format(
            count=changed_count, tool=tool_name, host=host_name
        )
        logger.info(f"Commit to the local repository ({changed_count} files)")
        repo.commit_all(message)
        return True

    return attempt(_commit)


def push(repo: GitRepo, committed: bool) -> StageOutcome:
    """Publishes local commits, but only when this cycle committed something."""

    def _push() -> bool:
        if not committed:
            logger.info("There is no change in local")
            return False
        logger.info("Push to the central repository")
        repo.push()
        return True

    return attempt(_push)


def maybe_gc(repo: GitRepo, global_enabled: bool, forced: bool) -> StageOutcome:
    """Runs garbage collection if enabled globally or forced by the counter."""

    def _gc() -> bool:
        if not (global_enabled or forced):
            return False
        logger.info("Garbage collect")
        repo.gc()
        return True

    return attempt(_gc)


def build_remote_url(
    protocol: str,
    remote_host: str,
    remote_path: str,
    remote_user: str = "",
    remote_port: str = "",
) -> str:
    """Assembles a clone URL from its parts.

    Args:
        protocol (str): URL scheme ('ssh', 'https', 'file', ...).
        remote_host (str): Host name. Ignored for 'file'.
        remote_path (str): Repository path on the remote, without leading slash.
        remote_user (str, optional): User name, used for 'ssh' only.
        remote_port (str, optional): Port, used for network protocols only.

    Returns:
        str: The URL (e.g., 'ssh://git@example.com:2222/srv/repo.git').
    """
    url = f"{protocol}://"

    if protocol == "ssh" and remote_user:
        url += f"{remote_user}@"

    if protocol != "file":
        url += remote_host

    if remote_port and protocol in PORT_PROTOCOLS:
        url += f":{remote_port}"

    return f"{url}/{remote_path}"


def init_repository(
    config_file: Path,
    local_path: str,
    url: str,
    repo: GitRepo | None = None,
) -> None:
    """Clones a remote repository and starts tracking it.

    The configuration document is only updated once the clone succeeded.

    Args:
        config_file (Path): The configuration document to append to.
        local_path (str): The destination of the clone.
        url (str): The remote URL.
        repo (GitRepo | None, optional): The git wrapper to clone with.
    """
    repo = repo or GitRepo()
    logger.info(f"init local repository {local_path} from url is {url}")
    repo.clone(url, local_path)
    add_repository(config_file, local_path, url)


def validate_init_args(
    protocol: str | None,
    remote_host: str | None,
    remote_path: str | None,
    local_path: str | None,
) -> None:
    """Checks that a bootstrap request names everything a clone needs.

    Raises:
        ConfigError: If a required argument is missing.
    """
    missing = [
        flag
        for flag, value in (
            ("--protocol", protocol),
            ("--remote_path", remote_path),
            ("--local_path", local_path),
        )
        if not value
    ]
    if protocol != "file" and not remote_host:
        missing.append("--remote_host")
    if missing:
        raise ConfigError(f"--init requires {', '.join(missing)}")
