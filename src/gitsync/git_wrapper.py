import logging
import shlex
import subprocess

from .constants import APP_NAME, DEFAULT_BRANCH, DEFAULT_REMOTE

logger = logging.getLogger(APP_NAME)


class CommandExecutionError(RuntimeError):
    """Raised when a version-control command exits with a non-zero status.

    Attributes:
        command (str): The command line that was executed.
        status (int): The exit status reported by the process.
        stderr (str): The captured standard error, stripped.
    """

    def __init__(self, command: str, status: int, stderr: str = ""):
        self.command = command
        self.status = status
        self.stderr = stderr
        message = f"git status code: {status} ({command})"
        if stderr:
            message += f": {stderr}"
        super().__init__(message)


class CommandExecutor:
    """Runs command lines in the current working directory.

    Output is captured and returned line by line. Any non-zero exit status is
    surfaced as a `CommandExecutionError` carrying that status.
    """

    def execute(self, command_line: str) -> tuple[list[str], int]:
        """Executes a command line and captures its standard output.

        Args:
            command_line (str): The full command line (e.g. 'git rev-parse HEAD').

        Returns:
            tuple[list[str], int]:  The stdout lines with trailing whitespace
                                    trimmed, and the exit status.

        Raises:
            CommandExecutionError: If the command returns a non-zero exit code.
        """
        logger.debug(f"| {command_line}")
        try:
            res = subprocess.run(
                shlex.split(command_line),
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise CommandExecutionError(
                command_line, e.returncode, (e.stderr or "").strip()
            ) from e
        lines = [line.rstrip() for line in res.stdout.splitlines()]
        return lines, res.returncode


class GitRepo:
    """The git verbs used by the synchronization cycle.

    Commands run against whatever directory is current when they are called;
    the scheduler is responsible for entering the repository first.

    Attributes:
        executor (CommandExecutor): Runs the assembled command lines.
        quiet (bool): Whether to pass `--quiet` to chatty commands.
        remote (str): The remote to pull from and push to.
        branch (str): The remote default branch.
    """

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        quiet: bool = True,
        remote: str = DEFAULT_REMOTE,
        branch: str = DEFAULT_BRANCH,
    ):
        self.executor = executor or CommandExecutor()
        self.quiet = quiet
        self.remote = remote
        self.branch = branch

    def _run(self, args: list[str], quiet: bool = False) -> list[str]:
        """Executes a git subcommand and returns its output lines.

        Args:
            args (list[str]): Arguments following `git`.
            quiet (bool, optional): Insert `--quiet` after the subcommand when
                                    the repository is in quiet mode.

        Returns:
            list[str]: The output lines of the command.
        """
        if quiet and self.quiet:
            args = [args[0], "--quiet", *args[1:]]
        lines, _ = self.executor.execute(shlex.join(["git", *args]))
        return lines

    def _first_line(self, args: list[str]) -> str | None:
        lines = self._run(args)
        return lines[0] if lines else None

    def remote_head(self) -> str | None:
        """Returns the revision the remote advertises for HEAD.

        Returns:
            str | None: The SHA-1 hash, or None if the remote reports nothing.
        """
        line = self._first_line(["ls-remote", self.remote, "HEAD"])
        if not line:
            return None
        return line.split("\t")[0].strip() or None

    def local_head(self) -> str | None:
        """Returns the revision of the local HEAD, or None if empty."""
        return self._first_line(["rev-parse", "HEAD"]) or None

    def reset_hard(self) -> None:
        """Discards uncommitted modifications to tracked files."""
        self._run(["reset", "--hard", "HEAD"])

    def pull(self) -> None:
        """Fetches the remote default branch and merges it into HEAD."""
        self._run(["pull", self.remote, self.branch], quiet=True)

    def status_short(self) -> list[str]:
        """Returns the lines of `git status --short`."""
        return self._run(["status", "--short"])

    def add_all(self) -> None:
        """Stages every file in the working tree, including untracked ones."""
        self._run(["add", "."])

    def commit_all(self, message: str) -> None:
        """Commits all staged and tracked changes.

        Args:
            message (str): The commit message.
        """
        self._run(["commit", "-a", "-m", message])

    def push(self) -> None:
        """Pushes the current branch to the remote default branch."""
        self._run(["push", self.remote, self.branch], quiet=True)

    def gc(self) -> None:
        """Compacts the repository storage."""
        self._run(["gc"], quiet=True)

    def clone(self, url: str, local_path: str) -> None:
        """Clones a remote repository into a new local directory.

        Args:
            url (str): The remote URL.
            local_path (str): The destination directory.
        """
        self._run(["clone", url, local_path], quiet=True)
