import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console

from . import daemon, ops
from .config import ConfigError, SyncConfig
from .constants import APP_NAME, CONFIG_FILE
from .git_wrapper import CommandExecutionError, GitRepo

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    """Builds the argument parser for the gitsync command."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Keep local git working copies synchronized with their remotes.",
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=CONFIG_FILE,
        metavar="CONFIG_FILE",
        help=f"Configuration document (default: {CONFIG_FILE})",
    )

    sync_group = parser.add_argument_group("synchronization")
    sync_group.add_argument(
        "--gc", action="store_true", help="Garbage collect on every cycle"
    )
    sync_group.add_argument(
        "--loop", action="store_true", help="Repeat passes until stopped"
    )
    sync_group.add_argument(
        "--sleep", type=int, metavar="SECONDS", help="Seconds between passes"
    )

    init_group = parser.add_argument_group("repository bootstrap")
    init_group.add_argument(
        "--init", action="store_true", help="Clone a repository and start tracking it"
    )
    init_group.add_argument("--protocol", metavar="PROTO", help="ssh, https, file, ...")
    init_group.add_argument("--remote_user", metavar="USER", default="")
    init_group.add_argument("--remote_host", metavar="HOST", default="")
    init_group.add_argument("--remote_path", metavar="PATH")
    init_group.add_argument("--remote_port", metavar="PORT", default="")
    init_group.add_argument("--local_path", metavar="PATH")
    return parser


def collect_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Maps the flags the user actually passed onto configuration keys."""
    overrides: dict[str, Any] = {}
    if args.gc:
        overrides["gc"] = True
    if args.loop:
        overrides["loop"] = True
    if args.sleep is not None:
        overrides["sleep"] = args.sleep
    return overrides


def run_init(args: argparse.Namespace, config: SyncConfig) -> int:
    """Handles `--init`: clones the remote and registers it in the config file.

    Returns:
        int: The process exit status.
    """
    try:
        ops.validate_init_args(
            args.protocol, args.remote_host, args.remote_path, args.local_path
        )
    except ConfigError as e:
        err_console.print(f"[bold red]ERROR:[/bold red] {e}")
        return 1

    url = ops.build_remote_url(
        args.protocol,
        args.remote_host,
        args.remote_path,
        remote_user=args.remote_user,
        remote_port=args.remote_port,
    )
    repo = GitRepo(quiet=config.quiet)

    try:
        with console.status(f"Cloning [cyan]{url}[/cyan]...", spinner="dots"):
            ops.init_repository(args.file, args.local_path, url, repo=repo)
    except CommandExecutionError as e:
        logger.error(f"Clone failed: {e}")
        err_console.print(f"[bold red]CLONE ERROR:[/bold red] {e}")
        return 1

    console.print(
        f"[bold green]✔ Tracking[/bold green] [cyan]{args.local_path}[/cyan] "
        f"in {args.file}"
    )
    return 0


def main() -> None:
    """Main entry point for the gitsync CLI."""
    args = build_parser().parse_args()

    try:
        config = SyncConfig.load(args.file, collect_overrides(args))
    except ConfigError as e:
        err_console.print(f"[bold red]FATAL:[/bold red] {e}")
        sys.exit(1)

    daemon.setup_logging(config)

    if args.init:
        sys.exit(run_init(args, config))

    sys.exit(daemon.main(config))


if __name__ == "__main__":
    main()
