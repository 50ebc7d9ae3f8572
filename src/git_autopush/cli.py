import argparse
import logging
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Config, ConfigurationError
from .constants import (
    APP_NAME,
    ENV_AUTHOR_EMAIL,
    ENV_AUTHOR_NAME,
    ENV_CHECK_INTERVAL,
    ENV_INACTIVITY_THRESHOLD,
    ENV_LOG_FILE,
    ENV_LOG_LEVEL,
    ENV_REMOTE_NAME,
    ENV_REPO_PATH,
)
from .daemon import Scheduler, format_timestamp, install_signal_handlers, setup_logging
from .git_wrapper import RepositoryAccessError
from .tracker import Decision

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)

DECISION_STYLES = {
    Decision.NOOP: ("Nothing pending", "dim"),
    Decision.CONTINUE: ("Waiting for inactivity", "yellow"),
    Decision.FLUSH: ("Would commit and push", "bold green"),
}


def load_config(args: argparse.Namespace, validate: bool = True) -> Config:
    """Loads the environment configuration and applies command-line overrides.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    config = Config.from_env()
    try:
        config = config.with_overrides(
            check_minutes=getattr(args, "interval", None),
            threshold_minutes=getattr(args, "threshold", None),
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    if validate:
        config.validate()
    return config


def _minutes(seconds: float) -> str:
    return f"{seconds / 60:g} minutes"


def show_config(config: Config) -> None:
    """Prints the effective configuration."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Variable", style="cyan")
    table.add_column("Value")

    table.add_row(ENV_REPO_PATH, str(config.repo_path))
    table.add_row(ENV_AUTHOR_NAME, config.author_name)
    table.add_row(ENV_AUTHOR_EMAIL, config.author_email)
    table.add_row(ENV_CHECK_INTERVAL, _minutes(config.check_interval))
    table.add_row(ENV_INACTIVITY_THRESHOLD, _minutes(config.inactivity_threshold))
    table.add_row(ENV_REMOTE_NAME, config.remote_name or "[dim]branch upstream[/dim]")
    table.add_row(ENV_LOG_FILE, str(config.log_file) if config.log_file else "-")
    table.add_row(ENV_LOG_LEVEL, config.log_level)

    console.print(table)


def show_check(scheduler: Scheduler) -> None:
    """Observes the repository once and reports what a fresh monitor would do.

    Changes are staged but nothing is committed or pushed.
    """
    with console.status("Inspecting repository...", spinner="dots"):
        snapshot, evaluation = scheduler.preview()

    label, style = DECISION_STYLES[evaluation.decision]

    table = Table(show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()

    latest = snapshot.latest_modification
    table.add_row(
        "Latest modification:", format_timestamp(latest) if latest is not None else "-"
    )
    table.add_row("Deleted files:", str(len(snapshot.deleted_paths)))
    if evaluation.inactivity is not None:
        table.add_row("Inactivity:", _minutes(evaluation.inactivity))
    table.add_row("Threshold:", _minutes(scheduler.config.inactivity_threshold))
    table.add_row("Decision:", f"[{style}]{label}[/{style}]")

    console.print(Panel(table, title=str(scheduler.config.repo_path), expand=False))

    for path in sorted(snapshot.deleted_paths):
        console.print(f"   - {path}", style="red")


def run_monitor(config: Config) -> None:
    """Runs the monitor in the foreground until SIGTERM or SIGINT."""
    setup_logging(config)

    logger.info("=== Git Auto Push Monitor ===")
    logger.info(f"Repository: {config.repo_path}")
    logger.info(f"Check interval: {_minutes(config.check_interval)}")
    logger.info(f"Push after: {_minutes(config.inactivity_threshold)} of inactivity")

    scheduler = Scheduler(config)
    install_signal_handlers(scheduler)
    scheduler.run()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the Git Autopush CLI."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=(
            "Commit and push a working directory automatically once its "
            "changes have been idle long enough. Settings are read from "
            "environment variables."
        ),
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser(
        "run", help="Watch the repository until stopped (default)"
    )
    run_parser.add_argument(
        "--interval",
        type=int,
        default=None,
        metavar="MINUTES",
        help=f"Polling interval, overrides {ENV_CHECK_INTERVAL}",
    )
    run_parser.add_argument(
        "--threshold",
        type=int,
        default=None,
        metavar="MINUTES",
        help=f"Inactivity threshold, overrides {ENV_INACTIVITY_THRESHOLD}",
    )
    subparsers.add_parser(
        "check", help="Inspect pending changes once without committing"
    )
    subparsers.add_parser("config", help="Show the effective configuration")

    args = parser.parse_args(argv)

    try:
        config = load_config(args, validate=args.command != "config")
    except ConfigurationError as e:
        err_console.print(f"[bold red]ERROR:[/bold red] {e}")
        sys.exit(1)

    if args.command == "config":
        show_config(config)
        return
    elif args.command == "check":
        setup_logging(config, interactive=True)
        try:
            show_check(Scheduler(config))
        except RepositoryAccessError as e:
            err_console.print(f"[bold red]ERROR:[/bold red] {e}")
            sys.exit(1)
        return

    # Default Action (if no subcommand is run)
    run_monitor(config)


if __name__ == "__main__":
    main()
