"""CLI for versioned site backup and restore.

Usage:
    site-backup                          Back up every configured site
    site-backup backup [site]            Back up all sites or one site
    site-backup restore <site> [commit]  Restore a site (latest or a commit prefix)
    site-backup list-backups <site>      List a site's snapshots
    site-backup list-sites               List configured sites
    site-backup help                     Show this help

Global options:
    --config PATH   Site registry (default: $SITE_BACKUP_CONFIG or ./sites.toml)
    -v, --verbose   Debug logging
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm
from rich.table import Table

from site_backup.config.loader import load_backup_config
from site_backup.config.models import BackupConfig
from site_backup.errors import ConfigurationError, RestoreFileError
from site_backup.factory import build_orchestrator
from site_backup.orchestrator import RestorePlan

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def _load_config(args: argparse.Namespace) -> BackupConfig | None:
    """Load the registry named by ``--config``; print the error and return None on failure."""
    config_path = Path(args.config) if getattr(args, "config", None) else None
    try:
        return load_backup_config(config_path)
    except (FileNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _print_unknown_site(error: ConfigurationError) -> None:
    console.print(f"[red]{error}[/red]")
    console.print("[dim]To see available sites, use:[/dim] [cyan]site-backup list-sites[/cyan]")


def _confirm_restore(plan: RestorePlan) -> bool:
    """Show what a restore will overwrite and ask for confirmation."""
    console.print()
    console.print(f"[bold yellow]Starting restore for site: {plan.site}[/bold yellow]")
    console.print(f"  Source path: {plan.target}")
    console.print(f"  Backup path: {plan.repository}")
    console.print(f"  Commit: {plan.reference or 'latest'}")
    console.print()
    console.print(
        f"[bold red]WARNING: This will overwrite all files at '{plan.target}' and "
        f"overwrite the existing '{plan.db_name}' database.[/bold red]"
    )
    return Confirm.ask("Are you sure you want to proceed?", default=False, console=console)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace, config: BackupConfig) -> int:
    """Async implementation for backup command.

    Returns:
        0 when every step succeeded, 1 otherwise.
    """
    orchestrator = build_orchestrator(config)
    try:
        result = await orchestrator.run_backup(target=getattr(args, "site", None))
    except ConfigurationError as e:
        _print_unknown_site(e)
        return 1

    console.print()
    if result.success:
        console.print(
            f"[bold green]v[/bold green] Backup completed for "
            f"{len(result.sites)} site(s)"
        )
        return 0

    console.print(f"[bold red]x[/bold red] Backup finished with {len(result.failures)} failure(s):")
    for failure in result.failures:
        console.print(f"  - [bold]{failure.site}[/bold] {failure.step}: {failure.error}")
    return 1


async def _async_restore(args: argparse.Namespace, config: BackupConfig) -> int:
    """Async implementation for restore command.

    Returns:
        0 on success or cancellation, 1 on failure.
    """
    orchestrator = build_orchestrator(config)
    confirm = (lambda plan: True) if args.yes else _confirm_restore

    try:
        result = await orchestrator.run_restore(args.site, args.reference, confirm=confirm)
    except ConfigurationError as e:
        _print_unknown_site(e)
        return 1

    console.print()
    if result.cancelled:
        console.print("[yellow]Restore cancelled by user[/yellow]")
        return 0

    if result.success:
        console.print(
            f"[bold green]v[/bold green] Restored [bold cyan]{result.site}[/bold cyan] "
            f"to commit [cyan]{result.reference}[/cyan]"
        )
        return 0

    failed = next(s for s in result.steps if not s.success)
    console.print(f"[bold red]x[/bold red] {failed.step} failed: {failed.error}")
    return 1


async def _async_list_backups(args: argparse.Namespace, config: BackupConfig) -> int:
    """Async implementation for list-backups command."""
    orchestrator = build_orchestrator(config)
    try:
        commits = await orchestrator.list_backups(args.site)
    except ConfigurationError as e:
        _print_unknown_site(e)
        return 1
    except RestoreFileError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    table = Table(
        title=f"Available backups for {args.site}", show_header=True, header_style="bold"
    )
    table.add_column("Commit", style="cyan")
    table.add_column("Message")
    table.add_column("Age", style="dim")

    for commit in commits:
        table.add_row(commit.short_id, commit.message, commit.relative_age)

    console.print(table)
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Back up all configured sites, or the one named.

    Wraps the async implementation with ``asyncio.run()``.
    """
    config = _load_config(args)
    if config is None:
        return 1
    return asyncio.run(_async_backup(args, config))


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore one site from its snapshot history.

    Wraps the async implementation with ``asyncio.run()``.
    """
    config = _load_config(args)
    if config is None:
        return 1
    return asyncio.run(_async_restore(args, config))


def cmd_list_backups(args: argparse.Namespace) -> int:
    """List a site's snapshots, most recent first."""
    config = _load_config(args)
    if config is None:
        return 1
    return asyncio.run(_async_list_backups(args, config))


def cmd_list_sites(args: argparse.Namespace) -> int:
    """List configured sites.

    Reads only the local registry; no backend calls.
    """
    config = _load_config(args)
    if config is None:
        return 1

    table = Table(title="Configured sites", show_header=True, header_style="bold")
    table.add_column("Site", style="bold cyan")
    table.add_column("Source")
    table.add_column("Database")
    table.add_column("Provider", style="dim")

    for site in config.sites:
        table.add_row(site.label, site.source, site.db_name, site.provider)

    console.print(table)
    return 0


def cmd_help(args: argparse.Namespace) -> int:
    """Print usage."""
    build_parser().print_help()
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="site-backup",
        description="Versioned backup and point-in-time restore of site files and databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  site-backup                         Run backup for all sites
  site-backup backup site1            Run backup for 'site1' only
  site-backup restore site1           Restore 'site1' from the latest backup
  site-backup restore site1 a1b2c3    Restore 'site1' from a specific backup commit
  site-backup list-backups site1      List all backups for 'site1'
  site-backup list-sites              Show all configured sites
        """,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the site registry TOML (default: $SITE_BACKUP_CONFIG or ./sites.toml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_backup = subparsers.add_parser(
        "backup",
        help="Run backup for all configured sites or a specific site",
    )
    p_backup.add_argument("site", nargs="?", default=None, help="Site label")
    p_backup.set_defaults(func=cmd_backup)

    p_restore = subparsers.add_parser(
        "restore",
        help="Restore a site from backup",
    )
    p_restore.add_argument("site", help="Site label")
    p_restore.add_argument(
        "reference",
        nargs="?",
        default=None,
        help="Commit id or prefix (default: latest)",
    )
    p_restore.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    p_restore.set_defaults(func=cmd_restore)

    p_list_backups = subparsers.add_parser(
        "list-backups",
        help="List available backups for a specific site",
    )
    p_list_backups.add_argument("site", help="Site label")
    p_list_backups.set_defaults(func=cmd_list_backups)

    p_list_sites = subparsers.add_parser(
        "list-sites",
        help="List all configured sites",
    )
    p_list_sites.set_defaults(func=cmd_list_sites)

    p_help = subparsers.add_parser(
        "help",
        help="Show this help message",
    )
    p_help.set_defaults(func=cmd_help)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    With no command, runs a backup of every site.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command is None:
        args.site = None
        return cmd_backup(args)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
