"""CLI module for the course back office.

Provides commands for profile listing, dynamic form processing, base
schema bootstrap and the course-edition hours check.

Usage:
    course-admin profiles
    course-admin --profile local process form.json
    DB_PROFILE=local course-admin init-db --admin-email admin@admin.com
    course-admin edition-hours --start 2025-03-03 --end 2025-03-14 --course-hours 50

Commands:
    profiles       - List available profiles
    process        - Store a dynamic form payload (JSON file)
    init-db        - Create the base tables and the default admin user
    edition-hours  - Check an edition's working-day hours against its course
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from course_admin.bootstrap import (
    DEFAULT_ADMIN_EMAIL,
    DEFAULT_ADMIN_PASSWORD,
    init_database,
)
from course_admin.config.loader import load_config
from course_admin.config.models import AppConfig
from course_admin.editions import check_edition_hours
from course_admin.factory import (
    ProfileNotFoundError,
    get_active_profile_name,
    get_adapter,
)
from course_admin.forms.models import FormSubmission
from course_admin.forms.processor import FormProcessor

console = Console()

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_BAD_INPUT = 2


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_config(args: argparse.Namespace) -> AppConfig:
    config_path = getattr(args, "config", None)
    return load_config(Path(config_path) if config_path else None)


def _read_submission(payload_file: str | Path) -> FormSubmission:
    """Read and validate a ``{tables, fields, values}`` JSON payload.

    Raises:
        FileNotFoundError: If the payload file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        pydantic.ValidationError: If the payload shape is invalid.
    """
    path = Path(payload_file)
    if not path.exists():
        raise FileNotFoundError(f"Payload file not found: {path}")
    return FormSubmission.model_validate(json.loads(path.read_text(encoding="utf-8")))


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_process(args: argparse.Namespace) -> int:
    """Async implementation for process command.

    Returns:
        0 on success, 1 on processing failure, 2 on an invalid payload.
    """
    try:
        submission = _read_submission(args.payload)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return EXIT_BAD_INPUT
    except ValidationError as e:
        console.print("[red]Invalid form payload:[/red]")
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            console.print(f"  {location}: {escape(error['msg'])}")
        return EXIT_BAD_INPUT

    try:
        config = _load_config(args)
        adapter = get_adapter(args.profile, args.env_prefix, config)
    except (FileNotFoundError, ProfileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return EXIT_FAILURE

    try:
        processor = FormProcessor(adapter, config.forms)
        result = await processor.process_submission(submission)
    finally:
        await adapter.close()

    console.print_json(result.model_dump_json(exclude_none=True))
    return EXIT_OK if result.success else EXIT_FAILURE


async def _async_init_db(args: argparse.Namespace) -> int:
    """Async implementation for init-db command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config(args)
        adapter = get_adapter(args.profile, args.env_prefix, config)
    except (FileNotFoundError, ProfileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return EXIT_FAILURE

    console.print("Initializing base schema...", style="dim")

    try:
        result = await init_database(
            adapter,
            admin_email=args.admin_email,
            admin_password=args.admin_password,
            hash_rounds=config.forms.hash_rounds,
        )
    except Exception as e:
        console.print(f"\n[bold red]x[/bold red] Bootstrap failed: {escape(str(e))}")
        return EXIT_FAILURE
    finally:
        await adapter.close()

    for table in result.tables:
        console.print(f"[bold green]v[/bold green] Table [cyan]{table}[/cyan] ready")
    if result.admin_created:
        console.print(f"[bold green]v[/bold green] Admin user {args.admin_email} created")
    else:
        console.print(f"[dim]Admin user {args.admin_email} already exists[/dim]")

    return EXIT_OK


# ============================================================================
# Sync command wrappers (cmd_profiles, cmd_edition_hours need no database)
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from course_admin.toml.

    Returns:
        0 on success, 1 if the config file is not found.
    """
    try:
        config = _load_config(args)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return EXIT_FAILURE

    try:
        current = get_active_profile_name(config, args.profile, args.env_prefix)
    except ProfileNotFoundError:
        current = None

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = active profile")

    return EXIT_OK


def cmd_process(args: argparse.Namespace) -> int:
    """Store a dynamic form payload.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_process(args))


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create the base tables and seed the admin user.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_init_db(args))


def cmd_edition_hours(args: argparse.Namespace) -> int:
    """Check an edition's working-day hours against its course duration.

    Uses ``[editions]`` from the config file when present, defaults
    otherwise.

    Returns:
        0 when within tolerance, 1 otherwise or on invalid dates.
    """
    try:
        editions = _load_config(args).editions
    except FileNotFoundError:
        editions = AppConfig().editions

    try:
        check = check_edition_hours(
            args.start,
            args.end,
            args.course_hours,
            hours_per_day=editions.hours_per_day,
            max_difference=editions.max_hours_difference,
        )
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return EXIT_FAILURE

    table = Table(title="Edition Hours", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Working days", str(check.working_days))
    table.add_row("Computed hours", str(check.computed_hours))
    table.add_row("Course hours", str(check.course_hours))
    table.add_row("Difference", str(check.difference))
    console.print(table)

    if check.within_tolerance:
        console.print("[bold green]v[/bold green] Within tolerance")
        return EXIT_OK

    console.print(f"[bold red]x[/bold red] {escape(check.message)}")
    return EXIT_FAILURE


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the ``course-admin`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="course-admin",
        description="Course back office: dynamic forms and base schema",
    )

    # Global options
    parser.add_argument(
        "--config",
        default=None,
        help="Path to course_admin.toml (default: ./course_admin.toml)",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Database profile to use (overrides DB_PROFILE)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # process command
    p_process = subparsers.add_parser(
        "process",
        help="Store a dynamic form payload",
    )
    p_process.add_argument(
        "payload",
        help="Path to JSON file with tables, fields and values",
    )
    p_process.set_defaults(func=cmd_process)

    # init-db command
    p_init = subparsers.add_parser(
        "init-db",
        help="Create the base tables and the default admin user",
    )
    p_init.add_argument(
        "--admin-email",
        default=DEFAULT_ADMIN_EMAIL,
        help=f"Admin user email (default: {DEFAULT_ADMIN_EMAIL})",
    )
    p_init.add_argument(
        "--admin-password",
        default=DEFAULT_ADMIN_PASSWORD,
        help="Admin user password, stored hashed",
    )
    p_init.set_defaults(func=cmd_init_db)

    # edition-hours command
    p_hours = subparsers.add_parser(
        "edition-hours",
        help="Check an edition's working-day hours against its course",
    )
    p_hours.add_argument(
        "--start",
        required=True,
        type=date.fromisoformat,
        help="First day of the edition (YYYY-MM-DD)",
    )
    p_hours.add_argument(
        "--end",
        required=True,
        type=date.fromisoformat,
        help="Last day of the edition (YYYY-MM-DD)",
    )
    p_hours.add_argument(
        "--course-hours",
        required=True,
        type=int,
        help="Nominal course duration in hours",
    )
    p_hours.set_defaults(func=cmd_edition_hours)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
