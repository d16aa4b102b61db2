#!/usr/bin/env python3
import argparse
import logging
import os
import sys
from datetime import datetime

import psycopg2
from rich.console import Console
from rich.table import Table
from rich.box import ROUNDED as box_ROUNDED

from custom_dict.custom_data.commit import RunConfig
from custom_dict.custom_data.db_helpers import (
    DBConnection,
    DB_CONFIG,
    DatabaseError,
    PostgresDictionaryStore,
    create_or_update_tables,
    get_connection,
)
from custom_dict.custom_data.enums import IfExists, MatchAction
from custom_dict.custom_data.registry import CUSTOM_SOURCES, get_sources, load_custom_data
from custom_dict.custom_data.sources import CustomDataError

console = Console()
logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Setup Logging
# -------------------------------------------------------------------
def setup_logging(verbose: bool = False, log_dir: str = "logs"):
    """Log everything to a timestamped file and warnings (or all, if verbose) to the console."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    os.makedirs(log_dir, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    file_handler = logging.FileHandler(os.path.join(log_dir, f"custom_data_{timestamp}.log"), encoding="utf-8")
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.addHandler(console_handler)
    return root


# -------------------------------------------------------------------
# Command Line Interface Functions
# -------------------------------------------------------------------
def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Merge custom dictionary data into a JMdict database."
    )
    parser.add_argument("--verbose", action="store_true", help="Show debug logging on the console")
    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)

    load_parser = subparsers.add_parser("load", help="Load custom sources into the dictionary")
    load_parser.add_argument(
        "--sources", type=str, help=f"Comma-separated list of source keys ({', '.join(CUSTOM_SOURCES)})"
    )
    load_parser.add_argument(
        "--data-dir", type=str, help="Directory containing custom data files"
    )
    load_parser.add_argument(
        "--silent", action="store_true", help="Do not print progress"
    )
    load_parser.add_argument(
        "--dry-run", action="store_true", help="Classify entries and roll back instead of committing"
    )
    load_parser.add_argument(
        "--if-exists", type=IfExists.from_string, choices=list(IfExists),
        help="What to do when an XML entry's ent_seq is already in the dictionary (default: overwrite)"
    )

    sources_parser = subparsers.add_parser("sources", help="List registered custom sources")
    sources_parser.add_argument(
        "--data-dir", type=str, help="Directory containing custom data files"
    )

    subparsers.add_parser("init", help="Create dictionary tables")
    return parser


def print_stats(stats):
    table = Table(title="Custom data results", box=box_ROUNDED)
    table.add_column("Action", style="cyan")
    table.add_column("Entries", justify="right", style="green")
    for action in MatchAction:
        table.add_row(action.value, str(stats.get(action, 0)))
    console.print(table)


def load_data(args) -> int:
    """Run the custom data merge for the selected sources."""
    keys = args.sources.split(",") if args.sources else None
    config = RunConfig(silent=args.silent, data_dir=args.data_dir, if_exists=args.if_exists)
    try:
        with DBConnection(rollback_only=args.dry_run) as cur:
            stats = load_custom_data(PostgresDictionaryStore(cur), keys, config, console=console)
    except CustomDataError as e:
        logger.error(f"Custom data load failed: {e}")
        console.print(f"[bold red]Custom data load failed:[/] {e}")
        return 1
    except (DatabaseError, psycopg2.Error) as e:
        logger.error(f"Database error during custom data load: {e}")
        console.print(f"[bold red]Database error:[/] {e}")
        console.print(
            f"Current settings: DB_NAME={DB_CONFIG['dbname']}, DB_HOST={DB_CONFIG['host']}, "
            f"DB_PORT={DB_CONFIG['port']}, DB_USER={DB_CONFIG['user']}"
        )
        return 1

    if not args.silent:
        if args.dry_run:
            console.print("[yellow]Dry run: all changes rolled back.[/]")
        print_stats(stats)
    return 0


def list_sources(args) -> int:
    table = Table(title="Custom sources", box=box_ROUNDED)
    table.add_column("Key", style="cyan")
    table.add_column("Description")
    table.add_column("File")
    table.add_column("Present", justify="center")
    for key, source in zip(CUSTOM_SOURCES, get_sources(data_dir=args.data_dir)):
        table.add_row(key, source.description, source.source_file, "yes" if source.exists() else "[red]no[/]")
    console.print(table)
    return 0


def init_db(args) -> int:
    conn = get_connection()
    try:
        create_or_update_tables(conn)
    finally:
        conn.close()
    console.print("[green]Dictionary tables ready.[/]")
    return 0


def main(argv=None) -> int:
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    commands = {
        "load": load_data,
        "sources": list_sources,
        "init": init_db,
    }
    try:
        return commands[args.command](args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
