"""
CLI - Command-line interface for pg_transfer.

Commands:
- discover: snapshot one database schema (summary, tree or JSON)
- transfer: discover the source and verify the target connection
- init-config: write an example pg_transfer.toml
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from . import __version__
from .config import (
    LOG_FORMATS,
    LOG_LEVELS,
    MAX_BATCH_SIZE,
    MIN_BATCH_SIZE,
    Config,
    DatabaseConfig,
    create_example_config,
)
from .connection import PostgresConnectionManager, create_connection_manager
from .discovery.schema import create_schema_discovery
from .logging_setup import ROOT_LOGGER, setup_logging
from .protocol.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    DatabaseError,
    ValidationError,
)
from .protocol.schema import DiscoveryOptions, SchemaInfo
from .ui.console import ConsoleUI

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130

log = logging.getLogger(f"{ROOT_LOGGER}.cli")


def _add_discovery_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--schemas",
        help="Comma-separated schema allow-list (e.g. public,sales)"
    )
    parser.add_argument(
        "--tables",
        help="Comma-separated relation allow-list; 'name' or 'schema.name'"
    )
    parser.add_argument(
        "--include-system-schemas",
        action="store_true",
        help="Include information_schema, pg_catalog and pg_toast"
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Parallel catalog queries (default: 1, sequential)"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pg_transfer",
        description="PostgreSQL schema discovery and transfer tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    pg_transfer discover --url postgresql://postgres@localhost/app
    pg_transfer discover --url postgresql://localhost/app --schemas public --json
    pg_transfer discover --tables public.users,orders --workers 4

    pg_transfer transfer --from postgresql://localhost/app --to postgresql://backup/app

    pg_transfer init-config

Environment Variables:
    SOURCE_DATABASE_URL    Source database (used when --url/--from is omitted)
    TARGET_DATABASE_URL    Target database (used when --to is omitted)
    PG_TRANSFER_LOG_LEVEL  Log level (error, warn, info, debug)
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to TOML config file (default: search pg_transfer.toml)"
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        help="Log level (default: info)"
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Log output format (default: rich)"
    )
    parser.add_argument(
        "--log-file",
        help="Also write JSON logs to this file"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress console output except errors"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # discover
    discover = subparsers.add_parser(
        "discover",
        help="Discover tables, views and materialized views",
    )
    discover.add_argument(
        "--url",
        help="Database URL (or SOURCE_DATABASE_URL)"
    )
    _add_discovery_arguments(discover)
    discover.add_argument(
        "--json",
        action="store_true",
        help="Print the snapshot as JSON instead of a summary"
    )
    discover.add_argument(
        "-o", "--output",
        help="Write the JSON snapshot to this file"
    )

    # transfer
    transfer = subparsers.add_parser(
        "transfer",
        help="Discover the source schema and verify the target",
    )
    transfer.add_argument(
        "--from",
        dest="from_url",
        help="Source database URL (or SOURCE_DATABASE_URL)"
    )
    transfer.add_argument(
        "--to",
        dest="to_url",
        help="Target database URL (or TARGET_DATABASE_URL)"
    )
    transfer.add_argument(
        "--batch-size",
        type=int,
        help=f"Rows per batch ({MIN_BATCH_SIZE}-{MAX_BATCH_SIZE}, default: 1000)"
    )
    _add_discovery_arguments(transfer)

    # init-config
    init_config = subparsers.add_parser(
        "init-config",
        help="Write an example config file",
    )
    init_config.add_argument(
        "path",
        nargs="?",
        default="pg_transfer.toml",
        help="Destination (default: pg_transfer.toml)"
    )

    return parser


def load_config(args: argparse.Namespace, require_target: bool = False) -> Config:
    """
    Layer config file, environment and arguments, then validate.

    Raises:
        ConfigurationError: unreadable config file or malformed URL
        ValidationError: the merged settings are invalid
    """
    config = Config.load(args.config)
    config.apply_env()
    config.override_from_args(args)

    errors = config.validate(require_target=require_target)
    if errors:
        raise ValidationError("; ".join(errors))
    return config


def discovery_options(args: argparse.Namespace) -> DiscoveryOptions:
    """Build DiscoveryOptions from --schemas/--tables/--include-system-schemas."""
    return DiscoveryOptions.from_csv(
        schemas=args.schemas,
        tables=args.tables,
        include_system_schemas=args.include_system_schemas,
    )


def connect(db: DatabaseConfig, config: Config) -> PostgresConnectionManager:
    """Create and initialize a connection manager."""
    manager = create_connection_manager(db, config.pool)
    manager.initialize()
    return manager


def run_discovery(
    manager: PostgresConnectionManager,
    options: DiscoveryOptions,
    workers: int,
    ui: ConsoleUI,
) -> SchemaInfo:
    """Discover one database; a failed Result is raised as its error."""
    discovery = create_schema_discovery(manager, max_workers=workers)
    with ui.status("Discovering schema..."):
        result = discovery.discover_schema(options)
    return result.unwrap()


def cmd_discover(args: argparse.Namespace, config: Config, ui: ConsoleUI) -> int:
    """Run the discover command."""
    options = discovery_options(args)
    manager = connect(config.source, config)
    try:
        snapshot = run_discovery(manager, options, config.transfer.workers, ui)
    finally:
        manager.close()

    if args.output:
        Path(args.output).write_text(snapshot.to_json())
        log.info("Snapshot written", extra={"meta": {"path": args.output}})

    if args.json:
        ui.print_json(snapshot.to_json())
        return EXIT_OK

    ui.print_summary(snapshot)
    ui.print_schema_tree(snapshot)
    if args.output:
        ui.print_success(f"Snapshot written to {args.output}")
    return EXIT_OK


def cmd_transfer(args: argparse.Namespace, config: Config, ui: ConsoleUI) -> int:
    """Run the transfer command (discovery and connectivity only)."""
    options = discovery_options(args)
    managers: List[PostgresConnectionManager] = []
    try:
        source = connect(config.source, config)
        managers.append(source)
        target = connect(config.target, config)
        managers.append(target)

        snapshot = run_discovery(source, options, config.transfer.workers, ui)
        target.execute("SELECT 1")
    finally:
        for manager in managers:
            manager.close()

    ui.print_summary(snapshot, label="Source Schema")
    ui.print()
    ui.print(f"Source: {config.source.redacted_url()}")
    ui.print(f"Target: {config.target.redacted_url()}")
    ui.print(f"Batch size: {config.transfer.batch_size}")
    ui.print_warning("Data copy is not performed; schema discovery and target connectivity verified only.")
    log.info(
        "Transfer pre-flight completed",
        extra={"meta": {"counts": snapshot.counts(), "batch_size": config.transfer.batch_size}},
    )
    return EXIT_OK


def cmd_init_config(args: argparse.Namespace, ui: ConsoleUI) -> int:
    """Run the init-config command."""
    try:
        path = create_example_config(args.path)
    except FileExistsError as e:
        ui.print_error(str(e))
        return EXIT_FAILURE
    ui.print_success(f"Created {path}")
    return EXIT_OK


COMMANDS: Dict[str, Callable[[argparse.Namespace, Config, ConsoleUI], int]] = {
    "discover": cmd_discover,
    "transfer": cmd_transfer,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    json_output = getattr(args, "json", False)
    ui = ConsoleUI(quiet=args.quiet or json_output)

    if args.command == "init-config":
        return cmd_init_config(args, ui)

    try:
        config = load_config(args, require_target=args.command == "transfer")
        setup_logging(
            level=config.logging.level,
            fmt=config.logging.format,
            file=config.logging.file,
            console=ui.err_console,
        )
        ui.print_banner(__version__)
        return COMMANDS[args.command](args, config, ui)

    except ValidationError as e:
        ui.print_error(f"Invalid options: {e}")
        return EXIT_USAGE

    except ConfigurationError as e:
        ui.print_error("Configuration error", e)
        return EXIT_FAILURE

    except DatabaseConnectionError as e:
        ui.print_error("Could not connect to database", e)
        return EXIT_FAILURE

    except DatabaseError as e:
        ui.print_error(e.message, e)
        return EXIT_FAILURE

    except KeyboardInterrupt:
        ui.print_error("Interrupted by user")
        return EXIT_INTERRUPTED

    except Exception as e:
        log.exception("Unexpected failure")
        ui.print_error(str(e), e)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
