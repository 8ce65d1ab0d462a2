"""
cli.py - The pokerdb command line

Commands:
    pokerdb newdb <name> [--force]
    pokerdb addPlayer <db> <name>
    pokerdb listPlayers <db>
    pokerdb renamePlayer <db> <old> <new>
    pokerdb startSession <db>
    pokerdb stats <db>

Exit status is 1 for usage errors and storage failures, 0 otherwise.
Player-level problems (unknown or duplicate names) are reported on
stderr without failing the command.
"""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Callable, List, Optional

from .config import PokerDBSettings
from .controller import SessionController
from .core import (
    InputExhausted, PokerDBError, StorageError, NotFound,
    DatabaseAlreadyExists, DatabaseNotFound,
)
from .input_source import ConsoleInput, InputSource
from .logging_config import setup_logging
from .session import SessionLedger
from .settlement import SettlementEngine
from .stats import format_stats
from .storage import PersistenceStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def _err(message: str) -> None:
    print(message, file=sys.stderr)


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_newdb(store: PersistenceStore, args: argparse.Namespace, source: InputSource) -> int:
    store.create(args.name, overwrite=args.force)
    print(f"Database created: {args.name}")
    return EXIT_OK


def cmd_add_player(store: PersistenceStore, args: argparse.Namespace, source: InputSource) -> int:
    db = store.open(args.db)
    try:
        db.players.add(args.name)
    except PokerDBError as e:
        _err(str(e))
        return EXIT_OK
    store.save(args.db, db)
    print(f"Player added: {args.name}")
    return EXIT_OK


def cmd_list_players(store: PersistenceStore, args: argparse.Namespace, source: InputSource) -> int:
    db = store.open(args.db)
    if not len(db.players):
        print("No players in the database.")
        return EXIT_OK
    print("\nList of Players:")
    print("--------------------------")
    for player in db.players:
        print(f"Name: {player.name}, Profit: {player.profit:.2f}")
    print("--------------------------")
    return EXIT_OK


def cmd_rename_player(store: PersistenceStore, args: argparse.Namespace, source: InputSource) -> int:
    db = store.open(args.db)
    try:
        db.players.rename(args.old, args.new)
    except PokerDBError as e:
        if isinstance(e, NotFound):
            _err(f"Player not found: {args.old}")
        else:
            _err(str(e))
        return EXIT_OK
    store.save(args.db, db)
    print(f"Player renamed to: {args.new}")
    return EXIT_OK


def cmd_start_session(store: PersistenceStore, args: argparse.Namespace, source: InputSource) -> int:
    db = store.open(args.db)
    if not len(db.players):
        _err("No players in the database. Add players first.")
        return EXIT_OK

    engine = SettlementEngine(max_attempts=store.settings.max_settlement_attempts)
    ledger = SessionLedger(db, engine=engine)
    controller = SessionController(ledger, source, out=print, err=_err)
    try:
        controller.run()
    except InputExhausted:
        _err("Input ended before the session was finalized; nothing was saved.")
        return EXIT_FAILURE
    store.save(args.db, db)
    return EXIT_OK


def cmd_stats(store: PersistenceStore, args: argparse.Namespace, source: InputSource) -> int:
    db = store.open(args.db)
    print(format_stats(db))
    return EXIT_OK


# ============================================================================
# PARSER
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="pokerdb",
        description="Track poker home-game sessions, buy-ins and lifetime results.",
    )
    parser.add_argument("--data-dir", help="Directory holding the database files")
    parser.add_argument("--log-level", help="Log level for stderr (default: WARNING)")
    sub = parser.add_subparsers(dest="command", metavar="<command>", parser_class=_ArgumentParser)
    sub.required = True

    p = sub.add_parser("newdb", help="Create a new database")
    p.add_argument("name")
    p.add_argument("--force", action="store_true", help="Overwrite an existing database")
    p.set_defaults(func=cmd_newdb)

    p = sub.add_parser("addPlayer", help="Register a player")
    p.add_argument("db")
    p.add_argument("name")
    p.set_defaults(func=cmd_add_player)

    p = sub.add_parser("listPlayers", help="List players and their profit")
    p.add_argument("db")
    p.set_defaults(func=cmd_list_players)

    p = sub.add_parser("renamePlayer", help="Rename a player")
    p.add_argument("db")
    p.add_argument("old")
    p.add_argument("new")
    p.set_defaults(func=cmd_rename_player)

    p = sub.add_parser("startSession", help="Run a session interactively")
    p.add_argument("db")
    p.set_defaults(func=cmd_start_session)

    p = sub.add_parser("stats", help="Show lifetime statistics")
    p.add_argument("db")
    p.set_defaults(func=cmd_stats)

    return parser


def _settings_from_args(args: argparse.Namespace, settings: Optional[PokerDBSettings]) -> PokerDBSettings:
    overrides = {}
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.log_level:
        overrides["log_level"] = args.log_level
    if settings is None:
        return PokerDBSettings(**overrides)
    if overrides:
        return PokerDBSettings(**{**settings.model_dump(), **overrides})
    return settings


def main(
    argv: Optional[List[str]] = None,
    source: Optional[InputSource] = None,
    settings: Optional[PokerDBSettings] = None,
    configure_logging: Callable[..., object] = setup_logging,
) -> int:
    """
    Run one command and return the exit status.

    Args:
        argv: Arguments without the program name (default: sys.argv[1:])
        source: Input for startSession (default: the terminal)
        settings: Base settings; --data-dir/--log-level override them
        configure_logging: Logging setup hook
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _settings_from_args(args, settings)
    except ValueError as e:
        parser.error(str(e))

    configure_logging(settings.log_level_number, settings.log_dir)
    store = PersistenceStore(settings)
    source = source or ConsoleInput()
    logger.info("Running %s in %s", args.command, store.data_dir)

    try:
        return args.func(store, args, source)
    except DatabaseNotFound as e:
        _err(str(e))
    except DatabaseAlreadyExists as e:
        _err(f"{e} (use --force to overwrite)")
    except StorageError as e:
        _err(str(e))
    return EXIT_FAILURE


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())
