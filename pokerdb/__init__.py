"""
pokerdb - Poker Home-Game Ledger

Tracks players, buy-ins, rebuys and final stacks for home-game sessions,
settles each session to zero and keeps lifetime results per player.

Usage:
    from pokerdb import (
        PersistenceStore, PokerDBSettings, SessionLedger, SettlementEngine,
        mapping_stack_source,
    )

    store = PersistenceStore(PokerDBSettings(data_dir="/tmp/pokerdb"))
    db = store.create("friday")
    db.players.add("alice")
    db.players.add("bob")

    ledger = SessionLedger(db, engine=SettlementEngine(max_attempts=3))
    ledger.add_participant("alice", 100)
    ledger.add_participant("bob", 100)
    ledger.seal(mapping_stack_source([{"alice": 150, "bob": 50}]))

    store.save("friday", db)
"""

# Core types
from .core import (
    Player,
    Accrual,
    Participation,
    SettledParticipation,
    SessionRecord,
    SessionState,
    PokerDBError,
    NotFound,
    UnknownPlayer,
    NotParticipant,
    DatabaseNotFound,
    AlreadyExists,
    AlreadyParticipant,
    DatabaseAlreadyExists,
    InvalidState,
    EmptySession,
    SettlementUnbalanced,
    InvalidAmount,
    InvalidName,
    StorageError,
    CorruptDatabase,
    InvalidDatabaseName,
    InputExhausted,
    to_money,
    hours_between,
)

# Registry and database
from .registry import PlayerRegistry, Database

# Session ledger and settlement
from .session import SessionLedger
from .settlement import (
    SettlementEngine,
    SettlementResult,
    prompt_stack_source,
    mapping_stack_source,
)

# Input
from .input_source import InputSource, ConsoleInput, ScriptedInput

# Controller
from .controller import SessionController

# Persistence and configuration
from .config import PokerDBSettings
from .storage import PersistenceStore

# Statistics
from .stats import PlayerStats, DatabaseSummary, player_stats, summarize, format_stats
