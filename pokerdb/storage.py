"""
storage.py - One JSON file per database

Classes:
- PersistenceStore: open/create/save databases under a data directory

Functions:
- database_to_dict / database_from_dict: the on-disk document shape

The document layout is shared with earlier versions of the tool:

    {
      "players": [{"name", "profit", "sessions", "hoursPlayed"}, ...],
      "sessions": [{"startTime", "endTime",
                    "players": {"<name>": {"buyin", "rebuys", "finalStack"}}}]
    }

Files hold private results, so the directory is created owner-only (0o700)
and each file is written owner-only (0o600). Writes go to a temp file that
is renamed over the target, so a failed save never truncates a database.
No locking is done: two processes saving the same database will race.
"""

from __future__ import annotations
import contextlib
from decimal import Decimal
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Dict, List, Optional

from .config import PokerDBSettings
from .core import (
    Player, SessionRecord, SettledParticipation,
    CorruptDatabase, DatabaseAlreadyExists, DatabaseNotFound,
    InvalidDatabaseName, PokerDBError, StorageError,
    format_timestamp, parse_timestamp, to_money,
)
from .registry import Database, PlayerRegistry

logger = logging.getLogger(__name__)

# Owner-only directory permissions for the data directory.
_DATA_DIR_MODE = 0o700

# Owner-only file permissions for database files.
_DB_FILE_MODE = 0o600

DB_SUFFIX = ".json"


# ============================================================================
# DOCUMENT CODEC
# ============================================================================

def _encode_number(value: Any) -> Any:
    """
    json.dumps hook: amounts are stored as plain JSON numbers.

    to_money() caps amounts at MAX_AMOUNT, below which a two-decimal value
    converts to float and back without loss.
    """
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _amount(raw: Any, where: str) -> Decimal:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, Decimal)):
        raise CorruptDatabase(f"{where}: expected a number, got {raw!r}")
    return to_money(raw)


def player_to_dict(player: Player) -> Dict[str, Any]:
    return {
        "name": player.name,
        "profit": player.profit,
        "sessions": player.sessions,
        "hoursPlayed": player.hours_played,
    }


def player_from_dict(data: Dict[str, Any]) -> Player:
    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise CorruptDatabase(f"Player record without a name: {data!r}")
    sessions = data.get("sessions", 0)
    if isinstance(sessions, bool) or not isinstance(sessions, int) or sessions < 0:
        raise CorruptDatabase(f"Player {name}: invalid session count {sessions!r}")
    return Player(
        name=name,
        profit=_amount(data.get("profit", 0), f"Player {name} profit"),
        sessions=sessions,
        hours_played=_amount(data.get("hoursPlayed", 0), f"Player {name} hoursPlayed"),
    )


def session_to_dict(record: SessionRecord) -> Dict[str, Any]:
    return {
        "startTime": format_timestamp(record.start_time),
        "endTime": format_timestamp(record.end_time),
        "players": {
            p.name: {
                "buyin": p.buy_in,
                "rebuys": list(p.rebuys),
                "finalStack": p.final_stack,
            }
            for p in record.participants
        },
    }


def session_from_dict(data: Dict[str, Any]) -> SessionRecord:
    try:
        start_time = parse_timestamp(data.get("startTime", ""))
        end_time = parse_timestamp(data.get("endTime", ""))
    except (TypeError, ValueError) as e:
        raise CorruptDatabase(f"Session with invalid timestamp: {e}") from None
    if start_time is None:
        raise CorruptDatabase("Session without a startTime")

    players = data.get("players", {})
    if not isinstance(players, dict):
        raise CorruptDatabase("Session players must be an object keyed by name")

    entries = []
    for name, entry in players.items():
        rebuys = entry.get("rebuys", [])
        if not isinstance(rebuys, list):
            raise CorruptDatabase(f"Session player {name}: rebuys must be a list")
        entries.append(SettledParticipation(
            name=name,
            buy_in=_amount(entry.get("buyin", 0), f"Session player {name} buyin"),
            rebuys=tuple(_amount(r, f"Session player {name} rebuy") for r in rebuys),
            final_stack=_amount(entry.get("finalStack", 0), f"Session player {name} finalStack"),
        ))
    return SessionRecord(start_time=start_time, end_time=end_time, participants=tuple(entries))


def database_to_dict(db: Database) -> Dict[str, Any]:
    return {
        "players": [player_to_dict(p) for p in db.players],
        "sessions": [session_to_dict(s) for s in db.sessions],
    }


def database_from_dict(data: Any) -> Database:
    """
    Build a Database from a parsed document.

    Sessions are restored as they were written, without re-checking their
    balance, so files from older versions still load.

    Raises:
        CorruptDatabase: If the document does not have the expected shape
    """
    if not isinstance(data, dict):
        raise CorruptDatabase("Database document must be a JSON object")
    players = data.get("players", [])
    sessions = data.get("sessions", [])
    if not isinstance(players, list) or not isinstance(sessions, list):
        raise CorruptDatabase("'players' and 'sessions' must be lists")
    try:
        registry = PlayerRegistry(player_from_dict(p) for p in players)
        records = [session_from_dict(s) for s in sessions]
    except (ArithmeticError, AttributeError, TypeError, ValueError) as e:
        raise CorruptDatabase(f"Malformed database document: {e}") from None
    except PokerDBError as e:
        if isinstance(e, CorruptDatabase):
            raise
        raise CorruptDatabase(str(e)) from None
    return Database(players=registry, sessions=records)


def dumps(db: Database) -> str:
    return json.dumps(database_to_dict(db), indent=4, default=_encode_number)


def loads(text: str) -> Database:
    try:
        data = json.loads(text, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise CorruptDatabase(f"Invalid JSON: {e}") from None
    return database_from_dict(data)


# ============================================================================
# STORE
# ============================================================================

class PersistenceStore:
    """
    Loads and saves whole databases under settings.data_dir.

    Example:
        store = PersistenceStore(PokerDBSettings(data_dir=tmp_path))
        db = store.create("friday")
        db.players.add("alice")
        store.save("friday", db)
        assert store.open("friday") == db
    """

    def __init__(self, settings: Optional[PokerDBSettings] = None):
        self.settings = settings or PokerDBSettings()
        self._data_dir = Path(self.settings.data_dir).expanduser().resolve()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, name: str) -> Path:
        """
        Resolve the file for a database name.

        Raises:
            InvalidDatabaseName: If the name is blank or escapes the data directory
        """
        if not name or not name.strip():
            raise InvalidDatabaseName("Database name cannot be empty")
        target = (self._data_dir / f"{name}{DB_SUFFIX}").resolve()
        if target.parent != self._data_dir:
            raise InvalidDatabaseName(f"Database name '{name}' resolves outside the data directory")
        return target

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def list_databases(self) -> List[str]:
        if not self._data_dir.is_dir():
            return []
        return sorted(p.stem for p in self._data_dir.glob(f"*{DB_SUFFIX}") if p.is_file())

    def open(self, name: str) -> Database:
        """
        Load a database.

        Raises:
            DatabaseNotFound: If no file exists for the name
            CorruptDatabase: If the file is not a valid database
            StorageError: If the file cannot be read
        """
        path = self.path_for(name)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise DatabaseNotFound(f"Could not open database file: {path}") from None
        except OSError as e:
            logger.exception("Failed to read database %s", path)
            raise StorageError(f"Could not open database file: {path}: {e}") from e
        db = loads(text)
        logger.debug("Loaded database %s: %r", name, db)
        return db

    def create(self, name: str, overwrite: bool = False) -> Database:
        """
        Write a new, empty database.

        Raises:
            DatabaseAlreadyExists: If a file exists and overwrite is False
            StorageError: If the file cannot be written
        """
        if not overwrite and self.exists(name):
            raise DatabaseAlreadyExists(f"Database already exists: {name}")
        db = Database()
        self.save(name, db)
        return db

    def save(self, name: str, db: Database) -> Path:
        """
        Atomically replace the database file.

        Creates the data directory on first write with owner-only
        permissions, writes a temp file in the same directory, fsyncs it
        and renames it over the target.

        Raises:
            StorageError: If any filesystem step fails (the old file is kept)
        """
        target = self.path_for(name)
        content = dumps(db)
        try:
            os.makedirs(str(self._data_dir), mode=_DATA_DIR_MODE, exist_ok=True)
            self._data_dir.chmod(_DATA_DIR_MODE)
            self._write_atomic(target, content)
        except OSError as e:
            logger.exception("Failed to save database %s", target)
            raise StorageError(f"Could not save to database file: {target}: {e}") from e
        logger.info("Saved database %s to %s", name, target)
        return target

    def _write_atomic(self, target: Path, content: str) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=str(self._data_dir), suffix=".tmp", prefix=f".{target.stem}_")
        fd_owned = True
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _DB_FILE_MODE)
            Path(tmp_path).replace(target)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise

    def __repr__(self) -> str:
        return f"PersistenceStore({self._data_dir})"
