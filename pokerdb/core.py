"""
Core types and pure functions for the poker session ledger.

This module provides the foundational data structures for the ledger:
1. Money helpers: to_money() and the two-decimal quantizer
2. Exceptions: PokerDBError and the domain-specific error types
3. Data structures: Player, Participation, SettledParticipation, SessionRecord
4. Timestamp helpers: the "YYYY-MM-DD HH:MM:SS" wire format

Nothing in this module touches the filesystem or prompts the user.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# ============================================================================
# CONSTANTS
# ============================================================================

# Two decimal places for every amount and for hours played.
MONEY_PLACES = 2
MONEY_QUANTIZER = Decimal(10) ** -MONEY_PLACES

# Half-up matches round(x * 100) / 100 on the values players type in.
MONEY_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0.00")

# Persisted timestamp format (local time, whole seconds).
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

SECONDS_PER_HOUR = Decimal(3600)

# Amounts are stored as JSON numbers (binary floats). Up to this magnitude
# every two-decimal value survives the round trip exactly.
MAX_AMOUNT = Decimal("1000000000000")


# ============================================================================
# EXCEPTIONS
# ============================================================================

class PokerDBError(Exception):
    """Base exception for all poker ledger errors."""
    pass


class NotFound(PokerDBError):
    """Raised when a database, player or participant does not exist."""
    pass


class UnknownPlayer(NotFound):
    """Raised when a name is not present in the player registry."""
    pass


class NotParticipant(NotFound):
    """Raised when a name has not been added to the current session."""
    pass


class DatabaseNotFound(NotFound):
    """Raised when no database file exists for the requested name."""
    pass


class AlreadyExists(PokerDBError):
    """Raised when adding a player or database that is already present."""
    pass


class AlreadyParticipant(AlreadyExists):
    """Raised when a player is added to the same session twice."""
    pass


class DatabaseAlreadyExists(AlreadyExists):
    """Raised when creating a database over an existing file without overwrite."""
    pass


class InvalidState(PokerDBError):
    """Raised when a session operation is attempted outside the required state."""
    pass


class EmptySession(InvalidState):
    """Raised when finalizing a session nobody was added to."""
    pass


class SettlementUnbalanced(PokerDBError):
    """Raised when final stacks never matched contributions within the attempt limit."""

    def __init__(self, attempts: int, difference: Decimal):
        self.attempts = attempts
        self.difference = difference
        super().__init__(
            f"Final stacks did not balance after {attempts} attempt(s) "
            f"(last difference {difference})"
        )


class InvalidAmount(PokerDBError, ValueError):
    """Raised when an amount is not a finite, non-negative number."""
    pass


class InvalidName(PokerDBError, ValueError):
    """Raised when a player name is empty or only whitespace."""
    pass


class StorageError(PokerDBError):
    """Raised when the database file cannot be read or written."""
    pass


class CorruptDatabase(StorageError):
    """Raised when a database file is not valid JSON or violates the schema."""
    pass


class InvalidDatabaseName(StorageError):
    """Raised when a database name would resolve outside the data directory."""
    pass


class InputExhausted(PokerDBError, EOFError):
    """Raised when an input source has no more values to give."""
    pass


# ============================================================================
# MONEY HELPERS
# ============================================================================

def to_money(value: Any) -> Decimal:
    """
    Quantize a value to two decimal places.

    Accepts Decimal, int and numeric strings. Floats go through str() so
    that 0.1 becomes Decimal("0.10") rather than its binary expansion.

    Raises:
        InvalidAmount: If the value is a bool, not numeric, NaN, infinite
            or larger in magnitude than MAX_AMOUNT.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Not an amount: {value!r}")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmount(f"Not an amount: {value!r}") from None
    if not value.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {value}")
    if abs(value) > MAX_AMOUNT:
        raise InvalidAmount(f"Amount out of range, got {value}")
    try:
        return value.quantize(MONEY_QUANTIZER, rounding=MONEY_ROUNDING)
    except InvalidOperation:
        raise InvalidAmount(f"Not an amount: {value}") from None


def non_negative_money(value: Any, what: str = "Amount") -> Decimal:
    """Quantize a value and reject negatives."""
    amount = to_money(value)
    if amount < 0:
        raise InvalidAmount(f"{what} cannot be negative: {amount}")
    return amount


def sum_money(values) -> Decimal:
    """Sum already-quantized amounts term by term and quantize the total."""
    return to_money(sum((to_money(v) for v in values), ZERO))


def require_name(name: Any) -> str:
    """Return the name unchanged, or raise InvalidName if it is blank."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidName("Player name cannot be empty")
    return name


def hours_between(start: datetime, end: datetime) -> Decimal:
    """
    Whole-second duration between two timestamps, in hours.

    A clock that moved backwards yields zero rather than negative hours.
    """
    seconds = int((end - start).total_seconds())
    if seconds <= 0:
        return ZERO
    return to_money(Decimal(seconds) / SECONDS_PER_HOUR)


# ============================================================================
# TIMESTAMP HELPERS
# ============================================================================

def now_local() -> datetime:
    """Current local time truncated to whole seconds."""
    return datetime.now().replace(microsecond=0)


def format_timestamp(value: Optional[datetime]) -> str:
    """Render a timestamp in the persisted format; an unset one is ''."""
    if value is None:
        return ""
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> Optional[datetime]:
    """Parse the persisted format; '' means the timestamp was never set."""
    if not text:
        return None
    return datetime.strptime(text, TIMESTAMP_FORMAT)


# ============================================================================
# ENUMS
# ============================================================================

class SessionState(Enum):
    """
    Lifecycle of a session under construction.

    OPEN: accepting participants and rebuys.
    SEALED: settled, timestamped and appended to the database.
    """
    OPEN = "open"
    SEALED = "sealed"


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Player:
    """
    Lifetime record for one player.

    Attributes:
        name: Unique key within the registry.
        profit: Cumulative profit across all settled sessions.
        sessions: Number of settled sessions played.
        hours_played: Cumulative hours across all settled sessions.

    Lifetime fields only change through PlayerRegistry.apply_accruals().
    """
    name: str
    profit: Decimal = ZERO
    sessions: int = 0
    hours_played: Decimal = ZERO

    def __post_init__(self):
        require_name(self.name)
        if self.sessions < 0:
            raise ValueError(f"Player sessions cannot be negative, got {self.sessions}")
        if self.hours_played < 0:
            raise ValueError(f"Player hours cannot be negative, got {self.hours_played}")


@dataclass(frozen=True, slots=True)
class Accrual:
    """
    One participant's staged outcome for a settled session.

    Built by the settlement engine and committed in a single batch.
    """
    name: str
    profit: Decimal
    hours: Decimal


@dataclass(slots=True)
class Participation:
    """
    A player's financial activity in a session that is still open.

    final_stack stays None until settlement writes a balanced value.
    """
    buy_in: Decimal
    rebuys: List[Decimal] = field(default_factory=list)
    final_stack: Optional[Decimal] = None

    @property
    def total_contribution(self) -> Decimal:
        return to_money(to_money(self.buy_in) + sum_money(self.rebuys))


@dataclass(frozen=True, slots=True)
class SettledParticipation:
    """
    Immutable record of one player's result in a sealed session.

    Attributes:
        name: Player name at the time of the session.
        buy_in: Initial buy-in.
        rebuys: Rebuy amounts in the order they were made.
        final_stack: Stack counted at settlement.
    """
    name: str
    buy_in: Decimal
    rebuys: Tuple[Decimal, ...] = ()
    final_stack: Decimal = ZERO

    @property
    def total_contribution(self) -> Decimal:
        return to_money(to_money(self.buy_in) + sum_money(self.rebuys))

    @property
    def profit(self) -> Decimal:
        return to_money(to_money(self.final_stack) - self.total_contribution)


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """
    A session as stored in the database.

    Records produced by settlement always have an end_time and balance
    exactly. Records loaded from older files may lack an end_time.
    """
    start_time: datetime
    end_time: Optional[datetime]
    participants: Tuple[SettledParticipation, ...] = ()

    @property
    def is_sealed(self) -> bool:
        return self.end_time is not None

    @property
    def duration_hours(self) -> Decimal:
        if self.end_time is None:
            return ZERO
        return hours_between(self.start_time, self.end_time)

    @property
    def total_contributions(self) -> Decimal:
        return sum_money(p.total_contribution for p in self.participants)

    @property
    def total_stacks(self) -> Decimal:
        return sum_money(p.final_stack for p in self.participants)

    @property
    def balance_error(self) -> Decimal:
        return to_money(self.total_stacks - self.total_contributions)

    def participant(self, name: str) -> SettledParticipation:
        for entry in self.participants:
            if entry.name == name:
                return entry
        raise NotParticipant(f"{name} did not play in this session")

    def names(self) -> List[str]:
        return [p.name for p in self.participants]

    def results(self) -> Dict[str, Decimal]:
        """Profit per participant, keyed by name."""
        return {p.name: p.profit for p in self.participants}
