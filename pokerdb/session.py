"""
session.py - The in-progress session ledger

A SessionLedger is built one operation at a time while the game is running:
players join with a buy-in, rebuy during play, and newcomers can be
registered on the spot. Finalizing hands the ledger to the settlement
engine, which seals it.

State machine:
    OPEN --seal()--> SEALED

Every mutation is validated before anything changes, so a rejected
operation leaves both the ledger and the player registry untouched.
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
import logging
from typing import Any, Callable, Dict, Optional

from .core import (
    Participation, SessionState,
    AlreadyExists, AlreadyParticipant, EmptySession, InvalidState,
    NotParticipant, UnknownPlayer,
    now_local, non_negative_money, require_name, sum_money,
)
from .registry import Database, PlayerRegistry
from .settlement import (
    ImbalanceCallback, SettlementEngine, SettlementResult, StackSource,
)

logger = logging.getLogger(__name__)


class SessionLedger:
    """
    Mutable record of a session that is still being played.

    Attributes:
        database: Database whose registry and history the session settles into
        engine: SettlementEngine used by seal()
        start_time: When the session was opened
        end_time: Stamped by seal(); None while open
        participants: Player name -> Participation, in joining order
        state: SessionState.OPEN until a successful seal()

    Example:
        ledger = SessionLedger(db)
        ledger.add_participant("alice", Decimal("100"))
        ledger.add_participant("bob", Decimal("100"))
        ledger.add_rebuy("bob", Decimal("50"))
        result = ledger.seal(mapping_stack_source([{"alice": 200, "bob": 50}]))
    """

    def __init__(
        self,
        database: Database,
        engine: Optional[SettlementEngine] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self.database = database
        self.engine = engine or SettlementEngine()
        self._clock = clock
        self.start_time: datetime = clock()
        self.end_time: Optional[datetime] = None
        self.participants: Dict[str, Participation] = {}
        self.state = SessionState.OPEN

    @property
    def registry(self) -> PlayerRegistry:
        return self.database.players

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    @property
    def total_contributions(self) -> Decimal:
        return sum_money(p.total_contribution for p in self.participants.values())

    def _require_open(self) -> None:
        if self.state is not SessionState.OPEN:
            raise InvalidState(f"Session is {self.state.value}; no further changes allowed")

    def require_participant(self, name: str) -> None:
        """Raise NotParticipant unless the player has joined this session."""
        if name not in self.participants:
            raise NotParticipant(f"Player not in session: {name}")

    def require_unregistered(self, name: str) -> None:
        """Raise InvalidName for a blank name, AlreadyExists for a registered one."""
        require_name(name)
        if self.registry.exists(name):
            raise AlreadyExists(f"Player already exists in the database: {name}")

    # ------------------------------------------------------------------
    # Transitions valid only while OPEN
    # ------------------------------------------------------------------

    def add_participant(self, name: str, buy_in: Any) -> Participation:
        """
        Seat a registered player with their initial buy-in.

        Raises:
            InvalidState: If the session is sealed
            UnknownPlayer: If the name is not in the registry
            AlreadyParticipant: If the player is already seated
            InvalidAmount: If the buy-in is negative or not a number
        """
        self._require_open()
        if not self.registry.exists(name):
            raise UnknownPlayer(f"Unknown player: {name}")
        if name in self.participants:
            raise AlreadyParticipant(f"{name} is already in the session.")
        amount = non_negative_money(buy_in, "Buy-in")
        participation = Participation(buy_in=amount)
        self.participants[name] = participation
        logger.info("%s joined with %s", name, amount)
        return participation

    def add_rebuy(self, name: str, amount: Any) -> Participation:
        """
        Record a rebuy for a seated player.

        Raises:
            InvalidState: If the session is sealed
            NotParticipant: If the player has not joined this session
            InvalidAmount: If the amount is negative or not a number
        """
        self._require_open()
        self.require_participant(name)
        rebuy = non_negative_money(amount, "Rebuy")
        participation = self.participants[name]
        participation.rebuys.append(rebuy)
        logger.info("%s rebought for %s", name, rebuy)
        return participation

    def register_and_add(self, name: str, buy_in: Any) -> Participation:
        """
        Register a brand new player and seat them in one step.

        The buy-in is validated first so a bad amount never leaves a
        half-registered player behind.

        Raises:
            InvalidState: If the session is sealed
            InvalidName: If the name is blank
            AlreadyExists: If the name is already registered
            InvalidAmount: If the buy-in is negative or not a number
        """
        self._require_open()
        self.require_unregistered(name)
        non_negative_money(buy_in, "Buy-in")
        self.registry.add(name)
        return self.add_participant(name, buy_in)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def seal(
        self,
        stack_source: StackSource,
        on_imbalance: Optional[ImbalanceCallback] = None,
    ) -> SettlementResult:
        """
        Stamp the end time and settle the session.

        If settlement fails for any reason the end time is cleared and the
        ledger stays OPEN, so rebuys can be corrected and seal() retried.

        Raises:
            InvalidState: If the session is already sealed
            EmptySession: If nobody joined
            SettlementUnbalanced: If the stacks never balanced
        """
        self._require_open()
        if not self.participants:
            raise EmptySession("Cannot finalize a session with no players")

        self.end_time = self._clock()
        try:
            result = self.engine.settle(self, stack_source, on_imbalance)
        except BaseException:
            self.end_time = None
            raise
        self.state = SessionState.SEALED
        return result

    def __repr__(self) -> str:
        return (
            f"SessionLedger({self.state.value}, {len(self.participants)} players, "
            f"in play {self.total_contributions})"
        )
