"""
settlement.py - Zero-sum settlement of a finished session

The SettlementEngine turns an open session into a sealed SessionRecord:

1. Collect a final stack for every participant (one "round")
2. Compare the sum of stacks with the sum of buy-ins and rebuys
3. Reject the round and ask again while they differ, up to max_attempts
4. Once balanced, compute each player's profit and the session duration
5. Commit every player's accrual in one batch and append the record

Final stacks are staged outside the ledger. Nothing touches the registry,
the participations or the session history until a round balances, so a
settlement that gives up leaves every record exactly as it was.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import (
    TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Sequence, Tuple,
)

from .core import (
    Accrual, SessionRecord, SettledParticipation,
    InputExhausted, SettlementUnbalanced, EmptySession,
    hours_between, non_negative_money, sum_money, to_money,
)
from .input_source import InputSource, ask_amount

if TYPE_CHECKING:
    from .session import SessionLedger

logger = logging.getLogger(__name__)


DEFAULT_MAX_ATTEMPTS = 10

# (player_name, attempt) -> final stack. attempt starts at 1.
StackSource = Callable[[str, int], Any]

# (attempt, stacks minus contributions) for every rejected round.
ImbalanceCallback = Callable[[int, Decimal], None]


# ============================================================================
# STACK SOURCES
# ============================================================================

def prompt_stack_source(
    source: InputSource,
    write: Optional[Callable[[str], Any]] = None,
) -> StackSource:
    """
    Ask an InputSource for each final stack.

    The first round asks "Enter final stack for X: ", later rounds ask
    "Re-enter final stack for X: ".
    """
    def final_stack(name: str, attempt: int) -> Decimal:
        verb = "Enter" if attempt == 1 else "Re-enter"
        return ask_amount(source, f"{verb} final stack for {name}: ", write)

    return final_stack


def mapping_stack_source(rounds: Sequence[Mapping[str, Any]]) -> StackSource:
    """
    Supply final stacks from pre-recorded rounds.

    rounds[0] answers attempt 1, rounds[1] attempt 2, and so on.

    Example:
        stacks = mapping_stack_source([
            {"alice": 150, "bob": 60},   # rejected: 210 != 200
            {"alice": 150, "bob": 50},
        ])
    """
    def final_stack(name: str, attempt: int) -> Any:
        if attempt > len(rounds):
            raise InputExhausted(f"No final stacks recorded for attempt {attempt}")
        round_stacks = rounds[attempt - 1]
        if name not in round_stacks:
            raise InputExhausted(f"No final stack recorded for {name} in attempt {attempt}")
        return round_stacks[name]

    return final_stack


# ============================================================================
# RESULT
# ============================================================================

@dataclass(frozen=True, slots=True)
class SettlementResult:
    """
    Outcome of a successful settlement.

    Attributes:
        record: The sealed session as appended to the database
        accruals: The per-player outcomes that were committed
        duration_hours: Session length applied to every participant
        attempts: Number of rounds of final stacks it took to balance
    """
    record: SessionRecord
    accruals: Tuple[Accrual, ...]
    duration_hours: Decimal
    attempts: int

    @property
    def profits(self) -> Dict[str, Decimal]:
        return {a.name: a.profit for a in self.accruals}


# ============================================================================
# ENGINE
# ============================================================================

class SettlementEngine:
    """
    Reconciles final stacks against contributions and commits the result.

    Every participant is charged the same duration, measured from session
    start to finalization, even if they left early.
    """

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.max_attempts = max_attempts

    def collect_round(
        self,
        ledger: SessionLedger,
        stack_source: StackSource,
        attempt: int,
    ) -> Dict[str, Decimal]:
        """Ask for every participant's final stack, in the order they joined."""
        return {
            name: non_negative_money(stack_source(name, attempt), f"Final stack for {name}")
            for name in ledger.participants
        }

    @staticmethod
    def balance_error(ledger: SessionLedger, stacks: Mapping[str, Decimal]) -> Decimal:
        """Sum of final stacks minus sum of contributions, both rounded term by term."""
        total_stacks = sum_money(stacks.values())
        total_contributions = sum_money(
            p.total_contribution for p in ledger.participants.values()
        )
        return to_money(total_stacks - total_contributions)

    def settle(
        self,
        ledger: SessionLedger,
        stack_source: StackSource,
        on_imbalance: Optional[ImbalanceCallback] = None,
    ) -> SettlementResult:
        """
        Balance, seal and commit a session.

        The ledger must already carry its end_time. On success the ledger's
        participations hold their final stacks, every participant has
        accrued exactly once and the record is in ledger.database.

        Raises:
            EmptySession: If the ledger has no participants
            SettlementUnbalanced: If no round balanced within max_attempts
            InvalidAmount: If the stack source gives a negative or bad amount
        """
        if not ledger.participants:
            raise EmptySession("Cannot settle a session with no participants")
        if ledger.end_time is None:
            raise ValueError("Session must be stamped with an end time before settlement")

        stacks: Dict[str, Decimal] = {}
        difference = Decimal("0")
        for attempt in range(1, self.max_attempts + 1):
            stacks = self.collect_round(ledger, stack_source, attempt)
            difference = self.balance_error(ledger, stacks)
            if difference == 0:
                break
            logger.warning(
                "Final stacks out of balance by %s on attempt %d of %d",
                difference, attempt, self.max_attempts,
            )
            if on_imbalance:
                on_imbalance(attempt, difference)
        else:
            raise SettlementUnbalanced(self.max_attempts, difference)

        duration = hours_between(ledger.start_time, ledger.end_time)
        entries = []
        accruals = []
        for name, participation in ledger.participants.items():
            entry = SettledParticipation(
                name=name,
                buy_in=participation.buy_in,
                rebuys=tuple(participation.rebuys),
                final_stack=stacks[name],
            )
            entries.append(entry)
            accruals.append(Accrual(name=name, profit=entry.profit, hours=duration))

        record = SessionRecord(
            start_time=ledger.start_time,
            end_time=ledger.end_time,
            participants=tuple(entries),
        )
        # Profits of a balanced session cancel out exactly.
        assert sum_money(a.profit for a in accruals) == 0, "settled profits must sum to zero"

        # Commit: registry first (it validates every name before changing any).
        ledger.database.players.apply_accruals(accruals)
        for name, stack in stacks.items():
            ledger.participants[name].final_stack = stack
        ledger.database.append_session(record)

        logger.info(
            "Settled session with %d player(s) over %s hours after %d attempt(s)",
            len(entries), duration, attempt,
        )
        return SettlementResult(
            record=record,
            accruals=tuple(accruals),
            duration_hours=duration,
            attempts=attempt,
        )
