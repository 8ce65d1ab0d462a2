"""
controller.py - Interactive menu for running a session

Binds an InputSource to a SessionLedger: shows the menu, dispatches the
choice, reports errors and asks again. The loop ends only when a
finalize succeeds. Domain errors never escape the loop; running out of
input (InputExhausted) does, so a closed stdin cannot spin forever.
"""

from __future__ import annotations
from decimal import Decimal
import logging
from typing import Any, Callable, Optional

from .core import PokerDBError, SettlementUnbalanced, InputExhausted
from .input_source import InputSource, ask_amount
from .session import SessionLedger
from .settlement import SettlementResult, prompt_stack_source

logger = logging.getLogger(__name__)


MENU = (
    "\nOptions:\n"
    "1. Add Player to Session\n"
    "2. Add Rebuy for a Player\n"
    "3. Add New Player to Database\n"
    "4. Finalize Session"
)
MENU_PROMPT = "Choose an option: "

ADD_PARTICIPANT = "1"
ADD_REBUY = "2"
REGISTER_AND_ADD = "3"
FINALIZE = "4"


class SessionController:
    """
    Menu loop over a SessionLedger.

    Args:
        ledger: The open session to drive
        source: Where answers come from
        out: Normal output (menu, confirmations)
        err: Error output
    """

    def __init__(
        self,
        ledger: SessionLedger,
        source: InputSource,
        out: Callable[[str], Any] = print,
        err: Optional[Callable[[str], Any]] = None,
    ):
        self.ledger = ledger
        self.source = source
        self.out = out
        self.err = err or out
        self._handlers = {
            ADD_PARTICIPANT: self.add_participant,
            ADD_REBUY: self.add_rebuy,
            REGISTER_AND_ADD: self.register_and_add,
        }

    def run(self) -> SettlementResult:
        """
        Run the menu until the session is finalized.

        Raises:
            InputExhausted: If the input source runs dry first
        """
        self.out("Starting new session...")
        while True:
            self.out(MENU)
            choice = self.source.next_string(MENU_PROMPT)
            if choice == FINALIZE:
                result = self.finalize()
                if result is not None:
                    return result
                continue
            handler = self._handlers.get(choice)
            if handler is None:
                self.err("Invalid option, please try again.")
                continue
            try:
                handler()
            except InputExhausted:
                raise
            except PokerDBError as e:
                logger.info("Rejected menu action %s: %s", choice, e)
                self.err(str(e))

    def _amount(self, prompt: str) -> Decimal:
        return ask_amount(self.source, prompt, self.err)

    def add_participant(self) -> None:
        name = self.source.next_string("Enter player name: ")
        buy_in = self._amount("Enter buy-in amount: ")
        self.ledger.add_participant(name, buy_in)
        self.out(f"{name} joined with {buy_in:.2f}.")

    def add_rebuy(self) -> None:
        name = self.source.next_string("Enter player name: ")
        self.ledger.require_participant(name)
        amount = self._amount("Enter rebuy amount: ")
        self.ledger.add_rebuy(name, amount)
        self.out(f"{name} rebought for {amount:.2f}.")

    def register_and_add(self) -> None:
        name = self.source.next_string("Enter new player's name: ")
        self.ledger.require_unregistered(name)
        buy_in = self._amount(f"Enter buy-in amount for {name}: ")
        self.ledger.register_and_add(name, buy_in)
        self.out(f"New player {name} added to the database.")

    def _report_imbalance(self, attempt: int, difference: Decimal) -> None:
        self.err(f"Profit difference is not zero ({difference}). Re-enter final stacks.")

    def finalize(self) -> Optional[SettlementResult]:
        """Settle the session; None means it is still open and the menu continues."""
        self.out("Finalizing session...")
        try:
            result = self.ledger.seal(
                prompt_stack_source(self.source, self.err),
                on_imbalance=self._report_imbalance,
            )
        except InputExhausted:
            raise
        except SettlementUnbalanced as e:
            self.err(f"{e}. Check buy-ins and rebuys, then finalize again.")
            return None
        except PokerDBError as e:
            self.err(str(e))
            return None

        for accrual in result.accruals:
            self.out(f"{accrual.name}: {accrual.profit:+.2f}")
        self.out(f"Session settled ({result.duration_hours:.2f} hours).")
        return result
