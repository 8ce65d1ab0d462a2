"""
test_session.py - Unit tests for SessionLedger

Tests:
- add_participant / add_rebuy / register_and_add and their failures
- Rejected operations leave ledger and registry unchanged
- seal(): empty sessions, state transitions, reopening after failure
"""

import pytest
from datetime import datetime
from decimal import Decimal

from pokerdb import (
    SessionState, mapping_stack_source,
    AlreadyExists, AlreadyParticipant, EmptySession, InvalidAmount, InvalidName, InvalidState,
    NotParticipant, SettlementUnbalanced, UnknownPlayer,
)


class TestAddParticipant:

    def test_add_participant(self, ledger):
        participation = ledger.add_participant("alice", 100)
        assert participation.buy_in == Decimal("100.00")
        assert participation.rebuys == []
        assert participation.final_stack is None
        assert list(ledger.participants) == ["alice"]

    def test_unknown_player(self, ledger):
        with pytest.raises(UnknownPlayer, match="carol"):
            ledger.add_participant("carol", 100)
        assert ledger.participants == {}

    def test_already_participant(self, ledger):
        ledger.add_participant("alice", 100)
        with pytest.raises(AlreadyParticipant):
            ledger.add_participant("alice", 200)
        assert ledger.participants["alice"].buy_in == Decimal("100")

    def test_negative_buy_in(self, ledger):
        with pytest.raises(InvalidAmount):
            ledger.add_participant("alice", -1)
        assert ledger.participants == {}

    def test_buy_in_quantized(self, ledger):
        assert ledger.add_participant("alice", "99.999").buy_in == Decimal("100.00")


class TestAddRebuy:

    def test_rebuys_append_in_order(self, ledger):
        ledger.add_participant("alice", 100)
        ledger.add_rebuy("alice", 50)
        ledger.add_rebuy("alice", 20)
        assert ledger.participants["alice"].rebuys == [Decimal("50"), Decimal("20")]
        assert ledger.total_contributions == Decimal("170.00")

    def test_rebuy_for_non_participant(self, ledger):
        """A rebuy for someone never seated fails and changes nothing."""
        ledger.add_participant("alice", 100)
        with pytest.raises(NotParticipant, match="bob"):
            ledger.add_rebuy("bob", 50)
        assert list(ledger.participants) == ["alice"]

    def test_negative_rebuy(self, ledger):
        ledger.add_participant("alice", 100)
        with pytest.raises(InvalidAmount):
            ledger.add_rebuy("alice", "-10")
        assert ledger.participants["alice"].rebuys == []


class TestRegisterAndAdd:

    def test_registers_and_seats(self, ledger, db):
        ledger.register_and_add("carol", 80)
        assert db.players.exists("carol")
        assert ledger.participants["carol"].buy_in == Decimal("80")

    def test_existing_name_rejected(self, ledger, db):
        """Registering a name already in the registry leaves the session unmodified."""
        with pytest.raises(AlreadyExists):
            ledger.register_and_add("alice", 100)
        assert ledger.participants == {}
        assert len(db.players) == 2

    def test_blank_name_rejected(self, ledger, db):
        with pytest.raises(InvalidName):
            ledger.register_and_add("  ", 100)
        assert ledger.participants == {}
        assert len(db.players) == 2

    def test_bad_buy_in_registers_nobody(self, ledger, db):
        with pytest.raises(InvalidAmount):
            ledger.register_and_add("carol", "lots")
        assert not db.players.exists("carol")


class TestSeal:

    def test_empty_session_rejected(self, ledger, db):
        with pytest.raises(EmptySession):
            ledger.seal(mapping_stack_source([{}]))
        assert ledger.state is SessionState.OPEN
        assert ledger.end_time is None
        assert db.sessions == ()

    def test_seal_transitions_to_sealed(self, ledger):
        ledger.add_participant("alice", 100)
        ledger.add_participant("bob", 100)
        ledger.seal(mapping_stack_source([{"alice": 150, "bob": 50}]))
        assert ledger.state is SessionState.SEALED
        assert ledger.end_time == datetime(2025, 1, 10, 22, 30, 0)
        assert ledger.participants["alice"].final_stack == Decimal("150")

    def test_no_mutation_after_seal(self, ledger):
        ledger.add_participant("alice", 100)
        ledger.add_participant("bob", 100)
        ledger.seal(mapping_stack_source([{"alice": 100, "bob": 100}]))
        with pytest.raises(InvalidState):
            ledger.add_rebuy("alice", 10)
        with pytest.raises(InvalidState):
            ledger.add_participant("alice", 10)
        with pytest.raises(InvalidState):
            ledger.register_and_add("carol", 10)
        with pytest.raises(InvalidState):
            ledger.seal(mapping_stack_source([{"alice": 100, "bob": 100}]))

    def test_failed_settlement_reopens(self, make_ledger, db):
        ledger = make_ledger(max_attempts=1)
        ledger.add_participant("alice", 100)
        ledger.add_participant("bob", 100)
        with pytest.raises(SettlementUnbalanced):
            ledger.seal(mapping_stack_source([{"alice": 150, "bob": 60}]))

        assert ledger.state is SessionState.OPEN
        assert ledger.end_time is None
        assert ledger.participants["alice"].final_stack is None

        # The missing 10 was a rebuy nobody wrote down.
        ledger.add_rebuy("alice", 10)
        result = ledger.seal(mapping_stack_source([{"alice": 150, "bob": 60}]))
        assert result.profits == {"alice": Decimal("40"), "bob": Decimal("-40")}
