"""Tests for ConsoleInput, ScriptedInput and ask_amount()."""

from decimal import Decimal

import pytest

from pokerdb import ConsoleInput, InputExhausted, InputSource, InvalidAmount, ScriptedInput
from pokerdb.input_source import ask_amount


def _reader(answers):
    answers = list(answers)

    def read(prompt):
        if not answers:
            raise EOFError
        return answers.pop(0)
    return read


class TestConsoleInput:

    def test_satisfies_protocol(self):
        assert isinstance(ConsoleInput(), InputSource)

    def test_strips_strings(self):
        assert ConsoleInput(read=_reader(["  alice \n"])).next_string("? ") == "alice"

    def test_reprompts_on_bad_number(self):
        written = []
        console = ConsoleInput(read=_reader(["abc", "12.5"]), write=written.append)
        assert console.next_number("Amount: ") == Decimal("12.50")
        assert written == ["Not a number: 'abc'. Please try again."]

    def test_reprompts_on_oversized_number(self):
        written = []
        console = ConsoleInput(read=_reader(["1" + "0" * 30, "7"]), write=written.append)
        assert console.next_number("Amount: ") == Decimal("7.00")
        assert len(written) == 1

    def test_eof_raises_input_exhausted(self):
        with pytest.raises(InputExhausted):
            ConsoleInput(read=_reader([])).next_string("? ")


class TestScriptedInput:

    def test_replays_in_order(self):
        source = ScriptedInput(["1", "alice", 100])
        assert source.next_string("a") == "1"
        assert source.next_string("b") == "alice"
        assert source.next_number("c") == Decimal("100.00")
        assert source.prompts == ["a", "b", "c"]
        assert source.remaining == 0

    def test_exhaustion(self):
        with pytest.raises(InputExhausted, match="Choose"):
            ScriptedInput([]).next_string("Choose an option: ")

    def test_bad_number(self):
        with pytest.raises(InvalidAmount):
            ScriptedInput(["many"]).next_number("?")


class TestAskAmount:

    def test_skips_negative_and_garbage(self):
        written = []
        amount = ask_amount(ScriptedInput(["-1", "x", "7"]), "?", written.append)
        assert amount == Decimal("7.00")
        assert len(written) == 2

    def test_oversized_answer_is_asked_again(self):
        written = []
        amount = ask_amount(ScriptedInput(["1e30", "5"]), "?", written.append)
        assert amount == Decimal("5.00")
        assert len(written) == 1

    def test_exhaustion_propagates(self):
        with pytest.raises(InputExhausted):
            ask_amount(ScriptedInput(["-1"]), "?")
