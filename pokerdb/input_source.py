"""
input_source.py - Where interactive answers come from

Classes:
- InputSource: Protocol for anything that can answer a prompt
- ConsoleInput: Reads from stdin, re-prompting on unparsable numbers
- ScriptedInput: Replays a fixed sequence of answers

The session controller and the settlement engine only ever talk to an
InputSource, so a scripted source can drive a whole session in tests.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Any, Callable, Iterable, List, Optional, Protocol, runtime_checkable

from .core import InputExhausted, InvalidAmount, to_money


@runtime_checkable
class InputSource(Protocol):
    """Protocol for interactive input."""

    def next_string(self, prompt: str) -> str:
        """Return the next answer as a stripped string."""
        ...

    def next_number(self, prompt: str) -> Decimal:
        """Return the next answer as a two-decimal amount."""
        ...


class ConsoleInput:
    """
    Input from a terminal.

    Unparsable numbers are reported and asked again; end of input raises
    InputExhausted so callers can stop cleanly instead of looping.
    """

    def __init__(
        self,
        read: Callable[[str], str] = input,
        write: Callable[[str], Any] = print,
    ):
        self._read = read
        self._write = write

    def next_string(self, prompt: str) -> str:
        try:
            return self._read(prompt).strip()
        except EOFError:
            raise InputExhausted("End of input") from None

    def next_number(self, prompt: str) -> Decimal:
        while True:
            raw = self.next_string(prompt)
            try:
                return to_money(raw)
            except InvalidAmount:
                self._write(f"Not a number: {raw!r}. Please try again.")

    def __repr__(self) -> str:
        return "ConsoleInput()"


class ScriptedInput:
    """
    Input replayed from a list, for tests and non-interactive runs.

    Values are consumed in order by both next_string() and next_number().
    Every prompt received is recorded in `prompts`.

    Example:
        source = ScriptedInput(["1", "alice", "100", "4", "100"])
    """

    def __init__(self, values: Iterable[Any]):
        self._values: List[Any] = list(values)
        self._position = 0
        self.prompts: List[str] = []

    def _next(self, prompt: str) -> Any:
        self.prompts.append(prompt)
        if self._position >= len(self._values):
            raise InputExhausted(f"No scripted answer left for prompt: {prompt!r}")
        value = self._values[self._position]
        self._position += 1
        return value

    def next_string(self, prompt: str) -> str:
        return str(self._next(prompt)).strip()

    def next_number(self, prompt: str) -> Decimal:
        return to_money(self._next(prompt))

    @property
    def remaining(self) -> int:
        return len(self._values) - self._position

    def __repr__(self) -> str:
        return f"ScriptedInput({self.remaining} remaining)"


def ask_amount(source: InputSource, prompt: str, write: Optional[Callable[[str], Any]] = None) -> Decimal:
    """
    Ask until a non-negative amount is given.

    Unparsable and negative answers are reported through write (if given)
    and asked again. Running out of input raises InputExhausted.
    """
    while True:
        try:
            amount = source.next_number(prompt)
        except InvalidAmount as e:
            if write:
                write(str(e))
            continue
        if amount < 0:
            if write:
                write(f"Amount cannot be negative: {amount}")
            continue
        return amount
