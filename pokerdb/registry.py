"""
registry.py - Player registry and the root database document

The PlayerRegistry is the only place lifetime statistics change.
Records are frozen Player instances; accrual replaces a record with an
updated copy, so a caller holding an old Player never sees it mutate.

Database bundles the registry with the append-only history of sealed
sessions, mirroring the persisted JSON document.
"""

from __future__ import annotations
from dataclasses import replace
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .core import (
    Accrual, Player, SessionRecord,
    AlreadyExists, InvalidState, UnknownPlayer,
    require_name, to_money,
)

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """
    Mapping of player name to lifetime record.

    Iteration yields Player records in insertion order, which is also the
    order they are written to disk.

    Example:
        registry = PlayerRegistry()
        registry.add("alice")
        registry.apply_accruals([Accrual("alice", Decimal("50"), Decimal("2.5"))])
        registry.get("alice").profit  # Decimal("50.00")
    """

    def __init__(self, players: Optional[Iterable[Player]] = None):
        self._players: Dict[str, Player] = {}
        for player in players or ():
            if player.name in self._players:
                raise AlreadyExists(f"Duplicate player record: {player.name}")
            self._players[player.name] = player

    # ------------------------------------------------------------------
    # Read-only access
    # ------------------------------------------------------------------

    def exists(self, name: str) -> bool:
        return name in self._players

    def get(self, name: str) -> Player:
        """
        Return the current record for a player.

        Raises:
            UnknownPlayer: If no player has this name
        """
        if name not in self._players:
            raise UnknownPlayer(f"Unknown player: {name}")
        return self._players[name]

    def names(self) -> List[str]:
        return list(self._players)

    def __iter__(self) -> Iterator[Player]:
        return iter(list(self._players.values()))

    def __len__(self) -> int:
        return len(self._players)

    def __contains__(self, name: object) -> bool:
        return name in self._players

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PlayerRegistry):
            return NotImplemented
        return list(self._players.items()) == list(other._players.items())

    def __repr__(self) -> str:
        return f"PlayerRegistry({len(self._players)} players)"

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, name: str) -> Player:
        """
        Register a new player with zeroed lifetime statistics.

        Raises:
            AlreadyExists: If the name is taken
            InvalidName: If the name is blank
        """
        require_name(name)
        if name in self._players:
            raise AlreadyExists(f"Player already exists: {name}")
        player = Player(name=name)
        self._players[name] = player
        logger.info("Registered player %s", name)
        return player

    def rename(self, old_name: str, new_name: str) -> Player:
        """
        Rename a player, keeping their position and statistics.

        Raises:
            UnknownPlayer: If old_name is not registered
            AlreadyExists: If new_name belongs to another player
            InvalidName: If new_name is blank
        """
        player = self.get(old_name)
        require_name(new_name)
        if old_name == new_name:
            return player
        if new_name in self._players:
            raise AlreadyExists(f"Player already exists: {new_name}")
        renamed = replace(player, name=new_name)
        # Rebuild to keep the renamed player at the same position.
        self._players = {
            (new_name if name == old_name else name): (renamed if name == old_name else record)
            for name, record in self._players.items()
        }
        logger.info("Renamed player %s to %s", old_name, new_name)
        return renamed

    def accrue(self, name: str, profit_delta, hours_delta) -> Player:
        """
        Add one session's outcome to a player's lifetime totals.

        Deltas are rounded before and after accumulation. The session
        counter always increases by exactly one.

        Raises:
            UnknownPlayer: If the player is not registered
        """
        updated = self._accrued(self.get(name), profit_delta, hours_delta)
        self._players[name] = updated
        return updated

    @staticmethod
    def _accrued(player: Player, profit_delta, hours_delta) -> Player:
        return replace(
            player,
            profit=to_money(player.profit + to_money(profit_delta)),
            sessions=player.sessions + 1,
            hours_played=to_money(player.hours_played + to_money(hours_delta)),
        )

    def apply_accruals(self, accruals: Iterable[Accrual]) -> Tuple[Player, ...]:
        """
        Commit a batch of accruals, all or nothing.

        Every name is checked before any record changes, and a name may
        appear at most once per batch.

        Raises:
            UnknownPlayer: If any accrual names an unregistered player
            InvalidState: If a player appears twice in the batch
            InvalidAmount: If a lifetime total would leave the supported range
        """
        batch = list(accruals)
        seen = set()
        for accrual in batch:
            if accrual.name not in self._players:
                raise UnknownPlayer(f"Unknown player: {accrual.name}")
            if accrual.name in seen:
                raise InvalidState(f"Player {accrual.name} accrued twice in one settlement")
            seen.add(accrual.name)

        # Build every new record first so an out-of-range total changes nothing.
        updated = tuple(self._accrued(self._players[a.name], a.profit, a.hours) for a in batch)
        for player in updated:
            self._players[player.name] = player
        logger.info("Applied %d accrual(s)", len(updated))
        return updated


class Database:
    """
    Root document: the player registry plus the session history.

    Sessions are append-only. Only sealed, balanced records are accepted.
    """

    def __init__(
        self,
        players: Optional[PlayerRegistry] = None,
        sessions: Optional[Iterable[SessionRecord]] = None,
    ):
        self.players = players if players is not None else PlayerRegistry()
        self._sessions: List[SessionRecord] = list(sessions or ())

    @property
    def sessions(self) -> Tuple[SessionRecord, ...]:
        return tuple(self._sessions)

    def append_session(self, record: SessionRecord) -> None:
        """
        Append a settled session to the history.

        Raises:
            InvalidState: If the record has no end time or does not balance
        """
        if not record.is_sealed:
            raise InvalidState("Only sealed sessions can be appended")
        if record.balance_error != 0:
            raise InvalidState(
                f"Session does not balance (difference {record.balance_error})"
            )
        self._sessions.append(record)

    def sessions_for(self, name: str) -> List[SessionRecord]:
        """Sessions in which the named player took part, oldest first."""
        return [s for s in self._sessions if name in s.names()]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Database):
            return NotImplemented
        return self.players == other.players and self._sessions == other._sessions

    def __repr__(self) -> str:
        return f"Database({len(self.players)} players, {len(self._sessions)} sessions)"
