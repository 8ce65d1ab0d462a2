"""
stats.py - Lifetime and per-session statistics

Lifetime totals come straight from the player records. Distribution
figures (best, worst, spread of session results) are computed from the
session history with numpy.

History is matched by name, so sessions played before a rename are not
attributed to the new name. If the old name is later registered again, the
newcomer picks up those earlier sessions in best, worst and spread while
their lifetime totals start from zero.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

import numpy as np

from .core import ZERO, to_money, sum_money
from .registry import Database


@dataclass(frozen=True, slots=True)
class PlayerStats:
    """Lifetime record plus figures derived from the session history."""
    name: str
    profit: Decimal
    sessions: int
    hours_played: Decimal
    profit_per_session: Decimal
    profit_per_hour: Optional[Decimal]
    best_session: Optional[Decimal]
    worst_session: Optional[Decimal]
    session_stddev: Optional[Decimal]


@dataclass(frozen=True, slots=True)
class DatabaseSummary:
    sessions: int
    players: int
    total_hours: Decimal
    total_in_play: Decimal
    largest_win: Optional[Decimal]
    largest_win_player: Optional[str]


def _from_float(value: float) -> Decimal:
    return to_money(Decimal(repr(float(value))))


def player_stats(db: Database) -> List[PlayerStats]:
    """Stats for every registered player, biggest winner first."""
    results = []
    for player in db.players:
        history = np.array(
            [float(s.participant(player.name).profit) for s in db.sessions_for(player.name)],
            dtype=float,
        )
        if history.size:
            best = _from_float(history.max())
            worst = _from_float(history.min())
            stddev = _from_float(history.std(ddof=1)) if history.size > 1 else ZERO
        else:
            best = worst = stddev = None

        per_session = to_money(player.profit / player.sessions) if player.sessions else ZERO
        per_hour = to_money(player.profit / player.hours_played) if player.hours_played > 0 else None

        results.append(PlayerStats(
            name=player.name,
            profit=player.profit,
            sessions=player.sessions,
            hours_played=player.hours_played,
            profit_per_session=per_session,
            profit_per_hour=per_hour,
            best_session=best,
            worst_session=worst,
            session_stddev=stddev,
        ))
    results.sort(key=lambda s: (-s.profit, s.name))
    return results


def summarize(db: Database) -> DatabaseSummary:
    largest_win: Optional[Decimal] = None
    largest_win_player: Optional[str] = None
    for record in db.sessions:
        for entry in record.participants:
            if entry.profit > 0 and (largest_win is None or entry.profit > largest_win):
                largest_win = entry.profit
                largest_win_player = entry.name
    return DatabaseSummary(
        sessions=len(db.sessions),
        players=len(db.players),
        total_hours=sum_money(s.duration_hours for s in db.sessions),
        total_in_play=sum_money(s.total_contributions for s in db.sessions),
        largest_win=largest_win,
        largest_win_player=largest_win_player,
    )


def _fmt(value: Optional[Decimal]) -> str:
    return "-" if value is None else f"{value:.2f}"


def format_stats(db: Database) -> str:
    """Render the stats report as a fixed-width table."""
    summary = summarize(db)
    bar = "-" * 94
    lines = [
        "Statistics:",
        bar,
        f"Sessions: {summary.sessions}   Players: {summary.players}   "
        f"Hours: {summary.total_hours:.2f}   Money in play: {summary.total_in_play:.2f}",
    ]
    if summary.largest_win is not None:
        lines.append(f"Largest single-session win: {summary.largest_win:.2f} ({summary.largest_win_player})")
    lines.append(bar)
    lines.append(
        f"{'Name':<16}{'Profit':>11}{'Sess':>6}{'Hours':>9}{'Per sess':>10}"
        f"{'Per hour':>10}{'Best':>10}{'Worst':>10}{'Std dev':>10}"
    )
    for s in player_stats(db):
        lines.append(
            f"{s.name[:15]:<16}{_fmt(s.profit):>11}{s.sessions:>6}{_fmt(s.hours_played):>9}"
            f"{_fmt(s.profit_per_session):>10}{_fmt(s.profit_per_hour):>10}"
            f"{_fmt(s.best_session):>10}{_fmt(s.worst_session):>10}{_fmt(s.session_stddev):>10}"
        )
    lines.append(bar)
    return "\n".join(lines)
