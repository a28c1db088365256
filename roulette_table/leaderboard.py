"""Builds the ordered leaderboard every client renders."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

from .constants import DEFAULT_WEIGHT, OFFLINE_KEY_PREFIX
from .schemas import Connection, LeaderboardRow

if TYPE_CHECKING:
    from .table import Table


def _live_row(table: "Table", session: Connection) -> LeaderboardRow:
    bet = table.bets.get(session.connection_id)
    return LeaderboardRow(
        name=session.name,
        bet=bet.wire() if bet is not None else None,
        connected=True,
        weight=table.weights.get(session.connection_id, DEFAULT_WEIGHT),
    )


def compose(table: "Table") -> Dict[str, LeaderboardRow]:
    """Return the board keyed by connection id (or ``u:<code>`` when offline).

    Registered users come first in registry order and never disappear; guests
    follow, sorted case-insensitively by name.
    """
    board: Dict[str, LeaderboardRow] = {}

    for user in table.registry.enumerate_in_order():
        status = table.user_status.get(user.code)
        session = None
        if status is not None and status.connected and status.active_connection_id:
            session = table.sessions.get(status.active_connection_id)
        if session is not None:
            board[session.connection_id] = _live_row(table, session)
        else:
            board[OFFLINE_KEY_PREFIX + user.code] = LeaderboardRow(name=user.name, connected=False)

    guests: List[Connection] = sorted(
        (s for s in table.sessions.values() if s.is_guest),
        key=lambda s: (s.name.casefold(), s.connection_id),
    )
    for session in guests:
        board[session.connection_id] = _live_row(table, session)

    return board


__all__ = ["compose"]
