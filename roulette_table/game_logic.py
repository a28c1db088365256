"""WebSocket message handlers for the roulette table.

Each handler applies one ``Table`` operation and, when it changed state,
pushes the resulting messages before returning. Rejected actions are only
logged; clients never receive an error frame.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict

from .schemas import ActionResult
from .table import Table

logger = logging.getLogger(__name__)


def _log_rejection(action: str, connection_id: str, result: ActionResult) -> None:
    logger.debug("Ignored %s from %s: %s", action, connection_id, result.reason)


async def send_table_snapshot(table: Table, connection_id: str) -> None:
    """Send window state and the last result to one connection."""
    await table.send(connection_id, "betsState", table.bets_open)
    if table.last_result is not None:
        await table.send(connection_id, "spinResult", table.last_result.payload(animate=False))


async def announce_new_dealer(table: Table, connection_id: str) -> None:
    await table.broadcast("dealerState", True)
    await table.send(connection_id, "dealerGranted")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def kick_connection(table: Table, connection_id: str, reason: str) -> None:
    """Tell a superseded socket why it is being dropped, then close it."""
    ws = table.connections.pop(connection_id, None)
    if ws is None:
        return
    try:
        await ws.send_json({"type": "kicked", "data": reason})
        await ws.close(code=4003)
    except Exception as exc:
        logger.debug("Could not close kicked socket %s: %s", connection_id, exc)


async def handle_join(table: Table, connection_id: str, data: dict) -> None:
    previous_dealer = table.dealer_id
    was_open = table.bets_open
    result = table.join(connection_id, data.get("identifier"))
    if not result:
        _log_rejection("join", connection_id, result)
        return
    if result.evicted is not None:
        await kick_connection(table, result.evicted, "Logged in elsewhere")

    if table.dealer_id != previous_dealer:
        if table.is_dealer(connection_id):
            await announce_new_dealer(table, connection_id)
        else:
            await table.broadcast("dealerState", False)
    if was_open and not table.bets_open:
        await table.broadcast("betsState", False)

    await table.send(connection_id, "dealerState", table.dealer_id is not None)
    await send_table_snapshot(table, connection_id)
    await table.broadcast_leaderboard()


async def handle_claim_dealer(table: Table, connection_id: str, data: dict) -> None:
    result = table.claim_dealer(connection_id, data.get("code"))
    if not result:
        _log_rejection("dealer claim", connection_id, result)
        return
    await announce_new_dealer(table, connection_id)
    await send_table_snapshot(table, connection_id)
    # A bet the new dealer held has been dropped.
    await table.broadcast_leaderboard()


async def handle_set_weight(table: Table, connection_id: str, data: dict) -> None:
    result = table.set_weight(connection_id, data.get("target"), data.get("weight"))
    if not result:
        _log_rejection("setWeight", connection_id, result)
        return
    await table.broadcast_leaderboard()


async def handle_open_bets(table: Table, connection_id: str, data: dict) -> None:
    result = table.open_window(connection_id)
    if not result:
        _log_rejection("openBets", connection_id, result)
        return
    await table.broadcast("betsState", True)


async def handle_close_bets(table: Table, connection_id: str, data: dict) -> None:
    result = table.close_window(connection_id)
    if not result:
        _log_rejection("closeBets", connection_id, result)
        return
    await table.broadcast("betsState", False)


async def handle_select(table: Table, connection_id: str, data: dict) -> None:
    result = table.submit_bet(connection_id, data.get("bet"))
    if not result:
        _log_rejection("select", connection_id, result)
        return
    await table.broadcast_leaderboard()


async def handle_spin(table: Table, connection_id: str, data: dict) -> None:
    result = table.spin(connection_id, data.get("randoms"))
    if not result:
        _log_rejection("spin", connection_id, result)
        return
    await table.broadcast("spinResult", table.last_result.payload(animate=True))
    await table.broadcast("betsState", False)
    await table.broadcast_leaderboard()


async def handle_disconnect(table: Table, connection_id: str) -> None:
    table.connections.pop(connection_id, None)
    was_dealer = table.is_dealer(connection_id)
    was_open = table.bets_open
    table.leave(connection_id)
    if was_dealer:
        await table.broadcast("dealerState", False)
        if was_open:
            await table.broadcast("betsState", False)
    await table.broadcast_leaderboard()


Handler = Callable[[Table, str, dict], Awaitable[None]]

HANDLERS: Dict[str, Handler] = {
    "join": handle_join,
    "dealerLogin": handle_claim_dealer,
    "claimDealer": handle_claim_dealer,
    "setWeight": handle_set_weight,
    "setBias": handle_set_weight,
    "openBets": handle_open_bets,
    "openWindow": handle_open_bets,
    "closeBets": handle_close_bets,
    "closeWindow": handle_close_bets,
    "select": handle_select,
    "submitBet": handle_select,
    "spin": handle_spin,
}


async def handle_ws_message(table: Table, connection_id: str, data: dict) -> None:
    msg_type = data.get("type")
    handler = HANDLERS.get(msg_type) if isinstance(msg_type, str) else None
    if handler is None:
        logger.debug("Unknown message type from %s: %r", connection_id, msg_type)
        return
    await handler(table, connection_id, data)


__all__ = [
    "send_table_snapshot",
    "announce_new_dealer",
    "kick_connection",
    "handle_join",
    "handle_claim_dealer",
    "handle_set_weight",
    "handle_open_bets",
    "handle_close_bets",
    "handle_select",
    "handle_spin",
    "handle_disconnect",
    "handle_ws_message",
    "HANDLERS",
]
