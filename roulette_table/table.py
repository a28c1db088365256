from __future__ import annotations

import logging
import math
import random
from numbers import Real
from typing import Dict, Optional

from fastapi import WebSocket

from .constants import CODE_PATTERN, MAX_WEIGHT, MIN_WEIGHT, NUMERIC_PATTERN, SPIN_GUARD_SECONDS, UNKNOWN_NAME
from .leaderboard import compose
from .outcome import InvalidBet, parse_bet, resolve_spin
from .registry import IdentityRegistry
from .scheduler import AsyncioScheduler, Cancellable, Scheduler
from .schemas import ActionResult, Bet, Connection, SpinResult, UserStatus

logger = logging.getLogger(__name__)

# NOTE: every operation below is synchronous and returns an ``ActionResult``.
# Broadcasting is left to the caller (``game_logic``) so the state machine can
# be driven directly in tests without any sockets.


class Table:
    """Authoritative state of the single roulette table and its live sockets."""

    def __init__(
        self,
        registry: IdentityRegistry,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        spin_guard_seconds: float = SPIN_GUARD_SECONDS,
    ):
        self.registry = registry
        self.scheduler: Scheduler = scheduler or AsyncioScheduler()
        self.rng = rng or random.Random()
        self.spin_guard_seconds = spin_guard_seconds

        # Joined connections: connection_id -> identity
        self.sessions: Dict[str, Connection] = {}
        # Presence of every registered code, kept for the process lifetime
        self.user_status: Dict[str, UserStatus] = {
            user.code: UserStatus() for user in registry.enumerate_in_order()
        }
        self.dealer_id: Optional[str] = None
        self.bets_open: bool = False
        self.bets: Dict[str, Bet] = {}
        self.weights: Dict[str, float] = {}
        self.last_result: Optional[SpinResult] = None
        self.spinning: bool = False
        self.spin_guard: Optional[Cancellable] = None

        # active websocket connections: connection_id -> websocket
        self.connections: Dict[str, WebSocket] = {}

    # ---------------------------------------------------------------------
    # Session tracking
    # ---------------------------------------------------------------------

    def is_dealer(self, connection_id: str) -> bool:
        return self.dealer_id is not None and self.dealer_id == connection_id

    def join(self, connection_id: str, identifier: object) -> ActionResult:
        """Bind *connection_id* to a registered code or a guest name."""
        if not isinstance(identifier, str) or not identifier.strip():
            return ActionResult.rejected("bad_identifier")
        identifier = identifier.strip()

        code: Optional[str] = None
        name = identifier
        if CODE_PATTERN.match(identifier):
            registered_name = self.registry.lookup(identifier)
            if registered_name is not None:
                code, name = identifier, registered_name
            else:
                name = UNKNOWN_NAME

        # Re-joining on the same socket drops the previous identity first.
        if connection_id in self.sessions:
            self._release_status(connection_id)
            if self.is_dealer(connection_id) and not self.registry.is_dealer_code(code):
                self.release_dealer(connection_id)

        # One live socket per code: the older one is kicked.
        evicted: Optional[str] = None
        if code is not None:
            previous = self.user_status.get(code, UserStatus()).active_connection_id
            if previous is not None and previous != connection_id and previous in self.sessions:
                logger.info("%s logged in elsewhere; dropping %s", name, previous)
                self.leave(previous)
                evicted = previous

        self.sessions[connection_id] = Connection(connection_id=connection_id, name=name, code=code)
        if code is not None:
            status = self.user_status.setdefault(code, UserStatus())
            status.connected = True
            status.active_connection_id = connection_id
            logger.info("%s joined as %s", connection_id, name)
            if self.registry.is_dealer_code(code) and self.dealer_id is None:
                self._grant_dealer(connection_id)
        else:
            logger.info("%s joined as guest %r", connection_id, name)
        return ActionResult.ok(evicted=evicted)

    def leave(self, connection_id: str) -> ActionResult:
        """Forget *connection_id*; registered users keep an offline row."""
        self.release_dealer(connection_id)
        self.bets.pop(connection_id, None)
        self.weights.pop(connection_id, None)
        if connection_id not in self.sessions:
            return ActionResult.rejected("unknown_connection")
        self._release_status(connection_id)
        session = self.sessions.pop(connection_id)
        logger.info("%s (%s) left", connection_id, session.name)
        return ActionResult.ok()

    def _release_status(self, connection_id: str) -> None:
        session = self.sessions.get(connection_id)
        if session is None or session.code is None:
            return
        status = self.user_status.get(session.code)
        if status is not None and status.active_connection_id == connection_id:
            status.connected = False
            status.active_connection_id = None

    # ---------------------------------------------------------------------
    # Dealer arbitration
    # ---------------------------------------------------------------------

    def claim_dealer(self, connection_id: str, code: object) -> ActionResult:
        if self.dealer_id is not None:
            return ActionResult.rejected("dealer_taken")
        if connection_id not in self.sessions:
            return ActionResult.rejected("unknown_connection")
        if not isinstance(code, str) or not self.registry.is_dealer_code(code.strip()):
            return ActionResult.rejected("bad_code")
        self._grant_dealer(connection_id)
        return ActionResult.ok()

    def _grant_dealer(self, connection_id: str) -> None:
        self.dealer_id = connection_id
        # The dealer never holds a bet.
        self.bets.pop(connection_id, None)
        logger.info("Dealer role granted to %s", connection_id)

    def release_dealer(self, connection_id: str) -> ActionResult:
        if not self.is_dealer(connection_id):
            return ActionResult.rejected("not_dealer")
        self.dealer_id = None
        self.bets_open = False
        logger.info("Dealer %s released the table; bets closed", connection_id)
        return ActionResult.ok()

    def set_weight(self, connection_id: str, target: object, weight: object) -> ActionResult:
        if not self.is_dealer(connection_id):
            return ActionResult.rejected("not_dealer")
        if not isinstance(target, str) or target not in self.sessions:
            return ActionResult.rejected("unknown_target")
        if isinstance(weight, str):
            if not NUMERIC_PATTERN.match(weight.strip()):
                return ActionResult.rejected("bad_weight")
            weight = float(weight.strip())
        if isinstance(weight, bool) or not isinstance(weight, Real) or not math.isfinite(weight):
            return ActionResult.rejected("bad_weight")
        self.weights[target] = min(max(float(weight), MIN_WEIGHT), MAX_WEIGHT)
        logger.debug("Weight for %s set to %s", target, self.weights[target])
        return ActionResult.ok()

    # ---------------------------------------------------------------------
    # Betting window & ledger
    # ---------------------------------------------------------------------

    def open_window(self, connection_id: str) -> ActionResult:
        return self._set_window(connection_id, True)

    def close_window(self, connection_id: str) -> ActionResult:
        return self._set_window(connection_id, False)

    def _set_window(self, connection_id: str, open_: bool) -> ActionResult:
        if not self.is_dealer(connection_id):
            return ActionResult.rejected("not_dealer")
        if self.bets_open == open_:
            return ActionResult.rejected("no_change")
        self.bets_open = open_
        logger.info("Bets %s", "opened" if open_ else "closed")
        return ActionResult.ok()

    def submit_bet(self, connection_id: str, value: object) -> ActionResult:
        if not self.bets_open:
            return ActionResult.rejected("bets_closed")
        if connection_id not in self.sessions:
            return ActionResult.rejected("unknown_connection")
        if self.is_dealer(connection_id):
            return ActionResult.rejected("dealer_cannot_bet")
        try:
            bet = parse_bet(value)
        except InvalidBet as exc:
            return ActionResult.rejected(f"bad_bet: {exc}")
        if bet is None:
            self.bets.pop(connection_id, None)
        else:
            self.bets[connection_id] = bet
        return ActionResult.ok()

    # ---------------------------------------------------------------------
    # Spinning
    # ---------------------------------------------------------------------

    def spin(self, connection_id: str, seeds: object) -> ActionResult:
        if not self.is_dealer(connection_id):
            return ActionResult.rejected("not_dealer")
        if self.spinning:
            return ActionResult.rejected("spinning")

        result = resolve_spin(self.bets, self.weights, seeds, self.rng)
        self.bets_open = False
        self.last_result = result
        self.spinning = True
        self.spin_guard = self.scheduler.call_later(self.spin_guard_seconds, self._release_spin_lock)
        logger.info("Spin by %s landed on %d (%d bets)", connection_id, result.winning_number, len(result.results))
        return ActionResult.ok()

    def _release_spin_lock(self) -> None:
        self.spinning = False
        self.spin_guard = None

    def close(self) -> None:
        """Cancel pending timers (application shutdown)."""
        if self.spin_guard is not None:
            self.spin_guard.cancel()
            self.spin_guard = None

    # -------------------- Broadcasting helpers -------------------- #

    async def send(self, connection_id: str, msg_type: str, data: object = None) -> None:
        ws = self.connections.get(connection_id)
        if ws is None:
            return
        await self._send(connection_id, ws, {"type": msg_type, "data": data})

    async def broadcast(self, msg_type: str, data: object = None) -> None:
        """Broadcast one message to every active websocket connection."""
        payload = {"type": msg_type, "data": data}
        for cid, ws in list(self.connections.items()):
            await self._send(cid, ws, payload)

    async def broadcast_leaderboard(self) -> None:
        board = {key: row.model_dump() for key, row in compose(self).items()}
        await self.broadcast("leaderboard", board)

    async def _send(self, connection_id: str, ws: WebSocket, payload: dict) -> None:
        try:
            await ws.send_json(payload)
        except Exception as exc:
            # The socket's own receive loop will notice the disconnect and clean up.
            logger.warning("Failed to send %s to %s: %s", payload["type"], connection_id, exc)


__all__ = ["Table"]
