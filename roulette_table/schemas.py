"""Pydantic data schemas used across the table server.

This module centralises all models so that other packages can import
from a single location instead of sprinkling the definitions across
multiple files.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict

# -----------------------------
# Registry & sessions
# -----------------------------

class RegisteredUser(BaseModel):
    """One ``code,name`` record from the users file."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str


class Connection(BaseModel):
    """A joined websocket connection and the identity it claimed."""

    connection_id: str
    name: str
    code: Optional[str] = None  # None for guests

    @property
    def is_guest(self) -> bool:
        return self.code is None


class UserStatus(BaseModel):
    """Presence of a registered user; lives for the whole process."""

    connected: bool = False
    active_connection_id: Optional[str] = None


# -----------------------------
# Bets & results
# -----------------------------

class Color(str, Enum):
    RED = "red"
    BLACK = "black"


class Bet(BaseModel):
    """Either a straight-up number or a color, never both."""

    model_config = ConfigDict(frozen=True)

    number: Optional[int] = None
    color: Optional[Color] = None

    @classmethod
    def on_number(cls, number: int) -> "Bet":
        return cls(number=number)

    @classmethod
    def on_color(cls, color: Color) -> "Bet":
        return cls(color=color)

    @property
    def is_color(self) -> bool:
        return self.color is not None

    def wire(self) -> Union[int, str]:
        """Value as clients send and display it (``17``, ``"red"``)."""
        if self.color is not None:
            return self.color.value
        return self.number  # type: ignore[return-value]


class SpinResult(BaseModel):
    winning_number: int
    results: Dict[str, str] = {}  # connection_id -> WIN | COLOR | COLOR_ONLY | LOSE

    def payload(self, animate: bool) -> dict:
        return {
            "winningNumber": self.winning_number,
            "results": dict(self.results),
            "animate": animate,
        }


class LeaderboardRow(BaseModel):
    name: str
    bet: Optional[Union[int, str]] = None
    connected: bool
    weight: Optional[float] = None


class ActionResult(BaseModel):
    """Outcome of a table operation: applied, or rejected with a reason.

    Rejections are never sent back to the client; they exist so callers and
    tests can tell a no-op apart from a state change.
    """

    applied: bool
    reason: Optional[str] = None
    # Older connection removed because the same code logged in again.
    evicted: Optional[str] = None

    @classmethod
    def ok(cls, evicted: Optional[str] = None) -> "ActionResult":
        return cls(applied=True, evicted=evicted)

    @classmethod
    def rejected(cls, reason: str) -> "ActionResult":
        return cls(applied=False, reason=reason)

    def __bool__(self) -> bool:
        return self.applied


# -----------------------------
# REST request / response models
# -----------------------------

class VerifyCodeRequest(BaseModel):
    code: Optional[str] = None


class VerifyCodeResponse(BaseModel):
    ok: bool
    name: Optional[str] = None


__all__ = [
    # registry / sessions
    "RegisteredUser",
    "Connection",
    "UserStatus",
    # bets / results
    "Color",
    "Bet",
    "SpinResult",
    "LeaderboardRow",
    "ActionResult",
    # rest
    "VerifyCodeRequest",
    "VerifyCodeResponse",
]
