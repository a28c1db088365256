"""Roulette outcome engine.

Pure functions only: bet normalisation, the weighted draw of the winning
number and the classification of every bet against it. ``Table.spin`` wires
these to the live ledger; nothing here touches connections or timers.
"""
from __future__ import annotations

import math
import random
from numbers import Real
from typing import Dict, List, Mapping, Optional, Sequence

from .constants import (
    BLACK_NUMBERS,
    COLOR,
    COLOR_ONLY,
    DEFAULT_WEIGHT,
    HIGH_WEIGHT_THRESHOLD,
    LOSE,
    NUMBERS,
    NUMERIC_PATTERN,
    RED_NUMBERS,
    WIN,
)
from .schemas import Bet, Color, SpinResult


class InvalidBet(ValueError):
    """Raised by :func:`parse_bet` for a value that is not a bet."""


# ---------------------------------------------------------------------------
# Colors & bet parsing
# ---------------------------------------------------------------------------

def color_of(number: int) -> Optional[Color]:
    """Return the color of *number*; ``None`` for the zero."""
    if number in RED_NUMBERS:
        return Color.RED
    if number in BLACK_NUMBERS:
        return Color.BLACK
    return None


def numbers_of_color(color: Color) -> frozenset:
    return RED_NUMBERS if color is Color.RED else BLACK_NUMBERS


def _as_wheel_number(value: float) -> int:
    if not math.isfinite(value) or value != int(value):
        raise InvalidBet(f"not a whole number: {value!r}")
    number = int(value)
    if number not in NUMBERS:
        raise InvalidBet(f"number out of range: {number}")
    return number


def parse_bet(value: object) -> Optional[Bet]:
    """Normalise a client-supplied bet.

    Returns ``None`` for an empty submission (clear the bet) and raises
    :class:`InvalidBet` for anything that is not a number 0-36, ``"red"`` or
    ``"black"``. Numeric strings are treated as numbers.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidBet("booleans are not bets")
    if isinstance(value, Real):
        return Bet.on_number(_as_wheel_number(float(value)))
    if not isinstance(value, str):
        raise InvalidBet(f"unsupported bet type: {type(value).__name__}")

    text = value.strip()
    if not text:
        return None
    if NUMERIC_PATTERN.match(text):
        return Bet.on_number(_as_wheel_number(float(text)))
    folded = text.casefold()
    for color in Color:
        if folded == color.value:
            return Bet.on_color(color)
    raise InvalidBet(f"unknown bet: {value!r}")


def covered_numbers(bet: Bet) -> frozenset:
    if bet.color is not None:
        return numbers_of_color(bet.color)
    return frozenset({bet.number})


# ---------------------------------------------------------------------------
# Drawing the winning number
# ---------------------------------------------------------------------------

def average_seed(seeds: object, rng: random.Random) -> float:
    """Average the usable client randoms; fall back to *rng* if there are none."""
    usable: List[float] = []
    if isinstance(seeds, (list, tuple)):
        for seed in seeds:
            if isinstance(seed, bool) or not isinstance(seed, Real):
                continue
            seed = float(seed)
            if math.isfinite(seed):
                usable.append(seed)
    if not usable:
        return rng.random()
    return sum(usable) / len(usable)


def number_from_seed(seed: float) -> int:
    """Map an averaged client random in [0, 1) onto the wheel."""
    return min(max(math.floor(seed * len(NUMBERS)), 0), len(NUMBERS) - 1)


def high_weight_table(bets: Mapping[str, Bet], weights: Mapping[str, float]) -> Optional[List[float]]:
    """Draw weights when some bettor has weight >= 2, else ``None``.

    Each number counts the high-weight bettors covering it; numbers nobody
    high-weight covers are excluded.
    """
    table = [0.0] * len(NUMBERS)
    found = False
    for cid, bet in bets.items():
        if weights.get(cid, DEFAULT_WEIGHT) < HIGH_WEIGHT_THRESHOLD:
            continue
        found = True
        for number in covered_numbers(bet):
            table[number] += 1
    return table if found else None


def normal_weight_table(bets: Mapping[str, Bet], weights: Mapping[str, float]) -> List[float]:
    """Draw weights for the regular case.

    Every number starts at 1. A number with bettors gains the sum of their
    positive weights, or drops to 0 if all of them are at weight 0.
    """
    bettor_weights: Dict[int, List[float]] = {n: [] for n in NUMBERS}
    for cid, bet in bets.items():
        weight = weights.get(cid, DEFAULT_WEIGHT)
        for number in covered_numbers(bet):
            bettor_weights[number].append(weight)

    table: List[float] = []
    for number in NUMBERS:
        placed = bettor_weights[number]
        if not placed:
            table.append(1.0)
            continue
        positive = [w for w in placed if w > 0]
        table.append(1.0 + sum(positive) if positive else 0.0)
    return table


def weighted_pick(table: Sequence[float], r: float) -> Optional[int]:
    """Return the first number whose cumulative weight exceeds *r*.

    ``r`` must lie in ``[0, sum(table))``. Zero-weight numbers are never
    returned; a value exactly on a boundary goes to the next positive number.
    """
    cumulative = 0.0
    for number, weight in enumerate(table):
        cumulative += weight
        if r < cumulative:
            return number
    # Float rounding left r at the very top: take the last eligible number.
    for number in range(len(table) - 1, -1, -1):
        if table[number] > 0:
            return number
    return None


def draw_winning_number(
    bets: Mapping[str, Bet],
    weights: Mapping[str, float],
    seed: float,
    rng: random.Random,
) -> int:
    if not bets:
        return number_from_seed(seed)

    table = high_weight_table(bets, weights)
    if table is None:
        table = normal_weight_table(bets, weights)

    total = sum(table)
    if total <= 0:
        return number_from_seed(seed)
    picked = weighted_pick(table, rng.random() * total)
    return number_from_seed(seed) if picked is None else picked


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify(bet: Bet, winning_number: int) -> str:
    winning_color = color_of(winning_number)
    if bet.color is not None:
        return COLOR_ONLY if bet.color is winning_color else LOSE
    if bet.number == winning_number:
        return WIN
    if winning_color is not None and color_of(bet.number) is winning_color:
        return COLOR
    return LOSE


def resolve_spin(
    bets: Mapping[str, Bet],
    weights: Mapping[str, float],
    seeds: object,
    rng: random.Random,
) -> SpinResult:
    """Draw a winning number and classify every current bet against it."""
    seed = average_seed(seeds, rng)
    winning_number = draw_winning_number(bets, weights, seed, rng)
    results = {cid: classify(bet, winning_number) for cid, bet in bets.items()}
    return SpinResult(winning_number=winning_number, results=results)


__all__ = [
    "InvalidBet",
    "color_of",
    "numbers_of_color",
    "parse_bet",
    "covered_numbers",
    "average_seed",
    "number_from_seed",
    "high_weight_table",
    "normal_weight_table",
    "weighted_pick",
    "draw_winning_number",
    "classify",
    "resolve_spin",
]
