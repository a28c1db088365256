import re

# European single-zero wheel.
NUMBERS = range(37)
RED_NUMBERS = frozenset({1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36})
BLACK_NUMBERS = frozenset(n for n in NUMBERS if n != 0 and n not in RED_NUMBERS)

CODE_PATTERN = re.compile(r"^[0-9]{6}$")
# Plain ASCII decimal, optionally signed, with an optional exponent.
NUMERIC_PATTERN = re.compile(r"^[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?$")
DEALER_NAME = "dealer"
UNKNOWN_NAME = "Unknown"

# Row key used for registered users that are currently offline.
OFFLINE_KEY_PREFIX = "u:"

DEFAULT_WEIGHT = 1.0
MIN_WEIGHT = 0.0
MAX_WEIGHT = 10.0
# Bettors at or above this weight restrict the draw to the numbers they cover.
HIGH_WEIGHT_THRESHOLD = 2.0

SPIN_GUARD_SECONDS = 4.2

# Per-bettor classifications sent with every spin result.
WIN = "WIN"
COLOR = "COLOR"
COLOR_ONLY = "COLOR_ONLY"
LOSE = "LOSE"

__all__ = [
    "NUMBERS",
    "RED_NUMBERS",
    "BLACK_NUMBERS",
    "CODE_PATTERN",
    "NUMERIC_PATTERN",
    "DEALER_NAME",
    "UNKNOWN_NAME",
    "OFFLINE_KEY_PREFIX",
    "DEFAULT_WEIGHT",
    "MIN_WEIGHT",
    "MAX_WEIGHT",
    "HIGH_WEIGHT_THRESHOLD",
    "SPIN_GUARD_SECONDS",
    "WIN",
    "COLOR",
    "COLOR_ONLY",
    "LOSE",
]
