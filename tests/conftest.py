import random

import pytest

from roulette_table.registry import IdentityRegistry, parse_registry_lines
from roulette_table.table import Table

DEALER_CODE = "983452"
ALICE_CODE = "120001"
BOB_CODE = "120002"
CAROL_CODE = "120003"

USERS_TXT = f"""\
{ALICE_CODE},Alice
{DEALER_CODE},Dealer
{BOB_CODE},Bob
{CAROL_CODE},Carol
"""


class ManualTimer:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Virtual clock: callbacks run only when the test advances time."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def call_later(self, delay, callback):
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds):
        self.now += seconds
        due = [t for t in self.timers if t.due <= self.now and not t.cancelled]
        self.timers = [t for t in self.timers if t not in due and not t.cancelled]
        for timer in sorted(due, key=lambda t: t.due):
            timer.callback()


@pytest.fixture
def users_file(tmp_path):
    path = tmp_path / "users.txt"
    path.write_text(USERS_TXT, encoding="utf-8")
    return path


@pytest.fixture
def registry():
    return IdentityRegistry(parse_registry_lines(USERS_TXT.splitlines()))


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def table(registry, scheduler):
    return Table(registry, scheduler=scheduler, rng=random.Random(1234), spin_guard_seconds=4.2)


@pytest.fixture
def open_table(table):
    """Table with a dealer seated and bets open."""
    table.join("dealer", DEALER_CODE)
    table.open_window("dealer")
    return table
