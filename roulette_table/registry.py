"""Static list of registered players, loaded once at startup."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .constants import CODE_PATTERN, DEALER_NAME
from .schemas import RegisteredUser

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """Read-only ``code -> name`` lookup that remembers load order."""

    def __init__(self, users: Iterable[RegisteredUser] = ()):
        self._users: Dict[str, RegisteredUser] = {}
        for user in users:
            # A repeated code keeps its first position but takes the later name.
            self._users[user.code] = user

        self.dealer_code: Optional[str] = None
        for user in self._users.values():
            if user.name.strip().lower() == DEALER_NAME:
                self.dealer_code = user.code
                break

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, code: object) -> bool:
        return code in self._users

    def lookup(self, code: str) -> Optional[str]:
        user = self._users.get(code)
        return user.name if user else None

    def enumerate_in_order(self) -> List[RegisteredUser]:
        return list(self._users.values())

    def is_dealer_code(self, code: Optional[str]) -> bool:
        return self.dealer_code is not None and code == self.dealer_code


def parse_registry_lines(lines: Iterable[str]) -> List[RegisteredUser]:
    """Parse ``CODE,Name`` lines; invalid records are skipped."""
    users: List[RegisteredUser] = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue
        code, sep, name = line.partition(",")
        code, name = code.strip(), name.strip()
        if not sep or not CODE_PATTERN.match(code) or not name:
            logger.debug("Skipping malformed users line %d: %r", lineno, line)
            continue
        users.append(RegisteredUser(code=code, name=name))
    return users


def load_registry(path: Union[str, Path]) -> IdentityRegistry:
    """Load the registry from *path*.

    A missing, unreadable or empty file yields an empty registry; guests can
    still join by display name, so this is logged rather than raised.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read users file %s: %s", path, exc)
        return IdentityRegistry()

    registry = IdentityRegistry(parse_registry_lines(text.splitlines()))
    if not len(registry):
        logger.warning("Users file %s contains no valid records", path)
    else:
        logger.info("Loaded %d registered users from %s", len(registry), path)
    if registry.dealer_code is None:
        logger.info("No dealer identity registered; dealer claims are disabled")
    return registry


__all__ = ["IdentityRegistry", "parse_registry_lines", "load_registry"]
