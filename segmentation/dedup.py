from __future__ import annotations

from typing import Set


class DedupRegistry:
    """Users already notified during one orchestration run.

    A new instance is created for every run; it is never shared across runs.
    """

    def __init__(self) -> None:
        self._notified: Set[str] = set()

    def is_notified(self, user_id: str) -> bool:
        return str(user_id) in self._notified

    def mark_notified(self, user_id: str) -> bool:
        """Record a successful send. Returns False if the user was already marked."""
        key = str(user_id)
        if key in self._notified:
            return False
        self._notified.add(key)
        return True

    def __contains__(self, user_id: object) -> bool:
        return str(user_id) in self._notified

    def __len__(self) -> int:
        return len(self._notified)
