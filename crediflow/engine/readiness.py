"""
Readiness Tracker

A manual acknowledgement that the funds for one account in one month are
confirmed present. Readiness is independent state: it is not derived from
payments, it does not touch any paid flag, and it is never cleared when new
payments land in the same account/month.
"""

from collections.abc import Mapping
from typing import Optional


def readiness_key(bank_group_id: str, month_key: str) -> str:
    """Persisted key, e.g. 'Sumitomo-self_2024-01'."""
    return f"{bank_group_id}_{month_key}"


class ReadinessTracker:
    """Boolean flags keyed by (bank group id, 'YYYY-MM')."""

    def __init__(self, entries: Optional[Mapping[str, bool]] = None):
        self._entries: dict[str, bool] = dict(entries or {})

    def is_ready(self, bank_group_id: str, month_key: str) -> bool:
        """Unseen keys are not ready."""
        return self._entries.get(readiness_key(bank_group_id, month_key), False)

    def toggle(self, bank_group_id: str, month_key: str) -> bool:
        """Flip one flag and return its new value."""
        key = readiness_key(bank_group_id, month_key)
        self._entries[key] = not self._entries.get(key, False)
        return self._entries[key]

    @property
    def entries(self) -> dict[str, bool]:
        """Snapshot suitable for persistence."""
        return dict(self._entries)
