"""
Repository pattern for quota state.

Holds per-user SessionLimits records in process memory.
"""

from typing import Dict, Optional

from .models import SessionLimits


class QuotaStore:
    """Repository for per-user quota records.

    Records live only as long as the process. The enforcer mutates the
    returned records in place, so get() hands out the stored object
    rather than a copy.
    """

    def __init__(self):
        self._records: Dict[str, SessionLimits] = {}

    def get(self, user_id: str) -> Optional[SessionLimits]:
        """Get the quota record for a user.

        Args:
            user_id: User identifier

        Returns:
            The stored record, or None if the user has not been seen
        """
        return self._records.get(user_id)

    def save(self, record: SessionLimits) -> None:
        """Insert or replace a user's quota record.

        Args:
            record: Record to store, keyed by its user_id
        """
        self._records[record.user_id] = record

    def __len__(self) -> int:
        return len(self._records)
