"""
In-memory repository implementations.
Used for prototyping and testing.
Production would replace these with a database-backed implementation.
"""
import uuid
from threading import Lock
from typing import Dict, List, Optional

from recommender.models.schemas import HistoryEntry


class InMemoryHistoryRepository:
    """
    In-memory implementation of RecommendationHistoryRepository.
    Simulates the history collection of the dashboard database.
    """

    def __init__(self) -> None:
        # Insertion ordered; newest entries are last
        self._entries: Dict[str, HistoryEntry] = {}
        self._lock = Lock()

    async def add(self, entry: HistoryEntry) -> str:
        """Persist a delivered batch."""
        entry_id = uuid.uuid4().hex
        with self._lock:
            self._entries[entry_id] = entry.model_copy(update={"id": entry_id})
        return entry_id

    def _matching(
        self,
        user_id: str,
        content_preference: Optional[str],
        language_preference: Optional[str],
    ) -> List[HistoryEntry]:
        with self._lock:
            entries = list(self._entries.values())

        return [
            e for e in reversed(entries)
            if e.user_id == user_id
            and (not content_preference or e.content_preference == content_preference)
            and (not language_preference or e.language_preference == language_preference)
        ]

    async def list_for_user(
        self,
        user_id: str,
        content_preference: Optional[str] = None,
        language_preference: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[HistoryEntry]:
        """Fetch a user's batches, newest first."""
        entries = self._matching(user_id, content_preference, language_preference)
        end = None if limit is None else offset + limit
        return entries[offset:end]

    async def count_for_user(
        self,
        user_id: str,
        content_preference: Optional[str] = None,
        language_preference: Optional[str] = None,
    ) -> int:
        return len(self._matching(user_id, content_preference, language_preference))

    async def delete(self, user_id: str, entry_id: str) -> bool:
        with self._lock:
            entry = self._entries.get(entry_id)
            # Users can only delete their own entries
            if entry is None or entry.user_id != user_id:
                return False
            del self._entries[entry_id]
            return True

    async def clear_for_user(self, user_id: str) -> int:
        with self._lock:
            owned = [key for key, e in self._entries.items() if e.user_id == user_id]
            for key in owned:
                del self._entries[key]
        return len(owned)
