"""
Watch History Store
Local per-video progress, most-recently-watched first
"""
import logging
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from pydantic import ValidationError

from streamhub.core.config import settings
from streamhub.models.addon import Stream
from streamhub.models.history import WatchHistoryEntry
from streamhub.utils.storage import read_json, write_json

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]


class WatchHistoryStore:
    """
    Flat-file watch history

    `upsert` is the only way to add entries: it stamps the entry, moves it
    to the front, evicts beyond the size cap, saves and notifies.
    `update_position` is the cheap path for progress ticks and does none
    of that.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.path = path or settings.history_path
        self.max_entries = max_entries or settings.HISTORY_MAX_ENTRIES
        self.clock = clock
        self._entries: List[WatchHistoryEntry] = []
        self._observers: List[ChangeCallback] = []

    def load(self):
        data = read_json(self.path, fallback=[])
        entries: List[WatchHistoryEntry] = []
        for record in data if isinstance(data, list) else []:
            if not isinstance(record, dict):
                continue
            if not record.get("meta_id") or not record.get("video_id"):
                continue
            try:
                entries.append(WatchHistoryEntry.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping malformed history entry: {e}")

        entries.sort(key=lambda entry: entry.last_watched, reverse=True)
        self._entries = entries[: self.max_entries]
        logger.info(f"Loaded {len(self._entries)} watch history entries")

    def save(self) -> bool:
        return write_json(self.path, [entry.to_record() for entry in self._entries])

    def on_change(self, callback: ChangeCallback):
        self._observers.append(callback)

    def _notify(self):
        for callback in list(self._observers):
            try:
                callback()
            except Exception as e:  # noqa: BLE001
                logger.warning(f"History change observer failed: {e}")

    def _commit(self):
        self.save()
        self._notify()

    def _index(self, meta_id: str, video_id: str) -> int:
        for index, entry in enumerate(self._entries):
            if entry.meta_id == meta_id and entry.video_id == video_id:
                return index
        return -1

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def upsert(self, entry: WatchHistoryEntry) -> WatchHistoryEntry:
        stored = entry.model_copy(update={"last_watched": int(self.clock())})
        index = self._index(stored.meta_id, stored.video_id)
        if index >= 0:
            del self._entries[index]
        self._entries.insert(0, stored)
        del self._entries[self.max_entries:]
        self._commit()
        return stored

    def update_position(
        self, meta_id: str, video_id: str, position: float, duration: float
    ) -> bool:
        index = self._index(meta_id, video_id)
        if index < 0:
            return False
        entry = self._entries[index]
        entry.position = position
        if duration > 0:
            entry.duration = duration
        entry.last_watched = int(self.clock())
        return True

    def remove_entry(self, meta_id: str, video_id: str) -> bool:
        index = self._index(meta_id, video_id)
        if index < 0:
            return False
        del self._entries[index]
        self._commit()
        return True

    def remove_series(self, meta_id: str) -> int:
        """Remove every entry of a title (all episodes of a series)"""
        before = len(self._entries)
        self._entries = [entry for entry in self._entries if entry.meta_id != meta_id]
        removed = before - len(self._entries)
        if removed:
            self._commit()
        return removed

    def clear(self):
        self._entries = []
        self._commit()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def get_entry(self, meta_id: str, video_id: str) -> Optional[WatchHistoryEntry]:
        index = self._index(meta_id, video_id)
        return self._entries[index] if index >= 0 else None

    def latest_for_series(self, meta_id: str) -> Optional[WatchHistoryEntry]:
        for entry in self._entries:
            if entry.meta_id == meta_id:
                return entry
        return None

    def all_history(self, limit: Optional[int] = None) -> List[WatchHistoryEntry]:
        if limit is None:
            return list(self._entries)
        return self._entries[:limit]

    def continue_watching(self, limit: int = 50) -> List[WatchHistoryEntry]:
        """Resumable entries, one per title, most recently watched first"""
        result: List[WatchHistoryEntry] = []
        seen = set()
        for entry in self._entries:
            if len(result) >= limit:
                break
            if entry.meta_id in seen or not entry.is_resumable():
                continue
            seen.add(entry.meta_id)
            result.append(entry)
        return result


def pick_binge_stream(
    streams: Iterable[Stream], binge_group: Optional[str]
) -> Optional[Stream]:
    """First stream in the same binge group as the previous selection"""
    if not binge_group:
        return None
    for stream in streams:
        if stream.behaviorHints.bingeGroup == binge_group:
            return stream
    return None
