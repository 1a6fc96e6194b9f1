"""Rolling exam history: newest first, capped at HISTORY_LIMIT entries."""
import logging
from typing import List, Optional

from aceprep import config
from aceprep.models import ExamHistoryEntry
from aceprep.storage import EXAM_HISTORY, KeyValueStore, read_json, remove_keys, write_json

logger = logging.getLogger(__name__)


class HistoryStore:
    def __init__(self, store: KeyValueStore, limit: int = config.HISTORY_LIMIT):
        self.store = store
        self.limit = limit

    def load(self) -> List[ExamHistoryEntry]:
        """Stored entries in recency order. Unreadable history loads as empty; bad entries are skipped."""
        raw = read_json(self.store, EXAM_HISTORY, default=[])
        if not isinstance(raw, list):
            logger.warning("Stored exam history is not a list; treating it as empty")
            return []
        entries = []
        for item in raw:
            try:
                entries.append(ExamHistoryEntry.from_dict(item))
            except ValueError as e:
                logger.warning(f"Skipping history entry: {e}")
        return entries[:self.limit]

    def append(self, entry: ExamHistoryEntry) -> List[ExamHistoryEntry]:
        entries = ([entry] + self.load())[:self.limit]
        write_json(self.store, EXAM_HISTORY, [e.to_dict() for e in entries])
        logger.info(f"Saved exam {entry.id} to history ({len(entries)}/{self.limit} entries)")
        return entries

    def get(self, entry_id: str) -> Optional[ExamHistoryEntry]:
        return next((e for e in self.load() if e.id == entry_id), None)

    def ids(self) -> List[str]:
        return [e.id for e in self.load()]

    def clear(self):
        remove_keys(self.store, EXAM_HISTORY)
