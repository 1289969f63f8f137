"""In-memory history backend.

Keeps records per project in insertion order. Useful for embedding the
engine without a database and for tests.
"""

import logging
from typing import Iterable, Optional

from ..core import RawBlockRecord
from ..provider import HistoryPage, HistoryStore

logger = logging.getLogger(__name__)


class MemoryHistoryStore(HistoryStore):
    """History store holding records in a dict of lists."""

    name = "memory"

    def __init__(self, records: Iterable[RawBlockRecord] = ()):
        self._records: dict[str, list[RawBlockRecord]] = {}
        for record in records:
            self.save_block(record)

    def save_block(self, record: RawBlockRecord) -> None:
        """Append a record, or replace the one with the same id."""
        blocks = self._records.setdefault(record.project_id, [])
        for i, existing in enumerate(blocks):
            if existing.id == record.id:
                blocks[i] = record
                return
        blocks.append(record)

    async def get_history(self, project_id: str, limit: int, offset: int) -> HistoryPage:
        newest_first = list(reversed(self._records.get(project_id, [])))
        return HistoryPage(success=True, blocks=newest_first[offset: offset + limit])

    async def get_block(self, project_id: str, block_id: str) -> Optional[RawBlockRecord]:
        for record in self._records.get(project_id, []):
            if record.id == block_id:
                return record
        return None

    async def delete_history(self, project_id: str) -> bool:
        removed = self._records.pop(project_id, [])
        logger.info("Deleted %d blocks for project %s", len(removed), project_id)
        return True
