"""Abstract collaborators consumed by the workflow engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from .core import RawBlockRecord


@dataclass
class HistoryPage:
    success: bool
    blocks: list[RawBlockRecord] = field(default_factory=list)  # newest first
    error: Optional[str] = None


@dataclass
class RestoreResult:
    success: bool
    error: Optional[str] = None
    rejected: bool = False  # True when refused locally, before any collaborator call


class HistoryStore(ABC):
    """Persistent store of chat blocks.

    Each backend (SQLite, in-memory) implements this interface. The engine
    never writes blocks; it only reads pages and deletes a project's history.
    """

    name: str

    @abstractmethod
    async def get_history(self, project_id: str, limit: int, offset: int) -> HistoryPage:
        """Return up to ``limit`` blocks, newest first, skipping ``offset``."""
        ...

    @abstractmethod
    async def delete_history(self, project_id: str) -> bool:
        """Remove every block of a project. Returns True on success."""
        ...

    async def get_block(self, project_id: str, block_id: str) -> Optional[RawBlockRecord]:
        """Look up a single block. Backends may override with a direct query."""
        offset = 0
        while True:
            page = await self.get_history(project_id, 100, offset)
            if not page.success or not page.blocks:
                return None
            for record in page.blocks:
                if record.id == block_id:
                    return record
            offset += len(page.blocks)


class GitCollaborator(ABC):
    """Version-control side of checkpoint restore."""

    @abstractmethod
    async def restore_checkpoint(self, project_id: str, commit_hash: str) -> RestoreResult:
        ...
