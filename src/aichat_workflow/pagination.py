"""Backward pagination over a project's block history.

The store returns pages newest-first. Pages are reversed to oldest-first
and prepended to the loaded list, so existing entries never move relative
to each other and a consumer can keep its scroll anchor by compensating
for the height of the prepended range alone.
"""

import logging
from dataclasses import dataclass, field

from .config import get_page_size
from .core import WorkflowBlock
from .normalizer import normalize_blocks
from .provider import HistoryStore

logger = logging.getLogger(__name__)


@dataclass
class PageResult:
    """Outcome of a fetch: the new oldest-first blocks and whether more exist."""

    blocks: list[WorkflowBlock] = field(default_factory=list)
    has_more: bool = True
    fetched: bool = False


class PaginationController:
    """Keeps ``offset``/``has_more`` for one project's history."""

    def __init__(self, store: HistoryStore, project_id: str, page_size: int | None = None):
        self.store = store
        self.project_id = project_id
        self.page_size = page_size or get_page_size()
        self.offset = 0
        self.has_more = True
        self.loading = False

    def reset(self) -> None:
        self.offset = 0
        self.has_more = True
        self.loading = False

    async def load_initial(self) -> PageResult:
        """Fetch the newest page. Resets state first."""
        self.reset()
        return await self._fetch(0)

    async def load_more(self) -> PageResult:
        """Fetch the next older page, or nothing once history is exhausted."""
        if not self.has_more or self.loading:
            return PageResult(has_more=self.has_more)
        return await self._fetch(self.offset + self.page_size)

    async def _fetch(self, offset: int) -> PageResult:
        self.loading = True
        try:
            page = await self.store.get_history(self.project_id, self.page_size, offset)
        except Exception as e:
            logger.error("Failed to load history for %s at offset %d: %s", self.project_id, offset, e)
            return PageResult(has_more=self.has_more)
        finally:
            self.loading = False

        if not page.success:
            logger.warning("History store refused page at offset %d for %s: %s",
                           offset, self.project_id, page.error)
            return PageResult(has_more=self.has_more)

        blocks = normalize_blocks(page.blocks)
        blocks.reverse()

        if len(page.blocks) < self.page_size:
            self.has_more = False
        if page.blocks:
            self.offset = offset

        return PageResult(blocks=blocks, has_more=self.has_more, fetched=True)
