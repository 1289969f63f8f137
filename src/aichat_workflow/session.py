"""Per-project session context tying the engine together.

A WorkflowSession owns everything that used to be ambient UI state: the
active project id, the oldest-first block list, pagination, live timers
and the inbound event channel. Push events are queued and applied in
arrival order by ``process_events``; pagination only ever prepends and
events only append or replace by id, so the two never disturb each other.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from .classifier import was_interrupted
from .core import PlanUnit, RawBlockRecord, Stage, WorkflowBlock
from .merger import merge_plan_units
from .normalizer import normalize_block
from .pagination import PaginationController
from .provider import GitCollaborator, HistoryStore, RestoreResult
from .restore import CheckpointRestorer
from .timers import TimerEngine

logger = logging.getLogger(__name__)

BLOCK_CREATED = "created"
BLOCK_UPDATED = "updated"
BLOCK_COMPLETED = "completed"

DEPLOYMENT_STAGES = ("Creating instance", "Building app", "Setting up keys", "Finalizing")
DEPLOYMENT_PROGRESS = {"creating": 0, "building": 1, "setting-keys": 2, "finalizing": 3}


@dataclass
class BlockEvent:
    """A push notification from the history store."""

    kind: str  # "created" | "updated" | "completed"
    project_id: str
    record: RawBlockRecord


class EventChannel:
    """FIFO of inbound block events, drained synchronously."""

    def __init__(self):
        self._queue: deque[BlockEvent] = deque()

    def put(self, event: BlockEvent) -> None:
        self._queue.append(event)

    def drain(self) -> Iterator[BlockEvent]:
        while self._queue:
            yield self._queue.popleft()

    def clear(self) -> None:
        self._queue.clear()

    def __len__(self) -> int:
        return len(self._queue)


class WorkflowSession:
    """Reconciled view of one project's workflow history."""

    def __init__(
        self,
        store: HistoryStore,
        git: Optional[GitCollaborator] = None,
        timers: Optional[TimerEngine] = None,
        page_size: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.restorer = CheckpointRestorer(git) if git is not None else None
        self.timers = timers or TimerEngine(clock=clock)
        self.page_size = page_size
        self.clock = clock
        self.channel = EventChannel()
        self.project_id: Optional[str] = None
        self.pagination: Optional[PaginationController] = None
        self.blocks: list[WorkflowBlock] = []

    # ── Project lifecycle ────────────────────────────────────────────

    async def open(self, project_id: str) -> list[WorkflowBlock]:
        """Switch to ``project_id`` and load its newest page."""
        self.close()
        self.project_id = project_id
        pagination = PaginationController(self.store, project_id, self.page_size)
        self.pagination = pagination

        result = await pagination.load_initial()
        if self.project_id != project_id or self.pagination is not pagination:
            logger.debug("Discarding initial page of %s after project switch", project_id)
            return self.blocks
        self.blocks = result.blocks + self.blocks  # keep anything pushed meanwhile
        self._dedupe_prepended(len(result.blocks))
        self.timers.sync(self.blocks)
        return self.blocks

    def close(self) -> None:
        """Drop all project state and tear down timers."""
        self.timers.reset()
        self.channel.clear()
        self.blocks = []
        self.project_id = None
        self.pagination = None

    @property
    def has_more(self) -> bool:
        return self.pagination is not None and self.pagination.has_more

    async def load_more(self) -> list[WorkflowBlock]:
        """Prepend the next older page. Returns only the prepended blocks."""
        if self.pagination is None:
            return []
        project_id = self.project_id
        result = await self.pagination.load_more()
        if project_id != self.project_id or not result.blocks:
            return []

        known = {b.id for b in self.blocks}
        older = [b for b in result.blocks if b.id not in known]
        self.blocks = older + self.blocks
        self.timers.sync(self.blocks)
        return older

    # ── Push events ──────────────────────────────────────────────────

    def push(self, event: BlockEvent) -> None:
        self.channel.put(event)

    def on_block_created(self, project_id: str, record: RawBlockRecord) -> None:
        self.push(BlockEvent(BLOCK_CREATED, project_id, record))

    def on_block_updated(self, project_id: str, record: RawBlockRecord) -> None:
        self.push(BlockEvent(BLOCK_UPDATED, project_id, record))

    def on_block_completed(self, project_id: str, record: RawBlockRecord) -> None:
        self.push(BlockEvent(BLOCK_COMPLETED, project_id, record))

    def process_events(self) -> list[str]:
        """Apply queued events in arrival order. Returns ids of changed blocks."""
        changed = []
        for event in self.channel.drain():
            if self.project_id is None or event.project_id != self.project_id:
                logger.debug("Ignoring %s event for inactive project %s", event.kind, event.project_id)
                continue
            try:
                applied = self._apply(event)
            except Exception as e:
                logger.error("Failed to apply %s event for block %s: %s",
                             event.kind, getattr(event.record, "id", "?"), e)
                continue
            if applied:
                changed.append(event.record.id)
        if changed:
            self.timers.sync(self.blocks)
        return changed

    def _apply(self, event: BlockEvent) -> bool:
        block = normalize_block(event.record)
        index = self._index_of(block.id)

        if index is not None:
            self.blocks[index] = block
        elif event.kind == BLOCK_CREATED:
            self.blocks.append(block)
        else:
            logger.debug("Ignoring %s event for unloaded block %s", event.kind, block.id)
            return False

        if event.kind == BLOCK_COMPLETED:
            logger.info("Block %s completed%s", block.id,
                        " (interrupted)" if was_interrupted(block) else "")
        return True

    # ── Derived views ────────────────────────────────────────────────

    def units(self) -> list[PlanUnit]:
        return merge_plan_units(self.blocks)

    def get_block(self, block_id: str) -> Optional[WorkflowBlock]:
        index = self._index_of(block_id)
        return self.blocks[index] if index is not None else None

    # ── Deployment ───────────────────────────────────────────────────

    def apply_deployment_status(self, status: str, url: Optional[str] = None) -> Optional[WorkflowBlock]:
        """Create or advance the synthetic deployment block for ``status``."""
        if status == "idle" or self.project_id is None:
            return None

        open_block = next(
            (b for b in self.blocks if b.kind == "deployment" and not b.is_complete), None
        )

        if status == "live":
            if open_block is None:
                return None
            open_block.is_complete = True
            open_block.completed_at = int(self.clock() * 1000)
            for stage in open_block.stages or []:
                stage.is_complete = True
            if url:
                open_block.metadata["deployment_url"] = url
            return open_block

        progress = DEPLOYMENT_PROGRESS.get(status)
        if progress is None:
            logger.warning("Unknown deployment status %r", status)
            return None

        if open_block is None:
            open_block = WorkflowBlock(
                id=f"deploy-{int(self.clock() * 1000)}",
                project_id=self.project_id,
                kind="deployment",
                stages=[Stage(label=label) for label in DEPLOYMENT_STAGES],
            )
            self.blocks.append(open_block)

        for idx, stage in enumerate(open_block.stages or []):
            stage.is_complete = idx < progress
        return open_block

    # ── Collaborator actions ─────────────────────────────────────────

    async def restore(self, block_id: str) -> RestoreResult:
        """Restore the project to the checkpoint recorded on ``block_id``."""
        if self.restorer is None:
            return RestoreResult(success=False, error="Checkpoint restore is not available", rejected=True)
        block = self.get_block(block_id)
        if block is None:
            return RestoreResult(success=False, error="Cannot restore: unknown block", rejected=True)
        return await self.restorer.restore(block, self.project_id)

    async def delete_history(self) -> bool:
        """Delete the project's history in the store and reset local state."""
        if self.project_id is None:
            return False
        project_id = self.project_id
        try:
            ok = await self.store.delete_history(project_id)
        except Exception as e:
            logger.error("Failed to delete history for %s: %s", project_id, e)
            return False
        if ok:
            self.timers.reset()
            self.channel.clear()
            self.blocks = []
            if self.pagination is not None:
                self.pagination.reset()
                self.pagination.has_more = False
        return ok

    # ── Private helpers ──────────────────────────────────────────────

    def _index_of(self, block_id: str) -> Optional[int]:
        for i, block in enumerate(self.blocks):
            if block.id == block_id:
                return i
        return None

    def _dedupe_prepended(self, count: int) -> None:
        """Drop loaded blocks that a push event already delivered."""
        pushed = {b.id for b in self.blocks[count:]}
        if pushed:
            self.blocks = [b for b in self.blocks[:count] if b.id not in pushed] + self.blocks[count:]
