"""Checkpoint restore: local validation in front of the git collaborator."""

import logging
from typing import Optional

from .core import WorkflowBlock
from .provider import GitCollaborator, RestoreResult

logger = logging.getLogger(__name__)

UNKNOWN_HASH = "unknown"
MIN_HASH_LENGTH = 7


class RestoreRejected(Exception):
    """A restore request refused before reaching the git collaborator.

    The message is meant to be shown to the user as is.
    """


def validate_restore(block: WorkflowBlock, active_project_id: Optional[str]) -> str:
    """Return the commit hash to restore, or raise RestoreRejected."""
    if not active_project_id:
        raise RestoreRejected("Cannot restore: no active project")

    commit_hash = block.commit_hash
    if not commit_hash:
        raise RestoreRejected("Cannot restore: block has no checkpoint")
    if commit_hash == UNKNOWN_HASH or len(commit_hash) < MIN_HASH_LENGTH:
        raise RestoreRejected("Cannot restore: Invalid commit hash")

    if block.project_id != active_project_id:
        raise RestoreRejected("Cannot restore checkpoint from a different project")

    return commit_hash


class CheckpointRestorer:
    """Validates restore requests and forwards valid ones to git."""

    def __init__(self, git: GitCollaborator):
        self.git = git

    async def restore(self, block: WorkflowBlock, active_project_id: Optional[str]) -> RestoreResult:
        try:
            commit_hash = validate_restore(block, active_project_id)
        except RestoreRejected as e:
            logger.warning("Rejected restore of block %s (project %s, active %s): %s",
                           block.id, block.project_id, active_project_id, e)
            return RestoreResult(success=False, error=str(e), rejected=True)

        logger.info("Restoring %s to checkpoint %s", active_project_id, commit_hash)
        try:
            result = await self.git.restore_checkpoint(active_project_id, commit_hash)
        except Exception as e:
            logger.error("Error restoring checkpoint %s: %s", commit_hash, e)
            return RestoreResult(success=False, error=str(e))

        if result.success:
            logger.info("Restored %s to checkpoint %s", active_project_id, commit_hash)
        else:
            logger.error("Failed to restore checkpoint %s: %s", commit_hash, result.error)
        return result
