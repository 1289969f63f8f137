"""Tests for checkpoint restore validation."""

from unittest.mock import AsyncMock

import pytest
from conftest import make_record

from aichat_workflow.normalizer import normalize_block
from aichat_workflow.provider import RestoreResult
from aichat_workflow.restore import CheckpointRestorer, RestoreRejected, validate_restore


def _block(commit_hash, project_id="proj-1"):
    return normalize_block(make_record("b1", project_id=project_id, commit_hash=commit_hash))


@pytest.fixture
def git():
    collaborator = AsyncMock()
    collaborator.restore_checkpoint.return_value = RestoreResult(success=True)
    return collaborator


class TestValidateRestore:
    @pytest.mark.parametrize("commit_hash", ["unk", "unknown", "abc123", None])
    def test_rejects_bad_hashes(self, commit_hash):
        with pytest.raises(RestoreRejected):
            validate_restore(_block(commit_hash), "proj-1")

    def test_rejects_cross_project(self):
        with pytest.raises(RestoreRejected, match="different project"):
            validate_restore(_block("abc1234", project_id="proj-2"), "proj-1")

    def test_rejects_without_active_project(self):
        with pytest.raises(RestoreRejected):
            validate_restore(_block("abc1234"), None)

    def test_accepts_seven_characters(self):
        assert validate_restore(_block("abc1234"), "proj-1") == "abc1234"


class TestCheckpointRestorer:
    @pytest.mark.asyncio
    async def test_short_hash_never_reaches_git(self, git):
        result = await CheckpointRestorer(git).restore(_block("unk"), "proj-1")
        assert result.success is False
        assert result.rejected is True
        assert result.error == "Cannot restore: Invalid commit hash"
        git.restore_checkpoint.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cross_project_never_reaches_git(self, git):
        result = await CheckpointRestorer(git).restore(_block("abc1234def", project_id="proj-2"), "proj-1")
        assert result.rejected is True
        git.restore_checkpoint.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_valid_restore_is_delegated(self, git):
        result = await CheckpointRestorer(git).restore(_block("abc1234def"), "proj-1")
        assert result.success is True
        git.restore_checkpoint.assert_awaited_once_with("proj-1", "abc1234def")

    @pytest.mark.asyncio
    async def test_git_error_surfaced_verbatim(self, git):
        git.restore_checkpoint.return_value = RestoreResult(success=False, error="Failed to checkout commit")
        result = await CheckpointRestorer(git).restore(_block("abc1234def"), "proj-1")
        assert result.success is False
        assert result.rejected is False
        assert result.error == "Failed to checkout commit"

    @pytest.mark.asyncio
    async def test_git_exception_becomes_error(self, git):
        git.restore_checkpoint.side_effect = RuntimeError("git missing")
        result = await CheckpointRestorer(git).restore(_block("abc1234def"), "proj-1")
        assert result.success is False
        assert result.error == "git missing"
