"""Git collaborator for checkpoint restore.

Restoring resets the current branch to the target commit with
``git checkout -B <branch> <commit>`` so the working tree never ends up in
a detached HEAD state.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from ..provider import GitCollaborator, RestoreResult

logger = logging.getLogger(__name__)


class GitCheckpointCollaborator(GitCollaborator):
    """Runs git in the project's working directory."""

    def __init__(self, resolve_path: Callable[[str], Optional[Path]]):
        self.resolve_path = resolve_path

    async def restore_checkpoint(self, project_id: str, commit_hash: str) -> RestoreResult:
        project_path = self.resolve_path(project_id)
        if project_path is None or not Path(project_path).is_dir():
            return RestoreResult(success=False, error="Project not found")

        code, _, _ = await _git(project_path, "cat-file", "-e", f"{commit_hash}^{{commit}}")
        if code != 0:
            return RestoreResult(
                success=False,
                error=f"Commit {commit_hash} does not exist in this repository",
            )

        code, branch, _ = await _git(project_path, "rev-parse", "--abbrev-ref", "HEAD")
        branch = branch.strip() if code == 0 and branch.strip() != "HEAD" else "main"

        code, _, stderr = await _git(project_path, "checkout", "-B", branch, commit_hash)
        if code != 0:
            logger.error("Git checkout failed for %s: %s", project_id, stderr.strip())
            return RestoreResult(success=False, error="Failed to checkout commit")

        return RestoreResult(success=True)


async def _git(cwd: Path, *args: str) -> tuple[int, str, str]:
    try:
        proc = await asyncio.create_subprocess_exec(
            "git", *args,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error("Failed to run git %s: %s", args[0], e)
        return 127, "", str(e)
    stdout, stderr = await proc.communicate()
    return proc.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")
