"""FastAPI web server for aichat-workflow."""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from .backends import get_history_store
from .backends.git import GitCheckpointCollaborator
from .config import get_page_size, get_projects_root
from .export import block_to_dict, blocks_to_json, blocks_to_markdown, unit_to_dict
from .merger import merge_plan_units
from .normalizer import normalize_block, normalize_blocks
from .provider import GitCollaborator, HistoryStore
from .restore import CheckpointRestorer

logger = logging.getLogger(__name__)

app = FastAPI(title="aichat-workflow", version="0.1.0")

# Collaborator cache (populated on first request)
_store: HistoryStore | None = None
_git: GitCollaborator | None = None


class RestoreRequest(BaseModel):
    block_id: str


def _get_store() -> HistoryStore:
    """Lazily initialize and cache the history store."""
    global _store
    if _store is None:
        _store = get_history_store()
        logger.info("Using history store: %s", _store.name)
    return _store


def _get_git() -> GitCollaborator:
    global _git
    if _git is None:
        root = get_projects_root()
        _git = GitCheckpointCollaborator(lambda project_id: root / project_id)
    return _git


async def _load_page(project_id: str, limit: int, offset: int):
    try:
        page = await _get_store().get_history(project_id, limit, offset)
    except Exception as e:
        logger.error("Failed to load history for %s: %s", project_id, e)
        raise HTTPException(status_code=500, detail="Failed to load history")
    if not page.success:
        raise HTTPException(status_code=500, detail=page.error or "Failed to load history")

    blocks = normalize_blocks(page.blocks)
    blocks.reverse()  # oldest first
    return blocks, len(page.blocks)


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/projects/{project_id}/blocks")
async def get_blocks(
    project_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """Return one page of normalized blocks, oldest first."""
    limit = limit or get_page_size()
    blocks, fetched = await _load_page(project_id, limit, offset)
    return {
        "project_id": project_id,
        "offset": offset,
        "has_more": fetched >= limit,
        "blocks": [block_to_dict(b) for b in blocks],
    }


@app.get("/api/projects/{project_id}/units")
async def get_units(
    project_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """Return one page of blocks grouped into plan-mode units."""
    limit = limit or get_page_size()
    blocks, fetched = await _load_page(project_id, limit, offset)
    return {
        "project_id": project_id,
        "offset": offset,
        "has_more": fetched >= limit,
        "units": [unit_to_dict(u) for u in merge_plan_units(blocks)],
    }


@app.get("/api/projects/{project_id}/export")
async def export_history(
    project_id: str,
    format: str = Query("md", description="Export format: md or json"),
    limit: int = Query(500, ge=1, le=5000),
):
    """Export a project's history as Markdown or JSON."""
    blocks, _ = await _load_page(project_id, limit, 0)
    safe_name = "".join(c if c.isalnum() or c in "-_ " else "" for c in project_id)[:50] or "history"

    if format == "json":
        return Response(
            content=blocks_to_json(project_id, blocks),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{safe_name}.json"'},
        )
    return Response(
        content=blocks_to_markdown(project_id, blocks),
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{safe_name}.md"'},
    )


@app.post("/api/projects/{project_id}/restore")
async def restore_checkpoint(project_id: str, request: RestoreRequest):
    """Restore the project to the checkpoint of one of its blocks."""
    record = await _get_store().get_block(project_id, request.block_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Block not found")

    result = await CheckpointRestorer(_get_git()).restore(normalize_block(record), project_id)
    return {"success": result.success, "error": result.error, "rejected": result.rejected}


@app.delete("/api/projects/{project_id}/history")
async def delete_history(project_id: str):
    """Delete every block of a project."""
    ok = await _get_store().delete_history(project_id)
    if not ok:
        raise HTTPException(status_code=500, detail="Failed to delete history")
    return {"success": True}
