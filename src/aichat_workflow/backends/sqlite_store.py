"""SQLite chat history backend.

Reads blocks from a ``chat_history`` table with one row per interaction
block. Sub-documents (claudeMessages, toolExecutions, actions,
completionStats) are stored as JSON text and handed to the normalizer
untouched. Queries run in a worker thread so the event loop never blocks.
"""

import asyncio
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Optional

from ..config import get_history_db_path
from ..core import RawBlockRecord
from ..provider import HistoryPage, HistoryStore

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS chat_history (
    id TEXT PRIMARY KEY,
    projectId TEXT NOT NULL,
    blockIndex INTEGER NOT NULL,
    userPrompt TEXT NOT NULL,
    claudeMessages TEXT,
    toolExecutions TEXT,
    commitHash TEXT,
    filesChanged INTEGER,
    completionStats TEXT,
    summary TEXT,
    actions TEXT,
    interactionType TEXT,
    completedAt INTEGER,
    isComplete INTEGER NOT NULL DEFAULT 0,
    createdAt INTEGER NOT NULL
)
"""

COLUMNS = (
    "id", "projectId", "blockIndex", "userPrompt", "claudeMessages", "toolExecutions",
    "commitHash", "filesChanged", "completionStats", "summary", "actions",
    "interactionType", "completedAt", "isComplete", "createdAt",
)


class SQLiteHistoryStore(HistoryStore):
    """History store backed by a local SQLite database."""

    name = "sqlite"

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else get_history_db_path()

    def is_available(self) -> bool:
        return self.db_path.exists()

    def create_schema(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn, conn:
            conn.execute(SCHEMA)

    def save_block(self, record: RawBlockRecord) -> None:
        """Insert or replace a row. Used to seed databases and in tests."""
        row = {
            "id": record.id,
            "projectId": record.project_id,
            "blockIndex": record.block_index,
            "userPrompt": record.user_prompt,
            "claudeMessages": record.claude_messages,
            "toolExecutions": record.tool_executions,
            "commitHash": record.commit_hash,
            "filesChanged": record.files_changed,
            "completionStats": record.completion_stats,
            "summary": record.summary,
            "actions": record.actions,
            "interactionType": record.interaction_type,
            "completedAt": record.completed_at,
            "isComplete": int(record.is_complete),
            "createdAt": record.created_at,
        }
        placeholders = ", ".join("?" for _ in COLUMNS)
        with closing(self._connect()) as conn, conn:
            conn.execute(
                f"INSERT OR REPLACE INTO chat_history ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                [row[c] for c in COLUMNS],
            )

    async def get_history(self, project_id: str, limit: int, offset: int) -> HistoryPage:
        try:
            records = await asyncio.to_thread(self._select_page, project_id, limit, offset)
        except (sqlite3.Error, OSError) as e:
            logger.error("Failed to read chat history for %s: %s", project_id, e)
            return HistoryPage(success=False, error=str(e))
        return HistoryPage(success=True, blocks=records)

    async def get_block(self, project_id: str, block_id: str) -> Optional[RawBlockRecord]:
        try:
            return await asyncio.to_thread(self._select_one, project_id, block_id)
        except (sqlite3.Error, OSError) as e:
            logger.error("Failed to read block %s: %s", block_id, e)
            return None

    async def delete_history(self, project_id: str) -> bool:
        try:
            await asyncio.to_thread(self._delete, project_id)
        except (sqlite3.Error, OSError) as e:
            logger.error("Failed to delete chat history for %s: %s", project_id, e)
            return False
        logger.info("Chat history deleted for project %s", project_id)
        return True

    # ── Private helpers ──────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _select_page(self, project_id: str, limit: int, offset: int) -> list[RawBlockRecord]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM chat_history WHERE projectId = ? "
                "ORDER BY blockIndex DESC LIMIT ? OFFSET ?",
                (project_id, limit, offset),
            ).fetchall()
        finally:
            conn.close()
        return [RawBlockRecord.from_dict(dict(row)) for row in rows]

    def _select_one(self, project_id: str, block_id: str) -> Optional[RawBlockRecord]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM chat_history WHERE projectId = ? AND id = ?",
                (project_id, block_id),
            ).fetchone()
        finally:
            conn.close()
        return RawBlockRecord.from_dict(dict(row)) if row else None

    def _delete(self, project_id: str) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute("DELETE FROM chat_history WHERE projectId = ?", (project_id,))
