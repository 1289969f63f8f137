"""Block normalizer: RawBlockRecord -> WorkflowBlock.

Normalization is deterministic and never raises for malformed
sub-documents. A field that fails to parse is treated as absent and the
rest of the block is still normalized.
"""

import json
import logging
from typing import Any, Iterable

from .core import Action, CompletionStats, Message, RawBlockRecord, Stage, WorkflowBlock
from .timeline import (
    agent_messages,
    grouped_tool_messages,
    loading_phrase,
    sort_timeline,
    to_datetime,
    verbose_tool_messages,
)

logger = logging.getLogger(__name__)


def safe_parse(text: Any, fallback: Any, *, block_id: str = "", field: str = "") -> Any:
    """Parse a JSON sub-document, returning ``fallback`` when it is missing or malformed."""
    if not text:
        return fallback
    if not isinstance(text, str):
        # Some stores hand back already-decoded documents.
        return text
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Failed to parse %s of block %s: %s", field or "field", block_id, e)
        return fallback


def normalize_block(record: RawBlockRecord) -> WorkflowBlock:
    """Rebuild the canonical block for a raw record."""
    messages = [Message(
        type="user",
        content=record.user_prompt,
        timestamp=to_datetime(record.created_at),
    )]

    timed: list[Message] = []

    raw_messages = safe_parse(record.claude_messages, [], block_id=record.id, field="claudeMessages")
    if isinstance(raw_messages, list):
        timed.extend(_convert(agent_messages, raw_messages, record.id, "claudeMessages"))
    else:
        logger.warning("Ignoring non-list claudeMessages of block %s", record.id)

    tool_data = safe_parse(record.tool_executions, [], block_id=record.id, field="toolExecutions")
    tool_converter = grouped_tool_messages if record.is_complete else verbose_tool_messages
    timed.extend(_convert(tool_converter, tool_data, record.id, "toolExecutions"))

    messages.extend(sort_timeline(timed))

    has_agent_output = any(m.type in ("assistant", "thinking") for m in messages)
    if not has_agent_output and not record.is_complete:
        messages.append(Message(type="assistant", content=loading_phrase(record.id)))

    block = WorkflowBlock(
        id=record.id,
        project_id=record.project_id,
        user_prompt=record.user_prompt,
        messages=messages,
        is_complete=record.is_complete,
        commit_hash=record.commit_hash or None,
        files_changed=record.files_changed or None,
        completion_stats=_parse_stats(record),
        summary=record.summary or None,
        interaction_type=record.interaction_type,
        completed_at=record.completed_at or None,
    )

    if record.interaction_type == "context_cleared":
        block.kind = "context_cleared"

    try:
        _apply_actions(block, record)
    except Exception as e:
        logger.warning("Dropping actions of block %s: %s", record.id, e)
    return block


def normalize_blocks(records: Iterable[RawBlockRecord]) -> list[WorkflowBlock]:
    """Normalize every record; one bad record never stops the others."""
    blocks = []
    for record in records:
        try:
            blocks.append(normalize_block(record))
        except Exception as e:
            logger.error("Failed to normalize block %s: %s", getattr(record, "id", "?"), e)
    return blocks


def _convert(converter, data: Any, block_id: str, field: str) -> list[Message]:
    """Run one sub-document converter; a failure empties that field only."""
    try:
        return converter(data)
    except Exception as e:
        logger.warning("Dropping %s of block %s: %s", field, block_id, e)
        return []


def _parse_stats(record: RawBlockRecord) -> CompletionStats | None:
    data = safe_parse(record.completion_stats, None, block_id=record.id, field="completionStats")
    if not isinstance(data, dict):
        return None
    try:
        return CompletionStats(
            time_seconds=float(data.get("timeSeconds") or 0),
            input_tokens=int(data.get("inputTokens") or 0),
            output_tokens=int(data.get("outputTokens") or 0),
            cost=float(data.get("cost") or 0),
        )
    except (TypeError, ValueError) as e:
        logger.warning("Bad completionStats in block %s: %s", record.id, e)
        return None


def _apply_actions(block: WorkflowBlock, record: RawBlockRecord) -> None:
    """Populate actions, or initialization stages when the payload is an init record."""
    parsed = safe_parse(record.actions, None, block_id=record.id, field="actions")
    if parsed is None:
        return

    if isinstance(parsed, dict) and parsed.get("type") == "initialization":
        block.kind = "initialization"
        block.template_name = parsed.get("templateName")
        block.source_project_name = parsed.get("sourceProjectName")
        block.stages = [
            _parse_stage(s) for s in parsed.get("stages") or [] if isinstance(s, dict)
        ]
        return

    if isinstance(parsed, list):
        block.actions = [_parse_action(a) for a in parsed if isinstance(a, dict)]
        return

    logger.warning("Ignoring unrecognized actions payload of block %s", record.id)


def _parse_action(data: dict) -> Action:
    payload = data.get("data")
    ts = data.get("timestamp")
    return Action(
        type=str(data.get("type") or ""),
        status=str(data.get("status") or ""),
        timestamp=ts if isinstance(ts, (int, float)) and not isinstance(ts, bool) else 0,
        message=data.get("message"),
        data=payload if isinstance(payload, dict) else {},
    )


def _parse_stage(data: dict) -> Stage:
    return Stage(
        label=data.get("label", ""),
        is_complete=bool(data.get("isComplete", False)),
        is_failed=bool(data.get("isFailed", False)),
        error_message=data.get("errorMessage"),
    )
