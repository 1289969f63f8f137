"""Export normalized workflow blocks to Markdown and JSON."""

import json
from dataclasses import asdict
from datetime import datetime
from typing import Any

from .classifier import classify
from .core import Message, PlanUnit, WorkflowBlock


def message_to_dict(msg: Message) -> dict:
    return {
        "type": msg.type,
        "content": msg.content,
        "timestamp": msg.timestamp.isoformat() if msg.timestamp else None,
        "tool_name": msg.tool_name,
        "tool_id": msg.tool_id,
        "tool_duration": msg.tool_duration,
        "thinking_duration": msg.thinking_duration,
    }


def block_to_dict(block: WorkflowBlock) -> dict:
    """Convert a WorkflowBlock to a JSON-serializable dict, including its role."""
    return {
        "id": block.id,
        "project_id": block.project_id,
        "kind": block.kind,
        "role": classify(block).value,
        "user_prompt": block.user_prompt,
        "messages": [message_to_dict(m) for m in block.messages],
        "is_complete": block.is_complete,
        "commit_hash": block.commit_hash,
        "files_changed": block.files_changed,
        "completion_stats": asdict(block.completion_stats) if block.completion_stats else None,
        "summary": block.summary,
        "actions": [asdict(a) for a in block.actions],
        "stages": [asdict(s) for s in block.stages] if block.stages is not None else None,
        "template_name": block.template_name,
        "source_project_name": block.source_project_name,
        "interaction_type": block.interaction_type,
        "completed_at": block.completed_at,
        "metadata": block.metadata,
    }


def unit_to_dict(unit: PlanUnit) -> dict:
    return {
        "role": unit.role.value,
        "head": unit.head.id,
        "answers": unit.answers.id if unit.answers else None,
        "approval": unit.approval.id if unit.approval else None,
        "blocks": [block_to_dict(b) for b in unit.blocks],
        "waiting_for_input": unit.waiting_for_input,
        "needs_approval": unit.needs_approval,
    }


def blocks_to_markdown(project_id: str, blocks: list[WorkflowBlock]) -> str:
    """Render a project's workflow history as Markdown, oldest block first."""
    lines = [f"# Workflow history: {project_id}", "", f"**Blocks:** {len(blocks)}", "", "---", ""]

    for block in blocks:
        role = classify(block).value
        lines.append(f"## {block.user_prompt or block.kind} ({role})")
        lines.append("")
        if block.commit_hash:
            lines.append(f"**Checkpoint:** {block.commit_hash}")
        if block.files_changed:
            lines.append(f"**Files changed:** {block.files_changed}")
        if block.stages:
            for stage in block.stages:
                mark = "x" if stage.is_complete else " "
                lines.append(f"- [{mark}] {stage.label}")
        lines.append("")

        for msg in block.messages:
            if msg.type == "user":
                continue
            ts = f" ({_short_time(msg.timestamp)})" if msg.timestamp else ""
            lines.append(f"### {msg.type.capitalize()}{ts}")
            lines.append("")
            lines.append(msg.content)
            lines.append("")

        for action in block.actions:
            detail = f": {action.message}" if action.message else ""
            lines.append(f"- `{action.type}` {action.status}{detail}")
        lines.extend(["", "---", ""])

    return "\n".join(lines)


def blocks_to_json(project_id: str, blocks: list[WorkflowBlock]) -> str:
    data: dict[str, Any] = {
        "project_id": project_id,
        "blocks": [block_to_dict(b) for b in blocks],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def _short_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")
