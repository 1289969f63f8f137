"""Timeline assembly: turning parsed sub-documents into ordered messages.

Agent text/thinking entries and tool executions arrive from separate
sub-documents. They are converted to Message objects here and merged into
one list ordered by timestamp. Entries without a timestamp go after every
timestamped entry and keep their source order (Python's sort is stable).
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .core import Message

LOADING_PHRASES = (
    "Warming up the engines...",
    "Booting up the code engines...",
    "Charging the circuits...",
    "Activating the neural cores...",
    "Charging the neural network...",
    "Spinning up the AI nodes...",
    "Linking the thought patterns...",
    "Calibrating the reasoning unit...",
    "Optimizing the neural flow...",
)


def to_datetime(value: Any) -> Optional[datetime]:
    """Convert an epoch-ms number or ISO 8601 string to an aware datetime."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def sort_timeline(messages: Iterable[Message]) -> list[Message]:
    """Stable-sort messages by timestamp; untimed entries go last."""
    return sorted(
        messages,
        key=lambda m: (m.timestamp is None, m.timestamp.timestamp() if m.timestamp else 0.0),
    )


def agent_messages(entries: list) -> list[Message]:
    """Convert agent message entries (legacy strings or tagged objects)."""
    messages = []
    for entry in entries:
        if isinstance(entry, str):
            messages.append(Message(type="assistant", content=entry))
            continue
        if not isinstance(entry, dict):
            continue

        entry_type = entry.get("type")
        timestamp = to_datetime(entry.get("timestamp"))
        if entry_type == "text":
            messages.append(Message(
                type="assistant",
                content=_text(entry.get("content")),
                timestamp=timestamp,
            ))
        elif entry_type == "thinking":
            messages.append(Message(
                type="thinking",
                content=_text(entry.get("content")),
                timestamp=timestamp,
                thinking_duration=_int_or_none(entry.get("thinkingDuration")),
            ))
    return messages


def group_tool_counts(tool_data: Any) -> dict[str, int]:
    """Return ``{tool_name: count}`` from a flat list or an already-grouped mapping."""
    grouped: dict[str, int] = {}
    if isinstance(tool_data, list):
        for tool in tool_data:
            if not isinstance(tool, dict):
                continue
            name = _text(tool.get("toolName")) or "unknown"
            grouped[name] = grouped.get(name, 0) + 1
    elif isinstance(tool_data, dict):
        for name, count in tool_data.items():
            grouped[str(name)] = count
    return grouped


def grouped_tool_messages(tool_data: Any) -> list[Message]:
    """Summarize tool usage of a completed block as one ``"2x Read, 1x Write"`` message."""
    grouped = group_tool_counts(tool_data)
    if not grouped:
        return []
    content = ", ".join(f"{count}x {name}" for name, count in grouped.items())
    return [Message(type="tool", content=content)]


def verbose_tool_messages(tool_data: Any) -> list[Message]:
    """One message per tool invocation, used while the block is still running."""
    if not isinstance(tool_data, list):
        return []

    messages = []
    for tool in tool_data:
        if not isinstance(tool, dict):
            continue
        name = _text(tool.get("toolName")) or "unknown"
        content = f"Claude using tool {name}"
        file_path = _text(tool.get("filePath"))
        command = _text(tool.get("command"))
        if file_path:
            content += f" @ {file_path.rstrip('/').split('/')[-1] or file_path}"
        elif command:
            content += f" @ {command}"

        start, end = tool.get("startTime"), tool.get("endTime")
        duration = None
        if _is_number(start) and _is_number(end):
            duration = round((end - start) / 1000)

        messages.append(Message(
            type="tool",
            content=content,
            timestamp=to_datetime(start),
            tool_name=name,
            tool_id=tool.get("toolId"),
            tool_duration=duration,
        ))
    return messages


def loading_phrase(block_id: str) -> str:
    """Pick a placeholder phrase; the same block id always yields the same phrase."""
    index = sum(ord(c) for c in block_id) % len(LOADING_PHRASES)
    return LOADING_PHRASES[index]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _text(value: Any) -> str:
    """Coerce a decoded JSON value to message text; ``None`` becomes empty."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _int_or_none(value: Any) -> Optional[int]:
    if _is_number(value):
        return int(value)
    return None
