"""Core data models for aichat-workflow."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ClassifiedRole(str, Enum):
    """Derived role of a workflow block. Never stored."""

    CONVERSATION = "conversation"
    CLARIFYING_QUESTIONS = "clarifying-questions"
    ANSWERS = "answers"
    PLAN_READY = "plan-ready"
    PLAN_APPROVAL = "plan-approval"
    DEPLOYMENT = "deployment"
    INITIALIZATION = "initialization"
    CHECKPOINT_RESTORE = "checkpoint-restore"
    CONTEXT_CLEARED = "context-cleared"
    UNKNOWN = "unknown"


class InteractionType(str, Enum):
    """Discriminator written by the agent side when a block completes."""

    CLAUDE_RESPONSE = "claude_response"
    PLAN_READY = "plan_ready"
    CLARIFYING_QUESTIONS = "clarifying_questions"
    CONTEXT_CLEARED = "context_cleared"


@dataclass
class RawBlockRecord:
    """A chat block row as persisted by the history store.

    Sub-documents (claude_messages, tool_executions, actions,
    completion_stats) are JSON strings and are parsed lazily.
    """

    id: str
    project_id: str
    user_prompt: str = ""
    claude_messages: Optional[str] = None
    tool_executions: Optional[str] = None
    actions: Optional[str] = None
    is_complete: bool = False
    commit_hash: Optional[str] = None
    files_changed: Optional[int] = None
    completion_stats: Optional[str] = None
    summary: Optional[str] = None
    interaction_type: Optional[str] = None
    created_at: int = 0  # epoch ms
    completed_at: Optional[int] = None  # epoch ms
    block_index: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "RawBlockRecord":
        """Build a record from the camelCase mapping the store emits."""
        return cls(
            id=str(data.get("id", "")),
            project_id=str(data.get("projectId", "")),
            user_prompt=str(data.get("userPrompt") or ""),
            claude_messages=data.get("claudeMessages"),
            tool_executions=data.get("toolExecutions"),
            actions=data.get("actions"),
            is_complete=bool(data.get("isComplete", False)),
            commit_hash=data.get("commitHash"),
            files_changed=data.get("filesChanged"),
            completion_stats=data.get("completionStats"),
            summary=data.get("summary"),
            interaction_type=data.get("interactionType"),
            created_at=int(data.get("createdAt") or 0),
            completed_at=data.get("completedAt"),
            block_index=int(data.get("blockIndex") or 0),
        )


@dataclass
class Message:
    """A single entry in a block's timeline."""

    type: str  # "user" | "assistant" | "tool" | "thinking"
    content: str
    timestamp: Optional[datetime] = None
    tool_name: Optional[str] = None
    tool_id: Optional[str] = None
    tool_duration: Optional[int] = None  # seconds; None while the tool is running
    thinking_duration: Optional[int] = None  # seconds; None while thinking

    @property
    def is_open(self) -> bool:
        """True for tool/thinking segments that have not reported a duration."""
        if self.type == "thinking":
            return self.thinking_duration is None
        if self.type == "tool":
            return self.tool_duration is None
        return False


@dataclass
class Action:
    """A side effect triggered by a block (commit, build, dev server, restore)."""

    type: str  # "git_commit" | "build" | "dev_server" | "checkpoint_restore"
    status: str  # "in_progress" | "success" | "error"
    timestamp: int = 0  # epoch ms
    message: Optional[str] = None
    data: dict = field(default_factory=dict)


@dataclass
class Stage:
    """One step of a deployment or project initialization."""

    label: str
    is_complete: bool = False
    is_failed: bool = False
    error_message: Optional[str] = None


@dataclass
class CompletionStats:
    time_seconds: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0


@dataclass
class WorkflowBlock:
    """Canonical, normalized representation of one interaction block."""

    id: str
    project_id: str
    kind: str = "conversation"  # "conversation" | "deployment" | "initialization" | "context_cleared"
    user_prompt: Optional[str] = None
    messages: list[Message] = field(default_factory=list)
    is_complete: bool = False
    commit_hash: Optional[str] = None
    files_changed: Optional[int] = None
    completion_stats: Optional[CompletionStats] = None
    summary: Optional[str] = None
    actions: list[Action] = field(default_factory=list)
    stages: Optional[list[Stage]] = None
    template_name: Optional[str] = None
    source_project_name: Optional[str] = None
    interaction_type: Optional[str] = None
    completed_at: Optional[int] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class PlanUnit:
    """A rendering unit: one block, or a whole plan-mode exchange.

    For plan-mode exchanges ``head`` is the clarifying-questions block,
    ``answers`` the bound answer block, and ``followers`` every absorbed
    approval/implementation block in order.
    """

    head: WorkflowBlock
    role: ClassifiedRole
    answers: Optional[WorkflowBlock] = None
    approval: Optional[WorkflowBlock] = None
    followers: list[WorkflowBlock] = field(default_factory=list)
    waiting_for_input: bool = False
    needs_approval: bool = False

    @property
    def blocks(self) -> list[WorkflowBlock]:
        """All blocks in this unit, in timeline order."""
        result = [self.head]
        if self.answers is not None:
            result.append(self.answers)
        result.extend(self.followers)
        return result
