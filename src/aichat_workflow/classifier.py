"""Role classification for normalized workflow blocks.

The explicit ``interaction_type`` discriminator written by the agent side
is the primary signal. Marker substrings and tool-name matching are kept
as a fallback for records written before the discriminator existed.
"""

import re

from .core import Action, ClassifiedRole, InteractionType, WorkflowBlock

QUESTIONS_PATTERN = re.compile(r"<questions>.*?</questions>", re.DOTALL | re.IGNORECASE)
ANSWERS_PREFIX = "here are my answers"
APPROVAL_PROMPT = "I approve this plan. Please proceed with the implementation."
PLAN_EXIT_TOOL = "ExitPlanMode"
INTERRUPTED_MARKER = "⚠️ Stopped by user"


def has_questions(block: WorkflowBlock) -> bool:
    """True if the agent asked clarifying questions in this block."""
    if block.interaction_type == InteractionType.CLARIFYING_QUESTIONS.value:
        return True
    return any(
        m.type != "user" and QUESTIONS_PATTERN.search(m.content or "")
        for m in block.messages
    )


def is_answer_block(block: WorkflowBlock) -> bool:
    """True if the user prompt answers a previous round of questions."""
    prompt = (block.user_prompt or "").lstrip().lower()
    return prompt.startswith(ANSWERS_PREFIX)


def is_approval_block(block: WorkflowBlock) -> bool:
    """True if the user prompt is the canonical plan approval."""
    return (block.user_prompt or "").strip() == APPROVAL_PROMPT


def has_plan_waiting_approval(block: WorkflowBlock) -> bool:
    """True if a completed block ended with a plan the user has to approve.

    A ``plan_ready`` discriminator answers yes outright. Otherwise the grouped
    tool summary is scanned for the plan-exit tool, whatever the discriminator
    says.
    """
    if not block.is_complete:
        return False
    if block.interaction_type == InteractionType.PLAN_READY.value:
        return True
    return any(m.type == "tool" and PLAN_EXIT_TOOL in m.content for m in block.messages)


def was_interrupted(block: WorkflowBlock) -> bool:
    """True if the user stopped the agent while this block was running."""
    return any(
        m.type == "assistant" and INTERRUPTED_MARKER in m.content for m in block.messages
    )


def latest_actions(block: WorkflowBlock) -> dict[str, Action]:
    """Return the most recent action of each type.

    Later entries win timestamp ties, so an in-place status update appended
    after the original action replaces it.
    """
    latest: dict[str, Action] = {}
    for action in block.actions:
        current = latest.get(action.type)
        if current is None or action.timestamp >= current.timestamp:
            latest[action.type] = action
    return latest


def has_git_commit(block: WorkflowBlock) -> bool:
    return any(a.type == "git_commit" for a in block.actions)


def classify(block: WorkflowBlock) -> ClassifiedRole:
    """Resolve the role of a block.

    Order: answers, clarifying questions, plan ready, plan approval,
    checkpoint restore, then the block kind, then plain conversation.
    """
    if block.kind == "conversation":
        if is_answer_block(block):
            return ClassifiedRole.ANSWERS
        if has_questions(block):
            return ClassifiedRole.CLARIFYING_QUESTIONS
        if has_plan_waiting_approval(block):
            return ClassifiedRole.PLAN_READY
        if is_approval_block(block):
            return ClassifiedRole.PLAN_APPROVAL
        if any(a.type == "checkpoint_restore" for a in block.actions):
            return ClassifiedRole.CHECKPOINT_RESTORE
        return ClassifiedRole.CONVERSATION

    if block.kind == "deployment":
        return ClassifiedRole.DEPLOYMENT
    if block.kind == "initialization":
        return ClassifiedRole.INITIALIZATION
    if block.kind == "context_cleared":
        return ClassifiedRole.CONTEXT_CLEARED
    return ClassifiedRole.UNKNOWN
