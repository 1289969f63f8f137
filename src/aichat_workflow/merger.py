"""Plan-mode merging.

A plan-mode exchange spans several blocks: the agent asks clarifying
questions, the user answers, the agent presents a plan, the user approves
and the agent implements. These are stitched into one PlanUnit so the
exchange reads as a single step. Every other block becomes a unit of its
own.
"""

from .classifier import classify, has_git_commit, has_plan_waiting_approval
from .core import ClassifiedRole, PlanUnit, WorkflowBlock

APPROVE_WORD = "approve"


def continues_plan(block: WorkflowBlock) -> bool:
    """True if a block belongs to the preceding plan exchange."""
    prompt = (block.user_prompt or "").strip()
    return not prompt or APPROVE_WORD in prompt.lower()


def merge_plan_units(blocks: list[WorkflowBlock]) -> list[PlanUnit]:
    """Group an oldest-first block list into rendering units."""
    roles = [classify(b) for b in blocks]
    units: list[PlanUnit] = []
    i = 0

    while i < len(blocks):
        block, role = blocks[i], roles[i]
        unit = PlanUnit(head=block, role=role)
        i += 1

        if role == ClassifiedRole.CLARIFYING_QUESTIONS:
            if i < len(blocks) and roles[i] == ClassifiedRole.ANSWERS:
                unit.answers = blocks[i]
                i = _absorb(unit, blocks, i + 1)
            else:
                unit.waiting_for_input = True
        elif role == ClassifiedRole.PLAN_READY:
            i = _absorb(unit, blocks, i)

        unit.needs_approval = _needs_approval(unit)
        units.append(unit)

    return units


def _absorb(unit: PlanUnit, blocks: list[WorkflowBlock], start: int) -> int:
    """Absorb approval/continuation blocks from ``start``; return the next unread index."""
    i = start
    while i < len(blocks) and continues_plan(blocks[i]):
        follower = blocks[i]
        if unit.approval is None and APPROVE_WORD in (follower.user_prompt or "").lower():
            unit.approval = follower
        unit.followers.append(follower)
        i += 1
    return i


def _needs_approval(unit: PlanUnit) -> bool:
    """True if the unit's plan is complete and still waits for the user's decision."""
    if unit.approval is not None:
        return False
    planners = [unit.head] if unit.answers is None else [unit.head, unit.answers]
    if not any(has_plan_waiting_approval(b) for b in planners):
        return False
    return not any(has_git_commit(b) for b in unit.blocks)
