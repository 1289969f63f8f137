"""Tests for plan-mode merging."""

from conftest import T0, make_record

from aichat_workflow.classifier import APPROVAL_PROMPT
from aichat_workflow.core import ClassifiedRole
from aichat_workflow.merger import merge_plan_units
from aichat_workflow.normalizer import normalize_blocks


def _questions(block_id="q", **kwargs):
    return make_record(block_id, prompt="Add search", messages=[
        {"type": "text", "content": "<questions>Full text?</questions>", "timestamp": T0},
    ], **kwargs)


class TestPlanMerge:
    def test_merge_boundary(self, plan_records):
        units = merge_plan_units(normalize_blocks(plan_records))
        assert len(units) == 2

        plan = units[0]
        assert plan.role == ClassifiedRole.CLARIFYING_QUESTIONS
        assert [b.id for b in plan.blocks] == ["b-questions", "b-answers", "b-approval", "b-implementation"]
        assert plan.answers.id == "b-answers"
        assert plan.approval.id == "b-approval"
        assert plan.needs_approval is False

        assert units[1].head.id == "b-unrelated"
        assert units[1].role == ClassifiedRole.CONVERSATION

    def test_approval_block_never_standalone(self, plan_records):
        units = merge_plan_units(normalize_blocks(plan_records))
        assert all(u.head.id != "b-approval" for u in units)

    def test_waiting_for_input_without_answers(self):
        records = [_questions(index=0), make_record("other", prompt="Never mind, fix the logo", index=1)]
        units = merge_plan_units(normalize_blocks(records))
        assert len(units) == 2
        assert units[0].waiting_for_input is True
        assert units[0].followers == []
        assert units[1].head.id == "other"

    def test_needs_approval_after_answers_with_plan(self, plan_records):
        units = merge_plan_units(normalize_blocks(plan_records[:2]))
        assert len(units) == 1
        assert units[0].needs_approval is True

    def test_incomplete_plan_does_not_need_approval(self, plan_records):
        records = list(plan_records[:2])
        records[1].is_complete = False
        units = merge_plan_units(normalize_blocks(records))
        assert units[0].needs_approval is False

    def test_git_commit_suppresses_approval_prompt(self):
        records = [
            make_record("plan", prompt="Refactor routing", interaction_type="plan_ready",
                        actions=[{"type": "git_commit", "status": "success", "timestamp": T0}]),
        ]
        units = merge_plan_units(normalize_blocks(records))
        assert units[0].role == ClassifiedRole.PLAN_READY
        assert units[0].needs_approval is False

    def test_plan_ready_head_absorbs_approval(self):
        records = [
            make_record("plan", prompt="Refactor routing", interaction_type="plan_ready", index=0),
            make_record("ok", prompt=APPROVAL_PROMPT, index=1),
            make_record("next", prompt="Now add tests", index=2),
        ]
        units = merge_plan_units(normalize_blocks(records))
        assert [u.head.id for u in units] == ["plan", "next"]
        assert units[0].approval.id == "ok"
        assert units[0].needs_approval is False

    def test_plain_blocks_are_single_units(self):
        records = [make_record(f"b{i}", prompt=f"Request {i}", index=i) for i in range(3)]
        units = merge_plan_units(normalize_blocks(records))
        assert [u.blocks[0].id for u in units] == ["b0", "b1", "b2"]
        assert all(len(u.blocks) == 1 for u in units)

    def test_orphan_approval_stays_visible(self):
        units = merge_plan_units(normalize_blocks([make_record("ok", prompt=APPROVAL_PROMPT)]))
        assert units[0].role == ClassifiedRole.PLAN_APPROVAL

    def test_non_string_message_content_does_not_break_merge(self):
        records = [
            make_record("b0", messages=[{"type": "text", "content": {"text": "hi"}, "timestamp": T0}]),
            make_record("b1", prompt="Next", index=1),
        ]
        units = merge_plan_units(normalize_blocks(records))
        assert [u.head.id for u in units] == ["b0", "b1"]
        assert units[0].role == ClassifiedRole.CONVERSATION
