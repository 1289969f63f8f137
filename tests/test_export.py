"""Tests for export functionality."""

import json

import pytest
from conftest import T0, make_record

from aichat_workflow.export import block_to_dict, blocks_to_json, blocks_to_markdown, unit_to_dict
from aichat_workflow.merger import merge_plan_units
from aichat_workflow.normalizer import normalize_blocks


@pytest.fixture
def sample_blocks():
    return normalize_blocks([
        make_record(
            "b1", prompt="Fix the login bug in auth.ts", index=0,
            messages=[{"type": "text", "content": "Fixed it:\n\n```typescript\nconst ok = true;\n```",
                       "timestamp": T0 + 30_000}],
            tools=[{"toolName": "Edit"}, {"toolName": "Read"}],
            commit_hash="abc1234def", files_changed=1,
            actions=[{"type": "git_commit", "status": "success", "timestamp": T0 + 40_000,
                      "message": "Committed 1 file"}],
        ),
        make_record(
            "b2", prompt="Set up project", index=1,
            actions={"type": "initialization", "templateName": "Vite",
                     "stages": [{"label": "Copying template", "isComplete": True}]},
        ),
    ])


class TestMarkdownExport:
    def test_includes_header(self, sample_blocks):
        result = blocks_to_markdown("proj-1", sample_blocks)
        assert "# Workflow history: proj-1" in result
        assert "**Blocks:** 2" in result

    def test_includes_prompts_and_roles(self, sample_blocks):
        result = blocks_to_markdown("proj-1", sample_blocks)
        assert "## Fix the login bug in auth.ts (conversation)" in result
        assert "## Set up project (initialization)" in result

    def test_includes_messages_and_tools(self, sample_blocks):
        result = blocks_to_markdown("proj-1", sample_blocks)
        assert "### Assistant (2025-01-20 10:00:30)" in result
        assert "```typescript" in result
        assert "1x Edit, 1x Read" in result

    def test_includes_checkpoint_actions_and_stages(self, sample_blocks):
        result = blocks_to_markdown("proj-1", sample_blocks)
        assert "**Checkpoint:** abc1234def" in result
        assert "- `git_commit` success: Committed 1 file" in result
        assert "- [x] Copying template" in result

    def test_empty(self):
        result = blocks_to_markdown("proj-1", [])
        assert "**Blocks:** 0" in result


class TestJsonExport:
    def test_structure(self, sample_blocks):
        data = json.loads(blocks_to_json("proj-1", sample_blocks))
        assert data["project_id"] == "proj-1"
        assert [b["id"] for b in data["blocks"]] == ["b1", "b2"]

    def test_block_fields(self, sample_blocks):
        block = block_to_dict(sample_blocks[0])
        assert block["role"] == "conversation"
        assert block["commit_hash"] == "abc1234def"
        assert block["actions"][0]["type"] == "git_commit"
        assert block["messages"][0]["type"] == "user"
        assert block["messages"][0]["timestamp"] == "2025-01-20T10:00:00+00:00"
        assert block["stages"] is None

    def test_initialization_fields(self, sample_blocks):
        block = block_to_dict(sample_blocks[1])
        assert block["kind"] == "initialization"
        assert block["template_name"] == "Vite"
        assert block["stages"][0]["label"] == "Copying template"

    def test_unit_to_dict(self, plan_records):
        unit = merge_plan_units(normalize_blocks(plan_records))[0]
        data = unit_to_dict(unit)
        assert data["role"] == "clarifying-questions"
        assert data["head"] == "b-questions"
        assert len(data["blocks"]) == 4
        json.dumps(data)
