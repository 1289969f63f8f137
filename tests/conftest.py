"""Shared test fixtures for aichat-workflow."""

import json
from datetime import datetime, timezone

import pytest

from aichat_workflow.backends.memory import MemoryHistoryStore
from aichat_workflow.backends.sqlite_store import SQLiteHistoryStore
from aichat_workflow.classifier import APPROVAL_PROMPT
from aichat_workflow.core import RawBlockRecord

T0 = int(datetime(2025, 1, 20, 10, 0, 0, tzinfo=timezone.utc).timestamp() * 1000)


def make_record(block_id, project_id="proj-1", prompt="Build a landing page", *,
                messages=None, tools=None, actions=None, complete=True, index=0,
                created_at=None, **extra):
    """Build a RawBlockRecord with JSON-encoded sub-documents."""
    return RawBlockRecord(
        id=block_id,
        project_id=project_id,
        user_prompt=prompt,
        claude_messages=json.dumps(messages) if messages is not None else None,
        tool_executions=json.dumps(tools) if tools is not None else None,
        actions=json.dumps(actions) if actions is not None else None,
        is_complete=complete,
        block_index=index,
        created_at=created_at if created_at is not None else T0 + index * 60_000,
        **extra,
    )


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now=T0 / 1000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeScheduler:
    """Records scheduled keys instead of running asyncio tasks."""

    def __init__(self):
        self.callbacks = {}
        self.schedule_calls = 0

    def schedule(self, key, interval, callback):
        self.schedule_calls += 1
        if key in self.callbacks:
            return False
        self.callbacks[key] = callback
        return True

    def cancel(self, key):
        self.callbacks.pop(key, None)

    def cancel_all(self):
        self.callbacks.clear()

    def keys(self):
        return set(self.callbacks)

    def fire(self, key):
        self.callbacks[key]()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def plan_records():
    """A plan-mode exchange followed by an unrelated request.

    questions -> answers -> approval -> implementation -> unrelated prompt
    """
    return [
        make_record(
            "b-questions", prompt="Add user accounts", index=0,
            messages=[{"type": "text", "content": "Before I start:\n<questions>\n1. OAuth or email?\n</questions>",
                       "timestamp": T0 + 1000}],
        ),
        make_record(
            "b-answers", prompt="Here are my answers:\n1. Email", index=1,
            messages=[{"type": "text", "content": "Here's the plan.", "timestamp": T0 + 61_000}],
            tools=[{"toolName": "Read"}, {"toolName": "ExitPlanMode"}],
            interaction_type="plan_ready",
        ),
        make_record(
            "b-approval", prompt=APPROVAL_PROMPT, index=2,
            messages=[{"type": "text", "content": "Implementing now.", "timestamp": T0 + 121_000}],
            tools=[{"toolName": "Write"}],
            actions=[{"type": "git_commit", "status": "success", "timestamp": T0 + 150_000,
                      "data": {"commitHash": "abc1234def"}}],
        ),
        make_record(
            "b-implementation", prompt="", index=3,
            messages=[{"type": "text", "content": "Wired up the signup form.", "timestamp": T0 + 181_000}],
        ),
        make_record("b-unrelated", prompt="Change the header color to blue", index=4),
    ]


@pytest.fixture
def memory_store():
    return MemoryHistoryStore()


@pytest.fixture
def sqlite_store(tmp_path):
    """A SQLite history store with 45 blocks for proj-1 and 2 for proj-2."""
    store = SQLiteHistoryStore(tmp_path / "chat_history.db")
    store.create_schema()
    for i in range(45):
        store.save_block(make_record(f"p1-{i:02d}", prompt=f"Request {i}", index=i))
    for i in range(2):
        store.save_block(make_record(f"p2-{i}", project_id="proj-2", prompt=f"Other {i}", index=i))
    return store
