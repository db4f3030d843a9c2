"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from storyshot.catalog.actions import ActionRecorder
from storyshot.catalog.fixtures import FieldSpec, FixtureBuilder
from storyshot.catalog.registry import StoryRegistry
from storyshot.models.config import RunnerConfig
from storyshot.models.tree import Node, element
from storyshot.runner import TestRunner
from storyshot.snapshot.store import SnapshotStore


# ============================================================================
# Task component
# ============================================================================

TASK_SCHEMA = {
    "id": FieldSpec(kind="str", volatile=True),
    "title": FieldSpec(kind="str"),
    "state": FieldSpec(kind="str"),
}

TASK_BASE = {
    "title": "Test Task",
    "state": "TASK_INBOX",
}


def render_task(task: dict, callbacks: dict) -> Node:
    """Render function for the Task list item."""
    archived = task["state"] == "TASK_ARCHIVED"
    children = [
        element("input", {"type": "checkbox", "checked": archived, "disabled": True}),
        element("span", {"class": "title", "text": task["title"]}),
    ]
    if not archived:
        children.append(element("button", {"class": "pin-button", "aria-label": "pinTask"}))
    return element("div", {"class": f"list-item {task['state']}", "id": task["id"]}, *children)


def render_task_without_title_class(task: dict, callbacks: dict) -> Node:
    """Same as render_task, but the title span loses its class attribute."""
    tree = render_task(task, callbacks)
    del tree.children[1].attrs["class"]
    return tree


@pytest.fixture
def task_builder() -> FixtureBuilder:
    return FixtureBuilder.for_tests(TASK_SCHEMA, TASK_BASE, seed=42)


@pytest.fixture
def task_registry(task_builder: FixtureBuilder) -> StoryRegistry:
    """Task component with default, pinned and archived stories."""
    registry = StoryRegistry()
    registry.mark_volatile("Task", "id")
    registry.register(
        "Task", "default", render_task, task_builder.build({}),
        actions=("onPinTask", "onArchiveTask"),
    )
    registry.register(
        "Task", "pinned", render_task, task_builder.build({"state": "TASK_PINNED"}),
        actions=("onPinTask", "onArchiveTask"),
    )
    registry.register(
        "Task", "archived", render_task, task_builder.build({"state": "TASK_ARCHIVED"}),
        actions=("onPinTask", "onArchiveTask"),
    )
    return registry


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    return SnapshotStore(tmp_path / "snapshots")


@pytest.fixture
def recorder() -> ActionRecorder:
    return ActionRecorder()


@pytest.fixture
def make_runner(task_registry: StoryRegistry, store: SnapshotStore):
    """Factory building a runner over the Task catalog in the given mode."""

    def _make(mode: str = "check", registry: StoryRegistry | None = None, **overrides) -> TestRunner:
        config = RunnerConfig(mode=mode, **overrides)
        return TestRunner(registry or task_registry, store, config)

    return _make


@pytest.fixture
def box_tree() -> Node:
    return element("box", {"checked": False})
