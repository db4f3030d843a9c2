"""Tests for the story registry and catalog loader."""

import importlib
import random
import sys

import pytest

from storyshot.catalog.loader import load_registry
from storyshot.catalog.registry import StoryRegistry
from storyshot.errors import CatalogError, DuplicateStory

from conftest import render_task


class TestStoryRegistry:
    """Tests for registration, ordering and duplicate rejection."""

    def test_register_creates_component(self, task_builder):
        registry = StoryRegistry()
        registry.register("Task", "default", render_task, task_builder.build({}))
        assert registry.component("Task") is not None
        assert len(registry) == 1

    def test_list_keeps_registration_order(self, task_registry):
        assert [s.name for s in task_registry.list()] == ["default", "pinned", "archived"]

    def test_list_order_across_components(self, task_builder):
        registry = StoryRegistry()
        fixture = task_builder.build({})
        registry.register("Task", "a", render_task, fixture)
        registry.register("TaskList", "b", render_task, fixture)
        registry.register("Task", "c", render_task, fixture)
        assert [s.key for s in registry.list()] == ["Task/a", "TaskList/b", "Task/c"]
        assert [c.name for c in registry.components()] == ["Task", "TaskList"]

    def test_duplicate_story_rejected(self, task_builder):
        registry = StoryRegistry()
        fixture = task_builder.build({})
        registry.register("Task", "default", render_task, fixture)

        with pytest.raises(DuplicateStory) as exc_info:
            registry.register("Task", "default", render_task, fixture)

        assert exc_info.value.component == "Task"
        assert len(registry) == 1

    def test_empty_names_rejected(self, task_builder):
        registry = StoryRegistry()
        with pytest.raises(CatalogError):
            registry.register("", "default", render_task, task_builder.build({}))
        with pytest.raises(CatalogError):
            registry.register("Task", "", render_task, task_builder.build({}))
        assert len(registry) == 0

    def test_same_story_name_in_other_component_allowed(self, task_builder):
        registry = StoryRegistry()
        fixture = task_builder.build({})
        registry.register("Task", "default", render_task, fixture)
        registry.register("TaskList", "default", render_task, fixture)
        assert len(registry) == 2

    def test_get(self, task_registry):
        assert task_registry.get("Task", "pinned").name == "pinned"
        assert task_registry.get("Task", "missing") is None
        assert task_registry.get("Nope", "default") is None

    def test_volatile_keys(self, task_builder):
        registry = StoryRegistry()
        registry.register("Task", "default", render_task, task_builder.build({}), volatile=["id"])
        registry.mark_volatile("Task", "updated_at")
        assert registry.component("Task").volatile_keys == {"id", "updated_at"}

    def test_decorator_registration(self, task_builder):
        registry = StoryRegistry()

        @registry.story("Task", "default", fixture=task_builder.build({}), actions=["onPinTask"])
        def default(task, callbacks):
            return render_task(task, callbacks)

        story = registry.get("Task", "default")
        assert story.render is default
        assert story.actions == ("onPinTask",)

    def test_fixture_factory_resolved_lazily(self, task_builder):
        registry = StoryRegistry()
        calls = []

        def factory(source):
            calls.append(source)
            return task_builder.build({}, source)

        story = registry.register("Task", "default", render_task, factory)
        assert calls == []
        source = random.Random(3)
        assert story.resolve_fixture(source)["title"] == "Test Task"
        assert calls == [source]


CATALOG_SOURCE = '''
from storyshot.catalog.registry import StoryRegistry
from storyshot.models.tree import element

catalog = StoryRegistry()
catalog.register("Badge", "default", lambda data, cb: element("badge"), lambda source: None)


def build_catalog():
    return catalog


not_a_registry = 3
'''


class TestLoadRegistry:
    """Tests for load_registry()."""

    @pytest.fixture
    def catalog_dir(self, tmp_path, monkeypatch):
        (tmp_path / "badge_catalog.py").write_text(CATALOG_SOURCE)
        monkeypatch.setattr(sys, "path", list(sys.path))
        monkeypatch.delitem(sys.modules, "badge_catalog", raising=False)
        importlib.invalidate_caches()
        return tmp_path

    def test_load_instance(self, catalog_dir):
        registry = load_registry("badge_catalog:catalog", search_path=catalog_dir)
        assert [s.key for s in registry.list()] == ["Badge/default"]

    def test_load_factory(self, catalog_dir):
        registry = load_registry("badge_catalog:build_catalog", search_path=catalog_dir)
        assert len(registry) == 1

    def test_bad_reference(self):
        with pytest.raises(CatalogError):
            load_registry("no_colon_here")

    def test_missing_module(self, catalog_dir):
        with pytest.raises(CatalogError):
            load_registry("does_not_exist_anywhere:catalog", search_path=catalog_dir)

    def test_missing_attribute(self, catalog_dir):
        with pytest.raises(CatalogError):
            load_registry("badge_catalog:missing", search_path=catalog_dir)

    def test_wrong_type(self, catalog_dir):
        with pytest.raises(CatalogError):
            load_registry("badge_catalog:not_a_registry", search_path=catalog_dir)

    def test_error_while_importing_becomes_catalog_error(self, catalog_dir, monkeypatch):
        (catalog_dir / "broken_badge_catalog.py").write_text(
            "raise RuntimeError('colour table missing')\n"
        )
        monkeypatch.delitem(sys.modules, "broken_badge_catalog", raising=False)

        with pytest.raises(CatalogError, match="RuntimeError: colour table missing"):
            load_registry("broken_badge_catalog:catalog", search_path=catalog_dir)

    def test_error_in_factory_becomes_catalog_error(self, catalog_dir, monkeypatch):
        (catalog_dir / "failing_factory_catalog.py").write_text(
            "def build_catalog():\n    raise ValueError('no badges')\n"
        )
        monkeypatch.delitem(sys.modules, "failing_factory_catalog", raising=False)

        with pytest.raises(CatalogError, match="no badges"):
            load_registry("failing_factory_catalog:build_catalog", search_path=catalog_dir)

    def test_duplicate_story_propagates_unchanged(self, catalog_dir, monkeypatch):
        (catalog_dir / "dup_badge_catalog.py").write_text(CATALOG_SOURCE + (
            'catalog.register("Badge", "default", lambda data, cb: element("badge"), lambda source: None)\n'
        ))
        monkeypatch.delitem(sys.modules, "dup_badge_catalog", raising=False)

        with pytest.raises(DuplicateStory):
            load_registry("dup_badge_catalog:catalog", search_path=catalog_dir)
