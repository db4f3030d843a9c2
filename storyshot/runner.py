"""Renders every registered story and checks it against its golden snapshot."""

from __future__ import annotations

import asyncio
import logging
import random
import time
import uuid
from typing import Callable, Iterable

from pydantic import ValidationError

from storyshot.catalog.actions import ActionRecorder
from storyshot.catalog.fixtures import Fixture
from storyshot.catalog.registry import Story, StoryRegistry
from storyshot.errors import (
    AlreadyRecorded,
    NondeterministicRender,
    RenderFailure,
    SchemaViolation,
    SnapshotCorrupt,
)
from storyshot.models.config import RunnerConfig
from storyshot.models.story import ActionInvocation, RunReport, StoryResult
from storyshot.models.tree import Node
from storyshot.snapshot.diff import DiffEngine
from storyshot.snapshot.store import SnapshotStore

logger = logging.getLogger(__name__)

# Errors that fail a single story without aborting the run
STORY_ERRORS = (
    SchemaViolation, RenderFailure, NondeterministicRender, AlreadyRecorded, SnapshotCorrupt,
)


class TestRunner:
    """Drives each story through Pending -> Rendered -> passed | failed | recorded.

    Every selected story is processed regardless of earlier failures. With
    ``max_workers > 1`` components run concurrently, each worker owning its
    own ActionRecorder and SnapshotStore handle; stories of one component
    always run in order on one worker.
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        registry: StoryRegistry,
        store: SnapshotStore,
        config: RunnerConfig | None = None,
        recorder_factory: Callable[[], ActionRecorder] = ActionRecorder,
    ):
        self.registry = registry
        self.store = store
        self.config = config or RunnerConfig()
        self.recorder_factory = recorder_factory

    @property
    def mode(self) -> str:
        return self.config.mode

    def run(
        self,
        components: Iterable[str] | None = None,
        stories: Iterable[str] | None = None,
    ) -> RunReport:
        """Run the selected stories (all by default) and return the aggregated report."""
        selected = self._select(components, stories)
        run_id = f"run_{uuid.uuid4().hex[:8]}"
        started_at = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        start = time.time()
        logger.info("Starting %s run %s (%d stories)", self.mode, run_id, len(selected))

        if self.config.max_workers > 1 and len(selected) > 1:
            results = asyncio.run(self._run_parallel(selected))
        else:
            results = self._run_sequential(selected, self.store)

        report = RunReport(
            run_id=run_id,
            mode=self.mode,
            started_at=started_at,
            completed_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            total=len(results),
            passed=sum(1 for r in results if r.verdict == "passed"),
            failed=sum(1 for r in results if r.verdict == "failed"),
            recorded=sum(1 for r in results if r.verdict == "recorded"),
            duration_seconds=round(time.time() - start, 3),
            results=results,
        )
        logger.info("Run %s complete: %d passed, %d failed, %d recorded in %.2fs",
                    run_id, report.passed, report.failed, report.recorded,
                    report.duration_seconds)
        return report

    def _select(self, components: Iterable[str] | None, stories: Iterable[str] | None) -> list[Story]:
        wanted_components = set(components) if components else None
        wanted_stories = set(stories) if stories else None
        selected = []
        for story in self.registry.list():
            if wanted_components is not None and story.component not in wanted_components:
                continue
            if wanted_stories is not None and story.name not in wanted_stories:
                continue
            selected.append(story)
        return selected

    def _run_sequential(self, stories: list[Story], store: SnapshotStore) -> list[StoryResult]:
        recorder = self.recorder_factory()
        return [self.run_story(story, recorder, store) for story in stories]

    async def _run_parallel(self, stories: list[Story]) -> list[StoryResult]:
        semaphore = asyncio.Semaphore(self.config.max_workers)
        groups: dict[str, list[Story]] = {}
        for story in stories:
            groups.setdefault(story.component, []).append(story)

        async def _run_group(group: list[Story]) -> list[StoryResult]:
            async with semaphore:
                logger.debug("Worker starting component %s (%d stories)",
                             group[0].component, len(group))
                store = SnapshotStore(self.store.root)
                return await asyncio.to_thread(self._run_sequential, group, store)

        batches = await asyncio.gather(*(_run_group(g) for g in groups.values()))
        # Display keys can collide ("A/B", "c") vs ("A", "B/c"); match on the pair
        by_key = {(r.component, r.story): r for batch in batches for r in batch}
        return [by_key[(s.component, s.name)] for s in stories]

    def run_story(
        self, story: Story, recorder: ActionRecorder, store: SnapshotStore | None = None,
    ) -> StoryResult:
        """Render one story and decide its verdict."""
        store = store or self.store
        start = time.time()
        actions: list[ActionInvocation] = []
        try:
            fixture = story.resolve_fixture(self._fixture_source(story))
            tree, actions = self._render(story, fixture, recorder)
            engine = DiffEngine(self._ignored_keys(story, fixture))
            if self.config.verify_determinism:
                second, _ = self._render(story, fixture, recorder)
                drift = engine.compare(tree, second)
                if drift:
                    raise NondeterministicRender(story.component, story.name, drift)
            result = self._judge(story, tree, engine, store)
        except NondeterministicRender as e:
            result = StoryResult(
                component=story.component, story=story.name,
                verdict="failed", diff=e.diff, error=str(e),
            )
        except STORY_ERRORS as e:
            result = StoryResult(
                component=story.component, story=story.name,
                verdict="failed", error=str(e),
            )

        result.actions = actions
        result.duration_seconds = round(time.time() - start, 4)
        logger.debug("[%s] %s", result.verdict, story.key)
        return result

    def _render(
        self, story: Story, fixture: Fixture, recorder: ActionRecorder,
    ) -> tuple[Node, list[ActionInvocation]]:
        """One render pass; the recorder log is drained whether or not it succeeds."""
        callbacks = recorder.stubs_for(story)
        try:
            output = story.render(fixture.resolve(), callbacks)
        except Exception as e:
            recorder.drain()
            raise RenderFailure(story.component, story.name, e) from e
        actions = recorder.drain()

        if isinstance(output, dict):
            try:
                output = Node.model_validate(output)
            except ValidationError as e:
                raise RenderFailure(story.component, story.name, e) from e
        if not isinstance(output, Node):
            raise RenderFailure(
                story.component, story.name,
                TypeError(f"render returned {type(output).__name__}, expected a Node"),
            )
        return output, actions

    def _fixture_source(self, story: Story) -> random.Random:
        """Seeded per story so volatile values repeat across runs and workers."""
        return random.Random(f"{self.config.seed}:{story.component}:{story.name}")

    def _ignored_keys(self, story: Story, fixture: Fixture) -> frozenset[str]:
        """Volatile keys of the component, minus any the story pinned explicitly."""
        component = self.registry.component(story.component)
        volatile = component.volatile_keys if component else set()
        return frozenset(volatile - fixture.pinned)

    def _judge(
        self, story: Story, tree: Node, engine: DiffEngine, store: SnapshotStore,
    ) -> StoryResult:
        component, name = story.component, story.name

        try:
            entry = store.get(component, name)
        except SnapshotCorrupt:
            if self.mode != "update":
                raise
            entry = None

        if entry is None:
            if self.mode == "check":
                return StoryResult(
                    component=component, story=name, verdict="failed",
                    error=f"No golden snapshot for {story.key}; run in record mode to create it",
                )
            if self.mode == "record":
                store.record(component, name, tree)
            else:
                store.update(component, name, tree)
            return StoryResult(component=component, story=name, verdict="recorded")

        diff = engine.compare(entry.tree, tree)
        if self.mode == "update":
            # Every golden is rewritten; the diff shows what changed, if anything
            store.update(component, name, tree)
            return StoryResult(component=component, story=name, verdict="recorded", diff=diff)
        if not diff:
            return StoryResult(component=component, story=name, verdict="passed")
        return StoryResult(component=component, story=name, verdict="failed", diff=diff)
