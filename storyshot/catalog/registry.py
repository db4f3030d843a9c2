"""Story registry — the ordered catalog of components and their stories."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Iterable, Union

from storyshot.catalog.fixtures import Fixture
from storyshot.errors import CatalogError, DuplicateStory
from storyshot.models.tree import Renderer

logger = logging.getLogger(__name__)

# A fixture, or a factory building one from the runner's seeded source
FixtureSource = Union[Fixture, Callable[[random.Random], Fixture]]


@dataclass(frozen=True)
class Story:
    component: str
    name: str
    render: Renderer
    fixture: FixtureSource
    actions: tuple[str, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.component}/{self.name}"

    def resolve_fixture(self, source: random.Random | None = None) -> Fixture:
        """Return the story's fixture, building it first when given a factory."""
        if isinstance(self.fixture, Fixture):
            return self.fixture
        return self.fixture(source if source is not None else random.Random())


@dataclass
class Component:
    name: str
    stories: list[Story] = field(default_factory=list)
    volatile_keys: set[str] = field(default_factory=set)


class StoryRegistry:
    """Associates component names with ordered, uniquely named stories.

    Pass an instance to the runner rather than relying on a module global, so
    several catalogs can coexist.
    """

    def __init__(self) -> None:
        self._components: dict[str, Component] = {}
        self._stories: list[Story] = []

    def register(
        self,
        component: str,
        story: str,
        render: Renderer,
        fixture: FixtureSource,
        actions: Iterable[str] = (),
        volatile: Iterable[str] = (),
    ) -> Story:
        """Add a story. Components are created on their first story."""
        if not component or not story:
            raise CatalogError("Component and story names must not be empty")
        existing = self._components.get(component)
        if existing and any(s.name == story for s in existing.stories):
            raise DuplicateStory(component, story)

        entry = Story(
            component=component, name=story, render=render,
            fixture=fixture, actions=tuple(actions),
        )
        comp = self._components.setdefault(component, Component(name=component))
        comp.stories.append(entry)
        self._stories.append(entry)
        comp.volatile_keys.update(volatile)
        logger.debug("Registered story %s", entry.key)
        return entry

    def story(
        self,
        component: str,
        name: str,
        fixture: FixtureSource,
        actions: Iterable[str] = (),
        volatile: Iterable[str] = (),
    ) -> Callable[[Renderer], Renderer]:
        """Decorator form of :meth:`register`."""

        def decorator(render: Renderer) -> Renderer:
            self.register(component, name, render, fixture, actions=actions, volatile=volatile)
            return render

        return decorator

    def mark_volatile(self, component: str, *keys: str) -> None:
        """Declare attribute keys excluded from snapshot comparison for a component."""
        comp = self._components.setdefault(component, Component(name=component))
        comp.volatile_keys.update(keys)

    def get(self, component: str, story: str) -> Story | None:
        comp = self._components.get(component)
        if comp is None:
            return None
        for s in comp.stories:
            if s.name == story:
                return s
        return None

    def component(self, name: str) -> Component | None:
        return self._components.get(name)

    def components(self) -> list[Component]:
        return list(self._components.values())

    def list(self) -> list[Story]:
        """All stories in registration order."""
        return list(self._stories)

    def __len__(self) -> int:
        return len(self._stories)
