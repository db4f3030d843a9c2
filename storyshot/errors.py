"""Error taxonomy for the story catalog and regression engine."""

from __future__ import annotations

from pathlib import Path


class StoryshotError(Exception):
    """Base class for all engine errors."""


class CatalogError(StoryshotError):
    """The story catalog could not be built. Fatal to the whole run."""


class DuplicateStory(CatalogError):
    def __init__(self, component: str, story: str):
        self.component = component
        self.story = story
        super().__init__(f"Story '{story}' is already registered for component '{component}'")


class SchemaViolation(StoryshotError):
    """A fixture field is unknown to the schema or has the wrong kind."""

    def __init__(self, key: str, reason: str = "not in fixture schema"):
        self.key = key
        super().__init__(f"Fixture field '{key}': {reason}")


class AlreadyRecorded(StoryshotError):
    def __init__(self, component: str, story: str):
        self.component = component
        self.story = story
        super().__init__(
            f"Golden snapshot for {component}/{story} already exists; "
            "use update mode to accept an intentional change"
        )


class SnapshotCorrupt(StoryshotError):
    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Unreadable snapshot {path}: {cause}")


class RenderFailure(StoryshotError):
    """The story's render function raised or returned something that is not a tree."""

    def __init__(self, component: str, story: str, cause: Exception):
        self.component = component
        self.story = story
        self.cause = cause
        super().__init__(f"Render of {component}/{story} failed: {type(cause).__name__}: {cause}")


class NondeterministicRender(StoryshotError):
    def __init__(self, component: str, story: str, diff: list):
        self.component = component
        self.story = story
        self.diff = diff
        super().__init__(
            f"Render of {component}/{story} is not deterministic "
            f"({len(diff)} difference(s) between two passes with the same fixture)"
        )
