"""Result and persistence data structures produced by the regression engine."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from storyshot.models.tree import Node

MismatchKind = Literal[
    "TypeMismatch",
    "AttributeMissing",
    "AttributeAdded",
    "AttributeChanged",
    "ChildCountMismatch",
]
Verdict = Literal["passed", "failed", "recorded"]


def _json_safe(value: Any) -> Any:
    """Reduce a value to JSON types, falling back to repr for anything else."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return repr(value)


class ActionInvocation(BaseModel):
    """A single call to a stubbed callback during one render pass."""
    model_config = ConfigDict(frozen=True)

    label: str
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = Field(default_factory=dict)
    sequence: int

    @field_serializer("args", "kwargs", when_used="json")
    def serialize_arguments(self, value: Any) -> Any:
        # Callbacks may receive arbitrary objects such as UI events
        return _json_safe(value)


class DiffEntry(BaseModel):
    path: list[str]  # root type tag, then "li[2]" child steps and "@key" attribute steps
    kind: MismatchKind
    key: Optional[str] = None  # attribute name for attribute mismatches
    expected: Any = None
    actual: Any = None


class SnapshotEntry(BaseModel):
    component: str
    story: str
    tree: Node
    version: int = 1
    updated_at: str  # ISO timestamp


class StoryResult(BaseModel):
    """Verdict for one story in one run."""
    component: str
    story: str
    verdict: Verdict
    diff: list[DiffEntry] = Field(default_factory=list)
    actions: list[ActionInvocation] = Field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def key(self) -> str:
        return f"{self.component}/{self.story}"


class RunReport(BaseModel):
    run_id: str
    mode: str
    started_at: str
    completed_at: str = ""
    total: int = 0
    passed: int = 0
    failed: int = 0
    recorded: int = 0
    duration_seconds: float = 0.0
    results: list[StoryResult] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
