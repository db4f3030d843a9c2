"""Fixture builder — overlays story overrides onto a schema-checked base record."""

from __future__ import annotations

import copy
import logging
import random
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from storyshot.errors import SchemaViolation
from storyshot.models.tree import Node

logger = logging.getLogger(__name__)

_KIND_TYPES: dict[str, tuple[type, ...]] = {
    "str": (str,),
    "int": (int,),
    "float": (int, float),
    "bool": (bool,),
    "tree": (Node,),
}


def random_id(source: random.Random) -> str:
    """Default generator for volatile identity fields: 8 hex digits."""
    return f"{source.getrandbits(32):08x}"


@dataclass(frozen=True)
class FieldSpec:
    kind: str = "any"  # str, int, float, bool, tree, any
    volatile: bool = False
    generator: Optional[Callable[[random.Random], Any]] = None

    def accepts(self, value: Any) -> bool:
        if value is None or self.kind == "any":
            return True
        if self.kind not in _KIND_TYPES:
            raise ValueError(f"Unknown field kind '{self.kind}'")
        # bool is an int subclass; only the bool kind accepts it
        if isinstance(value, bool) and self.kind != "bool":
            return False
        return isinstance(value, _KIND_TYPES[self.kind])


class Fixture(Mapping):
    """Resolved, read-only input record for one story."""

    def __init__(self, values: dict[str, Any], pinned: frozenset[str] = frozenset()):
        self._values = values
        self.pinned = pinned  # fields set explicitly by the story's overrides

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Fixture({self._values!r})"

    def resolve(self) -> dict[str, Any]:
        """A fresh copy a render pass may freely mutate."""
        return copy.deepcopy(self._values)


class FixtureBuilder:
    """Builds fixtures as ``base`` overlaid with per-story overrides."""

    def __init__(
        self,
        schema: Mapping[str, FieldSpec],
        base: Mapping[str, Any],
        source: random.Random | None = None,
    ):
        self.schema = dict(schema)
        self.base = dict(base)
        # SystemRandom when exploring interactively; tests inject a seeded source
        self.source = source if source is not None else random.SystemRandom()

        for key, value in self.base.items():
            self._check(key, value)
        for key, spec in self.schema.items():
            if key not in self.base and not spec.volatile:
                raise SchemaViolation(key, "missing from base record")

    @classmethod
    def for_tests(
        cls, schema: Mapping[str, FieldSpec], base: Mapping[str, Any], seed: int = 0,
    ) -> "FixtureBuilder":
        """Builder whose volatile fields come from a seeded, reproducible source."""
        return cls(schema, base, source=random.Random(seed))

    def _check(self, key: str, value: Any) -> None:
        spec = self.schema.get(key)
        if spec is None:
            raise SchemaViolation(key)
        if not spec.accepts(value):
            raise SchemaViolation(
                key, f"expected {spec.kind}, got {type(value).__name__}"
            )

    def build(
        self, overrides: Mapping[str, Any] | None = None, source: random.Random | None = None,
    ) -> Fixture:
        """Return ``base`` with ``overrides`` applied on top.

        Volatile fields not overridden are drawn from ``source`` when given,
        otherwise from the builder's own source.
        """
        source = source if source is not None else self.source
        overrides = dict(overrides or {})
        for key, value in overrides.items():
            self._check(key, value)

        values: dict[str, Any] = {}
        for key, spec in self.schema.items():
            if key in overrides:
                values[key] = overrides[key]
            elif spec.volatile:
                generator = spec.generator or random_id
                values[key] = generator(source)
            else:
                values[key] = copy.deepcopy(self.base[key])

        logger.debug("Built fixture with overrides %s", sorted(overrides))
        return Fixture(values, pinned=frozenset(overrides))

    def defer(self, overrides: Mapping[str, Any] | None = None) -> Callable[[random.Random], Fixture]:
        """Fixture factory built when the story runs, from the runner's seeded source."""
        overrides = dict(overrides or {})

        def factory(source: random.Random) -> Fixture:
            return self.build(overrides, source)

        return factory
