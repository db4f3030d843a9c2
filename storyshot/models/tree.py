"""Description tree: the canonical, framework-independent output of a render pass."""

from __future__ import annotations

from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, Field, FiniteFloat

# NaN never equals itself, so non-finite floats are rejected
Scalar = Optional[Union[bool, int, FiniteFloat, str]]


class Node(BaseModel):
    """One node of a description tree.

    Attribute order is insertion order and is preserved through JSON
    serialization, so golden documents read the way the render built them.
    """

    type: str
    attrs: dict[str, Union[Node, Scalar]] = Field(default_factory=dict)
    children: list[Node] = Field(default_factory=list)

    def find(self, type_: str) -> list[Node]:
        """Return every descendant (including self) with the given type tag."""
        found = [self] if self.type == type_ else []
        for child in self.children:
            found.extend(child.find(type_))
        return found


Node.model_rebuild()


def element(type_: str, attrs: dict[str, Any] | None = None, *children: Node) -> Node:
    """Shorthand used by render functions to build a node."""
    return Node(type=type_, attrs=dict(attrs or {}), children=list(children))


# render(fixture_input, callbacks) -> Node
Renderer = Callable[[dict[str, Any], dict[str, Callable[..., None]]], Node]
