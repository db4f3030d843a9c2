"""Structural diff between a golden description tree and a fresh render."""

from __future__ import annotations

from typing import Any, Iterable

from storyshot.models.story import DiffEntry
from storyshot.models.tree import Node

_ABSENT = "<absent>"


def _scalar_equal(a: Any, b: Any) -> bool:
    # False == 0 in Python; a flag turning into a number is still a change
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def _describe(value: Any) -> Any:
    if isinstance(value, Node):
        return f"<{value.type}>"
    return value


def compare(golden: Node, candidate: Node, ignore: Iterable[str] = ()) -> list[DiffEntry]:
    """Compare two trees and return every mismatch, addressed by path from the root.

    An empty list means the trees are structurally equal. Attribute keys in
    ``ignore`` are skipped at every depth.
    """
    diff: list[DiffEntry] = []
    _compare_node(golden, candidate, [golden.type], frozenset(ignore), diff)
    return diff


def _compare_node(
    golden: Node, candidate: Node, path: list[str], ignore: frozenset[str], diff: list[DiffEntry],
) -> None:
    if golden.type != candidate.type:
        diff.append(DiffEntry(
            path=path, kind="TypeMismatch",
            expected=golden.type, actual=candidate.type,
        ))
        return

    for key, expected in golden.attrs.items():
        if key in ignore:
            continue
        if key not in candidate.attrs:
            diff.append(DiffEntry(
                path=path, kind="AttributeMissing", key=key,
                expected=_describe(expected), actual=_ABSENT,
            ))
            continue
        actual = candidate.attrs[key]
        if isinstance(expected, Node) and isinstance(actual, Node):
            _compare_node(expected, actual, path + [f"@{key}"], ignore, diff)
        elif isinstance(expected, Node) or isinstance(actual, Node) or not _scalar_equal(expected, actual):
            diff.append(DiffEntry(
                path=path, kind="AttributeChanged", key=key,
                expected=_describe(expected), actual=_describe(actual),
            ))

    for key, actual in candidate.attrs.items():
        if key in ignore or key in golden.attrs:
            continue
        diff.append(DiffEntry(
            path=path, kind="AttributeAdded", key=key,
            expected=_ABSENT, actual=_describe(actual),
        ))

    if len(golden.children) != len(candidate.children):
        diff.append(DiffEntry(
            path=path, kind="ChildCountMismatch",
            expected=len(golden.children), actual=len(candidate.children),
        ))
    # Compare the common prefix even when counts differ
    for index, (g, c) in enumerate(zip(golden.children, candidate.children)):
        _compare_node(g, c, path + [f"{g.type}[{index}]"], ignore, diff)


def format_diff(diff: list[DiffEntry]) -> list[str]:
    """One human-readable line per mismatch."""
    lines = []
    for entry in diff:
        where = "/".join(entry.path)
        if entry.key is not None:
            where = f"{where}.{entry.key}"
        lines.append(f"{entry.kind} at {where}: {entry.expected!r} -> {entry.actual!r}")
    return lines


class DiffEngine:
    """Comparator bound to a fixed set of ignored (volatile) attribute keys."""

    def __init__(self, ignore: Iterable[str] = ()):
        self.ignore = frozenset(ignore)

    def compare(self, golden: Node, candidate: Node) -> list[DiffEntry]:
        return compare(golden, candidate, self.ignore)
