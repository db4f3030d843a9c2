"""Snapshot store — golden description trees persisted as one JSON document per story."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from urllib.parse import quote, unquote

from pydantic import ValidationError

from storyshot.errors import AlreadyRecorded, SnapshotCorrupt
from storyshot.models.story import SnapshotEntry
from storyshot.models.tree import Node

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Key-value store of golden trees keyed by (component, story).

    Layout: ``<root>/<component>/<story>.json`` with both names URL-quoted so
    any display name maps to exactly one file. Reads never write; the only
    writers are :meth:`record`, :meth:`update` and :meth:`delete`.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    @staticmethod
    def _encode(name: str) -> str:
        if not name:
            raise ValueError("Component and story names must not be empty")
        encoded = quote(name, safe="")
        # "." and ".." would resolve to the root or its parent
        if encoded.startswith("."):
            encoded = "%2E" + encoded[1:]
        return encoded

    def _path(self, component: str, story: str) -> Path:
        return self.root / self._encode(component) / f"{self._encode(story)}.json"

    def get(self, component: str, story: str) -> SnapshotEntry | None:
        """Look up the golden entry for a story, or None if never recorded."""
        path = self._path(component, story)
        if not path.exists():
            return None
        try:
            with open(path) as f:
                data = json.load(f)
            return SnapshotEntry.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            raise SnapshotCorrupt(path, e) from e

    def record(self, component: str, story: str, tree: Node) -> SnapshotEntry:
        """Create the first golden entry for a story."""
        if self._path(component, story).exists():
            raise AlreadyRecorded(component, story)
        entry = SnapshotEntry(
            component=component, story=story, tree=tree,
            version=1, updated_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        )
        self._write(entry)
        logger.info("Recorded golden for %s/%s", component, story)
        return entry

    def update(self, component: str, story: str, tree: Node) -> SnapshotEntry:
        """Overwrite the golden entry for a story, creating it if needed."""
        try:
            previous = self.get(component, story)
        except SnapshotCorrupt as e:
            logger.warning("Replacing unreadable golden: %s", e)
            previous = None
        entry = SnapshotEntry(
            component=component, story=story, tree=tree,
            version=previous.version + 1 if previous else 1,
            updated_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        )
        self._write(entry)
        logger.info("Updated golden for %s/%s (version %d)", component, story, entry.version)
        return entry

    def delete(self, component: str, story: str) -> bool:
        path = self._path(component, story)
        if not path.exists():
            return False
        path.unlink()
        # Drop the component directory once its last golden is gone
        if not any(path.parent.iterdir()):
            path.parent.rmdir()
        logger.info("Deleted golden for %s/%s", component, story)
        return True

    def keys(self) -> list[tuple[str, str]]:
        """Every (component, story) with a stored golden, sorted."""
        if not self.root.exists():
            return []
        found = []
        for path in self.root.glob("*/*.json"):
            found.append((unquote(path.parent.name), unquote(path.stem)))
        return sorted(found)

    def _write(self, entry: SnapshotEntry) -> None:
        path = self._path(entry.component, entry.story)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write beside the target then rename, so readers never see a partial file
        fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(entry.model_dump(mode="json"), f, indent=2)
                f.write("\n")
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s", path)
