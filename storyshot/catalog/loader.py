"""Locate a story catalog given a ``package.module:attribute`` reference."""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

from storyshot.catalog.registry import StoryRegistry
from storyshot.errors import CatalogError

logger = logging.getLogger(__name__)


def load_registry(ref: str, search_path: Path | None = None) -> StoryRegistry:
    """Import ``ref`` and return the StoryRegistry it names.

    The attribute may be a registry instance or a zero-argument callable
    returning one. ``DuplicateStory`` raised while the catalog module builds
    its registry propagates unchanged; any other error raised while importing
    or building the catalog is wrapped in ``CatalogError``.
    """
    if not ref or ":" not in ref:
        raise CatalogError(f"Catalog reference must look like 'module:attribute', got '{ref}'")
    module_name, _, attr = ref.partition(":")

    root = str(search_path or Path.cwd())
    if root not in sys.path:
        sys.path.insert(0, root)

    try:
        module = importlib.import_module(module_name)
    except CatalogError:
        raise
    except ImportError as e:
        raise CatalogError(f"Cannot import catalog module '{module_name}': {e}") from e
    except Exception as e:
        raise CatalogError(
            f"Catalog module '{module_name}' failed while loading: {type(e).__name__}: {e}"
        ) from e

    target = getattr(module, attr, None)
    if target is None:
        raise CatalogError(f"Module '{module_name}' has no attribute '{attr}'")
    if callable(target) and not isinstance(target, StoryRegistry):
        try:
            target = target()
        except CatalogError:
            raise
        except Exception as e:
            raise CatalogError(f"'{ref}' failed while building: {type(e).__name__}: {e}") from e
    if not isinstance(target, StoryRegistry):
        raise CatalogError(f"'{ref}' is not a StoryRegistry (got {type(target).__name__})")

    logger.debug("Loaded catalog %s: %d stories", ref, len(target))
    return target
