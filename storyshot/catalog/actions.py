"""Action recorder — captures synthetic callback invocations made during a render pass."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from storyshot.models.story import ActionInvocation

if TYPE_CHECKING:
    from storyshot.catalog.registry import Story

logger = logging.getLogger(__name__)


class ActionRecorder:
    """Owns the invocation log for one render pass at a time.

    Not shared between concurrent passes: each worker gets its own recorder.
    """

    def __init__(self) -> None:
        self._log: list[ActionInvocation] = []

    def stub(self, label: str) -> Callable[..., None]:
        """Return a fire-and-forget callback that logs each call under ``label``."""

        def callback(*args: Any, **kwargs: Any) -> None:
            invocation = ActionInvocation(
                label=label, args=args, kwargs=kwargs, sequence=len(self._log),
            )
            self._log.append(invocation)
            logger.debug("Action %s#%d %r", label, invocation.sequence, args)

        callback.__name__ = label
        return callback

    def stubs_for(self, story: Story) -> dict[str, Callable[..., None]]:
        """Stubs for every callback label the story declares."""
        return {label: self.stub(label) for label in story.actions}

    def drain(self) -> list[ActionInvocation]:
        """Return and clear the log. Empty if nothing was invoked since the last drain."""
        drained, self._log = self._log, []
        return drained
