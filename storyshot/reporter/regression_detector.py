"""Regression detection — compares run reports to find stories that started failing."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from storyshot.models.story import RunReport

logger = logging.getLogger(__name__)


@dataclass
class Regression:
    component: str
    story: str
    previous_verdict: str
    current_verdict: str
    error: str | None = None
    diff_size: int = 0


def detect_regressions(previous: RunReport, current: RunReport) -> list[Regression]:
    """Compare two runs and find stories that regressed (passed -> failed).

    Stories are matched by (component, story), which is stable across runs.
    """
    prev_by_key = {(r.component, r.story): r for r in previous.results}

    regressions = []
    for result in current.results:
        prev = prev_by_key.get((result.component, result.story))
        if prev and prev.verdict == "passed" and result.verdict == "failed":
            regressions.append(Regression(
                component=result.component,
                story=result.story,
                previous_verdict=prev.verdict,
                current_verdict=result.verdict,
                error=result.error,
                diff_size=len(result.diff),
            ))

    if regressions:
        logger.warning("Detected %d regressions", len(regressions))
    return regressions
