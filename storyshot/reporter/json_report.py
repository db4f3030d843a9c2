"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from storyshot.models.story import RunReport
from .regression_detector import Regression


def generate_json_report(
    report: RunReport,
    regressions: list[Regression],
    output_path: Path,
) -> None:
    """Write a machine-readable JSON report."""
    data = report.model_dump(mode="json")
    data["exit_code"] = report.exit_code
    data["regressions"] = [
        {
            "component": r.component,
            "story": r.story,
            "previous_verdict": r.previous_verdict,
            "current_verdict": r.current_verdict,
            "error": r.error,
            "diff_size": r.diff_size,
        }
        for r in regressions
    ]

    with open(output_path, "w") as f:
        json.dump(data, f, indent=2, default=str)
