"""Report generation orchestration."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from storyshot.models.config import RunnerConfig
from storyshot.models.story import RunReport

from .json_report import generate_json_report
from .regression_detector import Regression, detect_regressions

logger = logging.getLogger(__name__)


class Reporter:
    """Writes run reports and finds regressions against the previous run."""

    def __init__(self, config: RunnerConfig):
        self.config = config

    @property
    def output_dir(self) -> Path:
        return Path(self.config.report_output_dir)

    def generate_reports(
        self,
        report: RunReport,
        previous: RunReport | None = None,
    ) -> tuple[dict[str, str], list[Regression]]:
        """Write all configured formats. Returns (format -> file path, regressions)."""
        out_dir = self.output_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        generated = {}
        logger.debug("Report output directory: %s", out_dir)

        regressions = []
        if previous:
            logger.debug("Detecting regressions against run %s...", previous.run_id)
            regressions = detect_regressions(previous, report)

        if "json" in self.config.report_formats:
            path = out_dir / f"report_{report.run_id}.json"
            generate_json_report(report, regressions, path)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        for fmt in self.config.report_formats:
            if fmt != "json":
                logger.warning("Unsupported report format '%s' ignored", fmt)

        return generated, regressions

    def load_previous_report(self, current_run_id: str | None = None) -> RunReport | None:
        """Load the most recent earlier report from the output directory."""
        if not self.output_dir.exists():
            return None

        report_files = sorted(
            self.output_dir.glob("report_run_*.json"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )

        for report_path in report_files:
            try:
                with open(report_path) as f:
                    data = json.load(f)
                if data.get("run_id") == current_run_id:
                    continue
                return RunReport.model_validate(data)
            except Exception as e:
                logger.debug("Could not load previous report from %s: %s", report_path, e)
                continue

        return None
