"""Configuration model for the story runner."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

MODES = ("check", "record", "update")


class RunnerConfig(BaseModel):
    # Catalog, as "package.module:attribute"
    catalog: str = ""

    # Operating mode: check (compare only), record (create missing), update (accept all)
    mode: str = "check"

    # Storage
    snapshot_dir: str = "./__snapshots__"

    # Fixtures
    seed: int = 0

    # Execution
    verify_determinism: bool = True
    max_workers: int = 1

    # Reporting
    report_formats: list[str] = Field(default_factory=lambda: ["json"])
    report_output_dir: str = "./storyshot-reports"

    @field_validator("mode")
    @classmethod
    def check_mode(cls, v: str) -> str:
        if v not in MODES:
            raise ValueError(f"Unknown mode '{v}' (expected one of: {', '.join(MODES)})")
        return v

    @field_validator("max_workers")
    @classmethod
    def check_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v

    @classmethod
    def load(cls, path: str | Path) -> "RunnerConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
