"""CLI entry point for the story snapshot runner."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from storyshot.catalog.loader import load_registry
from storyshot.catalog.registry import StoryRegistry
from storyshot.errors import CatalogError, SnapshotCorrupt
from storyshot.models.config import MODES, RunnerConfig
from storyshot.models.story import RunReport
from storyshot.reporter.reporter import Reporter
from storyshot.runner import TestRunner
from storyshot.snapshot.diff import format_diff
from storyshot.snapshot.store import SnapshotStore

console = Console()

VERDICT_STYLE = {
    "passed": "[green]PASS[/green]",
    "failed": "[red]FAIL[/red]",
    "recorded": "[cyan]REC [/cyan]",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(config: str, catalog: str | None = None, mode: str | None = None) -> RunnerConfig:
    try:
        cfg = RunnerConfig.load(config)
    except FileNotFoundError:
        if not catalog:
            console.print(f"[red]Config file not found: {config}[/red]")
            console.print("Run 'storyshot init' to create a default config, or pass --catalog.")
            sys.exit(1)
        cfg = RunnerConfig()
    if catalog:
        cfg.catalog = catalog
    if mode:
        cfg.mode = mode
    return cfg


def _load_catalog(cfg: RunnerConfig) -> StoryRegistry:
    try:
        return load_registry(cfg.catalog)
    except CatalogError as e:
        console.print(f"[red]Catalog error:[/red] {e}")
        sys.exit(2)


def _print_results(report: RunReport) -> None:
    for result in report.results:
        console.print(f"{VERDICT_STYLE[result.verdict]} {escape(result.key)}")
        if result.error:
            console.print(f"      {result.error}", style="red", markup=False)
        if result.verdict == "failed":
            for line in format_diff(result.diff):
                console.print(f"      {line}", markup=False)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Story catalog and snapshot regression runner"""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default="storyshot.json", help="Config file path")
@click.option("--catalog", help="Catalog reference, module:attribute")
@click.option("--mode", "-m", type=click.Choice(MODES), help="Override the configured mode")
@click.option("--component", "components", multiple=True, help="Only run this component")
@click.option("--story", "stories", multiple=True, help="Only run stories with this name")
def run(config: str, catalog: str | None, mode: str | None,
        components: tuple[str, ...], stories: tuple[str, ...]) -> None:
    """Render every story and compare it against its golden snapshot."""
    cfg = _load_config(config, catalog, mode)
    registry = _load_catalog(cfg)

    runner = TestRunner(registry, SnapshotStore(Path(cfg.snapshot_dir)), cfg)
    report = runner.run(components=components or None, stories=stories or None)
    _print_results(report)

    reporter = Reporter(cfg)
    previous = reporter.load_previous_report(report.run_id)
    reports, regressions = reporter.generate_reports(report, previous)

    table = Table(title=f"Results ({report.mode})")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Run ID", report.run_id)
    table.add_row("Stories", str(report.total))
    table.add_row("Passed", f"[green]{report.passed}[/green]")
    table.add_row("Failed", f"[red]{report.failed}[/red]")
    table.add_row("Recorded", f"[cyan]{report.recorded}[/cyan]")
    table.add_row("Duration", f"{report.duration_seconds}s")
    console.print(table)

    for r in regressions:
        console.print(f"[bold red]Regression:[/bold red] {r.component}/{r.story} "
                      f"({r.previous_verdict} -> {r.current_verdict})")
    for fmt, path in reports.items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")

    sys.exit(report.exit_code)


@cli.command("list")
@click.option("--config", "-c", default="storyshot.json", help="Config file path")
@click.option("--catalog", help="Catalog reference, module:attribute")
def list_stories(config: str, catalog: str | None) -> None:
    """Show the story catalog in display order."""
    cfg = _load_config(config, catalog)
    registry = _load_catalog(cfg)
    store = SnapshotStore(Path(cfg.snapshot_dir))

    table = Table(title=f"Catalog {cfg.catalog}")
    table.add_column("Component", style="bold")
    table.add_column("Story")
    table.add_column("Actions")
    table.add_column("Golden")
    for story in registry.list():
        try:
            entry = store.get(story.component, story.name)
            golden = f"v{entry.version}" if entry else "[yellow]missing[/yellow]"
        except SnapshotCorrupt:
            golden = "[red]corrupt[/red]"
        table.add_row(story.component, story.name, ", ".join(story.actions), golden)
    console.print(table)


@cli.command()
@click.argument("component")
@click.argument("story")
@click.option("--config", "-c", default="storyshot.json", help="Config file path")
def show(component: str, story: str, config: str) -> None:
    """Print the golden snapshot of one story."""
    cfg = _load_config(config)
    try:
        entry = SnapshotStore(Path(cfg.snapshot_dir)).get(component, story)
    except SnapshotCorrupt as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    if entry is None:
        console.print(f"[yellow]No golden snapshot for {component}/{story}[/yellow]")
        sys.exit(1)
    console.print_json(json.dumps(entry.model_dump(mode="json")))


@cli.command()
@click.option("--config", "-c", default="storyshot.json", help="Config file path")
@click.option("--catalog", help="Catalog reference, module:attribute")
@click.option("--yes", is_flag=True, help="Delete without asking")
def prune(config: str, catalog: str | None, yes: bool) -> None:
    """Delete golden snapshots whose story is no longer registered."""
    cfg = _load_config(config, catalog)
    registry = _load_catalog(cfg)
    store = SnapshotStore(Path(cfg.snapshot_dir))

    stale = [key for key in store.keys() if registry.get(*key) is None]
    if not stale:
        console.print("[green]No stale snapshots[/green]")
        return
    for component, story in stale:
        console.print(f"  {component}/{story}")
    if not yes and not click.confirm(f"Delete {len(stale)} stale snapshot(s)?"):
        return
    for component, story in stale:
        store.delete(component, story)
    console.print(f"[green]Deleted {len(stale)} stale snapshot(s)[/green]")


@cli.command()
@click.option("--catalog", prompt="Catalog (module:attribute)", help="Catalog reference")
def init(catalog: str) -> None:
    """Create a default configuration file."""
    config_path = Path("storyshot.json")
    if config_path.exists():
        if not click.confirm("storyshot.json already exists. Overwrite?"):
            return

    cfg = RunnerConfig(catalog=catalog)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nRecord the initial golden snapshots with:")
    console.print("  [blue]storyshot run --mode record[/blue]")


if __name__ == "__main__":
    cli()
