"""CLI entry point for section capture."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from sectioncapture.cache.screenshot_cache import ScreenshotCacheManager
from sectioncapture.cache.token_cache import TokenCacheManager
from sectioncapture.models.capture_result import CaptureProgress, CaptureRequest, ResponsiveCaptureRequest
from sectioncapture.models.config import VIEWPORT_NAMES, CaptureConfig
from sectioncapture.orchestrator import CaptureOrchestrator
from sectioncapture.responsive.classifier import ResponsiveStyleClassifier, section_preset_classes
from sectioncapture.responsive.coordinator import ResponsiveCaptureCoordinator
from sectioncapture.url_utils import domain_dir_name

console = Console()

DEFAULT_CONFIG = "capture-config.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_config(path: Optional[str]) -> CaptureConfig:
    """Load the config file (defaults when no path is given) with env overrides applied."""
    if path is None:
        default = Path(DEFAULT_CONFIG)
        cfg = CaptureConfig.load(default) if default.exists() else CaptureConfig()
        return cfg.with_env_overrides()
    try:
        return CaptureConfig.load(path).with_env_overrides()
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'section-capture init' to create a default config.")
        sys.exit(1)


def _progress_bar() -> Progress:
    return Progress(
        TextColumn("[bold blue]{task.fields[phase]:<18}"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("{task.description}"),
        console=console,
    )


def _tracker(progress: Progress):
    task = progress.add_task("Starting", total=100, phase="initializing")

    def on_progress(event: CaptureProgress) -> None:
        progress.update(task, completed=event.percent, description=event.message, phase=event.phase.value)

    return on_progress


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Capture a webpage's visual sections, screenshots and styles."""
    setup_logging(verbose)


@cli.command()
def init() -> None:
    """Create a default configuration file."""
    config_path = Path(DEFAULT_CONFIG)
    if config_path.exists():
        if not click.confirm(f"{DEFAULT_CONFIG} already exists. Overwrite?"):
            return

    CaptureConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print("  [blue]section-capture capture https://example.com[/blue]")


@cli.command()
@click.argument("url")
@click.option("--website-id", "-w", default=None, help="Output folder name (defaults to the domain)")
@click.option("--width", type=int, default=None, help="Viewport width")
@click.option("--height", type=int, default=None, help="Viewport height")
@click.option("--skip-cache", is_flag=True, help="Ignore cached screenshots")
@click.option("--headed", is_flag=True, help="Show the browser window")
@click.option("--config", "-c", default=None, help="Config file path")
def capture(
    url: str,
    website_id: Optional[str],
    width: Optional[int],
    height: Optional[int],
    skip_cache: bool,
    headed: bool,
    config: Optional[str],
) -> None:
    """Capture URL at a single viewport."""
    cfg = load_config(config)
    request = CaptureRequest(
        website_id=website_id or domain_dir_name(url),
        url=url,
        viewport_width=width,
        viewport_height=height,
        skip_cache=skip_cache,
        headless=False if headed else None,
    )

    with _progress_bar() as progress:
        result = CaptureOrchestrator(cfg).run_capture(request, _tracker(progress))

    if not result.success:
        console.print(f"[red]Capture failed:[/red] {result.error}")
        sys.exit(1)

    source = " (from cache)" if result.from_cache else ""
    console.print(f"\n[bold green]Capture Complete{source}[/bold green]")
    table = Table(title=f"Sections of {url}")
    table.add_column("#", style="bold")
    table.add_column("Type")
    table.add_column("Y", justify="right")
    table.add_column("Height", justify="right")
    table.add_column("Screenshot")
    for i, section in enumerate(result.sections, 1):
        box = section.bounding_box
        table.add_row(str(i), section.type.value, str(box.y), str(box.height), section.screenshot_path)
    console.print(table)
    console.print(f"  Full page: [blue]{result.full_page_path}[/blue]")


@cli.command()
@click.argument("url")
@click.option("--website-id", "-w", default=None, help="Output folder name (defaults to the domain)")
@click.option(
    "--viewport",
    "viewports",
    multiple=True,
    type=click.Choice(VIEWPORT_NAMES),
    help="Viewport to capture (repeatable, default: all)",
)
@click.option("--headed", is_flag=True, help="Show the browser window")
@click.option("--config", "-c", default=None, help="Config file path")
def responsive(
    url: str, website_id: Optional[str], viewports: tuple[str, ...], headed: bool, config: Optional[str]
) -> None:
    """Capture URL at mobile, tablet and desktop widths and print responsive classes."""
    cfg = load_config(config)
    request = ResponsiveCaptureRequest(
        website_id=website_id or domain_dir_name(url),
        url=url,
        viewports=list(viewports) or list(VIEWPORT_NAMES),
        headless=False if headed else None,
    )

    with _progress_bar() as progress:
        result = ResponsiveCaptureCoordinator(cfg).run_capture(request, _tracker(progress))

    if not result.success:
        console.print(f"[red]Responsive capture failed:[/red] {result.error}")
        sys.exit(1)

    classifier = ResponsiveStyleClassifier()
    console.print("\n[bold green]Responsive Capture Complete[/bold green]")
    table = Table(title=f"Sections of {url}")
    table.add_column("Type", style="bold")
    table.add_column("Viewports")
    table.add_column("Classes")
    for section in result.sections:
        classes = classifier.class_string(section) or f"[dim]{section_preset_classes(section.type)}[/dim]"
        table.add_row(section.type.value, ", ".join(section.responsive_styles), classes)
    console.print(table)
    for name, path in result.full_page_paths.items():
        console.print(f"  {name}: [blue]{path}[/blue]")


@cli.group()
def cache() -> None:
    """Inspect or clear the screenshot and token caches."""
    pass


@cache.command("stats")
@click.option("--config", "-c", default=None, help="Config file path")
def cache_stats(config: Optional[str]) -> None:
    """Show cache statistics."""
    cfg = load_config(config)
    table = Table(title="Cache")
    table.add_column("Cache", style="bold")
    table.add_column("Directory")
    table.add_column("Domains", justify="right")
    table.add_column("Valid", justify="right")
    table.add_column("Expired", justify="right")
    for label, manager in (
        ("Screenshots", ScreenshotCacheManager(cfg.cache.cache_dir, cfg.cache.ttl_hours)),
        ("Tokens", TokenCacheManager(cfg.cache.token_cache_dir, cfg.cache.token_ttl_hours)),
    ):
        stats = manager.stats()
        table.add_row(
            label,
            stats.cache_dir,
            str(stats.total_domains),
            f"[green]{stats.valid_domains}[/green]",
            f"[yellow]{stats.expired_domains}[/yellow]",
        )
    console.print(table)


@cache.command("clear")
@click.option("--url", "-u", default=None, help="Clear a single domain")
@click.option("--all", "clear_all", is_flag=True, help="Clear every cached domain")
@click.option("--tokens", is_flag=True, help="Clear the token cache instead of screenshots")
@click.option("--config", "-c", default=None, help="Config file path")
def cache_clear(url: Optional[str], clear_all: bool, tokens: bool, config: Optional[str]) -> None:
    """Clear cached entries for one URL or for everything."""
    if not url and not clear_all:
        console.print("[yellow]Pass --url URL or --all[/yellow]")
        sys.exit(1)

    cfg = load_config(config)
    if tokens:
        manager = TokenCacheManager(cfg.cache.token_cache_dir, cfg.cache.token_ttl_hours)
    else:
        manager = ScreenshotCacheManager(cfg.cache.cache_dir, cfg.cache.ttl_hours)

    if clear_all:
        count = manager.clear_all()
        console.print(f"[green]Cleared {count} cached domains[/green]")
    elif manager.clear(url):
        console.print(f"[green]Cleared cache for {url}[/green]")
    else:
        console.print(f"[yellow]Nothing cached for {url}[/yellow]")


if __name__ == "__main__":
    cli()
