"""Watch command implementation."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from viewpilot.core.engine.dispatcher import DispatchSummary, TaskReport, WatchDispatcher
from viewpilot.core.models.config import Config
from viewpilot.core.models.task import WatchTask, WatchType
from viewpilot.logging import configure_logging
from viewpilot.plugins.browsers.playwright_plugin import PlaywrightPageFactory
from viewpilot.plugins.output.jsonl_writer import JsonLinesWriter

console = Console()


def read_lines(path: Path) -> list[str]:
    """Non-empty, non-comment lines of a text file."""
    lines = []
    with path.open() as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                lines.append(line)
    return lines


def parse_url_line(line: str) -> tuple[str, str | None]:
    """Split ``URL | search keywords`` into its parts."""
    url, sep, keywords = line.partition("|")
    return url.strip(), (keywords.strip() or None) if sep else None


def build_tasks(
    config: Config,
    lines: list[str],
    watch_type: WatchType,
    referer: str | None,
    keywords: str | None,
) -> list[WatchTask]:
    """Build one task per URL line; invalid lines are reported and skipped."""
    tasks = []
    for line in lines:
        url, line_keywords = parse_url_line(line)
        try:
            tasks.append(
                config.build_task(
                    url,
                    watch_type=watch_type,
                    referer_url=referer,
                    search_keywords=line_keywords or keywords,
                )
            )
        except ValueError as e:
            console.print(f"[yellow]Skipping {url}: {e}[/yellow]")
    return tasks


def print_summary(summary: DispatchSummary, output_path: Path) -> None:
    table = Table(title="Watch Summary")
    table.add_column("Video")
    table.add_column("Platform")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Watched (s)", justify="right")
    table.add_column("Error", overflow="fold")

    for report in summary.reports:
        outcome = report.outcome
        status = "terminal_failure" if report.terminal else outcome.status.value if outcome else "-"
        style = "green" if report.succeeded else "red"
        table.add_row(
            report.task.video_id or report.task.url,
            report.task.platform.value,
            f"[{style}]{status}[/{style}]",
            str(report.attempts),
            f"{outcome.watch_time_actual_sec:.1f}" if outcome else "-",
            (report.terminal.error if report.terminal else outcome.error if outcome else None) or "",
        )

    console.print()
    console.print(table)
    console.print(
        f"[bold]Total:[/bold] {summary.total}  "
        f"[green]Succeeded: {summary.succeeded}[/green]  "
        f"[red]Terminal failures: {summary.terminal_failures}[/red]  "
        f"Attempts: {summary.attempts}  "
        f"Elapsed: {summary.elapsed:.0f}s"
    )
    console.print(f"Outcomes: {output_path}")


async def run_watch(
    urls_file: Path,
    workers: int | None,
    headless: bool,
    percentage: float | None,
    watch_type: WatchType,
    referer: str | None,
    keywords: str | None,
    proxy_file: Path | None,
    output: Path | None,
    config_file: Path | None,
    engine: str | None,
) -> int:
    """Run the watch command; returns the process exit code."""
    # Load config
    config = Config()
    if config_file:
        config = Config.from_yaml(config_file)

    # Override with CLI options
    if workers is not None:
        config.concurrency.max_workers = workers
    if percentage is not None:
        config.watch.watch_time_percentage = percentage
    if engine is not None:
        config.engine.default = engine
    if output is not None:
        config.output.data.directory = output
    config.engine.headless = headless

    if proxy_file:
        if not proxy_file.exists():
            console.print(f"[red]Proxy file not found: {proxy_file}[/red]")
            return 1
        config.proxy.urls = read_lines(proxy_file)
        config.proxy.use_proxies = bool(config.proxy.urls)

    configure_logging(config.output.logs.level, structured=config.output.logs.structured)

    # Load URLs
    if not urls_file.exists():
        console.print(f"[red]URL file not found: {urls_file}[/red]")
        return 1

    tasks = build_tasks(config, read_lines(urls_file), watch_type, referer, keywords)
    if not tasks:
        console.print("[red]No valid URLs found in file[/red]")
        return 1

    console.print(f"[bold blue]ViewPilot[/bold blue] - Watching {len(tasks)} videos")
    console.print(
        f"Workers: {config.concurrency.max_workers}, Engine: {config.engine.default}, "
        f"Headless: {config.engine.headless}, Watch: {config.watch.watch_time_percentage:.0f}%"
    )

    writer = JsonLinesWriter()
    await writer.initialize(config.output.data.path)

    try:
        async with PlaywrightPageFactory(config) as factory:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task_progress = progress.add_task("Watching videos", total=len(tasks))

                def on_report(report: TaskReport) -> None:
                    progress.advance(task_progress)

                dispatcher = WatchDispatcher(config, factory, writer, on_report=on_report)
                summary = await dispatcher.run(tasks)
    finally:
        await writer.close()

    print_summary(summary, config.output.data.path)
    return 0 if summary.terminal_failures == 0 else 2
