"""Main CLI application."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from viewpilot import __version__
from viewpilot.core.models.task import WatchType

# Create main app
app = typer.Typer(
    name="viewpilot",
    help="Browser-driven video watch sessions",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

ENGINES = ("playwright", "patchright")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]ViewPilot[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """ViewPilot - watch videos in a real browser and record the outcome."""


@app.command()
def watch(
    urls_file: Annotated[
        Path,
        typer.Argument(help="File of video URLs, one per line ('URL | keywords' for search)"),
    ],
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", help="Number of concurrent sessions"),
    ] = None,
    headless: Annotated[
        bool,
        typer.Option("--headless/--no-headless", help="Run in headless mode"),
    ] = True,
    percentage: Annotated[
        float | None,
        typer.Option("--percentage", "-P", min=0, max=100, help="Percent of each video to watch"),
    ] = None,
    watch_type: Annotated[
        WatchType,
        typer.Option("--watch-type", "-t", help="How to reach the video page"),
    ] = WatchType.DIRECT,
    referer: Annotated[
        str | None,
        typer.Option("--referer", "-r", help="Referer URL for the referer watch type"),
    ] = None,
    keywords: Annotated[
        str | None,
        typer.Option("--keywords", "-k", help="Default search keywords for the search watch type"),
    ] = None,
    proxy_file: Annotated[
        Path | None,
        typer.Option("--proxy-file", "-p", help="File containing proxy URLs"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output directory for outcome records"),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file path"),
    ] = None,
    engine: Annotated[
        str | None,
        typer.Option("--engine", "-e", help="Browser engine (playwright, patchright)"),
    ] = None,
) -> None:
    """Watch every video in a URL file and write one outcome record per attempt."""
    from viewpilot.cli.commands.watch import run_watch

    if engine is not None and engine not in ENGINES:
        raise typer.BadParameter(f"engine must be one of {', '.join(ENGINES)}", param_hint="--engine")

    exit_code = asyncio.run(
        run_watch(
            urls_file=urls_file,
            workers=workers,
            headless=headless,
            percentage=percentage,
            watch_type=watch_type,
            referer=referer,
            keywords=keywords,
            proxy_file=proxy_file,
            output=output,
            config_file=config,
            engine=engine,
        )
    )
    if exit_code:
        raise typer.Exit(exit_code)


@app.command()
def config(
    action: Annotated[
        str,
        typer.Argument(help="Action: show, validate, init"),
    ],
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Config file"),
    ] = None,
) -> None:
    """Manage configuration."""
    from viewpilot.core.models.config import Config

    if action == "show":
        cfg = Config()
        if file and file.exists():
            cfg = Config.from_yaml(file)

        console.print("[bold]Current Configuration:[/bold]")
        console.print_json(data=cfg.model_dump(mode="json"))

    elif action == "validate":
        if not file:
            console.print("[red]--file is required for validate[/red]")
            raise typer.Exit(1)
        try:
            Config.from_yaml(file)
        except Exception as e:
            console.print(f"[red]Config validation failed: {e}[/red]")
            raise typer.Exit(1) from e
        console.print(f"[green]Config file {file} is valid![/green]")

    elif action == "init":
        output_path = file or Path("./config/viewpilot.yaml")
        Config().to_yaml(output_path)
        console.print(f"[green]Config initialized at {output_path}[/green]")

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Available actions: show, validate, init")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"[bold blue]ViewPilot[/bold blue] v{__version__}")


def main() -> None:
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
