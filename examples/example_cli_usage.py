#!/usr/bin/env python3
"""Example CLI Usage Script - Walks through the glukoscillator commands.

Calls the CLI as a subprocess against a LibreView export, the way it is
used from a shell.

Usage:
    python examples/example_cli_usage.py path/to/libreview_export.csv

    # Render a specific day
    python examples/example_cli_usage.py path/to/export.csv --day 2024-06-01
"""

import subprocess
import sys
from pathlib import Path
from typing import List, Optional

import polars as pl
import typer
from rich.console import Console
from rich.panel import Panel

app = typer.Typer()
console = Console()


def run_cli_command(args: List[str], description: str = "") -> subprocess.CompletedProcess:
    """Run a glukoscillator command and display results.

    Args:
        args: Command arguments for glukoscillator
        description: Human-readable description of what this command does

    Returns:
        CompletedProcess with stdout/stderr
    """
    if description:
        console.print(f"\n[bold cyan]Example: {description}[/bold cyan]")

    cmd = [sys.executable, "-m", "glukoscillator.glucose_cli"] + args
    console.print(f"[dim]$ glukoscillator {' '.join(args)}[/dim]\n")

    result = subprocess.run(cmd, capture_output=True, text=True)

    if result.stdout:
        console.print(result.stdout)

    if result.returncode != 0 and result.stderr:
        console.print(f"[red]{result.stderr}[/red]")

    return result


@app.command()
def main(
    export_file: Path = typer.Argument(..., help="LibreView CSV export"),
    day: Optional[str] = typer.Option(None, "--day", "-d", help="Day to render (default: last day)"),
) -> None:
    """Run through the glukoscillator command examples."""
    console.print(Panel.fit(
        "[bold]glukoscillator - Usage Examples[/bold]\n\n"
        "Each command is executed via subprocess to show real-world usage.",
        border_style="cyan"
    ))

    if not export_file.exists():
        console.print(f"\n[red]Error: Export not found: {export_file}[/red]")
        raise typer.Exit(1)

    output_dir = export_file.parent / "glukoscillator_examples_output"
    output_dir.mkdir(exist_ok=True)
    console.print(f"\n[bold]Output directory:[/bold] {output_dir}\n")

    run_cli_command(["info", str(export_file), "--detailed"], "Show export information")

    stats_file = output_dir / "days.csv"
    run_cli_command(
        ["days", str(export_file), "--output", str(stats_file)],
        "Per-day statistics, saved to CSV"
    )

    if day is None:
        if not stats_file.exists():
            console.print("[red]No day statistics were written; stopping.[/red]")
            raise typer.Exit(1)
        dates = pl.read_csv(stats_file)["date_key"].to_list()
        if not dates:
            console.print("[yellow]Export holds no readings; nothing to render.[/yellow]")
            return
        day = dates[-1]

    run_cli_command(
        [
            "wavetable", str(export_file), day,
            "--output", str(output_dir / f"wavetable_{day}.csv"),
            "--partials-output", str(output_dir / f"partials_{day}.csv"),
        ],
        f"Render {day} as a wavetable"
    )

    run_cli_command(
        ["wavetable", str(export_file), day, "--policy", "physiological", "--partials", "16"],
        "Render with the fixed physiological range (comparable across days)"
    )

    run_cli_command(["features", str(export_file)], "Features and effects over the whole export")
    run_cli_command(
        ["features", str(export_file), "--day", day, "--seed", "1"],
        f"Features for {day} with randomized effect parameters"
    )

    run_cli_command(
        ["batch", str(export_file.parent), "--output", str(output_dir / "batch")],
        "Batch process every export next to this one"
    )

    console.print("\n[bold cyan]For help on any command:[/bold cyan]")
    console.print("  glukoscillator <command> --help")
    console.print("\n[bold green]✓ All examples completed![/bold green]\n")


if __name__ == "__main__":
    app()
