#!/usr/bin/env python3
"""glukoscillator CLI - Command-line interface for glucose wavetable synthesis.

This tool provides access to the parser, synthesizer and feature extractor:
- Export inspection and per-day statistics
- Wavetable and harmonic partial rendering for a day
- Glucose descriptors, control curves and effect selection
- Batch processing of export directories

Can be used as:
- Installed command: glukoscillator <command>
- Python module: python -m glukoscillator.glucose_cli <command>
- Direct script: python scripts/glucose_cli.py <command>
"""

import logging
import random
from pathlib import Path
from typing import List, Optional

import numpy as np
import polars as pl
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from glukoscillator.dataset import format_date_for_display
from glukoscillator.effects import (
    EFFECT_DISPLAY_NAMES,
    envelope_from_features,
    glucose_driven_chain,
)
from glukoscillator.export_parser import LibreViewParser
from glukoscillator.features import (
    combine_descriptors,
    compute_rate_of_change,
    describe_day,
    normalize_descriptor,
)
from glukoscillator.formats.unified import DAY_STATS_SCHEMA, READING_SCHEMA
from glukoscillator.interface.cgm_interface import (
    DEFAULT_NUM_PARTIALS,
    NormalizationPolicy,
    UnknownFormatError,
    MalformedDataError,
)
from glukoscillator.wavetable import WavetableSynthesizer, waveform_for_display

app = typer.Typer(
    name="glukoscillator",
    help="glukoscillator CLI - Turn CGM exports into daily wavetables",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

SPARK_CHARS = "▁▂▃▄▅▆▇█"


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ===== Inspection Commands =====

@app.command()
def info(
    input_file: Path = typer.Argument(..., help="CGM export (CSV)"),
    detailed: bool = typer.Option(False, "--detailed", "-d", help="Show reading columns"),
) -> None:
    """Show device, unit and coverage of a CGM export."""
    _require_file(input_file)

    try:
        with console.status(f"[bold green]Parsing {input_file.name}..."):
            dataset = LibreViewParser.parse_file(input_file)
    except (UnknownFormatError, MalformedDataError) as e:
        console.print(f"[red]✗ Parse error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold]Export Information: {input_file.name}[/bold]\n")

    table = Table(show_header=False, box=None)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Device", dataset.device_name)
    table.add_row("Serial Number", dataset.serial_number or "-")
    table.add_row("Source Unit", dataset.unit.value)
    table.add_row("Readings", f"{dataset.reading_count:,}")
    table.add_row("Days", str(len(dataset.days)))

    dates = dataset.available_dates()
    if dates:
        table.add_row("First Day", format_date_for_display(dates[0]))
        table.add_row("Last Day", format_date_for_display(dates[-1]))

    console.print(table)

    if detailed:
        columns = Table(title="Reading Columns")
        columns.add_column("Column", style="cyan")
        columns.add_column("Type", style="yellow")
        columns.add_column("Unit")
        columns.add_column("Description")
        for field in READING_SCHEMA.describe():
            columns.add_row(field["name"], field["type"], field.get("unit", ""), field["description"])
        console.print()
        console.print(columns)


@app.command()
def days(
    input_file: Path = typer.Argument(..., help="CGM export (CSV)"),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Write per-day stats to CSV"),
) -> None:
    """Show per-day statistics (mg/dL)."""
    _require_file(input_file)

    try:
        dataset = LibreViewParser.parse_file(input_file)
    except (UnknownFormatError, MalformedDataError) as e:
        console.print(f"[red]✗ Parse error: {e}[/red]")
        raise typer.Exit(1)

    stats = dataset.stats_frame()
    if stats.height == 0:
        console.print("[yellow]⚠ No valid readings found[/yellow]")
    else:
        _print_stats_table(stats)

    if output_file:
        stats.write_csv(str(output_file))
        console.print(f"\n[green]✓[/green] Saved to: {output_file}")


# ===== Synthesis Commands =====

@app.command()
def wavetable(
    input_file: Path = typer.Argument(..., help="CGM export (CSV)"),
    day: str = typer.Argument(..., help="Day to render (YYYY-MM-DD)"),
    policy: NormalizationPolicy = typer.Option(
        NormalizationPolicy.DAY_RELATIVE, "--policy", help="Amplitude normalization"
    ),
    num_partials: int = typer.Option(DEFAULT_NUM_PARTIALS, "--partials", "-k", help="Harmonics to analyse"),
    points: int = typer.Option(64, "--points", help="Width of the waveform preview"),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Write wavetable samples to CSV"),
    partials_file: Optional[Path] = typer.Option(None, "--partials-output", help="Write partials to CSV"),
) -> None:
    """Render one day as a wavetable and show its harmonic content."""
    _require_file(input_file)

    try:
        dataset = LibreViewParser.parse_file(input_file)
    except (UnknownFormatError, MalformedDataError) as e:
        console.print(f"[red]✗ Parse error: {e}[/red]")
        raise typer.Exit(1)

    record = dataset.get_day(day)
    if record is None:
        available = ", ".join(dataset.available_dates()) or "none"
        console.print(f"[red]✗ No data for {day}. Available days: {available}[/red]")
        raise typer.Exit(1)

    synthesizer = WavetableSynthesizer(num_partials=num_partials, normalization=policy)
    samples = synthesizer.generate_wavetable(record)
    partials = synthesizer.compute_partials(samples)

    console.print(f"\n[bold]{format_date_for_display(day)}[/bold] ({len(record.readings)} readings)")
    console.print(f"[cyan]{_sparkline(waveform_for_display(samples, points))}[/cyan]\n")

    table = Table(title="Strongest Partials")
    table.add_column("Harmonic", style="cyan", justify="right")
    table.add_column("Magnitude", style="white", justify="right")
    for index in np.argsort(partials)[::-1][:8]:
        table.add_row(str(index + 1), f"{partials[index]:.4f}")
    console.print(table)

    if output_file:
        pl.DataFrame({
            "index": np.arange(samples.size),
            "amplitude": samples,
        }).write_csv(str(output_file))
        console.print(f"\n[green]✓[/green] Wavetable saved to: {output_file}")

    if partials_file:
        pl.DataFrame({
            "harmonic": np.arange(1, partials.size + 1),
            "magnitude": partials,
        }).write_csv(str(partials_file))
        console.print(f"[green]✓[/green] Partials saved to: {partials_file}")


@app.command()
def features(
    input_file: Path = typer.Argument(..., help="CGM export (CSV)"),
    selected_days: Optional[List[str]] = typer.Option(None, "--day", "-d", help="Day(s) to include (default: all)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Randomize effect parameters with this seed"),
) -> None:
    """Show glucose descriptors, control curves and the effects they select."""
    _require_file(input_file)

    try:
        dataset = LibreViewParser.parse_file(input_file)
    except (UnknownFormatError, MalformedDataError) as e:
        console.print(f"[red]✗ Parse error: {e}[/red]")
        raise typer.Exit(1)

    date_keys = sorted(set(selected_days or dataset.available_dates()))
    missing = [key for key in date_keys if dataset.get_day(key) is None]
    if missing:
        console.print(f"[red]✗ No data for: {', '.join(missing)}[/red]")
        raise typer.Exit(1)

    records = [dataset.days[key] for key in date_keys]
    descriptor = combine_descriptors([describe_day(record) for record in records])
    normalized = normalize_descriptor(descriptor)
    rate_of_change = compute_rate_of_change(
        [reading for record in records for reading in record.readings]
    )

    table = Table(title=f"Glucose Features ({len(records)} day(s))", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Range", f"{descriptor.min:.1f} - {descriptor.max:.1f} mg/dL")
    table.add_row("Average", f"{descriptor.avg:.1f} mg/dL (→ {normalized.average:.2f})")
    table.add_row("Time in Range", f"{descriptor.time_in_range:.1f}% (→ {normalized.time_in_range:.2f})")
    table.add_row("Volatility", f"{descriptor.volatility:.1f} mg/dL (→ {normalized.volatility:.2f})")
    table.add_row("Rate of Change", f"{rate_of_change:.2f} mg/dL per reading")
    console.print(table)

    rng = random.Random(seed) if seed is not None else None
    chain = glucose_driven_chain(descriptor, rng=rng)
    if chain:
        console.print("\n[bold]Selected Effects:[/bold]")
        for params in chain:
            console.print(f"  • {EFFECT_DISPLAY_NAMES[params.effect_id]}: {_format_params(params)}")
    else:
        console.print("\n[green]✓ No effect bands triggered[/green]")

    envelope = envelope_from_features(normalized)
    console.print(
        f"\n[bold]Envelope:[/bold] A {envelope.attack:.3f}s  D {envelope.decay:.3f}s  "
        f"S {envelope.sustain:.2f}  R {envelope.release:.3f}s"
    )


# ===== Batch Processing Commands =====

@app.command()
def batch(
    input_dir: Path = typer.Argument(..., help="Directory containing CGM exports"),
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="Directory for per-day stats CSVs"),
    pattern: str = typer.Option("*.csv", "--pattern", "-p", help="File pattern to match"),
    continue_on_error: bool = typer.Option(True, "--continue/--stop", help="Continue on errors"),
) -> None:
    """Parse every export in a directory and summarize (or save) its days."""
    if not input_dir.is_dir():
        console.print(f"[red]Error: Not a directory: {input_dir}[/red]")
        raise typer.Exit(1)

    files = sorted(input_dir.glob(pattern))
    if not files:
        console.print(f"[red]Error: No files matching '{pattern}' found in {input_dir}[/red]")
        raise typer.Exit(1)

    if output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)

    console.print(f"\n[bold]Batch processing {len(files)} file(s)[/bold]\n")

    summary = Table()
    summary.add_column("File", style="cyan")
    summary.add_column("Unit", style="yellow")
    summary.add_column("Readings", justify="right")
    summary.add_column("Days", justify="right")

    results = {"success": 0, "failed": 0}
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Processing...", total=len(files))

        for file_path in files:
            progress.update(task, description=f"Processing {file_path.name}...")
            try:
                dataset = LibreViewParser.parse_file(file_path)
            except (UnknownFormatError, MalformedDataError, OSError) as e:
                results["failed"] += 1
                if not continue_on_error:
                    console.print(f"\n[red]✗ Error processing {file_path.name}: {e}[/red]")
                    raise typer.Exit(1)
                progress.advance(task)
                continue

            summary.add_row(file_path.name, dataset.unit.value, f"{dataset.reading_count:,}", str(len(dataset.days)))
            if output_dir:
                dataset.stats_frame().write_csv(str(output_dir / f"{file_path.stem}_days.csv"))
            results["success"] += 1
            progress.advance(task)

    console.print(summary)
    console.print("\n[bold]Batch processing complete:[/bold]")
    console.print(f"  [green]Success: {results['success']}[/green]")
    if results["failed"] > 0:
        console.print(f"  [red]Failed: {results['failed']}[/red]")

    if output_dir:
        console.print(f"\n[green]✓[/green] Output saved to: {output_dir}")


# ===== Helper Functions =====

def _require_file(path: Path) -> None:
    if not path.exists():
        console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(1)


def _print_stats_table(stats: pl.DataFrame) -> None:
    """Print a per-day statistics frame."""
    DAY_STATS_SCHEMA.validate_dataframe(stats)

    table = Table(title="Daily Statistics (mg/dL)")
    table.add_column("Day", style="cyan")
    table.add_column("Readings", justify="right")
    table.add_column("Min", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Avg", justify="right")
    table.add_column("TIR %", justify="right", style="green")

    for row in stats.iter_rows(named=True):
        table.add_row(
            row["date_key"],
            str(row["count"]),
            f"{row['min']:.1f}",
            f"{row['max']:.1f}",
            f"{row['avg']:.1f}",
            f"{row['time_in_range']:.1f}",
        )
    console.print(table)


def _sparkline(samples: np.ndarray) -> str:
    """Render [-1, 1] samples as a row of block characters."""
    levels = len(SPARK_CHARS) - 1
    return "".join(
        SPARK_CHARS[int(round((min(1.0, max(-1.0, float(v))) + 1.0) / 2.0 * levels))]
        for v in samples
    )


def _format_params(params) -> str:
    values = {
        name: value for name, value in vars(params).items() if name != "enabled"
    }
    return ", ".join(
        f"{name}={value:.2f}" if isinstance(value, float) else f"{name}={value}"
        for name, value in values.items()
    )


# ===== Main Entry Point =====

def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
