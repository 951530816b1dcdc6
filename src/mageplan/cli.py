from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from mageplan.core.config import ProjectConfig, ScreeningBasis
from mageplan.core.data import (
    as_categorical,
    filter_table,
    load_table,
    save_table,
    validate_table,
)
from mageplan.model.binomial import (
    DEFAULT_CONFIDENCE,
    ModelInputError,
    cumulative_prevalence,
    cycles_required,
    expected_replacements,
    prevalence_distribution,
    screened_colonies,
    single_locus_prevalence,
)
from mageplan.model.table import build_table_from_config
from mageplan.viz.prevalence_plots import save_prevalence_plot
from mageplan.viz.screening_plots import save_screening_plot


app = typer.Typer(add_completion=False, help="MAGE prevalence and colony screening planner")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_cfg(config: str) -> ProjectConfig:
    return ProjectConfig.from_yaml(config)


def _print_dataframe(df: pd.DataFrame, title: str, max_rows: int = 20) -> None:
    tbl = Table(title=title, show_lines=False)
    for c in df.columns:
        tbl.add_column(str(c))
    for _, row in df.head(max_rows).iterrows():
        tbl.add_row(*[f"{row[c]:.6g}" if isinstance(row[c], float) else str(row[c]) for c in df.columns])
    console.print(tbl)
    if len(df) > max_rows:
        console.print(f"(showing first {max_rows} of {len(df)} rows)")


def _read_table(data: str) -> pd.DataFrame:
    try:
        df = load_table(data)
        validate_table(df, strict=True)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"Cannot use table {data}: {e}")
        raise typer.Exit(code=1) from e
    return df


def _load_filtered(
    data: str,
    cycles: Optional[List[int]],
    frequency: Optional[List[float]],
    k: Optional[List[int]] = None,
) -> pd.DataFrame:
    df = as_categorical(_read_table(data))
    return filter_table(df, cycles=cycles or None, frequencies=frequency or None, replacements=k or None)


@app.command("build-table")
def build_table_cmd(
    config: str = typer.Option(..., "--config", help="Path to project YAML config"),
    output: Optional[str] = typer.Option(
        None, "--output", help="CSV or Parquet path (defaults to table_path from the config)"
    ),
):
    cfg = _load_cfg(config)
    out = output or cfg.table_path
    if not out:
        raise typer.BadParameter("No --output given and the config has no table_path.")
    df = build_table_from_config(cfg)
    save_table(df, out)
    console.print(f"Wrote {len(df)} rows to {out}")


@app.command("validate-table")
def validate_table_cmd(
    data: str = typer.Argument(..., help="Table CSV or Parquet"),
    n_loci: Optional[int] = typer.Option(None, "--n-loci", help="Number of targeted loci"),
    strict: bool = typer.Option(True, "--strict/--no-strict", help="Fail on the first problem"),
    atol: float = typer.Option(1e-6, "--atol", help="Tolerance for prevalence normalisation"),
):
    try:
        df = load_table(data)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"Cannot read table {data}: {e}")
        raise typer.Exit(code=1) from e
    try:
        problems = validate_table(df, n_loci=n_loci, strict=strict, atol=atol)
    except ValueError as e:
        console.print(f"Invalid table: {e}")
        raise typer.Exit(code=1) from e
    if problems:
        console.print(f"Table has {len(problems)} problem(s).")
        raise typer.Exit(code=1)
    console.print("Table validated successfully.")


@app.command("show")
def show(
    data: str = typer.Argument(..., help="Table CSV or Parquet"),
    cycles: Optional[List[int]] = typer.Option(None, "--cycles", help="Cycle counts to keep"),
    frequency: Optional[List[float]] = typer.Option(None, "--frequency", help="Frequencies to keep"),
    k: Optional[List[int]] = typer.Option(None, "--k", help="Replacement counts to keep"),
    max_rows: int = typer.Option(40, "--max-rows"),
):
    df = _load_filtered(data, cycles, frequency, k)
    if df.empty:
        console.print("No rows match the filter.")
        return
    _print_dataframe(df, title=f"{Path(data).name}", max_rows=max_rows)


@app.command("predict")
def predict(
    loci: int = typer.Option(..., "--loci", help="Number of targeted loci (n)"),
    frequency: float = typer.Option(..., "--frequency", help="Allelic replacement frequency (R)"),
    cycles: int = typer.Option(..., "--cycles", help="Number of MAGE cycles (N)"),
    confidence: float = typer.Option(DEFAULT_CONFIDENCE, "--confidence"),
    basis: ScreeningBasis = typer.Option(ScreeningBasis.exact, "--basis"),
):
    """Print prevalence and screening requirement for every k at one (n, R, N)."""

    if not 0.0 < confidence < 1.0:
        raise typer.BadParameter(f"--confidence must lie in (0, 1), got {confidence}.")

    try:
        p1 = single_locus_prevalence(frequency, cycles)
        dist = prevalence_distribution(loci, frequency, cycles)
        mean_k = expected_replacements(loci, frequency, cycles)
    except ModelInputError as e:
        console.print(str(e))
        raise typer.Exit(code=1) from e

    console.print(f"Single-locus prevalence p1 = {p1:.6g}; expected replacements = {mean_k:.4g}")

    table = Table(title=f"n={loci}, R={frequency:g}, N={cycles}")
    table.add_column("k")
    table.add_column("prevalence")
    table.add_column("at least k")
    table.add_column(f"colonies ({confidence:.0%})")
    for k, p in enumerate(dist):
        at_least = cumulative_prevalence(k, loci, frequency, cycles)
        f = p if basis == ScreeningBasis.exact else at_least
        try:
            s = f"{screened_colonies(f, confidence):,}"
        except ModelInputError:
            s = "n/a"
        table.add_row(str(k), f"{p:.6g}", f"{at_least:.6g}", s)
    console.print(table)


@app.command("cycles-needed")
def cycles_needed(
    loci: int = typer.Option(..., "--loci", help="Number of targeted loci (n)"),
    frequency: float = typer.Option(..., "--frequency", help="Allelic replacement frequency (R)"),
    target: float = typer.Option(..., "--target", help="Target prevalence of the genotype"),
    k: Optional[int] = typer.Option(None, "--k", help="Replacement count (defaults to all loci)"),
    max_cycles: int = typer.Option(1000, "--max-cycles"),
):
    try:
        n_cycles = cycles_required(target, loci, frequency, k=k, max_cycles=max_cycles)
    except ModelInputError as e:
        console.print(str(e))
        raise typer.Exit(code=1) from e
    console.print(f"{n_cycles} cycles")


plot_app = typer.Typer(help="Plotting helpers (saves .png files)")
app.add_typer(plot_app, name="plot")


def _plot_source(config: str, data: Optional[str]) -> tuple[ProjectConfig, str]:
    cfg = _load_cfg(config)
    source = data or cfg.table_path
    if not source:
        raise typer.BadParameter("No --data given and the config has no table_path.")
    return cfg, source


@plot_app.command("prevalence")
def plot_prevalence(
    config: str = typer.Option(..., "--config"),
    data: Optional[str] = typer.Option(None, "--data", help="Defaults to table_path from the config"),
    cycles: Optional[List[int]] = typer.Option(None, "--cycles"),
    frequency: Optional[List[float]] = typer.Option(None, "--frequency"),
    out_dir: str = typer.Option("plots", "--out-dir"),
):
    """Prevalence by replacement count, one facet per cycle count."""

    cfg, source = _plot_source(config, data)
    df = _load_filtered(source, cycles, frequency)
    if df.empty:
        console.print("No rows match the filter.")
        raise typer.Exit(code=1)
    out_path = Path(out_dir) / f"{cfg.project_name}_prevalence.png"
    save_prevalence_plot(df, out_path=out_path, chart=cfg.charts)
    console.print(f"Wrote: {out_path}")


@plot_app.command("screening")
def plot_screening(
    config: str = typer.Option(..., "--config"),
    data: Optional[str] = typer.Option(None, "--data", help="Defaults to table_path from the config"),
    cycles: Optional[List[int]] = typer.Option(None, "--cycles"),
    frequency: Optional[List[float]] = typer.Option(None, "--frequency"),
    out_dir: str = typer.Option("plots", "--out-dir"),
):
    """Colonies to screen versus cycle count, one facet per replacement count."""

    cfg, source = _plot_source(config, data)
    df = _load_filtered(source, cycles, frequency)
    if df.empty:
        console.print("No rows match the filter.")
        raise typer.Exit(code=1)
    out_path = Path(out_dir) / f"{cfg.project_name}_screening.png"
    save_screening_plot(df, out_path=out_path, chart=cfg.charts)
    console.print(f"Wrote: {out_path}")
