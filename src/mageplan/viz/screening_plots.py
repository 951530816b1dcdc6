from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd

from mageplan.core.config import ChartConfig
from mageplan.core.data import COL_CYCLES, COL_FREQUENCY, COL_REPLACEMENTS, COL_SCREENED
from mageplan.viz._facets import facet_grid, finish, frequency_colors, levels


def plot_screening(
    table: pd.DataFrame,
    *,
    chart: Optional[ChartConfig] = None,
    title: Optional[str] = None,
):
    """Draw colonies to screen versus MAGE cycles, one facet per k, and return the figure.

    Rows with an undefined requirement (NaN) are left out of the lines. The
    colour key goes on the first facet that has any line.
    """

    chart = chart or ChartConfig()
    if table.empty:
        raise ValueError("table is empty")

    ks = sorted(pd.to_numeric(table[COL_REPLACEMENTS]).unique().astype(int).tolist())
    cycles = levels(table[COL_CYCLES])
    freqs = levels(table[COL_FREQUENCY])
    colors = frequency_colors(freqs, chart)

    # Cycles are a categorical axis: evenly spaced, labelled with their value.
    position = {N: i for i, N in enumerate(cycles)}

    fig, axes = facet_grid(len(ks), chart, sharey=False)

    for ax, k in zip(axes, ks):
        sub = table[pd.to_numeric(table[COL_REPLACEMENTS]) == k]
        for R, color in zip(freqs, colors):
            line = sub[sub[COL_FREQUENCY] == R]
            line = line[line[COL_SCREENED].notna()]
            if line.empty:
                continue
            xs = [position[N] for N in line[COL_CYCLES]]
            order = sorted(range(len(xs)), key=xs.__getitem__)
            ys = line[COL_SCREENED].to_numpy(dtype=float)
            ax.plot(
                [xs[i] for i in order],
                [ys[i] for i in order],
                "o-",
                ms=3,
                color=color,
                label=f"{R:g}",
            )
        ax.set_title(f"k = {k}")
        ax.set_xticks(range(len(cycles)))
        ax.set_xticklabels([str(N) for N in cycles], fontsize=7)
        ax.set_xlabel(chart.cycles_label)
        ax.set_ylabel(chart.screening_label)
        if chart.screening_log_scale and ax.has_data():
            ax.set_yscale("log")
        ax.grid(True, alpha=0.3)

    legend_ax = next((ax for ax in axes if ax.has_data()), None)
    if legend_ax is not None:
        legend_ax.legend(title=chart.frequency_label, fontsize=8, title_fontsize=8)

    fig.suptitle(title or chart.screening_title)
    return fig


def save_screening_plot(
    table: pd.DataFrame,
    *,
    out_path: str | Path,
    chart: Optional[ChartConfig] = None,
    title: Optional[str] = None,
) -> Path:
    """Save the chart drawn by :func:`plot_screening`."""

    chart = chart or ChartConfig()
    fig = plot_screening(table, chart=chart, title=title)
    return finish(fig, out_path, chart=chart)
