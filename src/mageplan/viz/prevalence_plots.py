from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from mageplan.core.config import ChartConfig
from mageplan.core.data import COL_CYCLES, COL_FREQUENCY, COL_PREVALENCE, COL_REPLACEMENTS
from mageplan.viz._facets import facet_grid, finish, frequency_colors, levels


def plot_prevalence(
    table: pd.DataFrame,
    *,
    chart: Optional[ChartConfig] = None,
    title: Optional[str] = None,
):
    """Draw grouped bar charts of genotype prevalence and return the figure.

    Parameters
    ----------
    table:
        Prevalence table (optionally filtered). One facet is drawn per cycle
        count present.
    chart:
        Axis labels and layout. Defaults to :class:`ChartConfig()`.
    """

    chart = chart or ChartConfig()
    if table.empty:
        raise ValueError("table is empty")

    cycles = levels(table[COL_CYCLES])
    freqs = levels(table[COL_FREQUENCY])
    ks = sorted(pd.to_numeric(table[COL_REPLACEMENTS]).unique().astype(int).tolist())
    colors = frequency_colors(freqs, chart)

    fig, axes = facet_grid(len(cycles), chart, sharey=True)

    width = 0.8 / max(len(freqs), 1)
    x = np.arange(len(ks))
    for ax, N in zip(axes, cycles):
        sub = table[table[COL_CYCLES] == N]
        for j, (R, color) in enumerate(zip(freqs, colors)):
            series = sub[sub[COL_FREQUENCY] == R].set_index(COL_REPLACEMENTS)[COL_PREVALENCE]
            heights = [float(series.get(k, np.nan)) for k in ks]
            offset = (j - (len(freqs) - 1) / 2.0) * width
            ax.bar(x + offset, heights, width=width, color=color, label=f"{R:g}")
        ax.set_title(f"N = {N}")
        ax.set_xticks(x)
        ax.set_xticklabels([str(k) for k in ks])
        ax.set_xlabel(chart.replacements_label)
        ax.set_ylim(0.0, 1.0)
        ax.grid(True, axis="y", alpha=0.3)

    axes[0].set_ylabel(chart.prevalence_label)
    axes[0].legend(title=chart.frequency_label, fontsize=8, title_fontsize=8)

    fig.suptitle(title or chart.prevalence_title)
    return fig


def save_prevalence_plot(
    table: pd.DataFrame,
    *,
    out_path: str | Path,
    chart: Optional[ChartConfig] = None,
    title: Optional[str] = None,
) -> Path:
    """Save the chart drawn by :func:`plot_prevalence` (PNG recommended)."""

    chart = chart or ChartConfig()
    fig = plot_prevalence(table, chart=chart, title=title)
    return finish(fig, out_path, chart=chart)
