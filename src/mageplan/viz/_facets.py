from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from mageplan.core.config import ChartConfig


def levels(series: pd.Series) -> List:
    """Sorted distinct values, honouring categorical order (observed levels only)."""

    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(series.dropna().tolist())
        return [c for c in series.cat.categories if c in present]
    return sorted(series.dropna().unique().tolist())


def facet_grid(n_facets: int, chart: ChartConfig, *, sharey: bool = True):
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt  # noqa: E402

    ncols = min(chart.facet_columns, max(n_facets, 1))
    nrows = -(-max(n_facets, 1) // ncols)
    fig, axes = plt.subplots(
        nrows,
        ncols,
        figsize=chart.figsize(n_facets),
        sharey=sharey,
        squeeze=False,
    )
    flat = axes.ravel()
    for ax in flat[n_facets:]:
        ax.set_visible(False)
    return fig, flat[:n_facets]


def frequency_colors(freqs: Sequence[float], chart: ChartConfig) -> List[Tuple[float, ...]]:
    import matplotlib

    cmap = matplotlib.colormaps[chart.colormap]
    if len(freqs) == 1:
        return [cmap(0.5)]
    return [cmap(x) for x in np.linspace(0.0, 0.9, len(freqs))]


def finish(fig, out_path: str | Path, *, chart: ChartConfig) -> Path:
    import matplotlib.pyplot as plt

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=chart.dpi)
    plt.close(fig)
    return out_path
