from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np
import pandas as pd
from scipy.stats import binom

from mageplan.core.config import ProjectConfig, ScreeningBasis
from mageplan.core.data import (
    COL_CYCLES,
    COL_FREQUENCY,
    COL_PREVALENCE,
    COL_REPLACEMENTS,
    COL_SCREENED,
    TABLE_COLUMNS,
)
from mageplan.model.binomial import (
    DEFAULT_CONFIDENCE,
    _check_int,
    screened_colonies_array,
    single_locus_prevalence,
)

logger = logging.getLogger(__name__)


def build_table(
    n_loci: int,
    cycles: Sequence[int],
    frequencies: Sequence[float],
    *,
    confidence: float = DEFAULT_CONFIDENCE,
    basis: ScreeningBasis = ScreeningBasis.exact,
) -> pd.DataFrame:
    """Evaluate the prevalence/screening model over a (cycles x frequency x k) grid.

    Rows are ordered by cycles, then frequency, then k. ``screenedColonies`` is
    NaN where the screening fraction is 0 or 1 (requirement undefined).
    """

    n_loci = _check_int("n_loci", n_loci, minimum=1)
    basis = ScreeningBasis(basis)

    ks = np.arange(n_loci + 1)
    blocks: List[pd.DataFrame] = []
    for N in cycles:
        for R in frequencies:
            p1 = single_locus_prevalence(R, N)
            pk = binom.pmf(ks, n_loci, p1)
            if basis == ScreeningBasis.exact:
                frac = pk
            else:
                # P(X >= k); sf(-1) is exactly 1 for k = 0.
                frac = binom.sf(ks - 1, n_loci, p1)
            blocks.append(
                pd.DataFrame(
                    {
                        COL_CYCLES: int(N),
                        COL_FREQUENCY: float(R),
                        COL_REPLACEMENTS: ks,
                        COL_PREVALENCE: pk,
                        COL_SCREENED: screened_colonies_array(frac, confidence),
                    }
                )
            )

    if not blocks:
        return pd.DataFrame(columns=TABLE_COLUMNS)

    table = pd.concat(blocks, ignore_index=True)[TABLE_COLUMNS]

    undefined = table[COL_SCREENED].isna()
    if undefined.any():
        logger.warning(
            "Screening requirement undefined for %d of %d rows (fraction is 0 or 1)",
            int(undefined.sum()),
            len(table),
        )
    logger.info(
        "Built table: n=%d loci, %d cycle counts, %d frequencies, %d rows (basis=%s)",
        n_loci,
        len(cycles),
        len(frequencies),
        len(table),
        basis.value,
    )
    return table


def build_table_from_config(cfg: ProjectConfig) -> pd.DataFrame:
    return build_table(
        cfg.model.n_loci,
        cfg.model.cycles,
        cfg.model.replacement_frequencies,
        confidence=cfg.screening.confidence,
        basis=cfg.screening.basis,
    )
