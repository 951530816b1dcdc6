from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

COL_CYCLES = "cycles"
COL_FREQUENCY = "allelicReplacementFrequency"
COL_REPLACEMENTS = "numberOfReplacements"
COL_PREVALENCE = "prevalence"
COL_SCREENED = "screenedColonies"

TABLE_COLUMNS: List[str] = [
    COL_CYCLES,
    COL_FREQUENCY,
    COL_REPLACEMENTS,
    COL_PREVALENCE,
    COL_SCREENED,
]

# Columns used as categorical plot axes.
CATEGORICAL_COLUMNS: List[str] = [COL_CYCLES, COL_FREQUENCY]


def load_table(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")
    if path.suffix.lower() in {".csv"}:
        df = pd.read_csv(path)
    elif path.suffix.lower() in {".parquet"}:
        df = pd.read_parquet(path)
    else:
        raise ValueError(f"Unsupported table format: {path.suffix}. Use .csv or .parquet")
    logger.debug("Loaded %d rows from %s", len(df), path)
    return df


def save_table(df: pd.DataFrame, path: str | Path) -> Path:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in {".csv", ".parquet"}:
        raise ValueError(f"Unsupported table format: {path.suffix}. Use .csv or .parquet")
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        df.to_csv(path, index=False)
    else:
        df.to_parquet(path, index=False)
    logger.debug("Wrote %d rows to %s", len(df), path)
    return path


def _numeric(df: pd.DataFrame, col: str) -> pd.Series:
    return pd.to_numeric(df[col].astype(object), errors="coerce")


def normalization_residuals(df: pd.DataFrame) -> pd.Series:
    """Return |sum of prevalence - 1| for every (cycles, frequency) group."""

    prev = _numeric(df, COL_PREVALENCE)
    keys = [_numeric(df, COL_CYCLES), _numeric(df, COL_FREQUENCY)]
    sums = prev.groupby(keys).sum()
    sums.index.names = [COL_CYCLES, COL_FREQUENCY]
    return (sums - 1.0).abs()


def validate_table(
    df: pd.DataFrame,
    *,
    n_loci: Optional[int] = None,
    strict: bool = True,
    atol: float = 1e-6,
) -> List[str]:
    """Check a prevalence table for required columns, value ranges and normalisation.

    With ``strict`` the first problem raises ``ValueError``; otherwise every
    problem is logged as a warning and the list of messages is returned.
    """

    problems: List[str] = []

    def report(msg: str) -> None:
        if strict:
            raise ValueError(msg)
        logger.warning(msg)
        problems.append(msg)

    missing = [c for c in TABLE_COLUMNS if c not in df.columns]
    if missing:
        # Nothing further can be checked without the columns.
        report(f"Table is missing required columns: {missing}")
        return problems

    for col in TABLE_COLUMNS:
        coerced = _numeric(df, col)
        if col == COL_SCREENED:
            # NaN marks an undefined screening requirement, but text is still wrong.
            bad = coerced.isna() & df[col].notna()
        else:
            bad = coerced.isna()
        if bad.any():
            bad_rows = coerced[bad].index[:10].tolist()
            report(f"Column '{col}' must be numeric. Example bad rows: {bad_rows}")

    cycles = _numeric(df, COL_CYCLES)
    freq = _numeric(df, COL_FREQUENCY)
    k = _numeric(df, COL_REPLACEMENTS)
    prev = _numeric(df, COL_PREVALENCE)
    screened = _numeric(df, COL_SCREENED)

    checks = [
        (~((cycles >= 1) & (cycles == np.floor(cycles))), f"'{COL_CYCLES}' must be positive integers"),
        (~((freq > 0.0) & (freq < 1.0)), f"'{COL_FREQUENCY}' must lie in (0, 1)"),
        (~((k >= 0) & (k == np.floor(k))), f"'{COL_REPLACEMENTS}' must be non-negative integers"),
        (~((prev >= 0.0) & (prev <= 1.0)), f"'{COL_PREVALENCE}' must lie in [0, 1]"),
        (screened.notna() & (screened < 1.0), f"'{COL_SCREENED}' must be >= 1"),
    ]
    for mask, msg in checks:
        mask = mask.fillna(False).astype(bool)
        if mask.any():
            report(f"{msg}. Example bad rows: {mask[mask].index[:10].tolist()}")

    if n_loci is not None:
        over = k > n_loci
        if over.any():
            report(
                f"'{COL_REPLACEMENTS}' exceeds n_loci={n_loci}. "
                f"Example bad rows: {over[over].index[:10].tolist()}"
            )

    resid = normalization_residuals(df)
    off = resid[resid > atol]
    if len(off) > 0:
        groups = [tuple(ix) for ix in off.index[:5]]
        report(
            f"Prevalence does not sum to 1 for {len(off)} (cycles, frequency) groups "
            f"(atol={atol:g}). Examples: {groups}"
        )

    return problems


def as_categorical(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with cycles and replacement frequency as ordered categoricals."""

    out = df.copy()
    for col in CATEGORICAL_COLUMNS:
        if isinstance(out[col].dtype, pd.CategoricalDtype):
            continue
        values = pd.to_numeric(out[col], errors="coerce")
        levels = sorted(values.dropna().unique().tolist())
        out[col] = pd.Categorical(values, categories=levels, ordered=True)
    return out


def _isin(series: pd.Series, values: Sequence) -> pd.Series:
    numeric = pd.to_numeric(series.astype(object), errors="coerce").to_numpy(dtype=float)
    wanted = np.asarray(list(values), dtype=float)
    hit = np.isclose(numeric[:, None], wanted[None, :], rtol=1e-9, atol=1e-12).any(axis=1)
    return pd.Series(hit, index=series.index)


def filter_table(
    df: pd.DataFrame,
    *,
    cycles: Optional[Sequence[int]] = None,
    frequencies: Optional[Sequence[float]] = None,
    replacements: Optional[Sequence[int]] = None,
) -> pd.DataFrame:
    """Select rows by cycle count, replacement frequency and replacement count.

    ``None`` leaves a column unconstrained. Values absent from the table simply
    match no rows. Categorical dtypes are preserved; unused levels are kept so
    plots of a subset share the full table's axes.
    """

    keep = pd.Series(True, index=df.index)
    if cycles is not None:
        keep &= _isin(df[COL_CYCLES], cycles)
    if frequencies is not None:
        keep &= _isin(df[COL_FREQUENCY], frequencies)
    if replacements is not None:
        keep &= _isin(df[COL_REPLACEMENTS], replacements)
    return df.loc[keep].copy()
