"""Closed-form binomial model of genotype prevalence during MAGE.

After ``N`` cycles at a per-cycle, per-locus allelic replacement frequency
``R`` a single locus is converted with probability

    p1 = 1 - (1 - R)^N

and, treating the ``n`` targeted loci as independent trials, the fraction of
clones carrying exactly ``k`` replacements is the binomial PMF

    p(k) = C(n, k) * p1^k * (1 - p1)^(n - k)

The number of colonies to screen so that at least one carries a genotype of
population fraction ``f`` with the given confidence is

    s = ceil(log(1 - confidence) / log(1 - f))
"""
from __future__ import annotations

import logging
import math
from numbers import Integral
from typing import Optional

import numpy as np
from scipy.stats import binom

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.95


class ModelInputError(ValueError):
    """Raised when the statistical model is evaluated outside its domain."""


def _check_int(name: str, value, *, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise ModelInputError(f"{name} must be an integer, got {value!r}.")
    value = int(value)
    if value < minimum:
        raise ModelInputError(f"{name} must be >= {minimum}, got {value}.")
    return value


def _check_frequency(R) -> float:
    R = float(R)
    if not 0.0 <= R <= 1.0:
        raise ModelInputError(f"Replacement frequency must lie in [0, 1], got {R}.")
    return R


def _check_k(k, n: int) -> int:
    k = _check_int("k", k)
    if k > n:
        raise ModelInputError(f"k={k} is out of range for n={n} targeted loci.")
    return k


def _check_confidence(confidence) -> float:
    confidence = float(confidence)
    if not 0.0 < confidence < 1.0:
        raise ModelInputError(f"Confidence must lie in (0, 1), got {confidence}.")
    return confidence


def single_locus_prevalence(R: float, N: int) -> float:
    """Fraction of the population converted at one locus after ``N`` cycles."""

    R = _check_frequency(R)
    N = _check_int("N", N)
    return 1.0 - (1.0 - R) ** N


def prevalence(k: int, n: int, R: float, N: int) -> float:
    """Expected fraction of clones with exactly ``k`` of ``n`` loci replaced."""

    n = _check_int("n", n, minimum=1)
    k = _check_k(k, n)
    p1 = single_locus_prevalence(R, N)
    return float(binom.pmf(k, n, p1))


def prevalence_distribution(n: int, R: float, N: int) -> np.ndarray:
    """Return ``p(0), ..., p(n)`` as an array that sums to one."""

    n = _check_int("n", n, minimum=1)
    p1 = single_locus_prevalence(R, N)
    return binom.pmf(np.arange(n + 1), n, p1)


def cumulative_prevalence(k: int, n: int, R: float, N: int) -> float:
    """Expected fraction of clones with at least ``k`` of ``n`` loci replaced."""

    n = _check_int("n", n, minimum=1)
    k = _check_k(k, n)
    if k == 0:
        return 1.0
    p1 = single_locus_prevalence(R, N)
    return float(binom.sf(k - 1, n, p1))


def expected_replacements(n: int, R: float, N: int) -> float:
    """Mean number of replaced loci per clone."""

    n = _check_int("n", n, minimum=1)
    return n * single_locus_prevalence(R, N)


def screened_colonies(f: float, confidence: float = DEFAULT_CONFIDENCE) -> int:
    """Colonies to screen to find one genotype of population fraction ``f``.

    ``f`` must lie strictly between 0 and 1: at 0 the genotype can never be
    found, at 1 every colony carries it and the requirement is meaningless.
    """

    f = float(f)
    confidence = _check_confidence(confidence)
    if not 0.0 < f < 1.0:
        raise ModelInputError(f"Genotype fraction must lie in (0, 1), got {f}.")
    return int(math.ceil(np.log1p(-confidence) / np.log1p(-f)))


def screened_colonies_array(f, confidence: float = DEFAULT_CONFIDENCE) -> np.ndarray:
    """Vectorised :func:`screened_colonies`; undefined entries are NaN."""

    confidence = _check_confidence(confidence)
    f = np.asarray(f, dtype=float)
    out = np.full(f.shape, np.nan)
    ok = (f > 0.0) & (f < 1.0)
    out[ok] = np.ceil(np.log1p(-confidence) / np.log1p(-f[ok]))
    return out


def cycles_required(
    target: float,
    n: int,
    R: float,
    *,
    k: Optional[int] = None,
    max_cycles: int = 1000,
) -> int:
    """Smallest cycle count at which the exact-``k`` prevalence reaches ``target``.

    ``k`` defaults to ``n`` (every targeted locus replaced). Only the ``k = n``
    prevalence is monotone in ``N``; for ``k < n`` the first cycle count that
    crosses the target is returned.
    """

    n = _check_int("n", n, minimum=1)
    k = n if k is None else _check_k(k, n)
    target = float(target)
    if not 0.0 < target <= 1.0:
        raise ModelInputError(f"Target prevalence must lie in (0, 1], got {target}.")
    max_cycles = _check_int("max_cycles", max_cycles, minimum=1)

    for N in range(0, max_cycles + 1):
        p = prevalence(k, n, R, N)
        if p >= target:
            logger.debug("k=%d reaches prevalence %.4g after %d cycles (R=%g)", k, p, N, R)
            return N

    raise ModelInputError(
        f"Prevalence {target:g} for k={k} of n={n} loci is not reached within "
        f"{max_cycles} cycles at R={R:g}."
    )
