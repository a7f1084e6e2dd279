"""
Empirical recalibration of peak p-values against a re-mixed null distribution.
"""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
from scipy.interpolate import interp1d

from .exceptions import DataError

logger = logging.getLogger(__name__)


def build_null_distribution(pvalue_arrays: Iterable[np.ndarray]) -> np.ndarray:
    """
    Pool background p-values into one sorted, read-only null distribution.

    Parameters
    ----------
    pvalue_arrays : iterable of ndarray
        Linear-scale p-values, one array per re-mixed replicate.

    Returns
    -------
    null_dist : ndarray, sorted ascending, not writeable.
    """
    arrays = [np.asarray(a, dtype=float).ravel() for a in pvalue_arrays]
    null_dist = np.concatenate(arrays) if arrays else np.empty(0, dtype=float)
    if null_dist.size == 0:
        raise DataError("Null distribution is empty: the re-mixed files contain no rows")
    null_dist.sort()
    null_dist.setflags(write=False)
    return null_dist


def compute_rvalues(pvalues: np.ndarray, null_dist: np.ndarray) -> np.ndarray:
    """
    Empirical CDF of each p-value within the null distribution.

    r = count(null <= p) / N. Ties count inclusively, so r is the fraction of
    the null at or below p.

    Parameters
    ----------
    pvalues : ndarray
        Original (linear-scale) p-values.
    null_dist : ndarray
        Sorted null distribution from ``build_null_distribution``.

    Returns
    -------
    rvalues : ndarray in [0, 1], same shape as ``pvalues``.
    """
    n_null = null_dist.size
    if n_null == 0:
        raise DataError("Cannot recalibrate against an empty null distribution")
    idx = np.searchsorted(null_dist, np.asarray(pvalues, dtype=float), side="right")
    return idx / n_null


def resolve_duplicates(pvalues: np.ndarray, rvalues: np.ndarray) -> np.ndarray:
    """
    Replace repeated r-values by linear interpolation over the raw p-values.

    Rows are walked in ascending p-value order. The first row carrying a given
    r-value is kept as a knot; every later row with the same r-value gets
    r interpolated as a function of p through the knots (linear
    extrapolation beyond the last knot). Results are clipped to [0, 1].

    With fewer than two knots the r-values are returned unchanged.

    Parameters
    ----------
    pvalues : ndarray
        Original p-values, aligned with ``rvalues``.
    rvalues : ndarray
        Output of ``compute_rvalues``.

    Returns
    -------
    New ndarray of r-values in the original row order.
    """
    pvalues = np.asarray(pvalues, dtype=float)
    rvalues = np.asarray(rvalues, dtype=float)
    resolved = rvalues.copy()
    if rvalues.size < 2:
        return resolved

    order = np.argsort(pvalues, kind="stable")
    r_sorted = rvalues[order]

    # r is non-decreasing in p, so a repeat always follows its first occurrence
    is_dup = np.zeros(r_sorted.size, dtype=bool)
    is_dup[1:] = r_sorted[1:] == r_sorted[:-1]
    if not is_dup.any():
        return resolved

    knots = order[~is_dup]
    dups = order[is_dup]
    if knots.size < 2:
        logger.debug("Only one distinct r-value; skipping interpolation")
        return resolved

    interp = interp1d(
        pvalues[knots], rvalues[knots],
        kind="linear", fill_value="extrapolate", assume_sorted=True,
    )
    resolved[dups] = np.clip(interp(pvalues[dups]), 0.0, 1.0)
    logger.info("Interpolated %d duplicate r-values over %d knots", dups.size, knots.size)
    return resolved
