"""
False discovery rate estimates for recalibrated r-values.

Two estimates are attached to every row:

- ``bh_adjust``: Benjamini-Hochberg step-up adjusted r-values.
- ``estimate_lfdr``: local FDR from a half-decade, log-spaced histogram of
  the r-values compared against the uniform density expected under the null.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from scipy.stats import rankdata

from .exceptions import DataError

logger = logging.getLogger(__name__)

# Bin edges are placed every half decade in -log10 space.
BIN_STEP = 0.5


def bh_adjust(rvalues: np.ndarray) -> np.ndarray:
    """
    Benjamini-Hochberg adjustment allowing tied r-values to share a rank.

    Tied r-values take the rank of the first member of their group, so a
    single adjusted value ``r * m / rank`` is computed per distinct r-value.
    The adjusted sequence is then made non-decreasing in r by a reverse
    cumulative minimum and capped at 1.

    Parameters
    ----------
    rvalues : ndarray
        r-values for all m rows.

    Returns
    -------
    adjusted : ndarray in the original row order, with adjusted >= rvalues.

    Examples
    --------
    >>> bh_adjust(np.array([0.1, 0.4, 0.4, 0.9]))
    array([0.4, 0.8, 0.8, 0.9])
    """
    rvalues = np.asarray(rvalues, dtype=float)
    m = rvalues.size
    if m == 0:
        return np.empty(0, dtype=float)

    order = np.argsort(rvalues, kind="stable")
    r_sorted = rvalues[order]
    ranks = rankdata(r_sorted, method="min")

    adj_sorted = r_sorted * (m / ranks)
    adj_sorted = np.minimum.accumulate(adj_sorted[::-1])[::-1]
    adj_sorted = np.minimum(adj_sorted, 1.0)

    adjusted = np.empty(m, dtype=float)
    adjusted[order] = adj_sorted
    return adjusted


@dataclass(frozen=True)
class LfdrHistogram:
    """
    Half-decade histogram of r-values and the LFDR of each bin.

    Bin ``i`` spans ``[edges[i + 1], edges[i])``; the first and last bins also
    take values on or past the outer edges.

    Attributes
    ----------
    log_edges : ndarray
        Edges in -log10 space, increasing (e.g. 0, 0.5, 1, ...).
    edges : ndarray
        Raw edges ``10 ** -log_edges``, strictly decreasing.
    hist_count : ndarray
        Observed fraction of r-values per bin.
    theoretical : ndarray
        Bin width, i.e. the fraction expected under a uniform null.
    lfdr : ndarray
        ``theoretical / hist_count`` capped at 1 (0 for empty bins).
    """

    log_edges: np.ndarray
    edges: np.ndarray
    hist_count: np.ndarray
    theoretical: np.ndarray
    lfdr: np.ndarray

    @property
    def n_bins(self) -> int:
        return self.lfdr.size

    def bin_indices(self, values: np.ndarray) -> np.ndarray:
        """
        Bin of each value: the first bin, scanning down from the top edge,
        whose lower edge is <= the value.
        """
        # inner edges ascending; values below all of them land in the last bin
        inner = self.edges[1:-1][::-1]
        return inner.size - np.searchsorted(inner, np.asarray(values, dtype=float),
                                            side="right")

    def bin_index(self, value: float) -> int:
        """Index of the bin containing ``value``."""
        return int(self.bin_indices(np.array([value]))[0])

    def to_frame(self) -> pd.DataFrame:
        """One row per bin, labelled by its upper edge."""
        return pd.DataFrame({
            "log_edge": self.log_edges[:-1],
            "edge": self.edges[:-1],
            "theoretical": self.theoretical,
            "hist_count": self.hist_count,
            "lfdr": self.lfdr,
        })


def _histogram_values(rvalues: np.ndarray) -> np.ndarray:
    values = rvalues[rvalues != 0]
    return np.where(values == 1.0, np.nextafter(1.0, 0.0), values)


def build_lfdr_histogram(rvalues: np.ndarray) -> LfdrHistogram:
    """
    Build the half-decade histogram used for LFDR estimation.

    r-values of 0 are left out; r-values of 1 are binned just below 1.
    Edges run from ``floor(-log10(max r))`` to ``ceil(-log10(min r))`` in
    steps of half a decade. When both ends fall on the same edge one more
    half decade is added, so there is always at least one bin.
    """
    values = _histogram_values(np.asarray(rvalues, dtype=float))
    if values.size == 0:
        raise DataError("No positive r-values: the log-scale LFDR histogram is undefined")
    if np.any(values < 0):
        raise DataError("Negative r-values cannot be binned on a log scale")

    d_min = math.floor(-math.log10(values.max()))
    d_max = math.ceil(-math.log10(values.min()))
    n_edges = int(round((d_max - d_min) / BIN_STEP)) + 1
    log_edges = d_min + BIN_STEP * np.arange(max(n_edges, 2))
    edges = np.power(10.0, -log_edges)

    values = np.sort(values)
    below = np.searchsorted(values, edges, side="left")
    # outer bins absorb values sitting on or past the outer edges
    below[0] = values.size
    below[-1] = 0
    hist_count = (below[:-1] - below[1:]) / values.size
    theoretical = edges[:-1] - edges[1:]

    with np.errstate(divide="ignore", invalid="ignore"):
        lfdr = np.where(hist_count > 0, theoretical / hist_count, 0.0)
    lfdr = np.minimum(lfdr, 1.0)

    logger.debug("LFDR histogram: %d bins from %g to %g", lfdr.size, edges[0], edges[-1])
    return LfdrHistogram(
        log_edges=log_edges,
        edges=edges,
        hist_count=hist_count,
        theoretical=theoretical,
        lfdr=lfdr,
    )


def estimate_lfdr(
    rvalues: np.ndarray, histogram: Optional[LfdrHistogram] = None
) -> np.ndarray:
    """
    Local FDR for every row.

    Parameters
    ----------
    rvalues : ndarray
        r-values (after duplicate resolution, if any).
    histogram : LfdrHistogram or None
        Pre-built histogram; built from ``rvalues`` when omitted.

    Returns
    -------
    lfdr : ndarray in [0, 1]. Rows with r = 0 get 1.
    """
    rvalues = np.asarray(rvalues, dtype=float)
    if histogram is None:
        histogram = build_lfdr_histogram(rvalues)

    top = np.nextafter(1.0, 0.0)
    lfdr = np.ones(rvalues.size, dtype=float)
    positive = rvalues != 0
    bins = histogram.bin_indices(np.minimum(rvalues[positive], top))
    lfdr[positive] = histogram.lfdr[bins]
    return lfdr
