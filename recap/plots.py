"""
Diagnostic plots for RECAP recalibration results.
"""

from __future__ import annotations

import os
from typing import List, Optional

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns

from .fdr import LfdrHistogram


def plot_recalibration(
    pvalues: np.ndarray,
    rvalues: np.ndarray,
    adjusted: Optional[np.ndarray] = None,
    ax=None,
) -> plt.Figure:
    """
    Original p-value vs recalibrated r-value on log-log axes.

    Points above the diagonal are peaks whose caller p-value was
    over-optimistic.

    Parameters
    ----------
    pvalues : ndarray
        Linear-scale p-values of the original table.
    rvalues : ndarray
        r-values returned by the pipeline.
    adjusted : ndarray or None
        BH-adjusted r-values, drawn as a second series when given.
    ax : matplotlib Axes or None
        Axes to plot on. If None, a new figure is created.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(5, 5))
    else:
        fig = ax.get_figure()

    pvalues = np.asarray(pvalues, dtype=float)
    rvalues = np.asarray(rvalues, dtype=float)
    keep = (pvalues > 0) & (rvalues > 0)
    ax.scatter(pvalues[keep], rvalues[keep], s=6, alpha=0.5, color="steelblue",
               label="RECAP")
    if adjusted is not None:
        adjusted = np.asarray(adjusted, dtype=float)
        ax.scatter(pvalues[keep], adjusted[keep], s=6, alpha=0.5, color="#c0392b",
                   label="BH(RECAP)")

    lo = min(pvalues[keep].min(), rvalues[keep].min()) if keep.any() else 1e-3
    ax.plot([lo, 1], [lo, 1], "k--", linewidth=1)
    ax.set_xscale("log")
    ax.set_yscale("log")
    ax.set_xlabel("Original p-value")
    ax.set_ylabel("Recalibrated value")
    n_zero = int((rvalues == 0).sum())
    ax.set_title(f"Recalibration ({n_zero} peaks with r = 0 not shown)")
    ax.legend(loc="best", fontsize=8)
    plt.tight_layout()
    return fig


def plot_rvalue_histogram(
    rvalues: np.ndarray,
    bins: int = 40,
    ax=None,
) -> plt.Figure:
    """
    Histogram of r-values with the uniform density expected under the null.

    Parameters
    ----------
    rvalues : ndarray
    bins : int
        Number of equal-width bins on [0, 1].
    ax : matplotlib Axes or None
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6.4, 4.8))
    else:
        fig = ax.get_figure()

    sns.histplot(x=rvalues, bins=np.linspace(0, 1, bins + 1), stat="density",
                 color="steelblue", alpha=0.7, ax=ax)
    ax.axhline(1.0, linestyle="--", color="k", linewidth=1.2, label="uniform null")
    ax.set_xlabel("r-value")
    ax.set_ylabel("Density")
    ax.set_title(f"r-value distribution (n={len(rvalues)})")
    ax.legend(loc="best", fontsize=8)
    plt.tight_layout()
    return fig


def plot_lfdr_histogram(histogram: LfdrHistogram) -> plt.Figure:
    """
    Two-panel view of the half-decade histogram.

    Left: observed fraction of r-values per bin against the uniform
    expectation (bin width). Right: LFDR per bin.

    Parameters
    ----------
    histogram : LfdrHistogram returned by the pipeline.
    """
    frame = histogram.to_frame()
    labels = [f"{edge:.2g}" for edge in frame["edge"]]
    x = np.arange(len(frame))

    fig, axes = plt.subplots(1, 2, figsize=(10, 4))

    width = 0.4
    axes[0].bar(x - width / 2, frame["hist_count"], width=width, color="steelblue",
                label="observed")
    axes[0].bar(x + width / 2, frame["theoretical"], width=width, color="grey",
                label="uniform")
    axes[0].set_xticks(x)
    axes[0].set_xticklabels(labels, rotation=45, ha="right", fontsize=7)
    axes[0].set_xlabel("Bin upper edge")
    axes[0].set_ylabel("Fraction of r-values")
    axes[0].legend(fontsize=8)

    axes[1].bar(x, frame["lfdr"], color="#1a5fa8")
    axes[1].set_xticks(x)
    axes[1].set_xticklabels(labels, rotation=45, ha="right", fontsize=7)
    axes[1].set_ylim(0, 1.05)
    axes[1].set_xlabel("Bin upper edge")
    axes[1].set_ylabel("LFDR")
    axes[1].set_title(f"{histogram.n_bins} half-decade bins")

    plt.tight_layout()
    return fig


def make_all_plots(result, output_dir: str, prefix: str = "recap") -> List[str]:
    """
    Save all standard plots as PDFs into ``output_dir``.

    Files created:
    - {prefix}_recalibration.pdf
    - {prefix}_rvalue_histogram.pdf
    - {prefix}_lfdr_histogram.pdf

    Parameters
    ----------
    result : RecapResult returned by run_recap.
    output_dir : str
        Directory where PDFs are saved (created if it doesn't exist).
    prefix : str
        File name prefix.

    Returns
    -------
    List of the paths written.
    """
    os.makedirs(output_dir, exist_ok=True)
    paths = []

    figures = [
        ("recalibration", plot_recalibration(
            result.table.pvalues, result.rvalues, result.adjusted)),
        ("rvalue_histogram", plot_rvalue_histogram(result.rvalues)),
        ("lfdr_histogram", plot_lfdr_histogram(result.histogram)),
    ]
    for name, fig in figures:
        path = os.path.join(output_dir, f"{prefix}_{name}.pdf")
        fig.savefig(path, transparent=True)
        plt.close(fig)
        paths.append(path)
    return paths
