"""
Main RECAP pipeline: load -> recalibrate -> interpolate -> BH -> LFDR -> write.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError, DataError, ResourceError
from .fdr import LfdrHistogram, bh_adjust, build_lfdr_histogram, estimate_lfdr
from .filtering import CallerType, parse_caller_type
from .recalibration import build_null_distribution, compute_rvalues, resolve_duplicates
from .tables import (
    OUTPUT_COLUMNS,
    ResultsTable,
    discover_background_files,
    load_backgrounds,
    load_table,
    parse_delimiter,
    write_histogram,
    write_table,
)

logger = logging.getLogger(__name__)


@dataclass
class RecapResult:
    """
    Everything computed for one original table.

    ``rvalues``, ``adjusted`` and ``lfdr`` are aligned with ``table.rows``.
    """

    table: ResultsTable
    null_dist: np.ndarray
    rvalues: np.ndarray
    adjusted: np.ndarray
    lfdr: np.ndarray
    histogram: LfdrHistogram
    background_files: List[str]
    output_path: Optional[str] = None

    def to_frame(self) -> pd.DataFrame:
        """Original fields plus the RECAP, BH(RECAP) and LFDR columns."""
        frame = self.table.rows.copy()
        frame["pvalue"] = self.table.pvalues
        for col, values in zip(OUTPUT_COLUMNS, (self.rvalues, self.adjusted, self.lfdr)):
            frame[col] = values
        return frame


def recalibrate(
    pvalues: np.ndarray,
    background_pvalues: Sequence[np.ndarray],
    interpolate: Optional[bool] = None,
):
    """
    Recalibrate original p-values against pooled re-mixed p-values.

    Parameters
    ----------
    pvalues : ndarray
        Linear-scale p-values of the original table.
    background_pvalues : sequence of ndarray
        Linear-scale p-values of each re-mixed replicate.
    interpolate : bool or None
        Resolve duplicate r-values by linear interpolation. Defaults to True
        when more than one replicate is pooled.

    Returns
    -------
    null_dist : ndarray
        Sorted pooled null distribution.
    rvalues : ndarray
        Empirical r-values (interpolated if requested).
    adjusted : ndarray
        Benjamini-Hochberg adjusted r-values.
    lfdr : ndarray
        Local FDR per row.
    histogram : LfdrHistogram
        The histogram the LFDR values were read from.
    """
    pvalues = np.asarray(pvalues, dtype=float)
    if pvalues.size == 0:
        raise DataError("Original table has no rows to recalibrate")
    if interpolate is None:
        interpolate = len(background_pvalues) > 1

    # --- 1. Null distribution ---
    null_dist = build_null_distribution(background_pvalues)
    logger.info("Null distribution: %d p-values from %d replicate(s)",
                null_dist.size, len(background_pvalues))

    # --- 2. Empirical r-values ---
    rvalues = compute_rvalues(pvalues, null_dist)

    # --- 3. Duplicate resolution (pooled replicates only) ---
    if interpolate:
        rvalues = resolve_duplicates(pvalues, rvalues)

    # --- 4. BH adjustment ---
    adjusted = bh_adjust(rvalues)

    # --- 5. LFDR ---
    histogram = build_lfdr_histogram(rvalues)
    lfdr = estimate_lfdr(rvalues, histogram)

    return null_dist, rvalues, adjusted, lfdr, histogram


def output_directory(dir_output: str, bootstrap: Optional[int], bootstrap_subdir: bool) -> str:
    """Directory the annotated table goes to (``bootstrap_<n>`` when requested)."""
    if not os.path.isdir(dir_output):
        raise ResourceError(f"Directory for output does not exist: {dir_output}")
    if bootstrap_subdir:
        if bootstrap is None:
            raise ConfigurationError("A bootstrap subfolder needs a bootstrap number")
        return os.path.join(dir_output, f"bootstrap_{bootstrap}")
    return dir_output


def run_recap(
    dir_orig: str,
    name_orig: str,
    dir_remix: str,
    name_remix: str,
    dir_output: str,
    name_output: str,
    header: int,
    pval_col: int,
    delim: str = "t",
    software="O",
    bootstrap: Optional[int] = None,
    bootstrap_subdir: bool = False,
    histogram_output: Optional[str] = None,
) -> RecapResult:
    """
    Full RECAP run on files: recalibrate one original table and write it.

    Parameters
    ----------
    dir_orig, name_orig : str
        Original peak-caller results table.
    dir_remix, name_remix : str
        Re-mixed results. With ``bootstrap`` set, ``name_remix`` is a name
        pattern and the first ``bootstrap`` files whose name contains it and
        'bootstrap' are pooled. Otherwise it is a single file name.
    dir_output, name_output : str
        Where the annotated table is written.
    header : int
        Header lines in every table (>= 0).
    pval_col : int
        1-based p-value column (>= 1).
    delim : str
        'c'/'comma' or 't'/'tab'.
    software : str or CallerType
        'M' (MACS, -log10 p), 'D' (diffReps, Up rows only) or 'O' (other).
    bootstrap : int or None
        Number of re-mixed replicates to pool.
    bootstrap_subdir : bool
        Write into ``<dir_output>/bootstrap_<bootstrap>/`` (created if needed).
    histogram_output : str or None
        File name (in the output directory) for the LFDR histogram table.

    Returns
    -------
    RecapResult with ``output_path`` set.
    """
    delimiter = parse_delimiter(delim)
    caller = parse_caller_type(software)
    out_dir = output_directory(dir_output, bootstrap, bootstrap_subdir)

    # --- 1. Load ---
    logger.info("Reading original summary file")
    table = load_table(dir_orig, name_orig, header, pval_col, delimiter, caller)

    if bootstrap is None:
        background_files = [name_remix]
    else:
        background_files = discover_background_files(dir_remix, name_remix, bootstrap)
    logger.info("Reading %d re-mixed summary file(s)", len(background_files))
    backgrounds = load_backgrounds(
        dir_remix, background_files, header, pval_col, delimiter, caller
    )

    # --- 2. Compute ---
    null_dist, rvalues, adjusted, lfdr, histogram = recalibrate(
        table.pvalues, [bg.pvalues for bg in backgrounds]
    )

    # --- 3. Write (only once everything above succeeded) ---
    os.makedirs(out_dir, exist_ok=True)
    output_path = write_table(
        os.path.join(out_dir, name_output), table, rvalues, adjusted, lfdr
    )
    if histogram_output:
        write_histogram(os.path.join(out_dir, histogram_output), histogram)

    return RecapResult(
        table=table,
        null_dist=null_dist,
        rvalues=rvalues,
        adjusted=adjusted,
        lfdr=lfdr,
        histogram=histogram,
        background_files=background_files,
        output_path=output_path,
    )
