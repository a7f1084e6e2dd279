"""
recap: empirical recalibration of ChIP-seq peak-caller p-values.

Public API
----------
run_recap(dir_orig, name_orig, dir_remix, name_remix, dir_output, name_output, ...)
    Full pipeline on files: load -> recalibrate -> BH -> LFDR -> write.

recalibrate(pvalues, background_pvalues, interpolate=None)
    Same computation on in-memory p-value arrays.

compute_rvalues(pvalues, null_dist)
    Empirical CDF of each p-value within the pooled null distribution.

resolve_duplicates(pvalues, rvalues)
    Linear interpolation of repeated r-values over the raw p-values.

bh_adjust(rvalues)
    Benjamini-Hochberg adjusted r-values.

estimate_lfdr(rvalues, histogram=None)
    Local FDR from a half-decade histogram of the r-values.

make_all_plots(result, output_dir, prefix="recap")
    Save standard diagnostic plots as PDFs.
"""

__version__ = "1.2.0"

from .exceptions import RecapError, ConfigurationError, ResourceError, DataError
from .filtering import CallerType, parse_caller_type, filter_rows, normalize_pvalues
from .tables import (
    ResultsTable,
    load_table,
    discover_background_files,
    load_backgrounds,
    write_table,
    write_histogram,
)
from .recalibration import build_null_distribution, compute_rvalues, resolve_duplicates
from .fdr import LfdrHistogram, bh_adjust, build_lfdr_histogram, estimate_lfdr
from .pipeline import RecapResult, recalibrate, run_recap
from .plots import (
    plot_recalibration,
    plot_rvalue_histogram,
    plot_lfdr_histogram,
    make_all_plots,
)

__all__ = [
    "RecapError",
    "ConfigurationError",
    "ResourceError",
    "DataError",
    "CallerType",
    "parse_caller_type",
    "filter_rows",
    "normalize_pvalues",
    "ResultsTable",
    "load_table",
    "discover_background_files",
    "load_backgrounds",
    "write_table",
    "write_histogram",
    "build_null_distribution",
    "compute_rvalues",
    "resolve_duplicates",
    "LfdrHistogram",
    "bh_adjust",
    "build_lfdr_histogram",
    "estimate_lfdr",
    "RecapResult",
    "recalibrate",
    "run_recap",
    "plot_recalibration",
    "plot_rvalue_histogram",
    "plot_lfdr_histogram",
    "make_all_plots",
]
