"""
Command-line interface for recap.

Usage:
    recap --dir-orig MACS_original --name-orig sample_peaks.xls \
        --dir-remix MACS_re-mix --name-remix sample --bootstrap 10 \
        --dir-output MACS_RECAP --name-output sample.RECAP_peaks.xls \
        --header 29 --pval-col 7 --delim t --software M
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from . import __version__
from .exceptions import ConfigurationError, RecapError
from .filtering import parse_caller_type
from .pipeline import run_recap
from .plots import make_all_plots
from .tables import parse_delimiter


def _non_negative_int(text):
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected a whole number >= 0, got {value}")
    return value


def _positive_int(text):
    value = _non_negative_int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a whole number >= 1, got {value}")
    return value


def _delimiter(text):
    try:
        return parse_delimiter(text)
    except ConfigurationError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def _caller(text):
    try:
        return parse_caller_type(text)
    except ConfigurationError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recap",
        description="Recalibrate peak-caller p-values against re-mixed ChIP-seq/control data",
    )
    parser.add_argument("--dir-orig", "--dirOrig", dest="dir_orig", required=True,
                        help="Original file directory")
    parser.add_argument("--name-orig", "--nameOrig", dest="name_orig", required=True,
                        help="Original file name")
    parser.add_argument("--dir-remix", "--dirRemix", dest="dir_remix", required=True,
                        help="Re-mixed file directory")
    parser.add_argument("--name-remix", "--nameRemix", dest="name_remix", required=True,
                        help="Re-mixed file name (name pattern with --bootstrap)")
    parser.add_argument("--dir-output", "--dirOutput", dest="dir_output", required=True,
                        help="Output file directory")
    parser.add_argument("--name-output", "--nameOutput", dest="name_output", required=True,
                        help="Output file name")
    parser.add_argument("--header", type=_non_negative_int, required=True,
                        help="Header lines in files")
    parser.add_argument("--pval-col", "--pvalCol", dest="pval_col", type=_positive_int,
                        required=True, help="Column containing p-values (1-based)")
    parser.add_argument("--delim", type=_delimiter, required=True,
                        help="Delimiter type of file: (t)ab or (c)omma")
    parser.add_argument("--software", type=_caller, required=True,
                        help="Peak caller: (M)ACS2, (D)iffReps or (O)ther")
    parser.add_argument("--bootstrap", type=_positive_int, default=None,
                        help="Number of re-mixed replicates to pool; files are found "
                             "by name pattern and the 'bootstrap' token")
    parser.add_argument("--bootstrap-subdir", action="store_true",
                        help="Save output to <dir-output>/bootstrap_<n>/ "
                             "(requires --bootstrap)")
    parser.add_argument("--histogram-output", default=None,
                        help="Also save the LFDR histogram table under this file name")
    parser.add_argument("--plots", action="store_true",
                        help="Also save diagnostic PDF plots to the output directory")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _print_parameters(args):
    delim_name = "tab" if args.delim == "\t" else "comma"
    print("##################################################")
    print(f"###############    RECAP v{__version__}    ###############")
    print("##################################################")
    print()
    print(f"Input directory (Original): {args.dir_orig}")
    print(f"Input file name (Original): {args.name_orig}")
    print(f"Input directory (Re-Mixed): {args.dir_remix}")
    print(f"Input file name (Re-Mixed): {args.name_remix}")
    print(f"Output directory: {args.dir_output}")
    print(f"Output file name: {args.name_output}")
    print(f"Bootstrap number: {args.bootstrap if args.bootstrap is not None else '-'}")
    print(f"Header number   : {args.header}")
    print(f"p-value column  : {args.pval_col}")
    print(f"Delimiter type  : {delim_name}")
    print(f"Peak caller type: {args.software.name}")
    print()


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.bootstrap_subdir and args.bootstrap is None:
        parser.error("--bootstrap-subdir requires --bootstrap")

    if args.verbose:
        level = logging.INFO
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if not args.quiet:
        _print_parameters(args)

    try:
        result = run_recap(
            dir_orig=args.dir_orig,
            name_orig=args.name_orig,
            dir_remix=args.dir_remix,
            name_remix=args.name_remix,
            dir_output=args.dir_output,
            name_output=args.name_output,
            header=args.header,
            pval_col=args.pval_col,
            delim=args.delim,
            software=args.software,
            bootstrap=args.bootstrap,
            bootstrap_subdir=args.bootstrap_subdir,
            histogram_output=args.histogram_output,
        )
    except RecapError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"Results saved to {result.output_path}")
        print(f"  Peaks recalibrated: {len(result.table)}")
        print(f"  Null p-values:      {result.null_dist.size}")
        print(f"  BH(RECAP) <= 0.05:  {int((result.adjusted <= 0.05).sum())}")
        print(f"  LFDR <= 0.05:       {int((result.lfdr <= 0.05).sum())}")

    if args.plots:
        plot_dir = os.path.dirname(result.output_path)
        prefix = os.path.splitext(os.path.basename(result.output_path))[0]
        paths = make_all_plots(result, output_dir=plot_dir, prefix=prefix)
        if not args.quiet:
            print(f"Plots saved to {plot_dir}/ ({len(paths)} files)")

    return 0


if __name__ == "__main__":
    sys.exit(main())
