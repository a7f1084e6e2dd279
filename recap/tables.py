"""
Reading and writing peak-caller results tables.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError, DataError, ResourceError
from .filtering import CallerType, filter_rows, normalize_pvalues

logger = logging.getLogger(__name__)

DELIMITERS = {
    "c": ",",
    "comma": ",",
    "t": "\t",
    "tab": "\t",
}

OUTPUT_COLUMNS = ("RECAP", "BH(RECAP)", "LFDR")
HISTOGRAM_COLUMNS = ("-log10(Bin)", "bin(Edge)", "bin(Width)", "hist(RECAP)", "hist(LFDR)")

# Bytes that are not UTF-8 pass through to the output unchanged.
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"

BOOTSTRAP_TOKEN = "bootstrap"
_REPLICATE_RE = re.compile(r"bootstrap_(\d+)")


@dataclass
class ResultsTable:
    """One peak-caller results table after header removal and filtering."""

    rows: pd.DataFrame
    pvalues: np.ndarray
    delimiter: str
    header: List[str] = field(default_factory=list)
    source: str = ""

    def __len__(self) -> int:
        return len(self.rows)


def parse_delimiter(token: str) -> str:
    """Map 'c'/'comma' or 't'/'tab' (any case) to the delimiter character."""
    if token in (",", "\t"):
        return token
    try:
        return DELIMITERS[str(token).strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unrecognized delimiter {token!r}: specify 'c' for comma or 't' for tab"
        ) from None


def _resolve(directory: str, name: str, what: str) -> str:
    if not os.path.isdir(directory):
        raise ResourceError(f"Directory of {what} does not exist: {directory}")
    path = os.path.join(directory, name)
    if not os.path.isfile(path):
        raise ResourceError(f"{what.capitalize()} does not exist: {path}")
    return path


def _split_lines(path: str, header: int):
    with open(path, "r", encoding=ENCODING, errors=ENCODING_ERRORS, newline="") as fh:
        lines = fh.read().splitlines(keepends=True)
    return lines[:header], lines[header:]


def _parse_rows(body: Sequence[str], delimiter: str, first_line: int) -> pd.DataFrame:
    """
    Split every non-blank line on ``delimiter``.

    Rows may differ in width; short rows are padded with None. The frame is
    indexed by the 1-based line number in the file.
    """
    fields = []
    line_numbers = []
    for offset, line in enumerate(body):
        if not line.strip():
            continue
        fields.append(line.rstrip("\r\n").split(delimiter))
        line_numbers.append(first_line + offset)
    if not fields:
        return pd.DataFrame(dtype=str)
    return pd.DataFrame(fields, index=line_numbers, dtype=object)


def _extract_pvalues(rows: pd.DataFrame, pval_col: int, source: str) -> np.ndarray:
    if rows.empty:
        return np.empty(0, dtype=float)
    if pval_col > rows.shape[1]:
        raise DataError(
            f"p-value column {pval_col} exceeds the {rows.shape[1]} fields of {source}"
        )
    raw = rows.iloc[:, pval_col - 1]
    short = raw.isna().to_numpy()
    if short.any():
        line = raw.index[int(np.flatnonzero(short)[0])]
        raise DataError(f"Line {line} of {source} has fewer than {pval_col} fields")

    values = pd.to_numeric(raw, errors="coerce")
    bad = values.isna().to_numpy()
    if bad.any():
        first = int(np.flatnonzero(bad)[0])
        raise DataError(
            f"Missing or non-numeric p-value {raw.iloc[first]!r} in column {pval_col} "
            f"of {source} (line {raw.index[first]})"
        )
    return values.to_numpy(dtype=float)


def load_table(
    directory: str,
    name: str,
    header: int,
    pval_col: int,
    delimiter: str,
    caller: CallerType,
    what: str = "original file",
) -> ResultsTable:
    """
    Load one results table.

    Parameters
    ----------
    directory, name : str
        Location of the table.
    header : int
        Number of leading lines to keep verbatim as the header.
    pval_col : int
        1-based column holding the p-value (or -log10 p for log-p callers).
    delimiter : str
        ',' or '\\t'. Fields are never quoted.
    caller : CallerType
        Selects row filtering and p-value normalization.
    what : str
        Description used in error messages.

    Returns
    -------
    ResultsTable whose ``pvalues`` are linear-scale and aligned with ``rows``.
    """
    path = _resolve(directory, name, what)
    head, body = _split_lines(path, header)
    rows = _parse_rows(body, delimiter, first_line=len(head) + 1)
    n_read = len(rows)
    rows = filter_rows(rows, caller, delimiter)
    if len(rows) != n_read:
        logger.info("Kept %d of %d rows of %s", len(rows), n_read, path)

    pvalues = normalize_pvalues(_extract_pvalues(rows, pval_col, path), caller)
    logger.debug("Loaded %d rows from %s", len(rows), path)
    return ResultsTable(
        rows=rows.reset_index(drop=True),
        pvalues=pvalues,
        delimiter=delimiter,
        header=head,
        source=path,
    )


def _replicate_key(name: str):
    match = _REPLICATE_RE.search(name)
    number = int(match.group(1)) if match else float("inf")
    return (number, name)


def discover_background_files(directory: str, pattern: str, bootstrap: int) -> List[str]:
    """
    Find the first ``bootstrap`` re-mixed files in ``directory``.

    A file qualifies when its name contains both ``pattern`` and the
    'bootstrap' token. Files are ordered by replicate number
    (``bootstrap_<n>``), then by name.
    """
    if not os.path.isdir(directory):
        raise ResourceError(f"Directory of re-mixed file does not exist: {directory}")
    names = [
        entry for entry in os.listdir(directory)
        if pattern in entry and BOOTSTRAP_TOKEN in entry
        and os.path.isfile(os.path.join(directory, entry))
    ]
    if not names:
        raise ResourceError(
            f"Re-mixed file does not exist: no file in {directory} matches "
            f"{pattern!r} and {BOOTSTRAP_TOKEN!r}"
        )
    if bootstrap > len(names):
        raise ConfigurationError(
            f"Bootstrap number {bootstrap} exceeds the {len(names)} re-mixed files found"
        )
    names.sort(key=_replicate_key)
    return names[:bootstrap]


def load_backgrounds(
    directory: str,
    names: Sequence[str],
    header: int,
    pval_col: int,
    delimiter: str,
    caller: CallerType,
) -> List[ResultsTable]:
    """Load every background (re-mixed) table with the original's conventions."""
    return [
        load_table(directory, name, header, pval_col, delimiter, caller,
                   what="re-mixed file")
        for name in names
    ]


def _format_value(value: float) -> str:
    return repr(float(value))


def _atomic_write(path: str, lines) -> None:
    tmp_path = path + ".tmp"
    try:
        with open(tmp_path, "w", encoding=ENCODING, errors=ENCODING_ERRORS,
                  newline="") as fh:
            fh.writelines(lines)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def format_table(
    table: ResultsTable,
    rvalues: np.ndarray,
    adjusted: np.ndarray,
    lfdr: np.ndarray,
) -> List[str]:
    """Render the annotated table as output lines (header included)."""
    d = table.delimiter
    lines = list(table.header)
    if lines:
        lines[-1] = lines[-1].rstrip("\r\n") + d + d.join(OUTPUT_COLUMNS) + "\n"

    for fields, r, adj, lf in zip(table.rows.itertuples(index=False, name=None),
                                  rvalues, adjusted, lfdr):
        out = [f for f in fields if isinstance(f, str)]
        out.extend((_format_value(r), _format_value(adj), _format_value(lf)))
        lines.append(d.join(out) + "\n")
    return lines


def write_table(
    path: str,
    table: ResultsTable,
    rvalues: np.ndarray,
    adjusted: np.ndarray,
    lfdr: np.ndarray,
) -> str:
    """
    Write ``table`` with the RECAP, BH(RECAP) and LFDR columns appended.

    The output is written to a temporary file next to ``path`` and moved into
    place, so an interrupted run leaves no partial file.
    """
    if not (len(table) == len(rvalues) == len(adjusted) == len(lfdr)):
        raise DataError("Computed columns do not match the number of table rows")
    _atomic_write(path, format_table(table, rvalues, adjusted, lfdr))
    logger.info("Wrote %d rows to %s", len(table), path)
    return path


def write_histogram(path: str, histogram, delimiter: str = "\t") -> str:
    """Write the per-bin LFDR histogram (one line per bin, tab separated)."""
    frame = histogram.to_frame()
    lines = [delimiter.join(HISTOGRAM_COLUMNS) + "\n"]
    for values in frame.itertuples(index=False, name=None):
        lines.append(delimiter.join(_format_value(v) for v in values) + "\n")
    _atomic_write(path, lines)
    return path
