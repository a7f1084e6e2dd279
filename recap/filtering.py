"""
Peak-caller conventions: row filtering and p-value normalization.
"""

from __future__ import annotations

from enum import Enum

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError


# diffReps mixes gain and loss rows; only gains are comparable.
UP_MARKER = "Up"


class CallerType(Enum):
    """
    Closed set of peak-caller behaviours understood by the loader.

    - ``LOG_P``: the p-value column holds -log10(p) (MACS).
    - ``DIRECTIONAL``: rows are tagged Up/Down; only Up rows are kept (diffReps).
    - ``PLAIN``: the p-value column is used as-is (SICER and others).
    """

    LOG_P = "M"
    DIRECTIONAL = "D"
    PLAIN = "O"


_CALLER_TOKENS = {
    "m": CallerType.LOG_P,
    "macs": CallerType.LOG_P,
    "macs2": CallerType.LOG_P,
    "log-p": CallerType.LOG_P,
    "d": CallerType.DIRECTIONAL,
    "diffreps": CallerType.DIRECTIONAL,
    "directional": CallerType.DIRECTIONAL,
    "o": CallerType.PLAIN,
    "other": CallerType.PLAIN,
    "plain": CallerType.PLAIN,
}


def parse_caller_type(token) -> CallerType:
    """Map a command-line token (case-insensitive) to a CallerType."""
    if isinstance(token, CallerType):
        return token
    try:
        return _CALLER_TOKENS[str(token).strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unrecognized peak caller {token!r}: specify 'M' for MACS, "
            "'D' for diffReps, 'O' for other"
        ) from None


def filter_rows(rows: pd.DataFrame, caller: CallerType, delimiter: str) -> pd.DataFrame:
    """
    Drop rows that are not statistically comparable for ``caller``.

    For directional callers a row is kept when its original line contains
    ``UP_MARKER``. Other callers keep every row.

    Parameters
    ----------
    rows : DataFrame of string fields, one row per table line.
    caller : CallerType
    delimiter : str
        Field separator used to rebuild the original line for matching.

    Returns
    -------
    Filtered copy of ``rows`` keeping its index (the input is not modified).
    """
    if caller is not CallerType.DIRECTIONAL or rows.empty:
        return rows.copy()

    lines = rows.apply(
        lambda fields: delimiter.join(f for f in fields if isinstance(f, str)), axis=1
    )
    keep = lines.str.contains(UP_MARKER, regex=False).to_numpy(dtype=bool)
    return rows.loc[keep].copy()


def normalize_pvalues(values: np.ndarray, caller: CallerType) -> np.ndarray:
    """Convert the raw column to linear-scale p-values (10 ** -x for log-p callers)."""
    values = np.asarray(values, dtype=float)
    if caller is CallerType.LOG_P:
        return np.power(10.0, -values)
    return values
