"""
Similarity matrix loading and validation.

The input is a whitespace-delimited text file holding an n x n numeric matrix
with no header row. Rows and columns are indexed by the same node ids; when no
ids are supplied the zero-based row position is used.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def load_node_ids(path: Path) -> list[str]:
    """One id per line, blank lines ignored."""
    with path.open("r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def check_row_lengths(path: Path) -> None:
    """Every non-blank line must hold as many fields as there are lines."""
    with path.open("r", encoding="utf-8") as f:
        widths = [len(line.split()) for line in f if line.strip()]

    if len(set(widths)) > 1:
        short = [i for i, w in enumerate(widths) if w != max(widths)]
        raise ValueError(
            f"Similarity matrix rows have unequal lengths: {path} "
            f"(rows {short[:5]} have fewer than {max(widths)} fields)"
        )
    if widths and widths[0] != len(widths):
        raise ValueError(
            f"Similarity matrix must be square, got {len(widths)} rows of {widths[0]} fields: {path}"
        )


def load_similarity_matrix(path: Path, node_ids: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Read a square similarity matrix from a whitespace-delimited file.

    Parameters
    ----------
    path
        Text file, one matrix row per line, no header.
    node_ids
        Optional labels for rows/columns. Defaults to "0".."n-1".

    Returns
    -------
    DataFrame of floats with identical index and columns.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ValueError
        If the file is empty, ragged, non-numeric or not square.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Similarity matrix not found: {path}")

    check_row_lengths(path)

    try:
        raw = pd.read_csv(path, sep=r"\s+", header=None, engine="python")
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Similarity matrix file is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise ValueError(f"Similarity matrix rows have unequal lengths: {path}") from e

    n = raw.shape[0]
    ids = [str(i) for i in range(n)] if node_ids is None else [str(i) for i in node_ids]
    if len(ids) != n:
        raise ValueError(f"Got {len(ids)} node ids for a matrix with {n} rows")

    raw.index = ids
    if raw.shape[1] == n:
        raw.columns = ids

    df = validate_similarity_matrix(raw)
    logger.info("Loaded %dx%d similarity matrix from %s", n, n, path)
    return df


def validate_similarity_matrix(df: pd.DataFrame) -> pd.DataFrame:
    """
    Check that ``df`` is a square numeric matrix with matching, unique labels.

    Returns a float copy. NaN entries are allowed and mean "undefined".
    """
    if df.shape[0] == 0:
        raise ValueError("Similarity matrix is empty")
    if df.shape[0] != df.shape[1]:
        raise ValueError(f"Similarity matrix must be square, got shape {df.shape}")

    if not (df.index.is_unique and df.columns.is_unique):
        raise ValueError("Similarity matrix node ids must be unique")

    non_numeric = [c for c, t in df.dtypes.items() if not pd.api.types.is_numeric_dtype(t)]
    if non_numeric:
        raise ValueError(f"Similarity matrix has non-numeric columns: {non_numeric[:5]}")

    if list(df.index) != list(df.columns):
        raise ValueError("Similarity matrix rows and columns must carry the same node ids")

    out = df.astype(float)
    out.index = out.index.astype(str)
    out.columns = out.index

    if not np.allclose(out.values, out.values.T, equal_nan=True):
        logger.warning("Similarity matrix is not symmetric; only the upper triangle is used for edges")
    return out


def feature_matrix(
    df: pd.DataFrame,
    fill_diagonal: Optional[float] = None,
    fill_missing: float = 0.0,
) -> np.ndarray:
    """Dense feature array for k-means / hierarchical clustering, one row per node."""
    x = df.to_numpy(dtype=float, copy=True)
    x[np.isnan(x)] = fill_missing
    if fill_diagonal is not None:
        np.fill_diagonal(x, float(fill_diagonal))
    return x


def matrix_summary(df: pd.DataFrame) -> Dict[str, float]:
    x = df.to_numpy(dtype=float)
    finite = x[np.isfinite(x)]
    return {
        "n_nodes": int(x.shape[0]),
        "symmetric": bool(np.allclose(x, x.T, equal_nan=True)),
        "min_value": float(finite.min()) if finite.size else np.nan,
        "max_value": float(finite.max()) if finite.size else np.nan,
        "n_missing": int(np.isnan(x).sum()),
    }
