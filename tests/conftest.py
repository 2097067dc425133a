from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


def block_matrix(n_blocks: int = 3, block_size: int = 4, within: float = 0.9, between: float = 0.1,
                 n_isolated: int = 1, isolated_value: float = 0.05) -> pd.DataFrame:
    """Symmetric similarity matrix: dense blocks plus nodes weakly tied to everything."""
    n = n_blocks * block_size + n_isolated
    x = np.full((n, n), between)
    for b in range(n_blocks):
        s = slice(b * block_size, (b + 1) * block_size)
        x[s, s] = within
    for i in range(n_blocks * block_size, n):
        x[i, :] = isolated_value
        x[:, i] = isolated_value
    np.fill_diagonal(x, 1.0)
    ids = [str(i) for i in range(n)]
    return pd.DataFrame(x, index=ids, columns=ids)


@pytest.fixture
def blocks() -> pd.DataFrame:
    return block_matrix()


@pytest.fixture
def noisy_matrix() -> pd.DataFrame:
    """Random symmetric matrix in [0, 1] with a few undefined entries."""
    rng = np.random.default_rng(0)
    x = rng.uniform(0, 1, size=(25, 25))
    x = (x + x.T) / 2
    x[3, 7] = x[7, 3] = np.nan
    x[10, 11] = x[11, 10] = np.nan
    np.fill_diagonal(x, 1.0)
    ids = [str(i) for i in range(25)]
    return pd.DataFrame(x, index=ids, columns=ids)


@pytest.fixture
def matrix_file(tmp_path, blocks):
    path = tmp_path / "similarity.txt"
    np.savetxt(path, blocks.to_numpy(), fmt="%.4f")
    return path
