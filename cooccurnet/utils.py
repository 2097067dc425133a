from __future__ import annotations

import random
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List

import igraph as ig
import matplotlib.pyplot as plt
import seaborn as sns
import yaml


def load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def deep_get(d: Dict[str, Any], keys: List[str], default: Any = None) -> Any:
    cur: Any = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


@contextmanager
def igraph_seed(seed: int) -> Iterator[None]:
    """Give igraph its own seeded generator; the global ``random`` state is left alone."""
    ig.set_random_number_generator(random.Random(int(seed)))
    try:
        yield
    finally:
        ig.set_random_number_generator(random)


def ensure_dirs(*dirs: Path) -> None:
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)


def save_figure(fig: plt.Figure, out_base: Path, formats: List[str]) -> List[Path]:
    written = []
    for ext in formats:
        out = out_base.with_suffix(f".{ext}")
        fig.savefig(out, bbox_inches="tight", dpi=300)
        written.append(out)
    return written


def set_seaborn_paper_context(font_scale=1.2) -> None:
    sns.set_theme(
        context="paper",
        style="white",         # no grid behind network drawings
        font="sans-serif",
        font_scale=font_scale,
        rc={
            "axes.spines.right": False,
            "axes.spines.top": False,
            "axes.linewidth": 0.8,
        }
    )
