"""
Build a thresholded, simplified weighted graph from a similarity matrix.

Notes
-----
- Only the upper triangle is read, so symmetric entries are not counted twice.
- The diagonal is read too; the resulting loops are stripped by ``simplify``.
- Nodes whose similarities all fall below the threshold stay in the graph as
  isolates; downstream cluster accounting relies on them.
- networkx is used for the component diagnostics only.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

import igraph as ig
import networkx as nx
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


# -----------------------------
# Sparsification
# -----------------------------

def upper_triangle_edges(matrix: pd.DataFrame, threshold: float) -> pd.DataFrame:
    """
    Pairwise edge table (NodeA, NodeB, weight) from the upper triangle of ``matrix``.

    Entries that are undefined, exactly zero, or below ``threshold`` are dropped.
    """
    x = matrix.to_numpy(dtype=float)
    ia, ib = np.triu_indices(x.shape[0], k=0)
    w = x[ia, ib]

    with np.errstate(invalid="ignore"):
        keep = np.isfinite(w) & (w != 0) & (w >= float(threshold))

    return pd.DataFrame({
        "NodeA": ia[keep],
        "NodeB": ib[keep],
        "weight": w[keep],
    })


def simplify_graph(graph: ig.Graph) -> ig.Graph:
    """Copy of ``graph`` without loops and with parallel edges collapsed (max weight kept)."""
    g = graph.copy()
    combine = "max" if "weight" in g.es.attributes() else None
    g.simplify(multiple=True, loops=True, combine_edges=combine)
    return g


def build_adjacency_graph(matrix: pd.DataFrame, threshold: float = 0.6) -> ig.Graph:
    """
    Undirected weighted igraph with one vertex per matrix row.

    Vertex attribute ``node_id`` carries the matrix label; edge attribute
    ``weight`` carries the similarity. Every retained weight is >= ``threshold``.

    ``threshold`` must be positive; a zero entry always means "no edge", so a
    non-positive threshold could not be honoured for every pair.
    """
    if not np.isfinite(threshold) or threshold <= 0:
        raise ValueError(f"threshold must be a positive number, got {threshold!r}")

    node_ids = [str(i) for i in matrix.index]
    pairs = upper_triangle_edges(matrix, threshold)

    g = ig.Graph(n=len(node_ids), edges=list(zip(pairs["NodeA"].tolist(), pairs["NodeB"].tolist())),
                 directed=False)
    g.vs["node_id"] = node_ids
    if g.ecount():
        g.es["weight"] = pairs["weight"].astype(float).tolist()

    g = simplify_graph(g)

    if g.ecount() == 0:
        logger.warning("No similarity reached threshold %.3g; every node is isolated", threshold)
    logger.info("Built graph: %d nodes, %d edges (threshold=%.3g)", g.vcount(), g.ecount(), threshold)
    return g


def edge_frame(graph: ig.Graph) -> pd.DataFrame:
    """Edges as NodeA, NodeB, weight using ``node_id`` labels."""
    ids = graph.vs["node_id"]
    rows = [(ids[e.source], ids[e.target], float(e["weight"])) for e in graph.es]
    return pd.DataFrame(rows, columns=["NodeA", "NodeB", "weight"])


# -----------------------------
# Diagnostics
# -----------------------------

def to_networkx(graph: ig.Graph) -> nx.Graph:
    """networkx copy keyed by ``node_id``; isolates included."""
    g = nx.Graph()
    g.add_nodes_from(graph.vs["node_id"])
    df = edge_frame(graph)
    if len(df):
        g.add_weighted_edges_from(df.to_records(index=False).tolist(), weight="weight")
    return g


def graph_summary(graph: ig.Graph) -> Dict[str, Any]:
    g = to_networkx(graph)
    n = g.number_of_nodes()
    m = g.number_of_edges()

    if n == 0:
        return {
            "n_nodes": 0,
            "n_edges": 0,
            "density": np.nan,
            "n_components": 0,
            "n_isolates": 0,
            "giant_component_size": 0,
            "giant_component_frac": np.nan,
        }

    density = (2 * m) / (n * (n - 1)) if n > 1 else np.nan
    sizes = np.array([len(c) for c in nx.connected_components(g)], dtype=int)
    giant = int(sizes.max()) if sizes.size else 0
    return {
        "n_nodes": int(n),
        "n_edges": int(m),
        "density": float(density),
        "n_components": int(sizes.size),
        "n_isolates": int(nx.number_of_isolates(g)),
        "giant_component_size": giant,
        "giant_component_frac": float(giant / n),
    }


def threshold_scan(matrix: pd.DataFrame, thresholds: Iterable[float]) -> pd.DataFrame:
    """Edge and weight retention across candidate thresholds."""
    ref = upper_triangle_edges(matrix, threshold=-np.inf)
    ref = ref[ref["NodeA"] != ref["NodeB"]]
    m_ref = len(ref)
    w_ref = float(ref["weight"].sum()) if m_ref else 0.0

    rows: List[Dict[str, Any]] = []
    for t in sorted(float(t) for t in thresholds):
        g = build_adjacency_graph(matrix, threshold=t)
        w = float(sum(g.es["weight"])) if g.ecount() else 0.0
        rows.append({
            "threshold": t,
            "n_edges": int(g.ecount()),
            "edge_retention_frac": float(g.ecount() / m_ref) if m_ref else np.nan,
            "weight_retention_frac": float(w / w_ref) if w_ref else np.nan,
            "n_isolates": int(sum(1 for d in g.degree() if d == 0)),
        })
    return pd.DataFrame(rows)
