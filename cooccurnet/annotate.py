"""Join the three label sets and display sizes onto one graph."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, List, Mapping, Sequence, Union

import igraph as ig
import numpy as np
import pandas as pd
from numpy.random import default_rng
from sklearn.metrics import adjusted_rand_score

logger = logging.getLogger(__name__)

METHODS = ("kmeans", "community", "hierarchical")


@dataclass(frozen=True)
class ClusterLabel:
    """Cluster id tagged with the method that produced it."""

    method: str
    value: Union[int, str]

    def __post_init__(self):
        if self.method not in METHODS:
            raise ValueError(f"Unknown clustering method {self.method!r}; expected one of {METHODS}")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class NodeAnnotation:
    node_id: str
    kmeans: ClusterLabel
    community: ClusterLabel
    hierarchical: ClusterLabel
    size: float

    def label(self, method: str) -> ClusterLabel:
        if method not in METHODS:
            raise ValueError(f"Unknown clustering method {method!r}; expected one of {METHODS}")
        return getattr(self, method)


@dataclass(frozen=True, eq=False)
class AnnotatedGraph:
    """
    Graph plus one ``NodeAnnotation`` per vertex, in vertex order.

    The graph is a private copy; renderers only read from it.
    """

    graph: ig.Graph
    nodes: tuple

    @property
    def node_ids(self) -> List[str]:
        return [n.node_id for n in self.nodes]

    def labels(self, method: str) -> pd.Series:
        return pd.Series([n.label(method).value for n in self.nodes], index=self.node_ids, name=method)

    def sizes(self) -> pd.Series:
        return pd.Series([n.size for n in self.nodes], index=self.node_ids, name="size")

    def neighbours(self, node_id: str) -> List[str]:
        v = self.graph.vs.find(node_id=str(node_id)).index
        return [self.graph.vs[u]["node_id"] for u in self.graph.neighbors(v)]

    def to_frame(self) -> pd.DataFrame:
        degree = self.graph.degree()
        return pd.DataFrame({
            "node_id": self.node_ids,
            "kmeans": [n.kmeans.value for n in self.nodes],
            "community": [str(n.community.value) for n in self.nodes],
            "hierarchical": [n.hierarchical.value for n in self.nodes],
            "size": [n.size for n in self.nodes],
            "degree": degree,
        })


def sample_display_sizes(
    node_ids: Sequence[str],
    low: float = 1.0,
    high: float = 10.0,
    random_seed: int = 7,
) -> pd.Series:
    """Synthetic per-node display sizes drawn uniformly from [low, high)."""
    if high < low:
        raise ValueError(f"display size range is empty: [{low}, {high})")
    rng = default_rng(int(random_seed))
    return pd.Series(rng.uniform(low, high, size=len(node_ids)), index=[str(i) for i in node_ids], name="size")


def _lookup(mapping: Mapping, node_ids: Sequence[str], name: str) -> list:
    missing = [n for n in node_ids if n not in mapping]
    if missing:
        shown = ", ".join(missing[:10])
        more = f" (+{len(missing) - 10} more)" if len(missing) > 10 else ""
        raise ValueError(f"{name} labels missing for {len(missing)} node(s): {shown}{more}")
    return [mapping[n] for n in node_ids]


def _as_python(v):
    return v.item() if isinstance(v, np.generic) else v


def annotate_graph(
    graph: ig.Graph,
    kmeans: Mapping[str, int],
    community: Mapping[str, str],
    hierarchical: Mapping[str, int],
    sizes: Mapping[str, float],
) -> AnnotatedGraph:
    """
    Attach every label set to every vertex of ``graph`` by ``node_id``.

    Raises
    ------
    ValueError
        If any mapping lacks an entry for a vertex of the graph, isolated
        vertices included.
    """
    node_ids = [str(n) for n in graph.vs["node_id"]]

    km = _lookup(kmeans, node_ids, "kmeans")
    cm = _lookup(community, node_ids, "community")
    hc = _lookup(hierarchical, node_ids, "hierarchical")
    sz = _lookup(sizes, node_ids, "size")

    nodes = tuple(
        NodeAnnotation(
            node_id=n,
            kmeans=ClusterLabel("kmeans", _as_python(k)),
            community=ClusterLabel("community", _as_python(c)),
            hierarchical=ClusterLabel("hierarchical", _as_python(h)),
            size=float(s),
        )
        for n, k, c, h, s in zip(node_ids, km, cm, hc, sz)
    )

    g = graph.copy()
    g.vs["kmeans"] = [n.kmeans.value for n in nodes]
    g.vs["community"] = [str(n.community.value) for n in nodes]
    g.vs["hierarchical"] = [n.hierarchical.value for n in nodes]
    g.vs["size"] = [n.size for n in nodes]

    logger.info("Annotated %d nodes with %s labels", len(nodes), ", ".join(METHODS))
    return AnnotatedGraph(graph=g, nodes=nodes)


def label_agreement(annotated: AnnotatedGraph) -> pd.DataFrame:
    """Adjusted Rand index between each pair of clustering methods."""
    labels: Dict[str, list] = {m: [str(v) for v in annotated.labels(m)] for m in METHODS}
    rows = []
    for a, b in combinations(METHODS, 2):
        rows.append({
            "method_a": a,
            "method_b": b,
            "ARI": float(adjusted_rand_score(labels[a], labels[b])),
        })
    return pd.DataFrame(rows)
