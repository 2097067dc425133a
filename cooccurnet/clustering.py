"""
The three cluster runners: hierarchical (scipy), k-means (scikit-learn) and
Leiden community detection (igraph).

Each runner consumes the same inputs independently and returns labels as a
pandas Series indexed by node id.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import igraph as ig
import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import fcluster, linkage
from scipy.spatial.distance import pdist
from sklearn.cluster import KMeans

from .utils import igraph_seed

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"

LEIDEN_OBJECTIVES = ("modularity", "CPM")


# -----------------------------
# Hierarchical
# -----------------------------

@dataclass(frozen=True, eq=False)
class Dendrogram:
    """Agglomerative merge tree over ``node_ids`` (scipy linkage matrix)."""

    linkage_matrix: np.ndarray
    node_ids: tuple
    method: str = "complete"
    metric: str = "euclidean"

    def cut(self, height: Optional[float] = None, n_clusters: Optional[int] = None) -> pd.Series:
        """
        Flat labels (1..m) from cutting every merge above ``height``.

        Pass ``n_clusters`` instead to cut at the level giving that many clusters.
        """
        if (height is None) == (n_clusters is None):
            raise ValueError("Pass exactly one of height or n_clusters")

        n = len(self.node_ids)
        if n == 1:
            return pd.Series([1], index=list(self.node_ids), name="hierarchical", dtype=int)

        if height is not None:
            labels = fcluster(self.linkage_matrix, t=float(height), criterion="distance")
        else:
            if int(n_clusters) < 1:
                raise ValueError(f"n_clusters must be >= 1, got {n_clusters}")
            labels = fcluster(self.linkage_matrix, t=int(n_clusters), criterion="maxclust")

        return pd.Series(np.asarray(labels, dtype=int), index=list(self.node_ids), name="hierarchical")

    @property
    def merge_heights(self) -> np.ndarray:
        return self.linkage_matrix[:, 2] if len(self.linkage_matrix) else np.array([])


def hierarchical_clustering(
    features: np.ndarray,
    node_ids: Sequence[str],
    method: str = "complete",
    metric: str = "euclidean",
) -> Dendrogram:
    if features.shape[0] != len(node_ids):
        raise ValueError(f"{features.shape[0]} feature rows for {len(node_ids)} node ids")

    if features.shape[0] < 2:
        z = np.empty((0, 4))
    else:
        z = linkage(pdist(features, metric=metric), method=method)
    return Dendrogram(linkage_matrix=z, node_ids=tuple(str(i) for i in node_ids), method=method, metric=metric)


# -----------------------------
# k-means
# -----------------------------

def kmeans_labels(
    features: np.ndarray,
    node_ids: Sequence[str],
    n_clusters: int = 4,
    n_init: int = 25,
    random_seed: int = 123,
) -> pd.Series:
    """
    k-means labels in [1, K]. Over ``n_init`` restarts the solution with the
    lowest within-cluster sum of squares is kept.
    """
    n_clusters = int(n_clusters)
    if n_clusters < 1:
        raise ValueError(f"n_clusters must be >= 1, got {n_clusters}")
    if n_clusters > features.shape[0]:
        raise ValueError(f"n_clusters={n_clusters} exceeds the number of nodes ({features.shape[0]})")

    model = KMeans(n_clusters=n_clusters, n_init=int(n_init), random_state=int(random_seed))
    labels = model.fit_predict(features) + 1
    logger.info("k-means: K=%d, inertia=%.4g", n_clusters, model.inertia_)
    return pd.Series(labels.astype(int), index=[str(i) for i in node_ids], name="kmeans")


def elbow_curve(
    features: np.ndarray,
    k_values: Iterable[int],
    n_init: int = 25,
    random_seed: int = 123,
) -> pd.DataFrame:
    """Total within-cluster sum of squares per K, for choosing K by eye."""
    rows = []
    for k in k_values:
        k = int(k)
        if k < 1 or k > features.shape[0]:
            continue
        model = KMeans(n_clusters=k, n_init=int(n_init), random_state=int(random_seed)).fit(features)
        rows.append({"k": k, "wss": float(model.inertia_)})
    return pd.DataFrame(rows, columns=["k", "wss"])


# -----------------------------
# Leiden
# -----------------------------

def detect_communities(
    graph: ig.Graph,
    objective: str = "modularity",
    resolution: float = 0.5,
    n_iterations: int = -1,
    random_seed: int = 42,
    n_restarts: int = 1,
    beta: float = 0.01,
) -> ig.VertexClustering:
    """
    Leiden partition of ``graph``.

    Restart ``r`` runs under its own igraph generator seeded with
    ``random_seed + r``; the global ``random`` state is not touched. With
    several restarts the partition with the highest weighted modularity is kept.
    """
    if objective not in LEIDEN_OBJECTIVES:
        raise ValueError(f"Unknown objective {objective!r}; expected one of {LEIDEN_OBJECTIVES}")
    if n_restarts < 1:
        raise ValueError(f"n_restarts must be >= 1, got {n_restarts}")

    weights = "weight" if graph.ecount() else None

    best = None
    best_q = -np.inf
    for r in range(int(n_restarts)):
        with igraph_seed(int(random_seed) + r):
            part = graph.community_leiden(
                objective_function=objective,
                weights=weights,
                resolution=float(resolution),
                beta=float(beta),
                n_iterations=int(n_iterations),
            )

        if n_restarts == 1:
            return part

        q = graph.modularity(part.membership, weights=weights, resolution=float(resolution))
        if best is None or q > best_q:
            best_q, best = q, part

    return best


def community_labels(
    clustering: ig.VertexClustering,
    node_ids: Sequence[str],
    sentinel: str = UNASSIGNED,
) -> pd.Series:
    """
    String community labels; members of size-1 communities get ``sentinel``.

    Only the sizes are consulted; ``clustering`` itself is left untouched.
    """
    membership = list(clustering.membership)
    if len(membership) != len(node_ids):
        raise ValueError(f"Partition covers {len(membership)} nodes, expected {len(node_ids)}")

    sizes = pd.Series(membership).value_counts()
    labels = [sentinel if sizes[m] == 1 else str(m) for m in membership]

    n_single = int((sizes == 1).sum())
    logger.info("Leiden: %d communities, %d singletons relabelled %r", len(sizes), n_single, sentinel)
    return pd.Series(labels, index=[str(i) for i in node_ids], name="community")


def cluster_sizes(labels: pd.Series) -> pd.DataFrame:
    return (labels.value_counts()
                  .rename_axis("cluster_id")
                  .reset_index(name="cluster_size")
                  .assign(method=labels.name))
