"""Co-occurrence network construction, clustering and plotting."""

from .annotate import AnnotatedGraph, ClusterLabel, NodeAnnotation, annotate_graph, sample_display_sizes
from .clustering import (
    UNASSIGNED,
    Dendrogram,
    community_labels,
    detect_communities,
    hierarchical_clustering,
    kmeans_labels,
)
from .config import PipelineConfig
from .matrix import load_similarity_matrix, validate_similarity_matrix
from .network import build_adjacency_graph, simplify_graph
from .pipeline import run_pipeline

__all__ = [
    "AnnotatedGraph",
    "ClusterLabel",
    "NodeAnnotation",
    "annotate_graph",
    "sample_display_sizes",
    "UNASSIGNED",
    "Dendrogram",
    "community_labels",
    "detect_communities",
    "hierarchical_clustering",
    "kmeans_labels",
    "PipelineConfig",
    "load_similarity_matrix",
    "validate_similarity_matrix",
    "build_adjacency_graph",
    "simplify_graph",
    "run_pipeline",
]
