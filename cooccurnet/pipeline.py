"""
cooccurnet/pipeline.py

Similarity matrix -> thresholded network -> hierarchical / k-means / Leiden
labels -> one annotated graph -> figures and an interactive view.

Outputs
-------
<figures>/
  - network_kmeans.(png|pdf)
  - network_hierarchical.(png|pdf)
  - elbow.(png|pdf)
  - dendrogram.(png|pdf)
  - network_community.html
<tables>/
  - nodes.parquet          (node_id, kmeans, community, hierarchical, size, degree)
  - cluster_sizes.csv
  - graph_summary.csv
  - threshold_scan.csv
  - label_agreement.csv

Config
------
config/pipeline.yaml (see cooccurnet.config)
"""
from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import igraph as ig
import matplotlib.pyplot as plt
import pandas as pd

from .annotate import AnnotatedGraph, annotate_graph, label_agreement, sample_display_sizes
from .clustering import (
    Dendrogram,
    cluster_sizes,
    community_labels,
    detect_communities,
    elbow_curve,
    hierarchical_clustering,
    kmeans_labels,
)
from .config import PipelineConfig
from .matrix import feature_matrix, load_node_ids, load_similarity_matrix, matrix_summary
from .network import build_adjacency_graph, graph_summary, threshold_scan
from .plotting import interactive_network, plot_dendrogram, plot_elbow, plot_network, write_interactive
from .utils import ensure_dirs, save_figure, set_seaborn_paper_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class PipelineResult:
    matrix: pd.DataFrame
    graph: ig.Graph
    dendrogram: Dendrogram
    annotated: AnnotatedGraph
    elbow: pd.DataFrame
    graph_summary: Dict[str, Any]
    matrix_summary: Dict[str, Any]
    threshold_scan: pd.DataFrame


def run_pipeline(cfg: PipelineConfig, matrix: Optional[pd.DataFrame] = None) -> PipelineResult:
    """
    Run every stage in order. Pass ``matrix`` to skip reading ``cfg.paths.matrix``.
    """
    if matrix is None:
        ids = load_node_ids(cfg.paths.node_ids) if cfg.paths.node_ids else None
        matrix = load_similarity_matrix(cfg.paths.matrix, node_ids=ids)
    node_ids = [str(i) for i in matrix.index]

    # Network
    graph = build_adjacency_graph(matrix, threshold=cfg.network.threshold)
    summary = graph_summary(graph)
    scan = threshold_scan(matrix, cfg.network.scan_thresholds)

    # Hierarchical
    hc_cfg = cfg.hierarchical
    dend = hierarchical_clustering(feature_matrix(matrix), node_ids, method=hc_cfg.method, metric=hc_cfg.metric)
    hc = dend.cut(height=hc_cfg.cut_height)
    logger.info("Hierarchical: cut at %.3g gives %d clusters", hc_cfg.cut_height, hc.nunique())

    # k-means
    km_cfg = cfg.kmeans
    x_km = feature_matrix(matrix, fill_diagonal=km_cfg.fill_diagonal)
    km = kmeans_labels(x_km, node_ids, n_clusters=km_cfg.n_clusters, n_init=km_cfg.n_init,
                       random_seed=km_cfg.random_seed)
    elbow = elbow_curve(x_km, range(km_cfg.k_min, km_cfg.k_max + 1), n_init=km_cfg.n_init,
                        random_seed=km_cfg.random_seed)

    # Leiden
    cd_cfg = cfg.community
    part = detect_communities(
        graph,
        objective=cd_cfg.objective,
        resolution=cd_cfg.resolution,
        n_iterations=cd_cfg.n_iterations,
        random_seed=cd_cfg.random_seed,
        n_restarts=cd_cfg.n_restarts,
    )
    cm = community_labels(part, graph.vs["node_id"])

    sizes = sample_display_sizes(node_ids, low=cfg.annotation.size_min, high=cfg.annotation.size_max,
                                 random_seed=cfg.annotation.random_seed)
    annotated = annotate_graph(graph, kmeans=km, community=cm, hierarchical=hc, sizes=sizes)

    return PipelineResult(
        matrix=matrix,
        graph=graph,
        dendrogram=dend,
        annotated=annotated,
        elbow=elbow,
        graph_summary=summary,
        matrix_summary=matrix_summary(matrix),
        threshold_scan=scan,
    )


def write_outputs(result: PipelineResult, cfg: PipelineConfig) -> List[Path]:
    figs_dir = cfg.paths.figures_dir
    tabs_dir = cfg.paths.tables_dir
    formats = cfg.paths.save_formats
    ensure_dirs(figs_dir, tabs_dir)
    set_seaborn_paper_context()

    written: List[Path] = []
    pl = cfg.plotting

    for color_by in ("kmeans", "hierarchical"):
        fig = plot_network(
            result.annotated,
            color_by=color_by,
            layout=pl.layout,
            random_seed=pl.random_seed,
            curved=pl.curved_edges,
            edge_alpha=pl.edge_alpha,
            edge_width=pl.edge_width,
        )
        written += save_figure(fig, figs_dir / f"network_{color_by}", formats)
        plt.close(fig)

    fig = plot_elbow(result.elbow, chosen_k=cfg.kmeans.n_clusters)
    written += save_figure(fig, figs_dir / "elbow", formats)
    plt.close(fig)

    fig = plot_dendrogram(result.dendrogram, cut_height=cfg.hierarchical.cut_height)
    written += save_figure(fig, figs_dir / "dendrogram", formats)
    plt.close(fig)

    view = interactive_network(result.annotated, color_by="community", layout=pl.layout,
                               random_seed=pl.random_seed)
    written.append(write_interactive(view, figs_dir / "network_community.html"))

    # ---- Tables ----
    nodes = result.annotated.to_frame()
    nodes.to_parquet(tabs_dir / "nodes.parquet", index=False)
    written.append(tabs_dir / "nodes.parquet")

    sizes = pd.concat(
        [cluster_sizes(result.annotated.labels(m).astype(str)) for m in ("kmeans", "community", "hierarchical")],
        ignore_index=True,
    )
    sizes.to_csv(tabs_dir / "cluster_sizes.csv", index=False)
    written.append(tabs_dir / "cluster_sizes.csv")

    summ = {**result.matrix_summary, **result.graph_summary, "threshold": cfg.network.threshold}
    pd.DataFrame([summ]).to_csv(tabs_dir / "graph_summary.csv", index=False)
    written.append(tabs_dir / "graph_summary.csv")

    result.threshold_scan.to_csv(tabs_dir / "threshold_scan.csv", index=False)
    written.append(tabs_dir / "threshold_scan.csv")

    label_agreement(result.annotated).to_csv(tabs_dir / "label_agreement.csv", index=False)
    written.append(tabs_dir / "label_agreement.csv")

    return written


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Build, cluster and plot a co-occurrence network.")
    parser.add_argument("--config", default="config/pipeline.yaml")
    parser.add_argument("--matrix", default=None, help="Override input.matrix")
    parser.add_argument("--threshold", type=float, default=None, help="Override network.threshold")
    parser.add_argument("--out-root", default="", help="Prefix for relative output directories")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING),
                        format="%(levelname)s %(name)s: %(message)s")

    cfg = PipelineConfig.from_yaml(Path(args.config)).with_overrides(
        matrix=Path(args.matrix) if args.matrix else None,
        threshold=args.threshold,
        out_root=Path(args.out_root) if args.out_root else None,
    )

    print(f">>> Network: {cfg.paths.matrix} (threshold={cfg.network.threshold})")
    result = run_pipeline(cfg)
    print(f"    {result.graph_summary['n_nodes']} nodes, {result.graph_summary['n_edges']} edges, "
          f"{result.graph_summary['n_isolates']} isolates")

    print(">>> Rendering")
    write_outputs(result, cfg)

    print(f"Saved figures to: {cfg.paths.figures_dir}")
    print(f"Saved tables to: {cfg.paths.tables_dir}")
    print("Done.")


if __name__ == "__main__":
    main()
