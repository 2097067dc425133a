"""
Pipeline configuration.

config/pipeline.yaml:
  input:
    matrix: "data/raw/similarity_matrix.txt"
    node_ids: null                # optional file, one id per line
  outputs:
    figures: "figures"
    tables: "tables"
    save_formats: ["png", "pdf"]
  network:
    threshold: 0.6
    scan_thresholds: [0.3, 0.4, 0.5, 0.6, 0.7, 0.8]
  hierarchical:
    method: complete
    metric: euclidean
    cut_height: 7
  kmeans:
    n_clusters: 4
    n_init: 25
    random_seed: 123
    fill_diagonal: 1.0
    elbow: {k_min: 1, k_max: 10}
  community_detection:
    objective: modularity         # or CPM
    resolution: 0.5
    n_iterations: -1              # until convergence
    n_restarts: 1
    random_seed: 42
  annotation:
    display_size: {min: 1, max: 10}
    random_seed: 7
  plotting:
    layout: fr
    random_seed: 1
    curved_edges: true
    edge_alpha: 0.2
    edge_width: 0.4
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .utils import deep_get, load_yaml


@dataclass
class PathsConfig:
    matrix: Path
    node_ids: Optional[Path]
    figures_dir: Path
    tables_dir: Path
    save_formats: list[str]


@dataclass
class NetworkConfig:
    threshold: float = 0.6
    scan_thresholds: list[float] = field(default_factory=lambda: [0.3, 0.4, 0.5, 0.6, 0.7, 0.8])


@dataclass
class HierarchicalConfig:
    method: str = "complete"
    metric: str = "euclidean"
    cut_height: float = 7.0


@dataclass
class KMeansConfig:
    n_clusters: int = 4
    n_init: int = 25
    random_seed: int = 123
    fill_diagonal: Optional[float] = 1.0
    k_min: int = 1
    k_max: int = 10


@dataclass
class CommunityConfig:
    objective: str = "modularity"
    resolution: float = 0.5
    n_iterations: int = -1
    n_restarts: int = 1
    random_seed: int = 42


@dataclass
class AnnotationConfig:
    size_min: float = 1.0
    size_max: float = 10.0
    random_seed: int = 7


@dataclass
class PlotConfig:
    layout: str = "fr"
    random_seed: int = 1
    curved_edges: bool = True
    edge_alpha: float = 0.2
    edge_width: float = 0.4


@dataclass
class PipelineConfig:
    paths: PathsConfig
    network: NetworkConfig = field(default_factory=NetworkConfig)
    hierarchical: HierarchicalConfig = field(default_factory=HierarchicalConfig)
    kmeans: KMeansConfig = field(default_factory=KMeansConfig)
    community: CommunityConfig = field(default_factory=CommunityConfig)
    annotation: AnnotationConfig = field(default_factory=AnnotationConfig)
    plotting: PlotConfig = field(default_factory=PlotConfig)

    @staticmethod
    def from_dict(cfg: Dict[str, Any]) -> "PipelineConfig":
        node_ids = deep_get(cfg, ["input", "node_ids"], None)
        fill_diag = deep_get(cfg, ["kmeans", "fill_diagonal"], 1.0)

        paths = PathsConfig(
            matrix=Path(deep_get(cfg, ["input", "matrix"], "data/raw/similarity_matrix.txt")),
            node_ids=Path(node_ids) if node_ids else None,
            figures_dir=Path(deep_get(cfg, ["outputs", "figures"], "figures")),
            tables_dir=Path(deep_get(cfg, ["outputs", "tables"], "tables")),
            save_formats=list(deep_get(cfg, ["outputs", "save_formats"], ["png", "pdf"])),
        )

        return PipelineConfig(
            paths=paths,
            network=NetworkConfig(
                threshold=float(deep_get(cfg, ["network", "threshold"], 0.6)),
                scan_thresholds=[float(t) for t in deep_get(
                    cfg, ["network", "scan_thresholds"], [0.3, 0.4, 0.5, 0.6, 0.7, 0.8])],
            ),
            hierarchical=HierarchicalConfig(
                method=str(deep_get(cfg, ["hierarchical", "method"], "complete")),
                metric=str(deep_get(cfg, ["hierarchical", "metric"], "euclidean")),
                cut_height=float(deep_get(cfg, ["hierarchical", "cut_height"], 7.0)),
            ),
            kmeans=KMeansConfig(
                n_clusters=int(deep_get(cfg, ["kmeans", "n_clusters"], 4)),
                n_init=int(deep_get(cfg, ["kmeans", "n_init"], 25)),
                random_seed=int(deep_get(cfg, ["kmeans", "random_seed"], 123)),
                fill_diagonal=None if fill_diag is None else float(fill_diag),
                k_min=int(deep_get(cfg, ["kmeans", "elbow", "k_min"], 1)),
                k_max=int(deep_get(cfg, ["kmeans", "elbow", "k_max"], 10)),
            ),
            community=CommunityConfig(
                objective=str(deep_get(cfg, ["community_detection", "objective"], "modularity")),
                resolution=float(deep_get(cfg, ["community_detection", "resolution"], 0.5)),
                n_iterations=int(deep_get(cfg, ["community_detection", "n_iterations"], -1)),
                n_restarts=int(deep_get(cfg, ["community_detection", "n_restarts"], 1)),
                random_seed=int(deep_get(cfg, ["community_detection", "random_seed"], 42)),
            ),
            annotation=AnnotationConfig(
                size_min=float(deep_get(cfg, ["annotation", "display_size", "min"], 1.0)),
                size_max=float(deep_get(cfg, ["annotation", "display_size", "max"], 10.0)),
                random_seed=int(deep_get(cfg, ["annotation", "random_seed"], 7)),
            ),
            plotting=PlotConfig(
                layout=str(deep_get(cfg, ["plotting", "layout"], "fr")),
                random_seed=int(deep_get(cfg, ["plotting", "random_seed"], 1)),
                curved_edges=bool(deep_get(cfg, ["plotting", "curved_edges"], True)),
                edge_alpha=float(deep_get(cfg, ["plotting", "edge_alpha"], 0.2)),
                edge_width=float(deep_get(cfg, ["plotting", "edge_width"], 0.4)),
            ),
        )

    @staticmethod
    def from_yaml(path: Path) -> "PipelineConfig":
        return PipelineConfig.from_dict(load_yaml(Path(path)))

    def with_overrides(
        self,
        matrix: Optional[Path] = None,
        threshold: Optional[float] = None,
        out_root: Optional[Path] = None,
    ) -> "PipelineConfig":
        """Copy with CLI overrides applied; relative output dirs are placed under ``out_root``."""
        paths = self.paths
        if matrix is not None:
            paths = replace(paths, matrix=Path(matrix))
        if out_root is not None:
            out_root = Path(out_root)
            paths = replace(
                paths,
                figures_dir=paths.figures_dir if paths.figures_dir.is_absolute() else out_root / paths.figures_dir,
                tables_dir=paths.tables_dir if paths.tables_dir.is_absolute() else out_root / paths.tables_dir,
            )

        network = self.network if threshold is None else replace(self.network, threshold=float(threshold))
        return replace(self, paths=paths, network=network)
