"""End-to-end tests for cooccurnet/pipeline.py and cooccurnet/config.py."""
from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from cooccurnet.clustering import UNASSIGNED
from cooccurnet.config import PipelineConfig
from cooccurnet.pipeline import main, run_pipeline, write_outputs

REPO_ROOT = Path(__file__).resolve().parents[1]


def _config(tmp_path: Path, matrix_path: Path, **overrides) -> PipelineConfig:
    cfg = {
        "input": {"matrix": str(matrix_path)},
        "outputs": {
            "figures": str(tmp_path / "figures"),
            "tables": str(tmp_path / "tables"),
            "save_formats": ["png"],
        },
        "network": {"threshold": 0.6, "scan_thresholds": [0.5, 0.6, 0.95]},
        "hierarchical": {"cut_height": 1.0},
        "kmeans": {"n_clusters": 3, "n_init": 5, "random_seed": 123, "elbow": {"k_min": 1, "k_max": 5}},
        "community_detection": {"resolution": 0.5, "random_seed": 42},
        "annotation": {"display_size": {"min": 1, "max": 10}, "random_seed": 7},
        "plotting": {"layout": "fr", "random_seed": 1},
    }
    for section, values in overrides.items():
        cfg.setdefault(section, {}).update(values)
    return PipelineConfig.from_dict(cfg)


class TestConfig:

    def test_shipped_config_defaults(self):
        cfg = PipelineConfig.from_yaml(REPO_ROOT / "config" / "pipeline.yaml")
        assert cfg.network.threshold == 0.6
        assert cfg.hierarchical.cut_height == 7
        assert cfg.hierarchical.method == "complete"
        assert cfg.kmeans.n_clusters == 4
        assert cfg.kmeans.fill_diagonal == 1.0
        assert cfg.community.resolution == 0.5
        assert cfg.community.objective == "modularity"

    def test_defaults_for_empty_config(self):
        cfg = PipelineConfig.from_dict({})
        assert cfg.network.threshold == 0.6
        assert cfg.paths.save_formats == ["png", "pdf"]
        assert cfg.paths.node_ids is None

    def test_overrides(self, tmp_path):
        cfg = PipelineConfig.from_dict({}).with_overrides(
            matrix=tmp_path / "m.txt", threshold=0.3, out_root=tmp_path)
        assert cfg.paths.matrix == tmp_path / "m.txt"
        assert cfg.network.threshold == 0.3
        assert cfg.paths.figures_dir == tmp_path / "figures"

    def test_missing_config(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PipelineConfig.from_yaml(tmp_path / "nope.yaml")


class TestRunPipeline:

    def test_annotated_graph_covers_every_node(self, tmp_path, matrix_file):
        result = run_pipeline(_config(tmp_path, matrix_file))
        nodes = result.annotated.to_frame()
        assert len(nodes) == 13
        assert nodes[["kmeans", "community", "hierarchical", "size"]].notna().all().all()
        assert result.graph_summary["n_edges"] == 18
        # the weakly tied node is isolated and left out of every community
        assert nodes.loc[nodes["node_id"] == "12", "community"].item() == UNASSIGNED
        assert nodes.loc[nodes["node_id"] == "12", "degree"].item() == 0

    def test_reproducible(self, tmp_path, matrix_file):
        cfg = _config(tmp_path, matrix_file)
        a = run_pipeline(cfg).annotated.to_frame()
        b = run_pipeline(cfg).annotated.to_frame()
        pd.testing.assert_frame_equal(a, b)

    def test_in_memory_matrix(self, tmp_path, blocks):
        result = run_pipeline(_config(tmp_path, tmp_path / "unused.txt"), matrix=blocks)
        assert result.graph.vcount() == 13

    def test_empty_edge_set_still_completes(self, tmp_path, matrix_file):
        cfg = _config(tmp_path, matrix_file, network={"threshold": 0.99})
        result = run_pipeline(cfg)
        assert result.graph.ecount() == 0
        assert (result.annotated.labels("community") == UNASSIGNED).all()
        written = write_outputs(result, cfg)
        assert all(p.exists() for p in written)

    def test_missing_matrix(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            run_pipeline(_config(tmp_path, tmp_path / "missing.txt"))


class TestOutputs:

    def test_write_outputs(self, tmp_path, matrix_file):
        cfg = _config(tmp_path, matrix_file)
        written = write_outputs(run_pipeline(cfg), cfg)
        names = {p.name for p in written}
        assert {
            "network_kmeans.png",
            "network_hierarchical.png",
            "elbow.png",
            "dendrogram.png",
            "network_community.html",
            "nodes.parquet",
            "cluster_sizes.csv",
            "graph_summary.csv",
            "threshold_scan.csv",
            "label_agreement.csv",
        } <= names
        assert all(p.exists() for p in written)

        sizes = pd.read_csv(tmp_path / "tables" / "cluster_sizes.csv")
        for method, sub in sizes.groupby("method"):
            assert sub["cluster_size"].sum() == 13

        nodes = pd.read_parquet(tmp_path / "tables" / "nodes.parquet")
        assert nodes["node_id"].tolist() == [str(i) for i in range(13)]

    def test_cli(self, tmp_path, matrix_file, capsys):
        cfg_path = tmp_path / "pipeline.yaml"
        cfg_path.write_text(
            "outputs:\n"
            "  figures: figs\n"
            "  tables: tabs\n"
            "  save_formats: [png]\n"
            "kmeans:\n"
            "  n_clusters: 3\n"
            "  n_init: 3\n"
            "  elbow: {k_min: 1, k_max: 4}\n",
            encoding="utf-8",
        )
        main(["--config", str(cfg_path), "--matrix", str(matrix_file), "--threshold", "0.6",
              "--out-root", str(tmp_path / "run")])
        out = capsys.readouterr().out
        assert "13 nodes, 18 edges, 1 isolates" in out
        assert (tmp_path / "run" / "figs" / "network_community.html").exists()
        assert (tmp_path / "run" / "tabs" / "nodes.parquet").exists()
        assert np.isclose(pd.read_csv(tmp_path / "run" / "tabs" / "graph_summary.csv")["threshold"].item(), 0.6)
