"""Tests for cooccurnet/annotate.py - joining label sets onto the graph."""
from __future__ import annotations

import pandas as pd
import pytest

from cooccurnet.annotate import (
    METHODS,
    ClusterLabel,
    annotate_graph,
    label_agreement,
    sample_display_sizes,
)
from cooccurnet.clustering import UNASSIGNED, community_labels, detect_communities
from cooccurnet.network import build_adjacency_graph


@pytest.fixture
def graph(blocks):
    return build_adjacency_graph(blocks, threshold=0.6)


@pytest.fixture
def label_sets(graph):
    ids = graph.vs["node_id"]
    kmeans = pd.Series([1] * 4 + [2] * 4 + [3] * 5, index=ids, name="kmeans")
    hierarchical = pd.Series([1] * 4 + [2] * 4 + [3] * 4 + [4], index=ids, name="hierarchical")
    community = community_labels(detect_communities(graph, random_seed=42), ids)
    sizes = sample_display_sizes(ids, random_seed=3)
    return kmeans, community, hierarchical, sizes


class TestAnnotateGraph:

    def test_every_node_gets_one_label_per_method(self, graph, label_sets):
        km, cm, hc, sz = label_sets
        ann = annotate_graph(graph, kmeans=km, community=cm, hierarchical=hc, sizes=sz)
        assert len(ann.nodes) == graph.vcount()
        for node in ann.nodes:
            for m in METHODS:
                label = node.label(m)
                assert isinstance(label, ClusterLabel)
                assert label.method == m

    def test_isolated_node_is_annotated(self, graph, label_sets):
        km, cm, hc, sz = label_sets
        ann = annotate_graph(graph, kmeans=km, community=cm, hierarchical=hc, sizes=sz)
        isolated = ann.nodes[12]
        assert ann.graph.degree(12) == 0
        assert isolated.community.value == UNASSIGNED
        assert isolated.kmeans.value == 3
        assert isolated.hierarchical.value == 4

    def test_labels_keep_their_types(self, graph, label_sets):
        km, cm, hc, sz = label_sets
        ann = annotate_graph(graph, kmeans=km, community=cm, hierarchical=hc, sizes=sz)
        assert type(ann.nodes[0].kmeans.value) is int
        assert type(ann.nodes[0].community.value) is str
        assert str(ann.nodes[0].kmeans) == "1"

    def test_missing_label_fails_fast(self, graph, label_sets):
        km, cm, hc, sz = label_sets
        with pytest.raises(ValueError, match="kmeans labels missing for 1 node"):
            annotate_graph(graph, kmeans=km.drop("12"), community=cm, hierarchical=hc, sizes=sz)
        with pytest.raises(ValueError, match="size"):
            annotate_graph(graph, kmeans=km, community=cm, hierarchical=hc, sizes=sz.iloc[:5])

    def test_plain_dicts_accepted(self, graph, label_sets):
        km, cm, hc, sz = label_sets
        ann = annotate_graph(graph, kmeans=km.to_dict(), community=cm.to_dict(),
                             hierarchical=hc.to_dict(), sizes=sz.to_dict())
        assert ann.labels("kmeans").tolist() == km.tolist()

    def test_source_graph_untouched(self, graph, label_sets):
        km, cm, hc, sz = label_sets
        ann = annotate_graph(graph, kmeans=km, community=cm, hierarchical=hc, sizes=sz)
        assert "kmeans" not in graph.vs.attributes()
        assert ann.graph.vs["community"] == [str(v) for v in cm]
        assert ann.graph is not graph

    def test_to_frame_and_neighbours(self, graph, label_sets):
        km, cm, hc, sz = label_sets
        ann = annotate_graph(graph, kmeans=km, community=cm, hierarchical=hc, sizes=sz)
        df = ann.to_frame()
        assert list(df.columns) == ["node_id", "kmeans", "community", "hierarchical", "size", "degree"]
        assert df["degree"].tolist()[:4] == [3, 3, 3, 3]
        assert sorted(ann.neighbours("0")) == ["1", "2", "3"]
        assert ann.neighbours("12") == []

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            ClusterLabel("dbscan", 1)


class TestDisplaySizes:

    def test_seeded_and_in_range(self):
        ids = [str(i) for i in range(50)]
        a = sample_display_sizes(ids, low=2, high=5, random_seed=11)
        b = sample_display_sizes(ids, low=2, high=5, random_seed=11)
        pd.testing.assert_series_equal(a, b)
        assert a.between(2, 5).all()
        assert list(a.index) == ids

    def test_empty_range(self):
        with pytest.raises(ValueError):
            sample_display_sizes(["a"], low=5, high=1)


def test_label_agreement(graph, label_sets):
    km, cm, hc, sz = label_sets
    ann = annotate_graph(graph, kmeans=km, community=cm, hierarchical=hc, sizes=sz)
    agreement = label_agreement(ann)
    assert len(agreement) == 3
    assert agreement["ARI"].between(-1, 1).all()
    row = agreement.query("method_a == 'kmeans' and method_b == 'hierarchical'")
    assert row["ARI"].iloc[0] < 1.0
