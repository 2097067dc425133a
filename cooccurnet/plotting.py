"""
Static (matplotlib) and interactive (plotly) renderings of an annotated graph.

Renderers keep no state: each call computes its own layout from an explicit
seed and reads the annotated graph without modifying it.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import igraph as ig
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import plotly.graph_objects as go
import seaborn as sns
from matplotlib.collections import LineCollection
from matplotlib.lines import Line2D
from matplotlib.patches import FancyArrowPatch
from scipy.cluster.hierarchy import dendrogram

from .annotate import METHODS, AnnotatedGraph
from .clustering import UNASSIGNED, Dendrogram
from .utils import igraph_seed

LAYOUTS = ("fr", "kk", "drl", "circle", "grid", "random")

SENTINEL_COLOR = "#bdbdbd"


# -----------------------------
# Shared helpers
# -----------------------------

def compute_layout(graph: ig.Graph, layout: str = "fr", random_seed: int = 1) -> np.ndarray:
    """2D coordinates, one row per vertex. Seeded without touching the global ``random`` state."""
    if layout not in LAYOUTS:
        raise ValueError(f"Unknown layout {layout!r}; expected one of {LAYOUTS}")
    if graph.vcount() == 0:
        return np.empty((0, 2))

    with igraph_seed(random_seed):
        if layout == "fr" and graph.ecount():
            coords = graph.layout_fruchterman_reingold(weights="weight")
        else:
            coords = graph.layout(layout)
    return np.asarray(coords.coords, dtype=float).reshape(-1, 2)


def group_palette(groups: List[str]) -> Dict[str, tuple]:
    """One colour per group; the unassigned sentinel is always grey."""
    named = [g for g in groups if g != UNASSIGNED]
    colours = sns.color_palette("tab10" if len(named) <= 10 else "husl", n_colors=max(len(named), 1))
    pal = {g: colours[i] for i, g in enumerate(named)}
    if UNASSIGNED in groups:
        pal[UNASSIGNED] = sns.color_palette([SENTINEL_COLOR])[0]
    return pal


def _sorted_groups(values: pd.Series) -> List[str]:
    def key(g: str):
        return (g == UNASSIGNED, 0, int(g)) if g.lstrip("-").isdigit() else (g == UNASSIGNED, 1, g)
    return sorted(values.astype(str).unique().tolist(), key=key)


def _check_method(color_by: str) -> None:
    if color_by not in METHODS:
        raise ValueError(f"Cannot colour by {color_by!r}; expected one of {METHODS}")


# -----------------------------
# Static network
# -----------------------------

def plot_network(
    annotated: AnnotatedGraph,
    color_by: str = "kmeans",
    layout: str = "fr",
    random_seed: int = 1,
    curved: bool = True,
    curvature: float = 0.2,
    edge_alpha: float = 0.2,
    edge_width: float = 0.4,
    size_scale: float = 6.0,
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    _check_method(color_by)
    g = annotated.graph
    xy = compute_layout(g, layout=layout, random_seed=random_seed)

    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))
    else:
        fig = ax.figure

    # Edges under nodes
    segments = [(xy[e.source], xy[e.target]) for e in g.es]
    if segments and curved:
        for a, b in segments:
            ax.add_patch(FancyArrowPatch(
                posA=tuple(a), posB=tuple(b),
                arrowstyle="-",
                connectionstyle=f"arc3,rad={curvature}",
                color="0.4", alpha=edge_alpha, linewidth=edge_width,
                zorder=1,
            ))
    elif segments:
        ax.add_collection(LineCollection(segments, colors="0.4", alpha=edge_alpha,
                                         linewidths=edge_width, zorder=1))

    groups = annotated.labels(color_by).astype(str)
    order = _sorted_groups(groups)
    pal = group_palette(order)

    sizes = annotated.sizes().to_numpy() * size_scale
    ax.scatter(
        xy[:, 0], xy[:, 1],
        s=sizes,
        c=[pal[grp] for grp in groups],
        edgecolors="white",
        linewidths=0.3,
        zorder=2,
    )

    handles = [Line2D([0], [0], marker="o", linestyle="", markerfacecolor=pal[grp],
                      markeredgecolor="none", markersize=7, label=grp) for grp in order]
    ax.legend(handles=handles, title=color_by, fontsize=8, loc="center left",
              bbox_to_anchor=(1.0, 0.5), frameon=False)

    if len(xy):
        pad = 0.05 * max(np.ptp(xy[:, 0]), np.ptp(xy[:, 1]), 1.0)
        ax.set_xlim(xy[:, 0].min() - pad, xy[:, 0].max() + pad)
        ax.set_ylim(xy[:, 1].min() - pad, xy[:, 1].max() + pad)
    ax.set_aspect("equal")
    ax.set_axis_off()
    ax.set_title(title if title is not None else f"Co-occurrence network coloured by {color_by}")
    return fig


# -----------------------------
# Diagnostics
# -----------------------------

def plot_elbow(curve: pd.DataFrame, chosen_k: Optional[int] = None) -> plt.Figure:
    fig, ax = plt.subplots(figsize=(6.8, 4.2))
    ax.plot(curve["k"].values, curve["wss"].values, marker="o")
    if chosen_k is not None:
        ax.axvline(chosen_k, linestyle="--", color="0.5", linewidth=0.8)
    ax.set_title("Elbow method for k-means")
    ax.set_xlabel("Number of clusters (K)")
    ax.set_ylabel("Total within-cluster sum of squares")
    ax.grid(True, alpha=0.3)
    return fig


def plot_dendrogram(dend: Dendrogram, cut_height: Optional[float] = None) -> plt.Figure:
    fig, ax = plt.subplots(figsize=(10, 4.8))
    if len(dend.linkage_matrix):
        dendrogram(
            dend.linkage_matrix,
            labels=list(dend.node_ids),
            no_labels=len(dend.node_ids) > 60,
            color_threshold=cut_height,
            ax=ax,
        )
    if cut_height is not None:
        ax.axhline(cut_height, linestyle="--", color="red", linewidth=0.8)
    ax.set_title(f"Hierarchical clustering ({dend.method} linkage)")
    ax.set_ylabel("Height")
    return fig


# -----------------------------
# Interactive network
# -----------------------------

def interactive_network(
    annotated: AnnotatedGraph,
    color_by: str = "community",
    layout: str = "fr",
    random_seed: int = 1,
    size_scale: float = 2.0,
    title: Optional[str] = None,
) -> go.Figure:
    """
    Browsable view: one trace per group so the legend and the dropdown filter
    by group, hover shows each node's neighbourhood, box/lasso select nodes.
    """
    _check_method(color_by)
    g = annotated.graph
    xy = compute_layout(g, layout=layout, random_seed=random_seed)
    ids = annotated.node_ids

    ex: List[Optional[float]] = []
    ey: List[Optional[float]] = []
    for e in g.es:
        ex += [xy[e.source, 0], xy[e.target, 0], None]
        ey += [xy[e.source, 1], xy[e.target, 1], None]

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=ex, y=ey,
        mode="lines",
        line=dict(width=0.5, color="rgba(120,120,120,0.35)"),
        hoverinfo="skip",
        name="edges",
        showlegend=False,
    ))

    groups = annotated.labels(color_by).astype(str)
    order = _sorted_groups(groups)
    pal = group_palette(order)
    sizes = annotated.sizes()

    for grp in order:
        idx = [i for i, v in enumerate(groups) if v == grp]
        hover = []
        for i in idx:
            nb = annotated.neighbours(ids[i])
            shown = ", ".join(nb[:15]) + (" ..." if len(nb) > 15 else "")
            hover.append(f"<b>{ids[i]}</b><br>{color_by}: {grp}<br>degree: {len(nb)}<br>neighbours: {shown or '-'}")
        r, gg, b = (int(255 * c) for c in pal[grp])
        fig.add_trace(go.Scatter(
            x=xy[idx, 0], y=xy[idx, 1],
            mode="markers",
            name=grp,
            legendgroup=grp,
            customdata=[ids[i] for i in idx],
            text=hover,
            hovertemplate="%{text}<extra></extra>",
            marker=dict(
                size=[float(sizes.iloc[i]) * size_scale for i in idx],
                color=f"rgb({r},{gg},{b})",
                line=dict(width=0.5, color="white"),
            ),
        ))

    n_traces = len(order) + 1
    buttons = [dict(label="All", method="update", args=[{"visible": [True] * n_traces}])]
    for k, grp in enumerate(order):
        visible = [True] + [j == k for j in range(len(order))]
        buttons.append(dict(label=grp, method="update", args=[{"visible": visible}]))

    fig.update_layout(
        title=title if title is not None else f"Co-occurrence network by {color_by}",
        template="plotly_white",
        hovermode="closest",
        dragmode="select",
        clickmode="event+select",
        legend=dict(title=color_by, itemclick="toggle", itemdoubleclick="toggleothers"),
        updatemenus=[dict(buttons=buttons, direction="down", x=0.0, xanchor="left", y=1.08, yanchor="top")],
        xaxis=dict(visible=False),
        yaxis=dict(visible=False, scaleanchor="x"),
    )
    return fig


def write_interactive(fig: go.Figure, path: Path) -> Path:
    """Self-contained HTML: plotly.js is inlined, no server needed."""
    path = Path(path).with_suffix(".html")
    fig.write_html(str(path), include_plotlyjs=True, full_html=True)
    return path
