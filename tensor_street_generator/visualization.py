"""
Visualization utilities for tensor fields, streamlines and road graphs.
"""

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.collections import LineCollection
from matplotlib.patches import Rectangle
from typing import Dict, Optional, Sequence, Tuple

from .fields import TensorField
from .graph import Graph

Vector = Tuple[float, float]


def _draw_domain(ax: plt.Axes, origin: Vector, dimensions: Vector):
    ax.add_patch(Rectangle(
        origin, dimensions[0], dimensions[1],
        fill=False, edgecolor='gray', linestyle='--', linewidth=1
    ))
    ax.set_xlim(origin[0] - 10, origin[0] + dimensions[0] + 10)
    ax.set_ylim(origin[1] - 10, origin[1] + dimensions[1] + 10)
    ax.set_aspect('equal')


def plot_tensor_field(
    field: TensorField,
    origin: Vector,
    dimensions: Vector,
    ax: Optional[plt.Axes] = None,
    diameter: float = 20.0,
    title: str = "Tensor Field",
    major_color: str = '#2980B9',
    minor_color: str = '#95A5A6'
) -> plt.Axes:
    """
    Draw a cross of the major and minor directions at regular sample points.

    Args:
        field: Tensor field to sample
        origin: Domain lower-left corner
        dimensions: Domain (width, height)
        ax: Matplotlib axis (creates new if None)
        diameter: Spacing between crosses
        title: Plot title

    Returns:
        Matplotlib axis
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    half = diameter / 2 * 0.8
    major_segments = []
    minor_segments = []
    for point in field.cross_locations(origin, dimensions, diameter):
        tensor = field.sample_point(point)
        for direction, segments in ((tensor.get_major(), major_segments),
                                    (tensor.get_minor(), minor_segments)):
            dx, dy = direction[0] * half, direction[1] * half
            segments.append([(point[0] - dx, point[1] - dy), (point[0] + dx, point[1] + dy)])

    ax.add_collection(LineCollection(minor_segments, colors=minor_color, linewidths=0.6))
    ax.add_collection(LineCollection(major_segments, colors=major_color, linewidths=0.8))

    _draw_domain(ax, origin, dimensions)
    ax.set_title(title, fontsize=12, fontweight='bold')
    return ax


def plot_streamlines(
    streamlines: Sequence[Sequence[Vector]],
    origin: Vector,
    dimensions: Vector,
    ax: Optional[plt.Axes] = None,
    title: str = "Streamlines",
    color: str = '#2C3E50',
    linewidth: float = 1.2,
    show_endpoints: bool = False
) -> plt.Axes:
    """Plot polylines, optionally marking open ends."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    for line in streamlines:
        if len(line) < 2:
            continue
        coords = np.asarray(line, dtype=float)
        ax.plot(coords[:, 0], coords[:, 1], color=color, linewidth=linewidth, zorder=1)

        if show_endpoints and tuple(line[0]) != tuple(line[-1]):
            ax.scatter(coords[[0, -1], 0], coords[[0, -1], 1], s=10, c='#E74C3C', zorder=2)

    _draw_domain(ax, origin, dimensions)
    ax.set_title(title, fontsize=12, fontweight='bold')
    return ax


def plot_graph(
    road_graph: Graph,
    origin: Vector,
    dimensions: Vector,
    ax: Optional[plt.Axes] = None,
    title: str = "Road Graph",
    show_vertex_degrees: bool = False,
    vertex_size: float = 12,
    edge_width: float = 1.0,
    edge_color: str = '#2C3E50'
) -> plt.Axes:
    """
    Plot road graph.

    Args:
        road_graph: Graph to draw
        origin: Domain lower-left corner
        dimensions: Domain (width, height)
        ax: Matplotlib axis (creates new if None)
        title: Plot title
        show_vertex_degrees: Color vertices by degree
        vertex_size: Vertex marker size
        edge_width: Edge line width
        edge_color: Edge color

    Returns:
        Matplotlib axis
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    for edge in road_graph.edges:
        (x1, y1), (x2, y2) = road_graph.edge_points(edge)
        ax.plot([x1, x2], [y1, y2], color=edge_color, linewidth=edge_width, zorder=1)

    if road_graph.vertices:
        positions = np.array([v.point for v in road_graph.vertices], dtype=float)
        if show_vertex_degrees:
            degrees = np.array([v.degree for v in road_graph.vertices], dtype=float)
            max_degree = degrees.max() if degrees.max() > 0 else 1
            ax.scatter(
                positions[:, 0], positions[:, 1],
                s=vertex_size, c=plt.cm.RdYlBu_r(degrees / max_degree), zorder=2,
                edgecolors='black', linewidths=0.5
            )
        else:
            ax.scatter(
                positions[:, 0], positions[:, 1],
                s=vertex_size, c='#E74C3C', zorder=2,
                edgecolors='black', linewidths=0.5
            )

    _draw_domain(ax, origin, dimensions)
    ax.set_title(title, fontsize=12, fontweight='bold')
    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.grid(True, alpha=0.3)
    return ax


def plot_degree_distribution(
    degree_distribution: Dict[int, int],
    ax: Optional[plt.Axes] = None,
    title: str = "Degree Distribution"
) -> plt.Axes:
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4))

    degrees = sorted(degree_distribution)
    counts = [degree_distribution[d] for d in degrees]
    ax.bar(degrees, counts, color='#3498DB', alpha=0.8, edgecolor='black')

    ax.set_xlabel('Vertex Degree')
    ax.set_ylabel('Count')
    ax.set_title(title, fontsize=11, fontweight='bold')
    ax.grid(True, alpha=0.3, axis='y')
    return ax


def plot_orientation_histogram(
    bin_edges: Sequence[float],
    counts: Sequence[float],
    ax: Optional[plt.Axes] = None,
    title: str = "Edge Orientation"
) -> plt.Axes:
    """Polar histogram of edge bearings, mirrored to the full circle."""
    if ax is None:
        fig = plt.figure(figsize=(5, 5))
        ax = fig.add_subplot(projection='polar')

    bin_edges = np.radians(np.asarray(bin_edges, dtype=float))
    counts = np.asarray(counts, dtype=float)
    width = np.diff(bin_edges)
    for offset in (0, np.pi):
        ax.bar(bin_edges[:-1] + offset, counts, width=width, align='edge',
               color='#16A085', alpha=0.8, edgecolor='black')

    ax.set_title(title, fontsize=11, fontweight='bold')
    return ax


def plot_generation_overview(
    field: TensorField,
    streamlines: Sequence[Sequence[Vector]],
    road_graph: Graph,
    morph: Dict,
    origin: Vector,
    dimensions: Vector,
    figsize: Tuple[int, int] = (14, 12)
) -> plt.Figure:
    """
    Field, streamlines, graph and degree distribution on one figure.

    Args:
        field: Tensor field used for tracing
        streamlines: Simplified streamlines
        road_graph: Graph built from the streamlines
        morph: Output of MorphologyMetrics.compute_all
        origin: Domain lower-left corner
        dimensions: Domain (width, height)
        figsize: Figure size

    Returns:
        Matplotlib figure
    """
    fig, axes = plt.subplots(2, 2, figsize=figsize)

    plot_tensor_field(field, origin, dimensions, ax=axes[0, 0],
                      diameter=max(dimensions) / 40)
    plot_streamlines(streamlines, origin, dimensions, ax=axes[0, 1], show_endpoints=True)
    plot_graph(road_graph, origin, dimensions, ax=axes[1, 0], show_vertex_degrees=True)
    plot_degree_distribution(morph['degree_distribution'], ax=axes[1, 1])

    fig.suptitle("Tensor Field Street Network", fontsize=14, fontweight='bold')
    plt.tight_layout()
    return fig
