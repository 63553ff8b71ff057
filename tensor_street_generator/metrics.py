"""
Morphology statistics of a generated road graph.
"""

import math
from collections import Counter
from typing import Dict, List, Sequence, Tuple

import networkx as nx
import numpy as np

from .graph import Graph
from .utils import compute_entropy, compute_orientation_histogram


class MorphologyMetrics:
    """Compute urban morphology metrics over the networkx view of a Graph."""

    @staticmethod
    def compute_vertex_density(graph: nx.Graph, world_dimensions: Tuple[float, float]) -> float:
        """
        Compute vertex density (vertices per km², taking world units as metres).

        Args:
            graph: NetworkX graph
            world_dimensions: (width, height) of the domain

        Returns:
            Vertex density
        """
        area_km2 = (world_dimensions[0] / 1000.0) * (world_dimensions[1] / 1000.0)
        if area_km2 == 0:
            return 0.0
        return graph.number_of_nodes() / area_km2

    @staticmethod
    def compute_degree_distribution(graph: nx.Graph) -> Dict[int, int]:
        """
        Compute vertex degree distribution.

        Returns:
            Dict mapping degree -> count
        """
        degrees = [d for _, d in graph.degree()]
        return dict(sorted(Counter(degrees).items()))

    @staticmethod
    def compute_segment_lengths(graph: nx.Graph, pos: dict) -> List[float]:
        lengths = []
        for u, v in graph.edges():
            u_pos = np.array(pos[u], dtype=float)
            v_pos = np.array(pos[v], dtype=float)
            lengths.append(float(np.linalg.norm(u_pos - v_pos)))
        return lengths

    @staticmethod
    def compute_dead_end_ratio(graph: nx.Graph) -> float:
        """Ratio [0, 1] of dead-end vertices (degree 1)."""
        if graph.number_of_nodes() == 0:
            return 0.0

        dead_ends = sum(1 for _, d in graph.degree() if d == 1)
        return dead_ends / graph.number_of_nodes()

    @staticmethod
    def compute_connectivity(graph: nx.Graph) -> Dict:
        """Connected component count and share of vertices in the largest one."""
        if graph.number_of_nodes() == 0:
            return {"components": 0, "largest_component_ratio": 0.0}

        components = list(nx.connected_components(graph))
        largest = max(len(c) for c in components)
        return {
            "components": len(components),
            "largest_component_ratio": largest / graph.number_of_nodes(),
        }

    @staticmethod
    def compute_streamline_lengths(streamlines: Sequence[Sequence[Tuple[float, float]]]) -> List[float]:
        lengths = []
        for line in streamlines:
            total = 0.0
            for (x1, y1), (x2, y2) in zip(line, line[1:]):
                total += math.hypot(x2 - x1, y2 - y1)
            lengths.append(total)
        return lengths

    @staticmethod
    def compute_all(
        road_graph: Graph,
        world_dimensions: Tuple[float, float],
        streamlines: Sequence[Sequence[Tuple[float, float]]] = (),
        num_orientation_bins: int = 18
    ) -> Dict:
        """
        Compute all morphology metrics.

        Args:
            road_graph: Generated road graph
            world_dimensions: Domain size
            streamlines: Simplified streamlines the graph was built from
            num_orientation_bins: Number of orientation bins

        Returns:
            Dict with all morphology metrics
        """
        graph, pos = road_graph.to_networkx()

        segment_lengths = MorphologyMetrics.compute_segment_lengths(graph, pos)
        segments = [(pos[u], pos[v]) for u, v in graph.edges()]
        bin_edges, orientation_counts = compute_orientation_histogram(segments, num_orientation_bins)
        streamline_lengths = MorphologyMetrics.compute_streamline_lengths(streamlines)

        return {
            "vertex_count": graph.number_of_nodes(),
            "edge_count": graph.number_of_edges(),
            "vertex_density": MorphologyMetrics.compute_vertex_density(graph, world_dimensions),
            "degree_distribution": MorphologyMetrics.compute_degree_distribution(graph),
            "dead_end_ratio": MorphologyMetrics.compute_dead_end_ratio(graph),
            "connectivity": MorphologyMetrics.compute_connectivity(graph),
            "segment_lengths": segment_lengths,
            "mean_segment_length": float(np.mean(segment_lengths)) if segment_lengths else 0.0,
            "total_road_length": float(np.sum(segment_lengths)),
            "streamline_count": len(streamline_lengths),
            "mean_streamline_length": float(np.mean(streamline_lengths)) if streamline_lengths else 0.0,
            "orientation_histogram": {
                "bin_edges": np.asarray(bin_edges).tolist(),
                "counts": np.asarray(orientation_counts).tolist(),
                "entropy": compute_entropy(orientation_counts),
            },
        }
