"""
Planarity validation and export of generated networks.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np
from shapely.geometry import LineString

from .config import GeneratorConfig
from .graph import Graph
from .metrics import MorphologyMetrics
from .utils import SegmentIndex

logger = logging.getLogger(__name__)


class NetworkValidator:
    """Validate and report on generated networks."""

    def __init__(self, config: GeneratorConfig):
        self.config = config

    @staticmethod
    def find_crossings(road_graph: Graph) -> List[Tuple[int, int]]:
        """
        Find pairs of edges whose interiors cross without sharing a vertex.

        Returns:
            Sorted (edge index, edge index) pairs; empty for a planar graph
        """
        index = SegmentIndex()
        for edge in road_graph.edges:
            start, end = road_graph.edge_points(edge)
            index.add_segment(start, end, edge.start, edge.end)

        crossings = []
        for i, edge in enumerate(road_graph.edges):
            start, end = road_graph.edge_points(edge)
            line = LineString([start, end])
            for j in index.find_crossings(line, ignore_nodes={edge.start, edge.end}):
                if j > i:
                    crossings.append((i, j))
        return crossings

    def validate(self, road_graph: Graph) -> Dict:
        crossings = self.find_crossings(road_graph)
        zero_length = sum(1 for e in road_graph.edges if e.start == e.end)
        if crossings:
            logger.warning("Graph is not planar: %d crossing edge pairs", len(crossings))
        return {
            "planar": not crossings,
            "crossings": [list(pair) for pair in crossings],
            "zero_length_edges": zero_length,
        }

    def validate_and_export(
        self,
        road_graph: Graph,
        streamlines: Sequence[Sequence[Tuple[float, float]]],
        metadata: Dict,
        output_dir: str,
        prefix: str = "generated"
    ) -> Dict:
        """
        Validate network and export all outputs.

        Args:
            road_graph: Generated graph
            streamlines: Simplified streamlines the graph was built from
            metadata: Generation metadata
            output_dir: Output directory
            prefix: Filename prefix

        Returns:
            Metrics and validation results as written to the metrics JSON
        """
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        logger.info("Computing final metrics")
        morph = MorphologyMetrics.compute_all(
            road_graph, self.config.world_dimensions, streamlines
        )
        validation = self.validate(road_graph)

        logger.info("Exporting GeoJSON")
        self._export_geojson(road_graph, streamlines, output_path, prefix)

        graph, _ = road_graph.to_networkx()
        nx.write_graphml(graph, output_path / f"{prefix}_graph.graphml")

        lengths = morph["segment_lengths"]
        metrics_data = {
            "metadata": metadata,
            "morphology": {
                "vertex_count": morph["vertex_count"],
                "edge_count": morph["edge_count"],
                "vertex_density": morph["vertex_density"],
                "degree_distribution": {str(k): v for k, v in morph["degree_distribution"].items()},
                "dead_end_ratio": morph["dead_end_ratio"],
                "connectivity": morph["connectivity"],
                "segment_length_stats": {
                    "mean": float(np.mean(lengths)) if lengths else 0,
                    "median": float(np.median(lengths)) if lengths else 0,
                    "std": float(np.std(lengths)) if lengths else 0,
                },
                "total_road_length": morph["total_road_length"],
                "streamline_count": morph["streamline_count"],
                "mean_streamline_length": morph["mean_streamline_length"],
                "orientation_entropy": morph["orientation_histogram"]["entropy"],
            },
            "validation": validation,
        }

        with open(output_path / f"{prefix}_metrics.json", 'w') as f:
            json.dump(metrics_data, f, indent=2)

        self._generate_report(morph, validation, metadata, output_path, prefix)

        logger.info("Validation complete. Results in %s", output_dir)
        return metrics_data

    def _export_geojson(
        self,
        road_graph: Graph,
        streamlines: Sequence[Sequence[Tuple[float, float]]],
        output_path: Path,
        prefix: str
    ):
        """Export vertices, edges and streamlines to GeoJSON."""
        vertex_features = []
        for index, vertex in enumerate(road_graph.vertices):
            vertex_features.append({
                "type": "Feature",
                "geometry": {
                    "type": "Point",
                    "coordinates": [vertex.point[0], vertex.point[1]]
                },
                "properties": {
                    "vertex_id": index,
                    "degree": vertex.degree,
                }
            })
        self._write_collection(vertex_features, output_path / f"{prefix}_vertices.geojson")

        edge_features = []
        for index, edge in enumerate(road_graph.edges):
            start, end = road_graph.edge_points(edge)
            edge_features.append({
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[start[0], start[1]], [end[0], end[1]]]
                },
                "properties": {
                    "edge_id": index,
                    "start": edge.start,
                    "end": edge.end,
                    "road": edge.road_index,
                    "length": float(np.hypot(end[0] - start[0], end[1] - start[1])),
                }
            })
        self._write_collection(edge_features, output_path / f"{prefix}_edges.geojson")

        streamline_features = []
        for index, line in enumerate(streamlines):
            streamline_features.append({
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[float(x), float(y)] for x, y in line]
                },
                "properties": {
                    "road": index,
                    "closed": len(line) > 1 and tuple(line[0]) == tuple(line[-1]),
                }
            })
        self._write_collection(streamline_features, output_path / f"{prefix}_streamlines.geojson")

    @staticmethod
    def _write_collection(features: List[Dict], filepath: Path):
        with open(filepath, 'w') as f:
            json.dump({"type": "FeatureCollection", "features": features}, f)

    def _generate_report(
        self,
        morph: Dict,
        validation: Dict,
        metadata: Optional[Dict],
        output_path: Path,
        prefix: str
    ):
        """Generate markdown report."""
        metadata = metadata or {}
        report = []

        report.append("# Street Network Generation Report\n")
        report.append("\n## Configuration\n")
        report.append(f"- Domain: {self.config.world_width:g} × {self.config.world_height:g}"
                      f" at {tuple(self.config.origin)}\n")
        report.append(f"- Seed: {metadata.get('seed', self.config.seed)}\n")
        report.append(f"- Integrator: {self.config.integrator}\n")
        report.append(f"- Basis fields: {len(metadata.get('basis_fields', []))}\n")
        noise = metadata.get("noise")
        if noise and noise.get("enabled"):
            report.append(f"- Noise: {noise['angle_degrees']:.1f}° at size {noise['size']:g}\n")

        report.append("\n## Generation Statistics\n")
        report.append(f"- Main streamlines: {metadata.get('main_streamlines', 0)}\n")
        report.append(f"- Minor streamlines: {metadata.get('minor_streamlines', 0)}\n")
        report.append(f"- Total Vertices: {morph['vertex_count']}\n")
        report.append(f"- Total Edges: {morph['edge_count']}\n")
        report.append(f"- Total Road Length: {morph['total_road_length']:.1f}\n")
        for stage, seconds in metadata.get("timings", {}).items():
            report.append(f"- Time ({stage}): {seconds * 1000:.0f} ms\n")

        report.append("\n## Morphology\n")
        report.append(f"- Vertex Density (per km²): {morph['vertex_density']:.2f}\n")
        report.append(f"- Dead-End Ratio: {morph['dead_end_ratio']:.3f}\n")
        report.append(f"- Mean Segment Length: {morph['mean_segment_length']:.2f}\n")
        report.append(f"- Connected Components: {morph['connectivity']['components']}\n")
        report.append(f"- Orientation Entropy: {morph['orientation_histogram']['entropy']:.3f} bits\n")

        report.append("\n### Degree Distribution\n")
        report.append("```\n")
        report.append("Degree | Count\n")
        report.append("-------|------\n")
        for deg, count in morph["degree_distribution"].items():
            report.append(f"  {deg:<4} | {count:5d}\n")
        report.append("```\n")

        report.append("\n## Validation\n")
        report.append(f"- Planar: {'yes' if validation['planar'] else 'no'}\n")
        report.append(f"- Crossing edge pairs: {len(validation['crossings'])}\n")

        with open(output_path / f"{prefix}_report.md", 'w') as f:
            f.writelines(report)
