"""
Planar road graph built from a bundle of polylines.

Vertices and edges live in lists owned by the Graph and refer to each other by
integer index, so the vertex -> edges -> vertices cycle needs no object links.
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx

from .utils import (
    floor_point,
    polyline_bounds,
    segment_intersection,
    snap_to_vertex,
)

logger = logging.getLogger(__name__)

IntPoint = Tuple[int, int]

DEFAULT_MERGE_DISTANCE = 10.0


@dataclass
class Vertex:
    """Point along a road or at a road intersection."""

    point: IntPoint
    edges: List[int] = field(default_factory=list)  # indices into Graph.edges

    @property
    def degree(self) -> int:
        return len(self.edges)


@dataclass(eq=False)
class Edge:
    """Road segment between two vertices, tagged with its source polyline."""

    start: int  # vertex index
    end: int  # vertex index
    road_index: int


class Graph:
    """Vertices and edges of a road network."""

    def __init__(self, merge_distance: float = DEFAULT_MERGE_DISTANCE):
        self.merge_distance = merge_distance
        self.vertices: List[Vertex] = []
        self.edges: List[Edge] = []
        self.road_count = 0

        # Spatial hash of vertex indices, cell size = merge_distance
        self._cell_size = max(float(merge_distance), 1.0)
        self._vertex_cells: Dict[IntPoint, List[int]] = defaultdict(list)
        self._vertex_lookup: Dict[IntPoint, int] = {}

    @classmethod
    def from_streamlines(
        cls,
        streamlines: Sequence[Sequence[Sequence[float]]],
        merge_distance: float = DEFAULT_MERGE_DISTANCE
    ) -> "Graph":
        """Build a graph from polylines. See GraphBuilder."""
        return GraphBuilder(merge_distance).build(streamlines)

    def add_vertex(self, point: IntPoint) -> int:
        """
        Index of the vertex nearest to point within merge_distance,
        creating a new vertex if there is none.
        """
        exact = self._vertex_lookup.get(point)
        if exact is not None:
            return exact

        cx, cy = self._cell(point)
        candidates = sorted(
            index
            for x in (cx - 1, cx, cx + 1)
            for y in (cy - 1, cy, cy + 1)
            for index in self._vertex_cells.get((x, y), ())
        )
        nearest = snap_to_vertex(
            point, [self.vertices[i].point for i in candidates], self.merge_distance
        )
        if nearest is not None:
            return candidates[nearest]

        index = len(self.vertices)
        self.vertices.append(Vertex(point))
        self._vertex_cells[(cx, cy)].append(index)
        self._vertex_lookup[point] = index
        return index

    def _cell(self, point: IntPoint) -> IntPoint:
        return (int(point[0] // self._cell_size), int(point[1] // self._cell_size))

    def edge_points(self, edge: Edge) -> Tuple[IntPoint, IntPoint]:
        return self.vertices[edge.start].point, self.vertices[edge.end].point

    def vertex_positions(self) -> Dict[int, IntPoint]:
        return {i: v.point for i, v in enumerate(self.vertices)}

    def degree(self, vertex_index: int) -> int:
        return self.vertices[vertex_index].degree

    def neighbours(self, vertex_index: int) -> List[int]:
        out = []
        for edge_index in self.vertices[vertex_index].edges:
            edge = self.edges[edge_index]
            out.append(edge.end if edge.start == vertex_index else edge.start)
        return out

    def to_networkx(self) -> Tuple[nx.MultiGraph, Dict[int, IntPoint]]:
        """
        Undirected networkx view of the graph.

        Roads that snap onto the same vertex pair keep one parallel edge each.

        Returns:
            (graph, positions) tuple; nodes carry x/y, edges carry road and length
        """
        graph = nx.MultiGraph()
        pos = self.vertex_positions()
        for index, (x, y) in pos.items():
            graph.add_node(index, x=x, y=y)
        for edge in self.edges:
            (x1, y1), (x2, y2) = self.edge_points(edge)
            graph.add_edge(
                edge.start, edge.end,
                road=edge.road_index,
                length=((x2 - x1) ** 2 + (y2 - y1) ** 2) ** 0.5
            )
        return graph, pos

    def __repr__(self) -> str:
        return f"Graph(vertices={len(self.vertices)}, edges={len(self.edges)}, roads={self.road_count})"


class GraphBuilder:
    """
    Converts polylines into a planar graph.

    Points are floored to integers and snapped to vertices. Each polyline's
    edges wait in its own unprocessed list; an edge is finalised once it
    crosses no unprocessed edge of another polyline, otherwise both edges are
    split at the crossing and the pieces are processed first.
    """

    def __init__(self, merge_distance: float = DEFAULT_MERGE_DISTANCE):
        self.merge_distance = merge_distance

    def build(self, streamlines: Sequence[Sequence[Sequence[float]]]) -> Graph:
        begin = time.perf_counter()
        graph = Graph(self.merge_distance)
        self._graph = graph
        self._finalised: List[Edge] = []
        self._unprocessed: List[List[Edge]] = []
        self._bounds: List[Tuple[IntPoint, IntPoint]] = []

        for road_index, streamline in enumerate(streamlines):
            edges: List[Edge] = []
            self._unprocessed.append(edges)
            if len(streamline) == 0:
                self._bounds.append(((0, 0), (-1, -1)))
                continue

            for point in streamline:
                if len(point) != 2:
                    raise ValueError(f"Polyline {road_index} contains a non-2D point: {point!r}")

            last_vertex = None
            snapped = []
            for point in streamline:
                vertex = graph.add_vertex(floor_point(point))
                snapped.append(graph.vertices[vertex].point)
                # Zero length edges are skipped
                if last_vertex is not None and last_vertex != vertex:
                    edges.append(Edge(last_vertex, vertex, road_index))
                last_vertex = vertex

            # Snapped vertices can lie outside the box of the raw points
            self._bounds.append(polyline_bounds(snapped))

        graph.road_count = len(self._unprocessed)

        for line_index, edges in enumerate(self._unprocessed):
            while edges:
                self._process_edge(edges[0], line_index)

        self._finish(graph)
        logger.info(
            "Graph with %d vertices and %d edges generated in %.0f ms",
            len(graph.vertices), len(graph.edges), (time.perf_counter() - begin) * 1000
        )
        return graph

    def _finish(self, graph: Graph):
        """Sort edges by road and register incidence in finalisation order."""
        order = sorted(range(len(self._finalised)), key=lambda i: self._finalised[i].road_index)
        position = {old: new for new, old in enumerate(order)}
        graph.edges = [self._finalised[i] for i in order]
        for old, edge in enumerate(self._finalised):
            graph.vertices[edge.start].edges.append(position[old])
            graph.vertices[edge.end].edges.append(position[old])

    def _process_edge(self, edge: Edge, line_index: int):
        # Depth-first over split pieces, in the same order a recursive
        # implementation would visit them
        stack = [(edge, line_index)]
        while stack:
            current, current_line = stack.pop()
            edges = self._unprocessed[current_line]
            if not any(e is current for e in edges):
                continue

            hit = self._find_intersection(current, current_line)
            if hit is None:
                edges.remove(current)
                self._finalised.append(current)
                continue

            other, other_line, intersection = hit
            pieces = self._divide_edge(current, intersection, edges)
            other_pieces = self._divide_edge(other, intersection, self._unprocessed[other_line])
            self._extend_bounds(current_line, intersection)
            self._extend_bounds(other_line, intersection)

            if len(pieces) > 1:
                ordered = [(p, current_line) for p in pieces] + [(p, other_line) for p in other_pieces]
            else:
                ordered = [(p, other_line) for p in other_pieces] + [(p, current_line) for p in pieces]
            stack.extend(reversed(ordered))

    def _find_intersection(self, edge: Edge, line_index: int) -> Optional[Tuple[Edge, int, int]]:
        """First unprocessed edge of another polyline crossing edge, with the split vertex."""
        graph = self._graph
        start, end = graph.edge_points(edge)
        min_x, min_y = min(start[0], end[0]), min(start[1], end[1])
        max_x, max_y = max(start[0], end[0]), max(start[1], end[1])

        for other_line, other_edges in enumerate(self._unprocessed):
            if other_line == line_index:
                continue
            (min2_x, min2_y), (max2_x, max2_y) = self._bounds[other_line]
            # Polylines obviously in a different region
            if max_x < min2_x or max_y < min2_y or max2_x < min_x or max2_y < min_y:
                continue

            for other in other_edges:
                start2, end2 = graph.edge_points(other)
                crossing = segment_intersection(start, end, start2, end2)
                if crossing is None:
                    continue

                point = floor_point((crossing[0] + 1e-9, crossing[1] + 1e-9))
                if (start != point and end != point) or (start2 != point and end2 != point):
                    intersection = self._resolve_intersection(edge, other, point)
                    if self._is_endpoint(edge, intersection) and self._is_endpoint(other, intersection):
                        # Snapped onto a vertex both edges already share
                        continue
                    return other, other_line, intersection

        return None

    def _resolve_intersection(self, edge: Edge, other: Edge, point: IntPoint) -> int:
        vertices = self._graph.vertices
        for index in (edge.start, edge.end, other.start, other.end):
            if vertices[index].point == point:
                return index
        return self._graph.add_vertex(point)

    def _extend_bounds(self, line_index: int, vertex: int):
        """Grow a polyline's box to cover a split vertex, which may have snapped away."""
        x, y = self._graph.vertices[vertex].point
        (min_x, min_y), (max_x, max_y) = self._bounds[line_index]
        self._bounds[line_index] = (
            (min(min_x, x), min(min_y, y)),
            (max(max_x, x), max(max_y, y)),
        )

    @staticmethod
    def _is_endpoint(edge: Edge, vertex: int) -> bool:
        return vertex == edge.start or vertex == edge.end

    @staticmethod
    def _divide_edge(edge: Edge, intersection: int, edges: List[Edge]) -> List[Edge]:
        if intersection == edge.start or intersection == edge.end:
            return [edge]

        first_half = Edge(intersection, edge.end, edge.road_index)
        second_half = Edge(edge.start, intersection, edge.road_index)
        edges.remove(edge)
        edges.append(first_half)
        edges.append(second_half)
        return [first_half, second_half]
