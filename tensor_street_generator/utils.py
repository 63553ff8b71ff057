"""
Utility functions for polyline geometry, snapping and spatial indexing.
"""

import math
import numpy as np
from typing import List, Optional, Sequence, Set, Tuple
from shapely.geometry import LineString
from shapely.strtree import STRtree

Vector = Tuple[float, float]
IntPoint = Tuple[int, int]


def calculate_bearing(p1: Vector, p2: Vector) -> float:
    """
    Calculate bearing (0-180°) of line segment from p1 to p2.

    Args:
        p1: Start point (x, y)
        p2: End point (x, y)

    Returns:
        Bearing in degrees [0, 180)
    """
    bearing = math.degrees(math.atan2(p2[1] - p1[1], p2[0] - p1[0]))

    # Normalize to [0, 180) - roads have no direction
    if bearing < 0:
        bearing += 180
    if bearing >= 180:
        bearing -= 180

    return bearing


def angle_between(v1: Vector, v2: Vector) -> float:
    """Unsigned angle in radians between two vectors, in [0, pi]."""
    cross = v1[0] * v2[1] - v1[1] * v2[0]
    dot = v1[0] * v2[0] + v1[1] * v2[1]
    return abs(math.atan2(cross, dot))


def floor_point(v: Sequence[float]) -> IntPoint:
    return (int(math.floor(v[0])), int(math.floor(v[1])))


def snap_to_vertex(
    point: Sequence[float],
    candidates: Sequence[Sequence[float]],
    tolerance: float
) -> Optional[int]:
    """
    Find the nearest candidate strictly closer than tolerance.

    Args:
        point: Query point (x, y)
        candidates: Existing vertex positions
        tolerance: Snap distance (exclusive)

    Returns:
        Index into candidates of the nearest one (earliest on ties), else None
    """
    if len(candidates) == 0:
        return None

    candidates_array = np.asarray(candidates, dtype=float)
    point_array = np.asarray(point, dtype=float)

    distances = np.sqrt(np.sum((candidates_array - point_array) ** 2, axis=1))

    min_idx = int(np.argmin(distances))
    if distances[min_idx] < tolerance:
        return min_idx
    return None


def segment_intersection(
    a1: Sequence[float],
    a2: Sequence[float],
    b1: Sequence[float],
    b2: Sequence[float],
    eps: float = 1e-9
) -> Optional[Vector]:
    """
    Intersection point of segments a1-a2 and b1-b2, endpoints included.

    Parallel and collinear segments return None, even when they overlap.
    """
    rx, ry = a2[0] - a1[0], a2[1] - a1[1]
    sx, sy = b2[0] - b1[0], b2[1] - b1[1]

    denominator = rx * sy - ry * sx
    if abs(denominator) <= eps * max(1.0, math.hypot(rx, ry) * math.hypot(sx, sy)):
        return None

    qx, qy = b1[0] - a1[0], b1[1] - a1[1]
    t = (qx * sy - qy * sx) / denominator
    u = (qx * ry - qy * rx) / denominator

    if t < -eps or t > 1 + eps or u < -eps or u > 1 + eps:
        return None

    return (a1[0] + t * rx, a1[1] + t * ry)


def _sq_segment_distance(p: Vector, p1: Vector, p2: Vector) -> float:
    """Squared distance from p to segment p1-p2."""
    x, y = p1
    dx = p2[0] - x
    dy = p2[1] - y

    if dx != 0 or dy != 0:
        t = ((p[0] - x) * dx + (p[1] - y) * dy) / (dx * dx + dy * dy)
        if t > 1:
            x, y = p2
        elif t > 0:
            x += dx * t
            y += dy * t

    dx = p[0] - x
    dy = p[1] - y
    return dx * dx + dy * dy


def _simplify_dp_step(
    points: Sequence[Vector],
    first: int,
    last: int,
    sq_tolerance: float,
    simplified: List[Vector]
):
    max_sq_dist = 0.0
    index = 0

    for i in range(first + 1, last):
        sq_dist = _sq_segment_distance(points[i], points[first], points[last])
        if sq_dist > max_sq_dist:
            index = i
            max_sq_dist = sq_dist

    if max_sq_dist > sq_tolerance:
        if index - first > 1:
            _simplify_dp_step(points, first, index, sq_tolerance, simplified)
        simplified.append(points[index])
        if last - index > 1:
            _simplify_dp_step(points, index, last, sq_tolerance, simplified)


def simplify(points: Sequence[Vector], tolerance: float) -> List[Vector]:
    """
    Ramer-Douglas-Peucker polyline simplification.

    Args:
        points: Ordered polyline
        tolerance: Maximum distance a removed point may lie from the result

    Returns:
        New list with the first and last point always kept
    """
    if len(points) <= 2:
        return list(points)

    last = len(points) - 1
    simplified = [points[0]]
    _simplify_dp_step(points, 0, last, tolerance * tolerance, simplified)
    simplified.append(points[last])
    return simplified


def polyline_bounds(points: Sequence[Vector]) -> Tuple[IntPoint, IntPoint]:
    """Integer bounding box (floored min, ceiled max) of a polyline."""
    coords = np.asarray(points, dtype=float)
    mins = np.floor(coords.min(axis=0))
    maxs = np.ceil(coords.max(axis=0))
    return (int(mins[0]), int(mins[1])), (int(maxs[0]), int(maxs[1]))


def compute_orientation_histogram(
    segments: Sequence[Tuple[Vector, Vector]],
    num_bins: int = 18
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute orientation histogram for road segments.

    Args:
        segments: (start, end) point pairs
        num_bins: Number of bins for [0, 180)

    Returns:
        (bin_edges, counts) arrays
    """
    bearings = [calculate_bearing(p1, p2) for p1, p2 in segments]

    if not bearings:
        return np.linspace(0, 180, num_bins + 1), np.zeros(num_bins)

    counts, bin_edges = np.histogram(bearings, bins=num_bins, range=(0, 180))
    return bin_edges, counts


def compute_entropy(histogram_counts: np.ndarray) -> float:
    """
    Compute Shannon entropy of histogram.

    Args:
        histogram_counts: Array of bin counts

    Returns:
        Entropy value in bits
    """
    total = np.sum(histogram_counts)
    if total == 0:
        return 0.0

    probs = np.asarray(histogram_counts) / total
    # Remove zeros to avoid log(0)
    probs = probs[probs > 0]

    return float(-np.sum(probs * np.log2(probs)))


class SegmentIndex:
    """
    STRtree over graph edges for crossing queries.
    """

    def __init__(self):
        self.segments: List[LineString] = []
        self.segment_nodes: List[Tuple[int, int]] = []  # (u, v) vertex pairs
        self.tree: Optional[STRtree] = None

    def add_segment(self, u_pos: Vector, v_pos: Vector, u: int, v: int):
        self.segments.append(LineString([u_pos, v_pos]))
        self.segment_nodes.append((u, v))
        # Rebuilt lazily on next query
        self.tree = None

    def _ensure_tree(self):
        if self.tree is None and self.segments:
            self.tree = STRtree(self.segments)

    def find_crossings(
        self,
        line: LineString,
        ignore_nodes: Optional[Set[int]] = None
    ) -> List[int]:
        """
        Indices of stored segments that cross or overlap `line`.

        Segments sharing a vertex in `ignore_nodes` are valid connections.
        """
        self._ensure_tree()
        if not self.segments:
            return []

        if ignore_nodes is None:
            ignore_nodes = set()

        hits = []
        for idx in self.tree.query(line):
            idx = int(idx)
            u, v = self.segment_nodes[idx]
            if u in ignore_nodes or v in ignore_nodes:
                continue

            other = self.segments[idx]
            if line.crosses(other) or line.overlaps(other):
                hits.append(idx)

        return sorted(hits)
