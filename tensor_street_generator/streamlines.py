"""
Streamline tracing: seeding, bidirectional integration, simplification and
joining of dangling ends, for a major and a minor density tier.
"""

import enum
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .config import StreamlineParams
from .grid_storage import GridStorage
from .integrator import FieldIntegrator
from .utils import angle_between, simplify

logger = logging.getLogger(__name__)

Vector = Tuple[float, float]
Streamline = List[Vector]

MIN_STREAMLINE_POINTS = 6
DEGENERATE_STEP_SQ = 0.01
DEGENERATE_JOIN_STEP_SQ = 0.001


class GeneratorState(enum.Enum):
    IDLE = "idle"
    SEEDING = "seeding"
    TRACING = "tracing"
    JOINING = "joining"
    DONE = "done"


@dataclass
class StreamlineIntegration:
    """State of one integration front."""

    seed: Vector
    original_dir: Vector
    streamline: Streamline
    previous_direction: Vector
    previous_point: Vector
    valid: bool = True


@dataclass
class _Tier:
    grid: GridStorage
    streamlines: List[Streamline] = field(default_factory=list)
    candidate_seeds: List[Vector] = field(default_factory=list)
    exhausted: bool = False
    rejected_in_a_row: int = 0


def _dot(a: Vector, b: Vector) -> float:
    return a[0] * b[0] + a[1] * b[1]


class StreamlineGenerator:
    """
    Generates evenly spaced streamlines over a rectangular domain.

    Drive it cooperatively with `start()` and repeated `update()` calls (one
    streamline per call, alternating tiers), with `next_streamline()`, or all
    at once with `generate_all()`. Randomness comes only from `rng`.
    """

    def __init__(
        self,
        integrator: FieldIntegrator,
        origin: Vector,
        world_dimensions: Vector,
        params: StreamlineParams,
        rng: Optional[np.random.Generator] = None,
        seed_at_endpoints: bool = False
    ):
        """
        Initialize generator.

        Args:
            integrator: Field integrator providing steps
            origin: World-space lower-left corner of the domain
            world_dimensions: (width, height) of the domain
            params: Tracing parameters; dtest is clamped to dsep
            rng: Random source for seeding and early collision
            seed_at_endpoints: Try other tier's endpoints as seeds first
        """
        self.integrator = integrator
        self.origin = (float(origin[0]), float(origin[1]))
        self.world_dimensions = (float(world_dimensions[0]), float(world_dimensions[1]))
        self.params = params.clamped()
        self.params_sq = self.params.squared()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.seed_at_endpoints = seed_at_endpoints

        self._major = _Tier(GridStorage(self.world_dimensions, self.origin, self.params.dsep))
        self._minor = _Tier(GridStorage(self.world_dimensions, self.origin, self.params.dsep))

        self.all_streamlines: List[Streamline] = []
        self.all_streamlines_simple: List[Streamline] = []

        self.state = GeneratorState.IDLE
        self._last_streamline_major = False
        self._last_accepted: Optional[Streamline] = None

    @property
    def streamlines_major(self) -> List[Streamline]:
        return self._major.streamlines

    @property
    def streamlines_minor(self) -> List[Streamline]:
        return self._minor.streamlines

    @property
    def major_grid(self) -> GridStorage:
        return self._major.grid

    @property
    def minor_grid(self) -> GridStorage:
        return self._minor.grid

    @property
    def done(self) -> bool:
        return self.state is GeneratorState.DONE

    def clear_streamlines(self):
        self.all_streamlines_simple.clear()
        self._major.streamlines.clear()
        self._minor.streamlines.clear()
        self.all_streamlines.clear()

    def add_existing_streamlines(self, other: "StreamlineGenerator"):
        """Make another (already generated) generator's samples obstacles here."""
        self._major.grid.add_all(other.major_grid)
        self._minor.grid.add_all(other.minor_grid)

    def set_grid(self, other: "StreamlineGenerator"):
        """Share another generator's grids instead of copying them."""
        self._major.grid = other.major_grid
        self._minor.grid = other.minor_grid

    # Driving the state machine

    def start(self):
        for tier in (self._major, self._minor):
            tier.exhausted = False
            tier.rejected_in_a_row = 0
        self.state = GeneratorState.SEEDING

    def update(self) -> bool:
        """
        Do one bounded unit of work.

        Returns:
            True if the state changed, False once generation has finished
        """
        if self.state in (GeneratorState.IDLE, GeneratorState.DONE):
            return False

        self._last_accepted = None
        major = not self._last_streamline_major
        if self._tier(major).exhausted:
            major = not major
        self._last_streamline_major = major

        tier = self._tier(major)
        # A field where every trace is too short would otherwise never run out of seeds
        if not self.create_streamline(major) or tier.rejected_in_a_row >= self.params.seed_tries:
            tier.exhausted = True
            logger.debug("No seed found for %s tier", "major" if major else "minor")
            if self._major.exhausted and self._minor.exhausted:
                self.state = GeneratorState.JOINING
                self.join_dangling_streamlines()
                self.state = GeneratorState.DONE
        else:
            self.state = GeneratorState.SEEDING
        return True

    def next_streamline(self) -> Optional[Streamline]:
        """
        Run the state machine until a streamline is accepted.

        Returns:
            The accepted raw streamline, or None when generation is finished
        """
        if self.state is GeneratorState.IDLE:
            self.start()

        while self.update():
            accepted = self._last_accepted
            if accepted is not None:
                self._last_accepted = None
                return accepted
        return None

    def iter_streamlines(self) -> Iterator[Streamline]:
        while True:
            streamline = self.next_streamline()
            if streamline is None:
                return
            yield streamline

    def generate_all(self) -> List[Streamline]:
        """
        Create every streamline synchronously. May be slow if dsep is small.

        Returns:
            Simplified streamlines of both tiers
        """
        begin = time.perf_counter()
        self.start()
        while self.update():
            pass
        logger.info(
            "Generated %d major and %d minor streamlines in %.0f ms",
            len(self.streamlines_major), len(self.streamlines_minor),
            (time.perf_counter() - begin) * 1000
        )
        return self.all_streamlines_simple

    # Streamline creation

    def create_streamline(self, major: bool) -> bool:
        """
        Find a seed and trace a streamline from it.

        Returns:
            False if no seed could be found within params.seed_tries
        """
        seed = self.get_seed(major)
        if seed is None:
            return False

        self.state = GeneratorState.TRACING
        streamline = self.integrate_streamline(seed, major)
        if self.valid_streamline(streamline):
            tier = self._tier(major)
            tier.rejected_in_a_row = 0
            tier.grid.add_polyline(streamline)
            tier.streamlines.append(streamline)
            self.all_streamlines.append(streamline)
            self.all_streamlines_simple.append(self.simplify_streamline(streamline))
            self._last_accepted = streamline

            # Open ends become candidate seeds of the other tier
            if streamline[0] != streamline[-1]:
                other = self._tier(not major)
                other.candidate_seeds.append(streamline[0])
                other.candidate_seeds.append(streamline[-1])

            logger.debug(
                "Accepted %s streamline with %d points",
                "major" if major else "minor", len(streamline)
            )
        else:
            self._tier(major).rejected_in_a_row += 1

        return True

    @staticmethod
    def valid_streamline(streamline: Streamline) -> bool:
        return len(streamline) >= MIN_STREAMLINE_POINTS

    def simplify_streamline(self, streamline: Streamline) -> Streamline:
        return simplify(streamline, self.params.simplify_tolerance)

    def sample_point(self) -> Vector:
        x = self.rng.uniform(0, self.world_dimensions[0] - 1)
        y = self.rng.uniform(0, self.world_dimensions[1] - 1)
        return (float(x) + self.origin[0], float(y) + self.origin[1])

    def get_seed(self, major: bool) -> Optional[Vector]:
        """Try candidate seeds first, then random samples."""
        self.state = GeneratorState.SEEDING
        candidates = self._tier(major).candidate_seeds

        if self.seed_at_endpoints:
            while candidates:
                seed = candidates.pop()
                if self.is_valid_sample(major, seed, self.params_sq.dsep):
                    return seed

        seed = self.sample_point()
        tries = 0
        while not self.is_valid_sample(major, seed, self.params_sq.dsep):
            if tries >= self.params.seed_tries:
                return None
            seed = self.sample_point()
            tries += 1

        return seed

    def is_valid_sample(
        self,
        major: bool,
        point: Vector,
        d_sq: float,
        both_grids: bool = False
    ) -> bool:
        grid_valid = self._tier(major).grid.is_valid_sample(point, d_sq)
        if both_grids:
            grid_valid = grid_valid and self._tier(not major).grid.is_valid_sample(point, d_sq)
        return grid_valid and self.integrator.on_land(point)

    def point_in_bounds(self, v: Vector) -> bool:
        return (self.origin[0] <= v[0] < self.origin[0] + self.world_dimensions[0]
                and self.origin[1] <= v[1] < self.origin[1] + self.world_dimensions[1])

    @staticmethod
    def streamline_turned(seed: Vector, original_dir: Vector, point: Vector, direction: Vector) -> bool:
        """Whether the path has turned through more than 180 degrees."""
        if _dot(original_dir, direction) < 0:
            perpendicular = (original_dir[1], -original_dir[0])
            is_left = _dot((point[0] - seed[0], point[1] - seed[1]), perpendicular) < 0
            direction_up = _dot(direction, perpendicular) > 0
            return is_left == direction_up
        return False

    def streamline_integration_step(
        self,
        front: StreamlineIntegration,
        major: bool,
        collide_both: bool
    ):
        """Advance one integration front by a single step."""
        if not front.valid:
            return

        front.streamline.append(front.previous_point)
        next_direction = self.integrator.integrate(front.previous_point, major)

        # Stop at degenerate point
        if _dot(next_direction, next_direction) < DEGENERATE_STEP_SQ:
            front.valid = False
            return

        # Keep travelling the same way along the axis
        if _dot(next_direction, front.previous_direction) < 0:
            next_direction = (-next_direction[0], -next_direction[1])

        next_point = (
            front.previous_point[0] + next_direction[0],
            front.previous_point[1] + next_direction[1],
        )

        if (self.point_in_bounds(next_point)
                and self.is_valid_sample(major, next_point, self.params_sq.dtest, collide_both)
                and not self.streamline_turned(front.seed, front.original_dir,
                                               next_point, next_direction)):
            front.previous_point = next_point
            front.previous_direction = next_direction
        else:
            # One more step
            front.streamline.append(next_point)
            front.valid = False

    def integrate_streamline(self, seed: Vector, major: bool) -> Streamline:
        """
        Integrate forwards and backwards from seed at the same time.

        Running both fronts together means a closed loop is detected when the
        fronts meet again, and the accumulated error matches at the join.

        Returns:
            Backward points (reversed) followed by forward points
        """
        count = 0
        points_escaped = False  # True once the fronts have moved d_circle_join apart

        collide_early = self.rng.random() < self.params.collide_early

        d = self.integrator.integrate(seed, major)
        neg_d = (-d[0], -d[1])

        forward = StreamlineIntegration(
            seed=seed,
            original_dir=d,
            streamline=[seed],
            previous_direction=d,
            previous_point=(seed[0] + d[0], seed[1] + d[1]),
        )
        forward.valid = self.point_in_bounds(forward.previous_point)

        backward = StreamlineIntegration(
            seed=seed,
            original_dir=neg_d,
            streamline=[],
            previous_direction=neg_d,
            previous_point=(seed[0] + neg_d[0], seed[1] + neg_d[1]),
        )
        backward.valid = self.point_in_bounds(backward.previous_point)

        while count < self.params.path_iterations and (forward.valid or backward.valid):
            self.streamline_integration_step(forward, major, collide_early)
            self.streamline_integration_step(backward, major, collide_early)

            # Join up circles
            dx = forward.previous_point[0] - backward.previous_point[0]
            dy = forward.previous_point[1] - backward.previous_point[1]
            sq_distance = dx * dx + dy * dy

            if not points_escaped and sq_distance > self.params_sq.d_circle_join:
                points_escaped = True

            if points_escaped and sq_distance <= self.params_sq.d_circle_join:
                forward.streamline.append(forward.previous_point)
                forward.streamline.append(backward.previous_point)
                backward.streamline.append(backward.previous_point)
                break

            count += 1

        backward.streamline.reverse()
        backward.streamline.extend(forward.streamline)
        return backward.streamline

    # Dangling ends

    def join_dangling_streamlines(self):
        """Extend open streamline ends towards nearby samples. Edits streamlines in place."""
        joined = 0
        for major in (True, False):
            tier = self._tier(major)
            for streamline in tier.streamlines:
                # Ignore circles
                if streamline[0] == streamline[-1]:
                    continue

                new_start = self.get_best_next_point(streamline[0], streamline[4])
                if new_start is not None:
                    for p in self.points_between(streamline[0], new_start, self.params.dstep):
                        streamline.insert(0, p)
                        tier.grid.add_sample(p)
                    joined += 1

                new_end = self.get_best_next_point(streamline[-1], streamline[-4])
                if new_end is not None:
                    for p in self.points_between(streamline[-1], new_end, self.params.dstep):
                        streamline.append(p)
                        tier.grid.add_sample(p)
                    joined += 1

        logger.debug("Joined %d dangling ends", joined)

        self.all_streamlines_simple = [
            self.simplify_streamline(s) for s in self.all_streamlines
        ]

    def points_between(self, v1: Vector, v2: Vector, dstep: float) -> Streamline:
        """
        Points from v1 to v2 (excluding v1) separated by at most dstep,
        stopping early at a degenerate field point.
        """
        d = math.hypot(v2[0] - v1[0], v2[1] - v1[1])
        n_points = int(math.floor(d / dstep))
        if n_points == 0:
            return []

        step_x = v2[0] - v1[0]
        step_y = v2[1] - v1[1]

        out = []
        for i in range(1, n_points + 1):
            fraction = i / n_points
            next_point = (v1[0] + step_x * fraction, v1[1] + step_y * fraction)
            step = self.integrator.integrate(next_point, True)
            if _dot(step, step) > DEGENERATE_JOIN_STEP_SQ:
                out.append(next_point)
            else:
                return out
        return out

    def get_best_next_point(self, point: Vector, previous_point: Vector) -> Optional[Vector]:
        """
        Best sample ahead of an open end to join it to, or None.

        The target is pushed 4 * simplify_tolerance further along the end's
        direction so that simplification does not pull the end away again.
        """
        nearby = self._major.grid.get_nearby_points(point, self.params.d_lookahead)
        nearby.extend(self._minor.grid.get_nearby_points(point, self.params.d_lookahead))
        direction = (point[0] - previous_point[0], point[1] - previous_point[1])

        closest_sample = None
        closest_distance = math.inf

        for sample in nearby:
            if sample == point or sample == previous_point:
                continue

            difference = (sample[0] - point[0], sample[1] - point[1])
            if _dot(difference, direction) < 0:
                # Backwards
                continue

            distance_sq = _dot(difference, difference)
            if distance_sq < 2 * self.params_sq.dstep:
                closest_sample = sample
                break

            if (angle_between(direction, difference) < self.params.join_angle
                    and distance_sq < closest_distance):
                closest_distance = distance_sq
                closest_sample = sample

        if closest_sample is None:
            return None

        length = math.hypot(direction[0], direction[1])
        if length == 0:
            return closest_sample
        nudge = 4 * self.params.simplify_tolerance / length
        return (closest_sample[0] + direction[0] * nudge, closest_sample[1] + direction[1] * nudge)

    def _tier(self, major: bool) -> _Tier:
        return self._major if major else self._minor
