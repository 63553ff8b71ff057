"""
End-to-end street network generation: tensor field, streamlines, graph.
"""

import logging
import math
import time
from dataclasses import asdict
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from .config import BasisFieldSpec, GeneratorConfig, NoiseParams
from .fields import TensorField
from .graph import Graph
from .integrator import create_integrator
from .streamlines import Streamline, StreamlineGenerator

logger = logging.getLogger(__name__)


class StreetNetworkGenerator:
    """Generate a planar street network from a tensor field configuration."""

    def __init__(self, config: GeneratorConfig, seed: Optional[int] = None):
        """
        Initialize generator.

        Args:
            config: Generator configuration
            seed: Random seed (uses config.seed if None)
        """
        self.config = config
        if seed is None:
            seed = config.seed
        self.seed = seed
        self.rng = np.random.default_rng(seed)

        self.origin = config.origin
        self.world_dimensions = config.world_dimensions

        self.field_specs: List[BasisFieldSpec] = []
        self.noise_params: Optional[NoiseParams] = None
        self.tensor_field: Optional[TensorField] = None

        self.main_roads: Optional[StreamlineGenerator] = None
        self.minor_roads: Optional[StreamlineGenerator] = None
        self.graph: Optional[Graph] = None

        self.timings: Dict[str, float] = {}

    def generate(self) -> Tuple[Graph, List[Streamline], Dict]:
        """
        Generate network.

        Returns:
            (graph, simplified streamlines, metadata) tuple
        """
        for _ in self.iter_generation():
            pass
        return self.graph, self.streamlines, self.metadata()

    def iter_generation(self) -> Iterator[Tuple[str, Streamline]]:
        """
        Run the pipeline one streamline at a time.

        Yields:
            (pass name, raw streamline) after each accepted streamline; the
            graph is available in `self.graph` once the iterator is exhausted
        """
        self.build_tensor_field()

        begin = time.perf_counter()
        self.main_roads = self._create_streamline_generator(self.config.main_roads)
        for streamline in self.main_roads.iter_streamlines():
            yield "main", streamline
        self.timings["main_roads"] = time.perf_counter() - begin
        logger.info(
            "Main roads: %d streamlines in %.0f ms",
            len(self.main_roads.all_streamlines), self.timings["main_roads"] * 1000
        )

        if self.config.minor_roads is not None:
            begin = time.perf_counter()
            self.minor_roads = self._create_streamline_generator(self.config.minor_roads)
            self.minor_roads.add_existing_streamlines(self.main_roads)
            for streamline in self.minor_roads.iter_streamlines():
                yield "minor", streamline
            self.timings["minor_roads"] = time.perf_counter() - begin
            logger.info(
                "Minor roads: %d streamlines in %.0f ms",
                len(self.minor_roads.all_streamlines), self.timings["minor_roads"] * 1000
            )

        begin = time.perf_counter()
        self.graph = Graph.from_streamlines(self.streamlines, self.config.merge_distance)
        self.timings["graph"] = time.perf_counter() - begin

    def build_tensor_field(self) -> TensorField:
        """Create the tensor field from explicit specs or a random layout."""
        begin = time.perf_counter()
        config = self.config

        if config.fields:
            self.field_specs = list(config.fields)
        else:
            self.field_specs = self._random_field_specs()

        noise = config.noise
        if noise.enabled and config.randomize_noise_angle:
            low, high = config.noise_angle_range
            noise = NoiseParams(
                enabled=True,
                size=noise.size,
                angle_degrees=float(self.rng.uniform(low, high))
            )
        self.noise_params = noise

        self.tensor_field = TensorField.from_specs(
            self.field_specs,
            noise_params=noise,
            smooth=config.smooth,
            rng=self.rng,
            land=config.land_polygon
        )

        self.timings["tensor_field"] = time.perf_counter() - begin
        logger.info(
            "Tensor field with %d basis fields generated (noise %s)",
            len(self.field_specs),
            f"{noise.angle_degrees:.1f} deg" if noise.enabled else "off"
        )
        return self.tensor_field

    def _random_field_specs(self) -> List[BasisFieldSpec]:
        """
        Spread `random_field_count` fields over the domain: x random, y evenly
        stepped from bottom to top edge.
        """
        config = self.config
        width, height = self.world_dimensions
        count = config.random_field_count

        specs = []
        for i in range(count):
            fraction = i / (count - 1) if count > 1 else 0.0
            centre = (
                self.origin[0] + float(self.rng.uniform(0, width - 1)),
                self.origin[1] + (height - 1) * fraction,
            )
            size = float(self.rng.uniform(width / 10, width / 4))

            if self.rng.random() < config.grid_probability:
                theta = float(self.rng.uniform(0, math.pi / 2))
                specs.append(BasisFieldSpec("grid", centre, size, 0.0, theta))
            else:
                specs.append(BasisFieldSpec("radial", centre, size, 0.0))

        return specs

    def _create_streamline_generator(self, params) -> StreamlineGenerator:
        # Each pass integrates with its own step size
        integrator = create_integrator(self.config.integrator, self.tensor_field, params)
        return StreamlineGenerator(
            integrator,
            self.origin,
            self.world_dimensions,
            params,
            rng=self.rng,
            seed_at_endpoints=self.config.seed_at_endpoints
        )

    @property
    def streamlines(self) -> List[Streamline]:
        """Simplified streamlines of every pass, main roads first."""
        out: List[Streamline] = []
        for generator in (self.main_roads, self.minor_roads):
            if generator is not None:
                out.extend(generator.all_streamlines_simple)
        return out

    def metadata(self) -> Dict:
        main_count = len(self.main_roads.all_streamlines) if self.main_roads else 0
        minor_count = len(self.minor_roads.all_streamlines) if self.minor_roads else 0
        return {
            "seed": self.seed,
            "basis_fields": [asdict(spec) for spec in self.field_specs],
            "noise": asdict(self.noise_params) if self.noise_params else None,
            "main_streamlines": main_count,
            "minor_streamlines": minor_count,
            "vertices": len(self.graph.vertices) if self.graph else 0,
            "edges": len(self.graph.edges) if self.graph else 0,
            "timings": dict(self.timings),
        }
