"""
Configuration management for tensor-field street generation.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class StreamlineParams:
    """Tracing parameters for one density tier. All distances in world units."""

    dsep: float = 100.0  # seed separation
    dtest: float = 30.0  # integration separation
    dstep: float = 1.0  # integration step size
    d_circle_join: float = 5.0  # how close the two fronts must come to close a loop
    d_lookahead: float = 200.0  # how far to search when joining dangling ends
    join_angle: float = 0.1  # radians
    path_iterations: int = 2304
    seed_tries: int = 300
    simplify_tolerance: float = 0.5
    collide_early: float = 0.0  # chance [0, 1] of testing against both tiers

    def __post_init__(self):
        if self.dsep <= 0 or self.dstep <= 0:
            raise ValueError(
                f"dsep and dstep must be positive (dsep={self.dsep}, dstep={self.dstep})"
            )

    def clamped(self) -> "StreamlineParams":
        """Return a copy with dtest <= dsep, warning when clamping was needed."""
        if self.dstep > self.dsep:
            logger.warning(
                "Streamline step %.3f is bigger than dsep %.3f", self.dstep, self.dsep
            )
        if self.dtest > self.dsep:
            logger.warning(
                "dtest %.3f exceeds dsep %.3f, clamping to dsep", self.dtest, self.dsep
            )
            return replace(self, dtest=self.dsep)
        return replace(self)

    def squared(self) -> "StreamlineParams":
        """Squared copy for hot-path distance comparisons."""
        return StreamlineParams(
            dsep=self.dsep ** 2,
            dtest=self.dtest ** 2,
            dstep=self.dstep ** 2,
            d_circle_join=self.d_circle_join ** 2,
            d_lookahead=self.d_lookahead ** 2,
            join_angle=self.join_angle ** 2,
            path_iterations=self.path_iterations ** 2,
            seed_tries=self.seed_tries ** 2,
            simplify_tolerance=self.simplify_tolerance ** 2,
            collide_early=self.collide_early ** 2,
        )


@dataclass
class NoiseParams:
    """Global rotational noise applied on top of the basis fields."""

    enabled: bool = False
    size: float = 2.0
    angle_degrees: float = 0.0


@dataclass
class BasisFieldSpec:
    """Pure-data description of one basis field."""

    kind: str = "grid"  # 'grid' or 'radial'
    centre: Tuple[float, float] = (0.0, 0.0)
    size: float = 100.0
    decay: float = 0.0
    theta: float = 0.0

    def __post_init__(self):
        if self.kind not in ("grid", "radial"):
            raise ValueError(f"Unknown basis field kind: {self.kind}")
        self.centre = tuple(self.centre)


@dataclass
class GeneratorConfig:
    """Configuration for a complete generation run."""

    # Reproducibility
    seed: int = 42

    # Domain
    origin: Tuple[float, float] = (0.0, 0.0)
    world_width: float = 1024.0
    world_height: float = 1024.0

    # Tensor field
    fields: List[BasisFieldSpec] = field(default_factory=list)
    random_field_count: int = 10
    grid_probability: float = 0.3
    smooth: bool = False
    noise: NoiseParams = field(default_factory=lambda: NoiseParams(
        enabled=True, size=2.0, angle_degrees=45.0
    ))
    randomize_noise_angle: bool = True
    noise_angle_range: Tuple[float, float] = (30.0, 60.0)
    land_polygon: Optional[List[Tuple[float, float]]] = None

    # Tracing
    integrator: str = "rk4"
    seed_at_endpoints: bool = False
    main_roads: StreamlineParams = field(default_factory=StreamlineParams)
    minor_roads: Optional[StreamlineParams] = None

    # Graph
    merge_distance: float = 10.0

    def __post_init__(self):
        if self.world_width <= 0 or self.world_height <= 0:
            raise ValueError("World dimensions must be positive")
        if self.integrator not in ("rk4", "euler"):
            raise ValueError(f"Unknown integrator: {self.integrator}")
        self.origin = tuple(self.origin)
        self.noise_angle_range = tuple(self.noise_angle_range)

    @classmethod
    def from_dict(cls, data: Dict) -> "GeneratorConfig":
        """Build configuration from a plain dict, as loaded from JSON."""
        data = dict(data)
        if "fields" in data:
            data["fields"] = [BasisFieldSpec(**spec) for spec in data["fields"]]
        if "noise" in data:
            data["noise"] = NoiseParams(**data["noise"])
        if "main_roads" in data:
            data["main_roads"] = StreamlineParams(**data["main_roads"])
        if data.get("minor_roads") is not None:
            data["minor_roads"] = StreamlineParams(**data["minor_roads"])
        if data.get("land_polygon") is not None:
            data["land_polygon"] = [tuple(p) for p in data["land_polygon"]]
        return cls(**data)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_json(cls, filepath: str) -> "GeneratorConfig":
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def to_json(self, filepath: str) -> None:
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @property
    def world_dimensions(self) -> Tuple[float, float]:
        return (self.world_width, self.world_height)
