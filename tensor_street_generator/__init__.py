"""
Tensor Field Street Network Generator

Traces evenly spaced streamlines through a tensor field of grid and radial
basis fields and turns them into a planar road graph.
"""

__version__ = "0.1.0"

from .config import BasisFieldSpec, GeneratorConfig, NoiseParams, StreamlineParams
from .fields import BasisField, FieldType, TensorField
from .generator import StreetNetworkGenerator
from .graph import Edge, Graph, Vertex
from .grid_storage import GridStorage
from .integrator import EulerIntegrator, FieldIntegrator, RK4Integrator
from .streamlines import GeneratorState, StreamlineGenerator
from .tensor import Tensor

__all__ = [
    "BasisField",
    "BasisFieldSpec",
    "Edge",
    "EulerIntegrator",
    "FieldIntegrator",
    "FieldType",
    "GeneratorConfig",
    "GeneratorState",
    "Graph",
    "GridStorage",
    "NoiseParams",
    "RK4Integrator",
    "StreamlineGenerator",
    "StreamlineParams",
    "StreetNetworkGenerator",
    "Tensor",
    "TensorField",
    "Vertex",
]
