"""
Discrete conformal mesh transforms for confmap
"""

from .clausen import cl2
from .errors import MeshException, NoSuchVertexException, TriangleInequalityException
from .geometry import Geometry
from .internal_mesh import InternalMesh, VertexKind
from .boundary import BoundaryCondition, FixedBoundaryCurvature, IsometricBoundaryCondition
from .energy import Energy, HypEnergy
from .newton import ExitCondition, Newton, Norm, SolverNotConvergedError
from .hyp_edge_pos import HypEdgePos
from .layout import HypLayout, Layout
from .conformal import Conformal, ResultMesh
from .mesh_loader import MeshData, MeshLoader, save_mesh
from .flattened_svg_exporter import FlattenedSVGExporter, SVGExportOptions

__all__ = [
    # Special functions
    'cl2',
    # Errors
    'MeshException',
    'NoSuchVertexException',
    'TriangleInequalityException',
    # Mesh model
    'Geometry',
    'InternalMesh',
    'VertexKind',
    # Boundary conditions
    'BoundaryCondition',
    'FixedBoundaryCurvature',
    'IsometricBoundaryCondition',
    # Energy and optimization
    'Energy',
    'HypEnergy',
    'ExitCondition',
    'Newton',
    'Norm',
    'SolverNotConvergedError',
    # Layout
    'HypEdgePos',
    'HypLayout',
    'Layout',
    # Transform
    'Conformal',
    'ResultMesh',
    # Mesh I/O
    'MeshData',
    'MeshLoader',
    'save_mesh',
    # SVG export
    'FlattenedSVGExporter',
    'SVGExportOptions',
]
