"""
Conformal Module
이산 등각 변환 파이프라인

Usage:
    conformal = Conformal.get_instance(mesh)
    conformal.fixed_boundary_curvature({corner: math.pi / 2, ...})
    result = conformal.transform()
    result.x(corner), result.y(corner), result.edge_length(v1, v2)

One transform runs: log length initialization -> boundary condition ->
Newton optimization -> optional rescaling -> triangle inequality check ->
layout. It either returns a :class:`ResultMesh` or raises exactly one error.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
import logging
import math
from typing import Any, Dict, Hashable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .boundary import BoundaryCondition, FixedBoundaryCurvature, IsometricBoundaryCondition
from .energy import Energy, HypEnergy
from .errors import MeshException, NoSuchVertexException, TriangleInequalityException
from .geometry import Geometry
from .internal_mesh import InternalMesh, Triangle
from .layout import HypLayout, Layout
from .mesh_interfaces import MetricMesh
from .newton import ExitCondition, Newton, Norm, SolverNotConvergedError, validate_line_search_parameters
from .runtime_defaults import DEFAULTS

_LOGGER = logging.getLogger(__name__)


class ResultMesh:
    """
    Snapshot of a finished transform, keyed by the caller's vertex identifiers.

    Satisfies the same iteration contract as the input mesh (triangles as
    3-tuples of identifiers, ``edge_length``) and additionally exposes the
    planar (or Poincaré disk) coordinates and the final log scale factors.
    """

    def __init__(self, mesh: InternalMesh, geometry: Geometry = Geometry.EUCLIDEAN):
        self.geometry = geometry
        self._reps: List[Hashable] = list(mesh.vertex_reps)
        self._index: Dict[Hashable, int] = dict(mesh.vertex_map)
        self._locations = mesh.vertex_location.copy()
        self._u = mesh.vertex_u.copy()
        self._triangles = mesh.triangle_vertices.copy()
        self._lengths = mesh.edge_length.copy()
        self._edge_index: Dict[Tuple[int, int], int] = {
            (int(a), int(b)) if a < b else (int(b), int(a)): e
            for e, (a, b) in enumerate(mesh.edge_vertices)
        }

    def _vid(self, v: Hashable) -> int:
        vid = self._index.get(v)
        if vid is None:
            raise NoSuchVertexException(v)
        return vid

    def __contains__(self, v: Hashable) -> bool:
        return v in self._index

    def __len__(self) -> int:
        return int(self._triangles.shape[0])

    def __iter__(self) -> Iterator[Tuple[Hashable, Hashable, Hashable]]:
        reps = self._reps
        for a, b, c in self._triangles:
            yield reps[a], reps[b], reps[c]

    @property
    def vertices(self) -> List[Hashable]:
        return list(self._reps)

    def x(self, v: Hashable) -> float:
        return float(self._locations[self._vid(v), 0])

    def y(self, v: Hashable) -> float:
        return float(self._locations[self._vid(v), 1])

    def z(self, v: Hashable) -> float:
        self._vid(v)
        return 0.0

    def location(self, v: Hashable) -> Tuple[float, float]:
        loc = self._locations[self._vid(v)]
        return float(loc[0]), float(loc[1])

    def u(self, v: Hashable) -> float:
        """Final log scale factor of a vertex."""
        return float(self._u[self._vid(v)])

    def edge_length(self, v1: Hashable, v2: Hashable) -> float:
        a = self._vid(v1)
        b = self._vid(v2)
        e = self._edge_index.get((a, b) if a < b else (b, a))
        if e is None:
            raise ValueError(f"Vertices {v1!r} and {v2!r} are not adjacent")
        return float(self._lengths[e])

    def to_mesh_data(self, vertex_order: Optional[Sequence[Hashable]] = None):
        """
        Convert to :class:`MeshData` with z = 0.

        Args:
            vertex_order: identifiers giving the row order of the vertex array
                (default: order of first appearance)
        """
        from .mesh_loader import MeshData

        if vertex_order is None:
            rows = np.arange(len(self._reps), dtype=np.int64)
        else:
            rows = np.asarray([self._vid(v) for v in vertex_order], dtype=np.int64)
        position = np.full(len(self._reps), -1, dtype=np.int64)
        position[rows] = np.arange(rows.size, dtype=np.int64)
        if np.any(position < 0):
            raise ValueError("vertex_order must contain every vertex of the result")

        vertices = np.zeros((rows.size, 3), dtype=np.float64)
        vertices[:, :2] = self._locations[rows]
        faces = position[self._triangles]
        return MeshData(vertices=vertices, faces=faces)


class Conformal:
    """Conformal transform of one mesh."""

    def __init__(self, mesh: MetricMesh):
        self._mesh = InternalMesh(mesh)
        self._boundary_condition: Optional[BoundaryCondition] = None
        self._angle_error_bound = DEFAULTS.angle_error_bound
        self._max_iterations = DEFAULTS.newton_max_iterations
        self._cg_tolerance = DEFAULTS.cg_tolerance
        self._line_search: Optional[Tuple[float, float, float]] = None
        self._input_geometry = Geometry.EUCLIDEAN
        self._output_geometry = Geometry.EUCLIDEAN
        self._layout_start: Optional[Triangle] = None
        self._mesh_exception: Optional[MeshException] = None
        self.last_newton: Optional[Newton] = None

    @classmethod
    def get_instance(cls, mesh: MetricMesh) -> "Conformal":
        return cls(mesh)

    @property
    def internal_mesh(self) -> InternalMesh:
        return self._mesh

    # ------------------------------------------------------------------
    # configuration
    # ------------------------------------------------------------------

    @property
    def angle_error_bound(self) -> float:
        """Largest accepted angle sum error (radians), the gradient exit bound."""
        return self._angle_error_bound

    @angle_error_bound.setter
    def angle_error_bound(self, epsilon: float) -> None:
        epsilon = float(epsilon)
        if not math.isfinite(epsilon) or epsilon < 0:
            raise ValueError("angle_error_bound must be a finite, non-negative number")
        self._angle_error_bound = epsilon

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int) -> None:
        if int(value) < 1:
            raise ValueError("max_iterations must be at least 1")
        self._max_iterations = int(value)

    @property
    def cg_tolerance(self) -> float:
        return self._cg_tolerance

    @cg_tolerance.setter
    def cg_tolerance(self, value: float) -> None:
        value = float(value)
        if not 0 < value < 1:
            raise ValueError("cg_tolerance must be in (0, 1)")
        self._cg_tolerance = value

    def line_search_parameters(self, alpha: float, beta: float, gamma: float) -> None:
        validate_line_search_parameters(alpha, beta, gamma)
        self._line_search = (float(alpha), float(beta), float(gamma))

    @property
    def boundary_condition(self) -> Optional[BoundaryCondition]:
        return self._boundary_condition

    def fixed_boundary_curvature(self, angles: Optional[Mapping[Hashable, float]] = None) -> None:
        """Prescribe target angle sums (radians) for some vertices."""
        self._boundary_condition = FixedBoundaryCurvature(angles)

    def isometric_boundary_condition(self) -> None:
        """Preserve the lengths of all boundary edges."""
        self._boundary_condition = IsometricBoundaryCondition()

    @property
    def input_geometry(self) -> Geometry:
        return self._input_geometry

    @input_geometry.setter
    def input_geometry(self, value: Union[Geometry, str]) -> None:
        self._input_geometry = Geometry.resolve(value)

    @property
    def output_geometry(self) -> Geometry:
        return self._output_geometry

    @output_geometry.setter
    def output_geometry(self, value: Union[Geometry, str]) -> None:
        self._output_geometry = Geometry.resolve(value)

    def set_layout_start_triangle(self, corners: Optional[Sequence[Hashable]]) -> None:
        """
        Use the triangle with the given corners (up to cyclic rotation) as the
        layout start. ``None`` restores automatic selection.
        """
        self._layout_start = None
        if corners is None:
            return
        wanted = tuple(corners)
        if len(wanted) != 3:
            raise ValueError("A start triangle needs exactly 3 corners")
        mesh = self._mesh
        reps = mesh.vertex_reps
        for tid, row in enumerate(mesh.triangle_vertices):
            tri = (reps[row[0]], reps[row[1]], reps[row[2]])
            for rotation in range(3):
                if all(wanted[(corner + rotation) % 3] == tri[corner] for corner in range(3)):
                    self._layout_start = Triangle(mesh, tid)
                    return
        raise ValueError(f"Not a triangle of the mesh: {wanted!r}")

    # ------------------------------------------------------------------
    # transform
    # ------------------------------------------------------------------

    def transform(self) -> ResultMesh:
        if self._boundary_condition is None:
            raise RuntimeError("No boundary condition set")
        self._mesh.reset()
        self._init_lamdas()
        self._boundary()
        self._lengths()
        self._triangle_inequalities()
        self._layout()
        return ResultMesh(self._mesh, self._output_geometry)

    def _init_lamdas(self) -> None:
        mesh = self._mesh
        if self._input_geometry is Geometry.EUCLIDEAN:
            lamda = 2.0 * np.log(mesh.edge_orig_length)
        else:
            lamda = 2.0 * np.log(np.sinh(0.5 * mesh.edge_orig_length))
        mesh.edge_orig_log_length = lamda
        mesh.edge_log_length = lamda.copy()

    def _boundary(self) -> None:
        _LOGGER.debug("Assigning boundary conditions")
        assert self._boundary_condition is not None
        self._boundary_condition.set_targets(self._mesh, self._output_geometry)

    def _create_energy(self) -> Energy:
        if self._output_geometry is Geometry.HYPERBOLIC:
            return HypEnergy(self._mesh)
        return Energy(self._mesh)

    def _create_layout(self) -> Layout:
        if self._output_geometry is Geometry.HYPERBOLIC:
            return HypLayout(self._mesh, self._layout_start)
        return Layout(self._mesh, self._layout_start)

    def _configure_newton(self, newton: Newton) -> None:
        newton.set_norm(ExitCondition.GRADIENT, Norm.INFINITY)
        newton.set_epsilon(ExitCondition.GRADIENT, self._angle_error_bound)
        newton.set_epsilon(ExitCondition.ESTIMATE, 0.0)
        newton.set_epsilon(ExitCondition.DELTA, 0.0)
        newton.set_max_iterations(self._max_iterations)
        newton.cg_tolerance = self._cg_tolerance
        if self._line_search is not None:
            newton.line_search_parameters(*self._line_search)

    def _lengths(self) -> None:
        _LOGGER.debug("Optimizing edge lengths")
        energy = self._create_energy()
        newton = Newton(energy)
        self._configure_newton(newton)
        self.last_newton = newton
        try:
            newton.optimize()
        except SolverNotConvergedError as e:
            raise MeshException(f"Could not find optimal solution: {e.reason}") from e
        assert self._boundary_condition is not None
        if not self._boundary_condition.fixed_scale():
            energy.scale()

    def _triangle_inequalities(self) -> None:
        _LOGGER.debug("Checking triangle inequalities")
        mesh = self._mesh
        lengths = mesh.edge_length[mesh.angle_edges]
        violated = np.flatnonzero(lengths[:, 0] > lengths[:, 1] + lengths[:, 2])
        if violated.size:
            row = mesh.angle_vertices[int(violated[0])]
            raise TriangleInequalityException([mesh.vertex_reps[v] for v in row])

    def _layout(self) -> None:
        _LOGGER.debug("Creating layout")
        self._create_layout().layout()

    # ------------------------------------------------------------------
    # background execution
    # ------------------------------------------------------------------

    def call(self) -> Optional[ResultMesh]:
        """
        Run :meth:`transform`, storing a MeshException instead of raising it.

        The stored error must be drained with
        :meth:`throw_intercepted_exceptions` before the next call.
        """
        if self._mesh_exception is not None:
            raise RuntimeError("Uncleared exceptions from previous run")
        try:
            return self.transform()
        except MeshException as e:
            _LOGGER.debug("Intercepted mesh exception: %s", e, exc_info=True)
            self._mesh_exception = e
            return None

    def throw_intercepted_exceptions(self) -> None:
        error = self._mesh_exception
        if error is None:
            return
        self._mesh_exception = None
        raise error

    def submit(self, executor: Optional[Executor] = None) -> "Future[ResultMesh]":
        """
        Run :meth:`transform` in an executor.

        The returned future yields the ResultMesh or raises the transform
        error; no draining is needed.
        """
        if executor is not None:
            return executor.submit(self.transform)
        own = ThreadPoolExecutor(max_workers=1, thread_name_prefix="confmap")
        try:
            return own.submit(self.transform)
        finally:
            own.shutdown(wait=False)

    def __repr__(self) -> str:
        mesh = self._mesh
        return (
            f"Conformal({mesh.n_vertices} vertices, {mesh.n_triangles} triangles, "
            f"{self._input_geometry.name}->{self._output_geometry.name})"
        )

    def exit_summary(self) -> Dict[str, Any]:
        """Exit condition of the last optimization, for reporting."""
        newton = self.last_newton
        if newton is None:
            return {}
        return {
            "exit_condition": newton.exit_condition.name if newton.exit_condition else None,
            "exit_error": newton.exit_error,
            "iterations": newton.iterations,
        }
