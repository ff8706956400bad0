"""
Boundary conditions.

A boundary condition assigns every vertex its target angle sum and marks the
vertices whose scale factor stays fixed during optimization.
"""

from __future__ import annotations

import logging
import math
from typing import Hashable, Mapping, Optional

from .geometry import Geometry
from .internal_mesh import FULL_ANGLE, InternalMesh, VertexKind

_LOGGER = logging.getLogger(__name__)

KIND_DEFAULT_TARGETS = {
    VertexKind.CORNER: 0.5 * math.pi,
    VertexKind.BOUNDARY: math.pi,
    VertexKind.INTERIOR: FULL_ANGLE,
}


class BoundaryCondition:
    """Base class of the boundary condition strategies."""

    def set_targets(self, mesh: InternalMesh, geometry: Geometry = Geometry.EUCLIDEAN) -> None:
        raise NotImplementedError

    def fixed_scale(self) -> bool:
        """True if the fixed vertices already determine the global scale."""
        raise NotImplementedError


class FixedBoundaryCurvature(BoundaryCondition):
    """
    Prescribe target angle sums, defaulting by vertex kind.

    Args:
        angles: caller vertex identifier -> target angle sum (radians)
    """

    def __init__(self, angles: Optional[Mapping[Hashable, float]] = None):
        self.angles = dict(angles or {})

    def set_targets(self, mesh: InternalMesh, geometry: Geometry = Geometry.EUCLIDEAN) -> None:
        for kind, target in KIND_DEFAULT_TARGETS.items():
            mesh.vertex_target[mesh.vertex_kind == kind.value] = target

        for rep, angle in self.angles.items():
            mesh.vertex(rep).target = float(angle)

        if geometry is Geometry.EUCLIDEAN:
            # 유클리드 에너지는 u 전체 이동에 불변: 정점 하나를 고정해 스케일 자유도 제거.
            # 쌍곡 에너지는 모든 u 에 대해 강볼록이므로 고정할 정점이 없음.
            pinned = mesh.vertices[mesh.n_vertices // 2]
            pinned.fixed = True
            _LOGGER.debug("Pinned vertex %r to fix the scale", pinned.rep)

    def fixed_scale(self) -> bool:
        return False


class IsometricBoundaryCondition(BoundaryCondition):
    """Keep all boundary edge lengths, flatten the interior."""

    def set_targets(self, mesh: InternalMesh, geometry: Geometry = Geometry.EUCLIDEAN) -> None:
        on_boundary = mesh.vertex_kind != VertexKind.INTERIOR.value
        mesh.vertex_fixed[on_boundary] = True
        mesh.vertex_target[~on_boundary] = FULL_ANGLE

    def fixed_scale(self) -> bool:
        return True
