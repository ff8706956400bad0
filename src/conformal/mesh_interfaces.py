"""
Mesh contracts shared by input meshes and transform results.

Any object iterating over triangles (each a sequence of three hashable corner
identifiers, consistently oriented) and able to report the length between two
adjacent corners can be fed into the conformal transform.
"""

from __future__ import annotations

from typing import Any, Hashable, Iterator, Protocol, Sequence, Tuple, runtime_checkable

from .errors import MeshException


@runtime_checkable
class MetricMesh(Protocol):
    """Triangle mesh with an edge length metric."""

    def __iter__(self) -> Iterator[Sequence[Hashable]]:
        ...

    def edge_length(self, v1: Any, v2: Any) -> float:
        ...


@runtime_checkable
class LocatedMesh(MetricMesh, Protocol):
    """Metric mesh whose vertices also carry coordinates."""

    def x(self, v: Any) -> float:
        ...

    def y(self, v: Any) -> float:
        ...

    def z(self, v: Any) -> float:
        ...


def triangle_corners(triangle: Sequence[Hashable]) -> Tuple[Hashable, Hashable, Hashable]:
    """Validate one triangle of a mesh iteration and return its three corners."""
    corners = tuple(triangle)
    if len(corners) != 3:
        raise MeshException(f"Triangle must have exactly 3 corners, got {len(corners)}")
    return corners  # type: ignore[return-value]
