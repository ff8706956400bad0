"""
Internal Mesh Module
변환 전용 내부 메쉬 표현

All entities live in flat numpy arrays owned by :class:`InternalMesh`.
``Vertex``, ``Edge``, ``Angle`` and ``Triangle`` are light handles (mesh, id)
that read and write those arrays, so cross references are plain integer lookups.

Conventions:
    - angles of triangle ``t`` have ids ``3t``, ``3t + 1``, ``3t + 2``
    - angle rows are ``[vertex, next_vertex, prev_vertex]`` and
      ``[opposite_edge, next_edge, prev_edge]``
    - an edge stores ``(v1, v2)`` in the orientation of its first triangle,
      the second triangle must traverse it as ``(v2, v1)``
    - ``-1`` marks an absent triangle or a fixed vertex index
"""

from __future__ import annotations

from enum import Enum
import logging
import math
from typing import Any, Dict, Hashable, List, Optional, Tuple

import numpy as np

from .errors import MeshException, NoSuchVertexException
from .mesh_interfaces import MetricMesh, triangle_corners

_LOGGER = logging.getLogger(__name__)

FULL_ANGLE = 2.0 * math.pi


class VertexKind(Enum):
    """Classification of a vertex by the boundary status of its edges."""

    CORNER = 0
    BOUNDARY = 1
    INTERIOR = 2


_KIND_BY_CODE = {kind.value: kind for kind in VertexKind}


class Vertex:
    __slots__ = ("mesh", "id")

    def __init__(self, mesh: "InternalMesh", vid: int):
        self.mesh = mesh
        self.id = int(vid)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Vertex) and other.mesh is self.mesh and other.id == self.id

    def __hash__(self) -> int:
        return hash((id(self.mesh), "v", self.id))

    def __repr__(self) -> str:
        return f"Vertex({self.rep!r})"

    @property
    def rep(self) -> Hashable:
        """Caller supplied identifier"""
        return self.mesh.vertex_reps[self.id]

    @property
    def index(self) -> int:
        return int(self.mesh.vertex_index[self.id])

    @property
    def target(self) -> float:
        return float(self.mesh.vertex_target[self.id])

    @target.setter
    def target(self, value: float) -> None:
        self.mesh.vertex_target[self.id] = float(value)

    @property
    def u(self) -> float:
        return float(self.mesh.vertex_u[self.id])

    @property
    def fixed(self) -> bool:
        return bool(self.mesh.vertex_fixed[self.id])

    @fixed.setter
    def fixed(self, value: bool) -> None:
        self.mesh.vertex_fixed[self.id] = bool(value)

    @property
    def kind(self) -> VertexKind:
        return _KIND_BY_CODE[int(self.mesh.vertex_kind[self.id])]

    @property
    def location(self) -> Optional[Tuple[float, float]]:
        loc = self.mesh.vertex_location[self.id]
        if np.isnan(loc[0]):
            return None
        return float(loc[0]), float(loc[1])

    def offer_location(self, x: float, y: float) -> Tuple[float, float]:
        """Set the location unless one is already set; return the stored location."""
        loc = self.mesh.vertex_location[self.id]
        if np.isnan(loc[0]):
            loc[0] = float(x)
            loc[1] = float(y)
        return float(loc[0]), float(loc[1])


class Edge:
    __slots__ = ("mesh", "id")

    def __init__(self, mesh: "InternalMesh", eid: int):
        self.mesh = mesh
        self.id = int(eid)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Edge) and other.mesh is self.mesh and other.id == self.id

    def __hash__(self) -> int:
        return hash((id(self.mesh), "e", self.id))

    def __repr__(self) -> str:
        return f"Edge({self.v1.rep!r}, {self.v2.rep!r})"

    @property
    def v1(self) -> Vertex:
        return Vertex(self.mesh, self.mesh.edge_vertices[self.id, 0])

    @property
    def v2(self) -> Vertex:
        return Vertex(self.mesh, self.mesh.edge_vertices[self.id, 1])

    @property
    def t1(self) -> "Triangle":
        return Triangle(self.mesh, self.mesh.edge_triangles[self.id, 0])

    @property
    def t2(self) -> Optional["Triangle"]:
        t = int(self.mesh.edge_triangles[self.id, 1])
        return Triangle(self.mesh, t) if t >= 0 else None

    @property
    def is_boundary(self) -> bool:
        return int(self.mesh.edge_triangles[self.id, 1]) < 0

    @property
    def orig_length(self) -> float:
        return float(self.mesh.edge_orig_length[self.id])

    @property
    def orig_log_length(self) -> float:
        return float(self.mesh.edge_orig_log_length[self.id])

    @property
    def log_length(self) -> float:
        return float(self.mesh.edge_log_length[self.id])

    @property
    def length(self) -> float:
        return float(self.mesh.edge_length[self.id])

    @property
    def direction(self) -> Any:
        """Layout direction (angle or HypEdgePos), None until laid out."""
        return self.mesh.edge_direction[self.id]

    def offer_direction(self, value: Any) -> Any:
        """Set the direction unless one is already set; return the stored direction."""
        stored = self.mesh.edge_direction[self.id]
        if stored is None:
            self.mesh.edge_direction[self.id] = value
            return value
        return stored

    def other_vertex(self, v: Vertex) -> Vertex:
        a, b = self.mesh.edge_vertices[self.id]
        if v.id == a:
            return Vertex(self.mesh, b)
        if v.id == b:
            return Vertex(self.mesh, a)
        raise ValueError(f"{v!r} is not an endpoint of {self!r}")

    def other_triangle(self, t: "Triangle") -> Optional["Triangle"]:
        t1, t2 = self.mesh.edge_triangles[self.id]
        if t.id == t1:
            return Triangle(self.mesh, t2) if t2 >= 0 else None
        if t.id == t2:
            return Triangle(self.mesh, t1)
        raise ValueError(f"{t!r} is not adjacent to {self!r}")


class Angle:
    __slots__ = ("mesh", "id")

    def __init__(self, mesh: "InternalMesh", aid: int):
        self.mesh = mesh
        self.id = int(aid)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Angle) and other.mesh is self.mesh and other.id == self.id

    def __hash__(self) -> int:
        return hash((id(self.mesh), "a", self.id))

    def __repr__(self) -> str:
        return f"Angle({self.vertex.rep!r} in {self.triangle!r})"

    @property
    def vertex(self) -> Vertex:
        return Vertex(self.mesh, self.mesh.angle_vertices[self.id, 0])

    @property
    def next_vertex(self) -> Vertex:
        return Vertex(self.mesh, self.mesh.angle_vertices[self.id, 1])

    @property
    def prev_vertex(self) -> Vertex:
        return Vertex(self.mesh, self.mesh.angle_vertices[self.id, 2])

    @property
    def opposite_edge(self) -> Edge:
        return Edge(self.mesh, self.mesh.angle_edges[self.id, 0])

    @property
    def next_edge(self) -> Edge:
        return Edge(self.mesh, self.mesh.angle_edges[self.id, 1])

    @property
    def prev_edge(self) -> Edge:
        return Edge(self.mesh, self.mesh.angle_edges[self.id, 2])

    @property
    def next_angle(self) -> "Angle":
        return Angle(self.mesh, self.mesh.angle_next[self.id])

    @property
    def triangle(self) -> "Triangle":
        return Triangle(self.mesh, self.id // 3)

    @property
    def angle(self) -> float:
        return float(self.mesh.angle_value[self.id])


class Triangle:
    __slots__ = ("mesh", "id")

    def __init__(self, mesh: "InternalMesh", tid: int):
        self.mesh = mesh
        self.id = int(tid)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Triangle) and other.mesh is self.mesh and other.id == self.id

    def __hash__(self) -> int:
        return hash((id(self.mesh), "t", self.id))

    def __repr__(self) -> str:
        return "Triangle(%r, %r, %r)" % tuple(v.rep for v in self.vertices)

    @property
    def angles(self) -> Tuple[Angle, Angle, Angle]:
        base = 3 * self.id
        return Angle(self.mesh, base), Angle(self.mesh, base + 1), Angle(self.mesh, base + 2)

    @property
    def vertices(self) -> Tuple[Vertex, Vertex, Vertex]:
        return tuple(Vertex(self.mesh, v) for v in self.mesh.triangle_vertices[self.id])  # type: ignore[return-value]

    @property
    def edges(self) -> Tuple[Edge, Edge, Edge]:
        """Edges opposite to the three angles, in angle order."""
        return tuple(Edge(self.mesh, e) for e in self.mesh.triangle_edges[self.id])  # type: ignore[return-value]

    @property
    def is_boundary(self) -> bool:
        return bool(np.any(self.mesh.edge_triangles[self.mesh.triangle_edges[self.id], 1] < 0))

    @property
    def visited(self) -> bool:
        return bool(self.mesh.triangle_visited[self.id])

    @visited.setter
    def visited(self, value: bool) -> None:
        self.mesh.triangle_visited[self.id] = bool(value)

    def _corner_of(self, v: Vertex) -> int:
        row = self.mesh.triangle_vertices[self.id]
        for i in range(3):
            if row[i] == v.id:
                return i
        raise ValueError(f"{v!r} is not a corner of {self!r}")

    def opposite_vertex(self, e: Edge) -> Vertex:
        row = self.mesh.triangle_edges[self.id]
        for i in range(3):
            if row[i] == e.id:
                return Vertex(self.mesh, self.mesh.triangle_vertices[self.id, i])
        raise ValueError(f"{e!r} is not an edge of {self!r}")

    def next_angle(self, v: Vertex) -> Angle:
        """The angle following the corner at ``v`` (its previous vertex is ``v``)."""
        return Angle(self.mesh, 3 * self.id + (self._corner_of(v) + 1) % 3)

    def prev_angle(self, v: Vertex) -> Angle:
        """The angle preceding the corner at ``v`` (its next vertex is ``v``)."""
        return Angle(self.mesh, 3 * self.id + (self._corner_of(v) + 2) % 3)


class InternalMesh:
    """
    Linked mesh built once from a caller supplied :class:`MetricMesh`.

    Only scalar state (u, lengths, angles, targets, locations, directions)
    changes after construction.
    """

    def __init__(self, mesh: MetricMesh):
        self.vertex_reps: List[Hashable] = []
        self.vertex_map: Dict[Hashable, int] = {}

        edge_map: Dict[Tuple[int, int], int] = {}
        edge_vertices: List[Tuple[int, int]] = []
        edge_triangles: List[List[int]] = []
        edge_lengths: List[float] = []
        triangle_vertices: List[Tuple[int, int, int]] = []
        triangle_edges: List[Tuple[int, int, int]] = []

        for tri in mesh:
            corners = triangle_corners(tri)
            vids = tuple(self._intern(c) for c in corners)
            if len(set(vids)) != 3:
                raise MeshException(f"Degenerate triangle repeats a corner: {corners!r}")
            t = len(triangle_vertices)
            opposite = []
            for i in range(3):
                i1 = (i + 1) % 3
                i2 = (i + 2) % 3
                v1 = vids[i1]
                v2 = vids[i2]
                key = (v1, v2) if v1 < v2 else (v2, v1)
                e = edge_map.get(key)
                if e is None:
                    length = float(mesh.edge_length(corners[i1], corners[i2]))
                    if not math.isfinite(length) or length <= 0.0:
                        raise MeshException(
                            f"Edge ({corners[i1]!r}, {corners[i2]!r}) has invalid length {length!r}"
                        )
                    e = len(edge_vertices)
                    edge_map[key] = e
                    edge_vertices.append((v1, v2))
                    edge_triangles.append([t, -1])
                    edge_lengths.append(length)
                else:
                    if edge_triangles[e][1] >= 0:
                        raise MeshException(
                            "More than two triangles adjacent to a single edge "
                            f"({corners[i1]!r}, {corners[i2]!r})"
                        )
                    if edge_vertices[e] != (v2, v1):
                        raise MeshException(
                            "Inconsistent triangle orientation at edge "
                            f"({corners[i1]!r}, {corners[i2]!r})"
                        )
                    edge_triangles[e][1] = t
                opposite.append(e)
            triangle_vertices.append(vids)  # type: ignore[arg-type]
            triangle_edges.append(tuple(opposite))  # type: ignore[arg-type]

        if not triangle_vertices:
            raise MeshException("Mesh contains no triangles")

        self._edge_map = edge_map
        n_v = len(self.vertex_reps)
        n_e = len(edge_vertices)
        n_t = len(triangle_vertices)

        self.triangle_vertices = np.asarray(triangle_vertices, dtype=np.int64).reshape(n_t, 3)
        self.triangle_edges = np.asarray(triangle_edges, dtype=np.int64).reshape(n_t, 3)
        self.triangle_visited = np.zeros(n_t, dtype=bool)

        self.edge_vertices = np.asarray(edge_vertices, dtype=np.int64).reshape(n_e, 2)
        self.edge_triangles = np.asarray(edge_triangles, dtype=np.int64).reshape(n_e, 2)
        self.edge_orig_length = np.asarray(edge_lengths, dtype=np.float64)
        self.edge_orig_log_length = 2.0 * np.log(self.edge_orig_length)
        self.edge_log_length = self.edge_orig_log_length.copy()
        self.edge_length = self.edge_orig_length.copy()
        self.edge_direction: List[Any] = [None] * n_e

        # 각 삼각형의 꼭짓점 i: [v_i, v_i+1, v_i+2], 변: [대변, v_i-v_i+1, v_i-v_i+2]
        rot1 = [1, 2, 0]
        rot2 = [2, 0, 1]
        tv = self.triangle_vertices
        te = self.triangle_edges
        self.angle_vertices = np.stack([tv, tv[:, rot1], tv[:, rot2]], axis=-1).reshape(3 * n_t, 3)
        self.angle_edges = np.stack([te, te[:, rot2], te[:, rot1]], axis=-1).reshape(3 * n_t, 3)
        base = 3 * np.arange(n_t, dtype=np.int64)[:, None]
        self.angle_next = (base + np.asarray(rot1, dtype=np.int64)[None, :]).reshape(-1)
        self.angle_value = np.zeros(3 * n_t, dtype=np.float64)

        self.vertex_kind = self._classify_vertices(n_v)
        self.vertex_index = np.full(n_v, -1, dtype=np.int64)
        self.vertex_target = np.full(n_v, FULL_ANGLE, dtype=np.float64)
        self.vertex_u = np.zeros(n_v, dtype=np.float64)
        self.vertex_fixed = np.zeros(n_v, dtype=bool)
        self.vertex_location = np.full((n_v, 2), np.nan, dtype=np.float64)

        _LOGGER.debug(
            "InternalMesh: %d vertices, %d edges (%d boundary), %d triangles",
            n_v,
            n_e,
            int(np.count_nonzero(self.edge_triangles[:, 1] < 0)),
            n_t,
        )

    def _intern(self, rep: Hashable) -> int:
        vid = self.vertex_map.get(rep)
        if vid is None:
            vid = len(self.vertex_reps)
            self.vertex_map[rep] = vid
            self.vertex_reps.append(rep)
        return vid

    def _classify_vertices(self, n_v: int) -> np.ndarray:
        boundary = self.edge_triangles[:, 1] < 0
        touches_boundary = np.bincount(self.edge_vertices[boundary].reshape(-1), minlength=n_v) > 0
        touches_interior = np.bincount(self.edge_vertices[~boundary].reshape(-1), minlength=n_v) > 0
        kind = np.full(n_v, VertexKind.INTERIOR.value, dtype=np.int8)
        kind[touches_boundary] = VertexKind.CORNER.value
        kind[touches_boundary & touches_interior] = VertexKind.BOUNDARY.value
        return kind

    @property
    def n_vertices(self) -> int:
        return len(self.vertex_reps)

    @property
    def n_edges(self) -> int:
        return int(self.edge_vertices.shape[0])

    @property
    def n_triangles(self) -> int:
        return int(self.triangle_vertices.shape[0])

    @property
    def vertices(self) -> List[Vertex]:
        return [Vertex(self, i) for i in range(self.n_vertices)]

    @property
    def edges(self) -> List[Edge]:
        return [Edge(self, i) for i in range(self.n_edges)]

    @property
    def angles(self) -> List[Angle]:
        return [Angle(self, i) for i in range(3 * self.n_triangles)]

    @property
    def triangles(self) -> List[Triangle]:
        return [Triangle(self, i) for i in range(self.n_triangles)]

    def vertex(self, rep: Hashable) -> Vertex:
        vid = self.vertex_map.get(rep)
        if vid is None:
            raise NoSuchVertexException(rep)
        return Vertex(self, vid)

    def edge(self, rep1: Hashable, rep2: Hashable) -> Optional[Edge]:
        """The edge joining two caller vertices, or None if they are not adjacent."""
        a = self.vertex(rep1).id
        b = self.vertex(rep2).id
        e = self._edge_map.get((a, b) if a < b else (b, a))
        return Edge(self, e) if e is not None else None

    def vertex_angle_sums(self) -> np.ndarray:
        """Sum of the current angles around every vertex."""
        return np.bincount(self.angle_vertices[:, 0], weights=self.angle_value, minlength=self.n_vertices)

    def clear_visited(self) -> None:
        self.triangle_visited[:] = False

    def reset(self) -> None:
        """Restore the per-transform state so the mesh can be transformed again."""
        self.vertex_index[:] = -1
        self.vertex_target[:] = FULL_ANGLE
        self.vertex_u[:] = 0.0
        self.vertex_fixed[:] = False
        self.vertex_location[:] = np.nan
        self.edge_orig_log_length = 2.0 * np.log(self.edge_orig_length)
        self.edge_log_length = self.edge_orig_log_length.copy()
        self.edge_length = self.edge_orig_length.copy()
        self.edge_direction = [None] * self.n_edges
        self.angle_value[:] = 0.0
        self.clear_visited()
