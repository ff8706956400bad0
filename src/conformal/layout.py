"""
Layout Module
변 길이로부터 2D 정점 좌표 계산

Breadth-first traversal of the triangle adjacency graph. The start triangle is
placed explicitly, every further triangle is entered through an edge whose
placement is already known and gets its third vertex computed from there.
Locations and edge directions are only *offered*: the first value wins.
"""

from __future__ import annotations

from collections import deque
import logging
import math
from typing import Optional, Tuple

from .hyp_edge_pos import HypEdgePos
from .internal_mesh import Edge, InternalMesh, Triangle, Vertex
from .logging_utils import log_once

_LOGGER = logging.getLogger(__name__)

# 두 방향에서 계산된 좌표 차이 경고 기준 (변 길이 대비)
DISAGREEMENT_TOLERANCE = 1e-6


def _normalize_angle(angle: float) -> float:
    """Map an angle into (-π, π]."""
    while angle > math.pi:
        angle -= 2.0 * math.pi
    while angle <= -math.pi:
        angle += 2.0 * math.pi
    return angle


class Layout:
    """Euclidean layout; edge directions are angles of ``v1 -> v2``."""

    def __init__(self, mesh: InternalMesh, start: Optional[Triangle] = None):
        self.mesh = mesh
        self.start = start

    def layout(self) -> None:
        mesh = self.mesh
        mesh.clear_visited()
        start = self.start if self.start is not None else self.find_start()
        _LOGGER.debug("Start triangle: %r", start)
        self._layout_start(start)

        mesh.clear_visited()
        queue = deque([start])
        while queue:
            t1 = queue.popleft()
            t1.visited = True
            for e in t1.edges:
                t2 = e.other_triangle(t1)
                if t2 is None or t2.visited:
                    continue
                queue.append(t2)
                t2.visited = True
                self._layout_edge(e, t2)

    def find_start(self) -> Triangle:
        """
        Triangle reached last by a breadth-first search from the boundary.

        Falls back to the middle triangle if the mesh has no boundary or
        consists of boundary triangles only.
        """
        triangles = self.mesh.triangles
        queue = deque()
        unqueued = 0
        for t in triangles:
            if t.is_boundary:
                queue.append(t)
                t.visited = True
            else:
                unqueued += 1
        if not queue or unqueued == 0:
            return triangles[len(triangles) // 2]

        while queue:
            t1 = queue.popleft()
            t1.visited = True
            for e in t1.edges:
                t2 = e.other_triangle(t1)
                if t2 is None or t2.visited:
                    continue
                queue.append(t2)
                t2.visited = True
                unqueued -= 1
                if unqueued == 0:
                    return t2
        # 연결되지 않은 메쉬
        return triangles[len(triangles) // 2]

    def _layout_start(self, t: Triangle) -> None:
        a = t.angles[0]
        v1, v2, v3 = a.vertex, a.next_vertex, a.prev_vertex
        e12, e13, e23 = a.next_edge, a.prev_edge, a.opposite_edge
        l12 = e12.length
        l13 = e13.length
        alpha = a.angle
        beta = t.next_angle(v1).angle

        v1.offer_location(0.0, 0.0)
        v2.offer_location(l12, 0.0)
        v3.offer_location(l13 * math.cos(alpha), l13 * math.sin(alpha))

        e12.offer_direction(0.0 if e12.v1 == v1 else math.pi)
        e13.offer_direction(alpha if e13.v1 == v1 else alpha - math.pi)
        e23.offer_direction(math.pi - beta if e23.v1 == v2 else -beta)

    @staticmethod
    def _corners(e: Edge, t: Triangle) -> Tuple[Vertex, Vertex, Vertex]:
        """
        Name the entered triangle ABC (counter-clockwise) so that ``e`` is AB.
        """
        c = t.opposite_vertex(e)
        a = t.next_angle(c).vertex
        b = t.prev_angle(c).vertex
        return a, b, c

    def _layout_edge(self, e: Edge, t: Triangle) -> None:
        a, b, c = self._corners(e, t)
        bac = t.next_angle(c)
        cba = t.prev_angle(c)
        ca = bac.prev_edge
        bc = cba.next_edge

        ab_angle = e.direction if e.v1 == a else e.direction + math.pi
        ac_angle = _normalize_angle(ab_angle + bac.angle)
        bc_angle = _normalize_angle(ab_angle + math.pi - cba.angle)

        ca.offer_direction(ac_angle if ca.v1 == a else _normalize_angle(ac_angle + math.pi))
        bc.offer_direction(bc_angle if bc.v1 == b else _normalize_angle(bc_angle + math.pi))

        ax, ay = a.location
        bx, by = b.location
        ca_len = ca.length
        bc_len = bc.length
        x = 0.5 * (ax + ca_len * math.cos(ac_angle) + bx + bc_len * math.cos(bc_angle))
        y = 0.5 * (ay + ca_len * math.sin(ac_angle) + by + bc_len * math.sin(bc_angle))
        self._offer(c, x, y, min(ca_len, bc_len))

    def _offer(self, c: Vertex, x: float, y: float, scale: float) -> None:
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ArithmeticError(f"Layout produced non-finite location for {c!r}")
        sx, sy = c.offer_location(x, y)
        if math.hypot(sx - x, sy - y) > DISAGREEMENT_TOLERANCE * max(scale, 1e-300):
            log_once(
                _LOGGER,
                ("layout-disagreement", type(self).__name__),
                logging.WARNING,
                "Layout of %r disagrees: kept (%r, %r), computed (%r, %r)",
                c,
                sx,
                sy,
                x,
                y,
            )


class HypLayout(Layout):
    """Poincaré disk layout; edge directions are :class:`HypEdgePos` frames."""

    def _layout_start(self, t: Triangle) -> None:
        a = t.angles[0]
        v1, v2 = a.vertex, a.next_vertex
        e12 = a.next_edge

        pos1 = HypEdgePos.identity(v1.id)
        v1.offer_location(0.0, 0.0)
        e12.offer_direction(pos1)
        x2, y2 = pos1.derive(v2.id, e12.length).origin()
        v2.offer_location(x2, y2)
        self._layout_edge(e12, t)

    def _layout_edge(self, e: Edge, t: Triangle) -> None:
        a, b, c = self._corners(e, t)
        bac = t.next_angle(c)
        cba = t.prev_angle(c)
        ca = bac.prev_edge
        bc = cba.next_edge

        ab_pos: HypEdgePos = e.direction
        ca_pos = ab_pos.derive(a.id, e.length, bac.angle)
        bc_pos = ab_pos.derive(b.id, e.length, -cba.angle)
        _LOGGER.debug("ab = %r, ca = %r, bc = %r", ab_pos, ca_pos, bc_pos)
        ca_pos = ca.offer_direction(ca_pos)
        bc_pos = bc.offer_direction(bc_pos)

        cx1, cy1 = ca_pos.derive(c.id, ca.length).origin()
        cx2, cy2 = bc_pos.derive(c.id, bc.length).origin()
        self._offer(c, 0.5 * (cx1 + cx2), 0.5 * (cy1 + cy2), 1.0 - math.hypot(cx1, cy1))
