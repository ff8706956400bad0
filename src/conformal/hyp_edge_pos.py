"""
Hyperbolic edge placement (Poincaré disk model).

A :class:`HypEdgePos` is an orientation preserving isometry of the disk,
stored as four reals ``(a, b, c, d)``. With ``A = c - i d`` and ``B = a + i b``
it acts as the Möbius map

    z -> (A z + B) / (conj(B) z + conj(A)),     |A|² - |B|² = 1.

Anchored at a vertex, it maps the origin onto that vertex and the positive real
axis onto the ray along the edge, towards its other endpoint.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

import numpy as np

EPS_NORMALIZE = 1e-10


class HypEdgePos:
    __slots__ = ("a", "b", "c", "d", "vertex")

    def __init__(self, a: float = 0.0, b: float = 0.0, c: float = 1.0, d: float = 0.0,
                 vertex: Optional[int] = None):
        self.a = float(a)
        self.b = float(b)
        self.c = float(c)
        self.d = float(d)
        self.vertex = vertex

    def __repr__(self) -> str:
        return "HypEdgePos(a=%.17g, b=%.17g, c=%.17g, d=%.17g, vertex=%r)" % (
            self.a, self.b, self.c, self.d, self.vertex
        )

    @classmethod
    def identity(cls, vertex: Optional[int] = None) -> "HypEdgePos":
        return cls(0.0, 0.0, 1.0, 0.0, vertex)

    @classmethod
    def from_complex(cls, A: complex, B: complex, vertex: Optional[int] = None) -> "HypEdgePos":
        return cls(B.real, B.imag, A.real, -A.imag, vertex)

    @classmethod
    def translation(cls, distance: float, vertex: Optional[int] = None) -> "HypEdgePos":
        """Translation by a hyperbolic distance along the real axis."""
        if math.isinf(distance):
            pos = cls(1.0 if distance > 0 else -1.0, 0.0, 1.0, 0.0, vertex)
        else:
            pos = cls(math.expm1(distance), 0.0, math.exp(distance) + 1.0, 0.0, vertex)
        return pos.normalize()

    @classmethod
    def rotation(cls, theta: float, vertex: Optional[int] = None) -> "HypEdgePos":
        """Rotation about the origin by ``theta``."""
        half = 0.5 * theta
        return cls.from_complex(complex(math.cos(half), math.sin(half)), 0j, vertex)

    @property
    def A(self) -> complex:
        return complex(self.c, -self.d)

    @property
    def B(self) -> complex:
        return complex(self.a, self.b)

    @property
    def determinant(self) -> float:
        return self.c * self.c + self.d * self.d - self.a * self.a - self.b * self.b

    def normalize(self) -> "HypEdgePos":
        det = self.determinant
        if abs(det - 1.0) > EPS_NORMALIZE:
            denom = math.sqrt(det)
            self.a /= denom
            self.b /= denom
            self.c /= denom
            self.d /= denom
        return self

    def compose(self, other: "HypEdgePos", vertex: Optional[int] = None) -> "HypEdgePos":
        """``self ∘ other`` (apply ``other`` first)."""
        A1, B1 = self.A, self.B
        A2, B2 = other.A, other.B
        A = A1 * A2 + B1 * B2.conjugate()
        B = A1 * B2 + B1 * A2.conjugate()
        return HypEdgePos.from_complex(A, B, vertex).normalize()

    def apply(self, z: complex) -> complex:
        A, B = self.A, self.B
        return (A * z + B) / (B.conjugate() * z + A.conjugate())

    def origin(self) -> Tuple[float, float]:
        """Image of the disk origin, i.e. the anchor vertex location."""
        denom = self.c * self.c + self.d * self.d
        return (
            (self.a * self.c + self.b * self.d) / denom,
            (self.b * self.c - self.a * self.d) / denom,
        )

    def derive(self, vertex: int, length: float, angle: Optional[float] = None) -> "HypEdgePos":
        """
        Placement anchored at ``vertex``.

        If this placement is anchored at the other endpoint of an edge of the
        given length, the frame is moved along the edge and turned around so it
        points back. ``angle`` then rotates the frame about ``vertex``.
        """
        if self.vertex == vertex:
            pos = self
        else:
            moved = self.compose(HypEdgePos.translation(length))
            pos = moved.compose(HypEdgePos.rotation(math.pi), vertex)
        if angle is not None:
            pos = pos.compose(HypEdgePos.rotation(angle), vertex)
        return pos


def hyperbolic_distance(p, q) -> float:
    """Distance of two points of the Poincaré disk."""
    zp = complex(p[0], p[1])
    zq = complex(q[0], q[1])
    ratio = abs(zp - zq) / abs(1.0 - zp.conjugate() * zq)
    return float(2.0 * np.arctanh(min(ratio, 1.0)))
