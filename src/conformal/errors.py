"""
Exceptions raised by the conformal mesh engine.
"""

from __future__ import annotations

from typing import Any, Sequence


class MeshException(Exception):
    """Input mesh or conformal transform could not be processed."""


class TriangleInequalityException(MeshException):
    """
    A triangle of the converged mesh still violates the triangle inequality.

    Attributes:
        corners: the three caller vertex identifiers of the offending triangle
    """

    def __init__(self, corners: Sequence[Any], message: str | None = None):
        self.corners = tuple(corners)
        if message is None:
            message = "Triangle inequality violated for triangle %r" % (self.corners,)
        super().__init__(message)


class NoSuchVertexException(MeshException):
    """A vertex identifier does not occur in the mesh."""

    def __init__(self, vertex: Any):
        self.vertex = vertex
        super().__init__(f"No such vertex in mesh: {vertex!r}")
