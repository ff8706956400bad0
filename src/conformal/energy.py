"""
Energy Module
이산 등각 변환의 볼록 에너지 함수

The energy is a convex function of the log scale factors ``u`` of all free
vertices. Its gradient at a free vertex is ``target - (angle sum)``, so the
critical point realizes the prescribed angle sums.

Edge lengths follow ``λ = λ0 + u1 + u2`` with ``l = exp(λ/2)`` (Euclidean) or
``l = 2 arsinh(exp(λ/2))`` (hyperbolic). Angles come from the half-angle formula,
clamped to 0 or π when the triangle inequality is violated.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from scipy import sparse

from .clausen import cl2
from .internal_mesh import InternalMesh, Vertex

_LOGGER = logging.getLogger(__name__)


def precise_sum(terms: np.ndarray) -> float:
    """
    Sum terms with reduced cancellation error.

    Terms are sorted; if they have mixed signs, the running sum always takes
    the next term of the sign opposite to the current total.
    """
    values = np.sort(np.asarray(terms, dtype=np.float64).reshape(-1))
    n = int(values.size)
    if n == 0:
        return 0.0
    total = 0.0
    if values[0] >= 0.0:
        for value in values:
            total += float(value)
    elif values[-1] <= 0.0:
        for value in values[::-1]:
            total += float(value)
    else:
        left = 0
        right = n
        while left < right:
            if total >= 0.0:
                total += float(values[left])
                left += 1
            else:
                right -= 1
                total += float(values[right])
    return total


class Energy:
    """Euclidean energy over an :class:`InternalMesh`."""

    def __init__(self, mesh: InternalMesh):
        self.mesh = mesh
        free = ~mesh.vertex_fixed
        self.size = int(np.count_nonzero(free))
        mesh.vertex_index[:] = -1
        mesh.vertex_index[free] = np.arange(self.size, dtype=np.int64)
        self._free = np.flatnonzero(free)
        self._last_terms: Optional[np.ndarray] = None

        if _LOGGER.isEnabledFor(logging.DEBUG):
            for rep, vid in mesh.vertex_map.items():
                _LOGGER.debug(
                    "%r -> %d (%s, %.6f deg)",
                    rep,
                    int(mesh.vertex_index[vid]),
                    Vertex(mesh, vid).kind.name,
                    float(np.degrees(mesh.vertex_target[vid])),
                )

    @property
    def input_dimension(self) -> int:
        return self.size

    def set_argument(self, x) -> None:
        """Write ``x`` into the free vertices and recompute lengths and angles."""
        x = np.asarray(x, dtype=np.float64).reshape(-1)
        if x.size != self.size:
            raise ValueError(f"Expected argument of size {self.size}, got {x.size}")
        self.mesh.vertex_u[self._free] = x
        self.update()

    def update(self) -> None:
        self._update_edges()
        self._update_angles()

    def _update_edges(self) -> None:
        mesh = self.mesh
        ev = mesh.edge_vertices
        mesh.edge_log_length = mesh.edge_orig_log_length + mesh.vertex_u[ev[:, 0]] + mesh.vertex_u[ev[:, 1]]
        mesh.edge_length = self.length_from_log(mesh.edge_log_length)

    def _update_angles(self) -> None:
        mesh = self.mesh
        lengths = mesh.edge_length[mesh.angle_edges]
        mesh.angle_value[:] = self.angles_from_lengths(lengths[:, 0], lengths[:, 1], lengths[:, 2])

    def length_from_log(self, lamda: np.ndarray) -> np.ndarray:
        return np.exp(0.5 * lamda)

    def length_angle_factor(self, length: np.ndarray) -> np.ndarray:
        """Value standing for a length in the half-angle formula."""
        return length

    def angles_from_lengths(self, lo: np.ndarray, ln: np.ndarray, lp: np.ndarray) -> np.ndarray:
        """
        Angle opposite ``lo`` in a triangle with sides ``lo``, ``ln``, ``lp``.

        Triangle inequality violations are clamped: ``lo`` too long gives π,
        ``ln`` or ``lp`` too long gives 0.
        """
        lo = np.asarray(lo, dtype=np.float64)
        ln = np.asarray(ln, dtype=np.float64)
        lp = np.asarray(lp, dtype=np.float64)
        f = self.length_angle_factor

        obtuse = lo >= ln + lp
        flat = ~obtuse & ((ln >= lo + lp) | (lp >= lo + ln))
        ok = ~(obtuse | flat)

        out = np.zeros(lo.shape, dtype=np.float64)
        out[obtuse] = np.pi
        if np.any(ok):
            o = lo[ok]
            n = ln[ok]
            p = lp[ok]
            nom = f(n + o - p) * f(o + p - n)
            denom = f(p + n - o) * f(o + p + n)
            small = nom <= denom
            res = np.empty(o.shape, dtype=np.float64)
            res[small] = 2.0 * np.arctan(np.sqrt(nom[small] / denom[small]))
            big = ~small
            res[big] = np.pi - 2.0 * np.arctan(np.sqrt(denom[big] / nom[big]))
            out[ok] = res
        return out

    def gradient(self) -> np.ndarray:
        """Per free vertex: target minus current angle sum."""
        mesh = self.mesh
        return (mesh.vertex_target - mesh.vertex_angle_sums())[self._free]

    def hessian(self) -> sparse.csr_matrix:
        """Symmetric positive semi-definite Hessian in CSR format."""
        mesh = self.mesh
        n = self.size
        alpha = mesh.angle_value
        active = (alpha > 0.0) & (alpha < np.pi)
        diag, off = self._hessian_weights(active)

        i = mesh.vertex_index[mesh.angle_vertices[active, 1]]
        j = mesh.vertex_index[mesh.angle_vertices[active, 2]]
        has_i = i >= 0
        has_j = j >= 0
        both = has_i & has_j

        rows = np.concatenate([i[has_i], j[has_j], i[both], j[both]])
        cols = np.concatenate([i[has_i], j[has_j], j[both], i[both]])
        data = np.concatenate([diag[has_i], diag[has_j], off[both], off[both]])
        return sparse.coo_matrix((data, (rows, cols)), shape=(n, n)).tocsr()

    def _hessian_weights(self, active: np.ndarray):
        cot2 = 0.5 / np.tan(self.mesh.angle_value[active])
        return cot2, -cot2

    def value_terms(self) -> np.ndarray:
        """Terms whose sum is the energy, in a fixed order."""
        mesh = self.mesh
        alpha = mesh.angle_value
        lamda = mesh.edge_log_length[mesh.angle_edges[:, 0]]
        u_angle = mesh.vertex_u[mesh.angle_vertices[:, 0]]
        return np.concatenate(
            [
                alpha * lamda,
                np.atleast_1d(cl2(2.0 * alpha)),
                -np.pi * u_angle,
                mesh.vertex_target * mesh.vertex_u,
            ]
        )

    def value(self) -> float:
        terms = self.value_terms()
        self._last_terms = terms
        return precise_sum(terms)

    def value_change(self) -> float:
        """
        Energy difference to the last :meth:`value` call, evaluated term by term.
        """
        if self._last_terms is None:
            raise RuntimeError("value() must be called before value_change()")
        terms = self.value_terms()
        change = precise_sum(terms - self._last_terms)
        if _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug(
                "valueChange simple: %r, precise: %r",
                precise_sum(terms) - precise_sum(self._last_terms),
                change,
            )
        return change

    def scale(self) -> None:
        """Shift all u so that they sum to zero."""
        _LOGGER.debug("Scaling result")
        mesh = self.mesh
        mesh.vertex_u -= float(np.mean(mesh.vertex_u))
        self.update()


class HypEnergy(Energy):
    """Hyperbolic energy; lengths are hyperbolic distances."""

    def scale(self) -> None:
        # 쌍곡 기하는 절대 길이 스케일을 가짐
        return

    def length_from_log(self, lamda: np.ndarray) -> np.ndarray:
        return 2.0 * np.arcsinh(np.exp(0.5 * lamda))

    def length_angle_factor(self, length: np.ndarray) -> np.ndarray:
        return np.sinh(0.5 * length)

    def _betas(self) -> np.ndarray:
        alpha = self.mesh.angle_value
        nxt = self.mesh.angle_next
        return 0.5 * (np.pi + alpha - alpha[nxt] - alpha[nxt[nxt]])

    def value_terms(self) -> np.ndarray:
        mesh = self.mesh
        alpha = mesh.angle_value
        beta = self._betas()
        lamda = mesh.edge_log_length[mesh.angle_edges[:, 0]]
        u_angle = mesh.vertex_u[mesh.angle_vertices[:, 0]]
        area = np.pi - alpha.reshape(-1, 3).sum(axis=1)
        return np.concatenate(
            [
                beta * lamda,
                0.5 * np.atleast_1d(cl2(2.0 * alpha)),
                0.5 * np.atleast_1d(cl2(2.0 * beta)),
                -np.pi * u_angle,
                0.5 * np.atleast_1d(cl2(area)),
                mesh.vertex_target * mesh.vertex_u,
            ]
        )

    def _hessian_weights(self, active: np.ndarray):
        mesh = self.mesh
        beta = self._betas()[active]
        cot = 1.0 / np.tan(beta)
        t = np.tanh(0.5 * mesh.edge_length[mesh.angle_edges[active, 0]])
        t_sq = t * t
        return 0.5 * cot * (t_sq + 1.0), 0.5 * cot * (t_sq - 1.0)
