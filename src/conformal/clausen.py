"""
Clausen's integral.

    Cl2(x) = -∫₀^x ln|2 sin(t/2)| dt

Evaluated through the dilogarithm on the unit circle, Cl2(x) = Im Li2(e^{ix}),
using scipy's complex Spence function (Li2(w) = spence(1 - w)).
"""

from __future__ import annotations

import numpy as np
from scipy import special


def cl2(x):
    """
    Clausen's integral Cl2(x).

    Args:
        x: scalar or array of angles (radians)

    Returns:
        float for scalar input, otherwise np.ndarray of the same shape
    """
    arr = np.asarray(x, dtype=np.float64)
    # 주기 2π, [-π, π) 구간으로 축소
    r = np.remainder(arr + np.pi, 2.0 * np.pi) - np.pi
    half = np.sin(0.5 * r)
    w = 2.0 * half * half - 1j * np.sin(r)
    out = np.imag(special.spence(w))
    if np.ndim(out) == 0:
        return float(out)
    return out
