"""
Solver and export defaults, overridable through ``CONFMAP_*`` environment variables.

An unparsable or out-of-range value is ignored and the built-in default is
used instead.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import os
from typing import Callable, TypeVar

T = TypeVar("T", int, float)

ENV_ANGLE_ERROR_BOUND = "CONFMAP_ANGLE_ERROR_BOUND"
ENV_NEWTON_MAX_ITERATIONS = "CONFMAP_NEWTON_MAX_ITERATIONS"
ENV_CG_TOLERANCE = "CONFMAP_CG_TOLERANCE"
ENV_SVG_STROKE_WIDTH = "CONFMAP_SVG_STROKE_WIDTH"


@dataclass(frozen=True)
class RuntimeDefaults:
    angle_error_bound: float      # radians, Newton gradient bound
    newton_max_iterations: int
    cg_tolerance: float           # relative residual of the CG solve
    svg_stroke_width: float


def _read_env(env_name: str, default: T, parse: Callable[[str], T], accept: Callable[[T], bool]) -> T:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = parse(raw.strip())
    except ValueError:
        return default
    return value if accept(value) else default


def _in_range(low: float, high: float, *, open_low: bool = False) -> Callable[[float], bool]:
    def accept(value: float) -> bool:
        if not math.isfinite(value):
            return False
        return (low < value if open_low else low <= value) and value <= high
    return accept


def load_runtime_defaults() -> RuntimeDefaults:
    return RuntimeDefaults(
        angle_error_bound=_read_env(ENV_ANGLE_ERROR_BOUND, 2e-14, float, _in_range(0.0, 1.0)),
        newton_max_iterations=_read_env(ENV_NEWTON_MAX_ITERATIONS, 128, int, _in_range(1, 100000)),
        cg_tolerance=_read_env(ENV_CG_TOLERANCE, 1e-10, float, _in_range(0.0, 0.5, open_low=True)),
        svg_stroke_width=_read_env(ENV_SVG_STROKE_WIDTH, 0.5, float, _in_range(0.0, 100.0, open_low=True)),
    )


DEFAULTS = load_runtime_defaults()
