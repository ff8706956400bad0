"""
Geometry selection for transform input and output.
"""

from __future__ import annotations

from enum import Enum
from typing import Union


class Geometry(Enum):
    EUCLIDEAN = "euclidean"
    HYPERBOLIC = "hyperbolic"

    @classmethod
    def resolve(cls, value: Union["Geometry", str]) -> "Geometry":
        """Accept a Geometry member or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls.__members__[key]
        raise ValueError(f"Unsupported geometry: {value!r}")
