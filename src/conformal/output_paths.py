"""
Default output names of the command line exports.

``patch.ply`` flattens to ``patch.flat.obj`` and draws to ``patch.flat.svg``
next to the input unless an explicit path is given.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

FLAT_MESH_SUFFIX = ".flat.obj"
FLAT_SVG_SUFFIX = ".flat.svg"


def _beside(input_path: PathLike, output_path: Optional[PathLike], suffix: str) -> Path:
    if output_path:
        return Path(output_path)
    return Path(input_path).with_suffix(suffix)


def flat_mesh_path(input_path: PathLike, output_path: Optional[PathLike] = None) -> Path:
    return _beside(input_path, output_path, FLAT_MESH_SUFFIX)


def flat_svg_path(input_path: PathLike, output_path: Optional[PathLike] = None) -> Path:
    return _beside(input_path, output_path, FLAT_SVG_SUFFIX)
