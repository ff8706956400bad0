"""
Conformal result → SVG exporter

등각 변환 결과(평면 또는 푸앵카레 원판 좌표)를 SVG로 내보냅니다.

Outline (boundary loops) is drawn by default; the triangle wireframe and, for
hyperbolic results, the unit circle can be added.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np

from .conformal import ResultMesh
from .geometry import Geometry
from .runtime_defaults import DEFAULTS

SVG_HEADER = [
    '<?xml version="1.0" encoding="UTF-8" standalone="no"?>',
    '<!DOCTYPE svg PUBLIC "-//W3C//DTD SVG 1.1//EN" '
    '"http://www.w3.org/Graphics/SVG/1.1/DTD/svg11.dtd">',
]


@dataclass(frozen=True)
class SVGExportOptions:
    scale: float = 100.0  # 결과 좌표 1 단위당 SVG 단위 수
    margin: float = 0.05  # 결과 좌표 단위
    include_outline: bool = True
    include_wireframe: bool = True
    include_disk: bool = True  # 쌍곡 결과에만 적용
    stroke_color: str = "#000000"
    wireframe_color: str = "#808080"
    stroke_width: Optional[float] = None  # None이면 DEFAULTS.svg_stroke_width


class FlattenedSVGExporter:
    """ResultMesh를 SVG로 내보내는 유틸리티."""

    def export(self, result: ResultMesh, output_path: str | Path,
               options: SVGExportOptions | None = None) -> str:
        options = options or SVGExportOptions()
        output_path = Path(output_path)
        output_path.write_text(self.to_svg(result, options), encoding="utf-8")
        return str(output_path)

    def to_svg(self, result: ResultMesh, options: SVGExportOptions | None = None) -> str:
        options = options or SVGExportOptions()
        flat = result.to_mesh_data()
        points = flat.vertices[:, :2]
        hyperbolic = result.geometry is Geometry.HYPERBOLIC
        stroke_width = options.stroke_width if options.stroke_width is not None else DEFAULTS.svg_stroke_width

        if points.shape[0] == 0:
            return "\n".join(SVG_HEADER + [
                '<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1" viewBox="0 0 1 1">',
                '<!-- Produced by confmap: empty result -->',
                '</svg>',
            ])

        if hyperbolic and options.include_disk:
            lo = np.array([-1.0, -1.0])
            hi = np.array([1.0, 1.0])
        else:
            lo = points.min(axis=0)
            hi = points.max(axis=0)
        lo = lo - options.margin
        hi = hi + options.margin
        scale = float(options.scale)
        width = float(max((hi[0] - lo[0]) * scale, 1e-6))
        height = float(max((hi[1] - lo[1]) * scale, 1e-6))

        # SVG는 y-down
        def to_svg_xy(pts: np.ndarray) -> np.ndarray:
            out = (np.asarray(pts, dtype=np.float64) - lo) * scale
            out[:, 1] = height - out[:, 1]
            return out

        def fmt(pts: np.ndarray) -> str:
            return " ".join(f"{x:.6f},{y:.6f}" for x, y in to_svg_xy(pts))

        parts: List[str] = list(SVG_HEADER) + [
            f'<svg xmlns="http://www.w3.org/2000/svg" '
            f'width="{width:.4f}" height="{height:.4f}" '
            f'viewBox="0 0 {width:.6f} {height:.6f}">',
            f'<!-- Produced by confmap ({result.geometry.name.lower()} layout) -->',
        ]

        if hyperbolic and options.include_disk:
            center = to_svg_xy(np.zeros((1, 2)))[0]
            parts.append(
                f'<circle id="disk" cx="{center[0]:.6f}" cy="{center[1]:.6f}" r="{scale:.6f}" '
                f'stroke="{options.wireframe_color}" fill="none" stroke-width="{stroke_width}" />'
            )

        if options.include_wireframe:
            parts.append(
                f'<g id="wireframe" stroke="{options.wireframe_color}" fill="none" '
                f'stroke-width="{stroke_width}">'
            )
            for face in flat.faces:
                parts.append(f'<polygon points="{fmt(points[face])}" />')
            parts.append('</g>')

        if options.include_outline:
            parts.append(
                f'<g id="outline" stroke="{options.stroke_color}" fill="none" '
                f'stroke-width="{stroke_width}">'
            )
            for loop in flat.get_boundary_loops():
                parts.append(f'<polygon points="{fmt(points[loop])}" />')
            parts.append('</g>')

        parts.append('</svg>')
        return "\n".join(parts)
