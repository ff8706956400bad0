"""
Mesh Loader Module
메쉬 파일 입출력 (OBJ, PLY, STL, OFF)

``MeshData`` is what the command line feeds into the conformal transform: it
iterates over its faces as vertex index triples, measures edge lengths in 3D
and, for a flattened result, carries the planar coordinates in x and y.
Vertex order is kept exactly as in the file, since boundary angles are
addressed by vertex number.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

import numpy as np
import trimesh


def _half_edges(faces: np.ndarray) -> np.ndarray:
    """(3M, 2) directed edges, in face orientation."""
    return np.concatenate([faces[:, [0, 1]], faces[:, [1, 2]], faces[:, [2, 0]]])


@dataclass
class MeshData:
    """
    삼각형 메쉬 (정점 순서 = 파일 순서)

    Attributes:
        vertices: (N, 3) 좌표, (N, 2) 입력은 z = 0 으로 채움
        faces: (M, 3) 정점 인덱스, 반시계 방향
        unit: 좌표 단위
        filepath: 읽어온 파일
    """
    vertices: np.ndarray
    faces: np.ndarray
    unit: str = 'mm'
    filepath: Optional[Path] = None

    _bounds: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self):
        vertices = np.asarray(self.vertices, dtype=np.float64)
        if vertices.ndim != 2 or vertices.shape[1] not in (2, 3):
            raise ValueError(f"vertices must be (N, 2) or (N, 3), got {vertices.shape}")
        if vertices.shape[1] == 2:
            vertices = np.pad(vertices, ((0, 0), (0, 1)))
        self.vertices = vertices
        self.faces = np.asarray(self.faces, dtype=np.int64).reshape(-1, 3)
        if self.faces.size and not (0 <= self.faces.min() and self.faces.max() < len(vertices)):
            raise ValueError("faces reference vertices out of range")

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def bounds(self) -> np.ndarray:
        """[[min_x, min_y, min_z], [max_x, max_y, max_z]]"""
        if self._bounds is None:
            self._bounds = np.stack([self.vertices.min(axis=0), self.vertices.max(axis=0)])
        return self._bounds

    @property
    def extents(self) -> np.ndarray:
        return self.bounds[1] - self.bounds[0]

    # 변환 입력 인터페이스
    def __iter__(self) -> Iterator[Tuple[int, int, int]]:
        for a, b, c in self.faces.tolist():
            yield a, b, c

    def edge_length(self, v1: int, v2: int) -> float:
        return float(np.linalg.norm(self.vertices[v1] - self.vertices[v2]))

    def x(self, v: int) -> float:
        return float(self.vertices[v, 0])

    def y(self, v: int) -> float:
        return float(self.vertices[v, 1])

    def z(self, v: int) -> float:
        return float(self.vertices[v, 2])

    def referenced_vertices(self) -> np.ndarray:
        """Sorted indices of vertices used by at least one face."""
        return np.unique(self.faces.reshape(-1))

    def get_edges(self) -> np.ndarray:
        """Undirected edges (K, 2), smaller index first."""
        if self.n_faces == 0:
            return np.zeros((0, 2), dtype=np.int64)
        return np.unique(np.sort(_half_edges(self.faces), axis=1), axis=0)

    def get_boundary_edges(self) -> np.ndarray:
        """Edges with a single incident face (K, 2), directed as in that face."""
        if self.n_faces == 0:
            return np.zeros((0, 2), dtype=np.int64)
        half = _half_edges(self.faces)
        _, inverse, counts = np.unique(
            np.sort(half, axis=1), axis=0, return_inverse=True, return_counts=True
        )
        return half[counts[inverse.reshape(-1)] == 1]

    def get_boundary_loops(self) -> List[np.ndarray]:
        """
        경계 루프 목록

        Each loop follows the face orientation and does not repeat its first
        vertex. Pieces shorter than 3 vertices (from non-manifold boundaries)
        are dropped.
        """
        successors: Dict[int, List[int]] = {}
        for a, b in self.get_boundary_edges().tolist():
            successors.setdefault(a, []).append(b)

        loops: List[np.ndarray] = []
        while successors:
            start = next(iter(successors))
            loop = [start]
            v = start
            while v in successors:
                targets = successors[v]
                w = targets.pop()
                if not targets:
                    del successors[v]
                if w == start:
                    break
                loop.append(w)
                v = w
            if len(loop) >= 3:
                loops.append(np.asarray(loop, dtype=np.int64))
        return loops

    def to_trimesh(self) -> 'trimesh.Trimesh':
        return trimesh.Trimesh(vertices=self.vertices, faces=self.faces, process=False)

    @classmethod
    def from_trimesh(cls, mesh: 'trimesh.Trimesh',
                     filepath: Optional[Path] = None,
                     unit: str = 'mm') -> 'MeshData':
        return cls(vertices=mesh.vertices, faces=mesh.faces, unit=unit, filepath=filepath)


class MeshLoader:
    """trimesh 기반 메쉬 로더, 정점 순서를 바꾸지 않음"""

    SUPPORTED_FORMATS = {
        '.obj': 'Wavefront OBJ',
        '.ply': 'Polygon File Format',
        '.stl': 'Stereolithography',
        '.off': 'Object File Format',
    }

    def __init__(self, default_unit: str = 'mm'):
        self.default_unit = default_unit

    @classmethod
    def get_supported_formats(cls) -> dict:
        return dict(cls.SUPPORTED_FORMATS)

    @staticmethod
    def _read(filepath: Path) -> 'trimesh.Trimesh':
        # process=False: 정점 병합/재정렬 금지
        loaded = trimesh.load(str(filepath), force='mesh', process=False, maintain_order=True)
        if isinstance(loaded, trimesh.Scene):
            parts = [g for g in loaded.geometry.values() if isinstance(g, trimesh.Trimesh)]
            if not parts:
                raise ValueError(f"No triangle mesh in: {filepath}")
            loaded = trimesh.util.concatenate(parts)
        if not isinstance(loaded, trimesh.Trimesh):
            raise TypeError(f"Expected trimesh.Trimesh, got {type(loaded).__name__}")
        return loaded

    def _check_path(self, filepath: Union[str, Path]) -> Path:
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {path.suffix.lower()} "
                f"(supported: {', '.join(self.SUPPORTED_FORMATS)})"
            )
        return path

    def load(self, filepath: Union[str, Path], unit: Optional[str] = None) -> MeshData:
        """
        Raises:
            FileNotFoundError: missing file
            ValueError: unsupported extension or no triangles in the file
        """
        path = self._check_path(filepath)
        return MeshData.from_trimesh(self._read(path), filepath=path, unit=unit or self.default_unit)

    def get_file_info(self, filepath: Union[str, Path]) -> dict:
        """파일 요약: 포맷, 크기, 정점/면 수, 경계 엣지/루프 수"""
        path = self._check_path(filepath)
        mesh = MeshData.from_trimesh(self._read(path), filepath=path)
        ext = path.suffix.lower()
        return {
            'filename': path.name,
            'format': self.SUPPORTED_FORMATS[ext],
            'extension': ext,
            'file_size_mb': round(path.stat().st_size / (1024 * 1024), 2),
            'n_vertices': mesh.n_vertices,
            'n_faces': mesh.n_faces,
            'n_boundary_edges': int(len(mesh.get_boundary_edges())),
            'n_boundary_loops': len(mesh.get_boundary_loops()),
        }


def save_mesh(mesh_data: Union[MeshData, 'trimesh.Trimesh'], filepath: Union[str, Path]) -> Path:
    """Write a mesh; the extension picks the format."""
    path = Path(filepath)
    mesh = mesh_data.to_trimesh() if isinstance(mesh_data, MeshData) else mesh_data
    mesh.export(str(path))
    return path
