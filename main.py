"""
confmap - Discrete conformal flattening of triangle meshes
삼각형 메쉬의 이산 등각 평면화 도구

Main entry point
"""

import sys
import math
import logging
from pathlib import Path

# Ensure repository root is on sys.path so "src" is importable.
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.conformal.output_paths import flat_mesh_path, flat_svg_path

_LOGGER = logging.getLogger(__name__)
DEFAULT_MESH_UNIT = "mm"
_LOG_PATH = None


def run_cli(argv=None):
    """커맨드라인 인터페이스 실행"""
    global _LOG_PATH
    try:
        from src.conformal.logging_utils import setup_logging

        _LOG_PATH = setup_logging()
    except Exception as e:
        _LOGGER.debug("Failed to initialize logging: %s", e, exc_info=True)

    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print_help()
        return 0

    cmd = args[0]

    if cmd in ('--help', '-h'):
        print_help()
        return 0

    if cmd == '--info' and len(args) > 1:
        return show_file_info(args[1])

    if cmd in ('--flatten', '--svg') and len(args) > 1:
        output = args[2] if len(args) > 2 else None
        try:
            angles = [float(a) for a in args[3:]]
        except ValueError as e:
            print(f"Error: invalid angle: {e}")
            return 2
        if cmd == '--svg':
            return export_svg(args[1], output, angles)
        return flatten_mesh(args[1], output, angles)

    if cmd == '--isometric' and len(args) > 1:
        return flatten_mesh(args[1], args[2] if len(args) > 2 else None, isometric=True)

    print(f"Error: Unknown command: {cmd}")
    print("Use --help for usage information")
    return 2


def print_help():
    """도움말 출력"""
    from src.conformal.mesh_loader import MeshLoader

    print("=" * 60)
    print("confmap - Discrete conformal flattening")
    print("삼각형 메쉬의 이산 등각 평면화 도구")
    print("=" * 60)
    print()
    print("Usage:")
    print("  python main.py --info <mesh_file>                       # Show file info")
    print("  python main.py --flatten <mesh_file> [output] [angle...]  # Conformal flattening")
    print("  python main.py --isometric <mesh_file> [output]         # Keep boundary lengths")
    print("  python main.py --svg <mesh_file> [output.svg] [angle...] # Flatten and draw as SVG")
    print()
    print("Angles are target corner angles in degrees for vertices 1, 2, 3, ...")
    print("(1-based, in file order). Unlisted vertices keep their defaults: 90 at corners,")
    print("180 along the boundary, 360 inside.")
    print()
    print(f"Supported formats: {list(MeshLoader.SUPPORTED_FORMATS.keys())}")
    print()
    print("Examples:")
    print("  python main.py --flatten patch.obj")
    print("  python main.py --flatten square.obj out.obj 90 90 90 90")
    print("  python main.py --svg square.obj square.svg 90 90 90 90")


def show_file_info(filepath: str):
    """파일 정보 표시"""
    from src.conformal.mesh_loader import MeshLoader

    print(f"\nFile Info: {filepath}")
    print("-" * 40)

    try:
        loader = MeshLoader(default_unit=DEFAULT_MESH_UNIT)
        info = loader.get_file_info(filepath)
        for key, value in info.items():
            print(f"  {key}: {value}")
    except Exception as e:
        print(f"  Error: {e}")
        return 1
    return 0


def _error_message(error: Exception) -> str:
    from src.conformal.logging_utils import format_exception_message

    return format_exception_message("Error", str(error), log_path=_LOG_PATH)


def _transform(filepath: str, angles=None, *, isometric: bool = False):
    from src.conformal.conformal import Conformal
    from src.conformal.mesh_loader import MeshLoader

    loader = MeshLoader(default_unit=DEFAULT_MESH_UNIT)
    mesh = loader.load(filepath)
    print(f"  Loaded: {mesh.n_vertices:,} vertices, {mesh.n_faces:,} faces")

    conformal = Conformal.get_instance(mesh)
    if isometric:
        conformal.isometric_boundary_condition()
    else:
        # k번째 각도 -> 파일의 k번째 정점 (0-based 인덱스 k-1)
        targets = {k: math.radians(a) for k, a in enumerate(angles or [])}
        conformal.fixed_boundary_curvature(targets)

    result = conformal.transform()
    summary = conformal.exit_summary()
    print(
        f"  Optimized: {summary.get('exit_condition')} after {summary.get('iterations')} "
        f"iterations (error {summary.get('exit_error'):.3g})"
    )
    return mesh, result


def flatten_mesh(filepath: str, output_path: str | None = None, angles=None, *, isometric: bool = False):
    """등각 평면화 후 OBJ 저장"""
    from src.conformal.mesh_loader import save_mesh

    print(f"\nFlattening: {filepath}")
    print("-" * 40)

    try:
        mesh, result = _transform(filepath, angles, isometric=isometric)
        order = [int(v) for v in mesh.referenced_vertices()]
        flat = result.to_mesh_data(vertex_order=order)
        print(f"  Flattened: {flat.extents[0]:.4f} x {flat.extents[1]:.4f} {mesh.unit}")

        save_path = save_mesh(flat, flat_mesh_path(filepath, output_path))
        print(f"  Saved: {save_path}")
    except Exception as e:
        print(_error_message(e))
        _LOGGER.error("Flattening failed for %s", filepath, exc_info=True)
        return 1
    return 0


def export_svg(filepath: str, output_path: str | None = None, angles=None):
    """등각 평면화 결과를 SVG로 저장"""
    from src.conformal.flattened_svg_exporter import FlattenedSVGExporter

    print(f"\nFlattening to SVG: {filepath}")
    print("-" * 40)

    try:
        _, result = _transform(filepath, angles)
        save_path = FlattenedSVGExporter().export(result, flat_svg_path(filepath, output_path))
        print(f"  Saved: {save_path}")
    except Exception as e:
        print(_error_message(e))
        _LOGGER.error("SVG export failed for %s", filepath, exc_info=True)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(run_cli())
