import numpy as np

import main
from src.conformal.mesh_loader import MeshLoader

SQUARE_OBJ = """\
v 0 0 0
v 1 0 0
v 1 1 0
v 0 1 0
f 1 2 3
f 1 3 4
"""


def _write_square(tmp_path):
    path = tmp_path / "square.obj"
    path.write_text(SQUARE_OBJ, encoding="utf-8")
    return path


def _isolate_logging(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))


def test_help(monkeypatch, tmp_path, capsys):
    _isolate_logging(monkeypatch, tmp_path)
    assert main.run_cli(["--help"]) == 0
    assert "Usage:" in capsys.readouterr().out


def test_unknown_command(monkeypatch, tmp_path, capsys):
    _isolate_logging(monkeypatch, tmp_path)
    assert main.run_cli(["--bogus"]) == 2
    assert "Unknown command" in capsys.readouterr().out


def test_info(monkeypatch, tmp_path, capsys):
    _isolate_logging(monkeypatch, tmp_path)
    path = _write_square(tmp_path)
    assert main.run_cli(["--info", str(path)]) == 0
    out = capsys.readouterr().out
    assert "n_faces: 2" in out
    assert "n_boundary_loops: 1" in out


def test_flatten_square_with_corner_angles(monkeypatch, tmp_path):
    _isolate_logging(monkeypatch, tmp_path)
    path = _write_square(tmp_path)
    out = tmp_path / "flat.obj"
    assert main.run_cli(["--flatten", str(path), str(out), "90", "90", "90", "90"]) == 0

    flat = MeshLoader().load(out)
    np.testing.assert_array_equal(flat.faces, [[0, 1, 2], [0, 2, 3]])
    np.testing.assert_allclose(flat.vertices[:, 2], 0.0)
    sides = [flat.edge_length(a, b) for a, b in ((0, 1), (1, 2), (2, 3), (3, 0))]
    np.testing.assert_allclose(sides, sides[0], rtol=1e-6)
    np.testing.assert_allclose(flat.edge_length(0, 2), np.sqrt(2.0) * sides[0], rtol=1e-6)


def test_flatten_default_output_path(monkeypatch, tmp_path):
    _isolate_logging(monkeypatch, tmp_path)
    path = _write_square(tmp_path)
    assert main.run_cli(["--isometric", str(path)]) == 0
    assert (tmp_path / "square.flat.obj").exists()


def test_flatten_rejects_bad_angle(monkeypatch, tmp_path, capsys):
    _isolate_logging(monkeypatch, tmp_path)
    path = _write_square(tmp_path)
    assert main.run_cli(["--flatten", str(path), str(tmp_path / "o.obj"), "ninety"]) == 2
    assert "invalid angle" in capsys.readouterr().out


def test_flatten_reports_missing_file(monkeypatch, tmp_path, capsys):
    _isolate_logging(monkeypatch, tmp_path)
    assert main.run_cli(["--flatten", str(tmp_path / "missing.obj")]) == 1
    assert "Error:" in capsys.readouterr().out


def test_svg(monkeypatch, tmp_path):
    _isolate_logging(monkeypatch, tmp_path)
    path = _write_square(tmp_path)
    out = tmp_path / "square.svg"
    assert main.run_cli(["--svg", str(path), str(out), "90", "90", "90", "90"]) == 0
    assert "<polygon" in out.read_text(encoding="utf-8")
