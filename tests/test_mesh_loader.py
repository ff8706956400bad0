import tempfile
import unittest
from pathlib import Path

import numpy as np

from src.conformal.mesh_interfaces import LocatedMesh, MetricMesh
from src.conformal.mesh_loader import MeshData, MeshLoader, save_mesh
from src.conformal.output_paths import flat_mesh_path, flat_svg_path
from tests.test_internal_mesh import _make_square_mesh

SQUARE_OBJ = """\
# unit square
v 0 0 0
v 1 0 0
v 1 1 0
v 0 1 0
f 1 2 3
f 1 3 4
"""


class TestMeshData(unittest.TestCase):
    def test_planar_vertices_are_padded(self):
        mesh = MeshData(vertices=[[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]], faces=[[0, 1, 2]])
        self.assertEqual(mesh.vertices.shape, (3, 3))
        self.assertEqual(mesh.z(1), 0.0)

    def test_invalid_input(self):
        with self.assertRaises(ValueError):
            MeshData(vertices=np.zeros((3, 4)), faces=[[0, 1, 2]])
        with self.assertRaises(ValueError):
            MeshData(vertices=np.zeros((3, 3)), faces=[[0, 1, 3]])

    def test_mesh_contracts(self):
        mesh = _make_square_mesh()
        self.assertIsInstance(mesh, MetricMesh)
        self.assertIsInstance(mesh, LocatedMesh)
        triangles = list(mesh)
        self.assertEqual(triangles[0], (0, 4, 7))
        self.assertTrue(all(isinstance(v, int) for v in triangles[0]))
        self.assertAlmostEqual(mesh.edge_length(0, 1), 2.0, places=15)
        self.assertEqual((mesh.x(8), mesh.y(8), mesh.z(8)), (1.0, 1.0, 0.3))

    def test_edges(self):
        mesh = _make_square_mesh()
        self.assertEqual(len(mesh.get_edges()), 16)
        boundary = {tuple(e) for e in mesh.get_boundary_edges().tolist()}
        self.assertEqual(boundary, {(0, 4), (4, 1), (1, 5), (5, 2), (2, 6), (6, 3), (3, 7), (7, 0)})

    def test_boundary_loop_follows_face_orientation(self):
        loops = _make_square_mesh().get_boundary_loops()
        self.assertEqual(len(loops), 1)
        loop = loops[0].tolist()
        self.assertEqual(len(loop), 8)
        start = loop.index(0)
        rotated = loop[start:] + loop[:start]
        self.assertEqual(rotated, [0, 4, 1, 5, 2, 6, 3, 7])

    def test_closed_surface_has_no_boundary(self):
        vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1]], dtype=np.float64)
        faces = np.array([[0, 2, 1], [0, 1, 3], [1, 2, 3], [0, 3, 2]])
        mesh = MeshData(vertices=vertices, faces=faces)
        self.assertEqual(mesh.get_boundary_edges().shape, (0, 2))
        self.assertEqual(mesh.get_boundary_loops(), [])

    def test_extents(self):
        np.testing.assert_allclose(_make_square_mesh().extents, [2.0, 2.0, 0.3])


class TestMeshLoader(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.obj = self.dir / "square.obj"
        self.obj.write_text(SQUARE_OBJ, encoding="utf-8")

    def tearDown(self):
        self.tmp.cleanup()

    def test_load_keeps_vertex_order(self):
        mesh = MeshLoader(default_unit="cm").load(self.obj)
        self.assertEqual(mesh.unit, "cm")
        self.assertEqual(mesh.filepath, self.obj)
        np.testing.assert_allclose(mesh.vertices, [[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]])
        np.testing.assert_array_equal(mesh.faces, [[0, 1, 2], [0, 2, 3]])

    def test_missing_and_unsupported_files(self):
        loader = MeshLoader()
        with self.assertRaises(FileNotFoundError):
            loader.load(self.dir / "missing.obj")
        other = self.dir / "square.xyz"
        other.write_text("", encoding="utf-8")
        with self.assertRaises(ValueError):
            loader.load(other)

    def test_file_info(self):
        info = MeshLoader().get_file_info(self.obj)
        self.assertEqual(info["format"], "Wavefront OBJ")
        self.assertEqual(info["n_vertices"], 4)
        self.assertEqual(info["n_faces"], 2)
        self.assertEqual(info["n_boundary_edges"], 4)
        self.assertEqual(info["n_boundary_loops"], 1)

    def test_save_and_reload(self):
        mesh = _make_square_mesh()
        out = save_mesh(mesh, self.dir / "copy.ply")
        self.assertTrue(out.exists())
        loaded = MeshLoader().load(out)
        np.testing.assert_allclose(loaded.vertices, mesh.vertices, atol=1e-6)
        np.testing.assert_array_equal(loaded.faces, mesh.faces)

    def test_supported_formats(self):
        formats = MeshLoader.get_supported_formats()
        self.assertEqual(set(formats), {".obj", ".ply", ".stl", ".off"})
        formats.clear()
        self.assertIn(".obj", MeshLoader.SUPPORTED_FORMATS)


class TestOutputPaths(unittest.TestCase):
    def test_default_and_explicit_paths(self):
        self.assertEqual(flat_mesh_path("a/patch.ply"), Path("a/patch.flat.obj"))
        self.assertEqual(flat_svg_path("a/patch.ply"), Path("a/patch.flat.svg"))
        self.assertEqual(flat_mesh_path("a/patch.ply", "out.obj"), Path("out.obj"))


if __name__ == "__main__":
    unittest.main()
