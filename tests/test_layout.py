import itertools
import math
import unittest

import numpy as np

from src.conformal.energy import Energy, HypEnergy
from src.conformal.hyp_edge_pos import hyperbolic_distance
from src.conformal.internal_mesh import InternalMesh
from src.conformal.layout import HypLayout, Layout
from tests.test_internal_mesh import SQUARE_FACES, _PointMesh, _make_right_triangle, _make_square_mesh


def _euclidean_square():
    data = _make_square_mesh(planar=True)
    mesh = InternalMesh(data)
    Energy(mesh).update()
    return data, mesh


def _hyperbolic_square():
    points = {i: tuple(0.3 * (xy - 1.0)) for i, xy in enumerate(_make_square_mesh().vertices[:, :2])}
    data = _PointMesh(points, SQUARE_FACES.tolist(), distance=hyperbolic_distance)
    mesh = InternalMesh(data)
    mesh.edge_orig_log_length = 2.0 * np.log(np.sinh(0.5 * mesh.edge_orig_length))
    mesh.edge_log_length = mesh.edge_orig_log_length.copy()
    HypEnergy(mesh).update()
    return data, mesh


class TestStartTriangle(unittest.TestCase):
    def test_find_start_reaches_inner_triangle_last(self):
        _, mesh = _euclidean_square()
        start = Layout(mesh).find_start()
        self.assertEqual({v.rep for v in start.vertices}, {8, 5, 6})

    def test_all_boundary_mesh_falls_back(self):
        mesh = InternalMesh(_make_right_triangle())
        self.assertEqual(Layout(mesh).find_start(), mesh.triangles[0])

    def test_explicit_start_triangle(self):
        _, mesh = _euclidean_square()
        Layout(mesh, mesh.triangles[0]).layout()
        self.assertEqual(mesh.vertex(0).location, (0.0, 0.0))
        x, y = mesh.vertex(4).location
        self.assertGreater(x, 0.0)
        self.assertEqual(y, 0.0)
        self.assertGreater(mesh.vertex(7).location[1], 0.0)


class TestEuclideanLayout(unittest.TestCase):
    def setUp(self):
        self.data, self.mesh = _euclidean_square()
        Layout(self.mesh).layout()

    def test_every_vertex_is_placed(self):
        self.assertTrue(np.all(np.isfinite(self.mesh.vertex_location)))

    def test_edge_lengths_are_realized(self):
        for e in self.mesh.edges:
            (x1, y1), (x2, y2) = e.v1.location, e.v2.location
            self.assertAlmostEqual(math.hypot(x2 - x1, y2 - y1), e.length, delta=1e-12)

    def test_planar_input_is_reproduced_up_to_rigid_motion(self):
        mesh = self.mesh
        for a, b in itertools.combinations(range(9), 2):
            (x1, y1), (x2, y2) = mesh.vertex(a).location, mesh.vertex(b).location
            expected = float(np.linalg.norm(self.data.vertices[a] - self.data.vertices[b]))
            self.assertAlmostEqual(math.hypot(x2 - x1, y2 - y1), expected, delta=1e-12)

    def test_orientation_is_preserved(self):
        mesh = self.mesh
        for t in mesh.triangles:
            (x0, y0), (x1, y1), (x2, y2) = (v.location for v in t.vertices)
            self.assertGreater((x1 - x0) * (y2 - y0) - (x2 - x0) * (y1 - y0), 0.0)

    def test_every_edge_has_a_direction(self):
        for e in self.mesh.edges:
            self.assertIsNotNone(e.direction)
            (x1, y1), (x2, y2) = e.v1.location, e.v2.location
            turn = math.remainder(math.atan2(y2 - y1, x2 - x1) - e.direction, 2.0 * math.pi)
            self.assertAlmostEqual(turn, 0.0, delta=1e-12)

    def test_non_finite_location_is_rejected(self):
        layout = Layout(self.mesh)
        with self.assertRaises(ArithmeticError):
            layout._offer(self.mesh.vertex(8), float("nan"), 0.0, 1.0)


class TestHyperbolicLayout(unittest.TestCase):
    def setUp(self):
        self.data, self.mesh = _hyperbolic_square()
        HypLayout(self.mesh).layout()

    def test_every_vertex_is_inside_the_disk(self):
        locations = self.mesh.vertex_location
        self.assertTrue(np.all(np.isfinite(locations)))
        self.assertTrue(np.all(np.hypot(locations[:, 0], locations[:, 1]) < 1.0))

    def test_edge_lengths_are_realized(self):
        for e in self.mesh.edges:
            d = hyperbolic_distance(e.v1.location, e.v2.location)
            self.assertAlmostEqual(d, e.length, delta=1e-9)

    def test_input_is_reproduced_up_to_isometry(self):
        mesh = self.mesh
        points = self.data.points
        for a, b in itertools.combinations(range(9), 2):
            laid_out = hyperbolic_distance(mesh.vertex(a).location, mesh.vertex(b).location)
            self.assertAlmostEqual(laid_out, hyperbolic_distance(points[a], points[b]), delta=1e-9)

    def test_start_vertex_at_origin(self):
        self.mesh.clear_visited()
        start = Layout(self.mesh).find_start()
        first = start.angles[0].vertex
        self.assertEqual(first.location, (0.0, 0.0))


if __name__ == "__main__":
    unittest.main()
