import math
import unittest

from src.conformal.hyp_edge_pos import HypEdgePos, hyperbolic_distance


class TestHypEdgePos(unittest.TestCase):
    def test_identity_origin(self):
        self.assertEqual(HypEdgePos.identity().origin(), (0.0, 0.0))

    def test_translation_origin(self):
        for d in (0.1, 1.0, 3.5):
            x, y = HypEdgePos.translation(d).origin()
            self.assertAlmostEqual(x, math.tanh(0.5 * d), places=14)
            self.assertAlmostEqual(y, 0.0, places=15)
            self.assertAlmostEqual(hyperbolic_distance((0.0, 0.0), (x, y)), d, places=11)

    def test_rotation_keeps_origin(self):
        x, y = HypEdgePos.rotation(1.234).origin()
        self.assertAlmostEqual(x, 0.0, places=15)
        self.assertAlmostEqual(y, 0.0, places=15)

    def test_compose_is_normalized(self):
        pos = HypEdgePos.rotation(0.3)
        for _ in range(20):
            pos = pos.compose(HypEdgePos.translation(0.7)).compose(HypEdgePos.rotation(1.1))
        self.assertAlmostEqual(pos.determinant, 1.0, places=12)

    def test_apply_matches_origin(self):
        pos = HypEdgePos.rotation(0.4).compose(HypEdgePos.translation(1.3))
        z = pos.apply(0j)
        x, y = pos.origin()
        self.assertAlmostEqual(z.real, x, places=14)
        self.assertAlmostEqual(z.imag, y, places=14)

    def test_apply_is_an_isometry(self):
        pos = HypEdgePos.rotation(0.7).compose(HypEdgePos.translation(0.9))
        p = complex(0.1, 0.2)
        q = complex(-0.3, 0.5)
        before = hyperbolic_distance((p.real, p.imag), (q.real, q.imag))
        fp = pos.apply(p)
        fq = pos.apply(q)
        after = hyperbolic_distance((fp.real, fp.imag), (fq.real, fq.imag))
        self.assertAlmostEqual(before, after, places=12)

    def test_derive_moves_along_edge_and_back(self):
        length = 1.5
        start = HypEdgePos.identity(0)
        there = start.derive(1, length)
        self.assertEqual(there.vertex, 1)
        x, y = there.origin()
        self.assertAlmostEqual(x, math.tanh(0.5 * length), places=14)
        self.assertAlmostEqual(y, 0.0, places=14)

        back = there.derive(0, length)
        self.assertEqual(back.vertex, 0)
        x, y = back.origin()
        self.assertAlmostEqual(x, 0.0, places=13)
        self.assertAlmostEqual(y, 0.0, places=13)

    def test_derive_at_own_vertex_rotates(self):
        theta = 0.8
        other = 0.6
        pos = HypEdgePos.identity(0).derive(0, 1.0, theta)
        self.assertEqual(pos.vertex, 0)
        x, y = pos.derive(2, other).origin()
        r = math.tanh(0.5 * other)
        self.assertAlmostEqual(x, r * math.cos(theta), places=14)
        self.assertAlmostEqual(y, r * math.sin(theta), places=14)


class TestHyperbolicDistance(unittest.TestCase):
    def test_symmetric_and_zero(self):
        p = (0.2, -0.1)
        q = (-0.4, 0.3)
        self.assertAlmostEqual(hyperbolic_distance(p, q), hyperbolic_distance(q, p), places=14)
        self.assertEqual(hyperbolic_distance(p, p), 0.0)


if __name__ == "__main__":
    unittest.main()
