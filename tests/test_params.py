import math
import unittest

from params import Params


class TestParams(unittest.TestCase):
    def test_defaults(self):
        p = Params()
        self.assertEqual(p.num_particles, 5000)
        self.assertEqual(p.spring_k, 0.05)
        self.assertEqual(p.spring_k_high, 0.2)
        self.assertEqual(p.drag, 0.95)
        self.assertEqual(p.jitter, 0.005)
        self.assertEqual(p.extrude_threshold, 0.2)
        self.assertEqual(p.snap_distance, 0.1)
        self.assertEqual(p.snap_step, 0.5)
        self.assertEqual(p.curve_threshold, 0.15)
        self.assertEqual(p.curve_gain, 10.0)
        self.assertEqual((p.wrist, p.index_tip, p.palm_ref), (0, 8, 9))

    def test_overrides(self):
        p = Params(num_particles=10, drag=0.9)
        self.assertEqual(p.num_particles, 10)
        self.assertEqual(p.drag, 0.9)

    def test_unknown_key(self):
        with self.assertRaises(ValueError):
            Params(gravity=9.8)

    def test_invalid_values(self):
        for bad in ({"num_particles": 0}, {"drag": 0.0}, {"drag": 1.5},
                    {"spring_k": -1.0}, {"snap_step": 0.0}, {"jitter": -0.1},
                    {"curve_threshold": math.nan}, {"workers": 0}, {"tick_hz": 0}):
            with self.subTest(bad=bad):
                with self.assertRaises(ValueError):
                    Params(**bad)

    def test_dict_round_trip(self):
        p = Params(num_particles=7, seed=4)
        q = Params.from_dict(p.to_dict())
        self.assertEqual(q.to_dict(), p.to_dict())


if __name__ == '__main__':
    unittest.main()
