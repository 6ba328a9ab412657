"""
Unit tests for DimensionCollection and its algebra.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest
import numpy as np

from dimswarm import (
    DimensionCollection, Scalar, Fractional, Spectrum, Nested,
    KeyNotFoundError, DivisionByZeroError,
)


def make_pair():
    a = DimensionCollection({
        'x': 2.0,
        'f': Fractional(1.0, 0.25),
        's': Spectrum({500: 0.8, 600: 1.0}),
        'n': Nested((1.0, Nested((2.0,)))),
    })
    b = DimensionCollection({
        'x': -0.7,
        'f': Fractional(3.0, 0.5),
        's': Spectrum({500: 0.1, 600: 2.5}),
        'n': Nested((4.0, Nested((-1.0,)))),
    })
    return a, b


class TestMembership(unittest.TestCase):

    def test_overwrite_keeps_position(self):
        c = DimensionCollection({'a': 1.0, 'b': 2.0})
        c.add_dimension('a', 9.0)
        self.assertEqual(c.names(), ['a', 'b'])
        self.assertEqual(c.get_value('a'), Scalar(9.0))

    def test_remove_missing(self):
        c = DimensionCollection({'a': 1.0})
        with self.assertRaises(KeyNotFoundError):
            c.remove_dimension('zzz')
        with self.assertRaises(KeyError):
            c.get_value('zzz')

    def test_clone_is_independent(self):
        c = DimensionCollection({'a': 1.0})
        copy = c.clone()
        copy.get('a').pheromone = 0.1
        copy.set_value('a', Scalar(5.0))
        self.assertEqual(c.get('a').pheromone, 1.0)
        self.assertEqual(c.get_value('a'), Scalar(1.0))


class TestAlgebra(unittest.TestCase):

    def test_add_subtract_round_trip(self):
        a, b = make_pair()
        restored = a.add(b).subtract(b)
        for name in a.names():
            with self.subTest(name=name):
                self.assertLess(restored.get_value(name).distance_to(a.get_value(name)), 1e-9)

    def test_scale_identity_and_zero(self):
        a, _ = make_pair()
        self.assertEqual(a.scale(1.0), a)
        zeroed = a.scale(0.0)
        for dim in zeroed:
            with self.subTest(name=dim.name):
                self.assertEqual(dim.value.magnitude(), 0.0)

    def test_operands_not_mutated(self):
        a, b = make_pair()
        before_a, before_b = a.values(), b.values()
        a.get('x').pheromone = 0.3
        result = a.multiply(b)
        self.assertEqual(a.values(), before_a)
        self.assertEqual(b.values(), before_b)
        self.assertIsNot(result.get('x'), a.get('x'))
        # Non-value attributes come from the left operand
        self.assertEqual(result.get('x').pheromone, 0.3)

    def test_key_mismatch_fails_whole_operation(self):
        a = DimensionCollection({'x': 1.0, 'y': 2.0})
        b = DimensionCollection({'x': 1.0, 'z': 2.0})
        for op in ('add', 'subtract', 'multiply', 'divide'):
            with self.subTest(op=op):
                with self.assertRaises(KeyNotFoundError) as ctx:
                    getattr(a, op)(b)
                self.assertEqual(ctx.exception.keys, ['y', 'z'])

    def test_divide_by_zero_fails_whole_operation(self):
        a = DimensionCollection({'x': 1.0, 'y': 2.0})
        b = DimensionCollection({'x': 2.0, 'y': 0.0})
        with self.assertRaises(DivisionByZeroError):
            a.divide(b)
        self.assertEqual(a.values(), {'x': Scalar(1.0), 'y': Scalar(2.0)})

    def test_divide(self):
        a = DimensionCollection({'x': 1.0, 'y': 3.0})
        b = DimensionCollection({'x': 2.0, 'y': 4.0})
        self.assertEqual(a.divide(b).values(), {'x': Scalar(0.5), 'y': Scalar(0.75)})


class TestMagnitude(unittest.TestCase):

    def test_magnitude_is_l2(self):
        c = DimensionCollection({'a': 3.0, 'b': Spectrum({1: 4.0})})
        self.assertAlmostEqual(c.magnitude(), 5.0)
        self.assertEqual(DimensionCollection().magnitude(), 0.0)

    def test_compare_is_antisymmetric(self):
        rng = np.random.default_rng(7)
        collections = [DimensionCollection({'v': float(x)}) for x in rng.normal(size=6)]
        collections.append(DimensionCollection({'v': 0.0}))
        collections.append(DimensionCollection({'v': 0.0}))
        for i, a in enumerate(collections):
            for j, b in enumerate(collections):
                with self.subTest(i=i, j=j):
                    self.assertEqual(a.compare_magnitude(b), -b.compare_magnitude(a))
        self.assertEqual(collections[-1].compare_magnitude(collections[-2]), 0)

    def test_compare_direction(self):
        small = DimensionCollection({'a': 1.0})
        large = DimensionCollection({'a': -2.0})
        self.assertEqual(small.compare_magnitude(large), -1)
        self.assertEqual(large.compare_magnitude(small), 1)


if __name__ == '__main__':
    unittest.main(verbosity=2)
