"""
Test file for the parameter space model
"""

import unittest

import numpy as np

from mrtune.core import FileSplitDataSetModel, InputFile, JobConf, UnknownDimension
from mrtune.optimizer import (BooleanDomain, DiscreteDomain, Interval, NumericRange,
                              ParameterSpace, ParameterSpacePoint, full_parameter_space)
from tests.fixtures import map_only_profile, small_cluster, wordcount_conf, wordcount_profile


class TestDomains(unittest.TestCase):
    """Test cases for dimension domains"""

    def test_empty_domains_rejected(self):
        """Empty domains and bad steps are rejected"""
        with self.assertRaises(ValueError):
            DiscreteDomain([])
        with self.assertRaises(ValueError):
            NumericRange(5, 1)
        with self.assertRaises(ValueError):
            NumericRange(0, 1, step=0)

    def test_stepped_draws_snap_inside_region(self):
        """Stepped draws snap to grid values inside the region"""
        domain = NumericRange(0, 100, step=10)
        rng = np.random.default_rng(1)
        values = {domain.draw(Interval(20, 40), rng) for _ in range(200)}
        self.assertTrue(values <= {20.0, 30.0, 40.0})
        self.assertEqual(len(values), 3)

    def test_integer_range_draws_ints(self):
        """Integer ranges draw ints"""
        domain = NumericRange(1, 10, integer=True)
        rng = np.random.default_rng(3)
        for _ in range(50):
            value = domain.draw(domain.full_interval(), rng)
            self.assertIsInstance(value, int)
            self.assertTrue(1 <= value <= 10)

    def test_integer_range_needs_integral_bounds(self):
        """Integer ranges reject fractional bounds and steps"""
        for args in ((0.5, 10), (1, 9.5), (1, 10, 0.5)):
            with self.assertRaises(ValueError):
                NumericRange(*args, integer=True)
        domain = NumericRange(2.0, 6.0, integer=True)
        self.assertEqual(domain.full_interval(), Interval(2, 6))
        self.assertEqual(domain.values_in(domain.full_interval()), [2, 3, 4, 5, 6])
        self.assertIsInstance(domain.low, int)

    def test_count_in(self):
        """Counting values does not need to list them"""
        self.assertEqual(DiscreteDomain([1, 2, 4, 8]).count_in(Interval(1, 2)), 2)
        self.assertEqual(NumericRange(0, 100, step=10).count_in(Interval(20, 40)), 3)
        self.assertEqual(NumericRange(1, 10 ** 12, integer=True).count_in(Interval(1, 10 ** 12)), 10 ** 12)
        self.assertIsNone(NumericRange(0.0, 1.0).count_in(Interval(0.0, 1.0)))

    def test_continuous_draws_stay_in_region(self):
        """Continuous draws stay inside the region"""
        domain = NumericRange(0.0, 1.0)
        rng = np.random.default_rng(5)
        for _ in range(100):
            value = domain.draw(Interval(0.25, 0.5), rng)
            self.assertTrue(0.25 <= value <= 0.5)
        self.assertIsNone(domain.values_in(Interval(0.0, 1.0)))

    def test_discrete_shrink_keeps_width_at_edge(self):
        """Shrinking near an edge keeps the region width"""
        domain = DiscreteDomain([1, 2, 4, 8])
        full = domain.full_interval()
        self.assertEqual(domain.values_in(domain.shrink(full, 4, 0.5)), [4, 8])
        self.assertEqual(domain.values_in(domain.shrink(full, 8, 0.5)), [4, 8])
        self.assertEqual(domain.values_in(domain.shrink(full, 1, 0.1)), [1])

    def test_continuous_shrink_clamped(self):
        """Shrunk continuous regions stay inside the old one"""
        domain = NumericRange(0.0, 100.0)
        self.assertEqual(domain.shrink(Interval(0.0, 100.0), 95.0, 0.5), Interval(50.0, 100.0))
        self.assertEqual(domain.shrink(Interval(0.0, 100.0), 40.0, 0.5), Interval(15.0, 65.0))

    def test_stepped_shrink(self):
        """Shrinking a stepped range keeps grid values"""
        domain = NumericRange(0, 100, step=10)
        shrunk = domain.shrink(domain.full_interval(), 50, 0.5)
        self.assertEqual(domain.values_in(shrunk), [30, 40, 50, 60, 70])


class TestParameterSpace(unittest.TestCase):
    """Test cases for ParameterSpace"""

    def setUp(self):
        self.space = ParameterSpace()
        self.space.add("mapred.reduce.tasks", DiscreteDomain([1, 2, 4, 8]))
        self.space.add("io.sort.mb", NumericRange(50, 300, integer=True))
        self.space.add("mapred.compress.map.output", BooleanDomain())

    def test_domain_for(self):
        """Unknown dimensions raise UnknownDimension"""
        self.assertIsInstance(self.space.domain_for("io.sort.mb"), NumericRange)
        with self.assertRaises(UnknownDimension):
            self.space.domain_for("io.sort.factor")
        with self.assertRaises(KeyError):
            self.space.domain_for("io.sort.factor")

    def test_dimensions_keep_insertion_order(self):
        """Dimensions keep their insertion order"""
        self.assertEqual(self.space.dimensions,
                         ["mapred.reduce.tasks", "io.sort.mb", "mapred.compress.map.output"])

    def test_random_point_reproducible(self):
        """The same generator seed draws the same points"""
        region = self.space.full_region()
        first = [self.space.random_point(region, np.random.default_rng(11)) for _ in range(3)]
        second = [self.space.random_point(region, np.random.default_rng(11)) for _ in range(3)]
        self.assertEqual(first, second)
        self.assertEqual(set(first[0]), set(self.space.dimensions))

    def test_small_finite_region_is_enumerated(self):
        """A region no larger than the sample count is covered completely"""
        space = ParameterSpace().add("mapred.reduce.tasks", DiscreteDomain([1, 2, 4, 8]))
        points = space.sample_points(space.full_region(), 4, np.random.default_rng(0))
        self.assertEqual(sorted(p["mapred.reduce.tasks"] for p in points), [1, 2, 4, 8])

        points = space.sample_points(space.full_region(), 6, np.random.default_rng(0))
        self.assertEqual(len(points), 6)
        self.assertEqual({p["mapred.reduce.tasks"] for p in points[:4]}, {1, 2, 4, 8})

    def test_wide_integer_range_is_sampled(self):
        """A region with far more points than samples is drawn at random"""
        space = (ParameterSpace()
                 .add("mapred.max.split.size", NumericRange(1, 10 ** 9, integer=True))
                 .add("io.sort.factor", NumericRange(2, 10 ** 6, integer=True)))
        region = space.full_region()
        self.assertEqual(space.cardinality(region), 10 ** 9 * (10 ** 6 - 1))

        points = space.sample_points(region, 4, np.random.default_rng(8))
        self.assertEqual(len(points), 4)
        for point in points:
            self.assertTrue(1 <= point["mapred.max.split.size"] <= 10 ** 9)
            self.assertTrue(2 <= point["io.sort.factor"] <= 10 ** 6)

    def test_shrink_is_contained(self):
        """Shrunk regions nest"""
        rng = np.random.default_rng(2)
        region = self.space.full_region()
        for _ in range(5):
            center = self.space.random_point(region, rng)
            shrunk = self.space.shrink(region, center, 0.5)
            self.assertTrue(region.contains(shrunk))
            region = shrunk

    def test_materialize(self):
        """A point overrides its keys on a copy of the base configuration"""
        base = JobConf({"mapred.reduce.tasks": 3, "other.key": "x"})
        point = ParameterSpacePoint({"mapred.reduce.tasks": 8, "io.sort.mb": 120,
                                     "mapred.compress.map.output": True})
        conf = self.space.materialize(point, base)

        self.assertEqual(conf.get("mapred.reduce.tasks"), 8)
        self.assertEqual(conf.get("io.sort.mb"), 120)
        self.assertTrue(conf.get("mapred.compress.map.output"))
        self.assertEqual(conf.get("other.key"), "x")
        self.assertEqual(base.get("mapred.reduce.tasks"), 3)
        self.assertNotIn("io.sort.mb", base)

    def test_materialize_unknown_dimension(self):
        """Points with unknown dimensions do not materialize"""
        with self.assertRaises(UnknownDimension):
            self.space.materialize(ParameterSpacePoint({"io.sort.factor": 10}), JobConf())

    def test_point_is_immutable_and_hashable(self):
        """Points are hashable and cannot be changed"""
        point = ParameterSpacePoint({"a": 1, "b": True})
        self.assertEqual(hash(point), hash(ParameterSpacePoint({"a": 1, "b": True})))
        self.assertEqual(len({point, ParameterSpacePoint({"a": 1, "b": True})}), 1)
        with self.assertRaises(TypeError):
            point["a"] = 2


class TestFullParameterSpace(unittest.TestCase):
    """Test cases for the job parameter space builder"""

    def test_job_with_reduces_and_combiner(self):
        """A job with reduces and a combiner gets every dimension"""
        model = FileSplitDataSetModel([InputFile(0, 1024 * 1024 * 1024)])
        space = full_parameter_space(wordcount_conf(), wordcount_profile(), small_cluster(), model)

        for name in ("io.sort.mb", "mrtune.use.combiner", "mapred.reduce.tasks",
                     "mapred.reduce.parallel.copies", "mapred.reduce.slowstart.completed.maps",
                     "mapred.max.split.size"):
            self.assertIn(name, space)
        self.assertEqual(space.full_region()["io.sort.mb"], Interval(50, 384))
        self.assertEqual(space.full_region()["mapred.reduce.tasks"], Interval(1, 10))

    def test_map_only_job(self):
        """A map-only job gets no reduce side dimensions"""
        space = full_parameter_space(JobConf(), map_only_profile(), small_cluster())
        self.assertNotIn("mapred.reduce.tasks", space)
        self.assertNotIn("mrtune.use.combiner", space)
        self.assertNotIn("mapred.max.split.size", space)
        self.assertIn("io.sort.factor", space)


if __name__ == '__main__':
    unittest.main()
