"""
Test file for the what-if engine, cost engines and data transfers
"""

import unittest

from mrtune.core import (FixedInputSpecsDataSetModel, InvalidConfiguration, JobConf,
                         MapInputSpecs, MRCounter, specs_from_profile)
from mrtune.monitoring import MetricsCollector
from mrtune.optimizer import (ParameterSpacePoint, WhatIfCostEngine, elapsed_time, peak_memory,
                              resolve_objective, resource_time, weighted_objective)
from mrtune.whatif import (BasicFIFOScheduler, JobProfileOracle, WhatIfEngine,
                           generate_data_transfers, virtual_job_id)
from tests.fixtures import (JOB_CLEANUP_MS, JOB_SETUP_MS, MAP_TASK_MS, MB, map_only_profile,
                            small_cluster, wordcount_conf, wordcount_profile)


def build_engine(profile, cluster=None, metrics=None) -> WhatIfEngine:
    return WhatIfEngine(
        JobProfileOracle(profile),
        FixedInputSpecsDataSetModel(specs_from_profile(profile)),
        BasicFIFOScheduler(cluster or small_cluster()),
        metrics=metrics,
    )


class TestWhatIfEngine(unittest.TestCase):
    """Test cases for WhatIfEngine"""

    def test_map_only_job_in_two_waves(self):
        """Ten maps on five slots take two waves"""
        record = build_engine(map_only_profile()).evaluate(JobConf())

        self.assertEqual(record.job_id, virtual_job_id("job_map_only"))
        self.assertEqual(record.source_job_id, "job_map_only")
        self.assertEqual(len(record.map_attempts), 10)
        self.assertEqual(len(record.reduce_attempts), 0)
        self.assertEqual(record.num_map_waves, 2)
        self.assertAlmostEqual(record.elapsed_ms, JOB_SETUP_MS + 2 * MAP_TASK_MS + JOB_CLEANUP_MS, places=6)

    def test_more_slots_single_wave(self):
        """Enough slots run every map at once"""
        record = build_engine(map_only_profile(), small_cluster(num_nodes=10)).evaluate(JobConf())
        self.assertEqual(record.num_map_waves, 1)
        self.assertAlmostEqual(record.elapsed_ms, JOB_SETUP_MS + MAP_TASK_MS + JOB_CLEANUP_MS, places=6)

    def test_speculative_execution_disabled(self):
        """Speculative execution is switched off in predictions"""
        conf = wordcount_conf()
        conf.set("mapred.map.tasks.speculative.execution", True)
        record = build_engine(wordcount_profile()).evaluate(conf)

        self.assertFalse(record.configuration.get_bool("mapred.map.tasks.speculative.execution"))
        self.assertFalse(record.configuration.get_bool("mapred.reduce.tasks.speculative.execution"))
        self.assertEqual(record.configuration.get("user.setting"), "kept")
        # The caller's configuration is left alone
        self.assertTrue(conf.get_bool("mapred.map.tasks.speculative.execution"))

    def test_job_with_reduces(self):
        """Every reduce ends its shuffle after the last map"""
        record = build_engine(wordcount_profile()).evaluate(wordcount_conf(2))
        self.assertEqual(len(record.map_attempts), 4)
        self.assertEqual(len(record.reduce_attempts), 2)
        last_map_end = max(a.end_time for a in record.map_attempts)
        for attempt in record.reduce_attempts:
            self.assertGreaterEqual(attempt.shuffle_end, last_map_end)
        self.assertGreater(record.counters()[MRCounter.REDUCE_SHUFFLE_BYTES], 0.0)

    def test_repeatable(self):
        """The same inputs give the same prediction"""
        engine = build_engine(wordcount_profile())
        self.assertEqual(engine.evaluate(wordcount_conf()).elapsed_ms, engine.evaluate(wordcount_conf()).elapsed_ms)

    def test_predict_profile(self):
        """The predicted profile follows the new configuration"""
        virtual = build_engine(wordcount_profile()).predict_profile(wordcount_conf(3))
        self.assertEqual(virtual.num_maps, 4)
        self.assertEqual(virtual.num_reduces, 3)

    def test_invalid_configuration_recorded(self):
        """Invalid settings raise and leave the engine usable"""
        metrics = MetricsCollector()
        engine = build_engine(wordcount_profile(), metrics=metrics)
        conf = wordcount_conf()
        conf.set("io.sort.mb", 0)
        with self.assertRaises(InvalidConfiguration):
            engine.evaluate(conf)
        engine.evaluate(wordcount_conf())

        prometheus = metrics.prometheus_metrics
        self.assertEqual(prometheus.sample('mrtune_simulations_total', {'outcome': 'invalid'}), 1.0)
        self.assertEqual(prometheus.sample('mrtune_simulations_total', {'outcome': 'success'}), 1.0)
        self.assertEqual(metrics.get_metric_stats('predicted_elapsed_ms')['count'], 1)


class TestDataTransfers(unittest.TestCase):
    """Test cases for generate_data_transfers"""

    def test_every_map_feeds_every_reduce(self):
        """Each map sends one transfer to each reduce"""
        record = build_engine(wordcount_profile()).evaluate(wordcount_conf(2))
        self.assertTrue(generate_data_transfers(record))
        self.assertEqual(len(record.data_transfers), 4 * 2)

        total = sum(t.compressed_bytes for t in record.data_transfers)
        expected = sum(a.profile.counter(MRCounter.MAP_OUTPUT_MATERIALIZED_BYTES) for a in record.map_attempts)
        self.assertAlmostEqual(total, expected, places=3)
        hosts = {a.task_id: a.host for a in record.attempts()}
        for transfer in record.data_transfers:
            self.assertEqual(transfer.source_host, hosts[transfer.source_task_id])
            self.assertEqual(transfer.destination_host, hosts[transfer.destination_task_id])
            self.assertGreaterEqual(transfer.uncompressed_bytes, transfer.compressed_bytes)

    def test_map_only_job_has_no_transfers(self):
        """A map-only job has nothing to shuffle"""
        record = build_engine(map_only_profile()).evaluate(JobConf())
        self.assertFalse(generate_data_transfers(record))
        self.assertEqual(record.data_transfers, [])


class TestObjectives(unittest.TestCase):
    """Test cases for cost objectives"""

    def setUp(self):
        self.record = build_engine(wordcount_profile()).evaluate(wordcount_conf())

    def test_builtin_objectives(self):
        """Built-in objectives read the predicted record"""
        self.assertEqual(elapsed_time(self.record), self.record.elapsed_ms)
        self.assertEqual(resource_time(self.record), self.record.map_slot_ms + self.record.reduce_slot_ms)
        self.assertEqual(peak_memory(self.record), max(a.profile.memory for a in self.record.attempts()))

    def test_weighted_objective(self):
        """A weighted objective sums its parts"""
        objective = weighted_objective(time_weight=2.0, resource_weight=0.5)
        self.assertAlmostEqual(objective(self.record),
                               2.0 * self.record.elapsed_ms + 0.5 * self.record.resource_time_ms)

    def test_resolve_objective(self):
        """Objectives resolve by name or pass through as callables"""
        self.assertIs(resolve_objective('resource_time'), resource_time)
        self.assertIs(resolve_objective(peak_memory), peak_memory)
        with self.assertRaises(ValueError):
            resolve_objective('throughput')


class TestWhatIfCostEngine(unittest.TestCase):
    """Test cases for WhatIfCostEngine"""

    def setUp(self):
        self.engine = build_engine(wordcount_profile())

    def test_cost_is_predicted_elapsed_time(self):
        """The default cost is the predicted elapsed time"""
        cost_engine = WhatIfCostEngine(self.engine, wordcount_conf())
        point = ParameterSpacePoint({"mapred.reduce.tasks": 4, "io.sort.mb": 150})
        conf = point.apply_to(wordcount_conf())
        self.assertEqual(cost_engine.cost_space_point(point), self.engine.evaluate(conf).elapsed_ms)

    def test_base_configuration_is_not_modified(self):
        """Scoring a point leaves the base configuration alone"""
        base = wordcount_conf()
        cost_engine = WhatIfCostEngine(self.engine, base, objective='resource_time')
        cost_engine.cost_space_point(ParameterSpacePoint({"mapred.reduce.tasks": 1}))
        self.assertEqual(base.get("mapred.reduce.tasks"), 2)
        self.assertEqual(cost_engine.base_conf.get("mapred.reduce.tasks"), 2)

    def test_more_input_costs_more(self):
        """More input makes the job slower"""
        cost_engine = WhatIfCostEngine(self.engine, wordcount_conf())
        small = cost_engine.cost_space_point(ParameterSpacePoint())
        big_engine = WhatIfEngine(self.engine.oracle, FixedInputSpecsDataSetModel([MapInputSpecs(0, 20, 64 * MB)]),
                                  self.engine.scheduler)
        big = WhatIfCostEngine(big_engine, wordcount_conf()).cost_space_point(ParameterSpacePoint())
        self.assertGreater(big, small)


if __name__ == '__main__':
    unittest.main()
