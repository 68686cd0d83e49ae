"""
Command line driver for mrtune

Reads a job description (profile, cluster, configuration and optional
dataset) and prints either the predicted execution or the best
configuration found by recursive random search.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from mrtune.config import SystemConfig, load_config, load_config_file
from mrtune.core import (ClusterConfiguration, DataLocality, DataSetModel,
                         FileSplitDataSetModel, FixedInputSpecsDataSetModel,
                         InputFile, JobConf, JobProfile, MapInputSpecs,
                         specs_from_profile)
from mrtune.monitoring import MetricsCollector
from mrtune.optimizer import RRSJobOptimizer
from mrtune.whatif import JobProfileOracle, WhatIfEngine, create_scheduler

logger = logging.getLogger(__name__)


def load_job_description(path: str) -> Dict[str, Any]:
    """Parse a YAML or JSON job description file"""
    with open(path, 'r') as f:
        if path.endswith((".yaml", ".yml")):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    profile = JobProfile.from_dict(data['profile'])
    return {
        'profile': profile,
        'cluster': ClusterConfiguration.from_dict(data.get('cluster', {})),
        'conf': JobConf(data.get('configuration', {})),
        'data_model': build_data_model(data.get('dataset'), profile),
    }


def build_data_model(dataset: Optional[Dict[str, Any]], profile: JobProfile) -> DataSetModel:
    if not dataset:
        return FixedInputSpecsDataSetModel(specs_from_profile(profile))
    if 'files' in dataset:
        return FileSplitDataSetModel(InputFile(int(f.get('input_index', 0)), int(f['size']),
                                               bool(f.get('compressed', False)))
                                     for f in dataset['files'])
    specs = [MapInputSpecs(int(s.get('input_index', 0)), int(s['num_splits']), int(s['size']),
                           bool(s.get('compressed', False)),
                           DataLocality(s.get('locality', DataLocality.DATA_LOCAL.value)))
             for s in dataset.get('specs', [])]
    return FixedInputSpecsDataSetModel(specs)


def run(job_path: str, config: SystemConfig, optimize: bool = False) -> Dict[str, Any]:
    """What-if or optimize the described job, returning a printable summary"""
    job = load_job_description(job_path)
    metrics = MetricsCollector() if config.enable_metrics else None
    oracle = JobProfileOracle(job['profile'])
    scheduler = create_scheduler(config.simulation.scheduler, job['cluster'])

    if not optimize:
        record = WhatIfEngine(oracle, job['data_model'], scheduler, metrics).evaluate(job['conf'])
        return {
            'job_id': record.job_id,
            'elapsed_ms': record.elapsed_ms,
            'map_tasks': len(record.map_attempts),
            'reduce_tasks': len(record.reduce_attempts),
            'map_waves': record.num_map_waves,
            'resource_time_ms': record.resource_time_ms,
        }

    optimizer = RRSJobOptimizer(oracle, job['data_model'], scheduler, job['cluster'], job['conf'],
                                config.search, metrics)
    point = optimizer.optimize()
    summary = {
        'job_id': job['profile'].job_id,
        'best_point': point.to_dict(),
        'predicted_elapsed_ms': optimizer.best_job().elapsed_ms,
        'evaluations': optimizer.last_result.evaluations,
    }
    if metrics:
        summary['metrics'] = metrics.get_summary()
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description="What-if analysis and tuning of map/reduce jobs")
    parser.add_argument(
        'job',
        type=str,
        help="Path to a YAML or JSON job description"
    )
    parser.add_argument(
        '--preset', '-p',
        type=str,
        choices=['development', 'production', 'testing'],
        default='development',
        help="Configuration preset"
    )
    parser.add_argument(
        '--config-file', '-c',
        type=str,
        default=None,
        help="Configuration file overriding the preset"
    )
    parser.add_argument(
        '--optimize', '-o',
        action='store_true',
        help="Search for the best configuration instead of a single what-if"
    )

    args = parser.parse_args(argv)

    config = load_config_file(args.config_file) if args.config_file else load_config(args.preset)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    summary = run(args.job, config, args.optimize)
    print(json.dumps(summary, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
