"""
Predicted data transfers between map and reduce tasks
"""

import logging
from typing import List

from ..core.profile import MRCounter
from .record import DataTransfer, PredictedJobRecord

logger = logging.getLogger(__name__)


def generate_data_transfers(record: PredictedJobRecord) -> bool:
    """
    Fill the record's data transfers

    Every reduce fetches an equal share of every map's materialized output.
    Returns False when the job has no reduce attempts, in which case the
    record is left without transfers.
    """
    if not record.reduce_attempts:
        record.data_transfers = []
        logger.debug(f"Job {record.job_id} has no reduce tasks, no data transfers generated")
        return False

    num_reduces = len(record.reduce_attempts)
    transfers: List[DataTransfer] = []
    for map_attempt in record.map_attempts:
        compressed = map_attempt.profile.counter(MRCounter.MAP_OUTPUT_MATERIALIZED_BYTES) / num_reduces
        uncompressed = map_attempt.profile.uncompressed_output_bytes / num_reduces
        for reduce_attempt in record.reduce_attempts:
            transfers.append(DataTransfer(
                source_task_id=map_attempt.task_id,
                destination_task_id=reduce_attempt.task_id,
                source_host=map_attempt.host,
                destination_host=reduce_attempt.host,
                compressed_bytes=compressed,
                uncompressed_bytes=uncompressed,
            ))

    record.data_transfers = transfers
    logger.debug(f"Generated {len(transfers)} data transfers for job {record.job_id}")
    return True
