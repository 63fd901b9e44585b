"""Queue module for job processing"""

from booth_transitions.job_queue.connection import get_redis_connection
from booth_transitions.job_queue.consumer import process_transition_batch_job, start_worker
from booth_transitions.job_queue.publisher import publish_progress, publish_result

__all__ = [
    "get_redis_connection",
    "process_transition_batch_job",
    "start_worker",
    "publish_progress",
    "publish_result",
]
