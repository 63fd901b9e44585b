"""
Publisher for sending batch results back to the web API using BullMQ
"""

from typing import Any, Dict, Optional

import structlog
from bullmq import Queue

from booth_transitions.config import settings
from booth_transitions.job_queue.connection import get_redis_options

logger = structlog.get_logger()

# Global queue instance
_results_queue: Optional[Queue] = None


def _get_results_queue() -> Queue:
    """Get or create the results queue."""
    global _results_queue
    if _results_queue is None:
        _results_queue = Queue(settings.queue_results, {"connection": get_redis_options()})
    return _results_queue


async def publish_result(
    result_type: str,
    batch_id: str,
    result: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None,
):
    """
    Publish a job result to the results queue for the API to consume.

    Args:
        result_type: Type of result ('transition_batch' or 'stitch')
        batch_id: Batch identifier
        result: Result data
        error: Error message if job failed
    """
    queue = _get_results_queue()

    payload: Dict[str, Any] = {
        "type": result_type,
        "batchId": batch_id,
    }
    if result:
        payload["result"] = result
    if error:
        payload["error"] = error

    await queue.add("result", payload)

    logger.info(
        "Published result",
        result_type=result_type,
        batch_id=batch_id,
        has_error=error is not None,
    )


async def publish_progress(
    batch_id: str,
    stage: str = "",
    progress: int = 0,
    message: str = "",
):
    """
    Publish a progress update to the results queue for real-time tracking.

    Args:
        batch_id: Batch identifier
        stage: Current stage (generation, stitching)
        progress: Progress percentage (0-100)
        message: Human-readable progress message
    """
    queue = _get_results_queue()

    payload: Dict[str, Any] = {
        "type": "progress",
        "batchId": batch_id,
        "stage": stage,
        "progress": progress,
        "message": message,
    }
    await queue.add("progress", payload)

    logger.debug("Published progress", batch_id=batch_id, stage=stage, progress=progress)


async def close_results_queue() -> None:
    global _results_queue
    if _results_queue is not None:
        await _results_queue.close()
        _results_queue = None
