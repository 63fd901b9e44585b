"""
Job consumer for transition batches using BullMQ
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import structlog
from bullmq import Worker

from booth_transitions.audio.presets import find_preset
from booth_transitions.config import settings
from booth_transitions.errors import AudioResolutionError, StitchError
from booth_transitions.factory import create_pipeline, photo_from_payload
from booth_transitions.generation.orchestrator import TransitionPipeline
from booth_transitions.job_queue.connection import get_redis_connection, get_redis_options
from booth_transitions.job_queue.publisher import close_results_queue, publish_progress, publish_result
from booth_transitions.notifications import RecordingNotifier
from booth_transitions.preferences import PreferenceStore, RedisPreferenceStore

logger = structlog.get_logger()


async def apply_music_payload(pipeline: TransitionPipeline, music: Optional[Dict[str, Any]]) -> None:
    """
    Configure the pipeline's music from a job payload.

    Args:
        pipeline: Pipeline to configure
        music: {"presetId": ..., "startOffsetSeconds": ...} or None
    """
    if not music:
        return

    preset = find_preset(music.get("presetId", ""))
    if preset is None:
        pipeline.notifier.warning(f"Unknown music preset: {music.get('presetId')}")
        return

    try:
        await pipeline.audio_controller.select_preset(preset)
    except AudioResolutionError as e:
        logger.warning("Music preset unavailable", preset_id=preset.id, error=str(e))
        pipeline.notifier.warning("Music could not be loaded; continuing without it.")
        return
    pipeline.audio_controller.set_offset(float(music.get("startOffsetSeconds", 0.0)))


async def run_batch(
    job_data: Dict[str, Any],
    notifier: RecordingNotifier,
    batch_id: Optional[str] = None,
    preferences: Optional[PreferenceStore] = None,
) -> Dict[str, Any]:
    """
    Run one transition batch described by a job payload.

    Args:
        job_data: Payload with photos, optional music and stitch flag
        notifier: Toast sink whose messages are returned with the result
        batch_id: When set, progress is published to the results queue
        preferences: Flag store (defaults to in-memory)

    Returns:
        Batch summary, per-photo clip URLs and the stitched file path if requested
    """
    photos = [photo_from_payload(p) for p in job_data.get("photos", [])]

    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        pipeline = create_pipeline(settings, client, photos, notifier=notifier, preferences=preferences)
        try:
            await apply_music_payload(pipeline, job_data.get("music"))
            if batch_id:
                await publish_progress(batch_id, stage="generation", progress=0, message="Generating transitions")
            summary = await pipeline.start_batch()

            result: Dict[str, Any] = {
                "summary": summary.to_dict() if summary else None,
                "clips": {
                    photo.id: photo.video_url
                    for photo in pipeline.photos.all()
                    if photo.video_url
                },
            }

            if job_data.get("stitch") and summary is not None and summary.success_count > 0:
                result["stitchedFile"] = await _stitch_for_job(pipeline, batch_id)

            result["notifications"] = [
                {"level": level, "message": message} for level, message in notifier.messages
            ]
            return result
        finally:
            pipeline.teardown()


async def process_transition_batch_job(job_data: Dict[str, Any], job_id: str) -> Dict[str, Any]:
    """
    Process a transition batch job.

    Args:
        job_data: Job payload containing batchId, photos, optional music and stitch flag
        job_id: Unique job identifier

    Returns:
        Result dict as published to the results queue
    """
    batch_id = job_data["batchId"]

    logger.info(
        "Processing transition batch job",
        job_id=job_id,
        batch_id=batch_id,
        photos=len(job_data.get("photos", [])),
    )

    try:
        preferences = RedisPreferenceStore(get_redis_connection(), settings.preferences_prefix)
        result = await run_batch(job_data, RecordingNotifier(), batch_id=batch_id, preferences=preferences)
        await publish_result(result_type="transition_batch", batch_id=batch_id, result=result)
        logger.info("Transition batch complete", batch_id=batch_id)
        return result

    except Exception as e:
        logger.error("Transition batch failed", batch_id=batch_id, error=str(e))
        await publish_result(result_type="transition_batch", batch_id=batch_id, error=str(e))
        raise


async def _stitch_for_job(pipeline: TransitionPipeline, batch_id: Optional[str]) -> Optional[str]:
    pending = set()

    def on_progress(current: int, total: int, message: str) -> None:
        if not batch_id:
            return
        percent = int(100 * current / total) if total else 100
        task = asyncio.ensure_future(
            publish_progress(batch_id, stage="stitching", progress=percent, message=message)
        )
        pending.add(task)
        task.add_done_callback(pending.discard)

    try:
        await pipeline.stitch(on_progress=on_progress)
    except StitchError as e:
        logger.warning("Stitching failed for batch", batch_id=batch_id, error=str(e))
        return None
    finally:
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    path: Optional[Path] = pipeline.stitcher.delivery.last_download_path
    return str(path) if path else None


async def transition_batch_job_processor(job, token):
    """BullMQ job processor for the transition batch queue"""
    logger.info("Received transition batch job", job_id=job.id)
    result = await process_transition_batch_job(job.data, job.id)
    return result


def start_worker(worker_id: int):
    """
    Start a BullMQ worker process.

    Args:
        worker_id: Unique identifier for this worker
    """
    # Setup logging in subprocess (not inherited from parent)
    from booth_transitions.utils.logging import setup_logging
    setup_logging(settings.log_level, settings.log_file)

    logger.info("Starting BullMQ worker", worker_id=worker_id)

    async def run_workers():
        batch_worker = Worker(
            settings.queue_transition_batch,
            transition_batch_job_processor,
            {"connection": get_redis_options()}
        )

        logger.info(
            "Workers started",
            worker_id=worker_id,
            queues=[settings.queue_transition_batch],
            redis_host=settings.redis_host,
        )

        try:
            while True:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            logger.info("Shutting down workers...")
            await batch_worker.close()
            await close_results_queue()

    asyncio.run(run_workers())
