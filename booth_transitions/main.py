"""
Main entry point for booth transition workers
"""

import argparse
import asyncio
import json
import signal
import sys
from multiprocessing import Process
from typing import List, Optional

import structlog

from booth_transitions.config import settings
from booth_transitions.job_queue.consumer import run_batch, start_worker
from booth_transitions.notifications import RecordingNotifier
from booth_transitions.utils.logging import setup_logging

logger = structlog.get_logger()


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully"""
    logger.info("Shutdown signal received", signal=signum)
    sys.exit(0)


def run_workers():
    """Start the worker processes"""
    # Register signal handlers
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(
        "Starting booth transition workers",
        worker_count=settings.worker_count,
        redis_host=settings.redis_host,
        queues=[settings.queue_transition_batch],
    )

    # Start worker processes
    processes: List[Process] = []

    try:
        for i in range(settings.worker_count):
            process = Process(
                target=start_worker,
                args=(i,),
                name=f"worker-{i}",
            )
            process.start()
            processes.append(process)
            logger.info("Started worker process", worker_id=i, pid=process.pid)

        # Wait for all processes
        for process in processes:
            process.join()

    except KeyboardInterrupt:
        logger.info("Shutting down workers...")
        for process in processes:
            process.terminate()
            process.join(timeout=5)


def run_manifest(manifest_path: str) -> int:
    """
    Run a single batch from a JSON manifest and download the stitched video.

    Args:
        manifest_path: Path to {"photos": [...], "music": {...}}

    Returns:
        Process exit code
    """
    with open(manifest_path, "r", encoding="utf-8") as handle:
        manifest = json.load(handle)
    manifest.setdefault("stitch", True)

    result = asyncio.run(run_batch(manifest, RecordingNotifier()))
    print(json.dumps(result, indent=2))

    summary = result.get("summary")
    if not summary or summary["successCount"] == 0:
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="booth-transitions",
        description="Generate looping transition videos for photo booth batches",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("worker", help="Start BullMQ worker processes")
    run_parser = subparsers.add_parser("run", help="Run one batch from a JSON manifest")
    run_parser.add_argument("manifest", help="Path to the batch manifest")
    return parser


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level, settings.log_file)

    if args.command == "run":
        sys.exit(run_manifest(args.manifest))

    run_workers()


if __name__ == "__main__":
    main()
