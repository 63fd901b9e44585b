"""
Dispatch of generation workers onto the event loop.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence

import structlog

logger = structlog.get_logger()

WorkerFactory = Callable[[], Awaitable[None]]


async def dispatch_all(
    workers: Sequence[WorkerFactory],
    max_in_flight: int = 0,
) -> List[Optional[BaseException]]:
    """
    Start every worker without waiting on its siblings.

    Args:
        workers: Zero-argument coroutine factories, one per queue position
        max_in_flight: Cap on concurrently running workers; 0 means no cap

    Returns:
        Per-worker exception (or None) in dispatch order
    """
    semaphore = asyncio.Semaphore(max_in_flight) if max_in_flight > 0 else None

    async def run(factory: WorkerFactory) -> None:
        if semaphore is None:
            await factory()
            return
        async with semaphore:
            await factory()

    logger.info("Dispatching workers", count=len(workers), max_in_flight=max_in_flight or None)
    tasks = [asyncio.ensure_future(run(factory)) for factory in workers]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    failures = [r for r in results if isinstance(r, BaseException)]
    for failure in failures:
        logger.error("Worker crashed", error=repr(failure))
    return [r if isinstance(r, BaseException) else None for r in results]
