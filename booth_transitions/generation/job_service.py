"""
Client side of the remote transition-clip generation service.
"""

import asyncio
from typing import Any, Callable, Dict, Optional, Protocol

import httpx
import structlog

from booth_transitions.errors import GenerationError, OutOfCreditsError, is_out_of_credits_message
from booth_transitions.models import TransitionJobRequest

logger = structlog.get_logger()

ProgressCallback = Callable[[float], None]


class JobService(Protocol):
    async def submit(
        self,
        request: TransitionJobRequest,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Generate one clip and return its URL. Raises GenerationError / OutOfCreditsError."""
        ...


def classify_failure(message: str, photo_id: Optional[str] = None) -> GenerationError:
    """Turn a service error message into the matching GenerationError subclass."""
    if is_out_of_credits_message(message):
        return OutOfCreditsError(message, photo_id=photo_id)
    return GenerationError(message, photo_id=photo_id)


async def submit_with_callbacks(
    service: JobService,
    request: TransitionJobRequest,
    on_complete: Callable[[str], None],
    on_error: Callable[[GenerationError], None],
    on_out_of_credits: Callable[[], None],
    on_progress: Optional[ProgressCallback] = None,
) -> None:
    """
    Callback-style adapter over JobService.submit. Exactly one of
    on_complete, on_error or on_out_of_credits fires per call.
    """
    try:
        url = await service.submit(request, on_progress=on_progress)
    except OutOfCreditsError:
        on_out_of_credits()
        return
    except GenerationError as e:
        on_error(e)
        return
    except Exception as e:
        on_error(GenerationError(str(e)))
        return
    on_complete(url)


class HttpJobService:
    """
    JobService backed by the booth API.

    Frames are uploaded as multipart fields; the job is then polled until it
    completes, fails or exceeds the timeout.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        poll_interval_seconds: float = 2.0,
        timeout_seconds: float = 240.0,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.poll_interval_seconds = poll_interval_seconds
        self.timeout_seconds = timeout_seconds

    async def submit(self, request, on_progress=None):
        job_id = await self._create_job(request)
        logger.info("Transition job submitted", job_id=job_id)
        return await self._wait_for_job(job_id, on_progress)

    async def _create_job(self, request: TransitionJobRequest) -> str:
        data = {
            "workflow": "batch-transition",
            "resolution": request.resolution,
            "fps": str(request.fps),
            "frames": str(request.frames),
            "duration": str(request.duration_seconds),
            "positivePrompt": request.positive_prompt,
            "negativePrompt": request.negative_prompt,
        }
        if request.width and request.height:
            data["width"] = str(request.width)
            data["height"] = str(request.height)
        files = {
            "referenceImage": ("start.png", request.start_frame, "image/png"),
            "referenceImageEnd": ("end.png", request.end_frame, "image/png"),
        }

        try:
            response = await self.client.post(
                f"{self.base_url}/api/video/transition", data=data, files=files
            )
        except httpx.HTTPError as e:
            raise GenerationError(f"Job submission failed: {e}")

        payload = self._json(response)
        if response.status_code == 402:
            raise OutOfCreditsError(payload.get("error") or "Insufficient credits")
        if response.is_error:
            raise classify_failure(payload.get("error") or f"HTTP {response.status_code}")

        job_id = payload.get("jobId")
        if not job_id:
            raise GenerationError("Job service did not return a job id")
        return str(job_id)

    async def _wait_for_job(self, job_id: str, on_progress: Optional[ProgressCallback]) -> str:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_seconds

        while True:
            try:
                response = await self.client.get(f"{self.base_url}/api/video/jobs/{job_id}")
            except httpx.HTTPError as e:
                raise GenerationError(f"Job status request failed: {e}")

            payload = self._json(response)
            if response.is_error:
                raise classify_failure(payload.get("error") or f"HTTP {response.status_code}")

            status = payload.get("status")
            if status == "completed":
                url = payload.get("videoUrl")
                if not url:
                    raise GenerationError(f"Job {job_id} completed without a video URL")
                return url
            if status == "failed":
                raise classify_failure(payload.get("error") or f"Job {job_id} failed")

            if on_progress is not None and payload.get("progress") is not None:
                on_progress(float(payload["progress"]))

            if loop.time() >= deadline:
                raise GenerationError(f"Job {job_id} timed out after {self.timeout_seconds}s")
            await asyncio.sleep(self.poll_interval_seconds)

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
