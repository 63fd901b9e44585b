"""
Concatenation of transition clips into one video, with optional music.
"""

import asyncio
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

import httpx
import structlog

from booth_transitions.blobs import BlobStore, is_blob_url
from booth_transitions.errors import StitchError
from booth_transitions.models import AudioOptions, MediaBlob

logger = structlog.get_logger()

ProgressCallback = Callable[[int, int, str], None]


class Concatenator(Protocol):
    async def concatenate(
        self,
        clip_urls: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
        audio: Optional[AudioOptions] = None,
    ) -> MediaBlob:
        """Join clips in the given order. Raises StitchError on failure."""
        ...


def build_ffmpeg_command(
    list_path: str,
    output_path: str,
    audio_path: Optional[str] = None,
    start_offset_seconds: float = 0.0,
    ffmpeg_binary: str = "ffmpeg",
) -> list:
    """
    Build the ffmpeg concat-demuxer command line.

    With music, the video stream is copied, the audio input is seeked to the
    start offset and padded with silence, so the output always runs for the
    full video even when the track ends first.
    """
    command = [ffmpeg_binary, '-f', 'concat', '-safe', '0', '-i', list_path]
    if audio_path:
        command += [
            '-ss', f"{start_offset_seconds:.3f}",
            '-i', audio_path,
            '-map', '0:v:0',
            '-map', '1:a:0',
            '-c:v', 'copy',
            '-c:a', 'aac',
            '-b:a', '192k',
            '-af', 'apad',
            '-shortest',
        ]
    else:
        command += ['-c', 'copy']
    command += ['-movflags', '+faststart', '-y', '-loglevel', 'error', output_path]
    return command


class FfmpegConcatenator:
    """Concatenator that downloads clips and joins them with ffmpeg."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        blob_store: BlobStore,
        ffmpeg_binary: str = "ffmpeg",
    ):
        self.client = client
        self.blob_store = blob_store
        self.ffmpeg_binary = ffmpeg_binary

    async def concatenate(self, clip_urls, on_progress=None, audio=None):
        if not clip_urls:
            raise StitchError("No clips to concatenate")

        total = len(clip_urls)

        def report(current: int, message: str) -> None:
            if on_progress is not None:
                on_progress(current, total, message)

        with tempfile.TemporaryDirectory(prefix="booth-stitch-") as tmp_dir:
            tmp = Path(tmp_dir)
            lines = []
            for i, url in enumerate(clip_urls):
                report(i, f"Downloading clip {i + 1} of {total}")
                clip_path = tmp / f"clip_{i:04d}.mp4"
                clip_path.write_bytes(await self._read_clip(url))
                lines.append(f"file '{clip_path.name}'")

            list_path = tmp / "clips.txt"
            list_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

            audio_path = None
            if audio is not None:
                audio_path = tmp / "music.m4a"
                audio_path.write_bytes(audio.data)

            output_path = tmp / "stitched.mp4"
            command = build_ffmpeg_command(
                str(list_path),
                str(output_path),
                str(audio_path) if audio_path else None,
                audio.start_offset_seconds if audio else 0.0,
                self.ffmpeg_binary,
            )

            report(total, "Stitching clips")
            logger.info("Running ffmpeg concat", clips=total, with_audio=audio is not None)
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._run_ffmpeg, command)

            report(total, "Done")
            return MediaBlob(data=output_path.read_bytes(), mime_type="video/mp4")

    async def _read_clip(self, url: str) -> bytes:
        if is_blob_url(url):
            entry = self.blob_store.read(url)
            if entry is None:
                raise StitchError(f"Clip URL has been revoked: {url}")
            return entry[0]
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StitchError(f"Could not download clip {url}: {e}")
        return response.content

    def _run_ffmpeg(self, command: list) -> None:
        try:
            subprocess.run(command, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise StitchError(f"FFmpeg exited with code {e.returncode}: {(e.stderr or '')[-500:]}")
        except FileNotFoundError:
            raise StitchError("FFmpeg not found. Please install FFmpeg.")
