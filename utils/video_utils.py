"""
Video Utilities

Wraps the ffmpeg command line as asynchronous tasks. Each call returns a
ToolResult instead of raising, so callers decide what a failure means.
"""
import asyncio
import os
import shutil
from dataclasses import dataclass
from typing import List, Optional

import config
from utils.logging_config import get_logger

logger = get_logger('VideoUtils')

# Keep only the end of stderr; ffmpeg prints the actual error last
STDERR_TAIL_CHARS = 2000


@dataclass
class ToolResult:
    """Outcome of one external tool run: an artifact path on success, a cause on failure."""
    success: bool
    artifact: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, artifact: str) -> 'ToolResult':
        return cls(success=True, artifact=artifact)

    @classmethod
    def failed(cls, error: str) -> 'ToolResult':
        return cls(success=False, error=error)


def get_ffmpeg_path() -> Optional[str]:
    """Locate ffmpeg on PATH."""
    return shutil.which('ffmpeg')


def is_ffmpeg_available() -> bool:
    """Check if ffmpeg is available on the system."""
    return get_ffmpeg_path() is not None


async def run_tool(cmd: List[str], output_path: str, timeout: float) -> ToolResult:
    """
    Run an external command that is expected to write output_path.

    The process is killed when it outlives timeout. Cancelling the awaiting
    task kills it as well.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return ToolResult.failed(f"Could not start {os.path.basename(cmd[0])}: {e}")

    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return ToolResult.failed(f"{os.path.basename(cmd[0])} timed out after {timeout}s")
    except asyncio.CancelledError:
        proc.kill()
        await proc.wait()
        raise

    if proc.returncode != 0:
        tail = (stderr or b'').decode('utf-8', errors='replace')[-STDERR_TAIL_CHARS:].strip()
        return ToolResult.failed(f"{os.path.basename(cmd[0])} exited with {proc.returncode}: {tail}")

    if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
        return ToolResult.failed(f"{os.path.basename(cmd[0])} produced no output")

    return ToolResult.ok(output_path)


async def transcode_video(src_path: str, dest_path: str, timeout: float = None) -> ToolResult:
    """Transcode a video to the canonical codec/container."""
    ffmpeg_path = get_ffmpeg_path()
    if not ffmpeg_path:
        return ToolResult.failed("ffmpeg not found in PATH")

    cmd = [ffmpeg_path, '-y', '-i', src_path, *config.FFMPEG_VIDEO_ARGS, dest_path]
    logger.info(f"Transcoding {os.path.basename(src_path)} -> {os.path.basename(dest_path)}")
    return await run_tool(cmd, dest_path, timeout or config.TRANSCODE_TIMEOUT)


async def extract_frame(video_path: str, dest_path: str, offset: float = 0.0,
                        timeout: float = None) -> ToolResult:
    """
    Extract one frame at offset seconds as a still image.

    Falls back to the very first frame when the clip is shorter than offset.
    """
    ffmpeg_path = get_ffmpeg_path()
    if not ffmpeg_path:
        return ToolResult.failed("ffmpeg not found in PATH")

    timeout = timeout or config.TRANSCODE_TIMEOUT
    offsets = [offset, 0.0] if offset else [0.0]
    result = None
    for seek in offsets:
        cmd = [
            ffmpeg_path, '-y', '-ss', str(seek), '-i', video_path,
            '-vframes', '1', '-f', 'image2', dest_path
        ]
        result = await run_tool(cmd, dest_path, timeout)
        if result.success:
            return result
    return result
