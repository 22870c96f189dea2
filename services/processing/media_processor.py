"""
Media processing: accepted upload -> canonical asset + preview.

Stills go through Pillow in a worker thread, video goes through ffmpeg as
an asyncio subprocess. Every file written here is tracked so a failure
leaves nothing behind.
"""

import asyncio
import os
import shutil
from dataclasses import dataclass, field
from typing import List, Optional

import config
from core.errors import ProcessingError, UnsupportedMediaError
from database import MediaType
from utils.file_utils import (
    get_asset_path,
    get_preview_path,
    new_temp_upload_path,
    remove_files,
)
from utils.logging_config import get_logger
from utils.video_utils import transcode_video, extract_frame
from .thumbnail_generator import create_preview, reencode_to_png

logger = get_logger('MediaProcessor')

_transcode_semaphore: Optional[asyncio.Semaphore] = None


def _get_transcode_semaphore() -> asyncio.Semaphore:
    # Created lazily so it binds to the running loop
    global _transcode_semaphore
    if _transcode_semaphore is None:
        _transcode_semaphore = asyncio.Semaphore(config.MAX_CONCURRENT_TRANSCODES)
    return _transcode_semaphore


def reset_transcode_semaphore():
    """Forget the semaphore, e.g. between event loops in tests."""
    global _transcode_semaphore
    _transcode_semaphore = None


@dataclass
class ProcessedMedia:
    media_type: MediaType
    file_ext: str
    asset_path: str
    preview_path: str
    # Image handed to the auto-tagger; may be a transient frame
    tagging_image: Optional[str] = None
    # Transient files to delete once the ingestion is over, success or not
    scratch_files: List[str] = field(default_factory=list)

    @property
    def stored_files(self) -> List[str]:
        return [self.asset_path, self.preview_path]


def validate_mimetype(mimetype: str) -> MediaType:
    """
    Raises:
        UnsupportedMediaError: If the MIME type is not allow-listed.
    """
    media_type = config.get_media_type(mimetype)
    if media_type is None:
        raise UnsupportedMediaError(f"Unsupported file type: {mimetype or 'unknown'}")
    return MediaType(media_type)


async def _process_animated(temp_path, digest, created):
    asset_path = get_asset_path(digest, '.gif')
    os.makedirs(os.path.dirname(asset_path), exist_ok=True)
    created.append(asset_path)
    await asyncio.to_thread(shutil.copyfile, temp_path, asset_path)

    preview_path = get_preview_path(digest)
    created.append(preview_path)
    await asyncio.to_thread(create_preview, asset_path, preview_path)
    # The tagger client takes the first frame of the GIF itself
    return ProcessedMedia(MediaType.IMAGE, '.gif', asset_path, preview_path, tagging_image=asset_path)


async def _process_still(temp_path, digest, created):
    asset_path = get_asset_path(digest, config.CANONICAL_IMAGE_EXTENSION)
    created.append(asset_path)
    await asyncio.to_thread(reencode_to_png, temp_path, asset_path)

    preview_path = get_preview_path(digest)
    created.append(preview_path)
    await asyncio.to_thread(create_preview, asset_path, preview_path)
    return ProcessedMedia(
        MediaType.IMAGE, config.CANONICAL_IMAGE_EXTENSION, asset_path, preview_path,
        tagging_image=asset_path
    )


async def _process_video(temp_path, digest, created):
    asset_path = get_asset_path(digest, config.CANONICAL_VIDEO_EXTENSION)
    os.makedirs(os.path.dirname(asset_path), exist_ok=True)
    frame_path = new_temp_upload_path('.png')

    created.append(asset_path)
    async with _get_transcode_semaphore():
        result = await transcode_video(temp_path, asset_path)
        if not result.success:
            raise ProcessingError(f"Video transcoding failed: {result.error}")

        # Full-size frame from the transcoded output, used for preview and tagging
        created.append(frame_path)
        result = await extract_frame(asset_path, frame_path, config.PREVIEW_FRAME_OFFSET)
        if not result.success:
            raise ProcessingError(f"Frame extraction failed: {result.error}")

    preview_path = get_preview_path(digest)
    created.append(preview_path)
    await asyncio.to_thread(create_preview, frame_path, preview_path)
    return ProcessedMedia(
        MediaType.VIDEO, config.CANONICAL_VIDEO_EXTENSION, asset_path, preview_path,
        tagging_image=frame_path, scratch_files=[frame_path]
    )


async def process_upload(temp_path: str, mimetype: str, digest: str) -> ProcessedMedia:
    """
    Produce the canonical asset and preview for an accepted upload.

    The transient upload itself is left alone; the pipeline owns it.

    Raises:
        UnsupportedMediaError: Before any work, for a type outside the allow-list.
        ProcessingError: On any tool or decode failure, after removing every
            file this call created.
    """
    validate_mimetype(mimetype)
    mimetype = mimetype.lower()

    created: List[str] = []
    try:
        if config.is_animated_mimetype(mimetype):
            processed = await _process_animated(temp_path, digest, created)
        elif config.get_media_type(mimetype) == MediaType.VIDEO.value:
            processed = await _process_video(temp_path, digest, created)
        else:
            processed = await _process_still(temp_path, digest, created)
    except ProcessingError:
        remove_files(created)
        raise
    except OSError as e:
        remove_files(created)
        raise ProcessingError(f"Could not store media: {e}")
    except BaseException:
        # Cancellation still must not leave partial assets behind
        remove_files(created)
        raise

    logger.info(f"Processed {digest[:12]} as {processed.media_type.value} ({processed.file_ext})")
    return processed
