"""
Processing service package.

This package turns an accepted upload into stored media:
- locks: File-based locking for concurrent ingestion of the same content
- media_processor: Canonical asset + preview for images, GIFs and video
- thumbnail_generator: Pillow re-encoding and preview generation
"""

from .locks import acquire_processing_lock, release_processing_lock
from .media_processor import ProcessedMedia, process_upload, validate_mimetype
from .thumbnail_generator import create_preview, reencode_to_png, first_frame_png_bytes

__all__ = [
    'acquire_processing_lock',
    'release_processing_lock',
    'ProcessedMedia',
    'process_upload',
    'validate_mimetype',
    'create_preview',
    'reencode_to_png',
    'first_frame_png_bytes',
]
