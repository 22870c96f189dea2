"""
Still-image work done with Pillow: canonical re-encoding and previews.

These functions are synchronous; the media processor runs them in a
worker thread.
"""

import io
import os

from PIL import Image, UnidentifiedImageError

import config
from core.errors import ProcessingError


def _flatten_alpha(img):
    """Composite transparent images onto white so they can be saved as RGB."""
    if img.mode in ('RGBA', 'LA', 'P'):
        if img.mode == 'P':
            img = img.convert('RGBA')
        background = Image.new('RGB', img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1] if 'A' in img.mode else None)
        return background
    if img.mode != 'RGB':
        return img.convert('RGB')
    return img


def create_preview(src_path, preview_path, size=None, quality=None):
    """
    Write a bounded preview of an image: longest side capped at size,
    aspect ratio kept. Animated sources use their first frame.

    Raises:
        ProcessingError: If the source cannot be decoded or the preview written.
    """
    size = size or config.PREVIEW_SIZE
    quality = quality or config.PREVIEW_QUALITY
    os.makedirs(os.path.dirname(preview_path), exist_ok=True)
    try:
        with Image.open(src_path) as img:
            img.seek(0)
            frame = _flatten_alpha(img)
            frame.thumbnail((size, size), Image.Resampling.LANCZOS)
            frame.save(preview_path, 'WEBP', quality=quality, method=6)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ProcessingError(f"Could not create preview for {os.path.basename(src_path)}: {e}")
    return preview_path


def reencode_to_png(src_path, dest_path, compress_level=None):
    """
    Re-encode a static image as PNG at the canonical compression setting.

    Raises:
        ProcessingError: If the source cannot be decoded or the result written.
    """
    compress_level = config.CANONICAL_PNG_COMPRESS_LEVEL if compress_level is None else compress_level
    os.makedirs(os.path.dirname(dest_path), exist_ok=True)
    try:
        with Image.open(src_path) as img:
            img.load()
            if img.mode not in ('RGB', 'RGBA', 'L', 'LA', 'P', 'I;16'):
                img = img.convert('RGBA' if 'A' in img.getbands() else 'RGB')
            img.save(dest_path, 'PNG', compress_level=compress_level)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ProcessingError(f"Could not decode image {os.path.basename(src_path)}: {e}")
    return dest_path


def first_frame_png_bytes(src_path) -> bytes:
    """First frame of an image as PNG bytes, for sending to the auto-tagger."""
    with Image.open(src_path) as img:
        img.seek(0)
        frame = _flatten_alpha(img)
        buffer = io.BytesIO()
        frame.save(buffer, 'PNG')
        return buffer.getvalue()
