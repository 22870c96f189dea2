"""
Auto-tagger client for an Ollama-hosted vision model.

Tagging is best effort: whatever goes wrong (timeout, connection refused,
HTTP error, unreadable answer) is logged and the caller gets an empty list.
"""

import asyncio
import base64
from typing import List

import requests

import config
from core.errors import AutoTaggerError
from utils.logging_config import get_logger
from utils.tag_extraction import parse_auto_tags
from .processing.thumbnail_generator import first_frame_png_bytes

logger = get_logger('AutoTagger')


def _encode_image(image_path: str) -> str:
    return base64.b64encode(first_frame_png_bytes(image_path)).decode('ascii')


def _generate(session: requests.Session, image_b64: str) -> str:
    """Blocking call to /api/generate. Returns the model's raw text."""
    url = f"{config.OLLAMA_HOST.rstrip('/')}/api/generate"
    payload = {
        "model": config.AUTO_TAGGER_MODEL,
        "prompt": config.AUTO_TAGGER_PROMPT,
        "images": [image_b64],
        "stream": False,
    }
    try:
        # Socket timeout slightly above the wall-clock limit; wait_for decides first
        response = session.post(url, json=payload, timeout=config.AUTO_TAGGER_TIMEOUT + 5)
        response.raise_for_status()
        data = response.json()
    except requests.RequestException as e:
        raise AutoTaggerError(f"Request to {url} failed: {e}")
    except ValueError as e:
        raise AutoTaggerError(f"Unreadable response from {url}: {e}")

    text = data.get('response') if isinstance(data, dict) else None
    if not isinstance(text, str):
        raise AutoTaggerError("Response has no 'response' text")
    return text


def _tag_image_blocking(session: requests.Session, image_path: str) -> List[str]:
    try:
        image_b64 = _encode_image(image_path)
    except OSError as e:
        raise AutoTaggerError(f"Could not read {image_path}: {e}")
    text = _generate(session, image_b64)
    logger.debug(f"Model answered: {text!r}")
    return parse_auto_tags(text, config.AUTO_TAGGER_MAX_TAGS)


async def generate_tags(image_path: str, timeout: float = None) -> List[str]:
    """
    Ask the vision model for tags describing image_path.

    Returns:
        Normalized tag names, or [] when tagging is disabled or fails.
    """
    if not config.ENABLE_AUTO_TAGGER or not image_path:
        return []

    timeout = config.AUTO_TAGGER_TIMEOUT if timeout is None else timeout
    session = requests.Session()
    try:
        tags = await asyncio.wait_for(
            asyncio.to_thread(_tag_image_blocking, session, image_path),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning(f"Auto-tagger timed out after {timeout}s, continuing without auto tags")
        return []
    except AutoTaggerError as e:
        logger.warning(f"Auto-tagger failed: {e}")
        return []
    except Exception as e:
        logger.error(f"Unexpected auto-tagger error: {e}", exc_info=True)
        return []
    finally:
        # Closing the session drops the pooled connection of a call still in flight
        session.close()

    logger.info(f"Auto-tagger suggested {len(tags)} tag(s)")
    return tags
