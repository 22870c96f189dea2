"""
Services package for Sambooru.

This module provides the business logic behind the HTTP layer:
- Ingestion pipeline and its progress tracker
- Media processing (ffmpeg, Pillow) and the auto-tagger client
- Tag search
- Post viewing, editing and deletion
- Admin tag management and user settings

Note: We keep imports minimal at the package level to avoid circular
dependency issues. Service modules should be imported directly where
needed, e.g., `from services import post_service`
"""

__all__ = [
    'auto_tagger',
    'background_tasks',
    'ingestion_pipeline',
    'post_service',
    'processing',
    'query',
    'tag_service',
    'user_service',
]
