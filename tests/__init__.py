"""
Sambooru Test Suite

Test organization:
- test_tag_extraction.py: Tag normalization and query/auto-tag parsing
- test_deduplication.py: Content hashing
- test_database.py: Schema, counters and typed records
- test_repositories.py: Tag catalog, post store, dedup index, users
- test_file_utils.py: Bucketed storage paths and cleanup helpers
- test_video_utils.py: ffmpeg subprocess wrappers
- test_locks.py: Per-digest processing locks
- test_media_processor.py: Pillow/ffmpeg processing and cleanup
- test_auto_tagger.py: Vision model client
- test_ingestion_pipeline.py: Upload state machine, rollback, progress stream
- test_search.py: Tag query engine over both post indexes
- test_post_service.py: Post deletion, locking and rollback
- test_routes.py: HTTP endpoints
- test_decorators.py / test_api_responses.py: Response helpers
- conftest.py: Shared fixtures and test utilities
"""
