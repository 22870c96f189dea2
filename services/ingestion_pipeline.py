"""
Ingestion Pipeline

One upload, from the transient file on disk to a committed post:

    received -> hashing -> dedup_check -> {rejected | processing}
    -> auto_tagging -> tag_resolution -> persisting -> committed | failed

Each ingestion runs as its own asyncio task and publishes progress events
to a queue; the HTTP layer turns that queue into a newline-delimited JSON
stream. Whatever the outcome, the transient upload and any extracted frame
are removed. On failure the stored asset and preview are removed too.
"""

import asyncio
import json
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, List, Optional

import config
from core.errors import BooruError, DuplicateContentError, ProcessingError
from database import Post
from repositories import dedup_repository, post_repository, tag_repository
from utils.deduplication import get_content_digest
from utils.file_utils import remove_file, remove_files
from utils.logging_config import get_logger
from utils.tag_extraction import parse_tag_input, merge_tag_lists
from . import auto_tagger
from .background_tasks import IngestionTracker, ingestion_tracker
from .processing.locks import acquire_processing_lock, release_processing_lock
from .processing.media_processor import process_upload, validate_mimetype

logger = get_logger('Pipeline')


class Stage(str, Enum):
    """Pipeline states"""
    RECEIVED = "received"
    HASHING = "hashing"
    DEDUP_CHECK = "dedup_check"
    REJECTED = "rejected"
    PROCESSING = "processing"
    AUTO_TAGGING = "auto_tagging"
    TAG_RESOLUTION = "tag_resolution"
    PERSISTING = "persisting"
    COMMITTED = "committed"
    FAILED = "failed"


# Progress event types
EVENT_ACCEPTED = 'accepted'
EVENT_STAGE = 'stage'
EVENT_KEEPALIVE = 'keepalive'
EVENT_COMPLETE = 'complete'
EVENT_ERROR = 'error'
TERMINAL_EVENTS = (EVENT_COMPLETE, EVENT_ERROR)


@dataclass
class UploadRequest:
    temp_path: str
    mimetype: str
    tag_string: str
    uploader_id: int
    category: Optional[str] = None
    original_filename: Optional[str] = None


def post_url(post_id: int) -> str:
    return f"/posts/{post_id}"


def validate_upload(mimetype: str, tag_string: str) -> List[str]:
    """
    Checks done before the upload is accepted: allow-listed type, at least one tag.

    Returns:
        The parsed user tag names.
    """
    user_tags = parse_tag_input(tag_string)
    validate_mimetype(mimetype)
    return user_tags


class IngestionPipeline:
    """Runs one upload through every stage, reporting as it goes."""

    def __init__(self, request: UploadRequest, task_id: str = None,
                 tracker: IngestionTracker = None, events: asyncio.Queue = None):
        self.request = request
        self.task_id = task_id or uuid.uuid4().hex
        self.tracker = tracker
        self.events = events
        self.stage = Stage.RECEIVED
        self.digest: Optional[str] = None

        self._stored_files: List[str] = []
        self._scratch_files: List[str] = [request.temp_path]
        self._lock_fd = None

    # -- reporting ---------------------------------------------------------

    def _emit(self, event: Dict):
        if self.events is not None:
            self.events.put_nowait(event)

    def _enter(self, stage: Stage):
        self.stage = stage
        logger.debug(f"[{self.task_id}] -> {stage.value}")
        if self.tracker is not None:
            self.tracker.update_stage(self.task_id, stage.value)
        self._emit({"event": EVENT_STAGE, "stage": stage.value})

    # -- stages ------------------------------------------------------------

    async def _hash(self) -> str:
        self._enter(Stage.HASHING)
        digest = await asyncio.to_thread(get_content_digest, self.request.temp_path)
        self.digest = digest
        return digest

    async def _check_duplicate(self, digest: str):
        self._enter(Stage.DEDUP_CHECK)
        self._lock_fd, acquired = acquire_processing_lock(digest)
        if not acquired:
            # The same bytes are being ingested right now
            self._enter(Stage.REJECTED)
            raise DuplicateContentError()

        existing = await asyncio.to_thread(dedup_repository.lookup, digest)
        if existing is not None:
            self._enter(Stage.REJECTED)
            raise DuplicateContentError(existing_post_id=existing)

    async def _process(self, digest: str):
        self._enter(Stage.PROCESSING)
        processed = await process_upload(self.request.temp_path, self.request.mimetype, digest)
        self._stored_files.extend(processed.stored_files)
        self._scratch_files.extend(processed.scratch_files)
        return processed

    async def _auto_tag(self, image_path: str) -> List[str]:
        self._enter(Stage.AUTO_TAGGING)
        return await auto_tagger.generate_tags(image_path)

    async def _resolve_tags(self, user_tags: List[str], auto_tags: List[str]) -> List[int]:
        self._enter(Stage.TAG_RESOLUTION)
        names = merge_tag_lists(user_tags, auto_tags)
        category = self.request.category or config.DEFAULT_TAG_CATEGORY
        return await asyncio.to_thread(tag_repository.get_or_create_tags, names, category)

    def _persist_blocking(self, digest: str, processed, tag_ids: List[int]) -> Post:
        post = post_repository.create_post(
            post_repository.allocate_post_id(),
            digest,
            processed.media_type,
            processed.file_ext,
            tag_ids,
            self.request.uploader_id,
        )
        try:
            dedup_repository.insert(digest, post.id)
        except Exception:
            # The dedup entry is the commit point; without it the post must go
            if not post_repository.delete_post(post.id):
                logger.error(f"[{self.task_id}] Rollback could not find post {post.id}")
            raise
        return post

    async def _persist(self, digest: str, processed, tag_ids: List[int]) -> Post:
        self._enter(Stage.PERSISTING)
        return await asyncio.to_thread(self._persist_blocking, digest, processed, tag_ids)

    # -- driver ------------------------------------------------------------

    def _cleanup(self, committed: bool):
        failed = remove_files(self._scratch_files)
        if not committed:
            failed += remove_files(self._stored_files)
        if failed:
            logger.error(f"[{self.task_id}] Could not clean up: {', '.join(failed)}")
        if self._lock_fd is not None:
            release_processing_lock(self._lock_fd)
            self._lock_fd = None

    async def run(self) -> Post:
        """
        Execute the pipeline.

        Raises:
            BooruError: Validation (400), duplicate (409) or processing (500)
                failures, after cleanup and after the error event was emitted.
        """
        committed = False
        try:
            user_tags = validate_upload(self.request.mimetype, self.request.tag_string)
            digest = await self._hash()
            await self._check_duplicate(digest)
            processed = await self._process(digest)
            auto_tags = await self._auto_tag(processed.tagging_image)
            tag_ids = await self._resolve_tags(user_tags, auto_tags)
            post = await self._persist(digest, processed, tag_ids)
            committed = True
        except asyncio.CancelledError:
            logger.warning(f"[{self.task_id}] Cancelled during {self.stage.value}")
            self._fail(ProcessingError("Upload was cancelled."))
            raise
        except BooruError as e:
            self._fail(e)
            raise
        except OSError as e:
            logger.error(f"[{self.task_id}] I/O error during {self.stage.value}: {e}")
            error = ProcessingError("Server error during upload.")
            self._fail(error)
            raise error from e
        except Exception as e:
            logger.error(f"[{self.task_id}] Unexpected error during {self.stage.value}: {e}", exc_info=True)
            error = ProcessingError("Server error during upload.")
            self._fail(error)
            raise error from e
        finally:
            self._cleanup(committed)

        self._enter(Stage.COMMITTED)
        source = self.request.original_filename or 'upload'
        logger.info(f"[{self.task_id}] Committed post {post.id} from {source} ({len(post.tag_ids)} tags)")
        self._emit({"event": EVENT_COMPLETE, "redirect": post_url(post.id), "post_id": post.id})
        return post

    def _fail(self, error: BooruError):
        if self.stage != Stage.REJECTED:
            self._enter(Stage.FAILED)
        payload = {"event": EVENT_ERROR, "status": error.status_code, "error": error.message}
        existing = getattr(error, 'existing_post_id', None)
        if existing is not None:
            payload["post_id"] = existing
        self._emit(payload)


async def _ingest(task_id: str, tracker: IngestionTracker, pipeline: IngestionPipeline) -> Dict:
    post = await pipeline.run()
    return {"post_id": post.id, "redirect": post_url(post.id)}


def start_ingestion(request: UploadRequest, tracker: IngestionTracker = None):
    """
    Start an ingestion in the background.

    Returns:
        (task_id, events) where events is the queue of progress events,
        already holding the 'accepted' event.
    """
    tracker = tracker or ingestion_tracker
    events: asyncio.Queue = asyncio.Queue()
    pipeline = IngestionPipeline(request, tracker=tracker, events=events)
    events.put_nowait({"event": EVENT_ACCEPTED, "task_id": pipeline.task_id})
    tracker.start_task(pipeline.task_id, _ingest, pipeline)
    return pipeline.task_id, events


async def iter_progress(events: asyncio.Queue, keepalive_interval: float = None) -> AsyncIterator[str]:
    """
    Yield progress events as NDJSON lines until a terminal event.

    A keepalive line is written whenever no event arrived for
    keepalive_interval seconds.
    """
    keepalive_interval = keepalive_interval or config.KEEPALIVE_INTERVAL
    while True:
        try:
            event = await asyncio.wait_for(events.get(), timeout=keepalive_interval)
        except asyncio.TimeoutError:
            yield json.dumps({"event": EVENT_KEEPALIVE}) + "\n"
            continue
        yield json.dumps(event) + "\n"
        if event.get("event") in TERMINAL_EVENTS:
            return


def discard_upload(temp_path: str):
    """Remove a transient upload that never entered the pipeline."""
    try:
        remove_file(temp_path)
    except OSError as e:
        logger.warning(f"Could not remove transient upload {temp_path}: {e}")
