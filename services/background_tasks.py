# services/background_tasks.py
import asyncio
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Set

import config
from utils.logging_config import get_logger

logger = get_logger('BackgroundTasks')

TERMINAL_STATUSES = ('completed', 'failed', 'rejected', 'cancelled')


class IngestionTracker:
    """
    Tracks ingestion tasks by id: status, current stage, timestamps and result.

    Tasks run on their own; the tracker also holds a reference to every
    running asyncio task so it is not garbage collected mid-flight while
    nobody awaits it (the HTTP client may have gone away).
    """

    def __init__(self, retention_seconds: float = None):
        self.tasks: Dict[str, Dict[str, Any]] = {}
        self._running: Set[asyncio.Task] = set()
        self._finished_at: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.retention_seconds = (
            config.INGESTION_RETENTION_SECONDS if retention_seconds is None else retention_seconds
        )

    def start_task(self, task_id: str, task_func: Callable, *args, **kwargs) -> asyncio.Task:
        """Register task_id and start task_func(task_id, tracker, *args) as a task."""
        with self._lock:
            self._prune()
            existing = self.tasks.get(task_id)
            if existing and existing['status'] not in TERMINAL_STATUSES:
                raise ValueError(f"Task {task_id} is already running")

            self.tasks[task_id] = {
                'task_id': task_id,
                'status': 'pending',
                'stage': 'received',
                'message': 'Upload received',
                'started_at': datetime.now().isoformat(),
                'updated_at': datetime.now().isoformat(),
                'completed_at': None,
                'error': None,
                'status_code': None,
                'result': None,
            }

        task = asyncio.create_task(self._run_task(task_id, task_func, *args, **kwargs))
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return task

    async def _run_task(self, task_id: str, task_func: Callable, *args, **kwargs):
        self._update(task_id, status='running')
        try:
            result = await task_func(task_id, self, *args, **kwargs)
        except asyncio.CancelledError:
            self._finish(task_id, 'cancelled', message='Task was cancelled')
            raise
        except Exception as e:
            status_code = getattr(e, 'status_code', 500)
            status = 'rejected' if status_code == 409 else 'failed'
            self._finish(task_id, status, message=f'Task failed: {e}',
                         error=str(e), status_code=status_code)
            if status_code >= 500:
                logger.error(f"[Ingestion {task_id}] Error: {e}")
            else:
                logger.info(f"[Ingestion {task_id}] Rejected: {e}")
            return None

        self._finish(task_id, 'completed', message='Task completed successfully', result=result)
        return result

    def _update(self, task_id: str, **fields):
        with self._lock:
            record = self.tasks.get(task_id)
            if record is None:
                return
            record.update(fields)
            record['updated_at'] = datetime.now().isoformat()

    def _finish(self, task_id: str, status: str, **fields):
        with self._lock:
            record = self.tasks.get(task_id)
            if record is None:
                return
            record.update(fields)
            record['status'] = status
            record['completed_at'] = datetime.now().isoformat()
            record['updated_at'] = record['completed_at']
            self._finished_at[task_id] = time.monotonic()

    def _prune(self):
        # Caller holds the lock
        cutoff = time.monotonic() - self.retention_seconds
        for task_id, finished in list(self._finished_at.items()):
            if finished < cutoff:
                self.tasks.pop(task_id, None)
                del self._finished_at[task_id]

    def update_stage(self, task_id: str, stage: str, message: Optional[str] = None):
        """Record a pipeline state transition."""
        fields = {'stage': stage}
        if message:
            fields['message'] = message
        self._update(task_id, **fields)

    def get_task_status(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Snapshot of a task record, or None for an unknown (or pruned) id."""
        with self._lock:
            record = self.tasks.get(task_id)
            return dict(record) if record is not None else None

    async def wait_for_all(self):
        """Wait until every running task is done. Used at shutdown and in tests."""
        while True:
            pending = [task for task in self._running if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)


# Global tracker instance
ingestion_tracker = IngestionTracker()
