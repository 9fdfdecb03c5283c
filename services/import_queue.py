"""
Import queue - one file at a time, pausing for the time-column override decision
"""
import uuid
import logging
import threading
from collections import deque
from datetime import datetime

from config import Config
from services.course_importer import import_course
from services.record_store import get_storage
from utils.exceptions import CourseImportError, ValidationFailed

logger = logging.getLogger(__name__)

IDLE = 'idle'
PROCESSING = 'processing'
AWAITING_OVERRIDE_DECISION = 'awaiting_override_decision'


class ImportJob:
    """One uploaded file and its outcome"""

    def __init__(self, filename, data, metadata=None):
        self.id = str(uuid.uuid4())[:8]
        self.filename = filename
        self.data = data
        self.metadata = metadata
        self.status = 'queued'
        self.message = ''
        self.result = None
        self.validation = None
        self.error = None
        self.finished_at = None

    def to_dict(self):
        return {
            "id": self.id,
            "filename": self.filename,
            "status": self.status,
            "message": self.message,
            "result": self.result,
            "validation": self.validation,
            "finished_at": self.finished_at,
        }


class ImportQueue:
    """Single-flight import queue

    States: idle, processing and awaiting_override_decision. While a file
    waits for the override decision nothing else is processed; resume()
    either re-runs it with blanked times or records it as cancelled.
    Only the last history_limit (IMPORT_HISTORY_LIMIT) finished jobs are kept.
    """

    def __init__(self, importer=import_course, store=None, today=None, history_limit=None):
        self.importer = importer
        self._store = store
        self.today = today
        self.state = IDLE
        self.pending = None
        self.finished = deque(maxlen=history_limit or Config.IMPORT_HISTORY_LIMIT)
        self._queue = deque()
        self._lock = threading.Lock()

    @property
    def store(self):
        return self._store or get_storage()

    def enqueue(self, filename, data, metadata=None):
        job = ImportJob(filename, data, metadata)
        with self._lock:
            self._queue.append(job)
        logger.info(f"Queued import {job.id}: {filename}")
        return job

    def run(self):
        """Process queued files until the queue is empty or a decision is needed"""
        with self._lock:
            self._drain()
            return self._status()

    def resume(self, confirmed):
        """Answer the pending override decision, then keep draining"""
        with self._lock:
            if self.state != AWAITING_OVERRIDE_DECISION or self.pending is None:
                raise ValueError("No import is waiting for a decision")
            job, self.pending = self.pending, None
            self.state = IDLE
            if confirmed:
                logger.info(f"Override confirmed for {job.filename}, importing with blank times")
                self._process(job, ignore_missing_time_columns=True)
            else:
                logger.info(f"Override declined for {job.filename}")
                self._finish(job, 'cancelled', "Import cancelled: missing time columns")
            self._drain()
            return self._status()

    def status(self):
        with self._lock:
            return self._status()

    def _drain(self):
        while self._queue and self.state != AWAITING_OVERRIDE_DECISION:
            self._process(self._queue.popleft(), ignore_missing_time_columns=False)

    def _process(self, job, ignore_missing_time_columns):
        self.state = PROCESSING
        job.status = 'processing'
        try:
            result = self.importer(
                self.store, job.data, job.filename,
                metadata=job.metadata,
                ignore_missing_time_columns=ignore_missing_time_columns,
                today=self.today,
            )
        except ValidationFailed as e:
            job.validation = e.result.to_dict()
            if e.result.has_only_time_errors and not ignore_missing_time_columns:
                job.status = 'pending'
                job.message = str(e)
                self.pending = job
                self.state = AWAITING_OVERRIDE_DECISION
                logger.warning(f"{job.filename} is missing time columns, waiting for a decision")
                return
            job.error = e
            self._finish(job, 'failed', str(e))
        except CourseImportError as e:
            job.error = e
            self._finish(job, 'failed', str(e))
        except Exception as e:
            logger.exception(f"Unexpected error while importing {job.filename}")
            self._finish(job, 'failed', str(e))
        else:
            job.result = _summary(result)
            self._finish(job, 'completed', result.get('action', ''))
        self.state = IDLE

    def _finish(self, job, status, message):
        job.status = status
        job.message = message
        job.finished_at = datetime.now().isoformat()
        job.data = None
        self.finished.append(job)
        log = logger.info if status == 'completed' else logger.warning
        log(f"Import {job.id} {status}: {job.filename} {message}")

    def _status(self):
        return {
            "state": self.state,
            "queued": [job.filename for job in self._queue],
            "pending": self.pending.to_dict() if self.pending else None,
            "completed": [j.to_dict() for j in self.finished if j.status == 'completed'],
            "failed": [j.to_dict() for j in self.finished if j.status == 'failed'],
            "cancelled": [j.to_dict() for j in self.finished if j.status == 'cancelled'],
        }


def _summary(result):
    course = result.get('course') or {}
    return {
        "action": result.get('action'),
        "course_id": course.get('id'),
        "course_name": course.get('name'),
        "session_count": result.get('session_count', result.get('total_sessions')),
        "updated_sessions": result.get('updated_sessions'),
    }


_queue_instance = None


def get_queue():
    global _queue_instance
    if _queue_instance is None:
        _queue_instance = ImportQueue()
    return _queue_instance
