"""In-memory render job store with cancellation and TTL cleanup.

WHY: Renders take anywhere from seconds to many minutes, so the HTTP API
returns a job ID immediately and does the work in the background. Clients
poll for progress, download the finished video, or cancel. An in-memory
store is enough for a single-host tool with no persistence requirements.

HOW: Three components work together:
  JobStatus  — enum of valid job states
  Job        — dataclass holding job metadata, progress, work directory
               and the cancel event handed to the encoder
  JobStore   — thread-safe dict-based store with create/get/list/update,
               cancel/delete, and TTL cleanup

RULES:
- All store mutations are protected by threading.Lock
- Each job gets a dedicated temp directory for the upload, the subtitle
  document and the rendered video
- Progress never decreases
- cancel_job() only sets the job's event; the render thread observes it,
  kills ffmpeg and marks the job cancelled
- TTL-based expiry removes terminal jobs and their temp directories
- Job IDs are UUID4 hex strings; default TTL is 1 hour
"""

from __future__ import annotations

import enum
import logging
import shutil
import tempfile
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Default time-to-live for finished jobs (seconds)
DEFAULT_TTL_SECONDS = 3600


class JobStatus(str, enum.Enum):
    """Valid states for a render job.

    RULES:
    - pending: job created, not yet started
    - probing: reading input dimensions and duration
    - encoding: ffmpeg is running, progress is updated
    - completed: output video ready for download
    - failed: encode or launch failure
    - cancelled: stopped by the client
    """

    PENDING = "pending"
    PROBING = "probing"
    ENCODING = "encoding"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass
class Job:
    """Metadata and state for a single render job.

    RULES:
    - id: UUID4 hex, unique and immutable after creation
    - filename: uploaded video filename (sanitized)
    - work_dir: temp directory holding input, subtitles and output
    - progress: 0.0-1.0, monotonic
    - error: failure status line when failed/cancelled, else None
    - log: tail of ffmpeg output on failure
    - output_file: rendered filename inside work_dir once completed
    - cancel_event: set by cancel_job(), observed by the encoder
    """

    id: str
    status: JobStatus
    filename: str
    work_dir: Path
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None
    error: Optional[str] = None
    log: Optional[str] = None
    progress: float = 0.0
    config: Dict[str, Any] = field(default_factory=dict)
    output_file: Optional[str] = None
    cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)


class JobStore:
    """Thread-safe in-memory store for render jobs.

    WHY: API requests and background render threads access job state
    simultaneously. A centralized store with locking prevents races and
    keeps the endpoints thin.

    HOW: Jobs live in a dict keyed by ID. Every mutation takes the lock.
    Directory removal happens outside the lock.

    RULES:
    - create_job() raises ValueError when max_jobs is reached
    - get_job() returns None for unknown IDs (no exceptions)
    - update_job() applies only non-None arguments
    - delete_job() cancels a running render before removing files
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_jobs: int = 20,
    ) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_jobs = max_jobs

    def create_job(
        self,
        filename: str,
        config: Optional[Dict[str, Any]] = None,
    ) -> Job:
        """Create a PENDING job with its own temp directory."""
        with self._lock:
            if len(self._jobs) >= self.max_jobs:
                raise ValueError(
                    "Maximum number of concurrent jobs ({}) reached".format(
                        self.max_jobs
                    )
                )

            job_id = uuid.uuid4().hex
            now = time.time()
            work_dir = Path(tempfile.mkdtemp(prefix="captioner_job_"))

            job = Job(
                id=job_id,
                status=JobStatus.PENDING,
                filename=filename,
                work_dir=work_dir,
                created_at=now,
                updated_at=now,
                config=config or {},
            )

            self._jobs[job_id] = job

        logger.info("Created render job %s for %s", job_id, filename)
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[Job]:
        """All jobs, oldest first."""
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.created_at)

    def update_job(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        error: Optional[str] = None,
        progress: Optional[float] = None,
        output_file: Optional[str] = None,
        log: Optional[str] = None,
    ) -> Optional[Job]:
        """Update a job's mutable fields.

        RULES:
        - Returns the updated Job, or None if job_id not found
        - A terminal status is never replaced by a non-terminal one
        - progress below the current value is ignored
        - completed_at is set when the job reaches a terminal state
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None

            now = time.time()

            if status is not None and not (job.status.is_terminal and not status.is_terminal):
                job.status = status
            if error is not None:
                job.error = error
            if progress is not None and progress > job.progress:
                job.progress = min(1.0, progress)
            if output_file is not None:
                job.output_file = output_file
            if log is not None:
                job.log = log

            job.updated_at = now

            if job.status.is_terminal and job.completed_at is None:
                job.completed_at = now

            return job

    def cancel_job(self, job_id: str) -> bool:
        """Signal a job's render to stop. Returns False for unknown IDs."""
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            return False
        job.cancel_event.set()
        logger.info("Cancel requested for job %s", job_id)
        return True

    def delete_job(self, job_id: str) -> bool:
        """Cancel (if running) and delete a job and its temp directory."""
        with self._lock:
            job = self._jobs.pop(job_id, None)

        if job is None:
            return False

        job.cancel_event.set()
        self._cleanup_work_dir(job.work_dir)
        logger.info("Deleted job %s", job_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove terminal jobs older than the TTL; returns how many."""
        now = time.time()
        expired_jobs: List[Job] = []

        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if not job.status.is_terminal or job.completed_at is None:
                    continue
                if now - job.completed_at > self._ttl_seconds:
                    expired_jobs.append(self._jobs.pop(job_id))

        for job in expired_jobs:
            self._cleanup_work_dir(job.work_dir)
            logger.info("Expired job %s (finished %.0fs ago)", job.id, now - job.completed_at)

        return len(expired_jobs)

    @staticmethod
    def _cleanup_work_dir(work_dir: Path) -> None:
        """Remove a job's temp directory tree; logs instead of raising."""
        if work_dir.exists():
            try:
                shutil.rmtree(work_dir)
            except OSError:
                logger.warning("Failed to clean up temp dir: %s", work_dir)
