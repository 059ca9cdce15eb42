"""
Redis Task Backend - Jobs pushed onto a Redis list.

Producers LPUSH JSON jobs; a worker RPOPs them in batches (FIFO) and runs
the registered handler. Failed jobs are re-queued until they exceed
max_retries, then parked on "<queue>_failed" for manual inspection.

Usage:
    Set TASK_BACKEND=redis in your .env file.
    Drain with `python manage.py process_queue`, the cron endpoint
    (/api/queue/process) or the Celery beat schedule.

Environment Variables:
    REDIS_URL: Redis connection URL
    TASK_QUEUE_NAME: List key (default: nextecom_tasks)
    TASK_MAX_RETRIES: Attempts before a job is parked (default: 3)
"""

import json
import random
import string
import time
import logging
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.utils import timezone

from apps.core.task_service import TaskServiceInterface, TaskQueueError
from apps.core.backends.local_backend import run_handler

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
RECENT_JOBS_LIMIT = 5


def _make_job_id(task_name: str) -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{task_name}-{int(time.time() * 1000)}-{suffix}"


class RedisTaskService(TaskServiceInterface):
    """Queue tasks on a Redis list and drain them in batches."""

    def __init__(self, client=None, queue_name: Optional[str] = None):
        self._client = client
        self.queue_name = queue_name or getattr(settings, 'TASK_QUEUE_NAME', 'nextecom_tasks')
        self.max_retries = getattr(settings, 'TASK_MAX_RETRIES', 3)

    @property
    def client(self):
        """Lazy initialization of the Redis client."""
        if self._client is None:
            import redis
            self._client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        return self._client

    @property
    def failed_queue_name(self) -> str:
        return f"{self.queue_name}_failed"

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Push a job onto the queue."""
        job_id = _make_job_id(task_name)

        if delay_seconds > 0:
            logger.warning(
                f"[REDIS] delay_seconds={delay_seconds} ignored in redis backend"
            )

        job = {
            "id": job_id,
            "task_name": task_name,
            "payload": payload,
            "timestamp": timezone.now().isoformat(),
            "retries": 0,
            "max_retries": self.max_retries,
        }

        try:
            self.client.lpush(self.queue_name, json.dumps(job, default=str))
        except Exception as e:
            logger.exception(f"[REDIS] Failed to enqueue task {task_name}: {e}")
            raise TaskQueueError(str(e)) from e

        logger.info(f"[REDIS] Job {job_id} enqueued on {self.queue_name}")
        return job_id

    # =========================================================================
    # Worker side
    # =========================================================================

    def process_jobs(self, batch_size: int = DEFAULT_BATCH_SIZE) -> Dict[str, int]:
        """
        Pop up to batch_size jobs and run them.

        Returns:
            {"processed": n, "failed": m}
        """
        processed = 0
        failed = 0
        retry: List[Dict[str, Any]] = []

        for _ in range(batch_size):
            raw = self.client.rpop(self.queue_name)
            if raw is None:
                break

            try:
                job = json.loads(raw)
            except (TypeError, ValueError):
                job = None

            if not isinstance(job, dict):
                logger.error(f"[REDIS] Dropping unparseable job: {raw!r}")
                self.client.lpush(self.failed_queue_name, json.dumps({
                    "raw": raw,
                    "failed_at": timezone.now().isoformat(),
                    "error": "Unparseable job data",
                }))
                failed += 1
                continue

            logger.info(
                f"[REDIS] Processing job {job.get('id')} "
                f"({job.get('task_name')}, retries={job.get('retries', 0)})"
            )

            try:
                result = run_handler(job["task_name"], job.get("payload") or {})
            except Exception as e:
                logger.exception(f"[REDIS] Job {job.get('id')} failed: {e}")
                if self._handle_failure(job, e):
                    retry.append(job)
                failed += 1
                continue

            logger.info(f"[REDIS] Job {job.get('id')} completed: {result}")
            processed += 1

        # Pushed back after the loop so a failing job runs once per batch
        for job in retry:
            self.client.lpush(self.queue_name, json.dumps(job, default=str))

        if processed or failed:
            logger.info(f"[REDIS] Batch finished: processed={processed} failed={failed}")

        return {"processed": processed, "failed": failed}

    def _handle_failure(self, job: Dict[str, Any], error: Exception) -> bool:
        """Count the attempt. Returns True if the job should be re-queued, else parks it."""
        job["retries"] = job.get("retries", 0) + 1
        max_retries = job.get("max_retries", self.max_retries)

        if job["retries"] <= max_retries:
            logger.warning(
                f"[REDIS] Re-queueing job {job.get('id')} "
                f"({job['retries']}/{max_retries})"
            )
            return True

        logger.error(
            f"[REDIS] Job {job.get('id')} failed permanently after {max_retries} retries"
        )
        job["failed_at"] = timezone.now().isoformat()
        job["error"] = str(error)
        self.client.lpush(self.failed_queue_name, json.dumps(job, default=str))
        return False

    def queue_status(self) -> Dict[str, Any]:
        """Queue length, failed count and a summary of the newest jobs."""
        recent: List[Dict[str, Any]] = []
        for index, raw in enumerate(self.client.lrange(self.queue_name, 0, RECENT_JOBS_LIMIT - 1)):
            try:
                job = json.loads(raw)
                recent.append({
                    "index": index + 1,
                    "id": job.get("id"),
                    "task_name": job.get("task_name"),
                    "timestamp": job.get("timestamp"),
                    "retries": job.get("retries", 0),
                    "max_retries": job.get("max_retries", self.max_retries),
                })
            except (TypeError, ValueError, AttributeError):
                recent.append({"index": index + 1, "id": "parse-error", "task_name": "unknown"})

        return {
            "queue_name": self.queue_name,
            "queue_length": self.client.llen(self.queue_name),
            "failed_length": self.client.llen(self.failed_queue_name),
            "recent_jobs": recent,
        }
