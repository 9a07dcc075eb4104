"""
Job Queue

Priority job queue with retries, a dead-letter list and delayed jobs,
composed entirely out of list, hash and sorted-set entries.

Key layout for a queue named `q`:
    q:high, q:normal, q:low    Pending jobs (push left, pop right = FIFO)
    q:delayed                  Sorted set of job JSON scored by due time
    q:dead                     Jobs that exhausted their retries
    jobs:processing:<id>       Hash {queue, job} with a processing-timeout TTL

Job format (JSON):
    {"id": str, "payload": any, "priority": "high"|"normal"|"low",
     "enqueuedAt": float, "attempts": int}
"""

import json
import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..cache.keyspace import validate_ttl
from ..config.settings import settings
from ..engine import KVEngine

logger = logging.getLogger(__name__)

PRIORITIES = ("high", "normal", "low")
PROCESSING_PREFIX = "jobs:processing:"


@dataclass
class Job:
    """A unit of work and its delivery bookkeeping."""
    id: str
    payload: Any
    priority: str = "normal"
    enqueued_at: float = 0.0
    attempts: int = 0
    last_error: Optional[str] = None

    def to_json(self) -> str:
        data = {
            "id": self.id,
            "payload": self.payload,
            "priority": self.priority,
            "enqueuedAt": self.enqueued_at,
            "attempts": self.attempts,
        }
        if self.last_error is not None:
            data["lastError"] = self.last_error
        return json.dumps(data, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "Job":
        data = json.loads(raw)
        return cls(
            id=data["id"],
            payload=data.get("payload"),
            priority=data.get("priority", "normal"),
            enqueued_at=data.get("enqueuedAt", 0.0),
            attempts=data.get("attempts", 0),
            last_error=data.get("lastError"),
        )


def _check_priority(priority: str) -> str:
    if priority not in PRIORITIES:
        raise ValueError(f"priority must be one of {PRIORITIES}, got {priority!r}")
    return priority


def _check_delay(delay_seconds) -> float:
    if isinstance(delay_seconds, bool) or not isinstance(delay_seconds, (int, float)):
        raise ValueError(f"delay_seconds must be a number, got {delay_seconds!r}")
    if math.isnan(delay_seconds) or delay_seconds < 0:
        raise ValueError(f"delay_seconds must not be negative, got {delay_seconds!r}")
    return float(delay_seconds)


class JobQueue:
    """
    Job queue facade over an engine.

    Usage:
        queue = JobQueue(engine, max_retries=3)
        job = queue.enqueue("emails", {"to": "a@example.com"}, priority="high")
        job = queue.dequeue("emails")
        queue.ack(job.id)           # done
        queue.nack(job.id, "smtp")  # retry or dead-letter

    Attributes:
        max_retries: Failed attempts before a job is dead-lettered
        processing_timeout: TTL in seconds of a dequeued job's marker
    """

    def __init__(self, engine: KVEngine, max_retries: int = None, processing_timeout: float = None):
        self.engine = engine
        self.max_retries = max_retries if max_retries is not None else settings.MAX_RETRIES
        self.processing_timeout = validate_ttl(
            processing_timeout if processing_timeout is not None else settings.PROCESSING_TIMEOUT
        )

    @staticmethod
    def priority_key(queue_name: str, priority: str) -> str:
        return f"{queue_name}:{priority}"

    @staticmethod
    def delayed_key(queue_name: str) -> str:
        return f"{queue_name}:delayed"

    @staticmethod
    def dead_key(queue_name: str) -> str:
        return f"{queue_name}:dead"

    @staticmethod
    def processing_key(job_id: str) -> str:
        return f"{PROCESSING_PREFIX}{job_id}"

    def enqueue(self, queue_name: str, payload: Any, priority: str = "normal",
                job_id: str = None) -> Job:
        """Push a new job onto its priority list; returns the Job."""
        job = self._new_job(payload, priority, job_id)
        self._push(queue_name, job)
        logger.debug(f"Job {job.id} added to {queue_name} ({priority} priority)")
        return job

    def enqueue_delayed(self, queue_name: str, payload: Any, delay_seconds: float,
                        priority: str = "normal", job_id: str = None) -> Job:
        """Schedule a job to become available after delay_seconds."""
        delay_seconds = _check_delay(delay_seconds)
        job = self._new_job(payload, priority, job_id)
        due = job.enqueued_at + delay_seconds
        self.engine.zsets.zadd(self.delayed_key(queue_name), [(due, job.to_json())])
        logger.debug(f"Job {job.id} scheduled on {queue_name} at {due}")
        return job

    def dequeue(self, queue_name: str) -> Optional[Job]:
        """
        Take the oldest job from the highest non-empty priority list.

        The job is parked under a processing marker until ack()/nack() or
        until the processing timeout elapses.

        Returns:
            The Job, or None if every priority list is empty
        """
        with self.engine.atomic():
            for priority in PRIORITIES:
                raw = self.engine.lists.pop_right(self.priority_key(queue_name, priority))
                if raw is not None:
                    break
            else:
                return None

            job = Job.from_json(raw)
            marker = self.processing_key(job.id)
            self.engine.hashes.hset_many(marker, {"queue": queue_name, "job": job.to_json()})
            self.engine.expire(marker, self.processing_timeout)

        logger.debug(f"Job {job.id} ({job.priority} priority) started processing")
        return job

    def ack(self, job_id: str) -> bool:
        """Mark a dequeued job as done; False if it is not being processed."""
        removed = self.engine.delete(self.processing_key(job_id))
        if removed:
            logger.debug(f"Job {job_id} completed")
        return removed

    def nack(self, job_id: str, error: str = None) -> bool:
        """
        Mark a dequeued job as failed.

        The job is re-enqueued on its own priority list until it has failed
        max_retries times, then moved to the dead-letter list.

        Returns:
            False if the job is not being processed
        """
        with self.engine.atomic():
            marker = self.processing_key(job_id)
            state = self.engine.hashes.hgetall(marker)
            if not state:
                return False
            self.engine.delete(marker)

            queue_name = state["queue"]
            job = Job.from_json(state["job"])
            job.attempts += 1
            if error is not None:
                job.last_error = error

            if job.attempts < self.max_retries:
                self._push(queue_name, job)
                dead = False
            else:
                self.engine.lists.push_left(self.dead_key(queue_name), job.to_json())
                dead = True

        if dead:
            logger.warning(f"Job {job_id} failed permanently after {job.attempts} attempts")
        else:
            logger.debug(f"Job {job_id} failed, retrying (attempt {job.attempts}/{self.max_retries})")
        return True

    def promote_due(self, queue_name: str, now: float = None) -> int:
        """
        Move every delayed job due at or before `now` into the active queue.

        Each job is removed from the delayed set in the same atomic step that
        enqueues it, so concurrent pollers never promote a job twice.

        Returns:
            Number of jobs promoted
        """
        now = self.engine.now() if now is None else now
        delayed = self.delayed_key(queue_name)
        with self.engine.atomic():
            due = self.engine.zsets.zrange_by_score(delayed, float("-inf"), now)
            for raw in due:
                self.engine.zsets.zrem(delayed, raw)
                self._push(queue_name, Job.from_json(raw))
        if due:
            logger.debug(f"Promoted {len(due)} delayed jobs on {queue_name}")
        return len(due)

    def processing(self, queue_name: str) -> List[Job]:
        """Jobs of this queue currently parked under a processing marker."""
        jobs = []
        with self.engine.atomic():
            for marker in self.engine.keyspace.keys(f"{PROCESSING_PREFIX}*"):
                state = self.engine.hashes.hgetall(marker)
                if state.get("queue") == queue_name:
                    jobs.append(Job.from_json(state["job"]))
        return jobs

    def pending(self, queue_name: str, priority: str = "normal") -> List[Job]:
        """Queued jobs of one priority, next-to-run first."""
        key = self.priority_key(queue_name, _check_priority(priority))
        return [Job.from_json(raw) for raw in reversed(self.engine.lists.range(key, 0, -1))]

    def dead_letters(self, queue_name: str) -> List[Job]:
        return [Job.from_json(raw) for raw in self.engine.lists.range(self.dead_key(queue_name), 0, -1)]

    def stats(self, queue_name: str) -> Dict[str, int]:
        with self.engine.atomic():
            result = {
                priority: self.engine.lists.length(self.priority_key(queue_name, priority))
                for priority in PRIORITIES
            }
            result["queued"] = sum(result[p] for p in PRIORITIES)
            result["delayed"] = self.engine.zsets.zcard(self.delayed_key(queue_name))
            result["dead"] = self.engine.lists.length(self.dead_key(queue_name))
            result["processing"] = len(self.processing(queue_name))
        result["total"] = result["queued"] + result["delayed"] + result["dead"] + result["processing"]
        return result

    def purge(self, queue_name: str) -> None:
        """Remove every list and marker belonging to the queue."""
        with self.engine.atomic():
            for priority in PRIORITIES:
                self.engine.delete(self.priority_key(queue_name, priority))
            self.engine.delete(self.delayed_key(queue_name))
            self.engine.delete(self.dead_key(queue_name))
            for job in self.processing(queue_name):
                self.engine.delete(self.processing_key(job.id))
        logger.debug(f"Queue {queue_name} purged")

    def _new_job(self, payload: Any, priority: str, job_id: Optional[str]) -> Job:
        return Job(
            id=job_id or uuid.uuid4().hex,
            payload=payload,
            priority=_check_priority(priority),
            enqueued_at=self.engine.now(),
        )

    def _push(self, queue_name: str, job: Job) -> None:
        key = self.priority_key(queue_name, _check_priority(job.priority))
        self.engine.lists.push_left(key, job.to_json())
