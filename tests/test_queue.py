"""
Tests for the Job Queue

These tests verify:
- Priority ordering and FIFO within a priority
- ack/nack, retries and dead-lettering
- Delayed jobs and their one-time promotion
- Processing markers and their timeout

Run with: python -m pytest tests/test_queue.py -v
"""

import json
import threading

import pytest

from kvengine.engine import KVEngine
from kvengine.errors import InvalidTTL
from kvengine.patterns.queue import Job, JobQueue


@pytest.fixture
def queue(engine: KVEngine) -> JobQueue:
    return JobQueue(engine, max_retries=3, processing_timeout=30)


class TestEnqueueDequeue:
    """Test basic queue flow."""

    def test_enqueue_returns_job(self, queue: JobQueue, clock):
        job = queue.enqueue("emails", {"to": "a@example.com"})

        assert job.id
        assert job.priority == "normal"
        assert job.attempts == 0
        assert job.enqueued_at == clock.now

    def test_dequeue_empty(self, queue: JobQueue):
        assert queue.dequeue("emails") is None

    def test_fifo_within_priority(self, queue: JobQueue):
        for i in range(3):
            queue.enqueue("emails", {"n": i})
        assert [queue.dequeue("emails").payload["n"] for _ in range(3)] == [0, 1, 2]

    def test_priority_order(self, queue: JobQueue):
        queue.enqueue("work", "low", priority="low")
        queue.enqueue("work", "normal")
        queue.enqueue("work", "high", priority="high")

        assert [queue.dequeue("work").payload for _ in range(3)] == ["high", "normal", "low"]

    def test_invalid_priority(self, queue: JobQueue):
        with pytest.raises(ValueError):
            queue.enqueue("work", "x", priority="urgent")

    @pytest.mark.parametrize("timeout", [0, -5, float("nan")])
    def test_invalid_processing_timeout(self, engine: KVEngine, timeout):
        """Test a bad timeout is refused before any job can be taken."""
        with pytest.raises(InvalidTTL):
            JobQueue(engine, processing_timeout=timeout)

    def test_job_json_format(self, queue: JobQueue, engine: KVEngine):
        job = queue.enqueue("work", {"a": 1}, job_id="job-1")
        raw = engine.lists.index("work:normal", 0)

        assert json.loads(raw) == {
            "id": "job-1",
            "payload": {"a": 1},
            "priority": "normal",
            "enqueuedAt": job.enqueued_at,
            "attempts": 0,
        }
        assert Job.from_json(raw) == job

    def test_dequeue_sets_processing_marker(self, queue: JobQueue, engine: KVEngine):
        job = queue.enqueue("work", "x")
        queue.dequeue("work")

        marker = queue.processing_key(job.id)
        assert engine.hashes.hget(marker, "queue") == "work"
        assert engine.ttl_remaining(marker) == pytest.approx(30)
        assert [j.id for j in queue.processing("work")] == [job.id]

    def test_concurrent_dequeue_delivers_once(self):
        """Test each job goes to exactly one of several consumers."""
        engine = KVEngine()
        queue = JobQueue(engine)
        for i in range(200):
            queue.enqueue("work", i)

        seen = []
        lock = threading.Lock()

        def consumer():
            while (job := queue.dequeue("work")) is not None:
                with lock:
                    seen.append(job.payload)

        threads = [threading.Thread(target=consumer) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(seen) == list(range(200))


class TestAckNack:
    """Test completion, retries and dead letters."""

    def test_ack(self, queue: JobQueue, engine: KVEngine):
        job = queue.enqueue("work", "x")
        queue.dequeue("work")

        assert queue.ack(job.id) is True
        assert queue.ack(job.id) is False
        assert engine.exists(queue.processing_key(job.id)) is False

    def test_nack_requeues(self, queue: JobQueue):
        job = queue.enqueue("work", "x", priority="high")
        queue.dequeue("work")

        assert queue.nack(job.id, error="timeout") is True
        retried = queue.dequeue("work")
        assert retried.id == job.id
        assert retried.attempts == 1
        assert retried.last_error == "timeout"
        assert retried.priority == "high"

    def test_nack_unknown_job(self, queue: JobQueue):
        assert queue.nack("missing") is False

    def test_dead_letter_after_max_retries(self, queue: JobQueue):
        """Test the third failure moves the job to the dead-letter list."""
        job = queue.enqueue("work", "x")
        for _ in range(3):
            current = queue.dequeue("work")
            assert current.id == job.id
            queue.nack(current.id, error="boom")

        assert queue.dequeue("work") is None
        dead = queue.dead_letters("work")
        assert [j.id for j in dead] == [job.id]
        assert dead[0].attempts == 3

    def test_expired_marker_means_abandoned(self, queue: JobQueue, clock):
        job = queue.enqueue("work", "x")
        queue.dequeue("work")
        clock.advance(31)

        assert queue.nack(job.id) is False
        assert queue.processing("work") == []


class TestDelayed:
    """Test delayed jobs."""

    def test_not_promoted_early(self, queue: JobQueue, clock):
        queue.enqueue_delayed("work", "later", delay_seconds=10)
        clock.advance(9)

        assert queue.promote_due("work") == 0
        assert queue.dequeue("work") is None

    @pytest.mark.parametrize("delay", [-1, float("nan"), "10"])
    def test_invalid_delay(self, queue: JobQueue, delay):
        with pytest.raises(ValueError):
            queue.enqueue_delayed("work", "later", delay_seconds=delay)
        assert queue.stats("work")["delayed"] == 0

    def test_zero_delay_due_now(self, queue: JobQueue):
        queue.enqueue_delayed("work", "now", delay_seconds=0)
        assert queue.promote_due("work") == 1
        assert queue.dequeue("work").payload == "now"

    def test_promoted_once(self, queue: JobQueue, clock):
        job = queue.enqueue_delayed("work", "later", delay_seconds=10)
        clock.advance(10)

        assert queue.promote_due("work") == 1
        assert queue.promote_due("work") == 0
        assert queue.dequeue("work").id == job.id
        assert queue.dequeue("work") is None

    def test_promote_with_explicit_now(self, queue: JobQueue, clock):
        start = clock.now
        queue.enqueue_delayed("work", "later", delay_seconds=5)

        assert queue.promote_due("work", start) == 0
        assert queue.promote_due("work", start + 6) == 1
        assert queue.promote_due("work", start + 6) == 0
        assert queue.stats("work")["normal"] == 1

    def test_concurrent_promotion(self, engine: KVEngine, clock):
        """Test concurrent pollers promote each job exactly once."""
        queue = JobQueue(engine)
        for i in range(50):
            queue.enqueue_delayed("work", i, delay_seconds=1)
        clock.advance(1)

        counts = []
        threads = [
            threading.Thread(target=lambda: counts.append(queue.promote_due("work")))
            for _ in range(4)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(counts) == 50
        assert queue.stats("work")["normal"] == 50


class TestQueueStats:
    """Test stats() and purge()."""

    def test_stats(self, queue: JobQueue):
        queue.enqueue("work", "a", priority="high")
        queue.enqueue("work", "b")
        queue.enqueue("work", "c", priority="low")
        queue.enqueue_delayed("work", "d", delay_seconds=60)
        queue.dequeue("work")

        assert queue.stats("work") == {
            "high": 0,
            "normal": 1,
            "low": 1,
            "queued": 2,
            "delayed": 1,
            "dead": 0,
            "processing": 1,
            "total": 4,
        }

    def test_pending(self, queue: JobQueue):
        queue.enqueue("work", "a")
        queue.enqueue("work", "b")
        assert [j.payload for j in queue.pending("work")] == ["a", "b"]

    def test_purge(self, queue: JobQueue, engine: KVEngine):
        queue.enqueue("work", "a")
        queue.enqueue("work", "b")
        queue.enqueue_delayed("work", "c", delay_seconds=5)
        queue.dequeue("work")

        queue.purge("work")

        assert queue.stats("work")["total"] == 0
        assert engine.keyspace.keys() == []
