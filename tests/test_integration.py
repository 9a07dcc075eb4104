"""
Integration Tests

End-to-end flows that combine several components of one engine.

Run with: python -m pytest tests/test_integration.py -v
"""

import threading

import pytest

from kvengine.engine import KVEngine
from kvengine.patterns import JobQueue, SlidingWindowLimiter


@pytest.mark.integration
class TestEngineWorkflows:
    """Workflows mixing stores, patterns and pub/sub."""

    def test_leaderboard_workflow(self, engine: KVEngine):
        """Test a scoreboard with a recent-activity feed beside it."""
        for player, points in (("alice", 10), ("bob", 20), ("alice", 15), ("carol", 5)):
            engine.zsets.zincr_by("board", points, player)
            engine.lists.push_capped("activity", f"{player}+{points}", 3)

        assert engine.zsets.zrevrange("board", 0, -1, with_scores=True) == [
            ("alice", 25.0),
            ("bob", 20.0),
            ("carol", 5.0),
        ]
        assert engine.lists.range("activity", 0, -1) == ["carol+5", "alice+15", "bob+20"]

    def test_queue_notifications(self, engine: KVEngine):
        """Test workers notified over pub/sub drain a queue."""
        queue = JobQueue(engine)
        done = []

        def on_job(channel, queue_name):
            job = queue.dequeue(queue_name)
            done.append(job.payload)
            queue.ack(job.id)

        engine.pubsub.subscribe("jobs:ready", on_job)
        for i in range(3):
            queue.enqueue("work", i)
            engine.pubsub.publish("jobs:ready", "work")

        assert done == [0, 1, 2]
        assert queue.stats("work")["total"] == 0

    def test_atomic_block(self, engine: KVEngine):
        """Test a read-modify-write block is not interleaved."""
        engine.hashes.hset("account", "balance", "100")

        def withdraw():
            for _ in range(50):
                with engine.atomic():
                    balance = int(engine.hashes.hget("account", "balance"))
                    engine.hashes.hset("account", "balance", str(balance - 1))

        threads = [threading.Thread(target=withdraw) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert engine.hashes.hget("account", "balance") == "0"

    def test_rate_limited_api(self, engine: KVEngine, clock):
        """Test requests past the limit are rejected and counted apart."""
        limiter = SlidingWindowLimiter(engine)
        served = 0
        for _ in range(5):
            if limiter.allow("client-1", 3, 60):
                served += 1
                engine.strings.incr("served")
            else:
                engine.strings.incr("rejected")

        assert served == 3
        assert engine.strings.get_many(["served", "rejected"]) == ["3", "2"]

    def test_engine_stats(self, engine: KVEngine, clock):
        engine.strings.set("a", "1", ttl=1)
        engine.sets.add("b", "x")
        engine.pubsub.subscribe("news", lambda ch, msg: None)
        engine.pubsub.publish("news", "hello")
        clock.advance(2)

        stats = engine.get_stats()

        assert stats["keyspace"]["expired_keys"] == 1
        assert stats["keyspace"]["by_type"]["set"] == 1
        assert stats["pubsub"] == {
            "channels": 1,
            "patterns": 0,
            "published": 1,
            "handler_errors": 0,
        }
        assert stats["sweeper"]["running"] is False
