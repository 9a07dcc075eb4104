#!/usr/bin/env python3
"""
KV-Engine Walkthrough

Runs the common application patterns against an in-process engine and
prints what happens at each step.

Usage:
    python scripts/demo.py                 # All sections
    python scripts/demo.py queue limits    # Selected sections
"""

import argparse
import json
import logging
import sys

from kvengine import KVEngine
from kvengine.patterns import (
    CappedList,
    DistributedLock,
    JobQueue,
    SessionStore,
    SlidingWindowLimiter,
    TokenBucketLimiter,
)


class ManualClock:
    """Clock the demo advances by hand so TTLs play out instantly."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def demo_data_structures(engine: KVEngine, clock: ManualClock) -> None:
    print("=== Data Structures ===")
    engine.strings.set("user:1000:name", "alice")
    engine.strings.set("temp:key", "expires soon", ttl=10)
    print(f"name={engine.strings.get('user:1000:name')} ttl={engine.ttl_remaining('temp:key')}")
    clock.advance(11)
    print(f"after 11s temp:key={engine.strings.get('temp:key')}")

    engine.lists.push_left("cart:user123", "apple", "banana", "orange")
    print(f"cart={engine.lists.range('cart:user123', 0, -1)}")

    engine.sets.add("interests:alice", "redis", "python", "databases")
    engine.sets.add("interests:bob", "python", "react", "redis")
    print(f"common interests={sorted(engine.sets.intersect(['interests:alice', 'interests:bob']))}")

    engine.hashes.hset_many("user:1000", {"name": "alice", "visits": "0"})
    engine.hashes.hincr_by("user:1000", "visits", 3)
    print(f"profile={engine.hashes.hgetall('user:1000')}")
    print()


def demo_leaderboard(engine: KVEngine, clock: ManualClock) -> None:
    print("=== Leaderboard ===")
    engine.zsets.zadd("board", {"alice": 1500, "bob": 1200, "carol": 1500, "dave": 900})
    engine.zsets.zincr_by("board", 400, "dave")
    for rank, (player, score) in enumerate(engine.zsets.zrevrange("board", 0, 2, with_scores=True), 1):
        print(f"#{rank} {player} {score:g}")
    print(f"bob's rank: {engine.zsets.zrank('board', 'bob', reverse=True) + 1}")
    print()


def demo_queue(engine: KVEngine, clock: ManualClock) -> None:
    print("=== Job Queue ===")
    queue = JobQueue(engine, max_retries=2, processing_timeout=30)
    queue.enqueue("demo", {"type": "email", "to": "user1@example.com"})
    queue.enqueue("demo", {"type": "api_call", "endpoint": "/api/users"}, priority="high")
    queue.enqueue_delayed("demo", {"type": "backup", "path": "/data"}, delay_seconds=5)
    print(f"stats={json.dumps(queue.stats('demo'))}")

    while (job := queue.dequeue("demo")) is not None:
        if job.payload["type"] == "email":
            print(f"job {job.id[:8]} {job.payload['type']} failed")
            queue.nack(job.id, error="smtp unavailable")
        else:
            print(f"job {job.id[:8]} {job.payload['type']} done")
            queue.ack(job.id)

    clock.advance(6)
    print(f"promoted {queue.promote_due('demo')} delayed job(s)")
    job = queue.dequeue("demo")
    queue.ack(job.id)
    print(f"dead letters={[j.payload['type'] for j in queue.dead_letters('demo')]}")
    print()


def demo_limits(engine: KVEngine, clock: ManualClock) -> None:
    print("=== Rate Limiting ===")
    sliding = SlidingWindowLimiter(engine)
    print("sliding:", [sliding.allow("alice:/api/users", 3, 60) for _ in range(4)])
    clock.advance(61)
    print("sliding after window:", sliding.allow("alice:/api/users", 3, 60))

    bucket = TokenBucketLimiter(engine, capacity=3, refill_rate=1)
    print("bucket:", [bucket.allow("charlie") for _ in range(4)])
    clock.advance(2)
    print("bucket after 2s:", [bucket.allow("charlie") for _ in range(3)])
    print()


def demo_misc(engine: KVEngine, clock: ManualClock) -> None:
    print("=== Locks, Sessions, Feeds, Pub/Sub ===")
    locks = DistributedLock(engine)
    print(f"worker-1 acquire: {locks.acquire('report', 'worker-1', ttl=5)}")
    print(f"worker-2 acquire: {locks.acquire('report', 'worker-2', ttl=5)}")
    clock.advance(6)
    print(f"worker-2 after lease expiry: {locks.acquire('report', 'worker-2', ttl=5)}")

    sessions = SessionStore(engine, ttl=1800)
    session_id = sessions.create("alice", {"theme": "dark"})
    print(f"session data={sessions.get(session_id)['data']}")

    feed = CappedList(engine, "feed:alice", max_len=3)
    for event in ("login", "upload", "comment", "logout"):
        feed.add(event)
    print(f"feed={feed.items()}")

    engine.pubsub.subscribe("chat:general", lambda ch, msg: print(f"  [{ch}] {msg}"))
    engine.pubsub.subscribe_pattern("chat:*", lambda ch, msg: print(f"  (pattern) {ch}: {msg}"))
    delivered = engine.pubsub.publish("chat:general", "hello everyone")
    print(f"delivered to {delivered} subscribers")
    print()


SECTIONS = {
    "structures": demo_data_structures,
    "leaderboard": demo_leaderboard,
    "queue": demo_queue,
    "limits": demo_limits,
    "misc": demo_misc,
}


def main() -> None:
    parser = argparse.ArgumentParser(description="KV-Engine pattern walkthrough")
    parser.add_argument("sections", nargs="*", help=f"Sections to run: {', '.join(SECTIONS)}")
    parser.add_argument("--debug", action="store_true", help="Show engine debug logs")
    args = parser.parse_args()
    unknown = [name for name in args.sections if name not in SECTIONS]
    if unknown:
        parser.error(f"unknown sections: {', '.join(unknown)}")

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    clock = ManualClock()
    engine = KVEngine(clock=clock)
    for name in args.sections or list(SECTIONS):
        SECTIONS[name](engine, clock)


if __name__ == "__main__":
    main()
