import threading

import pytest

from bridge_guard.ratelimit import TokenBucket


def test_full_bucket_admits_exactly_capacity(clock):
    bucket = TokenBucket(capacity=5, refill_interval=6.0, clock=clock)
    results = [bucket.try_consume() for _ in range(6)]
    assert results == [True] * 5 + [False]


def test_one_interval_refills_exactly_one(clock):
    bucket = TokenBucket(capacity=5, refill_interval=6.0, clock=clock)
    for _ in range(5):
        assert bucket.try_consume()
    assert not bucket.try_consume()

    clock.advance(6.0)
    assert bucket.try_consume() is True
    assert bucket.try_consume() is False


def test_partial_intervals_are_not_lost(clock):
    bucket = TokenBucket(capacity=3, refill_interval=6.0, clock=clock)
    for _ in range(3):
        bucket.try_consume()

    clock.advance(4.0)
    assert bucket.remaining() == 0
    clock.advance(4.0)  # 8s total: one interval + 2s carried over
    assert bucket.remaining() == 1
    clock.advance(4.0)  # 12s total: two intervals
    assert bucket.remaining() == 2


def test_long_idle_never_exceeds_capacity(clock):
    bucket = TokenBucket(capacity=5, refill_interval=6.0, clock=clock)
    bucket.try_consume()
    clock.advance(10_000)
    assert bucket.remaining() == 5
    assert [bucket.try_consume() for _ in range(6)] == [True] * 5 + [False]


def test_cost_is_all_or_nothing(clock):
    bucket = TokenBucket(capacity=3, refill_interval=6.0, clock=clock)
    assert bucket.try_consume(2)
    assert not bucket.try_consume(2)
    assert bucket.remaining() == 1


def test_seconds_until_refill(clock):
    bucket = TokenBucket(capacity=1, refill_interval=6.0, clock=clock)
    assert bucket.seconds_until_refill() == 0.0
    bucket.try_consume()
    clock.advance(2.5)
    assert bucket.seconds_until_refill() == pytest.approx(3.5)


def test_invalid_arguments():
    with pytest.raises(ValueError):
        TokenBucket(capacity=0)
    with pytest.raises(ValueError):
        TokenBucket(refill_interval=0)
    with pytest.raises(ValueError):
        TokenBucket().try_consume(0)


def test_concurrent_consumers_never_overdraw(clock):
    bucket = TokenBucket(capacity=50, refill_interval=60.0, clock=clock)
    admitted = []
    lock = threading.Lock()

    def worker():
        for _ in range(20):
            ok = bucket.try_consume()
            with lock:
                admitted.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(admitted) == 50
    assert bucket.remaining() == 0
