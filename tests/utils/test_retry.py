#!filepath: tests/utils/test_retry.py
import pytest

from crimestat.utils.retry import Retry


def test_retry_until_success():
    calls = {"n": 0}

    def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise ValueError("boom")
        return "ok"

    assert Retry.run(flaky, max_attempts=3, delay=0, jitter=False) == "ok"
    assert calls["n"] == 3


def test_retry_gives_up():
    calls = {"n": 0}

    def always():
        calls["n"] += 1
        raise ValueError("boom")

    with pytest.raises(ValueError):
        Retry.run(always, max_attempts=2, delay=0)
    assert calls["n"] == 2


def test_retry_only_listed_exceptions():
    calls = {"n": 0}

    def wrong_kind():
        calls["n"] += 1
        raise KeyError("k")

    with pytest.raises(KeyError):
        Retry.run(wrong_kind, exceptions=(ValueError,), max_attempts=3, delay=0)
    assert calls["n"] == 1


def test_decorator_passes_arguments():
    @Retry.decorator(max_attempts=2, delay=0)
    def add(a, b=0):
        return a + b

    assert add(1, b=2) == 3


def test_on_retry_sees_each_failed_attempt():
    seen = []
    calls = {"n": 0}

    def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise ValueError(f"boom {calls['n']}")
        return calls["n"]

    assert Retry.run(flaky, max_attempts=4, delay=0, on_retry=lambda a, e: seen.append((a, str(e)))) == 3
    assert seen == [(1, "boom 1"), (2, "boom 2")]


def test_backoff_waits():
    assert list(Retry.waits(4, delay=0.5, backoff=2.0, jitter=False)) == [0.5, 1.0, 2.0]
    assert list(Retry.waits(1, jitter=False)) == []
    assert all(0.8 <= w <= 1.2 for w in Retry.waits(3, delay=1.0, backoff=1.0))
