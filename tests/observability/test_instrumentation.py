#!filepath: tests/observability/test_instrumentation.py
import pytest

from crimestat.observability.instrumentation import Instrumentation, NoOpInstrumentation
from crimestat.observability.metrics import MetricRecorder
from crimestat.observability.timer import Timer


def test_leaf_timers_accumulate():
    inst = Instrumentation()
    for _ in range(3):
        with inst.timer("training.epoch"):
            pass
    with inst.timer("scope", record=False):
        pass

    assert list(inst.timeline) == ["training.epoch"]
    assert inst.timeline["training.epoch"] >= 0.0


def test_timer_records_on_error():
    inst = Instrumentation()
    with pytest.raises(RuntimeError):
        with inst.timer("leaf"):
            raise RuntimeError("x")
    assert "leaf" in inst.timeline


def test_disabled_instrumentation():
    inst = Instrumentation(enabled=False)
    with inst.timer("leaf"):
        pass
    inst.metrics.incr("c")
    assert inst.timeline == {}
    assert inst.metrics.counter("c") == 0


def test_noop_surface():
    inst = NoOpInstrumentation()
    with inst.timer("leaf"):
        pass
    inst.progress.start("t", 3, "epochs")
    inst.metrics.record("m", 1)
    inst.generate_timeline_report("run")
    assert inst.timeline == {}
    assert inst.metrics.metrics == {}


def test_counters():
    m = MetricRecorder()
    m.incr("a")
    m.incr("a", 4)
    m.record("gauge", 1.5)

    assert m.counter("a") == 5
    assert m.counter("missing") == 0
    assert m.metrics == {"gauge": 1.5}
    with pytest.raises(ValueError):
        m.incr("a", -1)


def test_timer_unknown_name():
    assert Timer().end("never-started") == 0.0
