"""MetricsCollector: counters with and without backend label, latency summaries, reset."""

import threading

from leaselock.observability import metrics as m
from leaselock.observability.metrics import MetricsCollector


def test_counter_without_category():
    collector = MetricsCollector()
    collector.increment(m.LOCK_RELEASE)
    collector.increment(m.LOCK_RELEASE, 2)
    assert collector.get_counter(m.LOCK_RELEASE) == 3


def test_counter_category_is_separate():
    collector = MetricsCollector()
    collector.increment(m.LOCK_ACQUIRE_SUCCESS, category="file")
    collector.increment(m.LOCK_ACQUIRE_SUCCESS, category="redis")
    collector.increment(m.LOCK_ACQUIRE_SUCCESS, category="redis")
    assert collector.get_counter(m.LOCK_ACQUIRE_SUCCESS, category="file") == 1
    assert collector.get_counter(m.LOCK_ACQUIRE_SUCCESS, category="redis") == 2
    assert collector.get_counter(m.LOCK_ACQUIRE_SUCCESS) == 0
    assert collector.export_metrics()["counters"] == {
        'lock_acquire_success{backend="file"}': 1,
        'lock_acquire_success{backend="redis"}': 2,
    }


def test_unknown_counter_reads_zero_without_creating_series():
    collector = MetricsCollector()
    assert collector.get_counter("never_recorded", category="file") == 0
    assert collector.export_metrics()["counters"] == {}


def test_latency_summary():
    collector = MetricsCollector()
    collector.observe_latency(m.LOCK_ACQUIRE_LATENCY_MS, 10.0, category="dynamodb")
    collector.observe_latency(m.LOCK_ACQUIRE_LATENCY_MS, 30.0, category="dynamodb")
    summary = collector.export_metrics()["latency_ms"]['lock_acquire_latency_ms{backend="dynamodb"}']
    assert summary == {"count": 2, "sum": 40.0, "min": 10.0, "max": 30.0}


def test_reset_clears_everything():
    collector = MetricsCollector()
    collector.increment(m.LOCK_FORCE_RELEASE)
    collector.observe_latency(m.LOCK_ACQUIRE_LATENCY_MS, 5.0)
    collector.reset()
    assert collector.export_metrics() == {"counters": {}, "latency_ms": {}}


def test_increment_is_thread_safe():
    collector = MetricsCollector()

    def bump():
        for _ in range(1000):
            collector.increment(m.LOCK_EXTEND_SUCCESS, category="file")

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert collector.get_counter(m.LOCK_EXTEND_SUCCESS, category="file") == 4000
