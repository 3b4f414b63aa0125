import math

from prometheus_client import CollectorRegistry

from engagehub.core.metrics import PrometheusMetrics, refresh_queue_depth


def _value(m, name):
    return m.registry.get_sample_value(name)


def test_counters_increment():
    m = PrometheusMetrics(CollectorRegistry())

    m.incr_attempt()
    m.incr_attempt(2)
    m.incr_processed()
    m.incr_failed()

    assert _value(m, "engagehub_job_attempts_total") == 3
    assert _value(m, "engagehub_jobs_processed_total") == 1
    assert _value(m, "engagehub_jobs_failed_total") == 1


def test_queue_depth_refresh_from_store(store):
    store.insert({})
    store.insert({})
    m = PrometheusMetrics(CollectorRegistry())

    refresh_queue_depth(m, store.count_pending)

    assert _value(m, "engagehub_job_queue_depth") == 2


def test_queue_depth_is_nan_when_store_unavailable():
    m = PrometheusMetrics(CollectorRegistry())

    def broken():
        raise ConnectionError("down")

    refresh_queue_depth(m, broken)

    assert math.isnan(_value(m, "engagehub_job_queue_depth"))
