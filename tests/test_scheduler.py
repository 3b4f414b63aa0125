import threading

import pytest

from engagehub.worker.scheduler import SchedulerDriver


def test_runs_cycle_on_every_tick():
    calls = []
    driver = SchedulerDriver(lambda: calls.append(1), interval_ms=1)

    ticks = driver.run_forever(max_ticks=3)

    assert ticks == 3
    assert len(calls) == 3


def test_cycle_errors_do_not_stop_the_loop():
    calls = []

    def cycle():
        calls.append(1)
        raise RuntimeError("store unavailable")

    driver = SchedulerDriver(cycle, interval_ms=1)

    assert driver.run_forever(max_ticks=4) == 4
    assert len(calls) == 4


def test_stop_ends_the_loop():
    calls = []

    def cycle():
        calls.append(1)
        if len(calls) == 2:
            driver.stop()

    driver = SchedulerDriver(cycle, interval_ms=1)
    driver.run_forever()

    assert len(calls) == 2
    assert driver.stopped


def test_stop_from_another_thread_interrupts_wait():
    driver = SchedulerDriver(lambda: None, interval_ms=60_000)
    runner = threading.Thread(target=driver.run_forever)
    runner.start()

    driver.stop()
    runner.join(timeout=5)

    assert not runner.is_alive()


def test_trigger_returns_cycle_result_and_swallows_errors():
    assert SchedulerDriver(lambda: "ran", interval_ms=10).trigger() == "ran"

    def boom():
        raise ValueError("nope")

    assert SchedulerDriver(boom, interval_ms=10).trigger() is None


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        SchedulerDriver(lambda: None, interval_ms=0)
