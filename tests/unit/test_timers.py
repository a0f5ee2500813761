import json

import pytest

from zenith.core.types import TimerMode
from zenith.timers import (
    STORAGE_KEY,
    TimerAccumulator,
    TimerStore,
    TimerWatch,
    display_seconds,
    remaining,
)


class FakeNow:
    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def now():
    return FakeNow()


@pytest.fixture
def store(tmp_path):
    return TimerStore(tmp_path / "timers.json")


@pytest.fixture
def timers(store, now):
    return TimerAccumulator(store, now=now)


def test_pause_returns_elapsed_and_clears_record(timers, now):
    timers.start("task-1", TimerMode.STOPWATCH, 0, accumulated=10)
    now.advance(5)

    elapsed = timers.pause("task-1")

    assert elapsed == pytest.approx(5)
    assert timers.get_state("task-1") is None


def test_pause_without_record_is_zero(timers):
    assert timers.pause("missing") == 0.0


def test_start_overwrites_existing_record(timers, now):
    timers.start("task-1", TimerMode.STOPWATCH, 0, accumulated=10)
    now.advance(3)
    timers.start("task-1", TimerMode.TIMER, 60, accumulated=0)

    record = timers.get_state("task-1")
    assert record.mode is TimerMode.TIMER
    assert record.start_time == now.value
    assert len(timers.running()) == 1


def test_integer_owner_ids_share_string_keys(timers):
    timers.start(7, TimerMode.STOPWATCH)
    assert timers.get_state("7") is not None


def test_display_values(timers, now):
    stopwatch = timers.start("a", TimerMode.STOPWATCH, 0, accumulated=10)
    countdown = timers.start("b", TimerMode.TIMER, 60, accumulated=55)
    now.advance(3)

    assert display_seconds(stopwatch, now.value) == pytest.approx(13)
    assert display_seconds(countdown, now.value) == pytest.approx(2)
    now.advance(30)
    assert remaining(countdown, now.value) == 0.0


def test_countdown_finalizes_exactly_once(timers, now):
    chunks = []
    timers.start("task-1", TimerMode.TIMER, 60, accumulated=55)
    watch = TimerWatch(timers, "task-1", chunks.append)

    now.advance(4)
    assert watch.tick() == pytest.approx(1)
    now.advance(1)
    assert watch.tick() == 0.0
    assert watch.tick() is None

    assert chunks == [pytest.approx(5)]
    assert watch.finished
    assert timers.get_state("task-1") is None


def test_two_watchers_finalize_once_between_them(timers, now):
    chunks = []
    timers.start("task-1", TimerMode.TIMER, 60, accumulated=55)
    first = TimerWatch(timers, "task-1", chunks.append)
    second = TimerWatch(timers, "task-1", chunks.append)

    now.advance(6)
    first.tick()
    second.tick()

    assert len(chunks) == 1
    assert first.finished
    assert not second.finished


def test_stopwatch_never_finalizes(timers, now):
    chunks = []
    timers.start("task-1", TimerMode.STOPWATCH)
    watch = TimerWatch(timers, "task-1", chunks.append)
    now.advance(3600)
    assert watch.tick() == pytest.approx(3600)
    assert chunks == []


def test_corrupt_store_reads_as_empty(store, timers):
    store.path.write_text("{not json")
    assert store.read() == {}
    timers.start("task-1", TimerMode.STOPWATCH)
    assert set(store.read()) == {"task-1"}


def test_malformed_record_is_dropped(store):
    store.path.write_text(
        json.dumps({STORAGE_KEY: {"good": {"start_time": 1, "mode": "stopwatch"}, "bad": {"mode": "x"}}})
    )
    assert set(store.read()) == {"good"}


def test_writes_keep_one_slot(store, timers):
    timers.start("task-1", TimerMode.STOPWATCH)
    slot = json.loads(store.path.read_text())
    assert set(slot[STORAGE_KEY]) == {"task-1"}
    assert slot[STORAGE_KEY]["task-1"]["mode"] == "stopwatch"


def test_subscribers_see_every_mutation(store, timers):
    seen = []
    unsubscribe = store.subscribe(lambda snapshot: seen.append(set(snapshot)))

    timers.start("task-1", TimerMode.STOPWATCH)
    timers.pause("task-1")
    unsubscribe()
    timers.start("task-2", TimerMode.STOPWATCH)

    assert seen == [{"task-1"}, set()]


def test_changed_reports_writes_from_other_instances(tmp_path, now):
    path = tmp_path / "timers.json"
    watcher = TimerStore(path)
    writer = TimerAccumulator(TimerStore(path), now=now)

    assert watcher.changed() is True
    assert watcher.changed() is False
    writer.start("task-1", TimerMode.STOPWATCH)
    assert watcher.changed() is True
    assert watcher.changed() is False
