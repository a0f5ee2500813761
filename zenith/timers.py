"""Active timers shared between every observer of a task.

All running timers live in one JSON slot on disk. A record exists only while
its timer runs: ``start`` writes it, ``pause`` deletes it and hands the
elapsed chunk back to the caller, who decides how to bank it. Writes are
last-writer-wins; there is no locking.
"""

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path

from . import config
from .core.models import TimerRecord
from .core.types import TimerMode
from .lib import clock

__all__ = [
    "STORAGE_KEY",
    "TimerAccumulator",
    "TimerStore",
    "TimerWatch",
    "display_seconds",
    "elapsed_total",
    "remaining",
]

logger = logging.getLogger(__name__)

STORAGE_KEY = "activeTimers"
_REVISION_KEY = "revision"

Timers = dict[str, TimerRecord]
Listener = Callable[[Timers], None]


class TimerStore:
    """The shared slot holding every active TimerRecord, keyed by owner id.

    In-process listeners are called after every write. Other processes see
    writes through ``changed()``, which compares the slot's revision counter
    against the last one this instance observed.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path else config.TIMERS_PATH
        self._listeners: list[Listener] = []
        self._seen_revision: int | None = None

    def _load(self) -> dict:
        try:
            text = self.path.read_text()
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning("could not read active timers from %s: %s", self.path, e)
            return {}
        if not text.strip():
            return {}
        try:
            slot = json.loads(text)
        except ValueError as e:
            logger.warning("could not parse active timers from %s: %s", self.path, e)
            return {}
        if not isinstance(slot, dict):
            logger.warning("active timers slot in %s is not an object", self.path)
            return {}
        return slot

    def read(self) -> Timers:
        raw = self._load().get(STORAGE_KEY, {})
        if not isinstance(raw, dict):
            logger.warning("active timers in %s are not a mapping", self.path)
            return {}
        timers: Timers = {}
        for owner_id, record in raw.items():
            try:
                timers[str(owner_id)] = TimerRecord.from_dict(str(owner_id), record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("dropping malformed timer record %s: %s", owner_id, e)
        return timers

    def revision(self) -> int:
        rev = self._load().get(_REVISION_KEY, 0)
        return rev if isinstance(rev, int) else 0

    def write(self, timers: Timers) -> None:
        revision = self.revision() + 1
        payload = {
            STORAGE_KEY: {owner_id: record.to_dict() for owner_id, record in timers.items()},
            _REVISION_KEY: revision,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".timers-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        self._seen_revision = revision
        self._notify(timers)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, timers: Timers) -> None:
        for listener in list(self._listeners):
            listener(dict(timers))

    def changed(self) -> bool:
        """True once per revision written since this instance last looked."""
        current = self.revision()
        if current == self._seen_revision:
            return False
        self._seen_revision = current
        return True


class TimerAccumulator:
    def __init__(self, store: TimerStore | None = None, now: Callable[[], float] | None = None):
        self.store = store if store else TimerStore()
        self._now = now

    def now(self) -> float:
        return self._now() if self._now else clock.now_ts()

    def start(
        self,
        owner_id: str | int,
        mode: TimerMode,
        initial_duration: float = 0.0,
        accumulated: float = 0.0,
    ) -> TimerRecord:
        """Overwrite the owner's record with a fresh run segment. Last caller wins."""
        key = str(owner_id)
        record = TimerRecord(
            owner_id=key,
            start_time=self.now(),
            mode=mode,
            initial_duration=float(initial_duration),
            accumulated=float(accumulated),
        )
        timers = self.store.read()
        timers[key] = record
        self.store.write(timers)
        return record

    def stop(
        self, owner_id: str | int, now: float | None = None
    ) -> tuple[TimerRecord, float] | None:
        """Delete the owner's record. Returns it with the seconds since its start."""
        key = str(owner_id)
        timers = self.store.read()
        record = timers.pop(key, None)
        if record is None:
            return None
        elapsed = (now if now is not None else self.now()) - record.start_time
        self.store.write(timers)
        return record, elapsed

    def pause(self, owner_id: str | int) -> float:
        """Elapsed seconds of the current run segment; 0.0 when nothing was running.

        Banking the chunk is the caller's job.
        """
        stopped = self.stop(owner_id)
        return stopped[1] if stopped else 0.0

    def get_state(self, owner_id: str | int) -> TimerRecord | None:
        return self.store.read().get(str(owner_id))

    def running(self) -> Timers:
        return self.store.read()


def elapsed_total(record: TimerRecord, now: float) -> float:
    return record.accumulated + (now - record.start_time)


def remaining(record: TimerRecord, now: float) -> float:
    return max(0.0, record.initial_duration - elapsed_total(record, now))


def display_seconds(record: TimerRecord, now: float) -> float:
    if record.mode is TimerMode.TIMER:
        return remaining(record, now)
    return elapsed_total(record, now)


class TimerWatch:
    """One observer of one owner's timer, recomputed on every tick.

    When a countdown reaches zero the watch stops the record and passes the
    elapsed chunk to ``on_finish``. Only the tick that actually removes the
    record finalizes, so later ticks (here or in another observer) that find
    nothing running do not fold the chunk a second time.
    """

    def __init__(
        self,
        accumulator: TimerAccumulator,
        owner_id: str | int,
        on_finish: Callable[[float], None],
    ) -> None:
        self.accumulator = accumulator
        self.owner_id = str(owner_id)
        self.on_finish = on_finish
        self.finished = False

    def tick(self, now: float | None = None) -> float | None:
        """Seconds to display, or None when the owner has no running timer."""
        record = self.accumulator.get_state(self.owner_id)
        if record is None:
            return None
        at = now if now is not None else self.accumulator.now()
        value = display_seconds(record, at)
        if record.mode is TimerMode.TIMER and value <= 0:
            self._finalize(at)
            return 0.0
        return value

    def _finalize(self, at: float) -> None:
        stopped = self.accumulator.stop(self.owner_id, now=at)
        if stopped is None:
            return
        self.finished = True
        self.on_finish(stopped[1])
