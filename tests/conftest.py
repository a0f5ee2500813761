from datetime import date, datetime, timedelta
from pathlib import Path

import fncli
import pytest

from zenith import config, db
from zenith.core.errors import ZenithError
from zenith.lib import ansi, clock

_discovered = False


class FnCLIRunner:
    """Runs `zenith <args>` in-process, reporting domain errors like the entrypoint does."""

    def invoke(self, args: list[str]) -> fncli.Result:
        global _discovered
        if not _discovered:
            fncli.autodiscover(Path(config.__file__).parent, "zenith")
            _discovered = True
        try:
            return fncli.invoke(["zenith", *args])
        except ZenithError as e:
            return fncli.Result(1, "", f"{e}\n")


class FrozenClock:
    """Stand-in for zenith.lib.clock. `advance` moves both the date and the timer instant."""

    def __init__(self, start: datetime):
        self.current = start
        self.ts = 1_000_000.0

    def today(self) -> date:
        return self.current.date()

    def now(self) -> datetime:
        return self.current

    def now_ts(self) -> float:
        return self.ts

    def advance(self, seconds: float = 0, days: int = 0) -> None:
        self.current += timedelta(seconds=seconds, days=days)
        self.ts += seconds + days * 86400


@pytest.fixture
def tmp_zenith_dir(tmp_path, monkeypatch):
    zenith_dir = tmp_path / ".zenith"
    monkeypatch.setattr(config, "ZENITH_DIR", zenith_dir)
    monkeypatch.setattr(config, "DB_PATH", zenith_dir / "zenith.db")
    monkeypatch.setattr(config, "TIMERS_PATH", zenith_dir / "timers.json")
    monkeypatch.setattr(config, "CONFIG_PATH", zenith_dir / "config.yaml")
    monkeypatch.setattr(config, "BACKUP_DIR", tmp_path / ".zenith_backups")
    monkeypatch.setattr(fncli, "_TIMING_LOG", tmp_path / "cli_timings.jsonl")
    config.Config().reload()
    ansi.use(ansi.PLAIN)
    db.init()
    yield zenith_dir
    config.Config().reload()


@pytest.fixture
def frozen_clock(monkeypatch):
    fake = FrozenClock(datetime(2024, 1, 10, 9, 0))
    monkeypatch.setattr(clock, "today", fake.today)
    monkeypatch.setattr(clock, "now", fake.now)
    monkeypatch.setattr(clock, "now_ts", fake.now_ts)
    return fake
