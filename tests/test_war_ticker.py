import asyncio

from valinor.core import war_ticker
from valinor.core.war_ticker import WarTicker


class CountingMonitor:
    def __init__(self, fail_first=False):
        self.calls = 0
        self.fail_first = fail_first

    async def run_cycle(self):
        self.calls += 1
        if self.fail_first and self.calls == 1:
            raise RuntimeError("boom")


async def test_ticker_survives_errors_and_keeps_ticking(monkeypatch):
    real_sleep = asyncio.sleep

    async def fast_sleep(_seconds):
        await real_sleep(0)

    monkeypatch.setattr(war_ticker.asyncio, "sleep", fast_sleep)
    monkeypatch.setattr(war_ticker.random, "randint", lambda a, b: 0)
    monitor = CountingMonitor(fail_first=True)

    WarTicker.start(monitor, interval_s=300)
    try:
        for _ in range(50):
            await real_sleep(0)
        assert WarTicker.is_running()
        assert monitor.calls >= 2
    finally:
        WarTicker.stop()
        await real_sleep(0)
    assert not WarTicker.is_running()
