from __future__ import annotations
import asyncio, random, logging

from valinor.core.config import settings
from valinor.core.war_monitor import WarMonitor

log = logging.getLogger(__name__)

class WarTicker:
    _task: asyncio.Task | None = None
    monitor: WarMonitor | None = None

    @classmethod
    def start(cls, monitor: WarMonitor, interval_s: int | None = None) -> None:
        if cls._task and not cls._task.done():
            return
        cls.monitor = monitor
        cls._task = asyncio.create_task(cls._run(monitor, interval_s or settings.poll_interval_s))
        log.info("✅ War monitoring started (checking every %ss)", interval_s or settings.poll_interval_s)

    @classmethod
    def stop(cls) -> None:
        if cls._task and not cls._task.done():
            cls._task.cancel()
        cls._task = None

    @classmethod
    def is_running(cls) -> bool:
        return cls._task is not None and not cls._task.done()

    @classmethod
    async def _run(cls, monitor: WarMonitor, interval_s: int):
        # Jitter initial pour ne pas tirer pile au boot
        await asyncio.sleep(random.randint(5, 20))
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await monitor.run_cycle()
            except Exception:
                log.exception("War ticker error")
                await asyncio.sleep(10)
            # cadence fixe: on retire la durée du cycle
            await asyncio.sleep(max(1.0, interval_s - (loop.time() - started)))
