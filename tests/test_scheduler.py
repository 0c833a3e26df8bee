import asyncio
import unittest

from src.application.scheduler import RefreshScheduler


class TestRefreshScheduler(unittest.IsolatedAsyncioTestCase):
    async def test_first_cycle_runs_immediately(self) -> None:
        started = asyncio.Event()

        async def run_cycle():
            started.set()

        scheduler = RefreshScheduler(run_cycle, period_seconds=3600)
        scheduler.start()
        try:
            await asyncio.wait_for(started.wait(), timeout=1)
        finally:
            await scheduler.stop()

        self.assertEqual(scheduler.triggered, 1)

    async def test_cycles_overlap_when_previous_is_still_running(self) -> None:
        never = asyncio.Event()

        async def run_cycle():
            await never.wait()

        scheduler = RefreshScheduler(run_cycle, period_seconds=0.001)
        scheduler.start()
        try:
            for _ in range(100):
                if scheduler.triggered >= 3:
                    break
                await asyncio.sleep(0.005)
            self.assertGreaterEqual(scheduler.triggered, 3)
            self.assertEqual(scheduler.in_flight, scheduler.triggered)
        finally:
            await scheduler.stop()

        self.assertEqual(scheduler.in_flight, 0)

    async def test_failing_cycle_does_not_stop_the_loop(self) -> None:
        async def run_cycle():
            raise RuntimeError("listing exploded")

        scheduler = RefreshScheduler(run_cycle, period_seconds=0.001)
        with self.assertLogs("src.application.scheduler", level="ERROR"):
            scheduler.start()
            try:
                for _ in range(100):
                    if scheduler.triggered >= 2:
                        break
                    await asyncio.sleep(0.005)
            finally:
                await scheduler.stop()

        self.assertGreaterEqual(scheduler.triggered, 2)

    def test_period_must_be_positive(self) -> None:
        async def run_cycle():
            pass

        with self.assertRaises(ValueError):
            RefreshScheduler(run_cycle, period_seconds=0)
