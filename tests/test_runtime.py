import unittest
import asyncio
from flight_telemetry.operators.core import Pipeline
from flight_telemetry.connectors.base import Source, Sink
from flight_telemetry.runtime.runner import Runner
from tests.helpers import ListSink


class NoOpSource(Source[str]):
    async def start(self) -> None:
        await self.emit("scouting")


class NoOpSink(Sink[str]):
    async def _process_captured(self, element: str) -> None:
        pass


class EndlessSource(Source[int]):
    """Emits a counter until stopped."""
    async def start(self) -> None:
        n = 0
        while self.running:
            await self.emit(n)
            n += 1
            if await self.wait_or_stop(0.01):
                break


class BrokenSource(Source[int]):
    async def start(self) -> None:
        await self.emit(1)
        raise RuntimeError("feed unavailable")


class TestRuntime(unittest.IsolatedAsyncioTestCase):
    async def test_runner_execution(self):
        source = NoOpSource()
        sink = NoOpSink()
        pipeline = Pipeline()
        pipeline.read_from(source).write_to(sink)

        runner = Runner(admin_enabled=False, install_signal_handlers=False)
        # Should finish without error
        await runner.run_async(pipeline)
        self.assertFalse(runner.running)

    async def test_shutdown_drains_pipeline(self):
        source = EndlessSource("Endless")
        sink = ListSink()
        pipeline = Pipeline()
        pipeline.read_from(source).map(lambda x: x * 2).write_to(sink)

        runner = Runner(admin_enabled=False, install_signal_handlers=False)
        task = asyncio.create_task(runner.run_async(pipeline))
        while len(sink.results) < 3:
            await asyncio.sleep(0.01)
        self.assertTrue(runner.running)

        runner.shutdown()
        await asyncio.wait_for(task, timeout=5)

        self.assertTrue(sink.ended)
        self.assertFalse(source.running)
        self.assertEqual(sink.results, [2 * i for i in range(len(sink.results))])

    async def test_source_failure_still_drains_then_raises(self):
        source = BrokenSource("Broken")
        sink = ListSink()
        pipeline = Pipeline()
        pipeline.read_from(source).write_to(sink)

        runner = Runner(admin_enabled=False, install_signal_handlers=False)
        with self.assertRaises(RuntimeError):
            await runner.run_async(pipeline)

        self.assertEqual(sink.results, [1])
        self.assertTrue(sink.ended)

    async def test_stats_and_lookup(self):
        source = NoOpSource("Scout")
        sink = ListSink("Collector")
        pipeline = Pipeline()
        pipeline.read_from(source).write_to(sink)

        runner = Runner(admin_enabled=False, install_signal_handlers=False)
        self.assertEqual(runner.stats(), [])
        await runner.run_async(pipeline)

        self.assertEqual([s["name"] for s in runner.stats()], ["Scout", "Collector"])
        self.assertIs(runner.operator("Collector"), sink)
        self.assertIsNone(runner.operator("Missing"))


if __name__ == "__main__":
    unittest.main()
