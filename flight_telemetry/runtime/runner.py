import asyncio
import contextlib
import signal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from flight_telemetry.connectors.base import Source
from flight_telemetry.settings import settings
from flight_telemetry.utils.logging import get_logger, setup_logging
from flight_telemetry.utils.metrics import MetricsManager
from flight_telemetry.utils.tracing import init_tracer

if TYPE_CHECKING:
    from flight_telemetry.operators.core import Operator, Pipeline


class Runner:
    """Executes a pipeline until its sources finish or a shutdown is requested.

    Shutdown stops the sources; the end-of-stream marker then drains through
    every operator, so open windows are finalized and the sink connection is
    closed after the last result.
    """

    def __init__(self, admin_enabled: Optional[bool] = None, install_signal_handlers: bool = True):
        setup_logging()
        init_tracer("flight-telemetry")
        self.logger = get_logger("Runner")
        self.metrics = MetricsManager()
        self.admin_enabled = settings.ADMIN_ENABLED if admin_enabled is None else admin_enabled
        self.install_signal_handlers = install_signal_handlers
        self.pipeline: Optional['Pipeline'] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def run(self, pipeline: 'Pipeline') -> None:
        """Run the pipeline synchronously (blocks until completion)."""
        asyncio.run(self.run_async(pipeline))

    async def run_async(self, pipeline: 'Pipeline') -> None:
        """Run the pipeline asynchronously."""
        self.pipeline = pipeline
        operators = pipeline.operators()
        sources = [op for op in operators if isinstance(op, Source)]
        workers = [op.start() for op in operators if not isinstance(op, Source)]

        if self.install_signal_handlers:
            self._setup_signals()

        admin_task = asyncio.create_task(self._start_admin_server()) if self.admin_enabled else None

        self._running = True
        self.logger.info(f"Running pipeline with {len(sources)} source(s) and {len(workers)} operator(s)")
        try:
            results = await asyncio.gather(*(s.run() for s in sources), return_exceptions=True)
            # End-of-stream is already on its way; wait for every operator to drain
            await asyncio.gather(*workers)
        finally:
            self._running = False
            if admin_task:
                admin_task.cancel()
                try:
                    await admin_task
                except asyncio.CancelledError:
                    pass

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            self.logger.error(f"Source failed: {errors[0]!r}")
            raise errors[0]
        self.logger.info("Pipeline drained and stopped.")

    def shutdown(self) -> None:
        """Initiate graceful shutdown by stopping every source."""
        if self.pipeline is None:
            return
        self.logger.info("Shutdown requested. Stopping sources and draining windows...")
        for source in self.pipeline.sources:
            source.stop()

    def _setup_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.shutdown)
            except (NotImplementedError, RuntimeError):
                # Windows support or non-main threads
                pass

    def stats(self) -> List[Dict[str, Any]]:
        if self.pipeline is None:
            return []
        return [op.stats() for op in self.pipeline.operators()]

    def operator(self, name: str) -> Optional['Operator']:
        if self.pipeline is None:
            return None
        for op in self.pipeline.operators():
            if op.name == name:
                return op
        return None

    async def _start_admin_server(self) -> None:
        """
        Starts the Admin API server.
        """
        from uvicorn import Config, Server
        from flight_telemetry.admin import create_admin_app

        app = create_admin_app(self)
        config = Config(
            app=app,
            host="0.0.0.0",
            port=settings.ADMIN_PORT,
            log_config=None,
            log_level="warning"
        )
        server = Server(config)

        # Disable signal handlers as we manage them
        server.install_signal_handlers = lambda: None
        server.capture_signals = contextlib.nullcontext

        self.logger.info(f"Starting Admin API on port {settings.ADMIN_PORT}")
        try:
            await server.serve()
        except (OSError, SystemExit) as e:
            self.logger.error(f"Failed to start Admin API: {e!r}")
