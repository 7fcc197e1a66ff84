import math
from typing import Any, Dict, List, TYPE_CHECKING
from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST
from flight_telemetry.utils.logging import get_logger
from flight_telemetry.utils.metrics import MetricsManager

if TYPE_CHECKING:
    from flight_telemetry.runtime.runner import Runner

logger = get_logger("AdminAPI")


def _json_safe(stats: Dict[str, Any]) -> Dict[str, Any]:
    # Watermarks start at -inf, which JSON cannot carry
    return {
        k: (None if isinstance(v, float) and not math.isfinite(v) else v)
        for k, v in stats.items()
    }


def create_admin_app(runner: "Runner") -> FastAPI:
    """
    Creates the FastAPI Admin Application.

    Args:
        runner: The Runner executing the pipeline to observe.
    """
    app = FastAPI(title="Flight Telemetry Admin API", version="0.1.0")

    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        """Returns the health status of the job."""
        if runner.running:
            return {"status": "ok", "pipeline_state": "running"}
        return {"status": "stopped", "pipeline_state": "stopped"}

    @app.get("/stats")
    async def pipeline_stats() -> List[Dict[str, Any]]:
        """Per-operator watermark, queue depth, windows and sink state."""
        return [_json_safe(s) for s in runner.stats()]

    @app.get("/stats/{operator_name}")
    async def operator_stats(operator_name: str) -> Dict[str, Any]:
        op = runner.operator(operator_name)
        if op is None:
            raise HTTPException(status_code=404, detail=f"No operator named {operator_name}")
        return _json_safe(op.stats())

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus exposition of the job metrics."""
        return Response(content=MetricsManager().exposition(), media_type=CONTENT_TYPE_LATEST)

    return app
