from fastapi import APIRouter, Depends, Response
from registry_reconciler.logger_config import ReconcilerLogger
from registry_reconciler.reconciler import ReconciliationEngine

logger = ReconcilerLogger.get_logger(__name__)

from registry_reconciler.api.routes import get_engine, router as reconciler_router

# Main API router that includes all sub-routers
api_router = APIRouter()

api_router.include_router(
    reconciler_router, prefix="/v1/reconciler", tags=["Registry Reconciler"]
)

METRICS_MEDIA_TYPE = "text/plain; version=0.0.4; charset=utf-8"

_COUNTERS = [
    ("cycles_run", "Total number of completed reconciliation cycles"),
    ("cycles_skipped", "Triggers dropped because a cycle was already running"),
    ("register_success", "Registrations accepted by a registry server"),
    ("register_failure", "Registrations rejected by every registry server"),
    ("heartbeat_success", "Heartbeats accepted by a registry server"),
    ("heartbeat_failure", "Heartbeats rejected by every registry server"),
    ("deregister_success", "Deregistrations accepted by a registry server"),
    ("deregister_failure", "Deregistrations rejected by every registry server"),
]


# Add metrics endpoint directly to main router (no prefix)
@api_router.get("/metrics")
async def get_prometheus_metrics(engine: ReconciliationEngine = Depends(get_engine)):
    """Prometheus metrics endpoint for monitoring the reconciler"""
    try:
        stats = engine.get_stats()
        metrics = []

        for key, help_text in _COUNTERS:
            name = f"registry_reconciler_{key}_total"
            metrics.append(f"# HELP {name} {help_text}")
            metrics.append(f"# TYPE {name} counter")
            metrics.append(f"{name} {stats[key]}")

        metrics.append("# HELP registry_reconciler_instance_outcomes_total Instance outcomes by result")
        metrics.append("# TYPE registry_reconciler_instance_outcomes_total counter")
        for result in ("success", "skipped", "failed"):
            metrics.append(
                f"registry_reconciler_instance_outcomes_total{{result=\"{result}\"}} {stats[f'outcomes_{result}']}"
            )

        metrics.append("# HELP registry_reconciler_last_cycle_duration_seconds Duration of the last cycle")
        metrics.append("# TYPE registry_reconciler_last_cycle_duration_seconds gauge")
        metrics.append(
            f"registry_reconciler_last_cycle_duration_seconds {stats['last_cycle_duration_seconds']:.6f}"
        )

        running = 1 if engine.is_cycle_running() else 0
        metrics.append("# HELP registry_reconciler_cycle_running Whether a cycle is in flight")
        metrics.append("# TYPE registry_reconciler_cycle_running gauge")
        metrics.append(f"registry_reconciler_cycle_running {running}")

        return Response(content="\n".join(metrics) + "\n", media_type=METRICS_MEDIA_TYPE)

    except Exception as e:
        logger.error(f"Error generating Prometheus metrics: {e}")
        return Response(
            content=f"# Error generating metrics: {str(e)}\n",
            media_type=METRICS_MEDIA_TYPE,
            status_code=500,
        )
