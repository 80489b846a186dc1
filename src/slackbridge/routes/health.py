"""Health and metrics routes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from slackbridge.db.connection import get_conn
from slackbridge.tasks import get_task_runner

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(request: Request) -> JSONResponse:
    registry = getattr(request.app.state, "room_registry", None)
    with get_conn() as conn:
        conn.execute("SELECT 1").fetchone()
    return JSONResponse(
        {
            "ok": True,
            "rooms": len(registry) if registry is not None else 0,
            "tasks_in_flight": get_task_runner().in_flight,
        }
    )


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    """Prometheus text exposition of the bridge metrics."""
    sink = getattr(request.app.state, "metrics_sink", None)
    if sink is None:
        return Response(status_code=503)
    body, content_type = sink.render()
    return Response(content=body, media_type=content_type)
