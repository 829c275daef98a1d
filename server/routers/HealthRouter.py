from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health", tags=["Health"])
async def handle_health(request: Request) -> JSONResponse:
    """Report whether the configured backend answers its healthcheck."""
    backend = request.app.state.backend
    try:
        response = await backend.do_healthcheck()
        healthy = response.is_success
    except Exception as exc:
        request.app.state.logging.warning("Backend healthcheck failed: %s", exc)
        healthy = False
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "backend": backend.get_engine_name(),
        },
    )
