"""Health check endpoints."""

from fastapi import APIRouter, Request, Response

router = APIRouter()


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe endpoint.

    Returns 200 OK if the process is running.
    """
    return {"status": "ok", "check": "liveness"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str]:
    """Readiness probe endpoint.

    Returns 200 OK once the SMTP listener accepts connections and the relay
    worker is running, 503 otherwise.
    """
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None or not gateway.is_ready:
        response.status_code = 503
        return {"status": "unavailable", "check": "readiness"}
    return {"status": "ok", "check": "readiness"}
