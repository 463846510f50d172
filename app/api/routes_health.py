import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.infra.backend import BackendError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


async def _backend_status(request: Request) -> dict[str, object]:
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        return {
            "ok": False,
            "message": "backend client unavailable",
            "hint": "app.state.backend is not configured; ensure startup wiring is complete.",
        }
    try:
        await backend.select("tours", "id", limit=1)
    except BackendError as exc:
        logger.debug("backend_check_failed", exc_info=exc)
        return {"ok": False, "message": "backend check failed", "status_code": exc.status_code}
    return {"ok": True, "message": "backend reachable"}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    backend = await _backend_status(request)
    overall_ok = bool(backend.get("ok"))
    payload = {"status": "ok" if overall_ok else "unhealthy", "backend": backend}
    return JSONResponse(status_code=200 if overall_ok else 503, content=payload)
