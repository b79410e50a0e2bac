from __future__ import annotations
import logging
import traceback
from contextlib import asynccontextmanager
from typing import Any, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse

import settings
from api_router import router
from schemas import ErrorResponse
from settings import APP_NAME, APP_VERSION, CORS_ALLOW_ORIGINS, TRUSTED_HOSTS, GZIP_MIN_SIZE, REQUEST_LOGGING, LOG_LEVEL
from middleware import LoggingMiddleware, PreflightMiddleware, RequestIDLogFilter, RequestIDMiddleware
from services.ziwei_services import chart_library_available
from utils.time_utils import utc_now_iso

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    handler = logging.StreamHandler()
    handler.addFilter(RequestIDLogFilter())
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s rid=%(request_id)s - %(message)s",
        handlers=[handler],
    )
    logger.info("%s v%s starting up (env=%s)", APP_NAME, APP_VERSION, settings.APP_ENV)
    yield
    logger.info("%s shutting down", APP_NAME)


app = FastAPI(
    title=APP_NAME,
    version=APP_VERSION,
    description="Holland RIASEC inventory, ziwei chart and combined career-guidance endpoints.",
    lifespan=lifespan,
)

# --- Middleware ---
app.add_middleware(RequestIDMiddleware)
app.add_middleware(LoggingMiddleware, mode=REQUEST_LOGGING)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS or ["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["*"],
)
# Outside CORSMiddleware so pre-flights get our empty 200.
app.add_middleware(PreflightMiddleware, allow_origins=CORS_ALLOW_ORIGINS or ["*"])
app.add_middleware(GZipMiddleware, minimum_size=GZIP_MIN_SIZE)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=TRUSTED_HOSTS or ["*"])


# --- Exception handlers -> uniform envelope ---
def _error(status_code: int, code: str, message: str, error: str | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, code=code, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(StarletteHTTPException)
async def on_http_exception(request: Request, exc: StarletteHTTPException):
    status_code = int(getattr(exc, "status_code", 500))
    detail = getattr(exc, "detail", None)
    message = detail if isinstance(detail, str) and detail else str(exc)

    if status_code == status.HTTP_400_BAD_REQUEST:
        code = "BAD_REQUEST"
    elif status_code == status.HTTP_404_NOT_FOUND:
        code = "NOT_FOUND"
    elif status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        code = "METHOD_NOT_ALLOWED"
        message = "Method not allowed"
    else:
        code = f"HTTP_{status_code}"

    return _error(status_code, code, message)


def _describe_validation(errors: List[Any]) -> str:
    if any(err.get("type") == "json_invalid" for err in errors):
        return "请求数据格式错误"
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {err.get('msg', 'invalid')}")
    return "缺少或无效的请求参数 - " + "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def on_validation_error(request: Request, exc: RequestValidationError):
    message = _describe_validation(list(exc.errors()))
    logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return _error(status.HTTP_400_BAD_REQUEST, "BAD_REQUEST", message)


@app.exception_handler(Exception)
async def on_any_error(request: Request, exc: Exception):
    logger.exception("Unhandled error at %s %s", request.method, request.url.path)
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)) if settings.DEBUG else None
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "SERVER_ERROR", f"分析失败: {exc}", trace)


@app.get("/")
async def landing():
    return {"Welcome to Holland x Ziwei": True, "ts": utc_now_iso()}


# --- Liveness/Readiness ---
@app.get("/healthz")
async def healthz():
    return {"ok": True, "ts": utc_now_iso()}


@app.get("/readyz")
async def readyz():
    return {
        "ready": True,
        "chartLibrary": chart_library_available(),
        "narrativeService": settings.usable_api_key(settings.DEEPSEEK_API_KEY) is not None,
    }


# --- Routes ---
app.include_router(router)


# Optional: dev run
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8787, reload=settings.DEBUG)
