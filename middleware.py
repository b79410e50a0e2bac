from __future__ import annotations
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable, Iterable
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger("access")

# Request id of the request being served; "-" outside a request.
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


def current_request_id() -> str:
    return request_id_var.get()


class RequestIDLogFilter(logging.Filter):
    """Stamps every record with the current request id so formats can use %(request_id)s."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = current_request_id()
        return True


class RequestLogger(logging.LoggerAdapter):
    """Module logger whose records carry the request id as ``extra``."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("request_id", current_request_id())
        kwargs["extra"] = extra
        return msg, kwargs


def request_logger(name: str) -> RequestLogger:
    return RequestLogger(logging.getLogger(name), {})


class RequestIDMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable):
        req_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.request_id = req_id
        token = request_id_var.set(req_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[self.header_name] = req_id
        return response


class PreflightMiddleware(BaseHTTPMiddleware):
    """Answers browser CORS pre-flights with 200 and an empty body.

    Must sit outside CORSMiddleware, which would otherwise reply "OK" or 400.
    """

    def __init__(self, app, allow_origins: Iterable[str] = ("*",), allow_methods: Iterable[str] = ("POST", "OPTIONS")):
        super().__init__(app)
        self.allow_origins = list(allow_origins) or ["*"]
        self.allow_methods = ", ".join(allow_methods)

    def _allowed_origin(self, origin: str) -> str | None:
        if "*" in self.allow_origins:
            return "*"
        return origin if origin in self.allow_origins else None

    async def dispatch(self, request: Request, call_next: Callable):
        headers = request.headers
        if request.method != "OPTIONS" or "origin" not in headers or "access-control-request-method" not in headers:
            return await call_next(request)

        response = Response(status_code=200)
        allowed = self._allowed_origin(headers["origin"])
        if allowed is not None:
            response.headers["Access-Control-Allow-Origin"] = allowed
            response.headers["Access-Control-Allow-Methods"] = self.allow_methods
            response.headers["Access-Control-Allow-Headers"] = headers.get("access-control-request-headers") or "*"
            response.headers["Access-Control-Max-Age"] = "600"
            if allowed != "*":
                response.headers["Vary"] = "Origin"
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, mode: str = "basic"):
        super().__init__(app)
        self.mode = mode

    async def dispatch(self, request: Request, call_next: Callable):
        if self.mode == "off":
            return await call_next(request)
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dur_ms = (time.perf_counter() - start) * 1000.0
            req_id = getattr(request.state, "request_id", "-")
            if self.mode == "full":
                logger.info(
                    "%s %s qs=%s ua=%s => %s [%.1fms] rid=%s",
                    request.method,
                    request.url.path,
                    request.url.query,
                    request.headers.get("user-agent", "-"),
                    status,
                    dur_ms,
                    req_id,
                )
            else:
                logger.info("%s %s => %s [%.1fms] rid=%s", request.method, request.url.path, status, dur_ms, req_id)
