"""FastAPI middleware for request limits, metrics and logging."""

import logging
import re
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from vidvault.core.logging import clear_correlation_id, set_correlation_id
from vidvault.core.metrics import HTTP_REQUEST_DURATION_SECONDS, HTTP_REQUESTS_TOTAL

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    flags=re.IGNORECASE,
)


class RequestBodyTooLarge(Exception):
    """Raised from the wrapped receive channel once the ceiling is crossed."""


class BodySizeLimitMiddleware:
    """Caps request bodies without buffering them.

    A declared Content-Length above the ceiling is rejected before the body
    is touched. Otherwise the ASGI receive channel is wrapped and bytes are
    counted as they stream in, so an undeclared or lying client is cut off
    as soon as it crosses the limit.
    """

    def __init__(self, app: ASGIApp, max_body_size: int):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = self._declared_length(scope)
        if declared is not None and declared > self.max_body_size:
            await self._reject(scope, receive, send)
            return

        received = 0
        exceeded = False
        response_started = False
        rejected = False

        async def limited_receive() -> Message:
            nonlocal received, exceeded
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    exceeded = True
                    raise RequestBodyTooLarge(
                        f"Request body exceeds {self.max_body_size} bytes"
                    )
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started, rejected
            if rejected:
                return
            # Whatever the app made of a truncated body, the client sees the limit
            if exceeded and not response_started:
                response_started = rejected = True
                await self._reject(scope, receive, send)
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except Exception:
            # BaseHTTPMiddleware re-raises inside an ExceptionGroup, so match on
            # the flag rather than the exception type
            if not exceeded or (response_started and not rejected):
                raise
            if not rejected:
                await self._reject(scope, receive, send)

    @staticmethod
    def _declared_length(scope: Scope):
        for name, value in scope.get("headers", []):
            if name == b"content-length":
                try:
                    return int(value)
                except ValueError:
                    return None
        return None

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": f"Request body exceeds the {self.max_body_size} byte limit"},
        )
        await response(scope, receive, send)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collects HTTP request counts and durations."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        path = self._normalize_path(request.url.path)

        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            HTTP_REQUEST_DURATION_SECONDS.labels(
                method=method, endpoint=path
            ).observe(time.perf_counter() - start_time)
            HTTP_REQUESTS_TOTAL.labels(
                method=method, endpoint=path, status_code=str(status_code)
            ).inc()

    def _normalize_path(self, path: str) -> str:
        """Replace UUIDs and numeric IDs with placeholders."""
        path = _UUID_RE.sub("{id}", path)
        return re.sub(r"/\d+(?=/|$)", "/{id}", path)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds an X-Correlation-ID to the request context."""

    CORRELATION_ID_HEADER = "X-Correlation-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(
            self.CORRELATION_ID_HEADER,
            str(uuid.uuid4()),
        )
        set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[self.CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs request start, completion and failure."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        logger = logging.getLogger("vidvault.requests")
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None,
                "content_length": request.headers.get("content-length"),
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                    "error": str(e),
                },
                exc_info=True,
            )
            raise

        logger.info(
            "Request completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )
        return response


def install_middleware(app: FastAPI, max_body_size: int) -> None:
    """Register the application middleware stack.

    Added last, runs first: the body cap sits outermost.
    """
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_body_size=max_body_size)


__all__ = [
    "BodySizeLimitMiddleware",
    "CorrelationIdMiddleware",
    "MetricsMiddleware",
    "RequestBodyTooLarge",
    "RequestLoggingMiddleware",
    "install_middleware",
]
