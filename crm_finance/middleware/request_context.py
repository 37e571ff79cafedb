"""
Request context and request logging middleware.

WHAT: Middleware that assigns a request id, captures client IP and user
agent, makes them available for the whole request, and writes one log line
per request.

WHY: The audit trail records who approved a payment or deleted an invoice
from where; services reach that data through a ContextVar instead of having
the Request object threaded through every call. The request id ties audit
rows, service log lines and the access log line together.

HOW: RequestContextMiddleware stores a RequestContext in request.state and
in the _request_context ContextVar, then logs method, path, status and
latency with the request id as structured ``extra`` fields.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("crm_finance.request")

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestContext:
    """
    Container for request-scoped context data.

    Fields:
    - request_id: Unique identifier for the request (for log correlation)
    - ip_address: Client's real IP (considering proxies)
    - user_agent: Client's browser/application identifier
    - path: Request path
    - method: HTTP method
    """

    request_id: str
    ip_address: str
    user_agent: Optional[str]
    path: str
    method: str


# Each async request gets its own isolated context
_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """
    Get the current request context.

    Returns:
        RequestContext if within a request, None otherwise
    """
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Extract the real client IP address from a request.

    Checks headers in order of trust:
    1. X-Real-IP (set by nginx-style proxies)
    2. X-Forwarded-For (first entry is the original client)
    3. request.client.host (direct connection IP)

    These headers can be spoofed when the API is not behind a proxy that
    overwrites them.

    Args:
        request: The incoming request

    Returns:
        Client IP address as string
    """
    x_real_ip = request.headers.get("X-Real-IP")
    if x_real_ip:
        return x_real_ip.strip()

    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        # Format: "client, proxy1, proxy2"
        return x_forwarded_for.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that captures request context and logs each request.

    An incoming X-Request-ID header is honoured so ids assigned by a gateway
    or by the CRM frontend survive into our logs; otherwise a UUID4 is used.
    The id is echoed back in the response headers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        context = RequestContext(
            request_id=request_id,
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
            path=request.url.path,
            method=request.method,
        )
        request.state.context = context
        token = _request_context.set(context)

        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "unhandled_exception",
                    extra={
                        "request_id": request_id,
                        "path": context.path,
                        "method": context.method,
                        "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                    },
                )
                raise

            logger.info(
                "request",
                extra={
                    "request_id": request_id,
                    "path": context.path,
                    "method": context.method,
                    "status_code": response.status_code,
                    "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        finally:
            _request_context.reset(token)
