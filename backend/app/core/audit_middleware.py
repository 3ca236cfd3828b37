"""
Audit logging middleware.
Writes one audit line per request to patient-record endpoints.
"""
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .security import decode_access_token

logger = logging.getLogger("app.audit")

# Endpoints that touch patient records - requests to these paths are audited
AUDITED_PATH_PREFIXES = (
    "/api/patients",
    "/api/reports/export",
)

ACTION_MAP = {
    "GET": "view",
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}


class AuditMiddleware(BaseHTTPMiddleware):
    """Middleware that logs access to patient-record endpoints."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)

        path = request.url.path
        if not path.startswith(AUDITED_PATH_PREFIXES):
            return response
        if request.method not in ACTION_MAP:
            return response

        user_id = "anonymous"
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            payload = decode_access_token(auth_header[7:])
            if payload:
                user_id = payload.get("sub", "anonymous")

        # /api/patients/<id>/<area>
        parts = [p for p in path.split("/") if p]
        resource_type = parts[1] if len(parts) >= 2 else "unknown"
        resource_id = parts[2] if len(parts) >= 3 else "-"

        logger.info(
            "user=%s action=%s resource=%s id=%s method=%s path=%s status=%s ip=%s duration_ms=%.1f",
            user_id,
            ACTION_MAP[request.method],
            resource_type,
            resource_id,
            request.method,
            path,
            response.status_code,
            request.client.host if request.client else None,
            (time.perf_counter() - started) * 1000,
        )
        return response
