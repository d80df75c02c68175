"""
Middleware that logs every HTTP request with structured fields.
DatadogLogger picks the http.* attributes up as searchable facets.
"""
import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("maap_app")

SKIPPED_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        # Skip health checks (too noisy)
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.time()
        method = request.method
        request_fields = {
            "http.method": method,
            "http.url": path,
            "http.url_details.query_string": str(request.query_params) if request.query_params else "",
            "http.client_ip": request.client.host if request.client else "unknown",
            "http.request_id": request.headers.get("X-Request-ID", ""),
        }

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"{method} {path} 500 - {str(e)}",
                extra={
                    **request_fields,
                    "http.status_code": 500,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error.message": str(e),
                    "error.type": type(e).__name__,
                    "event_type": "http_request_error",
                },
                exc_info=True
            )
            raise

        logger.info(
            f"{method} {path} {response.status_code}",
            extra={
                **request_fields,
                "http.status_code": response.status_code,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
                "event_type": "http_request_complete",
            }
        )
        return response
