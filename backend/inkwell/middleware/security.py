"""
Inkwell Backend — Security Headers & Body Size Guard
======================================================

What:  Hardening headers on every response, and early rejection of requests
       that announce an oversized body.
Why:   The browser-side half of XSS/clickjacking defence, and a cheap stop for
       multi-megabyte payloads before anything reads them.

Headers added:
    X-Content-Type-Options: nosniff
    X-Frame-Options: DENY
    X-XSS-Protection: 1; mode=block
    Referrer-Policy: strict-origin-when-cross-origin
    Strict-Transport-Security (production only)

Bodies sent without Content-Length (chunked) are counted by
SanitizeRequestMiddleware while it buffers them.
"""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from inkwell.config import settings
from inkwell.exceptions import PayloadTooLargeError
from inkwell.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
HSTS_VALUE = "max-age=31536000; includeSubDomains"


def payload_too_large_response() -> JSONResponse:
    """413 in the standard error shape; used before routing, outside the handlers."""
    exc = PayloadTooLargeError()
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "request_id": request_id_var.get(""),
        },
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Args:
        max_body_size: Largest accepted Content-Length in bytes
                       (default: MAX_REQUEST_BODY_SIZE)
        hsts:          Add Strict-Transport-Security (default: production only)
    """

    def __init__(self, app, max_body_size: Optional[int] = None, hsts: Optional[bool] = None):
        super().__init__(app)
        self.max_body_size = max_body_size or settings.max_request_body_size
        self.hsts = settings.is_production if hsts is None else hsts

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_body_size:
            logger.warning(
                "Rejected %s %s: Content-Length %s exceeds %d",
                request.method,
                request.url.path,
                declared,
                self.max_body_size,
            )
            response = payload_too_large_response()
        else:
            response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        if self.hsts:
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response
