"""
Inkwell Backend — Request Sanitization Middleware
===================================================

What:  Entity-escapes every top-level string in the query string, JSON object
       bodies and urlencoded form bodies before routing.
Why:   Handlers and validators only ever see neutralized text; nothing
       downstream has to remember to escape.
How:   Pure ASGI. The body is buffered, rewritten with the app's Sanitizer
       (app.state.sanitizer, falling back to the default denylist), and
       replayed to the application as a single message with a corrected
       Content-Length.

Pass-through cases:
    - JSON that does not parse, or whose top level is not an object
    - Any other content type (multipart, text/plain, ...)
    - Nested objects/lists inside a JSON body are left as-is

A streamed body that grows past MAX_REQUEST_BODY_SIZE is rejected with 413
while buffering.
"""

import json
import logging
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from inkwell.config import settings
from inkwell.middleware.security import payload_too_large_response
from inkwell.services.sanitizer import Sanitizer, default_sanitizer

logger = logging.getLogger(__name__)

JSON_TYPE = "application/json"
FORM_TYPE = "application/x-www-form-urlencoded"


def _header(scope: Scope, name: bytes) -> str:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return ""


def _with_content_length(headers: List[Tuple[bytes, bytes]], length: int) -> List[Tuple[bytes, bytes]]:
    rewritten = [(k, v) for k, v in headers if k.lower() != b"content-length"]
    rewritten.append((b"content-length", str(length).encode("latin-1")))
    return rewritten


def sanitize_query_string(raw: bytes, sanitizer: Sanitizer) -> bytes:
    if not raw:
        return raw
    pairs = parse_qsl(raw.decode("latin-1"), keep_blank_values=True)
    return urlencode([(key, sanitizer.sanitize_scalar(value)) for key, value in pairs]).encode("latin-1")


def sanitize_json_body(body: bytes, sanitizer: Sanitizer) -> bytes:
    try:
        data = json.loads(body)
    except ValueError:
        # Malformed JSON is reported by request validation
        return body
    if not isinstance(data, dict):
        return body
    return json.dumps(sanitizer.sanitize_mapping(data)).encode("utf-8")


def sanitize_form_body(body: bytes, sanitizer: Sanitizer) -> bytes:
    try:
        pairs = parse_qsl(body.decode("utf-8"), keep_blank_values=True)
    except UnicodeDecodeError:
        return body
    return urlencode([(key, sanitizer.sanitize_scalar(value)) for key, value in pairs]).encode("utf-8")


class SanitizeRequestMiddleware:
    """
    Args:
        app:           Downstream ASGI application
        sanitizer:     Fixed strategy; when omitted, read from app.state.sanitizer
                       per request
        max_body_size: Cap on buffered bytes (default: MAX_REQUEST_BODY_SIZE)
    """

    def __init__(
        self,
        app: ASGIApp,
        sanitizer: Optional[Sanitizer] = None,
        max_body_size: Optional[int] = None,
    ) -> None:
        self.app = app
        self.sanitizer = sanitizer
        self.max_body_size = max_body_size or settings.max_request_body_size

    def _resolve_sanitizer(self, scope: Scope) -> Sanitizer:
        if self.sanitizer is not None:
            return self.sanitizer
        app = scope.get("app")
        state = getattr(app, "state", None)
        return getattr(state, "sanitizer", None) or default_sanitizer

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        sanitizer = self._resolve_sanitizer(scope)
        scope = dict(scope)
        scope["query_string"] = sanitize_query_string(scope.get("query_string", b""), sanitizer)

        content_type = _header(scope, b"content-type").split(";")[0].strip().lower()
        if content_type not in (JSON_TYPE, FORM_TYPE):
            await self.app(scope, receive, send)
            return

        chunks = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_body_size:
                logger.warning("Rejected streamed body over %d bytes on %s", self.max_body_size, scope.get("path"))
                await payload_too_large_response()(scope, receive, send)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        if body:
            if content_type == JSON_TYPE:
                body = sanitize_json_body(body, sanitizer)
            else:
                body = sanitize_form_body(body, sanitizer)
        scope["headers"] = _with_content_length(list(scope.get("headers", [])), len(body))

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)
