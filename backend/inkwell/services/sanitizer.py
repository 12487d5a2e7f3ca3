"""
Inkwell Backend — Input Sanitizer
===================================

What:  Neutralizes characters and markup that a browser could reinterpret as
       executable content once a post is rendered.
Why:   Post titles and bodies are user-controlled and displayed to everyone.
How:   Two levels:
       - sanitize_scalar:    entity-escape < > " ' & in any string
       - sanitize_rich_text: additionally strip <script>/<iframe> blocks,
                             `javascript:` URLs and on<event>= attributes

Limits (read before relying on this):
    The rich-text filter is a denylist of regular expressions, not an HTML
    parser. Markup such as `<svg><animate onbegin=...>` variants or split
    tags can get past it. The Sanitizer base class exists so an allow-list
    implementation can replace DenylistSanitizer via app.state.sanitizer
    without touching the middleware or the post service.

Escaping is single-pass: `&` is always escaped, including the `&` of an
existing entity, so "&lt;" becomes "&amp;lt;". Text with none of the five
special characters is returned unchanged.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping

# What: Characters escaped by sanitize_scalar and their replacements
ENTITY_MAP = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "&": "&amp;",
}
_SPECIAL_CHARS = re.compile(r"[<>\"'&]")

# DOTALL: a script block spanning lines is removed as a whole
_SCRIPT_BLOCK = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_IFRAME_BLOCK = re.compile(r"<iframe[^>]*>.*?</iframe>", re.IGNORECASE | re.DOTALL)
_JAVASCRIPT_URL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)


class Sanitizer(ABC):
    """Strategy interface for request/content sanitization."""

    @abstractmethod
    def sanitize_scalar(self, value: Any) -> Any:
        """Escape a single value; non-strings pass through unchanged."""
        ...

    @abstractmethod
    def sanitize_rich_text(self, value: Any) -> Any:
        """Clean free-form content destined for rendering as HTML."""
        ...

    def sanitize_mapping(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Apply sanitize_scalar to every top-level value.

        Nested objects and lists are left as-is; only direct string fields
        of the request body/query are treated.
        """
        return {key: self.sanitize_scalar(value) for key, value in data.items()}


class DenylistSanitizer(Sanitizer):
    """Pattern-based sanitizer. Pure and total: never raises."""

    def sanitize_scalar(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        return _SPECIAL_CHARS.sub(lambda m: ENTITY_MAP[m.group(0)], value)

    def sanitize_rich_text(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        cleaned = _SCRIPT_BLOCK.sub("", value)
        cleaned = _IFRAME_BLOCK.sub("", cleaned)
        cleaned = _JAVASCRIPT_URL.sub("", cleaned)
        cleaned = _EVENT_HANDLER.sub("", cleaned)
        return cleaned


# Default strategy used by the middleware and post service
default_sanitizer = DenylistSanitizer()
