"""
Inkwell Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (request direction):
    Request → [Request ID] → [Logging] → [Security Headers / Body Size]
            → [CORS] → [GZip] → [Sanitize] → Route Handler

    1. Request ID first so every later log line and error carries it
    2. Logging measures everything below it, guards included
    3. Oversized bodies are refused before CORS, GZip or buffering
    4. Sanitize runs last, directly before routing and validation

    Responses travel back through the same chain in reverse.
"""
