# Middleware package init
"""
ResiHub Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    Rate limiting runs first so rejected requests cost nothing further. The
    request ID is set before the access log line is written so both carry
    the same correlation ID.
"""
