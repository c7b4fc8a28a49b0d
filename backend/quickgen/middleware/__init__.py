# Middleware package init
"""
QuickGen Backend: Middleware Package
====================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so every access log line and every log record
    emitted while handling the request carries the same correlation id.
"""
