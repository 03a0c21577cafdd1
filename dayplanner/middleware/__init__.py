# Middleware package init
"""
Day Planner Backend — Middleware Package
=========================================

Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID is outermost, so every response (429s included) carries
    X-Request-ID and the logging middleware sees the ID already set.
"""
