"""
Sociality Backend — Middleware Package
=======================================

Request path through the middleware chain:
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

Rate limiting runs first so throttled requests cost nothing downstream; the
request id is assigned before the access logger reads it.
"""
