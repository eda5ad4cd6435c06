"""
RecipeShare Backend — Middleware Package
==========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    Responses pass back through the same chain in reverse, so the request ID
    header is set and the access log sees the final status and duration.
"""
