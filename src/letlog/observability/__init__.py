"""
letlog.observability

Observability package.

Responsibilities:
- structlog configuration for JSON logs.
- Request-scoped log context (request id, path, method, client).
"""
