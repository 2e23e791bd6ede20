"""
letlog.ratelimit

Admission control for expensive or payable endpoints.

Responsibilities:
- Fixed-window rate limiter with an explicit start/stop lifecycle.
- Client identification from proxy headers.
- FastAPI dependency + 429 rendering for handlers.
"""

# Package marker.
