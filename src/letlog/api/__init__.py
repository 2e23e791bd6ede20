"""
letlog.api

API package for the LetLog gateway.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: access control lives in middleware, billing in
# `letlog.billing`, persistence in `letlog.db`.
