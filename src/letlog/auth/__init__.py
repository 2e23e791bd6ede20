"""
letlog.auth

Authentication package.

Responsibilities:
- Principal and Role types.
- Session token issuing/validation and cookie-based session resolution.
- Role lookup against the profile store (fail-open to landlord).
- FastAPI dependencies exposing the resolved principal to handlers.
"""

# Package marker.
