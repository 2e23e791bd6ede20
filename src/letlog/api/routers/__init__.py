"""
letlog.api.routers

HTTP routers: health, sessions, landing pages, billing.
"""

# Package marker.
