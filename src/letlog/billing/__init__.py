"""
letlog.billing

Subscription billing boundary.

Responsibilities:
- Plan catalog.
- Payments provider client (checkout sessions, customers).
"""

# Package marker.
