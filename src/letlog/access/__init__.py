"""
letlog.access

Edge access control.

Responsibilities:
- Route policy table (typed rules, loaded once).
- Pure route classification and access decisions.
- Starlette middleware applying decisions to every gated request.
"""

# Package marker.
