"""
letlog.ratelimit.client

Client identification from proxy headers.
"""

from __future__ import annotations

from collections.abc import Mapping

UNKNOWN_CLIENT = "unknown"


def client_identifier(headers: Mapping[str, str]) -> str:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    # Every client without proxy headers shares this one bucket.
    return UNKNOWN_CLIENT
