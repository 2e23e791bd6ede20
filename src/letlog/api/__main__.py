"""
letlog.api.__main__

Entrypoint for running the gateway via `python -m letlog.api`.
"""

from __future__ import annotations

import uvicorn

from letlog.api.app import create_app
from letlog.settings import get_settings


def main() -> None:
    settings = get_settings()
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
        # Client identification reads x-forwarded-for itself.
        proxy_headers=False,
    )


if __name__ == "__main__":
    main()
