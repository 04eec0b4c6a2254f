"""Development server entrypoint."""
from __future__ import annotations

from .app import create_app
from .config import get_settings
from .logs import setup_logging


def run() -> None:
    """Convenience wrapper used by ``python -m nexdata``."""

    settings = get_settings()
    setup_logging(settings.log_level)
    app = create_app(settings=settings)
    app.run(
        host=settings.host,
        port=settings.port,
        debug=settings.environment == "development",
    )


if __name__ == "__main__":
    run()
