"""Command-line entry point: ``python -m roulette_table.main`` or ``roulette-table``."""
from __future__ import annotations

import uvicorn

from .app import configure_logging, create_app
from .config import Settings


def run() -> None:
    settings = Settings.from_env()
    configure_logging(settings)
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
