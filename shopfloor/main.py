"""Run the tracking API with uvicorn."""

import os

import uvicorn

from .config import Settings
from .web.app import create_app


def main() -> None:
    settings = Settings.from_env()
    app = create_app(settings)
    uvicorn.run(
        app,
        host=os.getenv("SHOPFLOOR_HOST", "0.0.0.0"),
        port=int(os.getenv("SHOPFLOOR_PORT", "8000")),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
