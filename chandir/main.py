"""Main application entry point for the FastAPI application.

Run with ``uvicorn chandir.main:app`` or ``python -m chandir.main``.
"""

import uvicorn

from chandir.core.application import create_application
from chandir.core.config.settings import settings
from chandir.core.initialization import initialize_application

initialize_application()

app = create_application()


if __name__ == "__main__":
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_level=settings.LOG_LEVEL.lower())
