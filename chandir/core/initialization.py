"""Application initialization and setup.

Loads environment variables and configures logging before the application
object is created.
"""

from dotenv import load_dotenv

from chandir.core.config.settings import settings
from chandir.core.logging import configure_logging


def initialize_application() -> None:
    """Initialize the application with all necessary setup tasks.

    1. Load environment variables
    2. Configure logging
    """
    load_dotenv(override=False)

    configure_logging(log_level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
