import logging
import os


class Logger:
    """Utility class for standardized logging configuration."""

    DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @staticmethod
    def get(name: str) -> logging.Logger:
        """
        Get a standardized logger for the library.
        Configures logging with basic setup if not already configured, using the
        level named by OLLAMA_SIDECAR_LOG_LEVEL (default INFO).
        """
        if not logging.getLogger().hasHandlers():
            level_name = os.environ.get("OLLAMA_SIDECAR_LOG_LEVEL", "INFO").upper()
            level = logging.getLevelName(level_name)
            if not isinstance(level, int):
                level = logging.INFO
            logging.basicConfig(level=level, format=Logger.DEFAULT_FORMAT)
        return logging.getLogger(name)
