"""
Logging configuration for Shop Insights.

Provides centralized logging setup with colored console output and rotating
log files. Reads LOG_LEVEL, LOG_DIR and DEBUG from the environment so it can
be used before the settings object is loaded.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

import colorlog


class ShopInsightsLogger:
    """Centralized logger for the Shop Insights application."""

    def __init__(self, name: str = "shop_insights"):
        """Initialize logger with the given name."""
        self.name = name
        self.logger = logging.getLogger(name)
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Setup logger with file and console handlers."""
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_dir = os.getenv("LOG_DIR", "./logs")
        debug_mode = os.getenv("DEBUG", "false").lower() == "true"

        Path(log_dir).mkdir(parents=True, exist_ok=True)

        self.logger.setLevel(getattr(logging, log_level, logging.INFO))

        # get_logger may be called repeatedly for the same name
        self.logger.handlers.clear()

        self._setup_console_handler(debug_mode)
        self._setup_file_handler(log_dir, debug_mode)

        self.logger.propagate = False

    def _setup_console_handler(self, debug_mode: bool) -> None:
        """Setup colored console logging."""
        console_handler = colorlog.StreamHandler(sys.stdout)

        if debug_mode:
            color_format = (
                "%(log_color)s%(asctime)s [%(levelname)8s] "
                "%(name)s.%(funcName)s:%(lineno)d - %(message)s"
            )
        else:
            color_format = (
                "%(log_color)s%(asctime)s [%(levelname)8s] "
                "%(name)s - %(message)s"
            )

        formatter = colorlog.ColoredFormatter(
            color_format,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )

        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

    def _setup_file_handler(self, log_dir: str, debug_mode: bool) -> None:
        """Setup file logging with rotation."""
        log_file = os.path.join(log_dir, f"{self.name}.log")

        # 5MB per file, keep 5 files
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )

        if debug_mode:
            file_format = (
                "%(asctime)s [%(levelname)8s] %(name)s.%(funcName)s:%(lineno)d - "
                "%(message)s"
            )
        else:
            file_format = "%(asctime)s [%(levelname)8s] %(name)s - %(message)s"

        file_handler.setFormatter(logging.Formatter(file_format, datefmt="%Y-%m-%d %H:%M:%S"))
        self.logger.addHandler(file_handler)

    def get_logger(self) -> logging.Logger:
        """Get the configured logger instance."""
        return self.logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name. If None, uses the caller's module name.

    Returns:
        Configured logger instance.
    """
    if name is None:
        frame = sys._getframe(1)
        name = frame.f_globals.get('__name__', 'shop_insights')

    return ShopInsightsLogger(name).get_logger()


def setup_logging() -> None:
    """
    Setup application-wide logging configuration.

    Called once at process startup (API lifespan, worker init, CLI).
    """
    logger = ShopInsightsLogger("shop_insights").get_logger()
    logger.info("Logging system initialized")
    logger.debug(f"Log level: {logger.level}")
