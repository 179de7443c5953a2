"""
Configuration for Layout Translator: constants, logging and settings.

Settings are not imported here; ``config.settings`` reads the environment
when first imported.
"""
from .constants import *
from .logging_config import configure_logging, get_logger, logger

__all__ = [
    # Logging
    'configure_logging',
    'get_logger',
    'logger',
    # Constants (all exported via *)
]
