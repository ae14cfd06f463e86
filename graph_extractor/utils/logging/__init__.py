__all__ = [
    "Logger",
    "configure_logging",
    "get_logger",
]

from graph_extractor.utils.logging.default import Logger
from graph_extractor.utils.logging.base import configure_logging, get_logger
