import logging
import threading

from graph_extractor.core.config import settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_ROOT_LOGGER_NAME = "graph_extractor"

_configured = False
_configure_lock = threading.Lock()


def configure_logging(level: str | None = None) -> None:
    """Attach a stream handler to the package root logger once.

    Later calls only adjust the level.
    """
    global _configured

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    with _configure_lock:
        if not _configured:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(_LOG_FORMAT))
            root.addHandler(handler)
            _configured = True
        root.setLevel((level or settings.LOG_LEVEL).upper())


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
