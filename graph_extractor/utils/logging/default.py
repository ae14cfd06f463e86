import logging

from graph_extractor.utils.logging.base import get_logger


class Logger:
    """
    Logger that carries a fixed context dict into every record.

    Build and query components attach identifiers such as the repository
    name so that every line they log can be filtered on it.

    Args:
        name (str): The name of the logger instance
        context (dict, optional): Values merged into ``extra`` on every call
    """

    def __init__(self, name: str, context: dict = None):
        self.base_logger: logging.Logger = get_logger(name)
        self.context = context

    def __merge_context(self, extra: dict) -> dict:
        if not extra:
            return self.context

        if not self.context:
            return extra

        extra = extra.copy()
        extra.update(self.context)
        return extra

    def debug(self, message, extra=None):
        self.base_logger.debug(message, extra=self.__merge_context(extra))

    def info(self, message, extra=None):
        self.base_logger.info(message, extra=self.__merge_context(extra))

    def warning(self, message, extra=None, exc_info=False):
        self.base_logger.warning(
            message, extra=self.__merge_context(extra), exc_info=exc_info
        )

    def error(self, message, extra=None, exc_info=False):
        """
        Log a message with ERROR level.

        Args:
            message: The message to be logged
            extra (dict, optional): Additional context for this entry
            exc_info (bool): Attach the active exception traceback
        """
        self.base_logger.error(
            message, extra=self.__merge_context(extra), exc_info=exc_info
        )

    def critical(self, message, extra=None):
        self.base_logger.critical(message, extra=self.__merge_context(extra))
