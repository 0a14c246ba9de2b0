import logging
import sys


class Log:
    """Centralized logging for the worker and the API.

    Messages about a single document are prefixed with its id so a document's
    progress can be followed across stages with one grep.
    """

    _logger: logging.Logger = logging.getLogger("docpipe")
    _FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter(cls._FORMAT))
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, document_id: str | None = None) -> None:
        cls._emit(logging.INFO, message, document_id)

    @classmethod
    def warning(cls, message: str, document_id: str | None = None) -> None:
        cls._emit(logging.WARNING, message, document_id)

    @classmethod
    def error(cls, message: str, document_id: str | None = None) -> None:
        cls._emit(logging.ERROR, message, document_id)

    @classmethod
    def debug(cls, message: str, document_id: str | None = None) -> None:
        cls._emit(logging.DEBUG, message, document_id)

    @classmethod
    def exception(cls, message: str, document_id: str | None = None) -> None:
        """Log an error together with the traceback of the active exception."""
        cls._emit(logging.ERROR, message, document_id, exc_info=True)

    @classmethod
    def _emit(
        cls,
        level: int,
        message: str,
        document_id: str | None,
        exc_info: bool = False,
    ) -> None:
        if document_id is not None:
            message = f"[document {document_id}] {message}"
        cls._logger.log(level, message, exc_info=exc_info)
