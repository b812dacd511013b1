"""Logging configuration for course-setup.

Log records and the step progress lines share one rich console so they
interleave cleanly. A log file, when requested, always receives the full
debug stream so course staff can see what happened on a student's machine.

Example:
    ```python
    from coursesetup.core.logging import setup_logging

    setup_logging(debug=True, log_file="~/course-setup.log")
    ```
"""

import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that log every request at INFO/DEBUG
NOISY_LOGGERS = ("httpx", "httpcore")


def _console_handler(console: Console, debug: bool) -> logging.Handler:
    handler = RichHandler(
        console=console,
        show_path=debug,
        enable_link_path=debug,
        markup=True,
        rich_tracebacks=True,
        tracebacks_show_locals=debug,
    )
    handler.setLevel(logging.DEBUG if debug else logging.INFO)
    return handler


def _file_handler(log_file: str, log_format: str) -> logging.Handler:
    log_path = Path(log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(log_format))
    return handler


def install_excepthook(logger: logging.Logger) -> None:
    """Route uncaught exceptions through logger, leaving Ctrl-C alone."""

    def handle_exception(
        exc_type: Type[BaseException],
        exc_value: BaseException,
        exc_traceback: Optional[TracebackType],
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical("Setup crashed", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
    log_format: str = FILE_FORMAT,
) -> None:
    """Set up logging for a setup run.

    Args:
        debug: Show debug records on the console.
        log_file: Optional path (``~`` is expanded) that receives every
            record at DEBUG level regardless of ``debug``.
        console: Console shared with the rest of the run's output.
        log_format: Format string for the log file.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if (debug or log_file) else logging.INFO)
    root_logger.handlers.clear()

    root_logger.addHandler(_console_handler(console or Console(), debug))
    if log_file:
        root_logger.addHandler(_file_handler(log_file, log_format))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized (debug=%s, log_file=%s)", debug, log_file)
    install_excepthook(logger)
