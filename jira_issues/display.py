"""
Console output and logging setup built on rich.
"""

import logging
import os
import sys
from typing import Any, Protocol, cast

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

SUCCESS_LEVEL = 25
NOTICE_LEVEL = 21


# Protocol for the logger extended with success and notice methods
class ExtendedLogger(Protocol):
    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def success(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def notice(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


LOGGING_THEME = Theme(
    {
        "logging.level.debug": "dim",
        "logging.level.info": "blue",
        "logging.level.notice": "cyan",
        "logging.level.warning": "bold yellow",
        "logging.level.error": "bold red",
        "logging.level.critical": "bold red on white",
        "logging.level.success": "bold green",
        "success": "bold green",
        "failure": "bold red",
    }
)

# Shared consoles; failures go to stderr
console = Console(theme=LOGGING_THEME)
error_console = Console(theme=LOGGING_THEME, stderr=True)


def _resolve_level(level: str) -> int:
    match level.upper():
        case "NOTICE":
            return NOTICE_LEVEL
        case "SUCCESS":
            return SUCCESS_LEVEL
        case name:
            return getattr(logging, name, logging.INFO)


def configure_logging(
    level: str = "INFO", log_file: str | os.PathLike[str] | None = None
) -> ExtendedLogger:
    """
    Configure logging with rich formatting.

    Args:
        level: Logging level (DEBUG, INFO, NOTICE, SUCCESS, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file

    Returns:
        Configured logger instance
    """
    logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")
    logging.addLevelName(NOTICE_LEVEL, "NOTICE")

    numeric_level = _resolve_level(level)

    rich_handler = RichHandler(
        console=error_console,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        markup=False,
        show_time=True,
        show_level=True,
        log_time_format="[%X]",
    )
    handlers: list[logging.Handler] = [rich_handler]

    if log_file:
        log_dir = os.path.dirname(os.fspath(log_file))
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_format = logging.Formatter(
            "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
        )
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(file_format)
        file_handler.setLevel(numeric_level)
        handlers.append(file_handler)

    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    # urllib3 logs every connection at DEBUG; keep it quiet unless asked
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.INFO))

    logger = logging.getLogger("jira_issues")

    def success(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(SUCCESS_LEVEL):
            self._log(SUCCESS_LEVEL, message, args, stacklevel=2, **kwargs)

    def notice(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(NOTICE_LEVEL):
            self._log(NOTICE_LEVEL, message, args, stacklevel=2, **kwargs)

    setattr(logging.Logger, "success", success)
    setattr(logging.Logger, "notice", notice)

    logger.debug("Rich logging configured at %s", logging.getLevelName(numeric_level))
    if log_file:
        logger.debug("Log file: %s", log_file)

    return cast(ExtendedLogger, logger)


def print_success(message: str) -> None:
    """Print a success line for the user."""
    console.print(f"[success]✓[/] {escape(message)}", highlight=False)


def print_failure(message: str) -> None:
    """Print a failure line for the user on stderr."""
    error_console.print(f"[failure]✗[/] {escape(message)}", highlight=False)


def print_output(text: str) -> None:
    """Print raw command output without any markup processing."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def exit_with_failure(message: str, code: int = 1) -> None:
    """Print a failure message and terminate the process."""
    print_failure(message)
    sys.exit(code)
