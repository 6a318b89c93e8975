"""
Logging configuration for spot-cli.

Outputs:
    - Console (stderr): compact, colored "LEVEL: message" lines written
      through tqdm.write() so they never tear an active progress bar.
    - Optional log file: every record at DEBUG and above with timestamps.

Command output (the data a command prints) never goes through logging;
logging carries diagnostics only. Access and refresh tokens are never
logged.

Usage:
    from spot_cli.core.logger import setup_logging, get_logger

    setup_logging("INFO")           # Call once at startup
    logger = get_logger(__name__)   # Get logger for each module

    logger.info("Refreshing access token")
"""

import logging
import sys
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm


ROOT_LOGGER_NAME = "spot_cli"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log format for console output (compact)
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"

# Libraries that are too chatty at DEBUG
QUIET_LOGGERS = ("urllib3", "requests")


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colors the level name on console output.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__(CONSOLE_LOG_FORMAT)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{record.levelname}{Style.RESET_ALL}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes through tqdm.write().

    Messages appear above any active progress bar instead of corrupting it.

    Attributes:
        stream: The output stream (defaults to sys.stderr).
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


def setup_logging(
    level: str | int = "WARNING",
    log_file: Path | None = None,
    use_colors: bool | None = None
) -> logging.Logger:
    """
    Configure the spot_cli logger hierarchy.

    Safe to call more than once: previously installed handlers are
    replaced, which keeps repeated CLI invocations in one process (tests)
    from stacking duplicate output.

    Args:
        level: Console level name or number.
        log_file: Optional path of a log file receiving DEBUG and above.
        use_colors: Force colors on or off. Defaults to coloring only
                    when stderr is a terminal.

    Returns:
        The configured package root logger.
    """
    if use_colors is None:
        use_colors = sys.stderr.isatty()
    if use_colors:
        colorama.just_fix_windows_console()

    root = logging.getLogger(ROOT_LOGGER_NAME)
    _remove_handlers(root)
    root.setLevel(logging.DEBUG)
    root.propagate = False

    console = TqdmLoggingHandler()
    console.setLevel(_to_level(level))
    console.setFormatter(ColoredConsoleFormatter(use_colors=use_colors))
    root.addHandler(console)

    if log_file is not None:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module,
              giving a hierarchy like 'spot_cli.spotify.auth'.
    """
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Flush and detach all handlers installed by setup_logging()."""
    _remove_handlers(logging.getLogger(ROOT_LOGGER_NAME))


def verbosity_to_level(verbose: int, default: str = "WARNING") -> str:
    """Map the count of -v flags to a console level name."""
    if verbose >= 2:
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    return default


def _to_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.WARNING


def _remove_handlers(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        handler.flush()
        handler.close()
        logger.removeHandler(handler)
