import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

# -------------------- Configuration --------------------
LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"

LOG_COLORS = {
    "DEBUG": "\033[36m",      # Cyan
    "INFO": "\033[32m",       # Green
    "WARNING": "\033[33m",    # Yellow
    "ERROR": "\033[31m",      # Red
    "CRITICAL": "\033[38;5;88m",  # Dark Red (ANSI 256-color)
}
RESET_COLOR = "\033[0m"

# Run log shared by every logger; mirrors the console output.
LOG_FILEPATH: Path = Path("result") / "log.txt"

# Loggers created through setup_logger, so the file target can be swapped later.
_CONFIGURED_LOGGERS: dict[str, logging.Logger] = {}


# -------------------- Formatters --------------------
class ColorFormatter(logging.Formatter):
    """
    Custom log formatter that applies ANSI color codes based on log level.

    Colors are assigned by severity: DEBUG cyan, INFO green, WARNING yellow,
    ERROR red and CRITICAL dark red.
    """

    def format(self, record: logging.LogRecord) -> str:
        color = LOG_COLORS.get(record.levelname, "")
        message = super().format(record)
        return f"{color}{message}{RESET_COLOR}" if color else message


class PromptToolkitHandler(logging.Handler):
    """
    Logging handler that writes through prompt_toolkit.

    Keeps log lines from tearing the manual-login prompt while the operator
    is typing.
    """

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            print_formatted_text(ANSI(msg))
        except Exception:
            self.handleError(record)


plain_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def should_use_color() -> bool:
    """Return True when stderr is attached to a terminal."""
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


color_formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else plain_formatter


# -------------------- Logger Setup --------------------

def get_log_filepath() -> Path:
    """Return the current run log path."""
    return LOG_FILEPATH


class RunLogHandler(RotatingFileHandler):
    """Rotating file handler that creates the log directory on first write."""

    def _open(self):
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()


def _build_file_handler(path: Path) -> RotatingFileHandler:
    # delay=True: nothing touches the disk until the first record, so stale
    # logs can still be removed at start-up.
    file_handler = RunLogHandler(path, encoding="utf-8", delay=True)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(plain_formatter)
    return file_handler


def setup_logger(logger_name: str) -> logging.Logger:
    """Configure and return a logger with console and run-log handlers.

    Parameters
    ----------
    logger_name:
        Name of the logger to configure.

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(logger_name)

    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = PromptToolkitHandler(formatter=color_formatter)
    console_handler.setLevel(logging.INFO)
    logger.addHandler(console_handler)

    logger.addHandler(_build_file_handler(get_log_filepath()))

    _CONFIGURED_LOGGERS[logger_name] = logger
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    """Retrieve a logger configured for banreview, creating it if necessary."""
    return setup_logger(logger_name)


def set_log_filepath(path: Path) -> Path:
    """Point every configured logger's file handler at ``path``.

    Parameters
    ----------
    path:
        New run log location.

    Returns
    -------
    Path
        The resolved log path now in use.
    """
    global LOG_FILEPATH
    LOG_FILEPATH = Path(path)
    target = get_log_filepath()

    for logger in _CONFIGURED_LOGGERS.values():
        for handler in list(logger.handlers):
            if isinstance(handler, RotatingFileHandler):
                logger.removeHandler(handler)
                handler.close()
        logger.addHandler(_build_file_handler(target))

    return target


# -------------------- Exception Handling --------------------
def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """
    Global exception handler that logs uncaught exceptions.

    KeyboardInterrupt is passed to the default hook so the process can exit
    normally.
    """
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
    else:
        logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


# -------------------- Suppress Noisy Libraries --------------------
NOISY_LOGGERS = ["playwright", "asyncio", "urllib3"]

for noisy_logger in NOISY_LOGGERS:
    lg = logging.getLogger(noisy_logger)
    lg.setLevel(logging.ERROR)
    lg.propagate = False
    lg.handlers = []


sys.excepthook = handle_exception
