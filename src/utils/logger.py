import logging

from rich.logging import RichHandler

from utils.config import settings


class CenteredFormatter(logging.Formatter):
    """Pads logger names to the longest one seen so far so messages line up."""

    longest_name_length = 16

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=16):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.longest_name_length = initial_width

    def format(self, record):
        CenteredFormatter.longest_name_length = max(
            CenteredFormatter.longest_name_length, len(record.name)
        )
        record.name = record.name.center(CenteredFormatter.longest_name_length)
        return super().format(record)


def _make_handler(log_level: int) -> logging.Handler:
    # the TUI owns the terminal while running, so a log file wins when configured
    if settings.log_file:
        handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        handler.setFormatter(
            CenteredFormatter("%(asctime)s %(levelname)-7s [%(name)s]  %(message)s")
        )
    else:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
    handler.setLevel(log_level)
    return handler


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger for `name`, attaching a rich (or file) handler on first use.
    Level is DEBUG when the DEBUG env var is set, INFO otherwise.
    """
    if name is None:
        name = "artisan"
    logger = logging.getLogger(name)
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logger.setLevel(log_level)

    if not logger.handlers:
        logger.addHandler(_make_handler(log_level))
        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized.")

    return logger
