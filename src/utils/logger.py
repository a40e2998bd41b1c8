import logging

from rich.logging import RichHandler

from utils.config import get_settings


class CenteredFormatter(logging.Formatter):
    longest_name_length = 14  # Initial default width

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=14):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.longest_name_length = initial_width

    def format(self, record):
        CenteredFormatter.longest_name_length = max(
            CenteredFormatter.longest_name_length, len(record.name)
        )

        width = CenteredFormatter.longest_name_length
        record.name = record.name.center(width)
        return super().format(record)


def get_logger(name=None) -> logging.Logger:
    """
    Creates and returns a logger for the given module.

    Records go through a RichHandler by default. When a log file is configured
    (OFFICEOPS_LOG_FILE) they are written there instead, so the TUI is not
    drawn over while the app is running.
    """
    if name is None:
        name = "officeops"
    settings = get_settings()
    logger = logging.getLogger(name)
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logger.setLevel(log_level)

    if not logger.handlers:
        if settings.log_file:
            handler: logging.Handler = logging.FileHandler(
                settings.log_file, encoding="utf-8"
            )
            formatter = CenteredFormatter(
                "%(asctime)s %(levelname)-7s [%(name)s]  %(message)s"
            )
        else:
            handler = RichHandler(
                show_time=True,
                show_level=True,
                show_path=False,
                rich_tracebacks=True,
                log_time_format="[%X]",
            )
            formatter = CenteredFormatter("[%(name)s]  %(message)s")
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        logger.addHandler(handler)

        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized.")

    return logger
