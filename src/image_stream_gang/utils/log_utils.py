import logging
from rich.logging import RichHandler

LOG_FORMAT = "%(message)s"


def configure_logging(level: int = logging.INFO, enable_rich: bool = True) -> None:
    """
    Configure the root logger, rendering through rich unless disabled.
    """
    if enable_rich:
        handlers = [RichHandler(rich_tracebacks=True, show_path=False)]
        fmt = LOG_FORMAT
    else:
        handlers = [logging.StreamHandler()]
        fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)
    # aiohttp is chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(max(level, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """
    Return a named logger (after logging is configured).
    """
    return logging.getLogger(name)
