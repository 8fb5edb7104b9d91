import logging

from census_income.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name=__name__) -> logging.Logger:
    """Return a module logger; handlers are installed by setup_logging."""
    return logging.getLogger(name)


def setup_logging(level=LOG_LEVEL):
    """Send pipeline logs to stderr with a timestamped format."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root = logging.getLogger("census_income")
    root.handlers = [handler]
    root.setLevel(level)
    root.propagate = False
    return root
