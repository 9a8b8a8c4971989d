"""
Log routing for command-line runs.

Library code only creates module loggers under the ``emme`` namespace; this
module attaches the handlers. The worker thread name is part of every record
so messages from the pool can be told apart.
"""
import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Send the ``emme`` loggers to stdout, and to `log_file` when given.

    Calling it again replaces (and closes) the handlers of the previous call.
    """
    logger = logging.getLogger("emme")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
