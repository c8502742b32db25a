"""Logging setup for applications embedding GxmCrypt.

Library modules only create module loggers under the ``gxmcrypt``
namespace; attaching a handler is left to the application, which can use
:func:`setup_logger` for a ready-made stdout configuration.
"""

import logging
import os
import sys
from typing import Optional, Union

LOG_LEVEL_ENV = "GXMCRYPT_LOG_LEVEL"


def setup_logger(name: str = "gxmcrypt", level: Optional[Union[int, str]] = None) -> logging.Logger:
    """Return *name*'s logger with a single stdout handler attached.

    Calling this again does not add a second handler.  When *level* is
    omitted it is read from ``GXMCRYPT_LOG_LEVEL`` (default ``INFO``).
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', datefmt='%H:%M:%S')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)
    return logger
