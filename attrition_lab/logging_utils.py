from __future__ import annotations

import logging

PACKAGE_LOGGER = "attrition_lab"


def setup_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Create and configure a logger.

    Module loggers of the package (``logging.getLogger(__name__)``) propagate
    to the package logger, so configuring it once covers all of them.

    Parameters
    ----------
    name
        Logger name.

    Returns
    -------
    logging.Logger
        Configured logger.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(levelname)s: %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger
