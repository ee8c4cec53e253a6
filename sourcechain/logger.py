import logging
import sys


_DEF_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def get_logger(name: str = "sourcechain", level: int | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    root = logging.getLogger("sourcechain")
    if not root.handlers:
        # stdout carries map JSON in the CLI
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_DEF_FORMAT))
        root.addHandler(handler)
        root.setLevel(logging.WARNING)
    if level is not None:
        logger.setLevel(level)
    return logger
