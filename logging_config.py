"""
Logging setup for the fractal tree CLI and viewer.
Log lines go to stdout and, when a path is given, to a log file as well.
"""
import logging
import sys

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def resolve_level(level):
    """Turn 'debug', 'INFO' or logging.INFO into a numeric logging level."""
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    if isinstance(level, str) and level.upper() in LOG_LEVELS:
        return getattr(logging, level.upper())
    raise ValueError(f"log level {level!r} is not one of {', '.join(LOG_LEVELS)}")


def setup_logging(level=logging.INFO, log_file=None):
    root = logging.getLogger()
    level = resolve_level(level)
    root.setLevel(level)

    # calling again swaps the handlers out rather than adding duplicates
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')
    targets = [logging.StreamHandler(sys.stdout)]
    if log_file:
        targets.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))
    for handler in targets:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.getLogger(__name__).debug("logging configured at %s", logging.getLevelName(level))
