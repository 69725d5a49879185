import logging
from uvicorn.logging import TRACE_LOG_LEVEL

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def log_level(verbosity: int) -> int:
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    if verbosity == 2:
        return logging.DEBUG
    return TRACE_LOG_LEVEL


def uvicorn_log_level(verbosity: int) -> str:
    level = log_level(verbosity)
    if level == TRACE_LOG_LEVEL:
        return "trace"
    return logging.getLevelName(level).lower()


def configure_logging(verbosity: int) -> None:
    logging.basicConfig(level=log_level(verbosity), format=LOG_FORMAT, force=True)
