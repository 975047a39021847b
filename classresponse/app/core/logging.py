"""Setting up a file logger shared by the service modules.

Returns a lazily initialized logger that appends to `{logging_dir}/{filename}`.
"""
import os
from logging import FileHandler, Formatter, getLogger
from classresponse.app.core.config import settings


def get_logs_writer_logger(logging_dir=settings.LOG_PATH, filename='classresponse.log'):
    os.makedirs(logging_dir, exist_ok=True)
    log_path = os.path.join(logging_dir, filename)

    logger = getLogger("classresponse")

    if logger.handlers:
        return logger

    logger.setLevel(settings.LOG_LEVEL)
    logger.propagate = False

    handler = FileHandler(log_path, mode="a", encoding="utf-8", delay=True)
    handler.setFormatter(Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)

    return logger
