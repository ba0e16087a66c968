import logging
import logging.handlers
import os
import sys

import config


def setup_logging(level: str = None, log_file: str = None):
    """
    Configure the root logger.

    Logs always go to stdout; a rotating file handler is added when a log
    file is configured. Calling this twice does not duplicate handlers.
    """
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s')

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.root.setLevel(level or config.LOG_LEVEL)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logging.root.addHandler(console_handler)

    log_file = log_file or config.LOG_FILE
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logging.root.addHandler(file_handler)

    logging.captureWarnings(True)
