import logging
import os
from datetime import datetime

from ledgerbook import config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(log_dir: str = None, level: str = None) -> str:
    """
    Configure the root logger to write to a timestamped file and to the console.

    Returns the path of the log file.
    """
    log_dir = log_dir or config.LOG_DIR
    level = getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO)
    os.makedirs(log_dir, exist_ok=True)  # Create the log directory if it doesn't exist

    # A unique log file per process start
    current_time_str = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    log_file = os.path.join(log_dir, f"app_{current_time_str}.log")

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        filename=log_file,
        filemode='a'
    )

    # Also output logs to the console
    root = logging.getLogger()
    if not any(type(h) is logging.StreamHandler for h in root.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console_handler)

    return log_file
