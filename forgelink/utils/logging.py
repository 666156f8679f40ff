import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List, Optional

import bittensor as bt

RELAY_LEVEL_NUM = 38
DEFAULT_LOG_BACKUP_COUNT = 10
RELAY_LOGGER_NAME = 'forgelink.relay'


def configure_logging(debug: bool = False, trace: bool = False) -> None:
    """Enable the requested bt.logging verbosity."""
    if trace:
        bt.logging.set_trace(True)
    elif debug:
        bt.logging.set_debug(True)


def setup_relay_logger(full_path: str, retention_size: int) -> logging.Logger:
    """Create the rotating audit log of every line relayed into the room."""
    logging.addLevelName(RELAY_LEVEL_NUM, 'RELAY')

    logger = logging.getLogger(RELAY_LOGGER_NAME)
    logger.setLevel(RELAY_LEVEL_NUM)
    logger.propagate = False

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    os.makedirs(full_path, exist_ok=True)
    file_handler = RotatingFileHandler(
        os.path.join(full_path, 'relay.log'),
        maxBytes=retention_size,
        backupCount=DEFAULT_LOG_BACKUP_COUNT,
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(RELAY_LEVEL_NUM)
    logger.addHandler(file_handler)

    return logger


def log_relayed_lines(logger: Optional[logging.Logger], room_id: str, lines: List[str]) -> None:
    """Record relayed lines in the relay log, when one is configured."""
    if logger is None:
        return
    for line in lines:
        logger.log(RELAY_LEVEL_NUM, f'{room_id} | {line}')
