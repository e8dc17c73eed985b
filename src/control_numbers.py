import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)

CONTROL_NUMBER_LENGTH = 9


def generate_control_number(index: int, now_ms: Optional[int] = None) -> str:
    """
    Derives a 9-digit control number for the document at `index` in the current batch.

    Takes the last nine digits of the epoch time in milliseconds, adds the index and keeps
    the last nine digits of the zero-padded result. Numbers are distinct within a batch
    because indices differ; they are not unique across runs.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    base = int(str(now_ms)[-CONTROL_NUMBER_LENGTH:]) + index
    control_number = str(base).zfill(CONTROL_NUMBER_LENGTH)[-CONTROL_NUMBER_LENGTH:]
    logger.debug(f"Control number for batch index {index}: {control_number}")
    return control_number
