"""Wall-clock timing for cycle stages."""
import contextlib
import logging
import time
from typing import Iterator

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def timer(name: str, *, level: int = logging.DEBUG) -> Iterator[dict]:
    """Log how long the block took; the yielded dict receives ``elapsed``."""
    record = {"name": name, "elapsed": 0.0}
    start = time.perf_counter()
    try:
        yield record
    finally:
        record["elapsed"] = time.perf_counter() - start
        logger.log(level, "[PROFILE] %s: %.4fs", name, record["elapsed"])
