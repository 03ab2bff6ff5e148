# core/utils/queueing.py
from __future__ import annotations
from queue import Queue, Full, Empty
import structlog

log = structlog.get_logger()

def safe_put(q: Queue, item) -> bool:
    """
    Put without blocking; if the queue is full, drop the oldest item and retry.
    Returns True when an older item had to be dropped.
    """
    try:
        q.put_nowait(item)
        return False
    except Full:
        try:
            dropped = q.get_nowait()  # drop oldest
            log.warning("queue.drop_oldest", dropped=type(dropped).__name__, maxsize=q.maxsize)
        except Empty:
            pass
        q.put_nowait(item)
        return True
