# app/controller/event_bus.py
from __future__ import annotations
from queue import Queue

# Host signals flow adapter -> consumer through one bounded queue.
# A fresh queue per runtime keeps tests independent of each other.
def new_signal_queue(maxsize: int = 1000) -> Queue:
    return Queue(maxsize=maxsize)
