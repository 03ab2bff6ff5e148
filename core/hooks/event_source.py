"""
Capability interface over the host browser's tab/window signals.

Adapters push one signal object per host event (see core.hooks.events) into
the shared queue and answer the two lookups the controller needs. Nothing
outside an adapter touches host-specific APIs.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from queue import Queue
from typing import Optional

from core.hooks.events import TabInfo


class TabLookupError(LookupError):
    """A tab referenced by a signal no longer exists when queried."""

    def __init__(self, tab_id: int):
        super().__init__(f"no tab with id {tab_id}")
        self.tab_id = tab_id


class EventSource(ABC):
    def __init__(self, out_q: Queue):
        self.out_q = out_q

    @abstractmethod
    def start(self) -> None:
        """Begin delivering signals into out_q."""

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering signals; idempotent."""

    @abstractmethod
    def get_tab(self, tab_id: int) -> TabInfo:
        """Return the current snapshot of tab_id or raise TabLookupError."""

    @abstractmethod
    def query_active_tab(self) -> Optional[TabInfo]:
        """Return the active tab in the current window, or None."""
