from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

@dataclass(frozen=True)
class TrackedContext:
    tab_id: int
    url: str = ""
    title: str = ""

class ContextState:
    """
    The one record of which document is believed focused.
    None means Uninitialized. Only the controller's consumer thread writes it.
    """
    def __init__(self):
        self._current: Optional[TrackedContext] = None

    def track(self, tab_id: int, url: str, title: str) -> TrackedContext:
        self._current = TrackedContext(tab_id=tab_id, url=url, title=title)
        return self._current

    def clear(self) -> None:
        self._current = None

    def get_current(self) -> Optional[TrackedContext]:
        return self._current

    @property
    def is_tracking(self) -> bool:
        return self._current is not None

    @property
    def tracked_tab_id(self) -> Optional[int]:
        return self._current.tab_id if self._current else None
