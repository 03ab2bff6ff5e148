from __future__ import annotations
import threading
from dataclasses import replace
from typing import Dict, Iterable, Optional

from core.hooks.events import TabInfo, WINDOW_ID_NONE
from core.hooks.event_source import TabLookupError


class TabRegistry:
    """
    Mirror of the host's tabs, fed by adapter messages.
    Written by the adapter's reader thread, read by the consumer thread.
    """
    def __init__(self):
        self._lock = threading.RLock()
        self._tabs: Dict[int, TabInfo] = {}
        self._active_by_window: Dict[Optional[int], int] = {}
        self._focused_window: Optional[int] = None
        self._last_activated_window: Optional[int] = None

    def replace_all(self, tabs: Iterable[TabInfo], focused_window: Optional[int] = None) -> None:
        with self._lock:
            self._tabs = {}
            self._active_by_window = {}
            for tab in tabs:
                self._store(tab)
            if focused_window is not None and focused_window != WINDOW_ID_NONE:
                self._focused_window = focused_window

    def upsert(self, tab: TabInfo) -> None:
        with self._lock:
            prev = self._tabs.get(tab.id)
            # Update payloads may omit the window; keep the one we know.
            if tab.window_id is None and prev is not None:
                tab = replace(tab, window_id=prev.window_id)
            self._store(tab)

    def remove(self, tab_id: int) -> None:
        with self._lock:
            tab = self._tabs.pop(tab_id, None)
            if tab is not None and self._active_by_window.get(tab.window_id) == tab_id:
                del self._active_by_window[tab.window_id]

    def mark_active(self, tab_id: int, window_id: Optional[int]) -> None:
        with self._lock:
            tab = self._tabs.get(tab_id)
            if window_id is None and tab is not None:
                window_id = tab.window_id
            prev_id = self._active_by_window.get(window_id)
            if prev_id is not None and prev_id != tab_id and prev_id in self._tabs:
                self._tabs[prev_id] = replace(self._tabs[prev_id], active=False)
            if tab is not None:
                self._tabs[tab_id] = replace(tab, active=True, window_id=window_id)
            self._active_by_window[window_id] = tab_id
            self._last_activated_window = window_id

    def set_focused_window(self, window_id: int) -> None:
        # Focus leaving the browser keeps the last real window as "current".
        if window_id == WINDOW_ID_NONE:
            return
        with self._lock:
            self._focused_window = window_id

    def get(self, tab_id: int) -> TabInfo:
        with self._lock:
            tab = self._tabs.get(tab_id)
        if tab is None:
            raise TabLookupError(tab_id)
        return tab

    def query_active_tab(self) -> Optional[TabInfo]:
        with self._lock:
            window = self._focused_window
            if window is None or window not in self._active_by_window:
                window = self._last_activated_window
            tab_id = self._active_by_window.get(window)
            if tab_id is None:
                return None
            return self._tabs.get(tab_id)

    def _store(self, tab: TabInfo) -> None:
        self._tabs[tab.id] = tab
        if tab.active:
            self._active_by_window[tab.window_id] = tab.id
            if self._last_activated_window is None:
                self._last_activated_window = tab.window_id
