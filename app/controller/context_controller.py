from __future__ import annotations
from typing import Optional
import structlog

from app.controller.context_state import ContextState, TrackedContext
from app.reporting.reporter import ContextReporter
from core.browser.identity import BrowserIdentity
from core.hooks.event_source import EventSource, TabLookupError
from core.hooks.events import (
    BaseSignal, SignalType, ChangeInfo, TabInfo,
    TabActivated, TabUpdated, WindowFocusChanged, WINDOW_ID_NONE,
)

log = structlog.get_logger()


class ContextController:
    """
    Tracks which tab is focused and decides when a context report is due.

    States are Uninitialized (no tracked context) and Tracking(tab, url, title).
      - activated: look the tab up, report, track it
      - updated: only a URL change on the tracked tab is reported
      - focus changed to a real window: re-report the tracked tab;
        if it is gone, drop back to Uninitialized
      - startup / installed: seed from the active tab in the current window
    Lookup failures are logged and never escape a transition.
    """
    def __init__(
        self,
        source: EventSource,
        reporter: ContextReporter,
        identity: BrowserIdentity,
        state: Optional[ContextState] = None,
    ):
        self.source = source
        self.reporter = reporter
        self.identity = identity
        self.state = state or ContextState()

    def handle(self, signal: BaseSignal) -> None:
        etype = signal.etype
        if etype == SignalType.ACTIVATED and isinstance(signal, TabActivated):
            self.on_activated(signal.tab_id)
        elif etype == SignalType.UPDATED and isinstance(signal, TabUpdated):
            self.on_updated(signal.tab_id, signal.change_info, signal.tab)
        elif etype == SignalType.FOCUS_CHANGED and isinstance(signal, WindowFocusChanged):
            self.on_focus_changed(signal.window_id)
        elif etype in (SignalType.STARTUP, SignalType.INSTALLED):
            self.on_lifecycle(etype.name.lower())
        else:
            log.debug("controller.signal.ignored", etype=getattr(etype, "name", None))

    def on_activated(self, tab_id: int) -> None:
        try:
            tab = self.source.get_tab(tab_id)
        except TabLookupError as e:
            log.debug("controller.lookup_failed", signal="activated", tab_id=tab_id, err=str(e))
            return
        self._track_and_report(tab_id, tab.url, tab.title)

    def on_updated(self, tab_id: int, change_info: ChangeInfo, tab: Optional[TabInfo]) -> None:
        if tab_id != self.state.tracked_tab_id:
            return
        # title-only changes follow the navigation that already reported
        if not change_info.url or tab is None:
            return
        self._track_and_report(tab_id, tab.url, tab.title)

    def on_focus_changed(self, window_id: int) -> None:
        current = self.state.get_current()
        if window_id == WINDOW_ID_NONE or current is None:
            return
        try:
            tab = self.source.get_tab(current.tab_id)
        except TabLookupError as e:
            # the tracked tab was closed; wait for the next activation
            log.debug("controller.lookup_failed", signal="focus_changed", tab_id=current.tab_id, err=str(e))
            self.state.clear()
            return
        self._track_and_report(current.tab_id, tab.url, tab.title)

    def on_lifecycle(self, hook: str = "startup") -> None:
        try:
            tab = self.source.query_active_tab()
        except TabLookupError as e:
            log.debug("controller.lookup_failed", signal=hook, err=str(e))
            return
        if tab is None:
            log.debug("controller.no_active_tab", hook=hook)
            return
        self._track_and_report(tab.id, tab.url, tab.title)

    def _track_and_report(self, tab_id: int, url: str, title: str) -> TrackedContext:
        ctx = self.state.track(tab_id, url, title)
        self.reporter.report(url, title, self.identity)
        return ctx
