from __future__ import annotations
import threading
import time
import weakref
from typing import Callable, Optional
import requests
import structlog

from app.config import DEFAULT_COLLECTOR_URL
from app.reporting.payload import ContextUpdatePayload
from core.browser.identity import BrowserIdentity
from core.hooks.events import now_ms

log = structlog.get_logger()

Dispatcher = Callable[[Callable[[], None]], None]


class ContextReporter:
    """
    Fire-and-forget delivery of context snapshots to the local collector.
    At most one attempt per report(); failures are logged and dropped.
    """
    def __init__(
        self,
        collector_url: str = DEFAULT_COLLECTOR_URL,
        timeout_s: float = 5.0,
        session: Optional[requests.Session] = None,
        dispatch: Optional[Dispatcher] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.collector_url = collector_url
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.dispatch = dispatch or self._spawn
        self.clock = clock
        self._inflight: "weakref.WeakSet[threading.Thread]" = weakref.WeakSet()
        self._inflight_lock = threading.Lock()

    def _spawn(self, task: Callable[[], None]) -> None:
        """One-shot background task per delivery; only close() ever waits on it."""
        thr = threading.Thread(target=task, name="context-report", daemon=True)
        with self._inflight_lock:
            self._inflight.add(thr)
        thr.start()

    def close(self, timeout: float = 2.0) -> int:
        """Give in-flight deliveries up to `timeout` seconds to finish. Returns how many are still running."""
        with self._inflight_lock:
            pending = list(self._inflight)
        deadline = time.monotonic() + timeout
        for thr in pending:
            thr.join(max(0.0, deadline - time.monotonic()))
        left = sum(1 for thr in pending if thr.is_alive())
        if left:
            log.debug("report.close.abandoned", pending=left)
        return left

    def build_payload(self, url: str, title: str, identity: BrowserIdentity) -> ContextUpdatePayload:
        return ContextUpdatePayload(
            url=url,
            title=title,
            browser_name=identity.value,
            timestamp=self.clock(),
        )

    def report(self, url: str, title: str, identity: BrowserIdentity) -> None:
        payload = self.build_payload(url, title, identity)
        try:
            self.dispatch(lambda: self.deliver(payload))
        except RuntimeError as e:
            # can't start new thread (interpreter shutting down)
            log.debug("report.dispatch.failed", err=str(e))

    def deliver(self, payload: ContextUpdatePayload) -> Optional[int]:
        """Single POST attempt. Returns the HTTP status, or None when the collector was unreachable."""
        try:
            resp = self.session.post(
                self.collector_url,
                json=payload.to_record(),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            # collector not running yet is the normal case
            log.debug("report.unreachable", url=self.collector_url, err=str(e))
            return None

        if 200 <= resp.status_code < 300:
            log.debug("report.sent", status=resp.status_code, ts=payload.timestamp)
        else:
            log.warning("report.failed", status=resp.status_code, ts=payload.timestamp)
        return resp.status_code
