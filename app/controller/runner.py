from __future__ import annotations
import threading
from queue import Empty, Queue
from typing import Callable, Optional
import structlog

from app.config import TrackerConfig
from app.controller.context_controller import ContextController
from app.controller.event_bus import new_signal_queue
from app.reporting.reporter import ContextReporter
from core.browser.identity import BrowserIdentity, resolve_identity
from core.hooks.event_source import EventSource
from core.hooks.events import BaseSignal
from core.hooks.native_host import NativeMessagingSource

log = structlog.get_logger()

class TrackerRuntime:
    """Starts/stops the event source; a single consumer thread feeds the controller."""
    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        source: Optional[EventSource] = None,
        reporter: Optional[ContextReporter] = None,
        identity: Optional[BrowserIdentity] = None,
        signal_queue: Optional[Queue] = None,
        on_signal: Optional[Callable[[BaseSignal, int], None]] = None,
    ):
        self.config = config or TrackerConfig()
        self.queue = signal_queue if signal_queue is not None else new_signal_queue(self.config.queue_maxsize)
        self.source = source or NativeMessagingSource(self.queue)
        self.identity = identity or resolve_identity(self.config.browser_signature)
        self.reporter = reporter or ContextReporter(
            collector_url=self.config.collector_url,
            timeout_s=self.config.request_timeout_s,
        )
        self.controller = ContextController(self.source, self.reporter, self.identity)

        self._consumer_thr: Optional[threading.Thread] = None
        self._stop_evt = threading.Event()
        self._on_signal = on_signal
        self.processed = 0

    def start(self) -> None:
        self._stop_evt.clear()
        self._consumer_thr = threading.Thread(target=self._consume_loop, name="tracker-consumer", daemon=True)
        self._consumer_thr.start()
        self.source.start()
        log.info("tracker.start", browser=self.identity.value, collector=self.config.collector_url)

    def stop(self) -> None:
        self.source.stop()
        self._stop_evt.set()
        consumer_busy = False
        if self._consumer_thr:
            self._consumer_thr.join(timeout=1.0)
            consumer_busy = self._consumer_thr.is_alive()
            self._consumer_thr = None
        # signals the host already sent still get handled
        if consumer_busy:
            log.warning("tracker.stop.consumer_busy", queued=self.queue.qsize())
        else:
            self.drain()
        self.reporter.close(self.config.request_timeout_s)
        log.info("tracker.stop", processed=self.processed)

    @property
    def stopped(self) -> bool:
        return self._stop_evt.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the source's input closes or stop() is called."""
        waiter = getattr(self.source, "wait_closed", None)
        if waiter is None:
            return self._stop_evt.wait(timeout)
        return waiter(timeout)

    def drain(self) -> int:
        """Handle every queued signal on the calling thread."""
        n = 0
        while True:
            try:
                sig = self.queue.get_nowait()
            except Empty:
                return n
            self._dispatch(sig)
            n += 1

    def _consume_loop(self):
        while not self._stop_evt.is_set():
            try:
                sig: BaseSignal = self.queue.get(timeout=0.5)
            except Empty:
                continue
            self._dispatch(sig)

    def _dispatch(self, sig: BaseSignal) -> None:
        try:
            self.controller.handle(sig)
        except Exception as e:
            log.warning("tracker.controller.error", etype=sig.etype.name, err=str(e))

        self.processed += 1
        if self._on_signal:
            try:
                self._on_signal(sig, self.processed)
            except Exception as e:
                log.warning("tracker.on_signal.error", err=str(e))
