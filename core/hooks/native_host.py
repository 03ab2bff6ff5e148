from __future__ import annotations
import json
import struct
import sys
import threading
from queue import Queue
from typing import Any, BinaryIO, Dict, Optional
import structlog

from core.hooks.events import (
    BaseSignal, TabInfo, ChangeInfo,
    TabActivated, TabUpdated, WindowFocusChanged, RuntimeStartup, RuntimeInstalled,
)
from core.hooks.event_source import EventSource
from core.hooks.tab_registry import TabRegistry
from core.utils.queueing import safe_put

log = structlog.get_logger()

# Native messaging frame: 4-byte native-endian length, then UTF-8 JSON.
_HEADER = struct.Struct("=I")
MAX_FRAME_BYTES = 1024 * 1024


class MessageDecodeError(ValueError):
    """A native message frame could not be decoded."""


def _read_exact(stream: BinaryIO, n: int) -> bytes:
    buf = b""
    while len(buf) < n:
        chunk = stream.read(n - len(buf))
        if not chunk:
            break
        buf += chunk
    return buf


def read_frame(stream: BinaryIO) -> Optional[bytes]:
    """Read one frame body. Returns None on EOF."""
    header = _read_exact(stream, _HEADER.size)
    if len(header) < _HEADER.size:
        return None
    (length,) = _HEADER.unpack(header)
    if length > MAX_FRAME_BYTES:
        # discard the body so the next header lines up
        _read_exact(stream, length)
        raise MessageDecodeError(f"frame of {length} bytes exceeds {MAX_FRAME_BYTES}")
    body = _read_exact(stream, length)
    if len(body) < length:
        return None
    return body


def encode_frame(message: Dict[str, Any]) -> bytes:
    body = json.dumps(message, separators=(",", ":")).encode("utf-8")
    return _HEADER.pack(len(body)) + body


def parse_frame(body: bytes) -> Dict[str, Any]:
    try:
        msg = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MessageDecodeError(f"invalid JSON frame: {e}") from e
    if not isinstance(msg, dict) or not isinstance(msg.get("type"), str):
        raise MessageDecodeError("frame is not an object with a 'type'")
    return msg


class NativeMessagingSource(EventSource):
    """
    Reads tab/window messages the browser forwards over native messaging,
    mirrors tab state in a TabRegistry and emits one signal per relevant message.
    """
    def __init__(self, out_q: Queue, stream: Optional[BinaryIO] = None, registry: Optional[TabRegistry] = None):
        super().__init__(out_q)
        self.stream = stream if stream is not None else sys.stdin.buffer
        self.registry = registry or TabRegistry()
        self._thr: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._closed = threading.Event()

    def start(self) -> None:
        if self._thr and self._thr.is_alive(): return
        self._stop.clear()
        self._closed.clear()
        self._thr = threading.Thread(target=self._loop, name="native-host-reader", daemon=True)
        self._thr.start()
        log.info("native.start")

    def stop(self) -> None:
        self._stop.set()
        if self._thr:
            # a blocked read on stdin cannot be interrupted; the thread is a daemon
            self._thr.join(timeout=1.0)
            self._thr = None
        log.info("native.stop")

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        """Block until the input stream reaches EOF."""
        return self._closed.wait(timeout)

    def get_tab(self, tab_id: int) -> TabInfo:
        return self.registry.get(tab_id)

    def query_active_tab(self) -> Optional[TabInfo]:
        return self.registry.query_active_tab()

    def _loop(self):
        try:
            while not self._stop.is_set():
                try:
                    body = read_frame(self.stream)
                except MessageDecodeError as e:
                    log.warning("native.frame.rejected", err=str(e))
                    continue
                except OSError as e:
                    log.warning("native.read.error", err=str(e))
                    break
                if body is None:
                    log.info("native.eof")
                    break
                try:
                    signal = self.apply(parse_frame(body))
                except (MessageDecodeError, KeyError, TypeError, ValueError) as e:
                    log.warning("native.message.rejected", err=str(e))
                    continue
                if signal is not None:
                    safe_put(self.out_q, signal)
        finally:
            self._closed.set()

    def apply(self, msg: Dict[str, Any]) -> Optional[BaseSignal]:
        """Update the tab mirror from one message; return the signal it carries, if any."""
        kind = msg["type"]
        if kind == "tabs":
            tabs = [TabInfo.from_dict(t) for t in msg.get("tabs") or []]
            self.registry.replace_all(tabs, focused_window=msg.get("focusedWindowId"))
            log.debug("native.snapshot", tabs=len(tabs))
            return None
        if kind == "created":
            self.registry.upsert(TabInfo.from_dict(msg["tab"]))
            return None
        if kind == "removed":
            self.registry.remove(int(msg["tabId"]))
            return None
        if kind == "activated":
            tab_id = int(msg["tabId"])
            if isinstance(msg.get("tab"), dict):
                self.registry.upsert(TabInfo.from_dict(msg["tab"]))
            self.registry.mark_active(tab_id, msg.get("windowId"))
            return TabActivated(tab_id=tab_id)
        if kind == "updated":
            tab = TabInfo.from_dict(msg["tab"])
            self.registry.upsert(tab)
            return TabUpdated(
                tab_id=int(msg["tabId"]),
                change_info=ChangeInfo.from_dict(msg.get("changeInfo")),
                tab=tab,
            )
        if kind == "focusChanged":
            window_id = int(msg["windowId"])
            self.registry.set_focused_window(window_id)
            return WindowFocusChanged(window_id=window_id)
        if kind == "startup":
            return RuntimeStartup()
        if kind == "installed":
            return RuntimeInstalled()
        log.debug("native.message.unknown", type=kind)
        return None
