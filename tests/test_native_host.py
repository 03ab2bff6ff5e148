# tests/test_native_host.py
# What this covers:
#   - Frame decoding (length prefix, JSON object with a type, size cap)
#   - Message -> signal translation and the tab mirror it maintains
#   - The reader thread: bad frames are skipped, EOF closes the source

import io
import queue
import struct

import pytest

from core.hooks.event_source import TabLookupError
from core.hooks.events import (
    SignalType, TabActivated, TabUpdated, WindowFocusChanged, WINDOW_ID_NONE,
)
from core.hooks.native_host import (
    NativeMessagingSource, MessageDecodeError, MAX_FRAME_BYTES,
    encode_frame, parse_frame, read_frame,
)


def _drain(q: queue.Queue):
    out = []
    while True:
        try:
            out.append(q.get_nowait())
        except Exception:
            break
    return out


def _tab(i, url, title, window=1, active=False):
    return {"id": i, "url": url, "title": title, "windowId": window, "active": active}


def test_frame_roundtrip_and_eof():
    stream = io.BytesIO(encode_frame({"type": "startup"}))
    assert parse_frame(read_frame(stream)) == {"type": "startup"}
    assert read_frame(stream) is None


def test_truncated_body_is_eof():
    stream = io.BytesIO(struct.pack("=I", 50) + b'{"type"')
    assert read_frame(stream) is None


def test_oversized_frame_rejected_and_skipped():
    big = struct.pack("=I", MAX_FRAME_BYTES + 1) + b" " * (MAX_FRAME_BYTES + 1)
    stream = io.BytesIO(big + encode_frame({"type": "installed"}))
    with pytest.raises(MessageDecodeError):
        read_frame(stream)
    assert parse_frame(read_frame(stream))["type"] == "installed"


@pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b'{"tabId": 3}', b"\xff\xfe"])
def test_bad_bodies_rejected(body):
    with pytest.raises(MessageDecodeError):
        parse_frame(body)


def test_apply_translates_messages():
    src = NativeMessagingSource(queue.Queue(), stream=io.BytesIO())
    assert src.apply({"type": "tabs", "tabs": [_tab(5, "https://x.com", "Home", active=True)],
                      "focusedWindowId": 1}) is None

    sig = src.apply({"type": "activated", "tabId": 5, "windowId": 1})
    assert isinstance(sig, TabActivated) and sig.tab_id == 5

    sig = src.apply({"type": "updated", "tabId": 5, "changeInfo": {"url": "https://x.com/feed"},
                     "tab": _tab(5, "https://x.com/feed", "Feed", active=True)})
    assert isinstance(sig, TabUpdated)
    assert sig.change_info.url == "https://x.com/feed"
    assert src.get_tab(5).title == "Feed"

    sig = src.apply({"type": "updated", "tabId": 5, "changeInfo": {"title": "Feed (2)"},
                     "tab": _tab(5, "https://x.com/feed", "Feed (2)", active=True)})
    assert sig.change_info.url is None

    sig = src.apply({"type": "focusChanged", "windowId": WINDOW_ID_NONE})
    assert isinstance(sig, WindowFocusChanged) and sig.window_id == WINDOW_ID_NONE

    assert src.apply({"type": "startup"}).etype == SignalType.STARTUP
    assert src.apply({"type": "installed"}).etype == SignalType.INSTALLED
    assert src.apply({"type": "zoomChanged"}) is None


def test_removed_tab_fails_lookup():
    src = NativeMessagingSource(queue.Queue(), stream=io.BytesIO())
    src.apply({"type": "created", "tab": _tab(9, "https://z.com", "Z")})
    assert src.get_tab(9).url == "https://z.com"
    src.apply({"type": "removed", "tabId": 9})
    with pytest.raises(TabLookupError):
        src.get_tab(9)


def test_reader_thread_skips_bad_frames_and_closes_on_eof():
    frames = (
        encode_frame({"type": "created", "tab": _tab(2, "https://b.com", "B")})
        + struct.pack("=I", 4) + b"nope"
        + encode_frame({"type": "activated"})  # missing tabId
        + encode_frame({"type": "activated", "tabId": 2, "windowId": 1})
    )
    q = queue.Queue()
    src = NativeMessagingSource(q, stream=io.BytesIO(frames))
    src.start()
    assert src.wait_closed(timeout=2.0)
    src.stop()

    signals = _drain(q)
    assert [type(s).__name__ for s in signals] == ["TabActivated"]
    assert src.query_active_tab().id == 2
