from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Dict, Any
import threading
import time
from datetime import datetime, timezone

# Reserved window id meaning "no browser window has focus".
WINDOW_ID_NONE = -1

# --- timing helpers ---
def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")

def mono_ts() -> float:
    # Monotonic high-res timestamp (immune to system clock changes)
    return time.perf_counter()

_ms_lock = threading.Lock()
_last_ms = 0

def now_ms() -> int:
    """Wall-clock milliseconds since the epoch (wire timestamp), strictly increasing per process."""
    global _last_ms
    with _ms_lock:
        _last_ms = max(time.time_ns() // 1_000_000, _last_ms + 1)
        return _last_ms

# --- core enums ---
class SignalType(Enum):
    """Top-level classifier for signal routing."""
    ACTIVATED = auto()
    UPDATED = auto()
    FOCUS_CHANGED = auto()
    STARTUP = auto()
    INSTALLED = auto()

# --- host snapshots ---
@dataclass(frozen=True)
class TabInfo:
    """Snapshot of one host tab as returned by a lookup."""
    id: int
    url: str = ""
    title: str = ""
    window_id: Optional[int] = None
    active: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TabInfo":
        if "id" not in d:
            raise ValueError("tab object without id")
        return cls(
            id=int(d["id"]),
            url=d.get("url") or "",
            title=d.get("title") or "",
            window_id=d.get("windowId"),
            active=bool(d.get("active", False)),
        )

@dataclass(frozen=True)
class ChangeInfo:
    """Subset of a tab update the host reports; only `url` matters for tracking."""
    url: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "ChangeInfo":
        d = d or {}
        return cls(url=d.get("url") or None, title=d.get("title"), status=d.get("status"))

# --- base signal ---
@dataclass(frozen=True)
class BaseSignal:
    """Common shape for all host signals."""
    etype: SignalType = field(init=False)        # auto-set by subclasses
    t_mono: float = field(default_factory=mono_ts)

    def to_record(self) -> Dict[str, Any]:
        return {
            "etype": self.etype.name,
            "t_utc": utc_iso(),
            "t_mono": self.t_mono,
        }

@dataclass(frozen=True)
class TabActivated(BaseSignal):
    """User switched to another tab."""
    tab_id: int = 0

    def __post_init__(self):
        object.__setattr__(self, "etype", SignalType.ACTIVATED)

    def to_record(self) -> Dict[str, Any]:
        base = super().to_record()
        base["tab_id"] = self.tab_id
        return base

@dataclass(frozen=True)
class TabUpdated(BaseSignal):
    """A tab navigated or changed metadata."""
    tab_id: int = 0
    change_info: ChangeInfo = field(default_factory=ChangeInfo)
    tab: Optional[TabInfo] = None

    def __post_init__(self):
        object.__setattr__(self, "etype", SignalType.UPDATED)

    def to_record(self) -> Dict[str, Any]:
        base = super().to_record()
        base.update({
            "tab_id": self.tab_id,
            "changed_url": self.change_info.url is not None,
        })
        return base

@dataclass(frozen=True)
class WindowFocusChanged(BaseSignal):
    """Focus moved to another window, or away from the browser (WINDOW_ID_NONE)."""
    window_id: int = WINDOW_ID_NONE

    def __post_init__(self):
        object.__setattr__(self, "etype", SignalType.FOCUS_CHANGED)

    def to_record(self) -> Dict[str, Any]:
        base = super().to_record()
        base["window_id"] = self.window_id
        return base

@dataclass(frozen=True)
class RuntimeStartup(BaseSignal):
    """Browser profile started with the tracker loaded."""

    def __post_init__(self):
        object.__setattr__(self, "etype", SignalType.STARTUP)

@dataclass(frozen=True)
class RuntimeInstalled(BaseSignal):
    """Tracker was installed, updated or reloaded."""

    def __post_init__(self):
        object.__setattr__(self, "etype", SignalType.INSTALLED)
