from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar
import structlog

log = structlog.get_logger()

DEFAULT_COLLECTOR_URL = "http://127.0.0.1:7890/api/browser-context"

_TRUTHY = ("1", "true", "yes", "on")

N = TypeVar("N", int, float)


def _number(env: Mapping[str, str], key: str, cast: Callable[[str], N], default: N) -> N:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        value = None
    if value is None or not value > 0:
        log.warning("config.invalid", key=key, value=raw, using=default)
        return default
    return value


@dataclass(frozen=True)
class TrackerConfig:
    # collector endpoint (loopback daemon)
    collector_url: str = DEFAULT_COLLECTOR_URL
    request_timeout_s: float = 5.0

    # signal queue between adapter and controller
    queue_maxsize: int = 1000

    # overrides parent-process detection when set
    browser_signature: Optional[str] = None

    debug: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "TrackerConfig":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            collector_url=env.get("TRACKER_COLLECTOR_URL", "").strip() or defaults.collector_url,
            request_timeout_s=_number(env, "TRACKER_REQUEST_TIMEOUT", float, defaults.request_timeout_s),
            queue_maxsize=_number(env, "TRACKER_QUEUE_MAXSIZE", int, defaults.queue_maxsize),
            browser_signature=env.get("TRACKER_BROWSER_SIGNATURE"),
            debug=env.get("TRACKER_DEBUG", "").lower() in _TRUTHY,
        )
