from __future__ import annotations
import os
from enum import Enum
from typing import Optional
import structlog

log = structlog.get_logger()

# Substring that marks the alternate Chromium build in a host signature.
ALT_BROWSER_MARKER = "Helium"


class BrowserIdentity(Enum):
    """Browser family hosting the tracker; value is the wire `browser_name`."""
    HELIUM = "Helium"
    CHROME = "Chrome"


def identify(signature: str) -> BrowserIdentity:
    if ALT_BROWSER_MARKER in (signature or ""):
        return BrowserIdentity.HELIUM
    return BrowserIdentity.CHROME


def host_signature() -> str:
    """
    Describe the process that launched us. A native messaging host is started
    by the browser itself, so the parent's name, exe and cmdline identify it.
    """
    try:
        import psutil
        parent = psutil.Process(os.getppid())
        parts = [parent.name()]
        try:
            parts.append(parent.exe())
            parts.extend(parent.cmdline())
        except (psutil.AccessDenied, psutil.ZombieProcess):
            pass
        return " ".join(p for p in parts if p)
    except Exception as e:
        log.debug("identity.signature.error", err=str(e))
        return ""


def resolve_identity(override: Optional[str] = None) -> BrowserIdentity:
    """Compute the identity once at startup; callers hold on to the result."""
    signature = override if override is not None else host_signature()
    identity = identify(signature)
    log.info("identity.resolved", browser=identity.value, from_override=override is not None)
    return identity
