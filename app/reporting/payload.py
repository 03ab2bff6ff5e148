from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict

@dataclass(frozen=True)
class ContextUpdatePayload:
    """Wire body for the collector's browser-context endpoint."""
    url: str
    title: str
    browser_name: str
    timestamp: int  # ms since epoch

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)
