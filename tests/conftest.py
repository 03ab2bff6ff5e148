# tests/conftest.py
# Shared fakes: an in-memory event source and a recording HTTP session.
from __future__ import annotations
import itertools
from typing import Dict, List, Optional

import pytest
import requests

from app.reporting.reporter import ContextReporter
from core.hooks.event_source import EventSource, TabLookupError
from core.hooks.events import TabInfo


class FakeSource(EventSource):
    def __init__(self, tabs: Optional[List[TabInfo]] = None, active: Optional[TabInfo] = None):
        super().__init__(out_q=None)
        self.tabs: Dict[int, TabInfo] = {t.id: t for t in tabs or []}
        self.active = active

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def get_tab(self, tab_id: int) -> TabInfo:
        if tab_id not in self.tabs:
            raise TabLookupError(tab_id)
        return self.tabs[tab_id]

    def query_active_tab(self) -> Optional[TabInfo]:
        return self.active


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


class FakeSession:
    """Stands in for requests.Session; records every POST."""
    def __init__(self, status_code: int = 200, error: Optional[Exception] = None):
        self.status_code = status_code
        self.error = error
        self.posts: List[dict] = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status_code)


def run_now(task):
    task()


@pytest.fixture
def clock():
    counter = itertools.count(1_700_000_000_000)
    return lambda: next(counter)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def down_session():
    return FakeSession(error=requests.ConnectionError("connection refused"))


@pytest.fixture
def reporter(session, clock):
    return ContextReporter(collector_url="http://127.0.0.1:7890/api/browser-context",
                           session=session, dispatch=run_now, clock=clock)
