import asyncio
from types import SimpleNamespace

import pytest

from browsers import (
    AirtopBrowserService,
    BrowserService,
    PlaywrightBrowserService,
    make_browser_service,
)
from models import EnrichConfig


class RecordingAirtopClient:
    """Stands in for airtop.AsyncAirtop, returning SDK-shaped responses."""

    def __init__(self):
        self.calls = []
        self.sessions = SimpleNamespace(create=self._create_session, terminate=self._terminate)
        self.windows = SimpleNamespace(
            create=self._create_window, load_url=self._load_url, page_query=self._page_query
        )

    async def _create_session(self, **kwargs):
        self.calls.append(("sessions.create", (), kwargs))
        return SimpleNamespace(data=SimpleNamespace(id="sess-1"))

    async def _terminate(self, *args, **kwargs):
        self.calls.append(("sessions.terminate", args, kwargs))

    async def _create_window(self, *args, **kwargs):
        self.calls.append(("windows.create", args, kwargs))
        return SimpleNamespace(data=SimpleNamespace(window_id="win-1"))

    async def _load_url(self, *args, **kwargs):
        self.calls.append(("windows.load_url", args, kwargs))

    async def _page_query(self, *args, **kwargs):
        self.calls.append(("windows.page_query", args, kwargs))
        return SimpleNamespace(data=SimpleNamespace(model_response="https://www.linkedin.com/in/jane"))


@pytest.fixture
def airtop_service():
    service = AirtopBrowserService(api_key="test-key")
    service.client = RecordingAirtopClient()
    return service


def test_airtop_maps_every_operation(airtop_service):
    async def drive():
        session_id = await airtop_service.create_session()
        window_id = await airtop_service.create_window(session_id)
        await airtop_service.load_url(session_id, window_id, "https://www.google.com/search?q=x")
        answer = await airtop_service.page_query(session_id, window_id, "find it")
        await airtop_service.terminate_session(session_id)
        return session_id, window_id, answer

    session_id, window_id, answer = asyncio.run(drive())

    assert (session_id, window_id) == ("sess-1", "win-1")
    assert answer == "https://www.linkedin.com/in/jane"
    assert airtop_service.client.calls == [
        ("sessions.create", (), {}),
        ("windows.create", ("sess-1",), {}),
        ("windows.load_url", ("sess-1", "win-1"), {"url": "https://www.google.com/search?q=x"}),
        ("windows.page_query", ("sess-1", "win-1"), {"prompt": "find it"}),
        ("sessions.terminate", ("sess-1",), {}),
    ]


def test_make_browser_service_picks_backend():
    assert isinstance(make_browser_service(EnrichConfig(backend="airtop"), "a-key"), AirtopBrowserService)
    local = make_browser_service(EnrichConfig(backend="playwright", browser="firefox"), "g-key")
    assert isinstance(local, PlaywrightBrowserService)
    assert local.browser == "firefox"
    with pytest.raises(ValueError, match="selenium"):
        make_browser_service(EnrichConfig(backend="selenium"), "key")


def test_browser_service_is_abstract():
    with pytest.raises(TypeError):
        BrowserService()

    class Partial(BrowserService):
        async def create_session(self):
            return "s"

    with pytest.raises(TypeError):
        Partial()


class _Closable:
    def __init__(self, name, log, fail=False):
        self.name = name
        self.log = log
        self.fail = fail

    async def close(self):
        self.log.append(self.name)
        if self.fail:
            raise RuntimeError(f"{self.name} close failed")


class _Playwright:
    def __init__(self, log):
        self.log = log

    async def stop(self):
        self.log.append("playwright.stop")


def test_playwright_terminate_closes_browser_when_context_close_fails():
    log = []
    service = PlaywrightBrowserService(api_key="test-key")
    service._sessions["s1"] = (_Closable("browser", log), _Closable("context", log, fail=True))
    service._windows[("s1", "w1")] = object()

    with pytest.raises(RuntimeError):
        asyncio.run(service.terminate_session("s1"))

    assert log == ["context", "browser"]
    assert service._sessions == {} and service._windows == {}


def test_playwright_aclose_stops_even_when_a_session_fails(capsys):
    log = []
    service = PlaywrightBrowserService(api_key="test-key")
    service._playwright = _Playwright(log)
    service._sessions["s1"] = (_Closable("browser1", log, fail=True), _Closable("context1", log))
    service._sessions["s2"] = (_Closable("browser2", log), _Closable("context2", log))

    asyncio.run(service.aclose())

    assert log == ["context1", "browser1", "context2", "browser2", "playwright.stop"]
    assert service._playwright is None
    assert "s1" in capsys.readouterr().out
