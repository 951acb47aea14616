import asyncio
import itertools
from urllib.parse import unquote

import pytest

from browsers import BrowserService
from models import ProfileWithQuery, UserProfile
from prompts import LinkedInPrompts


class FakeBrowserService(BrowserService):
    """In-memory browser service that records every call it receives."""

    def __init__(
        self,
        responses=None,
        delays=None,
        fail_session=False,
        fail_window=False,
        fail_terminate=False,
        fail_for=(),
    ):
        self.responses = responses or {}
        self.delays = delays or {}
        self.fail_session = fail_session
        self.fail_window = fail_window
        self.fail_terminate = fail_terminate
        self.fail_for = set(fail_for)
        self.events = []
        self.terminated = []
        self.closed = False
        self._ids = itertools.count()
        self._urls = {}

    @staticmethod
    def _email_for(url):
        # query is "<first> <last> <email> linkedin"
        return unquote(url.split("q=", 1)[1]).split(" ")[-2]

    async def create_session(self):
        await asyncio.sleep(0)
        if self.fail_session:
            raise ConnectionError("session refused")
        session_id = f"s{next(self._ids)}"
        self.events.append(("create_session", session_id))
        return session_id

    async def create_window(self, session_id):
        await asyncio.sleep(0)
        if self.fail_window:
            raise ConnectionError("window refused")
        window_id = f"w{next(self._ids)}"
        self.events.append(("create_window", session_id, window_id))
        return window_id

    async def load_url(self, session_id, window_id, url):
        email = self._email_for(url)
        self.events.append(("load_url", session_id, email))
        await asyncio.sleep(0)
        if email in self.fail_for:
            raise TimeoutError(f"timed out loading {url}")
        self._urls[(session_id, window_id)] = url

    async def page_query(self, session_id, window_id, prompt):
        email = self._email_for(self._urls[(session_id, window_id)])
        self.events.append(("query_start", session_id, email))
        await asyncio.sleep(self.delays.get(email, 0))
        self.events.append(("query_end", session_id, email))
        return self.responses.get(email, f"https://www.linkedin.com/in/{email.split('@')[0]}")

    async def terminate_session(self, session_id):
        await asyncio.sleep(0)
        self.events.append(("terminate", session_id))
        if self.fail_terminate:
            raise ConnectionError("terminate refused")
        self.terminated.append(session_id)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def make_service():
    return FakeBrowserService


@pytest.fixture
def make_profile():
    def _make(email="jane@acme.io", first_name="Jane", last_name="Doe"):
        p = UserProfile(email=email, first_name=first_name, last_name=last_name)
        return ProfileWithQuery(**p.model_dump(), query=LinkedInPrompts.build_search_url(p))

    return _make


@pytest.fixture
def write_input(tmp_path):
    def _write(text, name="profiles.csv"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    return _write
