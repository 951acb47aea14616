# browsers.py
import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from models import EnrichConfig
from prompts import LinkedInPrompts

# env var holding the credential each backend needs
CREDENTIALS = {
    "airtop": "AIRTOP_API_KEY",
    "playwright": "GOOGLE_API_KEY",
}


class BrowserService(ABC):
    """
    Remote browser contract: sessions hold windows, windows load URLs and
    answer natural-language questions about the page they show.
    Handles are plain string ids owned by the caller.
    """

    @abstractmethod
    async def create_session(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def create_window(self, session_id: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def load_url(self, session_id: str, window_id: str, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def page_query(self, session_id: str, window_id: str, prompt: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def terminate_session(self, session_id: str) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release anything the service itself holds (not per-session state)."""
        return None


class AirtopBrowserService(BrowserService):
    def __init__(self, api_key: str):
        # imported here so the local backend works without the SDK configured
        from airtop import AsyncAirtop

        self.client = AsyncAirtop(api_key=api_key)

    async def create_session(self) -> str:
        session = await self.client.sessions.create()
        return session.data.id

    async def create_window(self, session_id: str) -> str:
        window = await self.client.windows.create(session_id)
        return window.data.window_id

    async def load_url(self, session_id: str, window_id: str, url: str) -> None:
        await self.client.windows.load_url(session_id, window_id, url=url)

    async def page_query(self, session_id: str, window_id: str, prompt: str) -> str:
        result = await self.client.windows.page_query(session_id, window_id, prompt=prompt)
        return result.data.model_response

    async def terminate_session(self, session_id: str) -> None:
        await self.client.sessions.terminate(session_id)


def _resolve_google_href(href: str) -> str:
    """Unwrap Google's /url?q=... redirect links."""
    if href.startswith("/url?"):
        params = parse_qs(urlparse(f"https://google.com{href}").query)
        for key in ("url", "q"):
            if key in params:
                return params[key][0]
    return href


def extract_page_content(html: str, max_lines: int = 150) -> Tuple[List[str], List[str]]:
    """
    Split rendered HTML into visible text lines and absolute link targets.
    Returns (lines, links), links deduped in page order.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    lines: List[str] = []
    for text in soup.get_text("\n").splitlines():
        text = text.strip()
        if text:
            lines.append(text)
        if len(lines) >= max_lines:
            break

    links: List[str] = []
    for a in soup.find_all("a", href=True):
        href = _resolve_google_href(a["href"])
        if href.startswith("http") and href not in links:
            links.append(href)

    return lines, links


class PlaywrightBrowserService(BrowserService):
    """
    Local stand-in for a hosted browser service: a session is a browser +
    context, a window is a page, and page queries go to a Gemini chat model.
    """

    def __init__(self, api_key: Optional[str] = None, browser: str = "chromium", model: str = "gemini-2.5-flash", max_lines: int = 150):
        self.browser = browser
        self.max_lines = max_lines
        self.llm = ChatGoogleGenerativeAI(model=model, google_api_key=api_key)
        self._playwright: Optional[Playwright] = None
        self._start_lock = asyncio.Lock()
        self._sessions: Dict[str, Tuple[Browser, BrowserContext]] = {}
        self._windows: Dict[Tuple[str, str], Page] = {}

    async def _ensure_started(self) -> Playwright:
        async with self._start_lock:
            if self._playwright is None:
                self._playwright = await async_playwright().start()
        return self._playwright

    async def create_session(self) -> str:
        p = await self._ensure_started()
        b = await getattr(p, self.browser).launch(
            headless=True,
            args=["--disable-blink-features=AutomationControlled"],
        )
        ctx = await b.new_context(
            user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
            viewport={"width": 1920, "height": 1080},
        )
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = (b, ctx)
        return session_id

    async def create_window(self, session_id: str) -> str:
        _, ctx = self._sessions[session_id]
        page = await ctx.new_page()
        window_id = uuid.uuid4().hex
        self._windows[(session_id, window_id)] = page
        return window_id

    async def load_url(self, session_id: str, window_id: str, url: str) -> None:
        page = self._windows[(session_id, window_id)]
        await page.goto(url, timeout=60000, wait_until="domcontentloaded")
        await page.wait_for_timeout(2000)

    async def page_query(self, session_id: str, window_id: str, prompt: str) -> str:
        page = self._windows[(session_id, window_id)]
        lines, links = extract_page_content(await page.content(), max_lines=self.max_lines)

        system = SystemMessage(content=LinkedInPrompts.PAGE_QUERY_SYSTEM)
        human = HumanMessage(content=LinkedInPrompts.page_query_user(prompt, page.url, lines, links))
        llm_resp = await self.llm.ainvoke([system, human])
        raw = getattr(llm_resp, "content", "") if llm_resp else ""
        return raw.strip() if isinstance(raw, str) else str(raw)

    async def terminate_session(self, session_id: str) -> None:
        b, ctx = self._sessions.pop(session_id)
        for key in [k for k in self._windows if k[0] == session_id]:
            del self._windows[key]
        try:
            await ctx.close()
        finally:
            await b.close()

    async def aclose(self) -> None:
        try:
            for session_id in list(self._sessions):
                try:
                    await self.terminate_session(session_id)
                except Exception as e:
                    print(f"⚠️  Error closing browser session {session_id}: {e}")
        finally:
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None


def make_browser_service(cfg: EnrichConfig, api_key: str) -> BrowserService:
    if cfg.backend == "airtop":
        return AirtopBrowserService(api_key=api_key)
    if cfg.backend == "playwright":
        return PlaywrightBrowserService(api_key=api_key, browser=cfg.browser, model=cfg.model)
    raise ValueError(f"Unknown browser backend: {cfg.backend!r} (expected one of {sorted(CREDENTIALS)})")
