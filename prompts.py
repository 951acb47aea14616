import re
from urllib.parse import quote

from models import MatchStatus, UserProfile

GOOGLE_SEARCH_URL = "https://www.google.com/search?q="
NOT_FOUND_SENTINEL = "Error"

_PROFILE_URL_RE = re.compile(r"https?://([a-z]{2,3}\.|www\.)?linkedin\.com/in/[^\s/?#]+", re.IGNORECASE)


class LinkedInPrompts:
    """Prompts for the search results page, plus the deterministic query builder."""

    # Asked of the page once the Google results have loaded in the window
    PROFILE_URL_QUERY = (
        "You are tasked with retrieving a person's LinkedIn profile URL. "
        "Please locate the LinkedIn profile for the specified individual and return only the URL.\n"
        "LinkedIn profile URLs begin with https://www.linkedin.com/in/ so use that to identify the profile. "
        "There may be profiles with country based subdomains like https://nl.linkedin.com/in/ "
        "that you should also use.\n"
        "If there are multiple links, return the one that most closely matches the profile "
        "based on the email domain and the name.\n"
        "Do not return any other text than the URL.\n"
        "Do not return any urls corresponding to posts that may begin with https://www.linkedin.com/posts/\n"
        f"If you are unable to find the profile, return '{NOT_FOUND_SENTINEL}'"
    )

    # Used by the local playwright backend, which has no hosted page-query endpoint
    PAGE_QUERY_SYSTEM = "You read a rendered web page and answer the question about it with plain text only."

    @staticmethod
    def page_query_user(prompt: str, url: str, lines: list[str], links: list[str]) -> str:
        return (
            f"{prompt}\n\n"
            f"Page URL: {url}\n\n"
            "Links on the page:\n" + "\n".join(links[:200]) + "\n\n"
            "Text lines:\n" + "\n".join(lines[:150])
        )

    @staticmethod
    def build_search_query(profile: UserProfile) -> str:
        return f"{profile.first_name} {profile.last_name} {profile.email} linkedin"

    @staticmethod
    def build_search_url(profile: UserProfile) -> str:
        # same escaping as encodeURIComponent: spaces -> %20, '@' -> %40
        query = LinkedInPrompts.build_search_query(profile)
        return GOOGLE_SEARCH_URL + quote(query, safe="!~*'()")


def classify_response(response: str) -> MatchStatus:
    """Sort a raw model response into found / not found / malformed."""
    text = (response or "").strip().strip("'\"")
    if not text or text.lower() == NOT_FOUND_SENTINEL.lower():
        return MatchStatus.NOT_FOUND
    if "/posts/" not in text and _PROFILE_URL_RE.search(text):
        return MatchStatus.FOUND
    return MatchStatus.MALFORMED
