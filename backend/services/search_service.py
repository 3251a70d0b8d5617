"""
search_service.py — Web search and page fetching
DuckDuckGo instant answers (no API key) plus a bounded page fetcher that
reduces HTML to readable text. Both carry a timeout; callers decide how to
degrade when they raise.
"""

import asyncio
import ipaddress
import logging
import re
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from config import SEARCH_TIMEOUT_SECONDS, PAGE_FETCH_MAX_BYTES
from schemas import SearchResult

logger = logging.getLogger(__name__)

SEARCH_URL = "https://api.duckduckgo.com/"
USER_AGENT = "Mozilla/5.0 (compatible; ChatBot/1.0)"
PAGE_TEXT_LIMIT = 2000

_SKIP_SELECTOR = "script, style, noscript, nav, footer, header, aside"
_MAIN_SELECTORS = ("main", "article", ".content", "#content", ".post", ".entry")
MAX_REDIRECTS = 5

# Private/reserved ranges a fetched URL may not resolve to
BLOCKED_NETWORKS = [
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("100.64.0.0/10"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]


async def search_web(query: str, max_results: int = 5,
                     transport: httpx.AsyncBaseTransport | None = None) -> list[SearchResult]:
    """Instant answer, abstract and related topics for `query`. Raises httpx errors on failure."""
    params = {"q": query, "format": "json", "no_html": "1", "skip_disambig": "1"}
    async with httpx.AsyncClient(timeout=SEARCH_TIMEOUT_SECONDS, transport=transport) as client:
        response = await client.get(SEARCH_URL, params=params, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
        data = response.json()

    results: list[SearchResult] = []
    if data.get("Answer"):
        answer = str(data["Answer"])
        results.append(SearchResult(title="Instant Answer", url=data.get("AnswerURL") or "",
                                    snippet=answer, content=answer))
    if data.get("Abstract"):
        results.append(SearchResult(title=data.get("Heading") or "Abstract", url=data.get("AbstractURL") or "",
                                    snippet=data["Abstract"], content=data["Abstract"]))
    for topic in data.get("RelatedTopics") or []:
        if len(results) >= max_results:
            break
        if isinstance(topic, dict) and topic.get("Text") and topic.get("FirstURL"):
            text = topic["Text"]
            results.append(SearchResult(title=text.split(" - ")[0] or "Related Topic", url=topic["FirstURL"],
                                        snippet=text, content=text))

    logger.info(f"Found {len(results)} search results")
    return results[:max_results]


def format_search_results(query: str, results: list[SearchResult]) -> str:
    """The block appended to the user's message when search mode is on."""
    if not results:
        return (f'\n\n🔍 **WEB SEARCH**: No current results found for "{query}". '
                "Please provide information based on general knowledge.")
    blocks = []
    for index, result in enumerate(results, start=1):
        source = f"\nSource: {result.url}" if result.url else ""
        blocks.append(f"**{index}. {result.title}**\n{result.snippet}{source}\n")
    return (f'\n\n🔍 **WEB SEARCH RESULTS** for "{query}":\n\n' + "\n".join(blocks)
            + "\n*Note: Please use this current web information to provide an accurate and up-to-date response.*")


SEARCH_UNAVAILABLE_NOTICE = ("\n\n🔍 **WEB SEARCH**: Currently unavailable. "
                             "Please provide information based on general knowledge.")


# ── Page fetching ─────────────────────────────────────────────────
def html_to_text(html: str, limit: int = PAGE_TEXT_LIMIT) -> str:
    """Readable text of a page: chrome stripped, main content preferred over the whole body."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(_SKIP_SELECTOR):
        element.decompose()

    text = ""
    for selector in _MAIN_SELECTORS:
        element = soup.select_one(selector)
        if element is not None and len(element.get_text().strip()) > 100:
            text = element.get_text(" ")
            break
    if not text:
        text = (soup.body or soup).get_text(" ")
    return re.sub(r"\s+", " ", text).strip()[:limit]


def _is_blocked(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return True
    return any(addr in network for network in BLOCKED_NETWORKS)


async def _validate_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https"):
        raise ValueError(f"Scheme not allowed: {parsed.scheme}")
    if not parsed.hostname:
        raise ValueError("URL must have a hostname")
    infos = await asyncio.get_running_loop().getaddrinfo(parsed.hostname, None)
    for *_, sockaddr in infos:
        if _is_blocked(sockaddr[0]):
            raise ValueError(f"Blocked: {parsed.hostname} resolves to private IP {sockaddr[0]}")


async def fetch_page_content(url: str, max_bytes: int = PAGE_FETCH_MAX_BYTES,
                             transport: httpx.AsyncBaseTransport | None = None,
                             validate: bool = True) -> str:
    """Download at most `max_bytes` of a public page and return its readable text.

    Redirects are followed by hand, up to MAX_REDIRECTS hops, so that every
    hop's target is checked against the blocked networks before it is fetched.
    """
    body = bytearray()
    encoding = "utf-8"
    target = url
    async with httpx.AsyncClient(timeout=SEARCH_TIMEOUT_SECONDS, transport=transport,
                                 follow_redirects=False) as client:
        for _ in range(MAX_REDIRECTS + 1):
            if validate:
                await _validate_url(target)
            async with client.stream("GET", target, headers={"User-Agent": USER_AGENT}) as response:
                if response.is_redirect:
                    target = str(response.url.join(response.headers["location"]))
                    logger.debug(f"Following redirect to {target}")
                    continue
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) >= max_bytes:
                        del body[max_bytes:]
                        break
                encoding = response.encoding or "utf-8"
                break
        else:
            raise httpx.TooManyRedirects(f"More than {MAX_REDIRECTS} redirects fetching {url}")

    text = html_to_text(body.decode(encoding, errors="replace"))
    logger.info(f"Extracted {len(text)} characters from {url}")
    return text


def get_web_search():
    """FastAPI dependency: the search callable used by the chat and search routes."""
    return search_web


def get_page_fetcher():
    return fetch_page_content
