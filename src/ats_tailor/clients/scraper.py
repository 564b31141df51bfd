"""Collaborator interfaces for job scraping and document rendering.

``HttpJobScraper`` is a plain-HTML implementation: it fetches the page with
httpx and pulls visible text out with BeautifulSoup. Sites that render
postings client-side need a browser-backed scraper instead.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol, runtime_checkable

import httpx
from bs4 import BeautifulSoup

from ats_tailor.errors import InvalidInput, ProviderUnavailable
from ats_tailor.models.job import ScrapedJob
from ats_tailor.models.resume import TailoredResumeContent
from ats_tailor.utils.url_validator import validate_url

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120 Safari/537.36"
)
MIN_DESCRIPTION_CHARS = 200
MAX_REDIRECTS = 5
_JUNK_TAGS = ["script", "style", "noscript", "svg", "nav", "footer", "header", "form"]
_BULLET = re.compile(r"^\s*(?:[-*•·]|\d+[.)])\s+")


@runtime_checkable
class JobScraper(Protocol):
    async def scrape(self, url: str) -> ScrapedJob: ...


@runtime_checkable
class DocumentRenderer(Protocol):
    def __call__(self, content: TailoredResumeContent) -> Any: ...


def extract_posting(html: str) -> ScrapedJob:
    """Pull title, company, description and bullet requirements from HTML."""
    soup = BeautifulSoup(html, "html.parser")

    title = ""
    og_title = soup.find("meta", attrs={"property": "og:title"})
    if og_title and og_title.get("content"):
        title = og_title["content"].strip()
    elif soup.find("h1"):
        title = soup.find("h1").get_text(" ", strip=True)
    elif soup.title and soup.title.string:
        title = soup.title.string.strip()

    company = ""
    site_name = soup.find("meta", attrs={"property": "og:site_name"})
    if site_name and site_name.get("content"):
        company = site_name["content"].strip()

    for tag in soup(_JUNK_TAGS):
        tag.decompose()

    main = soup.find("main") or soup.find("article") or soup.body or soup
    requirements = [
        li.get_text(" ", strip=True) for li in main.find_all("li") if li.get_text(strip=True)
    ]

    lines: list[str] = []
    seen: set[str] = set()
    for line in main.get_text(separator="\n").split("\n"):
        line = re.sub(r"\s+", " ", line).strip()
        if len(line) < 3 or line.lower() in seen:
            continue
        seen.add(line.lower())
        lines.append(line)

    return ScrapedJob(
        title=title,
        company=company,
        description="\n".join(lines),
        requirements=[_BULLET.sub("", r) for r in requirements],
    )


class HttpJobScraper:
    """Fetches a posting over HTTP and extracts its visible text.

    Redirects are followed by hand so every hop passes :func:`validate_url`.
    """

    def __init__(self, *, timeout: float = 25.0, client: httpx.AsyncClient | None = None):
        self.timeout = timeout
        self._client = client

    async def scrape(self, url: str) -> ScrapedJob:
        url = validate_url(url)
        logger.info("Scraping job posting: %s", url)
        try:
            if self._client is not None:
                response = await self._fetch(self._client, url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=False) as client:
                    response = await self._fetch(client, url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Job posting fetch failed: %s", url, exc_info=True)
            raise ProviderUnavailable(f"Could not fetch job posting {url}: {exc}") from exc

        job = extract_posting(response.text)
        if len(job.description) < MIN_DESCRIPTION_CHARS:
            raise InvalidInput(
                f"Job posting at {url} yielded only {len(job.description)} characters of text"
            )
        return job

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        for _ in range(MAX_REDIRECTS + 1):
            response = await client.get(
                url, headers={"User-Agent": USER_AGENT}, follow_redirects=False
            )
            if not response.is_redirect:
                return response
            url = validate_url(str(response.url.join(response.headers["location"])))
            logger.debug("Following redirect to %s", url)
        raise ProviderUnavailable(f"Too many redirects fetching job posting, last hop {url}")
