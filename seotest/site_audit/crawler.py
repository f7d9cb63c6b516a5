from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Set
from urllib.parse import urldefrag, urljoin, urlparse, urlsplit, urlunsplit

import requests
from bs4 import BeautifulSoup

from ..config import CrawlConfig
from ..http_client import build_session, is_html_response

logger = logging.getLogger(__name__)

FILTERED_EXTENSIONS = (
    '.jpg', '.jpeg', '.png', '.gif', '.pdf',
    '.doc', '.docx', '.xls', '.xlsx',
    '.js', '.xml', '.css',
)


def normalize_url(url: str, exclude_query_strings: bool = False) -> str:
    """
    Lowercase scheme and host, give an empty path '/', drop the fragment and,
    optionally, the query string. Idempotent.
    """
    parts = urlsplit(url.strip())
    query = '' if exclude_query_strings else parts.query
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path or '/', query, ''))


def site_host(netloc: str) -> str:
    """Host used for the same-site check; a leading "www." is ignored."""
    host = netloc.lower()
    return host[4:] if host.startswith('www.') else host


def has_filtered_extension(url: str) -> bool:
    path = urlparse(url).path.lower()
    return path.endswith(FILTERED_EXTENSIONS)


def resolve_link(base: str, href: str) -> Optional[str]:
    if not href:
        return None
    href = href.strip()
    if href.startswith(('mailto:', 'tel:', 'javascript:', '#')):
        return None
    abs_url, _ = urldefrag(urljoin(base, href))
    if urlparse(abs_url).scheme not in ('http', 'https'):
        return None
    return abs_url


@dataclass
class CrawlSession:
    """
    State of one crawl. `seen` holds normalized keys of every URL ever queued
    so nothing is fetched twice; `discovered` is the ordered result.
    """
    seed: str
    max_urls: int
    exclude_query_strings: bool = False
    seen: Set[str] = field(default_factory=set)
    discovered: List[str] = field(default_factory=list)
    discovered_keys: Set[str] = field(default_factory=set)
    frontier: Deque[str] = field(default_factory=deque)
    stopped: bool = False
    fetches: int = 0

    def key(self, url: str) -> str:
        return normalize_url(url, self.exclude_query_strings)

    @property
    def limit_reached(self) -> bool:
        return self.max_urls > 0 and len(self.discovered) >= self.max_urls

    def enqueue(self, url: str) -> bool:
        if self.stopped:
            return False
        k = self.key(url)
        if k in self.seen:
            return False
        self.seen.add(k)
        self.frontier.append(url)
        return True

    def add_discovered(self, url: str) -> None:
        k = self.key(url)
        if k not in self.discovered_keys:
            self.discovered_keys.add(k)
            self.discovered.append(k)
            logger.info("Found URL: %s", k)
        if self.limit_reached and not self.stopped:
            logger.info("Reached maximum URL limit of %d. Stopping crawler.", self.max_urls)
            self.stop()

    def stop(self) -> None:
        self.stopped = True
        self.frontier.clear()


class SiteCrawler:
    """
    Breadth-first discovery of same-site HTML pages, one request at a time.
    """

    def __init__(self, start_url: str, session: Optional[requests.Session] = None,
                 config: Optional[CrawlConfig] = None):
        self.start_url = start_url
        self.cfg = config or CrawlConfig()
        self.parsed_start = urlparse(start_url)
        if self.parsed_start.scheme not in ('http', 'https') or not self.parsed_start.netloc:
            raise ValueError(f"Invalid URL provided: {start_url}")

        self.session = session or build_session({'user_agent': self.cfg.user_agent})
        self._last_request_ts = 0.0

    def _same_site(self, url: str) -> bool:
        return site_host(urlparse(url).netloc) == site_host(self.parsed_start.netloc)

    def _rate_limit(self):
        gap = self.cfg.interval_seconds
        if gap and gap > 0:
            sleep_for = self._last_request_ts + gap - time.monotonic()
            if sleep_for > 0:
                time.sleep(sleep_for)
        self._last_request_ts = time.monotonic()

    def new_session(self) -> CrawlSession:
        crawl = CrawlSession(
            seed=self.start_url,
            max_urls=self.cfg.max_urls,
            exclude_query_strings=self.cfg.exclude_query_strings,
        )
        crawl.add_discovered(self.start_url)
        crawl.enqueue(self.start_url)
        return crawl

    def crawl(self) -> List[str]:
        if self.cfg.max_urls == 0:
            logger.warning("Crawling with no limit may result in excessive resource usage. "
                           "Consider setting a maximum limit.")
        crawl = self.new_session()
        self.process_frontier(crawl)
        logger.info("Crawling complete. %d URL(s) discovered after %d fetch(es).",
                    len(crawl.discovered), crawl.fetches)
        return list(crawl.discovered)

    def process_frontier(self, crawl: CrawlSession) -> None:
        while crawl.frontier and not crawl.stopped:
            url = crawl.frontier.popleft()
            if has_filtered_extension(url):
                logger.debug("Skipping filtered extension: %s", url)
                continue

            try:
                self._rate_limit()
                crawl.fetches += 1
                resp = self.session.get(url, timeout=self.cfg.request_timeout, allow_redirects=True)
            except requests.RequestException as e:
                logger.warning("Error crawling %s: %s", url, e)
                continue

            if not 200 <= resp.status_code < 300:
                logger.warning("Error crawling %s: HTTP %s", url, resp.status_code)
                continue
            if not is_html_response(resp):
                logger.debug("Skipping non-HTML response (%s): %s", resp.headers.get('Content-Type'), url)
                continue

            crawl.add_discovered(url)
            if crawl.stopped:
                break

            self._enqueue_links(crawl, resp.url or url, resp.content)

    def _enqueue_links(self, crawl: CrawlSession, page_url: str, content: bytes) -> None:
        soup = BeautifulSoup(content, 'html.parser')
        for a in soup.find_all(['a', 'area'], href=True):
            link = resolve_link(page_url, a['href'])
            if not link or not self._same_site(link):
                continue
            if has_filtered_extension(link):
                continue
            crawl.enqueue(link)
