from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

import requests
from bs4 import BeautifulSoup

from ..http_client import fetch_text
from ..models import HEADING_TAGS, DomSnapshot, HeadingNode

logger = logging.getLogger(__name__)

HEADING_SELECTOR = "h1, h2, h3, h4, h5, h6"
CANONICAL_SELECTOR = 'link[rel="canonical"]'

HEADING_INFO_JS = "(el) => [el.tagName, (el.textContent || '').trim()]"


async def extract_headings(page: Any) -> List[HeadingNode]:
    """Headings in document order as returned by the live DOM query."""
    nodes: List[HeadingNode] = []
    for handle in await page.query_selector_all(HEADING_SELECTOR):
        tag, text = await handle.evaluate(HEADING_INFO_JS)
        tag = str(tag).upper()
        if tag not in HEADING_TAGS:
            continue
        nodes.append(HeadingNode(tag=tag, text=text or "", element=handle))
    return nodes


async def read_response_body(response: Any, url: str, session: Optional[requests.Session] = None,
                             timeout: float = 10) -> str:
    """
    Raw body of the navigation response. Browsers do not keep bodies for some
    responses (redirect chains, cached entries); fall back to a direct fetch.
    """
    try:
        return await response.text()
    except Exception as e:
        logger.debug("Response body unavailable from browser for %s: %s", url, e)
    if session is None:
        raise RuntimeError(f"No response body available for {url}")
    return await asyncio.to_thread(fetch_text, session, url, timeout)


async def build_snapshot(page: Any, response: Any, url: str, session: Optional[requests.Session] = None,
                         timeout: float = 10) -> DomSnapshot:
    headings = await extract_headings(page)
    logger.debug("Heading structure for %s: %s", url, [(h.tag, h.text) for h in headings])

    body = await read_response_body(response, url, session=session, timeout=timeout)
    static_doc = BeautifulSoup(body, "html.parser")

    live_canonical = await page.query_selector(CANONICAL_SELECTOR)
    live_href = None
    if live_canonical is not None:
        live_href = await live_canonical.evaluate("(el) => el.href")
        logger.info("Canonical link found on %s: %s", url, live_href)

    return DomSnapshot(
        url=url,
        headings=tuple(headings),
        static_doc=static_doc,
        live_canonical_present=live_canonical is not None,
        live_canonical_href=live_href,
    )
