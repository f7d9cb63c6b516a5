from __future__ import annotations

import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from ..models import DomSnapshot, TestOutcome
from .registry import Capture

logger = logging.getLogger(__name__)


def static_canonical_href(soup: BeautifulSoup) -> Optional[str]:
    # Read from the unrendered document: the live DOM's `href` property
    # resolves relative values against the page URL.
    # Same exact-match selector as the live DOM query
    tag = soup.select_one('link[rel="canonical"]')
    if tag is None:
        return None
    return tag.get('href')


async def check_canonical_link(snapshot: DomSnapshot, capture: Optional[Capture] = None) -> List[TestOutcome]:
    outcomes: List[TestOutcome] = []

    if snapshot.live_canonical_present:
        outcomes.append(TestOutcome.ok('Canonical Link Present'))
    else:
        outcomes.append(TestOutcome.fail('Canonical Link Present', 'No canonical link found on the page'))
        logger.error("No canonical link found on %s", snapshot.url)

    href = static_canonical_href(snapshot.static_doc)

    if href and not href.startswith(('http://', 'https://')):
        outcomes.append(TestOutcome.fail('Canonical Link Absolute', f'Canonical link is not absolute: {href}'))
        logger.error("Canonical link is not absolute on %s: %s", snapshot.url, href)
    elif href:
        outcomes.append(TestOutcome.ok('Canonical Link Absolute'))

    if href and href.startswith('http://'):
        outcomes.append(TestOutcome.fail(
            'Canonical Link HTTPS', f'Canonical link is using http instead of https: {href}',
        ))
        logger.error("Canonical link is using http instead of https on %s: %s", snapshot.url, href)
    elif href:
        outcomes.append(TestOutcome.ok('Canonical Link HTTPS'))

    return outcomes
