from __future__ import annotations

import logging
from typing import List, Optional

from ..models import DomSnapshot, HeadingNode, TestOutcome
from .registry import Capture

logger = logging.getLogger(__name__)


async def _evidence(capture: Optional[Capture], heading: HeadingNode) -> Optional[str]:
    if capture is None or heading.element is None:
        return None
    return await capture(heading.element)


async def check_single_h1(snapshot: DomSnapshot, capture: Optional[Capture] = None) -> List[TestOutcome]:
    h1_tags = snapshot.headings_with_tag('H1')
    h1_count = len(h1_tags)
    if h1_count <= 1:
        return [TestOutcome.ok('Single H1 Tag')]

    outcomes: List[TestOutcome] = []
    for i, h1 in enumerate(h1_tags, start=1):
        text = h1.text or ''
        error = (
            f'Multiple H1 tags found. This is H1 #{i}: "{text}". '
            'There should only be one H1 tag per page.'
        )
        screenshot = await _evidence(capture, h1)
        if not screenshot:
            error += ' No screenshot available for this H1 tag.'
        outcomes.append(TestOutcome.fail(f'H1 Tag {i} of {h1_count}: "{text}"', error, evidence=screenshot))

    logger.error("Found %d H1 tags on %s. There should only be one: %s",
                 h1_count, snapshot.url, [h.text for h in h1_tags])
    return outcomes


def find_out_of_order(headings) -> List[HeadingNode]:
    """
    A heading is out of order when it skips more than one level below the
    heading before it. The previous level always moves to the current heading,
    so after a jump only the first skipped heading is reported.
    """
    last_level = 0
    out_of_order: List[HeadingNode] = []
    for heading in headings:
        level = heading.level
        if level > last_level + 1:
            out_of_order.append(heading)
        last_level = level
    return out_of_order


async def check_heading_order(snapshot: DomSnapshot, capture: Optional[Capture] = None) -> List[TestOutcome]:
    out_of_order = find_out_of_order(snapshot.headings)
    if not out_of_order:
        return [TestOutcome.ok('Heading Order')]

    outcomes: List[TestOutcome] = []
    total = len(out_of_order)
    for i, heading in enumerate(out_of_order, start=1):
        text = heading.text or ''
        error = (
            f'Out of order heading found: {heading.tag} "{text}". Headings should follow a '
            'logical hierarchy (H1 > H2 > H3, etc.) without skipping levels.'
        )
        screenshot = await _evidence(capture, heading)
        if not screenshot:
            error += ' No screenshot available for this heading.'
        outcomes.append(TestOutcome.fail(
            f'Out of Order Heading {i} of {total}: {heading.tag} "{text}"', error, evidence=screenshot,
        ))

    logger.error("Found out of order headings on %s: %s",
                 snapshot.url, [f'{h.tag}: "{h.text}"' for h in out_of_order])
    return outcomes
