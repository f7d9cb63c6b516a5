from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup


HEADING_TAGS = ('H1', 'H2', 'H3', 'H4', 'H5', 'H6')


class OutcomeState(str, Enum):
    PASSED = 'passed'
    FAILED = 'failed'


@dataclass(frozen=True)
class TestOutcome:
    title: str
    state: OutcomeState
    error: Optional[str] = None
    evidence: Optional[str] = None  # data:image/png;base64,...

    __test__ = False  # not a pytest class

    @property
    def passed(self) -> bool:
        return self.state is OutcomeState.PASSED

    @classmethod
    def ok(cls, title: str) -> 'TestOutcome':
        return cls(title=title, state=OutcomeState.PASSED)

    @classmethod
    def fail(cls, title: str, error: str, evidence: Optional[str] = None) -> 'TestOutcome':
        return cls(title=title, state=OutcomeState.FAILED, error=error, evidence=evidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'state': self.state.value,
            'error': self.error,
            'evidence': self.evidence,
        }


@dataclass
class HeadingNode:
    """
    A heading found in the live DOM.

    `element` is a browser element handle owned by the page context that
    produced it. It is only usable while that context is open and is never
    serialized.
    """
    tag: str
    text: str
    element: Any = field(default=None, repr=False, compare=False)

    @property
    def level(self) -> int:
        return int(self.tag[1:])


@dataclass(frozen=True)
class DomSnapshot:
    url: str
    headings: Tuple[HeadingNode, ...]
    static_doc: BeautifulSoup
    live_canonical_present: bool = False
    live_canonical_href: Optional[str] = None

    def headings_with_tag(self, tag: str) -> List[HeadingNode]:
        return [h for h in self.headings if h.tag == tag]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PageResult:
    url: str
    outcomes: List[TestOutcome]
    page_screenshot: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def passes(self) -> int:
        return sum(1 for o in self.outcomes if o.passed)

    @property
    def failures(self) -> int:
        return len(self.outcomes) - self.passes

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'timestamp': self.timestamp.isoformat(),
            'page_screenshot': self.page_screenshot,
            'outcomes': [o.to_dict() for o in self.outcomes],
        }
