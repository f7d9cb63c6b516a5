"""Browser-side helpers.

Wraps Playwright for the three things the pipeline needs from a live page:
a scoped browser session, a DOM snapshot and screenshot evidence.
"""

from .evidence import capture_element, capture_full_page
from .session import browser_session, new_page_context
from .snapshot import build_snapshot
