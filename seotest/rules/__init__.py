"""SEO rule package.

Provides `RuleRegistry` and `build_default_registry()`, which wires up the
focused checks implemented in sibling modules. New rules are coroutine
functions with the same signature, added with `registry.add()` or the
`registry.register(name)` decorator.
"""

from typing import Iterable, Optional

from .canonical import check_canonical_link
from .headings import check_heading_order, check_single_h1
from .page_load import analysis_error, page_load_failed
from .registry import Capture, Rule, RuleRegistry


def build_default_registry(enabled: Optional[Iterable[str]] = None) -> RuleRegistry:
    registry = RuleRegistry([
        ('single_h1', check_single_h1),
        ('heading_order', check_heading_order),
        ('canonical_link', check_canonical_link),
    ])
    enabled = list(enabled or [])
    return registry.subset(enabled) if enabled else registry
