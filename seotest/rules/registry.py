from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from ..models import DomSnapshot, TestOutcome

logger = logging.getLogger(__name__)

# Bound element screenshotter: element handle -> data URL or None.
Capture = Callable[[Any], Awaitable[Optional[str]]]
Rule = Callable[[DomSnapshot, Optional[Capture]], Awaitable[List[TestOutcome]]]


class RuleRegistry:
    """
    Ordered name -> rule table.

    Rules are independent coroutine functions taking a DomSnapshot and an
    optional capture callable. Every rule runs for every page; one rule
    failing its checks never stops the next one.
    """

    def __init__(self, rules: Optional[Iterable[Tuple[str, Rule]]] = None):
        self._rules: Dict[str, Rule] = {}
        for name, rule in rules or ():
            self.add(name, rule)

    def add(self, name: str, rule: Rule) -> Rule:
        if name in self._rules:
            raise ValueError(f"Rule {name!r} is already registered")
        self._rules[name] = rule
        return rule

    def register(self, name: str) -> Callable[[Rule], Rule]:
        def decorator(rule: Rule) -> Rule:
            return self.add(name, rule)
        return decorator

    def names(self) -> List[str]:
        return list(self._rules)

    def subset(self, names: Iterable[str]) -> 'RuleRegistry':
        wanted = list(names)
        unknown = [n for n in wanted if n not in self._rules]
        if unknown:
            raise ValueError(f"Unknown rule(s): {', '.join(unknown)}")
        return RuleRegistry((n, r) for n, r in self._rules.items() if n in wanted)

    def __iter__(self) -> Iterator[Tuple[str, Rule]]:
        return iter(list(self._rules.items()))

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    async def run_all(self, snapshot: DomSnapshot, capture: Optional[Capture] = None) -> List[TestOutcome]:
        outcomes: List[TestOutcome] = []
        for name, rule in self:
            results = await rule(snapshot, capture)
            logger.debug("Rule %s produced %d outcome(s) for %s", name, len(results), snapshot.url)
            outcomes.extend(results)
        return outcomes
