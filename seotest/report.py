from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Tuple

from .models import PageResult, utc_now


class ReportFinalizedError(RuntimeError):
    pass


def pass_percent(passes: int, total: int) -> int:
    """passes / total * 100 rounded half up; 0 when there are no tests."""
    if total <= 0:
        return 0
    value = Decimal(passes) * 100 / Decimal(total)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Report:
    results: Tuple[PageResult, ...]
    start: datetime
    end: datetime
    title: str = 'SEO Analysis Report'

    def __len__(self) -> int:
        return len(self.results)

    def stats(self) -> Dict[str, Any]:
        tests = sum(len(r.outcomes) for r in self.results)
        passes = sum(r.passes for r in self.results)
        return {
            'suites': len(self.results),
            'tests': tests,
            'passes': passes,
            'failures': tests - passes,
            'pass_percent': pass_percent(passes, tests),
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'duration_ms': int((self.end - self.start).total_seconds() * 1000),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stats': self.stats(),
            'results': [r.to_dict() for r in self.results],
        }


@dataclass
class ReportAggregator:
    """
    Collects PageResults in submission order. `finalize()` may be called once;
    afterwards the aggregator rejects further results.
    """
    title: str = 'SEO Analysis Report'
    start: datetime = field(default_factory=utc_now)
    _results: List[PageResult] = field(default_factory=list, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _report: Optional[Report] = field(default=None, init=False, repr=False)

    @property
    def finalized(self) -> bool:
        return self._report is not None

    def add(self, result: PageResult) -> None:
        with self._lock:
            if self._report is not None:
                raise ReportFinalizedError("Report already finalized; cannot add more results")
            self._results.append(result)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def finalize(self) -> Report:
        with self._lock:
            if self._report is not None:
                raise ReportFinalizedError("Report already finalized")
            self._report = Report(
                results=tuple(self._results),
                start=self.start,
                end=utc_now(),
                title=self.title,
            )
            return self._report
