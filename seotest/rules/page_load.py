from __future__ import annotations

from typing import Optional

from ..models import TestOutcome


def page_load_failed(url: str, detail: Optional[str] = None) -> TestOutcome:
    error = f'Failed to load page: {url}'
    if detail:
        error += f' ({detail})'
    return TestOutcome.fail('Page Load', error)


def analysis_error(exc: BaseException) -> TestOutcome:
    return TestOutcome.fail('Analysis Error', f'Error analyzing URL: {exc}')
