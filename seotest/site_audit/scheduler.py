from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Iterable, List, Optional, Sequence

import requests
from playwright.async_api import Error as PlaywrightError

from ..browser.evidence import capture_element, capture_full_page
from ..browser.session import new_page_context
from ..browser.snapshot import build_snapshot
from ..config import CaptureOptions, SchedulerConfig
from ..models import PageResult
from ..rules import RuleRegistry, analysis_error, build_default_registry, page_load_failed

logger = logging.getLogger(__name__)

ResultCallback = Callable[[PageResult], None]


def _first_line(exc: BaseException) -> str:
    lines = str(exc).strip().splitlines()
    return lines[0] if lines else type(exc).__name__


def batched(items: Sequence[str], size: int) -> Iterable[List[str]]:
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


class ExecutionScheduler:
    """
    Evaluates URLs in consecutive batches of `concurrency` pages that share
    one browser. Each URL gets its own browser context. A batch is awaited in
    full before the next one starts, so at most `concurrency` contexts are
    alive at any time.
    """

    def __init__(
        self,
        browser: Any,
        registry: Optional[RuleRegistry] = None,
        config: Optional[SchedulerConfig] = None,
        capture_options: Optional[CaptureOptions] = None,
        http_session: Optional[requests.Session] = None,
        on_result: Optional[ResultCallback] = None,
    ):
        self.browser = browser
        self.registry = registry if registry is not None else build_default_registry()
        self.cfg = config or SchedulerConfig()
        self.capture_options = capture_options or CaptureOptions()
        self.http_session = http_session
        self.on_result = on_result

    async def run(self, urls: Sequence[str]) -> List[PageResult]:
        results: List[PageResult] = []
        batches = list(batched(list(urls), self.cfg.concurrency))
        for n, batch in enumerate(batches, start=1):
            logger.info("Analyzing batch %d/%d (%d URL(s))", n, len(batches), len(batch))
            batch_results = await asyncio.gather(*(self.evaluate(url) for url in batch))
            for result in batch_results:
                if self.on_result is not None:
                    self.on_result(result)
            results.extend(batch_results)
        return results

    async def evaluate(self, url: str) -> PageResult:
        """Never raises: any failure becomes a single failed outcome."""
        logger.info("--- Analyzing: %s ---", url)
        try:
            return await self.evaluate_page(url)
        except Exception as e:
            logger.exception("Error analyzing URL %s", url)
            return PageResult(url=url, outcomes=[analysis_error(e)])

    async def evaluate_page(self, url: str) -> PageResult:
        context = await new_page_context(
            self.browser,
            user_agent=self.cfg.user_agent,
            viewport_width=self.cfg.viewport_width,
            viewport_height=self.cfg.viewport_height,
        )
        try:
            page = await context.new_page()
            try:
                response = await page.goto(
                    url, wait_until=self.cfg.wait_until, timeout=self.cfg.navigation_timeout_ms,
                )
            except PlaywrightError as e:
                logger.error("Failed to load page %s: %s", url, e)
                return PageResult(url=url, outcomes=[page_load_failed(url, _first_line(e))])

            if response is None or not response.ok:
                detail = f"HTTP {response.status}" if response is not None else "no response"
                logger.error("Failed to load page %s: %s", url, detail)
                return PageResult(url=url, outcomes=[page_load_failed(url, detail)])

            page_screenshot = await capture_full_page(page)
            snapshot = await build_snapshot(page, response, url, session=self.http_session)
            capture = partial(capture_element, page, options=self.capture_options)
            outcomes = await self.registry.run_all(snapshot, capture)
            return PageResult(url=url, outcomes=outcomes, page_screenshot=page_screenshot)
        finally:
            await self._close(context, url)

    async def _close(self, context: Any, url: str) -> None:
        try:
            await context.close()
        except PlaywrightError as e:
            logger.warning("Error closing browser context for %s: %s", url, e)
