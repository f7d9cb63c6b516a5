from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from ..browser.session import browser_session
from ..config import CaptureOptions, CrawlConfig, SchedulerConfig, default_config
from ..http_client import build_session
from ..inputs import require_valid_url
from ..models import PageResult
from ..report import Report, ReportAggregator
from ..rules import RuleRegistry, analysis_error, build_default_registry
from .crawler import SiteCrawler
from .scheduler import ExecutionScheduler

logger = logging.getLogger(__name__)


def dedupe(urls: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for u in urls:
        if u not in seen:
            seen.add(u)
            out.append(u)
    return out


class SiteAudit:
    """
    Orchestrates a run: optionally crawl each seed URL, evaluate every page in
    the browser, aggregate the results into a Report.
    """

    def __init__(self, urls: Iterable[str], app_config: Optional[Dict[str, Any]] = None,
                 crawl: bool = False, registry: Optional[RuleRegistry] = None):
        self.urls = list(urls)
        if not self.urls:
            raise ValueError("At least one URL is required")
        self.app_config = app_config or default_config()
        self.crawl = crawl
        if crawl:
            for seed in self.urls:
                require_valid_url(seed)

        global_cfg = self.app_config.get('Global', {})
        user_agent = global_cfg.get('user_agent')
        self.crawl_config = CrawlConfig.from_dict(self.app_config.get('Crawler', {}), user_agent=user_agent)
        self.scheduler_config = SchedulerConfig.from_dict(self.app_config.get('Scheduler', {}), user_agent=user_agent)
        self.capture_options = CaptureOptions.from_dict(self.app_config.get('Evidence', {}))
        self.report_title = self.app_config.get('Report', {}).get('title', 'SEO Analysis Report')
        self.registry = registry if registry is not None else build_default_registry(
            self.app_config.get('Rules', {}).get('enabled'))
        self.http_session = build_session(global_cfg)

    def discover_urls(self) -> List[str]:
        if not self.crawl:
            return list(self.urls)
        found: List[str] = []
        for seed in self.urls:
            logger.info("Crawling %s", seed)
            crawler = SiteCrawler(seed, session=self.http_session, config=self.crawl_config)
            found.extend(crawler.crawl())
        return dedupe(found)

    async def evaluate(self, urls: List[str]) -> Report:
        """
        Results arrive in input order, so when the browser session itself fails
        every URL after the last recorded one gets an "Analysis Error" outcome.
        """
        aggregator = ReportAggregator(title=self.report_title)
        recorded: List[str] = []

        def record(result: PageResult) -> None:
            aggregator.add(result)
            recorded.append(result.url)

        try:
            async with browser_session(headless=self.scheduler_config.headless) as browser:
                scheduler = ExecutionScheduler(
                    browser,
                    registry=self.registry,
                    config=self.scheduler_config,
                    capture_options=self.capture_options,
                    http_session=self.http_session,
                    on_result=record,
                )
                await scheduler.run(urls)
        except Exception as e:
            logger.exception("Browser session failed")
            for url in urls[len(recorded):]:
                aggregator.add(PageResult(url=url, outcomes=[analysis_error(e)]))
        return aggregator.finalize()

    def run(self) -> Report:
        urls = self.discover_urls()
        logger.info("Analyzing %d URL(s)", len(urls))
        report = asyncio.run(self.evaluate(urls))
        stats = report.stats()
        logger.info("Analysis complete: %d/%d tests passed (%d%%)",
                    stats['passes'], stats['tests'], stats['pass_percent'])
        return report
