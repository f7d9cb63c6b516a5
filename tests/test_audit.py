from contextlib import asynccontextmanager

import pytest

from seotest.config import default_config
from seotest.models import PageResult, TestOutcome
from seotest.site_audit import audit as audit_mod
from seotest.site_audit.audit import SiteAudit, dedupe


class FakeCrawler:
    discovered = {
        "https://a.com/": ["https://a.com/", "https://a.com/x", "https://shared.com/"],
        "https://b.com/": ["https://b.com/", "https://shared.com/"],
    }

    def __init__(self, seed, session=None, config=None):
        self.seed = seed
        self.config = config

    def crawl(self):
        return list(self.discovered[self.seed])


class FakeScheduler:
    def __init__(self, browser, registry=None, config=None, capture_options=None,
                 http_session=None, on_result=None):
        self.browser = browser
        self.on_result = on_result

    async def run(self, urls):
        results = [PageResult(url=u, outcomes=[TestOutcome.ok("Check")]) for u in urls]
        for r in results:
            self.on_result(r)
        return results


@pytest.fixture
def fake_browser(monkeypatch):
    events = []

    @asynccontextmanager
    async def session(headless=True):
        events.append("open")
        try:
            yield object()
        finally:
            events.append("close")

    monkeypatch.setattr(audit_mod, "browser_session", session)
    monkeypatch.setattr(audit_mod, "ExecutionScheduler", FakeScheduler)
    return events


def test_dedupe_keeps_first_occurrence():
    assert dedupe(["a", "b", "a", "c", "b"]) == ["a", "b", "c"]


def test_requires_urls():
    with pytest.raises(ValueError):
        SiteAudit([])


def test_crawl_rejects_invalid_seed():
    with pytest.raises(ValueError):
        SiteAudit(["example.com"], crawl=True)


def test_without_crawl_urls_are_used_as_given():
    audit = SiteAudit(["https://a.com/", "https://a.com/"])
    assert audit.discover_urls() == ["https://a.com/", "https://a.com/"]


def test_crawl_per_seed_deduplicated(monkeypatch):
    monkeypatch.setattr(audit_mod, "SiteCrawler", FakeCrawler)
    audit = SiteAudit(["https://a.com/", "https://b.com/"], crawl=True)
    assert audit.discover_urls() == [
        "https://a.com/", "https://a.com/x", "https://shared.com/", "https://b.com/",
    ]


def test_config_sections_are_applied():
    cfg = default_config()
    cfg["Scheduler"]["concurrency"] = 2
    cfg["Rules"]["enabled"] = ["canonical_link"]
    cfg["Report"]["title"] = "Weekly"
    audit = SiteAudit(["https://a.com/"], app_config=cfg)
    assert audit.scheduler_config.concurrency == 2
    assert audit.registry.names() == ["canonical_link"]
    assert audit.report_title == "Weekly"


def test_run_produces_finalized_report(fake_browser):
    report = SiteAudit(["https://a.com/", "https://b.com/"]).run()
    assert [r.url for r in report.results] == ["https://a.com/", "https://b.com/"]
    assert report.stats()["pass_percent"] == 100
    assert fake_browser == ["open", "close"]


class ScheduleThenCrash(FakeScheduler):
    async def run(self, urls):
        self.on_result(PageResult(url=urls[0], outcomes=[TestOutcome.ok("Check")]))
        raise RuntimeError("Target page, context or browser has been closed")


def test_browser_released_when_run_raises(fake_browser, monkeypatch):
    monkeypatch.setattr(audit_mod, "ExecutionScheduler", ScheduleThenCrash)
    report = SiteAudit(["https://a.com/", "https://b.com/", "https://c.com/"]).run()

    assert fake_browser == ["open", "close"]
    assert [r.url for r in report.results] == ["https://a.com/", "https://b.com/", "https://c.com/"]
    assert [o.title for o in report.results[0].outcomes] == ["Check"]
    assert report.results[2].outcomes[0].error == (
        "Error analyzing URL: Target page, context or browser has been closed"
    )


def test_browser_launch_failure_reports_every_url(monkeypatch):
    @asynccontextmanager
    async def no_browser(headless=True):
        raise RuntimeError("Executable doesn't exist")
        yield

    monkeypatch.setattr(audit_mod, "browser_session", no_browser)
    report = SiteAudit(["https://a.com/", "https://b.com/"]).run()

    assert [r.url for r in report.results] == ["https://a.com/", "https://b.com/"]
    for result in report.results:
        assert [o.title for o in result.outcomes] == ["Analysis Error"]
        assert result.outcomes[0].error == "Error analyzing URL: Executable doesn't exist"
    assert report.stats()["failures"] == 2
