import asyncio

import pytest
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from unittest.mock import AsyncMock, MagicMock

from seotest.config import CaptureOptions, SchedulerConfig
from seotest.models import DomSnapshot, TestOutcome
from seotest.rules import RuleRegistry
from seotest.site_audit import scheduler as scheduler_mod
from seotest.site_audit.scheduler import ExecutionScheduler, batched


def response(status=200):
    resp = MagicMock()
    resp.status = status
    resp.ok = 200 <= status < 300
    return resp


class FakeBrowser:
    """Hands out one mocked context per URL; `plan` maps URL -> goto result or exception."""

    def __init__(self, plan):
        self.plan = plan
        self.contexts = []

    async def new_context(self, **kwargs):
        page = MagicMock()

        async def goto(url, **kw):
            outcome = self.plan[url]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        page.goto = AsyncMock(side_effect=goto)
        context = MagicMock()
        context.new_page = AsyncMock(return_value=page)
        context.close = AsyncMock()
        self.contexts.append(context)
        return context


@pytest.fixture
def stub_page_io(monkeypatch):
    async def fake_snapshot(page, resp, url, session=None, timeout=10):
        return DomSnapshot(url=url, headings=(), static_doc=BeautifulSoup("", "html.parser"))

    monkeypatch.setattr(scheduler_mod, "build_snapshot", fake_snapshot)
    monkeypatch.setattr(scheduler_mod, "capture_full_page", AsyncMock(return_value="data:image/png;base64,PAGE"))


def registry_with(rule):
    registry = RuleRegistry()
    registry.add("rule", rule)
    return registry


async def passing_rule(snapshot, capture):
    return [TestOutcome.ok("Check")]


def scheduler(browser, rule=passing_rule, concurrency=5, on_result=None):
    return ExecutionScheduler(
        browser,
        registry=registry_with(rule),
        config=SchedulerConfig(concurrency=concurrency),
        capture_options=CaptureOptions(wait_time_ms=0),
        on_result=on_result,
    )


def test_batched():
    assert list(batched(["a", "b", "c"], 2)) == [["a", "b"], ["c"]]
    with pytest.raises(ValueError):
        list(batched(["a"], 0))


@pytest.mark.asyncio
async def test_http_error_short_circuits_rules(stub_page_io):
    rule = AsyncMock(return_value=[TestOutcome.ok("Check")])
    browser = FakeBrowser({"https://example.com/500": response(500)})

    [result] = await scheduler(browser, rule=rule).run(["https://example.com/500"])

    assert len(result.outcomes) == 1
    assert result.outcomes[0].title == "Page Load"
    assert result.outcomes[0].error == "Failed to load page: https://example.com/500 (HTTP 500)"
    assert not result.outcomes[0].passed
    rule.assert_not_awaited()
    browser.contexts[0].close.assert_awaited_once()


@pytest.mark.asyncio
async def test_navigation_error_becomes_page_load_failure(stub_page_io):
    browser = FakeBrowser({"https://nope.invalid/": PlaywrightError("net::ERR_NAME_NOT_RESOLVED\n=== logs ===")})
    [result] = await scheduler(browser).run(["https://nope.invalid/"])
    assert [o.title for o in result.outcomes] == ["Page Load"]
    assert result.outcomes[0].error == "Failed to load page: https://nope.invalid/ (net::ERR_NAME_NOT_RESOLVED)"


@pytest.mark.asyncio
async def test_rule_exception_becomes_analysis_error(stub_page_io):
    async def broken(snapshot, capture):
        raise RuntimeError("kaboom")

    browser = FakeBrowser({"https://example.com/": response()})
    [result] = await scheduler(browser, rule=broken).run(["https://example.com/"])

    assert len(result.outcomes) == 1
    assert result.outcomes[0].title == "Analysis Error"
    assert result.outcomes[0].error == "Error analyzing URL: kaboom"
    browser.contexts[0].close.assert_awaited_once()


@pytest.mark.asyncio
async def test_successful_page_runs_rules_with_screenshot(stub_page_io):
    browser = FakeBrowser({"https://example.com/": response()})
    [result] = await scheduler(browser).run(["https://example.com/"])
    assert [o.title for o in result.outcomes] == ["Check"]
    assert result.page_screenshot == "data:image/png;base64,PAGE"


@pytest.mark.asyncio
async def test_every_url_yields_one_result_in_order(stub_page_io):
    async def rule(snapshot, capture):
        if snapshot.url.endswith("/boom"):
            raise ValueError("bad page")
        return [TestOutcome.ok("Check")]

    urls = [f"https://example.com/{i}" for i in range(5)] + [
        "https://example.com/boom", "https://example.com/down", "https://example.com/404",
    ]
    plan = {u: response() for u in urls}
    plan["https://example.com/down"] = PlaywrightError("Timeout 30000ms exceeded.")
    plan["https://example.com/404"] = response(404)
    browser = FakeBrowser(plan)
    seen = []

    results = await scheduler(browser, rule=rule, concurrency=3, on_result=seen.append).run(urls)

    assert [r.url for r in results] == urls
    assert [r.url for r in seen] == urls
    assert len(browser.contexts) == len(urls)
    assert all(ctx.close.await_count == 1 for ctx in browser.contexts)
    titles = {r.url: [o.title for o in r.outcomes] for r in results}
    assert titles["https://example.com/boom"] == ["Analysis Error"]
    assert titles["https://example.com/down"] == ["Page Load"]
    assert titles["https://example.com/404"] == ["Page Load"]
    assert titles["https://example.com/0"] == ["Check"]


@pytest.mark.asyncio
async def test_context_close_error_is_ignored(stub_page_io):
    browser = FakeBrowser({"https://example.com/": response()})
    make_context = browser.new_context

    async def new_context(**kwargs):
        ctx = await make_context(**kwargs)
        ctx.close = AsyncMock(side_effect=PlaywrightError("Target closed"))
        return ctx

    browser.new_context = new_context
    [result] = await scheduler(browser).run(["https://example.com/"])
    assert [o.title for o in result.outcomes] == ["Check"]


class CountingBrowser(FakeBrowser):
    """Tracks how many contexts are open at once; navigation yields to the loop."""

    def __init__(self, plan):
        super().__init__(plan)
        self.live = 0
        self.peak = 0

    async def new_context(self, **kwargs):
        context = await super().new_context(**kwargs)
        self.live += 1
        self.peak = max(self.peak, self.live)
        page = await context.new_page()
        goto = page.goto.side_effect

        async def slow_goto(url, **kw):
            await asyncio.sleep(0)
            return await goto(url, **kw)

        async def close():
            self.live -= 1

        page.goto = AsyncMock(side_effect=slow_goto)
        context.close = AsyncMock(side_effect=close)
        return context


@pytest.mark.asyncio
async def test_live_contexts_never_exceed_concurrency(stub_page_io):
    urls = [f"https://example.com/{i}" for i in range(10)]
    browser = CountingBrowser({u: response() for u in urls})

    results = await scheduler(browser, concurrency=3).run(urls)

    assert len(results) == 10
    assert browser.peak == 3
    assert browser.live == 0
