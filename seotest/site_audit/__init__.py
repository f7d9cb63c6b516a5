"""Site-wide pipeline.

`SiteAudit` discovers URLs with `SiteCrawler`, evaluates them in the browser
through `ExecutionScheduler` and returns a `Report`; `write_report` persists it.
"""

from .audit import SiteAudit
from .crawler import CrawlSession, SiteCrawler, normalize_url
from .export import ReportPaths, write_report
from .scheduler import ExecutionScheduler
