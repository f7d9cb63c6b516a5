from __future__ import annotations

import csv
import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from ..report import Report

logger = logging.getLogger(__name__)

OUTCOME_FIELDS = ['url', 'timestamp', 'title', 'state', 'error', 'has_evidence']


@dataclass(frozen=True)
class ReportPaths:
    json_path: str
    html_path: str
    csv_path: str


def _environment() -> Environment:
    return Environment(
        loader=PackageLoader('seotest', 'templates'),
        autoescape=select_autoescape(['html', 'xml']),
    )


def render_html(report: Report) -> str:
    template = _environment().get_template('report.html')
    return template.render(
        title=report.title,
        stats=report.stats(),
        results=[r.to_dict() for r in report.results],
    )


def export_report_json(path: str, report: Report):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report.to_dict(), f, indent=2)


def export_report_html(path: str, report: Report):
    with open(path, 'w', encoding='utf-8') as f:
        f.write(render_html(report))


def export_outcomes_csv(path: str, report: Report):
    # One row per outcome; screenshots stay in the JSON/HTML files
    with open(path, 'w', newline='', encoding='utf-8') as f:
        w = csv.DictWriter(f, fieldnames=OUTCOME_FIELDS)
        w.writeheader()
        for result in report.results:
            for o in result.outcomes:
                w.writerow({
                    'url': result.url,
                    'timestamp': result.timestamp.isoformat(),
                    'title': o.title,
                    'state': o.state.value,
                    'error': o.error or '',
                    'has_evidence': o.evidence is not None,
                })


def write_report(report: Report, report_dir: str = 'reports',
                 basename: Optional[str] = 'seo-report') -> ReportPaths:
    """
    Write `<basename>.json`, `<basename>.html` and `<basename>.csv` into
    `report_dir`, creating it if needed. I/O errors propagate.
    """
    basename = basename or 'seo-report'
    os.makedirs(report_dir, exist_ok=True)
    paths = ReportPaths(
        json_path=os.path.join(report_dir, f'{basename}.json'),
        html_path=os.path.join(report_dir, f'{basename}.html'),
        csv_path=os.path.join(report_dir, f'{basename}.csv'),
    )
    export_report_json(paths.json_path, report)
    export_report_html(paths.html_path, report)
    export_outcomes_csv(paths.csv_path, report)
    logger.info("Report written to %s", paths.html_path)
    return paths
