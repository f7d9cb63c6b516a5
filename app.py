# app.py
import argparse
import copy
import json
import logging
import sys

from flask import Flask, jsonify, request

from seotest.config import env_log_level, load_config, default_config
from seotest.inputs import read_urls_from_file, read_urls_from_stream, require_valid_url
from seotest.logging_setup import configure_logging
from seotest.site_audit import SiteAudit, write_report

logger = logging.getLogger("seotest.app")

EXIT_OK = 0
EXIT_REPORT_FAILED = 1
EXIT_USAGE = 2

app = Flask(__name__)
# Configuration used by the API; replaced by run_cli() when --config is given
flask_app_config = default_config()

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _as_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def apply_overrides(config, max_urls=None, exclude_query_strings=None, concurrency=None, report_dir=None):
    """Return a copy of `config` with command line / request overrides applied."""
    current = copy.deepcopy(config)
    crawler_cfg = current.setdefault("Crawler", {})
    if max_urls is not None:
        crawler_cfg["max_urls"] = int(max_urls)
    if exclude_query_strings is not None:
        crawler_cfg["exclude_query_strings"] = bool(exclude_query_strings)
    if concurrency is not None:
        current.setdefault("Scheduler", {})["concurrency"] = int(concurrency)
    if report_dir is not None:
        current.setdefault("Report", {})["report_dir"] = report_dir
    return current


@app.route('/analyze', methods=['POST', 'GET'])
def analyze_endpoint():
    if request.method == 'GET':
        data = request.args
    else:  # POST
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "Invalid JSON payload"}), 400

    url_to_analyze = data.get('url')
    if not url_to_analyze:
        return jsonify({"error": "URL parameter is required"}), 400

    try:
        url_to_analyze = require_valid_url(url_to_analyze)
        current_config = apply_overrides(
            flask_app_config,
            max_urls=data.get('max_urls'),
            exclude_query_strings=_as_bool(data['exclude_query_strings']) if 'exclude_query_strings' in data else None,
            concurrency=data.get('concurrency'),
        )
        auditor = SiteAudit([url_to_analyze], app_config=current_config,
                            crawl=_as_bool(data.get('crawl', False)))
        report = auditor.run()
        return jsonify(report.to_dict())
    except ValueError as ve:
        return jsonify({"error": str(ve)}), 400
    except Exception as e:
        logger.exception("Unexpected error analyzing %s", url_to_analyze)
        return jsonify({"error": f"An unexpected error occurred: {str(e)}"}), 500


def build_parser():
    parser = argparse.ArgumentParser(
        prog="seotest",
        description="Structural SEO tests (headings, canonical link) on rendered pages.",
    )
    parser.add_argument("url", nargs='?', default=None, help="The URL to test, or the crawl seed with --crawl.")
    parser.add_argument("-c", "--crawl", action="store_true", help="Crawl the site starting from the URL(s).")
    parser.add_argument("-q", "--exclude-query-strings", action="store_true",
                        help="Treat URLs differing only in query string as the same page while crawling.")
    parser.add_argument("-m", "--max-urls", type=int, default=None,
                        help="Max URLs to discover while crawling (default 10, 0 = unlimited).")
    parser.add_argument("-f", "--file", type=str, default=None, help="Read newline-delimited URLs from a file.")
    parser.add_argument("-s", "--stdin", action="store_true", help="Read newline-delimited URLs from stdin.")
    parser.add_argument("-n", "--concurrency", type=int, default=None,
                        help="Pages evaluated in parallel per batch (default 5).")
    parser.add_argument("--report-dir", type=str, default=None, help="Directory for the JSON/HTML/CSV report.")
    parser.add_argument("--config", type=str, default=None, help="Path to a JSON config file.")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default from SEOTEST_LOG_LEVEL or INFO).")
    parser.add_argument("--serve", action="store_true", help="Start the HTTP API instead of running once.")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="API host (with --serve).")
    parser.add_argument("--port", type=int, default=5000, help="API port (with --serve).")
    return parser


def resolve_urls(args, stdin=None):
    """stdin takes precedence over --file, which takes precedence over the positional URL."""
    if args.stdin:
        return read_urls_from_stream(stdin if stdin is not None else sys.stdin)
    if args.file:
        return read_urls_from_file(args.file)
    if args.url:
        return [require_valid_url(args.url)]
    return []


def print_summary(report, paths=None):
    stats = report.stats()
    print("\n--- Analysis Summary ---")
    print(f"Pages analyzed: {stats['suites']}")
    print(f"Tests: {stats['tests']}  Passed: {stats['passes']}  Failed: {stats['failures']}")
    print(f"Pass rate: {stats['pass_percent']}%")
    if paths is not None:
        print(f"Report saved to {paths.html_path}")


def main(argv=None, stdin=None):
    global flask_app_config
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level or env_log_level())
    current_config = load_config(args.config)
    flask_app_config = copy.deepcopy(current_config)

    if args.serve:
        logger.info("Starting Flask server on http://%s:%s/ (API mode)", args.host, args.port)
        app.run(host=args.host, port=args.port, debug=False)
        return EXIT_OK

    try:
        urls = resolve_urls(args, stdin=stdin)
    except ValueError as ve:
        logger.error("%s", ve)
        return EXIT_USAGE
    except OSError as e:
        logger.error("Could not read URL list: %s", e)
        return EXIT_USAGE
    if not urls:
        parser.print_usage(sys.stderr)
        logger.error("No URLs to analyze: provide a URL, --file or --stdin")
        return EXIT_USAGE

    current_config = apply_overrides(
        current_config,
        max_urls=args.max_urls,
        exclude_query_strings=True if args.exclude_query_strings else None,
        concurrency=args.concurrency,
        report_dir=args.report_dir,
    )

    try:
        auditor = SiteAudit(urls, app_config=current_config, crawl=args.crawl)
    except ValueError as ve:
        logger.error("%s", ve)
        return EXIT_USAGE

    report = auditor.run()

    report_cfg = current_config.get("Report", {})
    try:
        paths = write_report(report, report_dir=report_cfg.get("report_dir", "reports"),
                             basename=report_cfg.get("basename", "seo-report"))
    except Exception:
        logger.exception("Failed to generate report")
        logger.info("Report stats: %s", json.dumps(report.stats()))
        print_summary(report)
        return EXIT_REPORT_FAILED

    print_summary(report, paths)
    return EXIT_OK


def run_cli():
    sys.exit(main())


if __name__ == "__main__":
    run_cli()
