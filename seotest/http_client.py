from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ('text/html', 'application/xhtml+xml')


def build_session(global_config: Optional[Dict[str, Any]] = None) -> requests.Session:
    """
    Returns a requests session with browser-like headers and retries on
    transient failures.
    """
    cfg = global_config or {}
    session = requests.Session()
    session.headers.update({
        'User-Agent': cfg.get('user_agent', DEFAULT_USER_AGENT),
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': cfg.get('accept_language', 'en-US,en;q=0.8'),
    })

    retries_total = int(cfg.get('http_retries_total', 2))
    if retries_total > 0:
        retry_cfg = Retry(
            total=retries_total,
            connect=retries_total,
            read=retries_total,
            backoff_factor=float(cfg.get('http_backoff_factor', 0.2)),
            status_forcelist=cfg.get('http_status_forcelist', [429, 500, 502, 503, 504]),
            allowed_methods={'HEAD', 'GET', 'OPTIONS'},
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_cfg)
        session.mount('http://', adapter)
        session.mount('https://', adapter)
    return session


def is_html_response(resp: requests.Response) -> bool:
    ctype = resp.headers.get('Content-Type', '').lower()
    return any(t in ctype for t in HTML_CONTENT_TYPES)


def fetch_text(session: requests.Session, url: str, timeout: float = 10) -> str:
    """GET `url` and return its body. Raises on transport errors and non-2xx."""
    resp = session.get(url, timeout=timeout, allow_redirects=True)
    resp.raise_for_status()
    return resp.text
