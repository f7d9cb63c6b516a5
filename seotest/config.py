from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = 'Mozilla/5.0 (compatible; SEOTest/1.0)'

DEFAULT_CONFIG = {
    "Crawler": {
        "max_urls": 10,
        "exclude_query_strings": False,
        "interval_seconds": 0.25,
        "request_timeout": 10,
    },
    "Scheduler": {
        "concurrency": 5,
        "navigation_timeout_ms": 30000,
        "wait_until": "networkidle",
        "viewport_width": 1280,
        "viewport_height": 800,
        "headless": True,
    },
    "Evidence": {
        "scroll_behavior": "smooth",
        "scroll_block": "center",
        "wait_time_ms": 500,
        "padding_px": 100,
    },
    "Rules": {
        "enabled": [],  # empty means every registered rule
    },
    "Report": {
        "report_dir": "reports",
        "basename": "seo-report",
        "title": "SEO Analysis Report",
    },
    "Global": {
        "user_agent": DEFAULT_USER_AGENT,
        "request_timeout": 10,
        "http_retries_total": 2,
        "http_backoff_factor": 0.2,
        "http_status_forcelist": [429, 500, 502, 503, 504],
    },
}


def default_config() -> Dict[str, Dict[str, Any]]:
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow per-section merge: section dicts are updated, other keys replaced."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str]) -> Dict[str, Dict[str, Any]]:
    config = default_config()
    if not path:
        return config
    try:
        with open(path, 'r', encoding='utf-8') as f:
            file_cfg = json.load(f)
    except FileNotFoundError:
        logger.warning("Config file %s not found. Using default settings.", path)
        return config
    except json.JSONDecodeError as e:
        logger.warning("Error decoding JSON from %s (%s). Using default settings.", path, e)
        return config
    if not isinstance(file_cfg, dict):
        logger.warning("Config file %s must contain a JSON object. Using default settings.", path)
        return config
    logger.info("Loaded custom configuration from %s", path)
    return merge_config(config, file_cfg)


def env_log_level(default: str = 'INFO') -> str:
    return os.getenv('SEOTEST_LOG_LEVEL', default)


@dataclass
class CrawlConfig:
    max_urls: int = 10  # 0 = unbounded
    exclude_query_strings: bool = False
    interval_seconds: float = 0.25
    request_timeout: float = 10
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_dict(cls, cfg: Optional[Dict[str, Any]], user_agent: Optional[str] = None) -> 'CrawlConfig':
        cfg = cfg or {}
        max_urls = int(cfg.get('max_urls', 10))
        if max_urls < 0:
            raise ValueError(f"max_urls must be >= 0, got {max_urls}")
        return cls(
            max_urls=max_urls,
            exclude_query_strings=bool(cfg.get('exclude_query_strings', False)),
            interval_seconds=float(cfg.get('interval_seconds', 0.25)),
            request_timeout=float(cfg.get('request_timeout', 10)),
            user_agent=str(user_agent or cfg.get('user_agent', DEFAULT_USER_AGENT)),
        )


@dataclass
class SchedulerConfig:
    concurrency: int = 5
    navigation_timeout_ms: int = 30000
    wait_until: str = 'networkidle'
    viewport_width: int = 1280
    viewport_height: int = 800
    headless: bool = True
    user_agent: Optional[str] = None

    @classmethod
    def from_dict(cls, cfg: Optional[Dict[str, Any]], user_agent: Optional[str] = None) -> 'SchedulerConfig':
        cfg = cfg or {}
        concurrency = int(cfg.get('concurrency', 5))
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        return cls(
            concurrency=concurrency,
            navigation_timeout_ms=int(cfg.get('navigation_timeout_ms', 30000)),
            wait_until=str(cfg.get('wait_until', 'networkidle')),
            viewport_width=int(cfg.get('viewport_width', 1280)),
            viewport_height=int(cfg.get('viewport_height', 800)),
            headless=bool(cfg.get('headless', True)),
            user_agent=user_agent,
        )


@dataclass
class CaptureOptions:
    """
    Element screenshot settings.

    `wait_time_ms` is the pause after asking the browser to scroll the element
    into view. The scroll is animated and its completion is not observed, so
    this is an approximation: slow pages can still be captured mid-scroll.
    """
    scroll_behavior: str = 'smooth'
    scroll_block: str = 'center'
    wait_time_ms: int = 500
    padding_px: int = 100

    @classmethod
    def from_dict(cls, cfg: Optional[Dict[str, Any]]) -> 'CaptureOptions':
        cfg = cfg or {}
        return cls(
            scroll_behavior=str(cfg.get('scroll_behavior', 'smooth')),
            scroll_block=str(cfg.get('scroll_block', 'center')),
            wait_time_ms=int(cfg.get('wait_time_ms', 500)),
            padding_px=int(cfg.get('padding_px', 100)),
        )
