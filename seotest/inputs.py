from __future__ import annotations

from typing import IO, Iterable, List
from urllib.parse import urlparse


def parse_url_lines(lines: Iterable[str]) -> List[str]:
    """Keep stripped lines that start with "http"; anything else is dropped."""
    urls = []
    for line in lines:
        line = line.strip()
        if line.startswith('http'):
            urls.append(line)
    return urls


def read_urls_from_stream(stream: IO[str]) -> List[str]:
    return parse_url_lines(stream)


def read_urls_from_file(path: str) -> List[str]:
    with open(path, 'r', encoding='utf-8') as f:
        return read_urls_from_stream(f)


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def require_valid_url(url: str) -> str:
    url = (url or '').strip()
    if not is_valid_url(url):
        raise ValueError(f"Invalid URL provided: {url}")
    return url
