"""
HLS Manifest Rewriter

Rewrites every URI line of an M3U8 playlist so it points back at this
deployment's proxy endpoints. Tags, comments and blank lines are left alone.
"""

import enum
import logging
from urllib.parse import quote, urlparse

from .config import HLSProxyConfig
from .url_resolver import is_absolute, resolve

logger = logging.getLogger(__name__)


class ManifestLine(enum.Enum):
    COMMENT = 'comment'
    EMPTY = 'empty'
    DATA_URI = 'data_uri'
    ALREADY_PROXIED = 'already_proxied'
    ABSOLUTE_URL = 'absolute_url'
    ROOT_RELATIVE_PATH = 'root_relative_path'
    RELATIVE_PATH = 'relative_path'


# Line kinds emitted verbatim
PASSTHROUGH_LINES = {
    ManifestLine.COMMENT,
    ManifestLine.EMPTY,
    ManifestLine.DATA_URI,
    ManifestLine.ALREADY_PROXIED,
}


def classify_line(line: str, proxy_endpoints=()) -> ManifestLine:
    stripped = line.strip()

    if not stripped:
        return ManifestLine.EMPTY
    if stripped.startswith('#'):
        return ManifestLine.COMMENT
    if stripped.lower().startswith('data:'):
        return ManifestLine.DATA_URI
    if any(endpoint and endpoint in stripped for endpoint in proxy_endpoints):
        return ManifestLine.ALREADY_PROXIED
    if is_absolute(stripped):
        return ManifestLine.ABSOLUTE_URL
    if stripped.startswith('/'):
        return ManifestLine.ROOT_RELATIVE_PATH
    return ManifestLine.RELATIVE_PATH


def is_playlist_url(url: str) -> bool:
    try:
        path = urlparse(url).path
    except ValueError:
        path = url.split('?', 1)[0]
    return path.lower().endswith(HLSProxyConfig.PLAYLIST_EXTENSIONS)


def build_proxy_url(endpoint: str, target_url: str) -> str:
    return f"{endpoint}?url={quote(target_url, safe='')}"


class ManifestRewriter:
    """
    Rewrites playlists fetched from origin_url.

    proxy_endpoint receives every reference unless segment_endpoint is
    given, in which case only child playlists go to proxy_endpoint and
    segments/keys go to segment_endpoint.
    """

    def __init__(self, proxy_endpoint: str, segment_endpoint: str = None):
        self.proxy_endpoint = proxy_endpoint
        self.segment_endpoint = segment_endpoint
        self.endpoints = tuple(e for e in (proxy_endpoint, segment_endpoint) if e)

    def rewrite(self, manifest_text: str, origin_url: str) -> str:
        lines = manifest_text.split('\n')
        rewritten = [self.rewrite_line(line, origin_url) for line in lines]
        logger.debug(
            f"Rewrote manifest from {origin_url}: {len(lines)} lines"
        )
        return '\n'.join(rewritten)

    def rewrite_line(self, line: str, origin_url: str) -> str:
        kind = classify_line(line, self.endpoints)
        if kind in PASSTHROUGH_LINES:
            return line

        absolute = resolve(line.strip(), origin_url)
        proxied = build_proxy_url(self._endpoint_for(absolute), absolute)
        logger.trace(f"{kind.value}: {line.strip()} -> {proxied}")
        return proxied

    def _endpoint_for(self, absolute_url: str) -> str:
        if self.segment_endpoint and not is_playlist_url(absolute_url):
            return self.segment_endpoint
        return self.proxy_endpoint


def rewrite(manifest_text: str, origin_url: str, proxy_endpoint: str, segment_endpoint: str = None) -> str:
    """Rewrite manifest_text so every URI line goes through proxy_endpoint"""
    return ManifestRewriter(proxy_endpoint, segment_endpoint).rewrite(manifest_text, origin_url)
