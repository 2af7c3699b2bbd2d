"""
HLS Proxy Configuration Constants
"""

from django.conf import settings


class HLSProxyConfig:
    """Configuration constants for the HLS proxy"""

    # Upstream fetch settings
    DEFAULT_TIMEOUT = 60  # seconds, total
    DEFAULT_MAX_REDIRECTS = 5
    CHUNK_SIZE = 64 * 1024
    DEFAULT_USER_AGENT = (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
    )
    ACCEPT = '*/*'
    ACCEPT_LANGUAGE = 'en-US,en;q=0.9'

    ALLOWED_SCHEMES = ('http', 'https')

    # Content types
    PLAYLIST_CONTENT_TYPE = 'application/vnd.apple.mpegURL'
    DEFAULT_CONTENT_TYPE = 'application/octet-stream'
    CONTENT_TYPES = {
        'ts': 'video/mp2t',
        'm4s': 'video/iso.segment',
        'key': 'application/octet-stream',
        'm3u8': 'application/vnd.apple.mpegURL',
    }
    PLAYLIST_EXTENSIONS = ('.m3u8', '.m3u')

    # Upstream headers forwarded on binary passthrough
    PASSTHROUGH_HEADERS = ('content-type', 'content-length', 'cache-control')

    CORS_HEADERS = {
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Methods': 'GET, OPTIONS',
        'Access-Control-Allow-Headers': 'Content-Type',
    }


class ProxyErrorMessage:
    URL_REQUIRED = 'Stream URL is required'
    INVALID_URL = 'Invalid URL format'
    SCHEME_NOT_ALLOWED = 'Only HTTP/HTTPS URLs are allowed'
    TIMEOUT = 'Request timeout'
    PROXY_FAILED = 'Proxy failed'


def get_timeout():
    return getattr(settings, 'HLS_PROXY_TIMEOUT', HLSProxyConfig.DEFAULT_TIMEOUT)


def get_max_redirects():
    return getattr(settings, 'HLS_PROXY_MAX_REDIRECTS', HLSProxyConfig.DEFAULT_MAX_REDIRECTS)


def get_user_agent():
    return getattr(settings, 'HLS_PROXY_USER_AGENT', None) or HLSProxyConfig.DEFAULT_USER_AGENT


def get_public_base_url():
    return getattr(settings, 'HLS_PROXY_PUBLIC_BASE_URL', '') or ''
