"""
Playlist URL resolution.

Resolves the references found in an HLS playlist (absolute URLs,
root-relative paths and relative paths) against the playlist's own URL.
"""

import logging
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)

ABSOLUTE_PREFIXES = ('http://', 'https://')


def is_absolute(reference: str) -> bool:
    return reference.startswith(ABSOLUTE_PREFIXES)


def _naive_origin(base_url: str) -> str:
    """scheme://host part of base_url without parsing it"""
    scheme, sep, rest = base_url.partition('://')
    if not sep:
        return base_url.rstrip('/')
    return f"{scheme}://{rest.split('/', 1)[0]}"


def _naive_directory(base_url: str) -> str:
    """base_url up to and including its last '/'"""
    base = base_url.split('?', 1)[0].split('#', 1)[0]
    if '://' in base and '/' not in base.split('://', 1)[1]:
        return base + '/'
    return base.rsplit('/', 1)[0] + '/'


def naive_resolve(reference: str, base_url: str) -> str:
    """Plain string concatenation used when base_url cannot be parsed"""
    if reference.startswith('/'):
        return _naive_origin(base_url) + reference
    return _naive_directory(base_url) + reference


def resolve(reference: str, base_url: str) -> str:
    """
    Resolve a playlist reference to an absolute URL.

    Args:
        reference: Line from the playlist (segment, key or child playlist)
        base_url: URL the playlist was fetched from

    Returns:
        Absolute URL. Never raises; malformed input degrades to naive
        concatenation so one bad line cannot abort a whole manifest.
    """
    reference = reference.strip()

    if is_absolute(reference):
        return reference

    try:
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"base URL has no scheme or host: {base_url!r}")

        if reference.startswith('/') and not reference.startswith('//'):
            return urljoin(f"{parsed.scheme}://{parsed.netloc}", reference)

        return urljoin(base_url, reference)
    except ValueError as e:
        logger.debug(f"Falling back to naive resolution for {reference!r}: {e}")
        return naive_resolve(reference, base_url)
