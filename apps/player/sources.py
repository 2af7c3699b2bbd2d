"""
Stream source classification.

Decides how a streaming link is played: through the adaptive HLS player,
as a plain video file, or embedded in an iframe.
"""

import enum
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlparse


class SourceKind(enum.Enum):
    HLS = 'HLS'
    DIRECT = 'DIRECT'
    IFRAME = 'IFRAME'
    YOUTUBE = 'YOUTUBE'
    VIMEO = 'VIMEO'


# Played inside an iframe; the platform handles its own CORS
EMBED_KINDS = {SourceKind.IFRAME, SourceKind.YOUTUBE, SourceKind.VIMEO}

HLS_LINK_TYPES = {'HLS', 'M3U8'}

YOUTUBE_HOSTS = ('youtube.com', 'youtu.be', 'youtube-nocookie.com')
VIMEO_HOSTS = ('vimeo.com',)

VIMEO_ID_RE = re.compile(r'/(?:video/)?(\d+)')


@dataclass(frozen=True)
class StreamSource:
    url: str
    kind: SourceKind
    quality: str = ''
    link_id: Optional[int] = None

    @property
    def is_embed(self) -> bool:
        return self.kind in EMBED_KINDS


def _host(url: str) -> str:
    try:
        return (urlparse(url).hostname or '').lower()
    except ValueError:
        return ''


def _host_matches(host: str, domains) -> bool:
    return any(host == d or host.endswith('.' + d) for d in domains)


def classify_source(url: str, link_type: Optional[str] = None) -> SourceKind:
    """
    Classify a stream URL.

    Platform URLs win over the declared link type, then an explicit IFRAME
    type, then playlist extensions / HLS types; everything else is DIRECT.
    """
    link_type = (link_type or '').upper()
    host = _host(url)

    if link_type == SourceKind.YOUTUBE.value or _host_matches(host, YOUTUBE_HOSTS):
        return SourceKind.YOUTUBE
    if link_type == SourceKind.VIMEO.value or _host_matches(host, VIMEO_HOSTS):
        return SourceKind.VIMEO
    if link_type == SourceKind.IFRAME.value:
        return SourceKind.IFRAME

    lowered = url.lower().split('#', 1)[0]
    path = lowered.split('?', 1)[0]
    if link_type in HLS_LINK_TYPES or '.m3u8' in path or path.endswith('.m3u'):
        return SourceKind.HLS

    return SourceKind.DIRECT


def embed_url(source: StreamSource) -> str:
    """URL to put in the iframe for an embeddable source"""
    if source.kind == SourceKind.YOUTUBE:
        video_id = _youtube_id(source.url)
        if video_id:
            return f"https://www.youtube.com/embed/{video_id}?autoplay=1"
    elif source.kind == SourceKind.VIMEO:
        match = VIMEO_ID_RE.search(urlparse(source.url).path)
        if match:
            return f"https://player.vimeo.com/video/{match.group(1)}?autoplay=1"
    return source.url


def _youtube_id(url: str) -> Optional[str]:
    parsed = urlparse(url)
    host = (parsed.hostname or '').lower()
    if host.endswith('youtu.be'):
        return parsed.path.lstrip('/').split('/', 1)[0] or None
    if parsed.path.startswith(('/embed/', '/live/', '/shorts/')):
        return parsed.path.split('/')[2] or None
    return parse_qs(parsed.query).get('v', [None])[0]


def source_from_link(link) -> StreamSource:
    """Build a StreamSource from a StreamingLink-like object (url, type, quality, id)"""
    return StreamSource(
        url=link.url,
        kind=classify_source(link.url, getattr(link, 'type', None)),
        quality=getattr(link, 'quality', '') or '',
        link_id=getattr(link, 'id', None),
    )
