import logging

from django.urls import reverse

from .config import HLSProxyConfig, get_public_base_url

logger = logging.getLogger(__name__)


def _first_forwarded_value(request, header):
    # Proxies chain values as "a, b"; the client-facing one comes first
    value = request.META.get(header, '')
    return value.split(',')[0].strip()


def get_public_base(request) -> str:
    """
    Externally reachable scheme://host of this deployment.

    HLS_PROXY_PUBLIC_BASE_URL wins; otherwise X-Forwarded-Proto/Host are
    honoured so rewritten playlists point at the reverse proxy, not at the
    internal address.
    """
    configured = get_public_base_url()
    if configured:
        return configured.rstrip('/')

    scheme = _first_forwarded_value(request, 'HTTP_X_FORWARDED_PROTO') or request.scheme
    host = _first_forwarded_value(request, 'HTTP_X_FORWARDED_HOST') or request.get_host()
    return f"{scheme}://{host}"


def get_proxy_endpoints(request):
    """Absolute (manifest_endpoint, segment_endpoint) URLs for this deployment"""
    base = get_public_base(request)
    return (
        base + reverse('hls_proxy:manifest'),
        base + reverse('hls_proxy:segment'),
    )


def apply_cors_headers(response):
    for name, value in HLSProxyConfig.CORS_HEADERS.items():
        response[name] = value
    return response
