"""
HLS Proxy Views

Manifest and segment endpoints. Both take the upstream target in the
``url`` query parameter and always answer with permissive CORS headers.
"""

import logging

from django.http import HttpResponse, JsonResponse, StreamingHttpResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_http_methods

from .config import HLSProxyConfig, ProxyErrorMessage
from .exceptions import InvalidStreamURL
from .fetcher import FetchMode, FetchStatus, UpstreamFetcher
from .rewriter import ManifestRewriter
from .utils import apply_cors_headers, get_proxy_endpoints

logger = logging.getLogger(__name__)


def _json_error(payload, status):
    return apply_cors_headers(JsonResponse(payload, status=status))


def _preflight():
    return apply_cors_headers(HttpResponse(status=200))


def _failure_response(outcome):
    """Map a failed FetchOutcome to an HTTP error response"""
    if outcome.status == FetchStatus.TIMEOUT:
        return _json_error({
            'error': ProxyErrorMessage.TIMEOUT,
            'message': outcome.error,
            'url': outcome.url,
        }, status=504)

    if outcome.status == FetchStatus.HTTP_ERROR:
        status = outcome.status_code if outcome.status_code and outcome.status_code >= 400 else 502
        return _json_error({
            'error': ProxyErrorMessage.PROXY_FAILED,
            'detail': outcome.error,
            'status': outcome.status_code,
            'url': outcome.url,
        }, status=status)

    return _json_error({
        'error': ProxyErrorMessage.PROXY_FAILED,
        'detail': outcome.error,
        'url': outcome.url,
    }, status=500)


def _fetch(request, mode):
    """
    Validate the target and fetch it.

    Returns (outcome, error_response); exactly one of them is None.
    """
    target_url = request.GET.get('url')
    try:
        outcome = UpstreamFetcher().fetch(target_url, mode)
    except InvalidStreamURL as e:
        logger.info(f"Rejected proxy target {target_url!r}: {e.message}")
        payload = {'error': e.message}
        if target_url:
            payload['url'] = target_url
        return None, _json_error(payload, status=400)
    except Exception as e:
        logger.exception(f"Unexpected error fetching {target_url}")
        return None, _json_error({
            'error': ProxyErrorMessage.PROXY_FAILED,
            'detail': str(e),
            'url': target_url,
        }, status=500)

    if not outcome.ok:
        return None, _failure_response(outcome)

    return outcome, None


@never_cache
@require_http_methods(['GET', 'OPTIONS'])
def manifest_proxy(request):
    """Fetch a playlist and rewrite its URIs to go through this proxy"""
    if request.method == 'OPTIONS':
        return _preflight()

    outcome, error_response = _fetch(request, FetchMode.TEXT)
    if error_response is not None:
        return error_response

    try:
        manifest_endpoint, segment_endpoint = get_proxy_endpoints(request)
        rewriter = ManifestRewriter(manifest_endpoint, segment_endpoint=segment_endpoint)
        # Relative URIs are relative to wherever the redirects ended
        playlist = rewriter.rewrite(outcome.body, outcome.final_url or outcome.url)
    except Exception as e:
        logger.exception(f"Error rewriting manifest from {outcome.url}")
        return _json_error({
            'error': ProxyErrorMessage.PROXY_FAILED,
            'detail': str(e),
            'url': outcome.url,
        }, status=500)

    response = HttpResponse(playlist, content_type=HLSProxyConfig.PLAYLIST_CONTENT_TYPE)
    return apply_cors_headers(response)


@require_http_methods(['GET', 'OPTIONS'])
def segment_proxy(request):
    """Stream a segment, key or other binary file from upstream"""
    if request.method == 'OPTIONS':
        return _preflight()

    outcome, error_response = _fetch(request, FetchMode.BINARY)
    if error_response is not None:
        return error_response

    response = StreamingHttpResponse(outcome.body, content_type=outcome.content_type)
    if 'content-length' in outcome.headers:
        response['Content-Length'] = outcome.headers['content-length']
    if 'cache-control' in outcome.headers:
        response['Cache-Control'] = outcome.headers['cache-control']

    return apply_cors_headers(response)
