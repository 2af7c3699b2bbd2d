"""
Upstream Fetcher

Fetches playlists and binary segments from third-party origins with a
browser-like identity, a bounded total timeout and bounded redirects, and
classifies the result instead of raising.
"""

import enum
import logging
import os
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional, Union
from urllib.parse import urljoin, urlparse

import requests

from .config import (
    HLSProxyConfig,
    ProxyErrorMessage,
    get_max_redirects,
    get_timeout,
    get_user_agent,
)
from .exceptions import InvalidStreamURL

logger = logging.getLogger(__name__)


class FetchMode(enum.Enum):
    TEXT = 'text'
    BINARY = 'binary'


class FetchStatus(enum.Enum):
    SUCCESS = 'success'
    HTTP_ERROR = 'http_error'
    TIMEOUT = 'timeout'
    NETWORK_ERROR = 'network_error'


def validate_stream_url(url: Optional[str]) -> str:
    """
    Validate a proxy target URL.

    Raises:
        InvalidStreamURL: missing, unparsable, or not http/https
    """
    if url is None or not str(url).strip():
        raise InvalidStreamURL(ProxyErrorMessage.URL_REQUIRED, url=url)

    url = str(url).strip()
    try:
        parsed = urlparse(url)
    except ValueError:
        raise InvalidStreamURL(ProxyErrorMessage.INVALID_URL, url=url)

    scheme = parsed.scheme.lower()
    if scheme and scheme not in HLSProxyConfig.ALLOWED_SCHEMES:
        raise InvalidStreamURL(ProxyErrorMessage.SCHEME_NOT_ALLOWED, url=url)

    if not scheme or not parsed.netloc:
        raise InvalidStreamURL(ProxyErrorMessage.INVALID_URL, url=url)

    return url


def infer_content_type(url: str) -> str:
    """Guess a segment content type from the URL's file extension"""
    try:
        path = urlparse(url).path
    except ValueError:
        path = url.split('?', 1)[0]

    extension = os.path.splitext(path)[1].lstrip('.').lower()
    return HLSProxyConfig.CONTENT_TYPES.get(extension, HLSProxyConfig.DEFAULT_CONTENT_TYPE)


def _response_socket(response):
    connection = getattr(response.raw, 'connection', None)
    return getattr(connection, 'sock', None)


class DeadlineWatchdog:
    """
    Aborts an upstream response once the total deadline passes.

    requests applies its read timeout to each socket read, so an origin
    that trickles bytes never trips it. Shutting the socket down wakes a
    read blocked in another thread; the reader then sees EOF or an error
    and checks `expired`.
    """

    def __init__(self, deadline):
        self.deadline = deadline
        self.expired = False
        self._response = None
        self._timer = None
        self._cancelled = False
        self._lock = threading.Lock()

    def arm(self, response):
        self._response = response
        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            self._expire()
            return
        self._timer = threading.Timer(remaining, self._expire)
        self._timer.daemon = True
        self._timer.start()

    def _expire(self):
        with self._lock:
            if self._cancelled:
                return
            self.expired = True

        logger.warning(f"Total deadline reached, aborting upstream read of {self._response.url}")
        sock = _response_socket(self._response)
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Upstream socket already closed: {e}")

    def cancel(self):
        with self._lock:
            self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()


class UpstreamBody:
    """
    Iterable over an upstream response body.

    The upstream connection is released when iteration finishes, fails, or
    close() is called (Django closes streaming content on client disconnect).
    Iteration stops early, without raising, once the total deadline passes.
    """

    def __init__(self, response, session, deadline, chunk_size=HLSProxyConfig.CHUNK_SIZE, watchdog=None):
        self.response = response
        self.session = session
        self.deadline = deadline
        self.chunk_size = chunk_size
        self.watchdog = watchdog
        self.closed = False

    def _expired(self) -> bool:
        if self.watchdog is not None and self.watchdog.expired:
            return True
        return time.monotonic() > self.deadline

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self.response.iter_content(chunk_size=self.chunk_size):
                if self._expired():
                    logger.warning(f"Deadline exceeded while streaming {self.response.url}, stopping")
                    return
                if chunk:
                    yield chunk
        except (requests.exceptions.RequestException, OSError):
            if not self._expired():
                raise
            logger.warning(f"Deadline exceeded while streaming {self.response.url}, stopping")
        finally:
            self.close()

    def close(self):
        if self.closed:
            return
        self.closed = True
        if self.watchdog is not None:
            self.watchdog.cancel()
        self.response.close()
        self.session.close()


@dataclass
class FetchOutcome:
    url: str
    status: FetchStatus
    body: Optional[Union[str, UpstreamBody]] = None
    content_type: str = ''
    headers: Dict[str, str] = field(default_factory=dict)
    status_code: Optional[int] = None
    error: Optional[str] = None
    # Where the body actually came from, after redirects
    final_url: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == FetchStatus.SUCCESS

    def close(self):
        if isinstance(self.body, UpstreamBody):
            self.body.close()


class UpstreamFetcher:
    """Fetches one upstream resource per call; holds no state between calls"""

    def __init__(self, timeout=None, max_redirects=None, user_agent=None,
                 session_factory: Callable[[], requests.Session] = requests.Session):
        self.timeout = get_timeout() if timeout is None else timeout
        self.max_redirects = get_max_redirects() if max_redirects is None else max_redirects
        self.user_agent = user_agent or get_user_agent()
        self.session_factory = session_factory

    def _build_session(self) -> requests.Session:
        session = self.session_factory()
        session.headers.update({
            'User-Agent': self.user_agent,
            'Accept': HLSProxyConfig.ACCEPT,
            'Accept-Language': HLSProxyConfig.ACCEPT_LANGUAGE,
        })
        return session

    def _open(self, session, url, deadline):
        """
        GET url, following redirects by hand so every hop shares one deadline.

        Raises:
            requests.exceptions.Timeout: the deadline passed between hops
            requests.exceptions.TooManyRedirects: more than max_redirects hops
        """
        for _ in range(self.max_redirects + 1):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise requests.exceptions.Timeout(f"Total timeout of {self.timeout}s exceeded")

            response = session.get(url, stream=True, timeout=remaining, allow_redirects=False)
            if not response.is_redirect:
                return response

            next_url = urljoin(url, response.headers['location'])
            response.close()
            logger.debug(f"Following redirect {url} -> {next_url}")
            url = next_url

        raise requests.exceptions.TooManyRedirects(f"Exceeded {self.max_redirects} redirects.")

    def fetch(self, url: str, mode: FetchMode = FetchMode.TEXT) -> FetchOutcome:
        """
        Fetch url and classify the result.

        Raises:
            InvalidStreamURL: before any network activity, for a bad target
        """
        url = validate_stream_url(url)
        deadline = time.monotonic() + self.timeout
        session = self._build_session()

        logger.debug(f"Fetching upstream {mode.value}: {url}")
        try:
            response = self._open(session, url, deadline)
        except requests.exceptions.Timeout as e:
            session.close()
            logger.warning(f"Upstream timeout for {url}: {e}")
            return FetchOutcome(url=url, status=FetchStatus.TIMEOUT, error=str(e))
        except requests.exceptions.RequestException as e:
            session.close()
            logger.warning(f"Upstream network error for {url}: {e}")
            return FetchOutcome(url=url, status=FetchStatus.NETWORK_ERROR, error=str(e))

        final_url = response.url or url
        if not response.ok:
            status_code = response.status_code
            reason = response.reason
            response.close()
            session.close()
            logger.warning(f"Upstream returned HTTP {status_code} for {final_url}")
            return FetchOutcome(
                url=url,
                status=FetchStatus.HTTP_ERROR,
                status_code=status_code,
                error=f"Upstream responded with {status_code} {reason or ''}".strip(),
                final_url=final_url,
            )

        watchdog = DeadlineWatchdog(deadline)
        watchdog.arm(response)

        if mode == FetchMode.BINARY:
            return self._binary_outcome(url, final_url, response, session, watchdog)
        return self._text_outcome(url, final_url, response, session, watchdog)

    def _text_outcome(self, url, final_url, response, session, watchdog) -> FetchOutcome:
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=HLSProxyConfig.CHUNK_SIZE):
                if watchdog.expired:
                    break
                chunks.append(chunk)
        except (requests.exceptions.RequestException, OSError) as e:
            if not watchdog.expired:
                logger.warning(f"Upstream read failed for {url}: {e}")
                return FetchOutcome(url=url, status=FetchStatus.NETWORK_ERROR, error=str(e))
        finally:
            watchdog.cancel()
            response.close()
            session.close()

        if watchdog.expired:
            logger.warning(f"Total timeout of {self.timeout}s exceeded reading {url}")
            return FetchOutcome(
                url=url,
                status=FetchStatus.TIMEOUT,
                error=f"Read exceeded {self.timeout}s",
            )

        return FetchOutcome(
            url=url,
            status=FetchStatus.SUCCESS,
            body=b''.join(chunks).decode('utf-8', errors='replace'),
            content_type=response.headers.get('content-type', ''),
            status_code=response.status_code,
            final_url=final_url,
        )

    def _binary_outcome(self, url, final_url, response, session, watchdog) -> FetchOutcome:
        headers = {
            name: response.headers[name]
            for name in HLSProxyConfig.PASSTHROUGH_HEADERS
            if response.headers.get(name)
        }
        # iter_content decodes gzip/deflate, so the upstream length no longer applies
        if response.headers.get('content-encoding'):
            headers.pop('content-length', None)
        content_type = headers.get('content-type') or infer_content_type(url)

        return FetchOutcome(
            url=url,
            status=FetchStatus.SUCCESS,
            body=UpstreamBody(response, session, watchdog.deadline, watchdog=watchdog),
            content_type=content_type,
            headers=headers,
            status_code=response.status_code,
            final_url=final_url,
        )
