"""
Playback state machine.

The fallback protocol (direct -> proxy -> next source) is expressed as a
pure transition function over an immutable PlaybackAttempt, so the order in
which sources and proxying are tried can be tested without a real player.

    IDLE -> SOURCE_SELECTED -> LOADING_DIRECT | LOADING_PROXY -> PLAYING
                                        |
                                        +-> next SOURCE_SELECTED ... -> ALL_SOURCES_EXHAUSTED
"""

import enum
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Optional, Tuple

from apps.proxy.hls_proxy.rewriter import build_proxy_url

from .sources import SourceKind, StreamSource, embed_url

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
ACCESS_WINDOW = timedelta(minutes=2)

NEXT_SOURCE_MESSAGE = 'Trying next stream...'
EXHAUSTED_MESSAGE = 'All streams failed. Please try again later.'


class PlaybackState(enum.Enum):
    IDLE = 'idle'
    SOURCE_SELECTED = 'source_selected'
    LOADING_DIRECT = 'loading_direct'
    LOADING_PROXY = 'loading_proxy'
    PLAYING = 'playing'
    EMBEDDED = 'embedded'
    ALL_SOURCES_EXHAUSTED = 'all_sources_exhausted'


ACTIVE_STATES = {
    PlaybackState.LOADING_DIRECT,
    PlaybackState.LOADING_PROXY,
    PlaybackState.PLAYING,
}


class ErrorType:
    """Player error categories (hls.js ErrorTypes values)"""
    NETWORK = 'networkError'
    MEDIA = 'mediaError'
    OTHER = 'otherError'


class ErrorDetail:
    MANIFEST_LOAD_ERROR = 'manifestLoadError'
    MANIFEST_LOAD_TIMEOUT = 'manifestLoadTimeOut'
    FRAGMENT_LOAD_ERROR = 'fragLoadError'


MANIFEST_LOAD_FAILURES = {ErrorDetail.MANIFEST_LOAD_ERROR, ErrorDetail.MANIFEST_LOAD_TIMEOUT}


@dataclass(frozen=True)
class PlayerError:
    type: str
    details: str = ''
    fatal: bool = True

    @property
    def is_manifest_load_failure(self) -> bool:
        return self.type == ErrorType.NETWORK and self.details in MANIFEST_LOAD_FAILURES


@dataclass(frozen=True)
class PlaybackPlan:
    """Ordered sources for one match and the proxy endpoint to fall back to"""
    sources: Tuple[StreamSource, ...]
    proxy_endpoint: str
    max_retries: int = DEFAULT_MAX_RETRIES


@dataclass(frozen=True)
class PlaybackAttempt:
    state: PlaybackState = PlaybackState.IDLE
    source_index: int = -1
    current_source: Optional[StreamSource] = None
    using_proxy: bool = False
    retry_count: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES


class ActionType(enum.Enum):
    LOAD = 'load'
    EMBED = 'embed'
    RECOVER_MEDIA = 'recover_media'
    RESTART_LOAD = 'restart_load'
    PLAY = 'play'
    SHOW_FAILURE = 'show_failure'
    IGNORE = 'ignore'


@dataclass(frozen=True)
class Action:
    type: ActionType
    url: Optional[str] = None
    message: Optional[str] = None


# Events

@dataclass(frozen=True)
class Start:
    """Begin (or manually restart) playback from the first source"""


@dataclass(frozen=True)
class ManifestParsed:
    """The player has media it can play"""


@dataclass(frozen=True)
class PlaybackFailed:
    error: PlayerError = field(default_factory=lambda: PlayerError(ErrorType.OTHER))


def select_source(plan: PlaybackPlan, index: int, message: Optional[str] = None):
    """Select plan.sources[index], or the terminal state if there is none"""
    if index >= len(plan.sources):
        last = plan.sources[-1] if plan.sources else None
        attempt = PlaybackAttempt(
            state=PlaybackState.ALL_SOURCES_EXHAUSTED,
            source_index=len(plan.sources),
            current_source=last,
            max_retries=plan.max_retries,
        )
        return attempt, Action(ActionType.SHOW_FAILURE, message=EXHAUSTED_MESSAGE)

    source = plan.sources[index]
    attempt = PlaybackAttempt(
        state=PlaybackState.SOURCE_SELECTED,
        source_index=index,
        current_source=source,
        max_retries=plan.max_retries,
    )

    if source.is_embed:
        return replace(attempt, state=PlaybackState.EMBEDDED), Action(
            ActionType.EMBED, url=embed_url(source), message=message
        )

    return replace(attempt, state=PlaybackState.LOADING_DIRECT), Action(
        ActionType.LOAD, url=source.url, message=message
    )


def _next_source(plan, attempt):
    logger.info(f"Giving up on source {attempt.source_index}, advancing")
    return select_source(plan, attempt.source_index + 1, message=NEXT_SOURCE_MESSAGE)


def _on_error(plan, attempt, error):
    if not error.fatal:
        logger.debug(f"Ignoring non-fatal player error: {error.type}/{error.details}")
        return attempt, Action(ActionType.IGNORE)

    if attempt.state not in ACTIVE_STATES:
        return attempt, Action(ActionType.IGNORE)

    source = attempt.current_source

    if error.type == ErrorType.NETWORK:
        if error.is_manifest_load_failure:
            # Only the first manifest failure of an HLS source is retried via proxy
            if source.kind == SourceKind.HLS and not attempt.using_proxy:
                proxied = replace(
                    attempt,
                    state=PlaybackState.LOADING_PROXY,
                    using_proxy=True,
                )
                return proxied, Action(
                    ActionType.LOAD,
                    url=build_proxy_url(plan.proxy_endpoint, source.url),
                )
            return _next_source(plan, attempt)

        # The proxy was this source's last chance
        if attempt.using_proxy:
            return _next_source(plan, attempt)

        if attempt.retry_count < attempt.max_retries:
            return replace(attempt, retry_count=attempt.retry_count + 1), Action(ActionType.RESTART_LOAD)
        return _next_source(plan, attempt)

    if error.type == ErrorType.MEDIA:
        if attempt.retry_count < attempt.max_retries:
            return replace(attempt, retry_count=attempt.retry_count + 1), Action(ActionType.RECOVER_MEDIA)
        return _next_source(plan, attempt)

    return _next_source(plan, attempt)


def transition(plan: PlaybackPlan, attempt: PlaybackAttempt, event):
    """
    Compute the next attempt and the action the controller must perform.

    Returns:
        (PlaybackAttempt, Action)
    """
    if isinstance(event, Start):
        return select_source(plan, 0)

    if isinstance(event, ManifestParsed):
        if attempt.state in (PlaybackState.LOADING_DIRECT, PlaybackState.LOADING_PROXY):
            return replace(attempt, state=PlaybackState.PLAYING), Action(ActionType.PLAY)
        return attempt, Action(ActionType.IGNORE)

    if isinstance(event, PlaybackFailed):
        return _on_error(plan, attempt, event.error)

    raise TypeError(f"Unknown playback event: {event!r}")


def is_playback_authorized(status: str, match_date: datetime, now: datetime) -> bool:
    """Live matches always play; others from ACCESS_WINDOW before kickoff"""
    if status == 'LIVE':
        return True
    return now >= match_date - ACCESS_WINDOW
