"""
Player Controller

Drives a player backend through the playback state machine: creates a
fresh player for every load, tears the previous one down first, schedules
in-place retries and makes sure nothing fires after teardown.
"""

import abc
import logging
import threading
from typing import Callable, Optional, Sequence

from .sources import StreamSource
from .state import (
    ActionType,
    DEFAULT_MAX_RETRIES,
    ManifestParsed,
    PlaybackAttempt,
    PlaybackFailed,
    PlaybackPlan,
    PlaybackState,
    PlayerError,
    Start,
    transition,
)

logger = logging.getLogger(__name__)


class AutoplayBlocked(Exception):
    """The browser refused to start playback without a user gesture"""


class PlayerBackend(abc.ABC):
    """One player instance bound to the page's media element"""

    @abc.abstractmethod
    def load(self, url: str, source: StreamSource):
        ...

    @abc.abstractmethod
    def embed(self, url: str, source: StreamSource):
        ...

    @abc.abstractmethod
    def recover_media_error(self):
        ...

    @abc.abstractmethod
    def start_load(self):
        ...

    @abc.abstractmethod
    def play(self):
        """Start playback; may raise AutoplayBlocked"""

    @abc.abstractmethod
    def destroy(self):
        """Detach from the media element and release network resources"""


class TimerScheduler:
    """Schedules callbacks on threading.Timer; handles expose cancel()"""

    def call_later(self, delay: float, callback: Callable[[], None]):
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class PlayerController:
    """
    Plays the first working source of a match.

    Args:
        sources: Stream sources, most preferred first
        backend_factory: Returns a new PlayerBackend for each load
        proxy_endpoint: Absolute URL of the manifest proxy
        notify: Callable(level, message) for user-visible notices
        autoplay_authorized: Callable returning whether autoplay is allowed now
        scheduler: Object with call_later(delay, callback) -> handle.cancel()
        retry_delay: Seconds to wait before an in-place retry
    """

    def __init__(
        self,
        sources: Sequence[StreamSource],
        backend_factory: Callable[[], PlayerBackend],
        proxy_endpoint: str,
        notify: Optional[Callable[[str, str], None]] = None,
        autoplay_authorized: Callable[[], bool] = lambda: True,
        scheduler=None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = 1.0,
    ):
        self.plan = PlaybackPlan(
            sources=tuple(sources),
            proxy_endpoint=proxy_endpoint,
            max_retries=max_retries,
        )
        self.backend_factory = backend_factory
        self.notify = notify or (lambda level, message: None)
        self.autoplay_authorized = autoplay_authorized
        self.scheduler = scheduler or TimerScheduler()
        self.retry_delay = retry_delay

        self.attempt = PlaybackAttempt(max_retries=max_retries)
        self.backend: Optional[PlayerBackend] = None
        self._pending = []
        # Bumped on every teardown; stale callbacks compare against it
        self._generation = 0
        self._lock = threading.RLock()

    @property
    def state(self) -> PlaybackState:
        return self.attempt.state

    def start(self):
        """Start from the first source. Also used for a manual retry."""
        self._dispatch(Start())

    retry = start

    def on_manifest_parsed(self):
        self._dispatch(ManifestParsed())

    def on_error(self, error: PlayerError):
        self._dispatch(PlaybackFailed(error))

    def teardown(self):
        """Destroy the active player and cancel pending retries"""
        with self._lock:
            self._generation += 1
            for handle in self._pending:
                handle.cancel()
            self._pending.clear()

            if self.backend is not None:
                backend, self.backend = self.backend, None
                try:
                    backend.destroy()
                except Exception as e:
                    logger.warning(f"Error destroying player: {e}")

    def _dispatch(self, event):
        with self._lock:
            self.attempt, action = transition(self.plan, self.attempt, event)
            logger.debug(
                f"{type(event).__name__} -> {self.attempt.state.value} "
                f"(source={self.attempt.source_index}, proxy={self.attempt.using_proxy}, "
                f"retries={self.attempt.retry_count}): {action.type.value}"
            )
            self._perform(action)

    def _perform(self, action):
        if action.message and action.type != ActionType.SHOW_FAILURE:
            self.notify('info', action.message)

        if action.type == ActionType.LOAD:
            self._new_backend().load(action.url, self.attempt.current_source)
        elif action.type == ActionType.EMBED:
            self._new_backend().embed(action.url, self.attempt.current_source)
        elif action.type == ActionType.RECOVER_MEDIA:
            self.notify('error', 'Media error. Trying to recover...')
            self._schedule(lambda backend: backend.recover_media_error())
        elif action.type == ActionType.RESTART_LOAD:
            self.notify('error', 'Network error. Trying to recover...')
            self._schedule(lambda backend: backend.start_load())
        elif action.type == ActionType.PLAY:
            self._autoplay()
        elif action.type == ActionType.SHOW_FAILURE:
            self.teardown()
            self.notify('error', action.message)

    def _new_backend(self) -> PlayerBackend:
        self.teardown()
        self.backend = self.backend_factory()
        return self.backend

    def _schedule(self, operation):
        generation = self._generation

        def fire():
            with self._lock:
                if handle in self._pending:
                    self._pending.remove(handle)
                if generation != self._generation or self.backend is None:
                    logger.debug("Dropping retry scheduled for a torn-down player")
                    return
                operation(self.backend)

        # Held so a timer that fires immediately still finds its handle registered
        with self._lock:
            handle = self.scheduler.call_later(self.retry_delay, fire)
            self._pending.append(handle)

    def _autoplay(self):
        if not self.autoplay_authorized():
            logger.debug("Autoplay not authorized yet, waiting for the viewer")
            return
        try:
            self.backend.play()
        except AutoplayBlocked:
            logger.debug("Autoplay blocked by the browser")
