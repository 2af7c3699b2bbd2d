"""
Tests for the playback fallback state machine.
"""
from datetime import datetime, timedelta, timezone

from django.test import SimpleTestCase

from apps.player.sources import SourceKind, StreamSource
from apps.player.state import (
    ActionType,
    ErrorDetail,
    ErrorType,
    EXHAUSTED_MESSAGE,
    ManifestParsed,
    NEXT_SOURCE_MESSAGE,
    PlaybackAttempt,
    PlaybackFailed,
    PlaybackPlan,
    PlaybackState,
    PlayerError,
    Start,
    is_playback_authorized,
    transition,
)

PROXY = "https://watch.example.com/proxy/manifest"

A = StreamSource("https://a.example.com/live/index.m3u8", SourceKind.HLS)
B = StreamSource("https://b.example.com/live/index.m3u8", SourceKind.HLS)
C = StreamSource("https://c.example.com/match.mp4", SourceKind.DIRECT)
YT = StreamSource("https://youtu.be/abc123", SourceKind.YOUTUBE)

MANIFEST_ERROR = PlayerError(ErrorType.NETWORK, ErrorDetail.MANIFEST_LOAD_ERROR, fatal=True)
MANIFEST_TIMEOUT = PlayerError(ErrorType.NETWORK, ErrorDetail.MANIFEST_LOAD_TIMEOUT, fatal=True)
FRAGMENT_ERROR = PlayerError(ErrorType.NETWORK, ErrorDetail.FRAGMENT_LOAD_ERROR, fatal=True)
MEDIA_ERROR = PlayerError(ErrorType.MEDIA, "bufferStalledError", fatal=True)
OTHER_ERROR = PlayerError(ErrorType.OTHER, "internalException", fatal=True)


class Machine:
    """Feeds events through transition() and records the actions"""

    def __init__(self, *sources, max_retries=3):
        self.plan = PlaybackPlan(sources=sources, proxy_endpoint=PROXY, max_retries=max_retries)
        self.attempt = PlaybackAttempt(max_retries=max_retries)
        self.actions = []

    def send(self, event):
        self.attempt, action = transition(self.plan, self.attempt, event)
        self.actions.append(action)
        return action

    def fail(self, error):
        return self.send(PlaybackFailed(error))


class FallbackOrderTests(SimpleTestCase):

    def test_direct_then_proxy_then_next_source(self):
        machine = Machine(A, B, C)

        action = machine.send(Start())
        self.assertEqual(action.type, ActionType.LOAD)
        self.assertEqual(action.url, A.url)
        self.assertEqual(machine.attempt.state, PlaybackState.LOADING_DIRECT)

        action = machine.fail(MANIFEST_ERROR)
        self.assertEqual(action.type, ActionType.LOAD)
        self.assertEqual(
            action.url,
            PROXY + "?url=https%3A%2F%2Fa.example.com%2Flive%2Findex.m3u8",
        )
        self.assertEqual(machine.attempt.state, PlaybackState.LOADING_PROXY)
        self.assertTrue(machine.attempt.using_proxy)
        self.assertEqual(machine.attempt.source_index, 0)

        action = machine.fail(MANIFEST_ERROR)
        self.assertEqual(action.type, ActionType.LOAD)
        self.assertEqual(action.url, B.url)
        self.assertEqual(action.message, NEXT_SOURCE_MESSAGE)
        self.assertEqual(machine.attempt.source_index, 1)
        self.assertFalse(machine.attempt.using_proxy)
        self.assertEqual(machine.attempt.state, PlaybackState.LOADING_DIRECT)

    def test_manifest_timeout_also_triggers_proxy(self):
        machine = Machine(A)
        machine.send(Start())
        action = machine.fail(MANIFEST_TIMEOUT)
        self.assertTrue(action.url.startswith(PROXY + "?url="))

    def test_non_hls_source_skips_proxy(self):
        machine = Machine(C, A)
        machine.send(Start())

        action = machine.fail(MANIFEST_ERROR)

        self.assertEqual(action.url, A.url)
        self.assertEqual(machine.attempt.source_index, 1)

    def test_embedded_source_is_not_loaded_by_the_player(self):
        machine = Machine(YT, A)

        action = machine.send(Start())

        self.assertEqual(action.type, ActionType.EMBED)
        self.assertEqual(action.url, "https://www.youtube.com/embed/abc123?autoplay=1")
        self.assertEqual(machine.attempt.state, PlaybackState.EMBEDDED)

    def test_errors_while_embedded_are_ignored(self):
        machine = Machine(YT, A)
        machine.send(Start())
        self.assertEqual(machine.fail(MANIFEST_ERROR).type, ActionType.IGNORE)
        self.assertEqual(machine.attempt.state, PlaybackState.EMBEDDED)

    def test_next_source_can_be_embedded(self):
        machine = Machine(C, YT)
        machine.send(Start())

        action = machine.fail(OTHER_ERROR)

        self.assertEqual(action.type, ActionType.EMBED)
        self.assertEqual(action.message, NEXT_SOURCE_MESSAGE)

    def test_source_index_never_decreases(self):
        machine = Machine(A, B, C)
        machine.send(Start())
        indexes = [machine.attempt.source_index]
        for error in (MANIFEST_ERROR, MANIFEST_ERROR, MEDIA_ERROR, OTHER_ERROR, FRAGMENT_ERROR, OTHER_ERROR):
            machine.fail(error)
            indexes.append(machine.attempt.source_index)
        self.assertEqual(indexes, sorted(indexes))


class RetryTests(SimpleTestCase):

    def test_media_error_recovers_up_to_max_retries(self):
        machine = Machine(C, A)
        machine.send(Start())

        actions = [machine.fail(MEDIA_ERROR).type for _ in range(3)]
        self.assertEqual(actions, [ActionType.RECOVER_MEDIA] * 3)
        self.assertEqual(machine.attempt.retry_count, 3)
        self.assertEqual(machine.attempt.source_index, 0)

        action = machine.fail(MEDIA_ERROR)
        self.assertEqual(action.type, ActionType.LOAD)
        self.assertEqual(action.url, A.url)
        self.assertEqual(machine.attempt.retry_count, 0)

    def test_fragment_network_error_restarts_load(self):
        machine = Machine(A, B)
        machine.send(Start())

        self.assertEqual(machine.fail(FRAGMENT_ERROR).type, ActionType.RESTART_LOAD)
        self.assertFalse(machine.attempt.using_proxy)

    def test_fragment_network_error_after_proxy_advances(self):
        machine = Machine(A, B, C)
        machine.send(Start())
        machine.fail(MANIFEST_ERROR)
        self.assertEqual(machine.attempt.state, PlaybackState.LOADING_PROXY)

        action = machine.fail(FRAGMENT_ERROR)

        self.assertEqual(machine.attempt.source_index, 1)
        self.assertEqual(action.type, ActionType.LOAD)
        self.assertEqual(action.url, B.url)
        self.assertFalse(machine.attempt.using_proxy)

    def test_fragment_network_error_while_playing_through_proxy_advances(self):
        machine = Machine(A, B)
        machine.send(Start())
        machine.fail(MANIFEST_ERROR)
        machine.send(ManifestParsed())

        self.assertEqual(machine.fail(FRAGMENT_ERROR).url, B.url)

    def test_custom_max_retries(self):
        machine = Machine(C, A, max_retries=1)
        machine.send(Start())

        self.assertEqual(machine.fail(MEDIA_ERROR).type, ActionType.RECOVER_MEDIA)
        self.assertEqual(machine.fail(MEDIA_ERROR).url, A.url)

    def test_non_fatal_errors_are_ignored(self):
        machine = Machine(A)
        machine.send(Start())
        before = machine.attempt

        action = machine.fail(PlayerError(ErrorType.NETWORK, ErrorDetail.MANIFEST_LOAD_ERROR, fatal=False))

        self.assertEqual(action.type, ActionType.IGNORE)
        self.assertEqual(machine.attempt, before)

    def test_other_fatal_error_advances(self):
        machine = Machine(A, B)
        machine.send(Start())
        self.assertEqual(machine.fail(OTHER_ERROR).url, B.url)

    def test_errors_while_playing_are_handled(self):
        machine = Machine(A, B)
        machine.send(Start())
        machine.send(ManifestParsed())

        self.assertEqual(machine.fail(MEDIA_ERROR).type, ActionType.RECOVER_MEDIA)


class LifecycleTests(SimpleTestCase):

    def test_manifest_parsed_plays(self):
        machine = Machine(A)
        machine.send(Start())

        action = machine.send(ManifestParsed())

        self.assertEqual(action.type, ActionType.PLAY)
        self.assertEqual(machine.attempt.state, PlaybackState.PLAYING)

    def test_manifest_parsed_through_proxy_plays(self):
        machine = Machine(A)
        machine.send(Start())
        machine.fail(MANIFEST_ERROR)

        self.assertEqual(machine.send(ManifestParsed()).type, ActionType.PLAY)
        self.assertTrue(machine.attempt.using_proxy)

    def test_manifest_parsed_when_idle_is_ignored(self):
        machine = Machine(A)
        self.assertEqual(machine.send(ManifestParsed()).type, ActionType.IGNORE)
        self.assertEqual(machine.attempt.state, PlaybackState.IDLE)

    def test_exhaustion(self):
        machine = Machine(A, B)
        machine.send(Start())
        for _ in range(4):
            machine.fail(MANIFEST_ERROR)

        self.assertEqual(machine.attempt.state, PlaybackState.ALL_SOURCES_EXHAUSTED)
        self.assertEqual(machine.actions[-1].type, ActionType.SHOW_FAILURE)
        self.assertEqual(machine.actions[-1].message, EXHAUSTED_MESSAGE)

    def test_errors_after_exhaustion_are_ignored(self):
        machine = Machine(C)
        machine.send(Start())
        machine.fail(OTHER_ERROR)

        self.assertEqual(machine.fail(OTHER_ERROR).type, ActionType.IGNORE)
        self.assertEqual(machine.attempt.state, PlaybackState.ALL_SOURCES_EXHAUSTED)

    def test_no_sources(self):
        machine = Machine()
        action = machine.send(Start())
        self.assertEqual(action.type, ActionType.SHOW_FAILURE)
        self.assertEqual(machine.attempt.state, PlaybackState.ALL_SOURCES_EXHAUSTED)

    def test_manual_restart_begins_at_first_source(self):
        machine = Machine(A, B)
        machine.send(Start())
        for _ in range(4):
            machine.fail(MANIFEST_ERROR)

        action = machine.send(Start())

        self.assertEqual(action.url, A.url)
        self.assertEqual(machine.attempt.source_index, 0)
        self.assertFalse(machine.attempt.using_proxy)
        self.assertEqual(machine.attempt.retry_count, 0)

    def test_unknown_event(self):
        machine = Machine(A)
        with self.assertRaises(TypeError):
            machine.send(object())


class PlaybackAuthorizationTests(SimpleTestCase):

    def setUp(self):
        self.kickoff = datetime(2026, 5, 1, 20, 0, tzinfo=timezone.utc)

    def test_live_match_always_authorized(self):
        self.assertTrue(is_playback_authorized("LIVE", self.kickoff, self.kickoff - timedelta(hours=5)))

    def test_two_minutes_before_kickoff(self):
        self.assertTrue(is_playback_authorized("UPCOMING", self.kickoff, self.kickoff - timedelta(minutes=2)))
        self.assertTrue(is_playback_authorized("UPCOMING", self.kickoff, self.kickoff))

    def test_too_early(self):
        self.assertFalse(
            is_playback_authorized("UPCOMING", self.kickoff, self.kickoff - timedelta(minutes=2, seconds=1))
        )
