"""
Tests for the HLS manifest rewriter.
"""
from urllib.parse import parse_qs, urlparse

from django.test import SimpleTestCase

from apps.proxy.hls_proxy.rewriter import (
    ManifestLine,
    ManifestRewriter,
    build_proxy_url,
    classify_line,
    rewrite,
)

ENDPOINT = "https://proxy.example.com/api/matches/proxy"
SEGMENT_ENDPOINT = "https://proxy.example.com/proxy/segment"
ORIGIN = "https://cdn.example.com/live/master.m3u8"

MEDIA_PLAYLIST = "\n".join([
    "#EXTM3U",
    "#EXT-X-VERSION:3",
    "#EXT-X-TARGETDURATION:6",
    "#EXT-X-MEDIA-SEQUENCE:100",
    '#EXT-X-KEY:METHOD=AES-128,URI="keys/k1.key",IV=0x1234',
    "#EXTINF:6.000,",
    "seg100.ts",
    "#EXTINF:6.000,",
    "/absolute/seg101.ts",
    "#EXTINF:6.000,",
    "https://other.cdn.com/seg102.ts",
    "",
    "#EXT-X-ENDLIST",
    "",
])


def _uri_lines(text):
    return [
        line for line in text.split("\n")
        if line.strip() and not line.strip().startswith("#")
    ]


def _target(proxied_line):
    return parse_qs(urlparse(proxied_line).query)["url"][0]


class RewriteTests(SimpleTestCase):

    def test_master_playlist_child_reference(self):
        text = "#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=800000\n720p/index.m3u8"
        lines = rewrite(text, ORIGIN, ENDPOINT).split("\n")

        self.assertEqual(lines[0], "#EXTM3U")
        self.assertEqual(lines[1], "#EXT-X-STREAM-INF:BANDWIDTH=800000")
        self.assertEqual(
            lines[2],
            "https://proxy.example.com/api/matches/proxy?url="
            "https%3A%2F%2Fcdn.example.com%2Flive%2F720p%2Findex.m3u8",
        )

    def test_resolves_each_reference_kind(self):
        result = rewrite(MEDIA_PLAYLIST, "https://cdn.example.com/live/stream/index.m3u8", ENDPOINT)
        targets = [_target(line) for line in _uri_lines(result)]

        self.assertEqual(targets, [
            "https://cdn.example.com/live/stream/seg100.ts",
            "https://cdn.example.com/absolute/seg101.ts",
            "https://other.cdn.com/seg102.ts",
        ])

    def test_is_idempotent(self):
        once = rewrite(MEDIA_PLAYLIST, ORIGIN, ENDPOINT)
        twice = rewrite(once, ORIGIN, ENDPOINT)
        self.assertEqual(once, twice)

    def test_is_idempotent_with_segment_endpoint(self):
        once = rewrite(MEDIA_PLAYLIST, ORIGIN, ENDPOINT, segment_endpoint=SEGMENT_ENDPOINT)
        twice = rewrite(once, ORIGIN, ENDPOINT, segment_endpoint=SEGMENT_ENDPOINT)
        self.assertEqual(once, twice)

    def test_comment_and_blank_lines_are_preserved_exactly(self):
        text = "#EXTM3U  \n   \n#EXT-X-VERSION:3\t\n\nseg.ts\n# trailing comment "
        result = rewrite(text, ORIGIN, ENDPOINT)

        source_lines = text.split("\n")
        result_lines = result.split("\n")
        self.assertEqual(len(source_lines), len(result_lines))
        for before, after in zip(source_lines, result_lines):
            if not before.strip() or before.strip().startswith("#"):
                self.assertEqual(before, after)

    def test_key_uri_attribute_is_left_alone(self):
        result = rewrite(MEDIA_PLAYLIST, ORIGIN, ENDPOINT)
        self.assertIn('#EXT-X-KEY:METHOD=AES-128,URI="keys/k1.key",IV=0x1234', result.split("\n"))

    def test_every_uri_line_points_at_the_proxy(self):
        result = rewrite(MEDIA_PLAYLIST, ORIGIN, ENDPOINT)
        endpoint = urlparse(ENDPOINT)

        for line in _uri_lines(result):
            parsed = urlparse(line)
            self.assertEqual(parsed.scheme, "https")
            self.assertEqual(parsed.netloc, endpoint.netloc)
            self.assertTrue(parsed.path.startswith(endpoint.path))

    def test_data_uri_is_untouched(self):
        text = "#EXTM3U\ndata:application/octet-stream;base64,AAAA\nseg.ts"
        lines = rewrite(text, ORIGIN, ENDPOINT).split("\n")
        self.assertEqual(lines[1], "data:application/octet-stream;base64,AAAA")

    def test_already_proxied_line_is_untouched(self):
        proxied = build_proxy_url(ENDPOINT, "https://cdn.example.com/live/seg.ts")
        text = f"#EXTM3U\n{proxied}"
        self.assertEqual(rewrite(text, ORIGIN, ENDPOINT), text)

    def test_crlf_manifest(self):
        text = "#EXTM3U\r\n#EXTINF:4,\r\nseg1.ts\r\n"
        lines = rewrite(text, ORIGIN, ENDPOINT).split("\n")

        self.assertEqual(lines[0], "#EXTM3U\r")
        self.assertEqual(lines[1], "#EXTINF:4,\r")
        self.assertEqual(_target(lines[2]), "https://cdn.example.com/live/seg1.ts")
        self.assertEqual(lines[3], "")

    def test_trailing_newline_is_kept(self):
        self.assertTrue(rewrite("#EXTM3U\nseg.ts\n", ORIGIN, ENDPOINT).endswith("\n"))

    def test_bad_origin_does_not_abort_rewrite(self):
        text = "#EXTM3U\nseg1.ts\nhttps://ok.example.com/seg2.ts"
        lines = rewrite(text, "https://[broken/live/index.m3u8", ENDPOINT).split("\n")

        self.assertEqual(_target(lines[1]), "https://[broken/live/seg1.ts")
        self.assertEqual(_target(lines[2]), "https://ok.example.com/seg2.ts")

    def test_query_string_in_target_is_encoded(self):
        text = "seg1.ts?token=a&b=c"
        line = rewrite(text, ORIGIN, ENDPOINT)
        self.assertNotIn("&b=c", line)
        self.assertEqual(_target(line), "https://cdn.example.com/live/seg1.ts?token=a&b=c")


class SegmentEndpointTests(SimpleTestCase):

    def setUp(self):
        self.rewriter = ManifestRewriter(ENDPOINT, segment_endpoint=SEGMENT_ENDPOINT)

    def test_child_playlists_use_manifest_endpoint(self):
        line = self.rewriter.rewrite_line("720p/index.m3u8", ORIGIN)
        self.assertTrue(line.startswith(ENDPOINT + "?url="))

    def test_child_playlist_with_query_uses_manifest_endpoint(self):
        line = self.rewriter.rewrite_line("720p/index.m3u8?token=1", ORIGIN)
        self.assertTrue(line.startswith(ENDPOINT + "?url="))

    def test_segments_use_segment_endpoint(self):
        line = self.rewriter.rewrite_line("seg1.ts", ORIGIN)
        self.assertTrue(line.startswith(SEGMENT_ENDPOINT + "?url="))

    def test_segment_proxied_line_is_recognised(self):
        proxied = build_proxy_url(SEGMENT_ENDPOINT, "https://cdn.example.com/live/seg1.ts")
        self.assertEqual(self.rewriter.rewrite_line(proxied, ORIGIN), proxied)


class ClassifyLineTests(SimpleTestCase):

    def test_classification(self):
        cases = {
            "#EXTM3U": ManifestLine.COMMENT,
            "   ": ManifestLine.EMPTY,
            "": ManifestLine.EMPTY,
            "DATA:text/plain,abc": ManifestLine.DATA_URI,
            f"{ENDPOINT}?url=x": ManifestLine.ALREADY_PROXIED,
            "https://cdn.example.com/a.ts": ManifestLine.ABSOLUTE_URL,
            "/a/b.ts": ManifestLine.ROOT_RELATIVE_PATH,
            "a/b.ts": ManifestLine.RELATIVE_PATH,
        }
        for line, expected in cases.items():
            with self.subTest(line=line):
                self.assertEqual(classify_line(line, (ENDPOINT,)), expected)
