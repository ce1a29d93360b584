"""Decoding /release/recent responses."""

from __future__ import annotations

from metacpan_recent.models import GatewayResponse
from metacpan_recent.parser import decode_releases

from tests.factories import T, feed_response, make_release, raw_response


def test_decodes_release_list_in_feed_order():
    releases = [make_release(T + 10, "A-1"), make_release(T + 5, "B-1")]
    assert decode_releases(feed_response(releases)) == releases


def test_empty_release_list():
    assert decode_releases(feed_response([])) == []


def test_absent_response():
    assert decode_releases(None) == []


def test_non_success_status_is_ignored_even_with_valid_body():
    assert decode_releases(feed_response([make_release(T)], status=500)) == []


def test_transport_error():
    assert decode_releases(GatewayResponse(status=None, error="timeout")) == []


def test_body_that_is_not_json():
    assert decode_releases(raw_response("<html>502 Bad Gateway</html>")) == []


def test_body_that_is_not_utf8():
    assert decode_releases(raw_response(b"\xff\xfe\x00")) == []


def test_releases_not_an_array():
    assert decode_releases(raw_response('{"releases": "not-an-array"}')) == []


def test_releases_missing():
    assert decode_releases(raw_response('{"total": 0}')) == []


def test_top_level_array():
    assert decode_releases(raw_response("[1, 2, 3]")) == []
