"""One response in, events on the subscriber and an advanced watermark out."""

from __future__ import annotations

import pytest

from metacpan_recent.models import GatewayResponse
from metacpan_recent.processor import ResponseProcessor
from metacpan_recent.session import Session

from tests.factories import T, feed_response, make_release, raw_response
from tests.mocks import Collector


@pytest.fixture
def processor(state, subscriber, clock):
    return ResponseProcessor(state, subscriber, clock=clock)


async def test_posts_new_releases_in_feed_order(processor, subscriber, collector):
    response = feed_response(
        [make_release(T + 10, "A-1"), make_release(T + 5, "B-1"), make_release(T - 5, "C-1")]
    )

    assert processor.process(response) == 2
    await subscriber.wait_idle()

    assert collector.names == ["A-1", "B-1"]


async def test_posts_raw_records(processor, subscriber, collector):
    release = make_release(T + 1, "A-1", version="1.00", metadata={"license": ["perl_5"]})
    processor.process(feed_response([release]))
    await subscriber.wait_idle()

    assert collector.releases == [release]


async def test_watermark_becomes_cycle_completion_time(processor, state, clock):
    clock.now = T + 300
    processor.process(feed_response([make_release(T + 10, "A-1")]))

    # the wall clock, not the newest release date
    assert state.watermark == T + 300


@pytest.mark.parametrize(
    "response",
    [
        None,
        GatewayResponse(status=503),
        GatewayResponse(status=None, error="timeout"),
        raw_response('{"releases": "not-an-array"}'),
        raw_response("not json"),
        feed_response([]),
    ],
)
async def test_empty_cycles_still_advance_watermark(processor, state, clock, subscriber, collector, response):
    clock.now = T + 180

    assert processor.process(response) == 0
    await subscriber.wait_idle()

    assert collector.releases == []
    assert state.watermark == T + 180


async def test_second_cycle_uses_the_new_watermark(processor, state, clock, subscriber, collector):
    clock.now = T + 100
    processor.process(feed_response([make_release(T + 50, "A-1")]))

    clock.now = T + 200
    processor.process(feed_response([make_release(T + 150, "B-1"), make_release(T + 50, "A-1")]))
    await subscriber.wait_idle()

    assert collector.names == ["A-1", "B-1"]
    assert state.watermark == T + 200


async def test_uses_configured_event_name(state, kernel, clock):
    other = Collector()
    sink = Session({"release": other}, kernel=kernel)
    state.event = "release"

    ResponseProcessor(state, sink, clock=clock).process(feed_response([make_release(T + 1, "A-1")]))
    await sink.wait_idle()

    assert other.names == ["A-1"]
