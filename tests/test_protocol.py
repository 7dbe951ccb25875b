import json
from datetime import datetime, timezone

import pytest

from protocol import FrameError, decode_event, encode_event, utc_timestamp


def test_encode_is_compact_json():
    assert encode_event("typing", {"isTyping": True}) == '{"event":"typing","data":{"isTyping":true}}'


def test_decode_returns_event_and_data():
    assert decode_event('{"event":"send-message","data":{"message":"hi"}}') == ("send-message", {"message": "hi"})


def test_decode_without_data_yields_none():
    assert decode_event(json.dumps({"event": "typing"})) == ("typing", None)


@pytest.mark.parametrize("frame", ["not json", "[1, 2]", '{"data": {}}', '{"event": ""}', '{"event": 3}'])
def test_malformed_frames_raise(frame):
    with pytest.raises(FrameError):
        decode_event(frame)


def test_timestamp_is_iso8601_utc_with_milliseconds():
    moment = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)
    assert utc_timestamp(moment) == "2024-05-06T07:08:09.123Z"
