import base64
import json

import pytest

from weighbridge.client.detection import DetectionFeed, DetectionFrame, parse_frame
from weighbridge.core.errors import ValidationError

PNG = base64.b64encode(b"\x89PNG\r\n\x1a\nfake-bitmap").decode()


class FakeConnection:
    def __init__(self, messages):
        self.messages = messages

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def __iter__(self):
        return iter(self.messages)


def test_frame_is_normalized():
    frame = parse_frame(json.dumps({"schema_version": 1, "registration_number": " ka01ab1234 ", "vehicle_type": "truck"}))
    assert frame.registration_number == "KA01AB1234"
    assert frame.vehicle_type == "TRUCK"
    assert frame.fastag_id is None
    assert frame.image is None


def test_legacy_keys_are_accepted():
    frame = parse_frame({"plate": "MH 12 XY 0001", "vehicle": "Tipper", "fastag": "34161FA8", "image": f"data:image/png;base64,{PNG}"})
    assert frame.registration_number == "MH12XY0001"
    assert frame.fastag_id == "34161FA8"
    assert frame.image_bytes().startswith(b"\x89PNG")


def test_prefill_carries_only_present_fields():
    frame = DetectionFrame(registration_number="KA01AB1234", fastag_id="")
    assert frame.to_registration_prefill() == {"registration_number": "KA01AB1234"}

    full = DetectionFrame(registration_number="KA01AB1234", vehicle_type="truck", fastag_id="F1", image=PNG)
    assert full.to_registration_prefill() == {
        "registration_number": "KA01AB1234",
        "vehicle_type": "TRUCK",
        "fastag_id": "F1",
        "image": PNG,
    }


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "[1, 2]",
        json.dumps({"vehicle_type": "TRUCK"}),
        json.dumps({"registration_number": "AB"}),
        json.dumps({"registration_number": "KA01AB1234", "image": "%%%not-base64%%%"}),
        json.dumps({"schema_version": 2, "registration_number": "KA01AB1234"}),
    ],
)
def test_malformed_frames_raise_validation_error(raw):
    with pytest.raises(ValidationError):
        parse_frame(raw)


def test_feed_skips_bad_frames_and_reconnects():
    script = [
        OSError("connection refused"),
        ["{garbage", json.dumps({"plate": "ka 01 ab 1234"})],
        [json.dumps({"registration_number": "MH12XY0001", "fastag_id": "F9"})],
    ]
    attempts = []
    sleeps = []

    def connector(url):
        attempts.append(url)
        step = script[len(attempts) - 1]
        if isinstance(step, Exception):
            raise step
        return FakeConnection(step)

    feed = DetectionFeed("ws://camera/ws", reconnect_seconds=3, connector=connector, sleep=sleeps.append)
    seen = []
    for frame in feed.frames():
        seen.append(frame.registration_number)
        if len(seen) == 2:
            feed.close()

    assert seen == ["KA01AB1234", "MH12XY0001"]
    assert attempts == ["ws://camera/ws"] * 3
    assert sleeps == [3, 3]
    assert feed.dropped == 1
    assert feed.latest.fastag_id == "F9"
    assert not feed.connected
    assert feed.closed


def test_closed_feed_yields_nothing():
    def connector(url):
        raise AssertionError("must not connect")

    feed = DetectionFeed("ws://camera/ws", connector=connector)
    feed.close()
    assert list(feed.frames()) == []
