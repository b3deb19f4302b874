import datetime
import json
import struct
import uuid
import zlib
import pytest
from sttgateway.eventstream import (
    AwsStreamException,
    EventStreamBuffer,
    EventStreamError,
    decode_message,
    decode_transcript_event,
    encode_audio_event,
    encode_message,
)


def transcript_frame(results: list, event_type: str = "TranscriptEvent") -> bytes:
    return encode_message(
        {
            ":message-type": "event",
            ":event-type": event_type,
            ":content-type": "application/json",
        },
        json.dumps({"Transcript": {"Results": results}}).encode("utf-8")
    )


def test_frame_layout():
    frame = encode_message({":event-type": "AudioEvent"}, b"\x01\x02\x03")
    total_length, headers_length, prelude_crc = struct.unpack(">III", frame[:12])

    assert total_length == len(frame)
    assert prelude_crc == zlib.crc32(frame[:8])
    # 1 (name length) + 11 (name) + 1 (type) + 2 (value length) + 10 (value)
    assert headers_length == 25
    assert frame[-7:-4] == b"\x01\x02\x03"
    assert struct.unpack(">I", frame[-4:])[0] == zlib.crc32(frame[:-4])


def test_empty_message_is_sixteen_bytes():
    frame = encode_message({}, b"")
    assert len(frame) == 16
    assert decode_message(frame).payload == b""


def test_headers_of_every_type():
    headers = {
        "flag-on": True,
        "flag-off": False,
        "count": 42,
        "blob": b"\x00\xff",
        "name": "value",
        "at": datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc),
        "id": uuid.UUID("12345678-1234-5678-1234-567812345678"),
    }
    message = decode_message(encode_message(headers, b"payload"))
    assert message.headers == headers
    assert message.payload == b"payload"


def test_corrupt_frames_are_rejected():
    frame = bytearray(encode_message({":event-type": "AudioEvent"}, b"abc"))

    with pytest.raises(EventStreamError):
        decode_message(bytes(frame[:10]))

    broken_payload = bytearray(frame)
    broken_payload[-5] ^= 0xFF
    with pytest.raises(EventStreamError, match="Message CRC"):
        decode_message(bytes(broken_payload))

    broken_prelude = bytearray(frame)
    broken_prelude[3] ^= 0x01
    with pytest.raises(EventStreamError, match="Prelude CRC"):
        decode_message(bytes(broken_prelude))


def test_audio_event():
    message = decode_message(encode_audio_event(b"\x10\x20" * 100))
    assert message.message_type == "event"
    assert message.event_type == "AudioEvent"
    assert message.headers[":content-type"] == "application/octet-stream"
    assert message.payload == b"\x10\x20" * 100


def test_buffer_reassembles_split_frames():
    first = encode_message({":event-type": "A"}, b"one")
    second = encode_message({":event-type": "B"}, b"two")
    data = first + second

    buffer = EventStreamBuffer()
    assert buffer.feed(data[:7]) == []
    messages = buffer.feed(data[7:len(first) + 3])
    assert [m.payload for m in messages] == [b"one"]
    messages = buffer.feed(data[len(first) + 3:])
    assert [m.payload for m in messages] == [b"two"]


def test_decode_transcript_event():
    event = decode_transcript_event(transcript_frame([
        {"IsPartial": False, "Alternatives": [{"Transcript": "Hello world"}]}
    ]))
    assert event.text == "Hello world"
    assert event.is_partial is False

    partial = decode_transcript_event(transcript_frame([
        {"IsPartial": True, "Alternatives": [{"Transcript": "Hel"}]}
    ]))
    assert partial.is_partial is True


def test_decode_transcript_event_tolerates_noise():
    # Too short, corrupt, other event types and empty results carry no transcript
    assert decode_transcript_event(b"") is None
    assert decode_transcript_event(b"\x00" * 15) is None
    assert decode_transcript_event(b"\x00" * 20) is None
    assert decode_transcript_event(transcript_frame([], event_type="OtherEvent")) is None
    assert decode_transcript_event(transcript_frame([])) is None
    assert decode_transcript_event(transcript_frame([{"Alternatives": []}])) is None


def test_decode_transcript_event_raises_on_exception():
    frame = encode_message(
        {
            ":message-type": "exception",
            ":exception-type": "BadRequestException",
            ":content-type": "application/json",
        },
        json.dumps({"Message": "Invalid sample rate"}).encode("utf-8")
    )
    with pytest.raises(AwsStreamException) as excinfo:
        decode_transcript_event(frame)
    assert excinfo.value.exception_type == "BadRequestException"
    assert excinfo.value.message == "Invalid sample rate"
