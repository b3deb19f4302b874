"""
Binary codec for the AWS event-stream framing used by Transcribe streaming.

Frame layout (all integers big-endian):

    total length (4) | headers length (4) | prelude CRC32 (4)
    headers ... | payload ... | message CRC32 (4)

Each header is: name length (1), name, value type (1), value.
"""
from dataclasses import dataclass, field
import datetime
import json
import logging
import struct
import uuid
import zlib
from typing import Dict, List, Union

logger = logging.getLogger(__name__)

PRELUDE_LENGTH = 12
MESSAGE_CRC_LENGTH = 4
MIN_FRAME_LENGTH = PRELUDE_LENGTH + MESSAGE_CRC_LENGTH

HEADER_BOOL_TRUE = 0
HEADER_BOOL_FALSE = 1
HEADER_BYTE = 2
HEADER_SHORT = 3
HEADER_INTEGER = 4
HEADER_LONG = 5
HEADER_BYTES = 6
HEADER_STRING = 7
HEADER_TIMESTAMP = 8
HEADER_UUID = 9

HeaderValue = Union[str, bytes, bool, int, datetime.datetime, uuid.UUID]


class EventStreamError(Exception):
    pass


class AwsStreamException(Exception):
    def __init__(self, exception_type: str, message: str):
        super().__init__(f"{exception_type}: {message}")
        self.exception_type = exception_type
        self.message = message


@dataclass
class EventStreamMessage:
    headers: Dict[str, HeaderValue] = field(default_factory=dict)
    payload: bytes = b""

    @property
    def message_type(self) -> str:
        return self.headers.get(":message-type", "")

    @property
    def event_type(self) -> str:
        return self.headers.get(":event-type", "")


@dataclass
class TranscriptEvent:
    text: str
    is_partial: bool


def _crc32(data: bytes, crc: int = 0) -> int:
    return zlib.crc32(data, crc) & 0xFFFFFFFF


def _encode_header(name: str, value: HeaderValue) -> bytes:
    name_bytes = name.encode("utf-8")
    if len(name_bytes) > 255:
        raise EventStreamError(f"Header name too long: {name}")
    out = struct.pack(">B", len(name_bytes)) + name_bytes

    if isinstance(value, bool):
        return out + struct.pack(">B", HEADER_BOOL_TRUE if value else HEADER_BOOL_FALSE)
    if isinstance(value, int):
        return out + struct.pack(">Bi", HEADER_INTEGER, value)
    if isinstance(value, bytes):
        return out + struct.pack(">BH", HEADER_BYTES, len(value)) + value
    if isinstance(value, datetime.datetime):
        millis = int(value.timestamp() * 1000)
        return out + struct.pack(">Bq", HEADER_TIMESTAMP, millis)
    if isinstance(value, uuid.UUID):
        return out + struct.pack(">B", HEADER_UUID) + value.bytes

    value_bytes = str(value).encode("utf-8")
    return out + struct.pack(">BH", HEADER_STRING, len(value_bytes)) + value_bytes


def encode_headers(headers: Dict[str, HeaderValue]) -> bytes:
    return b"".join(_encode_header(name, value) for name, value in headers.items())


def encode_message(headers: Dict[str, HeaderValue], payload: bytes = b"") -> bytes:
    header_bytes = encode_headers(headers)
    total_length = PRELUDE_LENGTH + len(header_bytes) + len(payload) + MESSAGE_CRC_LENGTH

    prelude = struct.pack(">II", total_length, len(header_bytes))
    prelude += struct.pack(">I", _crc32(prelude))

    body = prelude + header_bytes + payload
    return body + struct.pack(">I", _crc32(body))


def decode_headers(data: bytes) -> Dict[str, HeaderValue]:
    headers = {}
    offset = 0
    try:
        while offset < len(data):
            name_length = data[offset]
            offset += 1
            name = data[offset:offset + name_length].decode("utf-8")
            offset += name_length
            value_type = data[offset]
            offset += 1

            if value_type == HEADER_BOOL_TRUE:
                value = True
            elif value_type == HEADER_BOOL_FALSE:
                value = False
            elif value_type == HEADER_BYTE:
                value = struct.unpack_from(">b", data, offset)[0]
                offset += 1
            elif value_type == HEADER_SHORT:
                value = struct.unpack_from(">h", data, offset)[0]
                offset += 2
            elif value_type == HEADER_INTEGER:
                value = struct.unpack_from(">i", data, offset)[0]
                offset += 4
            elif value_type == HEADER_LONG:
                value = struct.unpack_from(">q", data, offset)[0]
                offset += 8
            elif value_type in (HEADER_BYTES, HEADER_STRING):
                value_length = struct.unpack_from(">H", data, offset)[0]
                offset += 2
                raw = data[offset:offset + value_length]
                offset += value_length
                value = raw.decode("utf-8") if value_type == HEADER_STRING else bytes(raw)
            elif value_type == HEADER_TIMESTAMP:
                millis = struct.unpack_from(">q", data, offset)[0]
                offset += 8
                value = datetime.datetime.fromtimestamp(millis / 1000, tz=datetime.timezone.utc)
            elif value_type == HEADER_UUID:
                value = uuid.UUID(bytes=bytes(data[offset:offset + 16]))
                offset += 16
            else:
                raise EventStreamError(f"Unknown header value type: {value_type}")

            headers[name] = value

    except (IndexError, struct.error, UnicodeDecodeError, ValueError) as ex:
        raise EventStreamError(f"Malformed header block: {ex}") from ex

    return headers


def decode_message(frame: bytes) -> EventStreamMessage:
    if len(frame) < MIN_FRAME_LENGTH:
        raise EventStreamError(f"Frame too short: {len(frame)} bytes")

    total_length, headers_length, prelude_crc = struct.unpack_from(">III", frame, 0)
    if _crc32(frame[:8]) != prelude_crc:
        raise EventStreamError("Prelude CRC mismatch")
    if total_length != len(frame):
        raise EventStreamError(f"Frame length mismatch: header says {total_length}, got {len(frame)}")
    if PRELUDE_LENGTH + headers_length > total_length - MESSAGE_CRC_LENGTH:
        raise EventStreamError(f"Invalid headers length: {headers_length}")

    message_crc = struct.unpack_from(">I", frame, total_length - MESSAGE_CRC_LENGTH)[0]
    if _crc32(frame[:total_length - MESSAGE_CRC_LENGTH]) != message_crc:
        raise EventStreamError("Message CRC mismatch")

    headers_end = PRELUDE_LENGTH + headers_length
    return EventStreamMessage(
        headers=decode_headers(frame[PRELUDE_LENGTH:headers_end]),
        payload=bytes(frame[headers_end:total_length - MESSAGE_CRC_LENGTH])
    )


class EventStreamBuffer:
    """Reassembles messages from a byte stream that may split or join frames."""

    def __init__(self):
        self._buffer = bytearray()

    def feed(self, data: bytes) -> List[EventStreamMessage]:
        self._buffer.extend(data)
        messages = []
        while len(self._buffer) >= PRELUDE_LENGTH:
            total_length = struct.unpack_from(">I", self._buffer, 0)[0]
            if total_length < MIN_FRAME_LENGTH:
                self._buffer.clear()
                raise EventStreamError(f"Invalid frame length: {total_length}")
            if len(self._buffer) < total_length:
                break
            frame = bytes(self._buffer[:total_length])
            del self._buffer[:total_length]
            messages.append(decode_message(frame))
        return messages


def encode_audio_event(chunk: bytes) -> bytes:
    return encode_message(
        {
            ":content-type": "application/octet-stream",
            ":event-type": "AudioEvent",
            ":message-type": "event",
        },
        chunk
    )


def decode_transcript_event(frame: bytes) -> TranscriptEvent | None:
    """
    Unwrap a TranscriptEvent frame.

    Returns None when the frame carries no transcript: too short, corrupt,
    another event type or an empty result list. Exception frames raise
    AwsStreamException.
    """
    if len(frame) < MIN_FRAME_LENGTH:
        return None

    try:
        message = decode_message(frame)
    except EventStreamError as ex:
        logger.warning(f"Skipping undecodable event-stream frame: {ex}")
        return None

    if message.message_type == "exception":
        exception_type = message.headers.get(":exception-type", "UnknownException")
        try:
            detail = json.loads(message.payload).get("Message", "")
        except (ValueError, AttributeError):
            detail = message.payload.decode("utf-8", errors="replace")
        raise AwsStreamException(exception_type, detail)

    if message.message_type == "error":
        raise AwsStreamException(
            message.headers.get(":error-code", "UnknownError"),
            message.headers.get(":error-message", "")
        )

    if message.event_type != "TranscriptEvent":
        return None

    try:
        results = json.loads(message.payload)["Transcript"]["Results"]
    except (ValueError, KeyError, TypeError):
        return None

    for result in results:
        alternatives = result.get("Alternatives") or []
        if not alternatives:
            continue
        return TranscriptEvent(
            text=alternatives[0].get("Transcript", ""),
            is_partial=bool(result.get("IsPartial", False))
        )

    return None
