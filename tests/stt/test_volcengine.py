import json
from urllib.parse import parse_qs, urlsplit
import pytest
from websockets.datastructures import Headers
from websockets.exceptions import InvalidStatus
from websockets.http11 import Response
from sttgateway.models import ErrorCode, SpeechSuccess, Valid, ValidationError
from sttgateway.signing import VolcengineTokenSigner
from sttgateway.stt.volcengine import VolcengineProtocol, VolcengineSpeechRecognizer

AUDIO = b"\x01\x00" * 3200


async def no_sleep(seconds: float):
    pass


def make_recognizer(connector) -> VolcengineSpeechRecognizer:
    return VolcengineSpeechRecognizer("my-ak", "my-sk", "app-1", user_id="user-1", ws_connect=connector, sleep=no_sleep)


@pytest.mark.asyncio
async def test_transcribe(fake_socket, fake_connector):
    socket = fake_socket([
        json.dumps({"code": 1000, "message": "Success"}),
        json.dumps({"code": 1000, "result": {"text": "今天", "is_final": False}}),
        json.dumps({"code": 1000, "result": {"text": "今天天气", "is_final": True}}),
        json.dumps({"code": 1000, "result": {"text": "今天天气很好", "is_final": True}}),
        json.dumps({"code": 1000, "result": {"text": "", "is_final": False}}),
        json.dumps({"full_server_response": {}}),
    ])
    connector = fake_connector(socket)
    recognizer = make_recognizer(connector)

    # Results are cumulative, the last final one is the transcript
    assert await recognizer.transcribe(AUDIO, "zh-CN") == SpeechSuccess("今天天气很好")

    parts = urlsplit(connector.url)
    assert f"{parts.netloc}{parts.path}" == "openspeech.bytedance.com/v1/asr"
    query = parse_qs(parts.query)
    assert query["appid"] == ["app-1"]
    assert query["cluster"] == ["volcengine_streaming_common"]
    assert query["token"][0].startswith("my-ak;")

    start = json.loads(socket.sent[0])["full_client_request"]
    assert start["app"] == {"appid": "app-1", "token": query["token"][0], "cluster": "volcengine_streaming_common"}
    assert start["user"] == {"uid": "user-1"}
    assert start["audio"]["language"] == "zh-CN"
    assert start["request"]["with_itn"] is True
    assert json.loads(socket.sent[-1]) == {"signal": "finish"}
    await recognizer.release()


@pytest.mark.asyncio
async def test_full_server_response_text_wins(fake_socket, fake_connector):
    socket = fake_socket([
        json.dumps({"result": {"text": "partial", "is_final": True}}),
        json.dumps({"full_server_response": {"result": {"text": "complete sentence"}}}),
    ])
    recognizer = make_recognizer(fake_connector(socket))
    assert await recognizer.transcribe(AUDIO, "en-US") == SpeechSuccess("complete sentence")
    await recognizer.release()


def test_english_audio_language():
    protocol = VolcengineProtocol(VolcengineTokenSigner("ak", "sk"), "app", "cluster", "uid", "en-GB")
    assert json.loads(protocol.start_messages()[0])["full_client_request"]["audio"]["language"] == "en-US"


@pytest.mark.asyncio
async def test_error_code(fake_socket, fake_connector):
    socket = fake_socket([json.dumps({"code": 1001, "message": "invalid request parameters"})])
    recognizer = make_recognizer(fake_connector(socket))

    result = await recognizer.transcribe(AUDIO, "zh-CN")
    assert result.code == ErrorCode.RECOGNITION_FAILED
    assert result.message == "Volcengine error: invalid request parameters"
    assert result.detail == "1001"
    await recognizer.release()


@pytest.mark.asyncio
async def test_validate_with_silence(fake_socket, fake_connector):
    recognizer = make_recognizer(fake_connector(fake_socket([json.dumps({"full_server_response": {}})])))
    assert await recognizer.validate_credentials() == Valid()
    await recognizer.release()


@pytest.mark.asyncio
async def test_validate_handshake_rejected(fake_connector):
    connector = fake_connector(InvalidStatus(Response(401, "Unauthorized", Headers(), b"")))
    recognizer = make_recognizer(connector)
    assert (await recognizer.validate_credentials()).error == ValidationError.INVALID_CREDENTIALS
    await recognizer.release()
