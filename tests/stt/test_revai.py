import json
from urllib.parse import parse_qs, urlsplit
import httpx
import pytest
from sttgateway.models import ErrorCode, SpeechSuccess, Valid, ValidationError
from sttgateway.stt.revai import RevAiSpeechRecognizer, elements_text

AUDIO = b"\x01\x00" * 8000


async def no_sleep(seconds: float):
    pass


def hypothesis(message_type: str, *words: str) -> str:
    elements = []
    for i, word in enumerate(words):
        if i:
            elements.append({"type": "punct", "value": " "})
        elements.append({"type": "text", "value": word, "ts": i * 0.5, "end_ts": i * 0.5 + 0.4})
    return json.dumps({"type": message_type, "ts": 0.0, "end_ts": 1.0, "elements": elements})


@pytest.mark.asyncio
async def test_transcribe(fake_socket, fake_connector):
    socket = fake_socket([
        json.dumps({"type": "connected", "id": "job-1"}),
        hypothesis("partial", "hello"),
        hypothesis("final", "Hello", "there."),
        hypothesis("final", "General", "Kenobi."),
    ])
    connector = fake_connector(socket)
    recognizer = RevAiSpeechRecognizer("rev-token", ws_connect=connector, sleep=no_sleep)

    assert await recognizer.transcribe(AUDIO, "en-US") == SpeechSuccess("Hello there. General Kenobi.")

    parts = urlsplit(connector.url)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "wss://api.rev.ai/speechtotext/v1/stream"
    query = parse_qs(parts.query)
    assert query["access_token"] == ["rev-token"]
    assert query["content_type"] == ["audio/x-raw;layout=interleaved;rate=16000;format=S16LE;channels=1"]
    assert query["language"] == ["en"]
    assert socket.sent == [AUDIO[:8000], AUDIO[8000:], "EOS"]
    await recognizer.release()


def test_elements_text():
    assert elements_text([
        {"type": "text", "value": "Hi"},
        {"type": "punct", "value": ","},
        {"type": "punct", "value": " "},
        {"type": "unknown", "value": "<unk>"},
        {"type": "text", "value": "Bob"},
    ]) == "Hi, Bob"
    assert elements_text(None) == ""


@pytest.mark.asyncio
async def test_error_message(fake_socket, fake_connector):
    socket = fake_socket([json.dumps({"type": "error", "message": "Insufficient credits"})])
    recognizer = RevAiSpeechRecognizer("rev-token", ws_connect=fake_connector(socket), sleep=no_sleep)

    result = await recognizer.transcribe(AUDIO, "en-US")
    assert result.code == ErrorCode.RECOGNITION_FAILED
    assert result.message == "Rev.ai error: Insufficient credits"
    await recognizer.release()


@pytest.mark.asyncio
async def test_abnormal_close(fake_socket, fake_connector):
    socket = fake_socket([], close_code=4001, close_reason="Unauthorized")
    recognizer = RevAiSpeechRecognizer("bad", ws_connect=fake_connector(socket), sleep=no_sleep)

    result = await recognizer.transcribe(AUDIO, "en-US")
    assert result.code == ErrorCode.RECOGNITION_FAILED
    assert result.detail == "Unauthorized"
    await recognizer.release()


@pytest.mark.asyncio
async def test_validate(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://api.rev.ai/speechtotext/v1/account"
        assert request.headers["Authorization"] == "Bearer rev-token"
        return httpx.Response(200, json={"email": "someone@example.com", "balance_seconds": 300})

    recognizer = RevAiSpeechRecognizer("rev-token", http_client=mock_http(handler))
    assert await recognizer.validate_credentials() == Valid()

    recognizer = RevAiSpeechRecognizer("bad", http_client=mock_http(lambda request: httpx.Response(401)))
    assert (await recognizer.validate_credentials()).error == ValidationError.INVALID_CREDENTIALS
