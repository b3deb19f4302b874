import base64
import json
import httpx
import pytest
from sttgateway.models import ErrorCode, SpeechSuccess, ValidationError
from sttgateway.stt.gemini import GeminiSpeechRecognizer, is_valid_transcription

AUDIO = b"\x01\x00" * 3200


def gemini_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.mark.asyncio
async def test_transcribe(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1beta/models/gemini-2.0-flash:generateContent"
        assert request.url.params["key"] == "gemini-key"
        body = json.loads(request.content)
        parts = body["contents"][0]["parts"]
        assert parts[0]["inline_data"]["mime_type"] == "audio/wav"
        assert base64.b64decode(parts[0]["inline_data"]["data"])[:4] == b"RIFF"
        assert "Simplified Chinese" in parts[1]["text"]
        assert body["generationConfig"]["temperature"] == 0.1
        return httpx.Response(200, json=gemini_response("今天天气很好\n"))

    recognizer = GeminiSpeechRecognizer("gemini-key", http_client=mock_http(handler))
    assert await recognizer.transcribe(AUDIO, "zh-CN") == SpeechSuccess("今天天气很好")


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    gemini_response("Unable to recognize"),
    gemini_response("00:00 00:01 00:02 00:03"),
    {"candidates": []},
    {},
])
async def test_no_speech(mock_http, body):
    recognizer = GeminiSpeechRecognizer("gemini-key", http_client=mock_http(lambda r: httpx.Response(200, json=body)))
    result = await recognizer.transcribe(AUDIO, "en-US")
    assert result.code == ErrorCode.NO_SPEECH_DETECTED


@pytest.mark.parametrize("text, valid", [
    ("Hello there", True),
    ("你好", True),
    ("a", False),
    ("I'm sorry, I cannot transcribe this audio.", False),
    ("There is only silence in this clip", False),
    ("00:00:00", False),
    ("00:00 00:01 00:02", False),
    ("0:0:0:0:0:0:0 0:0 1", False),
    ("hahahahahahahahahahahahahahahahaha", False),
])
def test_is_valid_transcription(text, valid):
    assert is_valid_transcription(text) is valid


@pytest.mark.asyncio
async def test_audio_file_passes_mime_type(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        part = json.loads(request.content)["contents"][0]["parts"][0]["inline_data"]
        assert part["mime_type"] == "audio/mpeg"
        assert base64.b64decode(part["data"]) == b"\xff\xfb" * 2000
        return httpx.Response(200, json=gemini_response("from mp3"))

    recognizer = GeminiSpeechRecognizer("gemini-key", http_client=mock_http(handler))
    assert (await recognizer.transcribe_audio_file(b"\xff\xfb" * 2000, "audio/mpeg", "en-US")).text == "from mp3"


@pytest.mark.asyncio
async def test_validate_with_bad_key(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1beta/models"
        return httpx.Response(403, json={"error": {"status": "PERMISSION_DENIED"}})

    recognizer = GeminiSpeechRecognizer("bad-key", http_client=mock_http(handler))
    result = await recognizer.validate_credentials()
    assert result.error == ValidationError.INVALID_CREDENTIALS
