import base64
import json
import httpx
import pytest
from sttgateway.models import ErrorCode, Invalid, SpeechSuccess, Valid, ValidationError
from sttgateway.stt.google import GoogleSpeechRecognizer

AUDIO = b"\x01\x00" * 3200


@pytest.mark.asyncio
async def test_transcribe_with_api_key(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/speech:recognize"
        assert request.url.params["key"] == "gcp-key"
        assert request.headers["X-Goog-User-Project"] == "my-project"
        body = json.loads(request.content)
        assert body["config"] == {
            "encoding": "LINEAR16",
            "sampleRateHertz": 16000,
            "languageCode": "ja-JP",
            "enableAutomaticPunctuation": True
        }
        assert base64.b64decode(body["audio"]["content"]) == AUDIO
        return httpx.Response(200, json={"results": [
            {"alternatives": [{"transcript": "こんにちは", "confidence": 0.9}]},
            {"alternatives": [{"transcript": " 世界"}]},
            {"alternatives": []},
        ]})

    recognizer = GoogleSpeechRecognizer("my-project", api_key="gcp-key", http_client=mock_http(handler))
    assert await recognizer.transcribe(AUDIO, "ja") == SpeechSuccess("こんにちは 世界")


@pytest.mark.asyncio
async def test_empty_results(mock_http):
    recognizer = GoogleSpeechRecognizer("my-project", api_key="gcp-key", http_client=mock_http(lambda r: httpx.Response(200, json={})))
    assert (await recognizer.transcribe(AUDIO, "en-US")).code == ErrorCode.NO_SPEECH_DETECTED


@pytest.mark.asyncio
async def test_validate_with_silence(mock_http):
    client = mock_http(lambda r: httpx.Response(200, json={"totalBilledTime": "1s"}))
    recognizer = GoogleSpeechRecognizer("my-project", api_key="gcp-key", http_client=client)

    # No speech in the probe still proves the key works
    assert await recognizer.validate_credentials() == Valid()
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_invalid_api_key_is_reported_as_400(mock_http):
    client = mock_http(lambda r: httpx.Response(400, json={"error": {"code": 400, "message": "API key not valid. Please pass a valid API key."}}))
    recognizer = GoogleSpeechRecognizer("my-project", api_key="bad", http_client=client)

    assert await recognizer.validate_credentials() == Invalid(ValidationError.INVALID_CREDENTIALS, "API key not valid")


@pytest.mark.asyncio
async def test_other_400_errors_stay_unknown(mock_http):
    client = mock_http(lambda r: httpx.Response(400, json={"error": {"message": "Invalid recognition config"}}))
    recognizer = GoogleSpeechRecognizer("my-project", api_key="gcp-key", http_client=client)

    result = await recognizer.validate_credentials()
    assert result.error == ValidationError.UNKNOWN


@pytest.mark.asyncio
async def test_service_account_without_json_falls_back_to_api_key(mock_http):
    recognizer = GoogleSpeechRecognizer(
        "my-project", api_key="gcp-key", use_service_account=True, http_client=mock_http(lambda r: httpx.Response(200))
    )
    assert recognizer.use_service_account is False
    assert recognizer.token_provider is None
