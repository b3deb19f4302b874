import httpx
import pytest
from sttgateway.models import ErrorCode, SpeechSuccess, ValidationError
from sttgateway.stt.otter import OtterSpeechRecognizer

AUDIO = b"\x01\x00" * 3200


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


@pytest.mark.asyncio
async def test_upload_then_poll_until_completed(mock_http):
    """
    1. Upload returns the speech id
    2. First poll is still processing
    3. Second poll returns the transcript
    """
    responses = iter([
        httpx.Response(200, json={"speech_id": "tx-123"}),
        httpx.Response(200, json={"status": "processing"}),
        httpx.Response(200, json={"status": "completed", "transcript": "Hello world"}),
    ])

    client = mock_http(lambda request: next(responses))
    sleep = RecordingSleep()
    recognizer = OtterSpeechRecognizer("otter-key", http_client=client, sleep=sleep, poll_interval=1.0)

    assert await recognizer.transcribe(AUDIO, "en-US") == SpeechSuccess("Hello world")
    assert len(client.requests) == 3

    upload, first_poll, second_poll = client.requests
    assert upload.method == "POST"
    assert str(upload.url) == "https://otter.ai/forward/api/v1/speeches"
    assert upload.headers["Authorization"] == "Bearer otter-key"
    assert b'name="language"\r\n\r\nen-US' in upload.content
    assert b'filename="audio.wav"' in upload.content
    assert str(first_poll.url) == "https://otter.ai/forward/api/v1/speeches/tx-123"
    assert str(second_poll.url) == "https://otter.ai/forward/api/v1/speeches/tx-123"
    assert sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_upload_without_speech_id(mock_http):
    client = mock_http(lambda request: httpx.Response(200, json={}))
    recognizer = OtterSpeechRecognizer("otter-key", http_client=client)

    assert (await recognizer.transcribe(AUDIO, "en-US")).code == ErrorCode.UPLOAD_FAILED
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_upload_rejected(mock_http):
    client = mock_http(lambda request: httpx.Response(403, text="Forbidden"))
    recognizer = OtterSpeechRecognizer("otter-key", http_client=client)
    assert (await recognizer.transcribe(AUDIO, "en-US")).code == ErrorCode.UPLOAD_FAILED


@pytest.mark.asyncio
async def test_failed_job(mock_http):
    responses = iter([
        httpx.Response(200, json={"speech_id": "tx-9"}),
        httpx.Response(200, json={"status": "failed", "error": "unsupported format"}),
    ])
    recognizer = OtterSpeechRecognizer("otter-key", http_client=mock_http(lambda request: next(responses)), sleep=RecordingSleep())

    result = await recognizer.transcribe(AUDIO, "en-US")
    assert result.code == ErrorCode.TRANSCRIPTION_ERROR


@pytest.mark.asyncio
async def test_audio_file_extension(mock_http):
    responses = iter([
        httpx.Response(200, json={"speech_id": "tx-5"}),
        httpx.Response(200, json={"status": "completed", "transcript": "from mp3"}),
    ])

    client = mock_http(lambda request: next(responses))
    recognizer = OtterSpeechRecognizer("otter-key", http_client=client, sleep=RecordingSleep())

    assert (await recognizer.transcribe_audio_file(b"\xff\xfb" * 2000, "audio/mpeg", "en-US")).text == "from mp3"
    assert b'filename="audio.mpeg"' in client.requests[0].content


@pytest.mark.asyncio
async def test_validate(mock_http):
    recognizer = OtterSpeechRecognizer("bad", http_client=mock_http(lambda request: httpx.Response(401)))
    assert (await recognizer.validate_credentials()).error == ValidationError.INVALID_CREDENTIALS
