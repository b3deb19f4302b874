import json
import httpx
import pytest
from sttgateway.models import ErrorCode, SpeechSuccess, Valid, ValidationError
from sttgateway.stt.ibm import IbmWatsonSpeechRecognizer, model_for, websocket_url

AUDIO = b"\x01\x00" * 8000
SERVICE_URL = "https://api.us-south.speech-to-text.watson.cloud.ibm.com/instances/abc"


async def no_sleep(seconds: float):
    pass


def iam_handler(request: httpx.Request) -> httpx.Response:
    assert request.url.host == "iam.cloud.ibm.com"
    return httpx.Response(200, json={"access_token": "iam-token", "expires_in": 3600})


def make_recognizer(mock_http, connector, handler=iam_handler, **kwargs) -> IbmWatsonSpeechRecognizer:
    return IbmWatsonSpeechRecognizer(
        "ibm-key", SERVICE_URL, http_client=mock_http(handler), ws_connect=connector, sleep=no_sleep, **kwargs
    )


@pytest.mark.asyncio
async def test_transcribe(mock_http, fake_socket, fake_connector):
    socket = fake_socket([
        json.dumps({"state": "listening"}),
        json.dumps({"results": [{"alternatives": [{"transcript": "hello "}], "final": False}], "result_index": 0}),
        json.dumps({"results": [{"alternatives": [{"transcript": "hello world ", "confidence": 0.9}], "final": True}], "result_index": 0}),
        json.dumps({"results": [{"alternatives": [{"transcript": "how are you "}], "final": True}], "result_index": 1}),
        json.dumps({"state": "listening"}),
    ])
    connector = fake_connector(socket)
    recognizer = make_recognizer(mock_http, connector)

    assert await recognizer.transcribe(AUDIO, "en-US") == SpeechSuccess("hello world how are you")
    assert connector.url == (
        "wss://api.us-south.speech-to-text.watson.cloud.ibm.com/instances/abc/v1/recognize?model=en-US_BroadbandModel"
    )
    assert connector.headers == {"Authorization": "Bearer iam-token"}

    start = json.loads(socket.sent[0])
    assert start["action"] == "start"
    assert start["content-type"] == "audio/l16;rate=16000;channels=1"
    assert start["interim_results"] is False
    assert socket.sent[1:-1] == [AUDIO[:8000], AUDIO[8000:]]
    assert json.loads(socket.sent[-1]) == {"action": "stop"}
    await recognizer.release()


@pytest.mark.parametrize("language, model", [
    ("en-US", "en-US_BroadbandModel"),
    ("zh", "zh-CN_BroadbandModel"),
    ("ja-JP", "ja-JP_BroadbandModel"),
    ("th-TH", "en-US_BroadbandModel"),
])
def test_model_for(language, model):
    assert model_for(language) == model


def test_websocket_url():
    assert websocket_url("https://stream.example.com/instances/1/") == "wss://stream.example.com/instances/1"
    assert websocket_url("http://localhost:9000") == "ws://localhost:9000"


@pytest.mark.asyncio
async def test_explicit_model(mock_http, fake_socket, fake_connector):
    connector = fake_connector(fake_socket([json.dumps({"state": "listening"}), json.dumps({"state": "listening"})]))
    recognizer = make_recognizer(mock_http, connector, model="en-GB_Multimedia")

    assert (await recognizer.transcribe(AUDIO, "zh-CN")).code == ErrorCode.NO_SPEECH_DETECTED
    assert connector.url.endswith("?model=en-GB_Multimedia")
    await recognizer.release()


@pytest.mark.asyncio
async def test_error_message(mock_http, fake_socket, fake_connector):
    socket = fake_socket([json.dumps({"error": "unable to transcode data stream audio/l16 -> audio/x-float-array", "code": 400})])
    recognizer = make_recognizer(mock_http, fake_connector(socket))

    result = await recognizer.transcribe(AUDIO, "en-US")
    assert result.code == ErrorCode.RECOGNITION_FAILED
    assert result.detail == "400"
    await recognizer.release()


@pytest.mark.asyncio
async def test_token_is_reused_across_calls(mock_http, fake_socket, fake_connector):
    done = [json.dumps({"results": [{"alternatives": [{"transcript": "ok"}], "final": True}]}), json.dumps({"state": "listening"}), json.dumps({"state": "listening"})]
    connector = fake_connector(fake_socket(done), fake_socket(done))
    recognizer = make_recognizer(mock_http, connector)

    assert (await recognizer.transcribe(AUDIO, "en-US")).text == "ok"
    assert (await recognizer.transcribe(AUDIO, "en-US")).text == "ok"
    assert recognizer.token_provider.fetch_count == 1
    await recognizer.release()


@pytest.mark.asyncio
async def test_validate(mock_http, fake_connector):
    recognizer = make_recognizer(mock_http, fake_connector())
    assert await recognizer.validate_credentials() == Valid()
    await recognizer.release()


@pytest.mark.asyncio
async def test_validate_bad_key(mock_http, fake_connector):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"errorCode": "BXNIM0415E", "errorMessage": "Provided API key could not be found."})

    recognizer = make_recognizer(mock_http, fake_connector(), handler=handler)
    assert (await recognizer.validate_credentials()).error == ValidationError.INVALID_CREDENTIALS
    await recognizer.release()


@pytest.mark.asyncio
async def test_validate_other_iam_errors(mock_http, fake_connector):
    recognizer = make_recognizer(mock_http, fake_connector(), handler=lambda request: httpx.Response(503, text="unavailable"))
    assert (await recognizer.validate_credentials()).error == ValidationError.PROVIDER_UNAVAILABLE
    await recognizer.release()
