import pytest
from sttgateway.providers import PROVIDERS, AuthType, ProviderId, get_descriptor, providers_by_auth_type
from sttgateway.registry import implemented_providers
from sttgateway.stt.base import StreamingSpeechRecognizer
from sttgateway.stt.aws import AwsTranscribeSpeechRecognizer
from sttgateway.stt.deepgram import DeepgramSpeechRecognizer
from sttgateway.stt.iflytek import IflytekSpeechRecognizer


def test_every_provider_is_described():
    assert set(PROVIDERS) == set(ProviderId)
    assert len(PROVIDERS) == 18
    for provider_id, descriptor in PROVIDERS.items():
        assert descriptor.id == provider_id
        assert descriptor.display_name
        assert descriptor.website.startswith("https://")


def test_get_descriptor():
    descriptor = get_descriptor("AWS_TRANSCRIBE")
    assert descriptor.auth_type == AuthType.AWS_IAM
    assert descriptor.supports_streaming is True

    with pytest.raises(ValueError):
        get_descriptor("NO_SUCH_PROVIDER")


def test_providers_by_auth_type():
    ids = {d.id for d in providers_by_auth_type(AuthType.API_KEY_HEADER)}
    assert ids == {
        ProviderId.DEEPGRAM,
        ProviderId.ASSEMBLYAI,
        ProviderId.REV_AI,
        ProviderId.SPEECHMATICS,
        ProviderId.OTTER_AI,
    }


def test_streaming_flags_match_implementation():
    assert implemented_providers() == list(ProviderId)
    assert get_descriptor(ProviderId.DEEPGRAM).supports_streaming is False
    assert get_descriptor(ProviderId.IFLYTEK).supports_streaming is True

    # Streaming descriptors belong to WebSocket recognizers and vice versa
    for recognizer_class in (AwsTranscribeSpeechRecognizer, IflytekSpeechRecognizer):
        assert issubclass(recognizer_class, StreamingSpeechRecognizer)
        assert get_descriptor(recognizer_class.provider_id).supports_realtime is True
    assert not issubclass(DeepgramSpeechRecognizer, StreamingSpeechRecognizer)
