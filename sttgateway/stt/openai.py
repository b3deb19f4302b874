import logging
from ..models import ErrorCode, SpeechError, SpeechResult, SpeechSuccess, ValidationResult, validation_from_status
from ..providers import ProviderId
from ..signing import ApiKeyHeaderSigner, RequestSigner
from .base import SpeechRecognizer
from .languages import base_language

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "audio/aac": "m4a",
    "audio/ogg": "ogg",
    "audio/webm": "webm",
    "audio/flac": "flac",
}


class OpenAISpeechRecognizer(SpeechRecognizer):
    provider_id = ProviderId.OPENAI_WHISPER

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "whisper-1",
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.sample_rate = sample_rate

    def create_signer(self) -> RequestSigner:
        return ApiKeyHeaderSigner(self.api_key, scheme="Bearer")

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        return await self._post_audio(("voice.wav", self.to_wave_file(data, self.sample_rate), "audio/wav"), language)

    async def transcribe_audio_file(self, data: bytes, mime_type: str, language: str = "zh-CN") -> SpeechResult:
        extension = MIME_EXTENSIONS.get((mime_type or "").split(";")[0].strip().lower(), "wav")
        return await self.guarded(
            data,
            lambda: self._post_audio((f"audio.{extension}", data, mime_type), language)
        )

    async def _post_audio(self, file: tuple, language: str) -> SpeechResult:
        form_data = {"model": self.model}
        if language:
            form_data["language"] = base_language(language)

        resp = await self.rest.post(
            f"{self.base_url}/audio/transcriptions",
            data=form_data,
            files={"file": file}
        )

        recognized_text = (resp.json().get("text") or "").strip()
        if not recognized_text:
            return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED)
        return SpeechSuccess(recognized_text)

    async def _validate(self) -> ValidationResult:
        resp = await self.rest.get(f"{self.base_url}/models", raise_for_status=False)
        return validation_from_status(resp.status_code)


class GroqSpeechRecognizer(OpenAISpeechRecognizer):
    provider_id = ProviderId.GROQ_WHISPER

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "whisper-large-v3-turbo",
        **kwargs
    ):
        super().__init__(api_key, base_url=base_url, model=model, **kwargs)
