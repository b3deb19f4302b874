import logging
from ..models import ErrorCode, SpeechError, SpeechResult, SpeechSuccess, ValidationResult, validation_from_status
from ..providers import ProviderId
from ..signing import ApiKeyHeaderSigner, RequestSigner
from .base import SpeechRecognizer
from .languages import base_language

logger = logging.getLogger(__name__)


class DeepgramSpeechRecognizer(SpeechRecognizer):
    provider_id = ProviderId.DEEPGRAM

    def __init__(
        self,
        api_key: str,
        model: str = "nova-2",
        base_url: str = "https://api.deepgram.com/v1",
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.sample_rate = sample_rate

    def create_signer(self) -> RequestSigner:
        return ApiKeyHeaderSigner(self.api_key, scheme="Token")

    def language_param(self, language: str) -> str:
        # Deepgram keeps regional variants only for a few languages
        if language.startswith("zh-TW") or language.startswith("zh-Hant"):
            return "zh-TW"
        if language.startswith("zh"):
            return "zh-CN"
        return base_language(language) or "en"

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        return await self._listen(self.to_wave_file(data, self.sample_rate), "audio/wav", language)

    async def transcribe_audio_file(self, data: bytes, mime_type: str, language: str = "zh-CN") -> SpeechResult:
        return await self.guarded(data, lambda: self._listen(data, mime_type, language))

    async def _listen(self, audio: bytes, mime_type: str, language: str) -> SpeechResult:
        resp = await self.rest.post(
            f"{self.base_url}/listen",
            params={
                "model": self.model,
                "language": self.language_param(language),
                "punctuate": "true",
                "smart_format": "true"
            },
            headers={"Content-Type": mime_type},
            content=audio
        )

        channels = resp.json().get("results", {}).get("channels") or []
        alternatives = channels[0].get("alternatives") if channels else None
        text = (alternatives[0].get("transcript") or "").strip() if alternatives else ""
        if not text:
            return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED)
        return SpeechSuccess(text)

    async def _validate(self) -> ValidationResult:
        resp = await self.rest.get(f"{self.base_url}/projects", raise_for_status=False)
        return validation_from_status(resp.status_code)
