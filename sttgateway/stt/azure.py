import logging
from ..models import ErrorCode, SpeechError, SpeechResult, SpeechSuccess, ValidationResult, validation_from_status
from ..providers import ProviderId
from ..signing import ApiKeyHeaderSigner, RequestSigner
from .base import SpeechRecognizer
from .languages import to_locale

logger = logging.getLogger(__name__)


class AzureSpeechRecognizer(SpeechRecognizer):
    provider_id = ProviderId.AZURE_SPEECH

    def __init__(
        self,
        subscription_key: str,
        region: str,
        sample_rate: int = 16000,
        cid: str = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.subscription_key = subscription_key
        self.region = region
        self.sample_rate = sample_rate
        self.cid = cid

    @property
    def endpoint(self) -> str:
        return f"https://{self.region}.stt.speech.microsoft.com/speech/recognition/conversation/cognitiveservices/v1"

    @property
    def token_endpoint(self) -> str:
        return f"https://{self.region}.api.cognitive.microsoft.com/sts/v1.0/issueToken"

    def create_signer(self) -> RequestSigner:
        return ApiKeyHeaderSigner(self.subscription_key, header="Ocp-Apim-Subscription-Key")

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        params = {"language": to_locale(language), "format": "detailed"}
        if self.cid:
            params["cid"] = self.cid

        resp = await self.rest.post(
            self.endpoint,
            params=params,
            headers={
                "Content-Type": f"audio/wav; codecs=audio/pcm; samplerate={self.sample_rate}",
                "Accept": "application/json"
            },
            content=self.to_wave_file(data, self.sample_rate)
        )

        return self.parse_response(resp.json())

    @staticmethod
    def parse_response(body: dict) -> SpeechResult:
        status = body.get("RecognitionStatus")
        if status != "Success":
            if status in ("NoMatch", "InitialSilenceTimeout", "BabbleTimeout"):
                return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED, status)
            return SpeechError(f"Recognition status: {status}", ErrorCode.RECOGNITION_FAILED, status)

        nbest = body.get("NBest") or []
        text = (nbest[0].get("Display") or "").strip() if nbest else ""
        if not text:
            text = (body.get("DisplayText") or "").strip()
        if not text:
            return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED)
        return SpeechSuccess(text)

    async def _validate(self) -> ValidationResult:
        resp = await self.rest.post(
            self.token_endpoint,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            content=b"",
            raise_for_status=False
        )
        return validation_from_status(resp.status_code)
