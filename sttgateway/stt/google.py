import base64
import logging
import httpx
from ..models import ErrorCode, Invalid, SpeechError, SpeechResult, SpeechSuccess, ValidationError, ValidationResult
from ..providers import ProviderId
from ..signing import ApiKeyQuerySigner, BearerTokenSigner, GoogleServiceAccountTokenProvider, RequestSigner
from .base import SpeechRecognizer
from .languages import to_locale

logger = logging.getLogger(__name__)


class GoogleSpeechRecognizer(SpeechRecognizer):
    provider_id = ProviderId.GOOGLE_CLOUD_STT

    def __init__(
        self,
        project_id: str,
        api_key: str = None,
        service_account_json: str = None,
        use_service_account: bool = False,
        base_url: str = "https://speech.googleapis.com/v1",
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.project_id = project_id
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.sample_rate = sample_rate
        self.use_service_account = use_service_account and bool(service_account_json)
        if self.use_service_account:
            self.token_provider = GoogleServiceAccountTokenProvider(
                self.http_client,
                service_account_json,
                refresh_margin=self.settings.token_refresh_margin,
                retry_policy=self.retry_policy,
                debug=self.debug
            )

    def create_signer(self) -> RequestSigner:
        if self.use_service_account:
            return BearerTokenSigner(self.token_provider)
        return ApiKeyQuerySigner(self.api_key, param="key")

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        request_json = {
            "config": {
                "encoding": "LINEAR16",
                "sampleRateHertz": self.sample_rate,
                "languageCode": to_locale(language),
                "enableAutomaticPunctuation": True
            },
            "audio": {
                "content": base64.b64encode(data).decode("utf-8")
            }
        }

        resp = await self.rest.post(
            f"{self.base_url}/speech:recognize",
            json=request_json,
            # Required for quota and billing attribution
            headers={"X-Goog-User-Project": self.project_id}
        )

        transcripts = []
        for result in resp.json().get("results") or []:
            alternatives = result.get("alternatives") or []
            if alternatives and alternatives[0].get("transcript"):
                transcripts.append(alternatives[0]["transcript"].strip())

        text = " ".join(t for t in transcripts if t)
        if not text:
            return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED)
        return SpeechSuccess(text)

    async def _validate(self) -> ValidationResult:
        return await self.probe_with_silence()

    def validation_from_exception(self, ex: Exception) -> ValidationResult:
        # An invalid API key is reported as 400 rather than 401/403
        if isinstance(ex, httpx.HTTPStatusError) and ex.response.status_code == 400 \
                and "API key not valid" in ex.response.text:
            return Invalid(ValidationError.INVALID_CREDENTIALS, "API key not valid")
        return super().validation_from_exception(ex)
