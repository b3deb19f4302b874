import json
import logging
from typing import List
from ..models import ErrorCode, Invalid, TokenFetchError, ValidationError, ValidationResult
from ..providers import ProviderId
from ..signing import IbmIamTokenProvider, TokenProvider
from ..transport import ConnectTarget, StreamCompleted, StreamFailed, StreamingProtocol, TranscriptUpdate
from .base import StreamingSpeechRecognizer
from .languages import to_locale

logger = logging.getLogger(__name__)

# IAM error code for an API key that does not exist, returned with HTTP 400
UNKNOWN_API_KEY_CODE = "BXNIM0415E"

# Locales with a broadband (16kHz) model
BROADBAND_LOCALES = {
    "en-US", "en-GB", "zh-CN", "ja-JP", "ko-KR", "fr-FR", "de-DE", "es-ES", "it-IT", "ar-SA"
}


def model_for(language: str) -> str:
    locale = to_locale(language)
    if locale not in BROADBAND_LOCALES:
        locale = "en-US"
    return f"{locale}_BroadbandModel"


def websocket_url(service_url: str) -> str:
    base = service_url.rstrip("/")
    if base.startswith("https://"):
        return "wss://" + base[len("https://"):]
    if base.startswith("http://"):
        return "ws://" + base[len("http://"):]
    return base


class IbmWatsonProtocol(StreamingProtocol):
    chunk_size = 8000
    segment_separator = " "

    def __init__(
        self,
        token_provider: TokenProvider,
        service_url: str,
        model: str,
        sample_rate: int = 16000,
        interim_results: bool = False,
        smart_formatting: bool = True
    ):
        self.token_provider = token_provider
        self.service_url = service_url
        self.model = model
        self.sample_rate = sample_rate
        self.interim_results = interim_results
        self.smart_formatting = smart_formatting
        # The service reports "listening" once after start and again once stop is processed
        self.listening_count = 0

    async def connect_target(self) -> ConnectTarget:
        token = await self.token_provider.get_token()
        url = f"{websocket_url(self.service_url)}/v1/recognize?model={self.model}"
        return ConnectTarget(url=url, headers={"Authorization": f"Bearer {token}"}, display_url=url)

    def start_messages(self) -> List[str]:
        return [json.dumps({
            "action": "start",
            "content-type": f"audio/l16;rate={self.sample_rate};channels=1",
            "interim_results": self.interim_results,
            "smart_formatting": self.smart_formatting,
            "max_alternatives": 1
        })]

    def end_messages(self, chunks_sent: int) -> List[str]:
        return [json.dumps({"action": "stop"})]

    def parse(self, message) -> list:
        body = json.loads(message)

        if "error" in body:
            return [StreamFailed(f"Watson error: {body['error']}", ErrorCode.RECOGNITION_FAILED, str(body.get("code", "")) or None)]

        if "results" in body:
            events = []
            for result in body["results"]:
                alternatives = result.get("alternatives") or []
                if not alternatives:
                    continue
                events.append(TranscriptUpdate(
                    alternatives[0].get("transcript", ""),
                    is_final=bool(result.get("final"))
                ))
            return events

        if body.get("state") == "listening":
            self.listening_count += 1
            if self.listening_count > 1:
                return [StreamCompleted()]
        return []


class IbmWatsonSpeechRecognizer(StreamingSpeechRecognizer):
    provider_id = ProviderId.IBM_WATSON

    def __init__(
        self,
        api_key: str,
        service_url: str,
        model: str = None,
        sample_rate: int = 16000,
        interim_results: bool = False,
        smart_formatting: bool = True,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.service_url = service_url
        self.model = model
        self.sample_rate = sample_rate
        self.interim_results = interim_results
        self.smart_formatting = smart_formatting
        self.token_provider = IbmIamTokenProvider(
            self.http_client,
            api_key,
            refresh_margin=self.settings.token_refresh_margin,
            retry_policy=self.retry_policy,
            debug=self.debug
        )

    def create_protocol(self, language: str) -> IbmWatsonProtocol:
        return IbmWatsonProtocol(
            self.token_provider,
            self.service_url,
            self.model or model_for(language),
            self.sample_rate,
            self.interim_results,
            self.smart_formatting
        )

    async def _validate(self) -> ValidationResult:
        return await self.probe_token()

    def validation_from_exception(self, ex: Exception) -> ValidationResult:
        if isinstance(ex, TokenFetchError) and ex.status_code == 400 and UNKNOWN_API_KEY_CODE in (ex.detail or ""):
            return Invalid(ValidationError.INVALID_CREDENTIALS, "API key not found")
        return super().validation_from_exception(ex)
