import json
import logging
from typing import List
from ..models import ErrorCode, ValidationResult, validation_from_status
from ..providers import ProviderId
from ..signing import ApiKeyHeaderSigner, RequestSigner
from ..transport import ConnectTarget, StreamCompleted, StreamFailed, StreamingProtocol, TranscriptUpdate
from .base import StreamingSpeechRecognizer
from .languages import base_language

logger = logging.getLogger(__name__)

# Speechmatics language codes that differ from ISO 639-1
LANGUAGE_CODES = {"zh": "cmn"}


def language_code(language: str) -> str:
    base = base_language(language) or "en"
    return LANGUAGE_CODES.get(base, base)


class SpeechmaticsProtocol(StreamingProtocol):
    chunk_size = 8000
    segment_separator = " "

    def __init__(
        self,
        api_key: str,
        language: str,
        region: str = "eu2",
        operating_point: str = "enhanced",
        sample_rate: int = 16000,
        enable_partials: bool = False
    ):
        self.api_key = api_key
        self.language = language
        self.region = region
        self.operating_point = operating_point
        self.sample_rate = sample_rate
        self.enable_partials = enable_partials

    @property
    def url(self) -> str:
        return f"wss://{self.region}.rt.speechmatics.com/v2"

    async def connect_target(self) -> ConnectTarget:
        return ConnectTarget(url=self.url, headers={"Authorization": f"Bearer {self.api_key}"}, display_url=self.url)

    def start_messages(self) -> List[str]:
        return [json.dumps({
            "message": "StartRecognition",
            "audio_format": {
                "type": "raw",
                "encoding": "pcm_s16le",
                "sample_rate": self.sample_rate
            },
            "transcription_config": {
                "language": self.language,
                "operating_point": self.operating_point,
                "enable_partials": self.enable_partials,
                "max_delay": 2.0
            }
        })]

    def end_messages(self, chunks_sent: int) -> List[str]:
        return [json.dumps({"message": "EndOfStream", "last_seq_no": chunks_sent})]

    def parse(self, message) -> list:
        body = json.loads(message)
        name = body.get("message")

        if name == "AddPartialTranscript":
            return [TranscriptUpdate((body.get("metadata") or {}).get("transcript", ""), is_final=False)]
        if name == "AddTranscript":
            return [TranscriptUpdate((body.get("metadata") or {}).get("transcript", ""), is_final=True)]
        if name == "EndOfTranscript":
            return [StreamCompleted()]
        if name == "Error":
            return [StreamFailed(
                f"Speechmatics error: {body.get('type', '')} {body.get('reason', '')}".strip(),
                ErrorCode.RECOGNITION_FAILED,
                body.get("type")
            )]
        if name == "Warning":
            logger.warning(f"Speechmatics warning: {body.get('type')} {body.get('reason')}")
        return []


class SpeechmaticsSpeechRecognizer(StreamingSpeechRecognizer):
    provider_id = ProviderId.SPEECHMATICS

    def __init__(
        self,
        api_key: str,
        region: str = "eu2",
        operating_point: str = "enhanced",
        batch_url: str = "https://asr.api.speechmatics.com/v2",
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.region = region
        self.operating_point = operating_point
        self.batch_url = batch_url
        self.sample_rate = sample_rate

    def create_signer(self) -> RequestSigner:
        return ApiKeyHeaderSigner(self.api_key, scheme="Bearer")

    def create_protocol(self, language: str) -> SpeechmaticsProtocol:
        return SpeechmaticsProtocol(
            self.api_key,
            language_code(language),
            self.region,
            self.operating_point,
            self.sample_rate
        )

    async def _validate(self) -> ValidationResult:
        resp = await self.rest.get(f"{self.batch_url}/jobs", params={"limit": 1}, raise_for_status=False)
        return validation_from_status(resp.status_code)
