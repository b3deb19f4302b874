import json
import logging
from typing import List
from urllib.parse import urlencode
from ..models import ErrorCode, ValidationResult, validation_from_status
from ..providers import ProviderId
from ..signing import ApiKeyHeaderSigner, RequestSigner
from ..transport import ConnectTarget, StreamCompleted, StreamFailed, StreamingProtocol, TranscriptUpdate
from .base import StreamingSpeechRecognizer
from .languages import base_language

logger = logging.getLogger(__name__)

CONTENT_TYPE = "audio/x-raw;layout=interleaved;rate={rate};format=S16LE;channels=1"


def elements_text(elements: list) -> str:
    # Words are "text" elements; spaces and punctuation arrive as "punct"
    return "".join(
        e.get("value", "") for e in elements or [] if e.get("type") in ("text", "punct")
    )


class RevAiProtocol(StreamingProtocol):
    chunk_size = 8000
    segment_separator = " "

    def __init__(self, access_token: str, language: str, base_url: str = "wss://api.rev.ai/speechtotext/v1/stream", sample_rate: int = 16000):
        self.access_token = access_token
        self.language = language
        self.base_url = base_url
        self.sample_rate = sample_rate
        self.job_id: str = None

    async def connect_target(self) -> ConnectTarget:
        query = urlencode({
            "access_token": self.access_token,
            "content_type": CONTENT_TYPE.format(rate=self.sample_rate),
            "language": self.language,
        })
        return ConnectTarget(url=f"{self.base_url}?{query}", display_url=self.base_url)

    def end_messages(self, chunks_sent: int) -> List[str]:
        return ["EOS"]

    def parse(self, message) -> list:
        body = json.loads(message)
        message_type = body.get("type")

        if message_type == "connected":
            self.job_id = body.get("id")
            logger.debug(f"Rev.ai stream connected: {self.job_id}")
            return []
        if message_type == "partial":
            return [TranscriptUpdate(elements_text(body.get("elements")), is_final=False)]
        if message_type == "final":
            return [TranscriptUpdate(elements_text(body.get("elements")), is_final=True)]
        if message_type == "error":
            return [StreamFailed(f"Rev.ai error: {body.get('message', 'Unknown error')}", ErrorCode.RECOGNITION_FAILED)]
        if message_type == "close":
            return [StreamCompleted()]
        return []


class RevAiSpeechRecognizer(StreamingSpeechRecognizer):
    provider_id = ProviderId.REV_AI

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.rev.ai/speechtotext/v1",
        stream_url: str = "wss://api.rev.ai/speechtotext/v1/stream",
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.access_token = access_token
        self.base_url = base_url
        self.stream_url = stream_url
        self.sample_rate = sample_rate

    def create_signer(self) -> RequestSigner:
        return ApiKeyHeaderSigner(self.access_token, scheme="Bearer")

    def create_protocol(self, language: str) -> RevAiProtocol:
        return RevAiProtocol(self.access_token, base_language(language) or "en", self.stream_url, self.sample_rate)

    async def _validate(self) -> ValidationResult:
        resp = await self.rest.get(f"{self.base_url}/account", raise_for_status=False)
        return validation_from_status(resp.status_code)
