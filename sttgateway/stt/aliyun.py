import json
import logging
from typing import List
import uuid
from ..models import ErrorCode, SpeechResult, ValidationResult
from ..providers import ProviderId
from ..signing import AliyunNlsTokenProvider, TokenProvider
from ..transport import ConnectTarget, StreamCompleted, StreamFailed, StreamingProtocol, TranscriptUpdate
from .base import StreamingSpeechRecognizer

logger = logging.getLogger(__name__)

NAMESPACE = "SpeechTranscriber"

INVALID_TOKEN_STATUS = {"40000001"}


class AliyunProtocol(StreamingProtocol):
    chunk_size = 3200
    segment_separator = ""

    def __init__(self, token_provider: TokenProvider, app_key: str, gateway_url: str, sample_rate: int = 16000):
        self.token_provider = token_provider
        self.app_key = app_key
        self.gateway_url = gateway_url
        self.sample_rate = sample_rate
        self.task_id = uuid.uuid4().hex

    async def connect_target(self) -> ConnectTarget:
        token = await self.token_provider.get_token()
        return ConnectTarget(url=f"{self.gateway_url}?token={token}", display_url=self.gateway_url)

    def _header(self, name: str) -> dict:
        return {
            "message_id": uuid.uuid4().hex,
            "task_id": self.task_id,
            "namespace": NAMESPACE,
            "name": name,
            "appkey": self.app_key,
        }

    def start_messages(self) -> List[str]:
        return [json.dumps({
            "header": self._header("StartTranscription"),
            "payload": {
                "format": "pcm",
                "sample_rate": self.sample_rate,
                "enable_intermediate_result": True,
                "enable_punctuation_prediction": True,
                "enable_inverse_text_normalization": True,
            }
        })]

    def end_messages(self, chunks_sent: int) -> List[str]:
        return [json.dumps({"header": self._header("StopTranscription")})]

    def parse(self, message) -> list:
        body = json.loads(message)
        header = body.get("header") or {}
        payload = body.get("payload") or {}
        name = header.get("name")

        if name == "TaskFailed":
            return [StreamFailed(
                f"Alibaba NLS task failed: {header.get('status_text', '')}".strip(),
                ErrorCode.RECOGNITION_FAILED,
                str(header.get("status", ""))
            )]
        if name == "TranscriptionResultChanged":
            return [TranscriptUpdate(payload.get("result", ""), is_final=False)]
        if name == "SentenceEnd":
            return [TranscriptUpdate(payload.get("result", ""), is_final=True)]
        if name == "TranscriptionCompleted":
            return [StreamCompleted()]
        return []


class AliyunSpeechRecognizer(StreamingSpeechRecognizer):
    provider_id = ProviderId.ALIBABA_ASR

    def __init__(
        self,
        access_key_id: str,
        access_key_secret: str,
        app_key: str,
        region_id: str = "cn-shanghai",
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.app_key = app_key
        self.region_id = region_id
        self.sample_rate = sample_rate
        self.token_provider = AliyunNlsTokenProvider(
            self.http_client,
            access_key_id,
            access_key_secret,
            region_id=region_id,
            refresh_margin=self.settings.token_refresh_margin,
            retry_policy=self.retry_policy,
            debug=self.debug
        )

    @property
    def gateway_url(self) -> str:
        return f"wss://nls-gateway.{self.region_id}.aliyuncs.com/ws/v1"

    def create_protocol(self, language: str) -> AliyunProtocol:
        # The AppKey's project settings decide the recognition language
        return AliyunProtocol(self.token_provider, self.app_key, self.gateway_url, self.sample_rate)

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        result = await super()._transcribe(data, language)
        if not result.is_success and result.detail in INVALID_TOKEN_STATUS:
            # Token revoked before its advertised expiry
            logger.warning("Alibaba NLS rejected the token, refreshing")
            self.token_provider.invalidate()
            result = await super()._transcribe(data, language)
        return result

    async def _validate(self) -> ValidationResult:
        return await self.probe_token()
