import json
import logging
from typing import List
import uuid
from ..models import ErrorCode, ValidationResult
from ..providers import ProviderId
from ..signing import VolcengineTokenSigner
from ..signing.encoding import percent_encode
from ..transport import ConnectTarget, StreamCompleted, StreamFailed, StreamingProtocol, TranscriptUpdate
from .base import StreamingSpeechRecognizer

logger = logging.getLogger(__name__)

CODE_SUCCESS = 1000


class VolcengineProtocol(StreamingProtocol):
    chunk_size = 3200

    def __init__(
        self,
        signer: VolcengineTokenSigner,
        app_id: str,
        cluster: str,
        user_id: str,
        language: str,
        host: str = "openspeech.bytedance.com",
        sample_rate: int = 16000
    ):
        self.signer = signer
        self.app_id = app_id
        self.cluster = cluster
        self.user_id = user_id
        self.language = language
        self.host = host
        self.sample_rate = sample_rate
        # Same token in the URL and in the start request
        self.token = signer.token()

    @property
    def endpoint(self) -> str:
        return f"wss://{self.host}/v1/asr"

    async def connect_target(self) -> ConnectTarget:
        params = {"appid": self.app_id, "token": self.token, "cluster": self.cluster}
        query = "&".join(f"{k}={percent_encode(v)}" for k, v in params.items())
        return ConnectTarget(url=f"{self.endpoint}?{query}", display_url=self.endpoint)

    def start_messages(self) -> List[str]:
        return [json.dumps({
            "full_client_request": {
                "app": {"appid": self.app_id, "token": self.token, "cluster": self.cluster},
                "user": {"uid": self.user_id},
                "audio": {
                    "format": "pcm",
                    "rate": self.sample_rate,
                    "bits": 16,
                    "channel": 1,
                    "language": "zh-CN" if self.language.startswith("zh") else "en-US"
                },
                "request": {
                    "reqid": self.signer.request_id(),
                    "nbest": 1,
                    "sequence": 1,
                    "with_itn": True
                }
            }
        })]

    def end_messages(self, chunks_sent: int) -> List[str]:
        return [json.dumps({"signal": "finish"})]

    def parse(self, message) -> list:
        body = json.loads(message)

        if "result" in body:
            result = body["result"] or {}
            text = result.get("text", "")
            if not text:
                return []
            # Each result carries the whole utterance so far
            return [TranscriptUpdate(text, is_final=bool(result.get("is_final")), cumulative=True)]

        if "code" in body:
            code = body["code"]
            if code != CODE_SUCCESS:
                return [StreamFailed(
                    f"Volcengine error: {body.get('message', 'Unknown error')}",
                    ErrorCode.RECOGNITION_FAILED,
                    str(code)
                )]
            return []

        if "full_server_response" in body:
            result = (body["full_server_response"] or {}).get("result") or {}
            return [StreamCompleted(result.get("text"))]

        return []


class VolcengineSpeechRecognizer(StreamingSpeechRecognizer):
    provider_id = ProviderId.VOLCENGINE

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        app_id: str,
        cluster: str = "volcengine_streaming_common",
        user_id: str = None,
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.signer = VolcengineTokenSigner(access_key, secret_key)
        self.app_id = app_id
        self.cluster = cluster
        self.user_id = user_id or str(uuid.uuid4())
        self.sample_rate = sample_rate

    def create_protocol(self, language: str) -> VolcengineProtocol:
        return VolcengineProtocol(
            self.signer,
            self.app_id,
            self.cluster,
            self.user_id,
            language,
            sample_rate=self.sample_rate
        )

    async def _validate(self) -> ValidationResult:
        return await self.probe_with_silence()
