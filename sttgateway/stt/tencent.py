import json
import logging
from typing import List
from ..models import ErrorCode, Invalid, SpeechError, ValidationError, ValidationResult
from ..providers import ProviderId
from ..signing import TencentSigner
from ..transport import ConnectTarget, StreamCompleted, StreamFailed, StreamingProtocol, TranscriptUpdate
from .base import StreamingSpeechRecognizer

logger = logging.getLogger(__name__)

SLICE_SENTENCE_END = 2

INVALID_CREDENTIAL_CODES = {"4002", "4003", "4005"}
RATE_LIMIT_CODES = {"4004", "4006"}


class TencentProtocol(StreamingProtocol):
    chunk_size = 1280

    def __init__(self, signer: TencentSigner):
        self.signer = signer

    async def connect_target(self) -> ConnectTarget:
        return ConnectTarget(
            url=self.signer.sign_url(),
            display_url=f"wss://{self.signer.host}{self.signer.path}"
        )

    def end_messages(self, chunks_sent: int) -> List[str]:
        return [json.dumps({"type": "end"})]

    def parse(self, message) -> list:
        body = json.loads(message)
        code = body.get("code", -1)
        if code != 0:
            return [StreamFailed(
                f"Tencent ASR error {code}: {body.get('message', '')}".strip(),
                ErrorCode.RECOGNITION_FAILED,
                str(code)
            )]

        events = []
        result = body.get("result")
        if result and result.get("voice_text_str") is not None:
            events.append(TranscriptUpdate(
                result["voice_text_str"],
                is_final=result.get("slice_type") == SLICE_SENTENCE_END
            ))
        if body.get("final") == 1:
            events.append(StreamCompleted())
        return events


class TencentSpeechRecognizer(StreamingSpeechRecognizer):
    provider_id = ProviderId.TENCENT_ASR

    def __init__(
        self,
        secret_id: str,
        secret_key: str,
        app_id: str,
        engine_model_type: str = "16k_zh",
        **kwargs
    ):
        super().__init__(**kwargs)
        self.signer = TencentSigner(secret_id, secret_key, app_id, engine_model_type)

    def create_protocol(self, language: str) -> TencentProtocol:
        # The engine model fixes the language, e.g. 16k_zh or 16k_en
        return TencentProtocol(self.signer)

    async def _validate(self) -> ValidationResult:
        return await self.probe_with_silence()

    def validation_from_error(self, error: SpeechError) -> ValidationResult:
        if error.detail in INVALID_CREDENTIAL_CODES:
            return Invalid(ValidationError.INVALID_CREDENTIALS, error.message)
        if error.detail in RATE_LIMIT_CODES:
            return Invalid(ValidationError.RATE_LIMITED, error.message)
        return super().validation_from_error(error)
