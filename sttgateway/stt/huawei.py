import json
import logging
from typing import List
from ..models import ErrorCode, Invalid, SpeechError, ValidationError, ValidationResult
from ..providers import ProviderId
from ..signing import HuaweiSisSigner
from ..signing.encoding import percent_encode
from ..transport import ConnectTarget, StreamCompleted, StreamFailed, StreamingProtocol, TranscriptUpdate
from .base import StreamingSpeechRecognizer

logger = logging.getLogger(__name__)

STATUS_FINAL = 0
STATUS_INTERIM = 1
STATUS_END_OF_SPEECH = 2

INVALID_CREDENTIAL_CODES = {"SIS.0001", "SIS.0003", "APIGW.0301", "APIGW.0101"}


class HuaweiSisProtocol(StreamingProtocol):
    # 100ms of audio per frame
    chunk_size = 3200

    def __init__(self, signer: HuaweiSisSigner, region: str, audio_format: str = "pcm16k16bit", property: str = "chinese_16k_common"):
        self.signer = signer
        self.region = region
        self.audio_format = audio_format
        self.property = property

    @property
    def endpoint(self) -> str:
        return f"wss://sis-ext.{self.region}.myhuaweicloud.com/v1/{self.signer.project_id}/rasr/short-stream"

    async def connect_target(self) -> ConnectTarget:
        params = self.signer.sign_params()
        query = "&".join(f"{k}={percent_encode(v)}" for k, v in params.items())
        return ConnectTarget(
            url=f"{self.endpoint}?{query}",
            headers=self.signer.headers(),
            display_url=self.endpoint
        )

    def start_messages(self) -> List[str]:
        return [json.dumps({
            "command": "START",
            "config": {
                "audio_format": self.audio_format,
                "property": self.property,
                "add_punc": "yes",
                "digit_norm": "yes"
            }
        })]

    def end_messages(self, chunks_sent: int) -> List[str]:
        return [json.dumps({"command": "END", "cancel": "false"})]

    def parse(self, message) -> list:
        body = json.loads(message)

        resp_type = body.get("resp_type")
        if resp_type is not None:
            return self._parse_typed(body, resp_type)

        if "status" in body:
            status = body["status"]
            if status == STATUS_FINAL:
                return [
                    TranscriptUpdate(segment["result"].get("text", ""), is_final=True)
                    for segment in body.get("segments") or [] if segment.get("result")
                ]
            if status in (STATUS_INTERIM, STATUS_END_OF_SPEECH):
                return []
            return [StreamFailed(
                f"Huawei SIS error: {body.get('message', 'Unknown error')}",
                ErrorCode.RECOGNITION_FAILED,
                str(status)
            )]

        if "trace_id" in body:
            return [StreamCompleted()]
        return []

    def _parse_typed(self, body: dict, resp_type: str) -> list:
        if resp_type == "RESULT":
            return [
                TranscriptUpdate(
                    segment["result"].get("text", ""),
                    is_final=bool(segment.get("is_final", True))
                )
                for segment in body.get("segments") or [] if segment.get("result")
            ]
        if resp_type == "ERROR":
            return [StreamFailed(
                f"Huawei SIS error: {body.get('error_msg', 'Unknown error')}",
                ErrorCode.RECOGNITION_FAILED,
                body.get("error_code")
            )]
        if resp_type == "END":
            return [StreamCompleted()]
        return []


class HuaweiSisSpeechRecognizer(StreamingSpeechRecognizer):
    provider_id = ProviderId.HUAWEI_SIS

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        project_id: str,
        region: str = "cn-north-4",
        audio_format: str = "pcm16k16bit",
        property: str = "chinese_16k_common",
        **kwargs
    ):
        super().__init__(**kwargs)
        self.signer = HuaweiSisSigner(access_key, secret_key, project_id)
        self.region = region
        self.audio_format = audio_format
        self.property = property

    @property
    def pace_audio(self) -> bool:
        # The short-stream endpoint expects audio at real-time speed
        return True

    def create_protocol(self, language: str) -> HuaweiSisProtocol:
        prop = self.property
        if language.startswith("en") and prop.startswith("chinese"):
            prop = "english_16k_common"
        return HuaweiSisProtocol(self.signer, self.region, self.audio_format, prop)

    async def _validate(self) -> ValidationResult:
        return await self.probe_with_silence()

    def validation_from_error(self, error: SpeechError) -> ValidationResult:
        if error.detail in INVALID_CREDENTIAL_CODES:
            return Invalid(ValidationError.INVALID_CREDENTIALS, error.message)
        return super().validation_from_error(error)
