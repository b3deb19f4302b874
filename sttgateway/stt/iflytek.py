import base64
import json
import logging
from typing import Dict, List
from ..models import ErrorCode, Invalid, SpeechError, Valid, ValidationError, ValidationResult
from ..providers import ProviderId
from ..signing import IflytekSigner
from ..transport import ConnectTarget, StreamCompleted, StreamFailed, StreamingProtocol, TranscriptUpdate
from .base import StreamingSpeechRecognizer

logger = logging.getLogger(__name__)

STATUS_FIRST_FRAME = 0
STATUS_CONTINUE_FRAME = 1
STATUS_LAST_FRAME = 2

INVALID_CREDENTIAL_CODES = {"10105", "10106", "10107"}
RATE_LIMIT_CODES = {"10114"}
# Returned for audio without speech; proves the credentials were accepted
NO_SPEECH_CODES = {"10160"}


class IflytekProtocol(StreamingProtocol):
    # 40ms of audio per frame
    chunk_size = 1280

    def __init__(self, signer: IflytekSigner, app_id: str, language: str, sample_rate: int = 16000):
        self.signer = signer
        self.app_id = app_id
        self.language = language
        self.sample_rate = sample_rate
        # Sentence number -> text; dynamic correction may replace earlier ones
        self.sentences: Dict[int, str] = {}

    async def connect_target(self) -> ConnectTarget:
        return ConnectTarget(
            url=self.signer.sign_url(),
            display_url=f"wss://{self.signer.host}{self.signer.path}"
        )

    def business(self) -> dict:
        business = {
            "language": "en_us" if self.language.startswith("en") else "zh_cn",
            "domain": "iat",
            "accent": "mandarin",
            "vad_eos": 3000,
            "dwa": "wpgs",
            "ptt": 1,
        }
        if business["language"] == "zh_cn":
            business["nunum"] = 1
        return business

    def _frame(self, status: int, chunk: bytes, include_header: bool) -> str:
        frame = {
            "data": {
                "status": status,
                "format": f"audio/L16;rate={self.sample_rate}",
                "encoding": "raw",
                "audio": base64.b64encode(chunk).decode("utf-8")
            }
        }
        if include_header:
            frame["common"] = {"app_id": self.app_id}
            frame["business"] = self.business()
        return json.dumps(frame)

    def audio_message(self, chunk: bytes, index: int) -> str:
        status = STATUS_FIRST_FRAME if index == 0 else STATUS_CONTINUE_FRAME
        return self._frame(status, chunk, include_header=index == 0)

    def end_messages(self, chunks_sent: int) -> List[str]:
        return [self._frame(STATUS_LAST_FRAME, b"", include_header=chunks_sent == 0)]

    def parse(self, message) -> list:
        body = json.loads(message)
        code = body.get("code", -1)
        if code != 0:
            return [StreamFailed(
                f"iFLYTEK error {code}: {body.get('message', '')}".strip(),
                ErrorCode.RECOGNITION_FAILED,
                str(code)
            )]

        data = body.get("data") or {}
        events = []
        result = data.get("result")
        if result:
            text = "".join(
                ws["cw"][0].get("w", "") for ws in result.get("ws") or [] if ws.get("cw")
            )
            if result.get("pgs") == "rpl" and result.get("rg"):
                first, last = result["rg"][0], result["rg"][1]
                for sn in range(first, last + 1):
                    self.sentences.pop(sn, None)
            self.sentences[result.get("sn", len(self.sentences) + 1)] = text
            events.append(TranscriptUpdate(
                "".join(self.sentences[sn] for sn in sorted(self.sentences)),
                is_final=True,
                cumulative=True
            ))

        if data.get("status") == STATUS_LAST_FRAME:
            events.append(StreamCompleted())
        return events


class IflytekSpeechRecognizer(StreamingSpeechRecognizer):
    provider_id = ProviderId.IFLYTEK

    def __init__(
        self,
        app_id: str,
        api_key: str,
        api_secret: str,
        host: str = "iat-api.xfyun.cn",
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.app_id = app_id
        self.signer = IflytekSigner(api_key, api_secret, host=host)
        self.sample_rate = sample_rate

    def create_protocol(self, language: str) -> IflytekProtocol:
        return IflytekProtocol(self.signer, self.app_id, language, self.sample_rate)

    async def _validate(self) -> ValidationResult:
        return await self.probe_with_silence()

    def validation_from_error(self, error: SpeechError) -> ValidationResult:
        if error.detail in NO_SPEECH_CODES:
            return Valid()
        if error.detail in INVALID_CREDENTIAL_CODES:
            return Invalid(ValidationError.INVALID_CREDENTIALS, error.message)
        if error.detail in RATE_LIMIT_CODES:
            return Invalid(ValidationError.RATE_LIMITED, error.message)
        return super().validation_from_error(error)
