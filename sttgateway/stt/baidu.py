import base64
import logging
from ..models import ErrorCode, SpeechError, SpeechResult, SpeechSuccess, ValidationResult
from ..providers import ProviderId
from ..signing import ClientCredentialsTokenProvider
from .base import SpeechRecognizer

logger = logging.getLogger(__name__)

ERR_NO_SPEECH = 3301
ERR_AUTH_FAILED = 3302


class BaiduSpeechRecognizer(SpeechRecognizer):
    provider_id = ProviderId.BAIDU_ASR

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        token_url: str = "https://aip.baidubce.com/oauth/2.0/token",
        asr_url: str = "https://vop.baidu.com/server_api",
        cuid: str = "sttgateway",
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.asr_url = asr_url
        self.cuid = cuid
        self.sample_rate = sample_rate
        self.token_provider = ClientCredentialsTokenProvider(
            self.http_client,
            token_url,
            api_key,
            secret_key,
            refresh_margin=self.settings.token_refresh_margin,
            retry_policy=self.retry_policy,
            debug=self.debug
        )

    def dev_pid(self, language: str) -> int:
        # 1537: Mandarin, 1737: English
        return 1737 if language.startswith("en") else 1537

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        body = await self._recognize(data, language)
        if body.get("err_no") == ERR_AUTH_FAILED:
            # Token revoked or expired early
            logger.warning("Baidu rejected the access token, refreshing")
            self.token_provider.invalidate()
            body = await self._recognize(data, language)
        return self.parse_response(body)

    async def _recognize(self, data: bytes, language: str) -> dict:
        token = await self.token_provider.get_token()
        resp = await self.rest.post(
            self.asr_url,
            json={
                "format": "pcm",
                "rate": self.sample_rate,
                "channel": 1,
                "cuid": self.cuid,
                "token": token,
                "speech": base64.b64encode(data).decode("utf-8"),
                "len": len(data),
                "dev_pid": self.dev_pid(language)
            }
        )
        return resp.json()

    @staticmethod
    def parse_response(body: dict) -> SpeechResult:
        err_no = body.get("err_no", -1)
        if err_no == 0:
            results = body.get("result") or []
            text = (results[0] if results else "").strip()
            if not text:
                return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED)
            return SpeechSuccess(text)
        if err_no == ERR_NO_SPEECH:
            return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED, body.get("err_msg"))
        return SpeechError(
            f"Baidu ASR error: {err_no} {body.get('err_msg', '')}".strip(),
            ErrorCode.RECOGNITION_FAILED,
            str(err_no)
        )

    async def _validate(self) -> ValidationResult:
        return await self.probe_token()
