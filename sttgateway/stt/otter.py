import logging
import httpx
from ..models import ErrorCode, SpeechError, SpeechResult, ValidationResult, validation_from_status
from ..providers import ProviderId
from ..signing import ApiKeyHeaderSigner, RequestSigner
from ..transport import PollStatus, poll_until_complete
from .base import SpeechRecognizer

logger = logging.getLogger(__name__)


class OtterSpeechRecognizer(SpeechRecognizer):
    provider_id = ProviderId.OTTER_AI

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://otter.ai/forward/api/v1",
        sample_rate: int = 16000,
        poll_interval: float = None,
        max_poll_attempts: int = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.sample_rate = sample_rate
        self.poll_interval = self.settings.poll_interval if poll_interval is None else poll_interval
        self.max_poll_attempts = max_poll_attempts or self.settings.max_poll_attempts

    def create_signer(self) -> RequestSigner:
        return ApiKeyHeaderSigner(self.api_key, scheme="Bearer")

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        return await self._run_job(("audio.wav", self.to_wave_file(data, self.sample_rate), "audio/wav"), language)

    async def transcribe_audio_file(self, data: bytes, mime_type: str, language: str = "zh-CN") -> SpeechResult:
        extension = (mime_type or "audio/wav").split("/")[-1].split(";")[0]
        return await self.guarded(data, lambda: self._run_job((f"audio.{extension}", data, mime_type), language))

    async def _run_job(self, audio_file: tuple, language: str) -> SpeechResult:
        try:
            resp = await self.rest.post(
                f"{self.base_url}/speeches",
                data={"language": language},
                files={"audio_file": audio_file}
            )
            speech_id = resp.json().get("speech_id")
        except httpx.HTTPStatusError as hserr:
            logger.error(f"Upload failed: HTTP {hserr.response.status_code}, body={hserr.response.text}")
            speech_id = None

        if not speech_id:
            return SpeechError("Failed to upload audio to Otter.ai", ErrorCode.UPLOAD_FAILED)

        if self.debug:
            logger.info(f"Audio uploaded, speech_id={speech_id}")

        return await poll_until_complete(
            lambda: self.get_status(speech_id),
            interval=self.poll_interval,
            max_attempts=self.max_poll_attempts,
            sleep=self.sleep,
            label=f"Otter.ai speech {speech_id}",
            debug=self.debug
        )

    async def get_status(self, speech_id: str) -> PollStatus:
        resp = await self.rest.get(f"{self.base_url}/speeches/{speech_id}")
        body = resp.json()
        return PollStatus(status=body.get("status", ""), text=body.get("transcript"), error=body.get("error"))

    async def _validate(self) -> ValidationResult:
        resp = await self.rest.get(f"{self.base_url}/speeches", raise_for_status=False)
        return validation_from_status(resp.status_code)
