import logging
import httpx
from ..models import ErrorCode, SpeechError, SpeechResult, ValidationResult, validation_from_status
from ..providers import ProviderId
from ..signing import ApiKeyHeaderSigner, RequestSigner
from ..transport import PollStatus, poll_until_complete
from .base import SpeechRecognizer
from .languages import base_language

logger = logging.getLogger(__name__)


class AssemblyAISpeechRecognizer(SpeechRecognizer):
    """
    Upload-and-poll transcription.

    1. POST /upload with the audio, returns `upload_url`
    2. POST /transcript referencing the upload, returns the transcript `id`
    3. GET /transcript/{id} until `completed` or `error`
    """
    provider_id = ProviderId.ASSEMBLYAI

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.assemblyai.com/v2",
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
        # Bare key, no scheme
        return ApiKeyHeaderSigner(self.api_key)

    def language_code(self, language: str) -> str:
        return base_language(language) or "en"

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        return await self._run_job(self.to_wave_file(data, self.sample_rate), "audio/wav", language)

    async def transcribe_audio_file(self, data: bytes, mime_type: str, language: str = "zh-CN") -> SpeechResult:
        return await self.guarded(data, lambda: self._run_job(data, mime_type, language))

    async def _run_job(self, audio: bytes, mime_type: str, language: str) -> SpeechResult:
        upload_url = await self.upload(audio, mime_type)
        if not upload_url:
            return SpeechError("Failed to upload audio", ErrorCode.UPLOAD_FAILED)

        transcript_id = await self.create_transcript(upload_url, language)
        if not transcript_id:
            return SpeechError("Failed to create transcript", ErrorCode.CREATE_TRANSCRIPT_FAILED)

        return await poll_until_complete(
            lambda: self.get_status(transcript_id),
            interval=self.poll_interval,
            max_attempts=self.max_poll_attempts,
            sleep=self.sleep,
            label=f"AssemblyAI transcript {transcript_id}",
            debug=self.debug
        )

    async def upload(self, audio: bytes, mime_type: str = "audio/wav") -> str | None:
        try:
            resp = await self.rest.post(
                f"{self.base_url}/upload",
                headers={"Content-Type": mime_type},
                content=audio
            )
        except httpx.HTTPStatusError as hserr:
            logger.error(f"Upload failed: HTTP {hserr.response.status_code}, body={hserr.response.text}")
            return None
        return resp.json().get("upload_url")

    async def create_transcript(self, upload_url: str, language: str) -> str | None:
        try:
            resp = await self.rest.post(
                f"{self.base_url}/transcript",
                json={
                    "audio_url": upload_url,
                    "language_code": self.language_code(language),
                    "punctuate": True,
                    "format_text": True
                }
            )
        except httpx.HTTPStatusError as hserr:
            logger.error(f"Create transcript failed: HTTP {hserr.response.status_code}, body={hserr.response.text}")
            return None
        return resp.json().get("id")

    async def get_status(self, transcript_id: str) -> PollStatus:
        resp = await self.rest.get(f"{self.base_url}/transcript/{transcript_id}")
        body = resp.json()
        return PollStatus(status=body.get("status", ""), text=body.get("text"), error=body.get("error"))

    async def _validate(self) -> ValidationResult:
        resp = await self.rest.get(f"{self.base_url}/transcript", params={"limit": 1}, raise_for_status=False)
        return validation_from_status(resp.status_code)
