import base64
import logging
import re
from ..models import ErrorCode, SpeechError, SpeechResult, SpeechSuccess, ValidationResult, validation_from_status
from ..providers import ProviderId
from ..signing import ApiKeyQuerySigner, RequestSigner
from .base import SpeechRecognizer
from .languages import display_name

logger = logging.getLogger(__name__)

TRANSCRIPTION_PROMPT = """Transcribe the speech in this audio to text.
The speaker is speaking {language}. Output the transcription in the original language spoken.
Rules:
1. Only output the actual spoken words, nothing else
2. If the audio contains no clear speech, only noise, silence, or unintelligible sounds, respond with exactly: Unable to recognize
3. Do not output timestamps, time codes, or numbers like "00:00"
4. Do not describe the audio or add any explanation
5. If you hear beeps, static, or mechanical sounds instead of speech, respond with: Unable to recognize"""

# Phrases the model uses when it could not hear any speech
REFUSAL_PATTERNS = [
    "unable to recognize",
    "i'm sorry",
    "i am sorry",
    "cannot recognize",
    "cannot provide a transcription",
    "cannot transcribe",
    "no discernible speech",
    "no speech",
    "only noise",
    "unable to transcribe",
    "no audio content",
    "empty audio",
    "silence",
]

TIMESTAMP_ONLY = re.compile(r"^[0-9: \n]+$")
REPEATED_TIMESTAMPS = re.compile(r"(\d{2}:\d{2}[:\s]*){3,}")


def is_valid_transcription(text: str) -> bool:
    """Filters refusals and the timestamp/repetition noise the model emits for silent input."""
    text = (text or "").strip()
    if len(text) < 2:
        return False

    lower_text = text.lower()
    if any(p in lower_text for p in REFUSAL_PATTERNS):
        return False

    if TIMESTAMP_ONLY.match(text) or REPEATED_TIMESTAMPS.search(text):
        return False

    noise_chars = sum(1 for c in text if c in "0: \n")
    if len(text) > 10 and noise_chars / len(text) > 0.7:
        return False

    if len(text) >= 20:
        head = text[:5]
        occurrences = sum(1 for i in range(len(text) - 4) if text[i:i + 5] == head)
        if occurrences > len(text) // 8:
            return False

    return True


class GeminiSpeechRecognizer(SpeechRecognizer):
    provider_id = ProviderId.GEMINI

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.sample_rate = sample_rate

    def create_signer(self) -> RequestSigner:
        return ApiKeyQuerySigner(self.api_key, param="key")

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        return await self._generate(self.to_wave_file(data, self.sample_rate), "audio/wav", language)

    async def transcribe_audio_file(self, data: bytes, mime_type: str, language: str = "zh-CN") -> SpeechResult:
        return await self.guarded(data, lambda: self._generate(data, mime_type, language))

    async def _generate(self, audio: bytes, mime_type: str, language: str) -> SpeechResult:
        request_json = {
            "contents": [{
                "parts": [
                    {
                        "inline_data": {
                            "mime_type": mime_type,
                            "data": base64.b64encode(audio).decode("utf-8")
                        }
                    },
                    {"text": TRANSCRIPTION_PROMPT.format(language=display_name(language))}
                ]
            }],
            "generationConfig": {
                "temperature": 0.1,
                "maxOutputTokens": 500
            }
        }

        resp = await self.rest.post(
            f"{self.base_url}/models/{self.model}:generateContent",
            json=request_json
        )

        text = self.extract_text(resp.json())
        if not is_valid_transcription(text):
            if text:
                logger.info(f"Filtered invalid transcription: {text}")
            return SpeechError("Unable to recognize speech", ErrorCode.NO_SPEECH_DETECTED)
        return SpeechSuccess(text.strip())

    @staticmethod
    def extract_text(body: dict) -> str | None:
        candidates = body.get("candidates") or []
        if not candidates:
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            return None
        return (parts[0].get("text") or "").strip()

    async def _validate(self) -> ValidationResult:
        resp = await self.rest.get(f"{self.base_url}/models", raise_for_status=False)
        return validation_from_status(resp.status_code)
