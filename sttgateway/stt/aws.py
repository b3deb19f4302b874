import logging
from typing import List
from ..eventstream import AwsStreamException, decode_transcript_event, encode_audio_event
from ..models import ErrorCode, ValidationResult, validation_from_status
from ..providers import ProviderId
from ..signing import RequestSigner, SigV4Signer
from ..transport import ConnectTarget, StreamFailed, StreamingProtocol, TranscriptUpdate
from .base import StreamingSpeechRecognizer
from .languages import to_locale

logger = logging.getLogger(__name__)

STREAMING_PATH = "/stream-transcription-websocket"
STS_VERSION = "2011-06-15"


class AwsTranscribeProtocol(StreamingProtocol):
    # Transcribe accepts 50-200ms per audio event
    chunk_size = 3200
    segment_separator = " "

    def __init__(self, signer: SigV4Signer, language_code: str, sample_rate: int = 16000):
        self.signer = signer
        self.language_code = language_code
        self.sample_rate = sample_rate

    @property
    def host(self) -> str:
        return f"transcribestreaming.{self.signer.region}.amazonaws.com:8443"

    async def connect_target(self) -> ConnectTarget:
        url = self.signer.presign_url(
            self.host,
            STREAMING_PATH,
            {
                "language-code": self.language_code,
                "media-encoding": "pcm",
                "sample-rate": str(self.sample_rate),
            }
        )
        return ConnectTarget(url=url, display_url=f"wss://{self.host}{STREAMING_PATH}")

    def audio_message(self, chunk: bytes, index: int) -> bytes:
        return encode_audio_event(chunk)

    def end_messages(self, chunks_sent: int) -> List[bytes]:
        # An empty audio event ends the stream; the service then closes the socket
        return [encode_audio_event(b"")]

    def parse(self, message) -> list:
        if isinstance(message, str):
            return []
        try:
            event = decode_transcript_event(message)
        except AwsStreamException as ex:
            return [StreamFailed(f"AWS Transcribe error: {ex}", ErrorCode.RECOGNITION_FAILED, ex.exception_type)]
        if event is None:
            return []
        return [TranscriptUpdate(event.text, is_final=not event.is_partial)]


class AwsTranscribeSpeechRecognizer(StreamingSpeechRecognizer):
    provider_id = ProviderId.AWS_TRANSCRIBE

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        region: str = "us-east-1",
        session_token: str = None,
        sample_rate: int = 16000,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region
        self.session_token = session_token
        self.sample_rate = sample_rate
        self.signer = SigV4Signer(access_key_id, secret_access_key, region, "transcribe", session_token)

    def create_signer(self) -> RequestSigner:
        # REST calls only go to STS
        return SigV4Signer(self.access_key_id, self.secret_access_key, self.region, "sts", self.session_token)

    def create_protocol(self, language: str) -> AwsTranscribeProtocol:
        return AwsTranscribeProtocol(self.signer, to_locale(language), self.sample_rate)

    async def _validate(self) -> ValidationResult:
        resp = await self.rest.post(
            f"https://sts.{self.region}.amazonaws.com/",
            data={"Action": "GetCallerIdentity", "Version": STS_VERSION},
            raise_for_status=False
        )
        if self.debug:
            logger.info(f"STS GetCallerIdentity: HTTP {resp.status_code}")
        return validation_from_status(resp.status_code)
