from abc import ABC, abstractmethod
import asyncio
import logging
from typing import Awaitable, Callable, Set
import httpx
from ..audio import pcm_to_wav, silence
from ..config import GatewaySettings
from ..models import (
    ErrorCode,
    HandshakeRejected,
    Invalid,
    SpeechError,
    SpeechResult,
    SttGatewayError,
    TokenFetchError,
    Valid,
    ValidationError,
    ValidationResult,
    map_http_status,
)
from ..providers import PROVIDERS, ProviderDescriptor, ProviderId
from ..retry import RetryPolicy, is_network_error, is_timeout_error
from ..signing import NoopSigner, RequestSigner, TokenProvider
from ..transport import RestTransport, StreamingProtocol, StreamingSession

logger = logging.getLogger(__name__)


class SpeechRecognizer(ABC):
    provider_id: ProviderId = None

    def __init__(
        self,
        *,
        settings: GatewaySettings = None,
        http_client: httpx.AsyncClient = None,
        timeout: float = None,
        max_retries: int = None,
        retry_base_delay: float = None,
        min_audio_bytes: int = None,
        max_connections: int = None,
        max_keepalive_connections: int = None,
        debug: bool = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        overrides = {
            "timeout": timeout,
            "max_retries": max_retries,
            "retry_base_delay": retry_base_delay,
            "min_audio_bytes": min_audio_bytes,
            "max_connections": max_connections,
            "max_keepalive_connections": max_keepalive_connections,
            "debug": debug,
        }
        self.settings = (settings or GatewaySettings()).model_copy(
            update={k: v for k, v in overrides.items() if v is not None}
        )

        if http_client is None:
            self.http_client = httpx.AsyncClient(
                follow_redirects=False,
                timeout=httpx.Timeout(self.settings.timeout),
                limits=httpx.Limits(
                    max_connections=self.settings.max_connections,
                    max_keepalive_connections=self.settings.max_keepalive_connections
                )
            )
            self._owns_http_client = True
        else:
            self.http_client = http_client
            self._owns_http_client = False

        self.retry_policy = RetryPolicy(
            max_attempts=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay
        )
        self.sleep = sleep
        self.debug = self.settings.debug
        self.token_provider: TokenProvider = None
        self._released = False
        self._rest: RestTransport = None

    @property
    def descriptor(self) -> ProviderDescriptor:
        return PROVIDERS[self.provider_id]

    @property
    def rest(self) -> RestTransport:
        if self._rest is None:
            self._rest = RestTransport(
                self.http_client,
                self.create_signer(),
                retry_policy=self.retry_policy,
                sleep=self.sleep,
                debug=self.debug
            )
        return self._rest

    @property
    def min_audio_bytes(self) -> int:
        return self.settings.min_audio_bytes

    def create_signer(self) -> RequestSigner:
        return NoopSigner()

    def supports_streaming(self) -> bool:
        return self.descriptor.supports_streaming

    def supports_realtime(self) -> bool:
        return self.descriptor.supports_realtime

    # Recognition

    async def transcribe(self, data: bytes, language: str = "zh-CN") -> SpeechResult:
        return await self.guarded(data, lambda: self._transcribe(data, language))

    async def transcribe_audio_file(self, data: bytes, mime_type: str, language: str = "zh-CN") -> SpeechResult:
        # Raw PCM unless the provider accepts encoded containers
        return await self.transcribe(data, language)

    async def guarded(self, data: bytes, operation: Callable[[], Awaitable[SpeechResult]]) -> SpeechResult:
        """Applies the minimum-length gate and turns any failure into a SpeechError."""
        if len(data) < self.min_audio_bytes:
            logger.warning(f"{self.provider_id.value}: audio too short ({len(data)} bytes)")
            return SpeechError("Audio too short", ErrorCode.AUDIO_TOO_SHORT)

        try:
            result = await operation()
        except asyncio.CancelledError:
            raise
        except Exception as ex:
            return self.error_from_exception(ex)

        if self.debug and result.is_success:
            logger.info(f"Recognized: {result.text}")
        return result

    @abstractmethod
    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        pass

    def error_from_exception(self, ex: Exception) -> SpeechError:
        name = self.provider_id.value if self.provider_id else type(self).__name__

        if isinstance(ex, httpx.HTTPStatusError):
            status_code = ex.response.status_code
            logger.error(f"{name}: HTTP {status_code}, body={ex.response.text[:500]}")
            return SpeechError(f"HTTP {status_code}", ErrorCode.RECOGNITION_FAILED, ex.response.text[:500])

        if isinstance(ex, SttGatewayError):
            logger.error(f"{name}: {ex}")
            return SpeechError(str(ex), ex.code, ex.detail)

        if is_timeout_error(ex):
            logger.error(f"{name}: timeout: {ex}")
            return SpeechError("Transcription timeout", ErrorCode.TRANSCRIPTION_TIMEOUT, str(ex))

        if is_network_error(ex):
            logger.error(f"{name}: network error: {ex}")
            return SpeechError(f"Network error: {ex}", ErrorCode.NETWORK_ERROR, str(ex))

        logger.exception(f"{name}: unexpected error in transcription")
        return SpeechError(f"Transcription failed: {ex}", ErrorCode.TRANSCRIPTION_ERROR, str(ex))

    # Validation

    async def validate_credentials(self) -> ValidationResult:
        try:
            result = await self._validate()
        except asyncio.CancelledError:
            raise
        except Exception as ex:
            result = self.validation_from_exception(ex)

        if not result.is_valid:
            logger.warning(f"{self.provider_id.value}: credential validation failed: {result.error.value}")
        return result

    @abstractmethod
    async def _validate(self) -> ValidationResult:
        pass

    def validation_from_exception(self, ex: Exception) -> ValidationResult:
        if isinstance(ex, httpx.HTTPStatusError):
            return Invalid(map_http_status(ex.response.status_code), f"HTTP {ex.response.status_code}")
        if isinstance(ex, (TokenFetchError, HandshakeRejected)) and ex.status_code:
            return Invalid(map_http_status(ex.status_code), str(ex))
        if is_timeout_error(ex):
            return Invalid(ValidationError.TIMEOUT, str(ex))
        if is_network_error(ex):
            return Invalid(ValidationError.NETWORK_ERROR, str(ex))
        logger.warning(f"Unexpected error in credential validation: {ex}")
        return Invalid(ValidationError.UNKNOWN, str(ex))

    def validation_from_error(self, error: SpeechError) -> ValidationResult:
        if error.code == ErrorCode.NO_SPEECH_DETECTED:
            return Valid()
        if error.code == ErrorCode.NETWORK_ERROR:
            return Invalid(ValidationError.NETWORK_ERROR, error.message)
        if error.code == ErrorCode.TRANSCRIPTION_TIMEOUT:
            return Invalid(ValidationError.TIMEOUT, error.message)
        return Invalid(ValidationError.UNKNOWN, error.message)

    async def probe_with_silence(self, duration: float = 1.0) -> ValidationResult:
        """Round-trips silent audio; 'no speech' still proves the credentials work."""
        result = await self._transcribe(silence(duration), "en-US")
        if result.is_success:
            return Valid()
        return self.validation_from_error(result)

    async def probe_token(self) -> ValidationResult:
        self.token_provider.invalidate()
        await self.token_provider.get_token()
        return Valid()

    # Helpers

    def to_wave_file(self, audio_bytes: bytes, sample_rate: int = 16000) -> bytes:
        return pcm_to_wav(audio_bytes, sample_rate)

    # Resources

    async def release(self):
        if self._released:
            return
        self._released = True
        if self.token_provider is not None:
            self.token_provider.invalidate()
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.release()


class StreamingSpeechRecognizer(SpeechRecognizer):
    """Recognizer whose transcription runs over a WebSocket session."""

    def __init__(
        self,
        *,
        stream_timeout: float = None,
        realtime_pacing: bool = None,
        ws_connect: Callable[..., Awaitable] = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        overrides = {"stream_timeout": stream_timeout, "realtime_pacing": realtime_pacing}
        self.settings = self.settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})
        self.ws_connect = ws_connect
        self._sessions: Set[StreamingSession] = set()

    @abstractmethod
    def create_protocol(self, language: str) -> StreamingProtocol:
        pass

    @property
    def pace_audio(self) -> bool:
        return self.settings.realtime_pacing

    def create_session(self, language: str = "zh-CN", *, on_partial: Callable[[str], None] = None) -> StreamingSession:
        """Builds a session for incremental feeding: start(), send_audio(), finish()."""
        session = StreamingSession(
            self.create_protocol(language),
            connect=self.ws_connect,
            timeout=self.settings.stream_timeout,
            open_timeout=self.settings.timeout,
            retry_policy=self.retry_policy,
            pace=self.pace_audio,
            on_partial=on_partial,
            on_closed=self._sessions.discard,
            sleep=self.sleep,
            debug=self.debug
        )
        # Tracked until closed so cancel() and release() reach incremental sessions too
        self._sessions.add(session)
        return session

    async def _transcribe(self, data: bytes, language: str) -> SpeechResult:
        return await self.create_session(language).run(data)

    def cancel(self):
        for session in list(self._sessions):
            session.cancel()

    async def release(self):
        self.cancel()
        await super().release()
