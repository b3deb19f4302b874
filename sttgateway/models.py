from dataclasses import dataclass
from enum import Enum
from typing import Union


class ErrorCode(str, Enum):
    AUDIO_TOO_SHORT = "AUDIO_TOO_SHORT"
    NO_SPEECH_DETECTED = "NO_SPEECH_DETECTED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    CREATE_TRANSCRIPT_FAILED = "CREATE_TRANSCRIPT_FAILED"
    TRANSCRIPTION_TIMEOUT = "TRANSCRIPTION_TIMEOUT"
    TRANSCRIPTION_ERROR = "TRANSCRIPTION_ERROR"
    RECOGNITION_FAILED = "RECOGNITION_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN"


class ValidationError(str, Enum):
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    WRONG_ENDPOINT_OR_REGION = "WRONG_ENDPOINT_OR_REGION"
    RATE_LIMITED = "RATE_LIMITED"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class SpeechSuccess:
    text: str

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class SpeechError:
    message: str
    code: ErrorCode = ErrorCode.UNKNOWN
    detail: str = None

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_network_error(self) -> bool:
        return self.code == ErrorCode.NETWORK_ERROR


SpeechResult = Union[SpeechSuccess, SpeechError]


@dataclass(frozen=True)
class Valid:
    @property
    def is_valid(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    error: ValidationError
    message: str = None

    @property
    def is_valid(self) -> bool:
        return False


ValidationResult = Union[Valid, Invalid]


def map_http_status(status_code: int) -> ValidationError:
    if status_code in (401, 403):
        return ValidationError.INVALID_CREDENTIALS
    if status_code == 404:
        return ValidationError.WRONG_ENDPOINT_OR_REGION
    if status_code == 429:
        return ValidationError.RATE_LIMITED
    if 500 <= status_code <= 599:
        return ValidationError.PROVIDER_UNAVAILABLE
    return ValidationError.UNKNOWN


def validation_from_status(status_code: int) -> ValidationResult:
    if 200 <= status_code < 300:
        return Valid()
    return Invalid(map_http_status(status_code), f"HTTP {status_code}")


class SttGatewayError(Exception):
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, detail: str = None):
        super().__init__(message)
        self.code = code
        self.detail = detail


class TokenFetchError(SttGatewayError):
    def __init__(self, message: str, status_code: int = None, detail: str = None):
        super().__init__(message, ErrorCode.RECOGNITION_FAILED, detail)
        self.status_code = status_code


class HandshakeRejected(SttGatewayError):
    def __init__(self, status_code: int, detail: str = None):
        super().__init__(f"WebSocket handshake rejected: HTTP {status_code}", ErrorCode.RECOGNITION_FAILED, detail)
        self.status_code = status_code
