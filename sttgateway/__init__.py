from .config import GatewaySettings
from .credentials import CredentialBundle, configured_providers, has_credentials
from .models import (
    ErrorCode,
    Invalid,
    SpeechError,
    SpeechResult,
    SpeechSuccess,
    Valid,
    ValidationError,
    ValidationResult,
)
from .providers import PROVIDERS, AuthType, ProviderDescriptor, ProviderId, get_descriptor
from .registry import create_recognizer, implemented_providers
from .stt.base import SpeechRecognizer, StreamingSpeechRecognizer
