import logging
from typing import List
import httpx
from .config import GatewaySettings
from .credentials import CredentialBundle, has_credentials
from .providers import ProviderId
from .stt.base import SpeechRecognizer
from .stt.aliyun import AliyunSpeechRecognizer
from .stt.assemblyai import AssemblyAISpeechRecognizer
from .stt.aws import AwsTranscribeSpeechRecognizer
from .stt.azure import AzureSpeechRecognizer
from .stt.baidu import BaiduSpeechRecognizer
from .stt.deepgram import DeepgramSpeechRecognizer
from .stt.gemini import GeminiSpeechRecognizer
from .stt.google import GoogleSpeechRecognizer
from .stt.huawei import HuaweiSisSpeechRecognizer
from .stt.ibm import IbmWatsonSpeechRecognizer
from .stt.iflytek import IflytekSpeechRecognizer
from .stt.openai import GroqSpeechRecognizer, OpenAISpeechRecognizer
from .stt.otter import OtterSpeechRecognizer
from .stt.revai import RevAiSpeechRecognizer
from .stt.speechmatics import SpeechmaticsSpeechRecognizer
from .stt.tencent import TencentSpeechRecognizer
from .stt.volcengine import VolcengineSpeechRecognizer

logger = logging.getLogger(__name__)


def create_recognizer(
    provider_id: ProviderId | str,
    credentials: CredentialBundle,
    *,
    settings: GatewaySettings = None,
    http_client: httpx.AsyncClient = None
) -> SpeechRecognizer | None:
    """
    Build a recognizer for `provider_id` from the credential bundle.

    `provider_id` is matched case-insensitively ("deepgram" works); an id that
    names no provider raises ValueError. Returns None when the provider's
    required credentials are missing. Each call returns a new instance; the
    caller owns it and should release() it.
    """
    provider_id = ProviderId(provider_id.strip().upper())
    if not has_credentials(provider_id, credentials):
        logger.warning(f"Credentials for {provider_id.value} are not configured")
        return None

    c = credentials
    common = {"settings": settings, "http_client": http_client}

    match provider_id:
        case ProviderId.GEMINI:
            return GeminiSpeechRecognizer(c.gemini_api_key, model=c.gemini_model or "gemini-2.0-flash", **common)
        case ProviderId.OPENAI_WHISPER:
            return OpenAISpeechRecognizer(c.openai_api_key, base_url=c.openai_base_url or "https://api.openai.com/v1", **common)
        case ProviderId.GROQ_WHISPER:
            return GroqSpeechRecognizer(c.groq_api_key, **common)
        case ProviderId.GOOGLE_CLOUD_STT:
            return GoogleSpeechRecognizer(
                c.gcp_project_id,
                api_key=c.gcp_api_key or None,
                service_account_json=c.gcp_service_account_json or None,
                use_service_account=c.gcp_use_service_account,
                **common
            )
        case ProviderId.AZURE_SPEECH:
            return AzureSpeechRecognizer(c.azure_speech_key, c.azure_speech_region, **common)
        case ProviderId.AWS_TRANSCRIBE:
            return AwsTranscribeSpeechRecognizer(
                c.aws_access_key_id,
                c.aws_secret_access_key,
                region=c.aws_region,
                session_token=c.aws_session_token or None,
                **common
            )
        case ProviderId.IBM_WATSON:
            return IbmWatsonSpeechRecognizer(c.ibm_api_key, c.ibm_service_url, **common)
        case ProviderId.DEEPGRAM:
            return DeepgramSpeechRecognizer(c.deepgram_api_key, **common)
        case ProviderId.ASSEMBLYAI:
            return AssemblyAISpeechRecognizer(c.assemblyai_api_key, **common)
        case ProviderId.IFLYTEK:
            return IflytekSpeechRecognizer(c.iflytek_app_id, c.iflytek_api_key, c.iflytek_api_secret, **common)
        case ProviderId.HUAWEI_SIS:
            return HuaweiSisSpeechRecognizer(
                c.huawei_ak, c.huawei_sk, c.huawei_project_id, region=c.huawei_region, **common
            )
        case ProviderId.VOLCENGINE:
            return VolcengineSpeechRecognizer(
                c.volcengine_ak, c.volcengine_sk, c.volcengine_app_id, cluster=c.volcengine_cluster or "volcengine_streaming_common", **common
            )
        case ProviderId.ALIBABA_ASR:
            return AliyunSpeechRecognizer(
                c.aliyun_access_key_id, c.aliyun_access_key_secret, c.aliyun_app_key, **common
            )
        case ProviderId.TENCENT_ASR:
            return TencentSpeechRecognizer(
                c.tencent_secret_id,
                c.tencent_secret_key,
                c.tencent_app_id,
                engine_model_type=c.tencent_engine_model_type or "16k_zh",
                **common
            )
        case ProviderId.BAIDU_ASR:
            return BaiduSpeechRecognizer(c.baidu_api_key, c.baidu_secret_key, **common)
        case ProviderId.REV_AI:
            return RevAiSpeechRecognizer(c.revai_access_token, **common)
        case ProviderId.SPEECHMATICS:
            return SpeechmaticsSpeechRecognizer(c.speechmatics_api_key, region=c.speechmatics_region or "eu2", **common)
        case ProviderId.OTTER_AI:
            return OtterSpeechRecognizer(c.otterai_api_key, **common)


def implemented_providers() -> List[ProviderId]:
    return list(ProviderId)
