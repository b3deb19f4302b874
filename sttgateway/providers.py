from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class ProviderId(str, Enum):
    GEMINI = "GEMINI"
    OPENAI_WHISPER = "OPENAI_WHISPER"
    GROQ_WHISPER = "GROQ_WHISPER"
    GOOGLE_CLOUD_STT = "GOOGLE_CLOUD_STT"
    AZURE_SPEECH = "AZURE_SPEECH"
    AWS_TRANSCRIBE = "AWS_TRANSCRIBE"
    IBM_WATSON = "IBM_WATSON"
    DEEPGRAM = "DEEPGRAM"
    ASSEMBLYAI = "ASSEMBLYAI"
    IFLYTEK = "IFLYTEK"
    HUAWEI_SIS = "HUAWEI_SIS"
    VOLCENGINE = "VOLCENGINE"
    ALIBABA_ASR = "ALIBABA_ASR"
    TENCENT_ASR = "TENCENT_ASR"
    BAIDU_ASR = "BAIDU_ASR"
    REV_AI = "REV_AI"
    SPEECHMATICS = "SPEECHMATICS"
    OTTER_AI = "OTTER_AI"


class AuthType(str, Enum):
    API_KEY = "API_KEY"                                         # key as query parameter or bearer token
    API_KEY_HEADER = "API_KEY_HEADER"                           # key as literal Authorization value
    API_KEY_SECRET = "API_KEY_SECRET"                           # OAuth2 client credentials
    SERVICE_ACCOUNT_OR_API_KEY = "SERVICE_ACCOUNT_OR_API_KEY"
    SUBSCRIPTION_KEY_REGION = "SUBSCRIPTION_KEY_REGION"
    AWS_IAM = "AWS_IAM"
    IBM_IAM = "IBM_IAM"
    AK_SK = "AK_SK"
    AK_SK_SIGNED = "AK_SK_SIGNED"
    SIGNED_REQUEST = "SIGNED_REQUEST"


@dataclass(frozen=True)
class ProviderDescriptor:
    id: ProviderId
    display_name: str
    auth_type: AuthType
    description: str = ""
    website: str = ""
    supports_streaming: bool = False
    supports_realtime: bool = False


PROVIDERS: Dict[ProviderId, ProviderDescriptor] = {
    d.id: d for d in [
        ProviderDescriptor(
            ProviderId.GEMINI, "Gemini", AuthType.API_KEY,
            description="Google Gemini native audio transcription",
            website="https://ai.google.dev",
        ),
        ProviderDescriptor(
            ProviderId.OPENAI_WHISPER, "OpenAI Whisper", AuthType.API_KEY,
            description="OpenAI Whisper API",
            website="https://openai.com",
        ),
        ProviderDescriptor(
            ProviderId.GROQ_WHISPER, "Groq Whisper", AuthType.API_KEY,
            description="Groq Whisper inference",
            website="https://groq.com",
        ),
        ProviderDescriptor(
            ProviderId.GOOGLE_CLOUD_STT, "Google Cloud Speech-to-Text", AuthType.SERVICE_ACCOUNT_OR_API_KEY,
            description="Google Cloud Speech-to-Text",
            website="https://cloud.google.com/speech-to-text",
        ),
        ProviderDescriptor(
            ProviderId.AZURE_SPEECH, "Azure AI Speech", AuthType.SUBSCRIPTION_KEY_REGION,
            description="Microsoft Azure AI Speech",
            website="https://azure.microsoft.com/products/ai-services/ai-speech",
        ),
        ProviderDescriptor(
            ProviderId.AWS_TRANSCRIBE, "Amazon Transcribe", AuthType.AWS_IAM,
            description="Amazon Transcribe streaming",
            website="https://aws.amazon.com/transcribe/",
            supports_streaming=True, supports_realtime=True,
        ),
        ProviderDescriptor(
            ProviderId.IBM_WATSON, "IBM Watson Speech to Text", AuthType.IBM_IAM,
            description="IBM Watson Speech to Text",
            website="https://www.ibm.com/products/speech-to-text",
            supports_streaming=True, supports_realtime=True,
        ),
        ProviderDescriptor(
            ProviderId.DEEPGRAM, "Deepgram", AuthType.API_KEY_HEADER,
            description="Deepgram pre-recorded transcription",
            website="https://deepgram.com",
        ),
        ProviderDescriptor(
            ProviderId.ASSEMBLYAI, "AssemblyAI", AuthType.API_KEY_HEADER,
            description="AssemblyAI asynchronous transcription",
            website="https://www.assemblyai.com",
        ),
        ProviderDescriptor(
            ProviderId.IFLYTEK, "iFLYTEK", AuthType.SIGNED_REQUEST,
            description="iFLYTEK dictation (IAT) streaming",
            website="https://www.xfyun.cn",
            supports_streaming=True, supports_realtime=True,
        ),
        ProviderDescriptor(
            ProviderId.HUAWEI_SIS, "Huawei Cloud SIS", AuthType.AK_SK,
            description="Huawei Cloud speech interaction service",
            website="https://www.huaweicloud.com/product/sis.html",
            supports_streaming=True, supports_realtime=True,
        ),
        ProviderDescriptor(
            ProviderId.VOLCENGINE, "Volcengine ASR", AuthType.AK_SK_SIGNED,
            description="Volcengine streaming speech recognition",
            website="https://www.volcengine.com/product/asr",
            supports_streaming=True, supports_realtime=True,
        ),
        ProviderDescriptor(
            ProviderId.ALIBABA_ASR, "Alibaba Cloud NLS", AuthType.AK_SK_SIGNED,
            description="Alibaba Cloud intelligent speech interaction",
            website="https://www.alibabacloud.com/product/intelligent-speech-interaction",
            supports_streaming=True, supports_realtime=True,
        ),
        ProviderDescriptor(
            ProviderId.TENCENT_ASR, "Tencent Cloud ASR", AuthType.SIGNED_REQUEST,
            description="Tencent Cloud realtime speech recognition",
            website="https://cloud.tencent.com/product/asr",
            supports_streaming=True, supports_realtime=True,
        ),
        ProviderDescriptor(
            ProviderId.BAIDU_ASR, "Baidu ASR", AuthType.API_KEY_SECRET,
            description="Baidu short speech recognition",
            website="https://ai.baidu.com/tech/speech",
        ),
        ProviderDescriptor(
            ProviderId.REV_AI, "Rev.ai", AuthType.API_KEY_HEADER,
            description="Rev.ai streaming speech-to-text",
            website="https://www.rev.ai",
            supports_streaming=True, supports_realtime=True,
        ),
        ProviderDescriptor(
            ProviderId.SPEECHMATICS, "Speechmatics", AuthType.API_KEY_HEADER,
            description="Speechmatics realtime transcription",
            website="https://www.speechmatics.com",
            supports_streaming=True, supports_realtime=True,
        ),
        ProviderDescriptor(
            ProviderId.OTTER_AI, "Otter.ai", AuthType.API_KEY_HEADER,
            description="Otter.ai transcription",
            website="https://otter.ai",
        ),
    ]
}


def get_descriptor(provider_id: ProviderId | str) -> ProviderDescriptor:
    return PROVIDERS[ProviderId(provider_id)]


def providers_by_auth_type(auth_type: AuthType) -> List[ProviderDescriptor]:
    return [d for d in PROVIDERS.values() if d.auth_type == auth_type]
