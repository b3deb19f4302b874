from typing import Dict, List, Tuple
from pydantic import BaseModel, ConfigDict, Field
from .providers import ProviderId


class CredentialBundle(BaseModel):
    """
    Flat record of provider secrets supplied by an external credential store.

    The gateway only reads these values. Blank or whitespace-only fields are
    treated as absent.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    # AI providers with audio transcription
    gemini_api_key: str = Field(default="", description="Gemini API key.")
    gemini_model: str = Field(default="gemini-2.0-flash", description="Gemini model used for transcription.")
    openai_api_key: str = Field(default="", description="OpenAI API key.")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI compatible API base URL.")
    groq_api_key: str = Field(default="", description="Groq API key.")

    # Google Cloud
    gcp_project_id: str = Field(default="", description="Google Cloud project id.")
    gcp_api_key: str = Field(default="", description="Google Cloud API key.")
    gcp_service_account_json: str = Field(default="", description="Service account key file content.")
    gcp_use_service_account: bool = Field(default=False, description="Use the service account instead of the API key.")

    # Azure
    azure_speech_key: str = Field(default="", description="Azure Speech subscription key.")
    azure_speech_region: str = Field(default="", description="Azure region, e.g. 'eastus'.")

    # AWS
    aws_access_key_id: str = Field(default="", description="AWS access key id.")
    aws_secret_access_key: str = Field(default="", description="AWS secret access key.")
    aws_session_token: str = Field(default="", description="Optional session token for temporary credentials.")
    aws_region: str = Field(default="us-east-1", description="AWS region.")

    # IBM
    ibm_api_key: str = Field(default="", description="IBM Cloud API key.")
    ibm_service_url: str = Field(default="", description="Speech to Text instance URL.")

    # Deepgram / AssemblyAI
    deepgram_api_key: str = Field(default="", description="Deepgram API key.")
    assemblyai_api_key: str = Field(default="", description="AssemblyAI API key.")

    # iFLYTEK
    iflytek_app_id: str = Field(default="", description="iFLYTEK APPID.")
    iflytek_api_key: str = Field(default="", description="iFLYTEK APIKey.")
    iflytek_api_secret: str = Field(default="", description="iFLYTEK APISecret.")

    # Huawei
    huawei_ak: str = Field(default="", description="Huawei Cloud access key.")
    huawei_sk: str = Field(default="", description="Huawei Cloud secret key.")
    huawei_region: str = Field(default="cn-north-4", description="Huawei Cloud region.")
    huawei_project_id: str = Field(default="", description="Huawei Cloud project id.")

    # Volcengine
    volcengine_ak: str = Field(default="", description="Volcengine access key.")
    volcengine_sk: str = Field(default="", description="Volcengine secret key.")
    volcengine_app_id: str = Field(default="", description="Volcengine application id.")
    volcengine_cluster: str = Field(default="volcengine_streaming_common", description="Volcengine ASR cluster.")

    # Alibaba Cloud
    aliyun_access_key_id: str = Field(default="", description="Alibaba Cloud AccessKey id.")
    aliyun_access_key_secret: str = Field(default="", description="Alibaba Cloud AccessKey secret.")
    aliyun_app_key: str = Field(default="", description="NLS project AppKey.")

    # Tencent Cloud
    tencent_secret_id: str = Field(default="", description="Tencent Cloud SecretId.")
    tencent_secret_key: str = Field(default="", description="Tencent Cloud SecretKey.")
    tencent_app_id: str = Field(default="", description="Tencent Cloud AppId.")
    tencent_engine_model_type: str = Field(default="16k_zh", description="Tencent ASR engine model type.")

    # Baidu
    baidu_api_key: str = Field(default="", description="Baidu ASR API key.")
    baidu_secret_key: str = Field(default="", description="Baidu ASR secret key.")

    # Others
    revai_access_token: str = Field(default="", description="Rev.ai access token.")
    speechmatics_api_key: str = Field(default="", description="Speechmatics API key.")
    speechmatics_region: str = Field(default="eu2", description="Speechmatics realtime region.")
    otterai_api_key: str = Field(default="", description="Otter.ai API key.")


REQUIRED_FIELDS: Dict[ProviderId, Tuple[str, ...]] = {
    ProviderId.GEMINI: ("gemini_api_key",),
    ProviderId.OPENAI_WHISPER: ("openai_api_key",),
    ProviderId.GROQ_WHISPER: ("groq_api_key",),
    ProviderId.AZURE_SPEECH: ("azure_speech_key", "azure_speech_region"),
    ProviderId.AWS_TRANSCRIBE: ("aws_access_key_id", "aws_secret_access_key", "aws_region"),
    ProviderId.IBM_WATSON: ("ibm_api_key", "ibm_service_url"),
    ProviderId.DEEPGRAM: ("deepgram_api_key",),
    ProviderId.ASSEMBLYAI: ("assemblyai_api_key",),
    ProviderId.IFLYTEK: ("iflytek_app_id", "iflytek_api_key", "iflytek_api_secret"),
    ProviderId.HUAWEI_SIS: ("huawei_ak", "huawei_sk", "huawei_region", "huawei_project_id"),
    ProviderId.VOLCENGINE: ("volcengine_ak", "volcengine_sk", "volcengine_app_id"),
    ProviderId.ALIBABA_ASR: ("aliyun_access_key_id", "aliyun_access_key_secret", "aliyun_app_key"),
    ProviderId.TENCENT_ASR: ("tencent_secret_id", "tencent_secret_key", "tencent_app_id"),
    ProviderId.BAIDU_ASR: ("baidu_api_key", "baidu_secret_key"),
    ProviderId.REV_AI: ("revai_access_token",),
    ProviderId.SPEECHMATICS: ("speechmatics_api_key",),
    ProviderId.OTTER_AI: ("otterai_api_key",),
}


def _present(value) -> bool:
    return isinstance(value, str) and value.strip() != ""


def has_credentials(provider_id: ProviderId | str, credentials: CredentialBundle) -> bool:
    provider_id = ProviderId(provider_id)

    if provider_id == ProviderId.GOOGLE_CLOUD_STT:
        # Either an API key, or a service account when that mode is selected
        if not _present(credentials.gcp_project_id):
            return False
        if credentials.gcp_use_service_account:
            return _present(credentials.gcp_service_account_json)
        return _present(credentials.gcp_api_key)

    return all(_present(getattr(credentials, name)) for name in REQUIRED_FIELDS[provider_id])


def configured_providers(credentials: CredentialBundle) -> List[ProviderId]:
    return [p for p in ProviderId if has_credentials(p, credentials)]
