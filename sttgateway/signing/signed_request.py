import datetime
from email.utils import formatdate
import random
import uuid
from typing import Dict
from .encoding import b64, canonical_query, hmac_sha1, hmac_sha256, percent_encode, unix_time


class IflytekSigner:
    """
    iFLYTEK WebAPI authentication.

    Signs `host`, `date` and the HTTP request line with HMAC-SHA256. The
    signature and its descriptor are passed as URL query parameters of the
    WebSocket handshake.
    """

    def __init__(self, api_key: str, api_secret: str, host: str = "iat-api.xfyun.cn", path: str = "/v2/iat"):
        self.api_key = api_key
        self.api_secret = api_secret
        self.host = host
        self.path = path

    def signature_origin(self, date: str, method: str = "GET") -> str:
        return f"host: {self.host}\ndate: {date}\n{method} {self.path} HTTP/1.1"

    def authorization(self, date: str, method: str = "GET") -> str:
        signature = b64(hmac_sha256(self.api_secret.encode("utf-8"), self.signature_origin(date, method)))
        authorization_origin = (
            f'api_key="{self.api_key}", algorithm="hmac-sha256", '
            f'headers="host date request-line", signature="{signature}"'
        )
        return b64(authorization_origin.encode("utf-8"))

    def sign_url(self, date: str = None) -> str:
        date = date or formatdate(usegmt=True)
        params = {
            "authorization": self.authorization(date),
            "date": date,
            "host": self.host,
        }
        query = "&".join(f"{k}={percent_encode(v)}" for k, v in params.items())
        return f"wss://{self.host}{self.path}?{query}"


class TencentSigner:
    """
    Tencent Cloud realtime ASR URL signing.

    Query parameters are sorted alphabetically and appended to
    `host/path?`, then signed with HMAC-SHA1. The base64 signature is added
    as a percent-encoded `signature` parameter.
    """

    host = "asr.cloud.tencent.com"

    def __init__(self, secret_id: str, secret_key: str, app_id: str, engine_model_type: str = "16k_zh"):
        self.secret_id = secret_id
        self.secret_key = secret_key
        self.app_id = app_id
        self.engine_model_type = engine_model_type

    @property
    def path(self) -> str:
        return f"/asr/v2/{self.app_id}"

    def build_params(self, *, timestamp: int = None, nonce: int = None, voice_id: str = None, extra: Dict[str, str] = None) -> Dict[str, str]:
        timestamp = timestamp or unix_time()
        params = {
            "engine_model_type": self.engine_model_type,
            "expired": str(timestamp + 86400),
            "nonce": str(nonce if nonce is not None else random.randint(10000000, 99999999)),
            "secretid": self.secret_id,
            "timestamp": str(timestamp),
            "voice_format": "1",
            "voice_id": voice_id or uuid.uuid4().hex,
        }
        if extra:
            params.update({k: str(v) for k, v in extra.items()})
        return params

    def string_to_sign(self, params: Dict[str, str]) -> str:
        query = "&".join(f"{k}={params[k]}" for k in sorted(params))
        return f"{self.host}{self.path}?{query}"

    def signature(self, params: Dict[str, str]) -> str:
        return b64(hmac_sha1(self.secret_key.encode("utf-8"), self.string_to_sign(params)))

    def sign_url(self, **kwargs) -> str:
        params = self.build_params(**kwargs)
        return f"wss://{self.string_to_sign(params)}&signature={percent_encode(self.signature(params))}"


class AliyunPopSigner:
    """Alibaba Cloud RPC (POP) signature, version 1.0 with HMAC-SHA1."""

    def __init__(self, access_key_id: str, access_key_secret: str):
        self.access_key_id = access_key_id
        self.access_key_secret = access_key_secret

    def common_params(self, action: str, version: str, region_id: str, *, nonce: str = None, timestamp: datetime.datetime = None) -> Dict[str, str]:
        timestamp = timestamp or datetime.datetime.now(datetime.timezone.utc)
        return {
            "AccessKeyId": self.access_key_id,
            "Action": action,
            "Format": "JSON",
            "RegionId": region_id,
            "SignatureMethod": "HMAC-SHA1",
            "SignatureNonce": nonce or str(uuid.uuid4()),
            "SignatureVersion": "1.0",
            "Timestamp": timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "Version": version,
        }

    def string_to_sign(self, params: Dict[str, str], method: str = "GET") -> str:
        return f"{method}&{percent_encode('/', safe='')}&{percent_encode(canonical_query(params), safe='')}"

    def signature(self, params: Dict[str, str], method: str = "GET") -> str:
        key = f"{self.access_key_secret}&".encode("utf-8")
        return b64(hmac_sha1(key, self.string_to_sign(params, method)))

    def signed_query(self, params: Dict[str, str], method: str = "GET") -> str:
        return f"Signature={percent_encode(self.signature(params, method))}&{canonical_query(params)}"
