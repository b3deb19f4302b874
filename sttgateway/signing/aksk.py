import uuid
from typing import Dict
from .encoding import b64, hmac_sha256, new_nonce, unix_time


class HuaweiSisSigner:
    """
    Access-key signing for Huawei SIS WebSocket endpoints.

    signature = hex(HMAC-SHA256(sk, ak + timestamp + nonce))
    """

    def __init__(self, access_key: str, secret_key: str, project_id: str):
        self.access_key = access_key
        self.secret_key = secret_key
        self.project_id = project_id

    def signature(self, timestamp: str, nonce: str) -> str:
        return hmac_sha256(self.secret_key.encode("utf-8"), f"{self.access_key}{timestamp}{nonce}").hex()

    def sign_params(self, *, timestamp: int = None, nonce: str = None) -> Dict[str, str]:
        timestamp = str(timestamp or unix_time())
        nonce = nonce or new_nonce()
        return {
            "projectId": self.project_id,
            "timestamp": timestamp,
            "nonce": nonce,
            "signature": self.signature(timestamp, nonce),
        }

    def headers(self) -> Dict[str, str]:
        return {
            "X-Sdk-Date": str(unix_time()),
            "X-Request-Id": str(uuid.uuid4()),
        }


class VolcengineTokenSigner:
    """
    Signed token for the Volcengine streaming ASR gateway.

    token = "ak;timestamp;nonce;base64(HMAC-SHA256(sk, ak + timestamp + nonce))"
    """

    def __init__(self, access_key: str, secret_key: str):
        self.access_key = access_key
        self.secret_key = secret_key

    def signature(self, timestamp: str, nonce: str) -> str:
        return b64(hmac_sha256(self.secret_key.encode("utf-8"), f"{self.access_key}{timestamp}{nonce}"))

    def token(self, *, timestamp: int = None, nonce: str = None) -> str:
        timestamp = str(timestamp or unix_time())
        nonce = nonce or new_nonce()
        return f"{self.access_key};{timestamp};{nonce};{self.signature(timestamp, nonce)}"

    @staticmethod
    def request_id() -> str:
        return str(uuid.uuid4())
