"""AWS Signature Version 4 for presigned URLs and header-signed requests."""
import datetime
from typing import Callable, Dict, Tuple
from urllib.parse import urlsplit, parse_qsl
import httpx
from .base import RequestSigner
from .encoding import canonical_query, hmac_sha256, sha256_hex

ALGORITHM = "AWS4-HMAC-SHA256"
EMPTY_PAYLOAD_HASH = sha256_hex(b"")


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    k_date = hmac_sha256(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, "aws4_request")


def canonical_request(
    method: str,
    path: str,
    query: Dict[str, str],
    headers: Dict[str, str],
    payload_hash: str
) -> Tuple[str, str]:
    """Returns the canonical request and the signed header list."""
    normalized = {k.lower().strip(): " ".join(str(v).split()) for k, v in headers.items()}
    signed_headers = ";".join(sorted(normalized))
    canonical_headers = "".join(f"{k}:{normalized[k]}\n" for k in sorted(normalized))
    request = "\n".join([
        method.upper(),
        path or "/",
        canonical_query(query),
        canonical_headers,
        signed_headers,
        payload_hash,
    ])
    return request, signed_headers


class SigV4Signer(RequestSigner):
    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        region: str,
        service: str,
        session_token: str = None,
        *,
        clock: Callable[[], datetime.datetime] = None
    ):
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region
        self.service = service
        self.session_token = session_token or None
        self.clock = clock or (lambda: datetime.datetime.now(datetime.timezone.utc))

    def _timestamps(self) -> Tuple[str, str]:
        now = self.clock()
        return now.strftime("%Y%m%dT%H%M%SZ"), now.strftime("%Y%m%d")

    def credential_scope(self, date_stamp: str) -> str:
        return f"{date_stamp}/{self.region}/{self.service}/aws4_request"

    def string_to_sign(self, amz_date: str, date_stamp: str, canonical: str) -> str:
        return "\n".join([
            ALGORITHM,
            amz_date,
            self.credential_scope(date_stamp),
            sha256_hex(canonical),
        ])

    def signature(self, date_stamp: str, string_to_sign: str) -> str:
        key = derive_signing_key(self.secret_access_key, date_stamp, self.region, self.service)
        return hmac_sha256(key, string_to_sign).hex()

    def presign_url(
        self,
        host: str,
        path: str,
        params: Dict[str, str] = None,
        *,
        expires: int = 300,
        scheme: str = "wss",
        method: str = "GET"
    ) -> str:
        amz_date, date_stamp = self._timestamps()
        query = dict(params or {})
        query.update({
            "X-Amz-Algorithm": ALGORITHM,
            "X-Amz-Credential": f"{self.access_key_id}/{self.credential_scope(date_stamp)}",
            "X-Amz-Date": amz_date,
            "X-Amz-Expires": str(expires),
            "X-Amz-SignedHeaders": "host",
        })
        if self.session_token:
            query["X-Amz-Security-Token"] = self.session_token

        canonical, _ = canonical_request(method, path, query, {"host": host}, EMPTY_PAYLOAD_HASH)
        signature = self.signature(date_stamp, self.string_to_sign(amz_date, date_stamp, canonical))
        return f"{scheme}://{host}{path}?{canonical_query(query)}&X-Amz-Signature={signature}"

    def sign_headers(
        self,
        method: str,
        url: str,
        headers: Dict[str, str] = None,
        body: bytes = b""
    ) -> Dict[str, str]:
        """Returns `headers` plus `X-Amz-Date`, the security token and `Authorization`."""
        amz_date, date_stamp = self._timestamps()
        parts = urlsplit(url)
        signed = dict(headers or {})
        signed["host"] = parts.netloc
        signed["x-amz-date"] = amz_date
        if self.session_token:
            signed["x-amz-security-token"] = self.session_token

        query = dict(parse_qsl(parts.query, keep_blank_values=True))
        canonical, signed_headers = canonical_request(method, parts.path, query, signed, sha256_hex(body or b""))
        signature = self.signature(date_stamp, self.string_to_sign(amz_date, date_stamp, canonical))

        signed["Authorization"] = (
            f"{ALGORITHM} Credential={self.access_key_id}/{self.credential_scope(date_stamp)}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )
        del signed["host"]
        return signed

    async def sign(self, request: httpx.Request) -> None:
        to_sign = {}
        if "content-type" in request.headers:
            to_sign["content-type"] = request.headers["content-type"]
        signed = self.sign_headers(request.method, str(request.url), to_sign, request.content)
        for name, value in signed.items():
            request.headers[name] = value
