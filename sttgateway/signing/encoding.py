import base64
import hashlib
import hmac
import secrets
import time
from typing import Dict, Iterable, Tuple
from urllib.parse import quote


def percent_encode(value: str, safe: str = "-_.~") -> str:
    """
    RFC 3986 percent-encoding as required by signed query strings.

    Spaces become `%20` (never `+`), `*` becomes `%2A` and `~` stays literal.
    """
    return quote(str(value), safe=safe)


def canonical_query(params: Dict[str, str] | Iterable[Tuple[str, str]], safe: str = "-_.~") -> str:
    items = params.items() if isinstance(params, dict) else params
    return "&".join(
        f"{percent_encode(k, safe)}={percent_encode(v, safe)}"
        for k, v in sorted(items)
    )


def hmac_sha256(key: bytes, message: str | bytes) -> bytes:
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(key, message, hashlib.sha256).digest()


def hmac_sha1(key: bytes, message: str | bytes) -> bytes:
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(key, message, hashlib.sha1).digest()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def sha256_hex(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def new_nonce(length: int = 16) -> str:
    return secrets.token_hex(length // 2)


def unix_time() -> int:
    return int(time.time())
