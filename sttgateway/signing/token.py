from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass
import json
import logging
import time
from typing import Callable, Tuple
import httpx
import jwt
from ..retry import RetryPolicy, with_retry
from ..models import TokenFetchError
from .base import RequestSigner
from .signed_request import AliyunPopSigner

logger = logging.getLogger(__name__)


@dataclass
class CachedToken:
    value: str
    expires_at: float


class TokenCache:
    """Holds one token and its absolute expiry."""

    def __init__(self, refresh_margin: float = 300.0, clock: Callable[[], float] = time.time):
        self.refresh_margin = refresh_margin
        self.clock = clock
        self._token: CachedToken = None

    def get(self) -> str | None:
        if self._token is None:
            return None
        if self._token.expires_at - self.clock() < self.refresh_margin:
            return None
        return self._token.value

    def set(self, value: str, expires_in: float):
        self._token = CachedToken(value=value, expires_at=self.clock() + expires_in)

    def clear(self):
        self._token = None


class TokenProvider(ABC):
    """
    Fetches and caches a bearer token for one recognizer instance.

    Concurrent callers that find the cache empty or stale share a single
    refresh: the first one fetches while the rest wait on the lock and then
    read the fresh value.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        refresh_margin: float = 300.0,
        retry_policy: RetryPolicy = None,
        clock: Callable[[], float] = time.time,
        debug: bool = False
    ):
        self.http_client = http_client
        self.cache = TokenCache(refresh_margin=refresh_margin, clock=clock)
        self.retry_policy = retry_policy or RetryPolicy()
        self.fetch_count = 0
        self._lock = asyncio.Lock()
        self.debug = debug

    async def get_token(self) -> str:
        token = self.cache.get()
        if token:
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self.cache.get()
            if token:
                return token

            value, expires_in = await with_retry(
                self.fetch_token,
                policy=self.retry_policy,
                label=f"{type(self).__name__} token fetch"
            )
            self.fetch_count += 1
            self.cache.set(value, expires_in)
            if self.debug:
                logger.info(f"{type(self).__name__}: token refreshed, expires in {expires_in}s")
            return value

    def invalidate(self):
        self.cache.clear()

    @abstractmethod
    async def fetch_token(self) -> Tuple[str, float]:
        """Returns the token and its lifetime in seconds."""
        pass

    def _raise_for_token_status(self, resp: httpx.Response):
        if resp.status_code >= 400:
            raise TokenFetchError(
                f"Token request failed: HTTP {resp.status_code}",
                status_code=resp.status_code,
                detail=resp.text[:500]
            )


class ClientCredentialsTokenProvider(TokenProvider):
    """OAuth2 client-credentials grant passed as query parameters (Baidu style)."""

    def __init__(self, http_client: httpx.AsyncClient, token_url: str, client_id: str, client_secret: str, **kwargs):
        super().__init__(http_client, **kwargs)
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret

    async def fetch_token(self) -> Tuple[str, float]:
        resp = await self.http_client.post(
            self.token_url,
            params={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            }
        )
        self._raise_for_token_status(resp)
        body = resp.json()
        if "access_token" not in body:
            raise TokenFetchError(
                f"Token request failed: {body.get('error_description') or body.get('error')}",
                status_code=401 if body.get("error") == "invalid_client" else None,
                detail=resp.text[:500]
            )
        return body["access_token"], float(body.get("expires_in", 2592000))


class IbmIamTokenProvider(TokenProvider):
    def __init__(self, http_client: httpx.AsyncClient, api_key: str, token_url: str = "https://iam.cloud.ibm.com/identity/token", **kwargs):
        super().__init__(http_client, **kwargs)
        self.api_key = api_key
        self.token_url = token_url

    async def fetch_token(self) -> Tuple[str, float]:
        resp = await self.http_client.post(
            self.token_url,
            data={
                "grant_type": "urn:ibm:params:oauth:grant-type:apikey",
                "apikey": self.api_key,
            },
            headers={"Accept": "application/json"}
        )
        self._raise_for_token_status(resp)
        body = resp.json()
        return body["access_token"], float(body.get("expires_in", 3600))


class GoogleServiceAccountTokenProvider(TokenProvider):
    """JWT-bearer grant signed with the service account's RSA key."""

    scope = "https://www.googleapis.com/auth/cloud-platform"

    def __init__(self, http_client: httpx.AsyncClient, service_account_json: str, **kwargs):
        super().__init__(http_client, **kwargs)
        info = json.loads(service_account_json)
        self.client_email = info["client_email"]
        self.private_key = info["private_key"]
        self.private_key_id = info.get("private_key_id")
        self.token_uri = info.get("token_uri", "https://oauth2.googleapis.com/token")

    def build_assertion(self, now: int = None) -> str:
        now = now or int(time.time())
        claims = {
            "iss": self.client_email,
            "scope": self.scope,
            "aud": self.token_uri,
            "iat": now,
            "exp": now + 3600,
        }
        headers = {"kid": self.private_key_id} if self.private_key_id else None
        return jwt.encode(claims, self.private_key, algorithm="RS256", headers=headers)

    async def fetch_token(self) -> Tuple[str, float]:
        resp = await self.http_client.post(
            self.token_uri,
            data={
                "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                "assertion": self.build_assertion(),
            }
        )
        self._raise_for_token_status(resp)
        body = resp.json()
        return body["access_token"], float(body.get("expires_in", 3600))


class AliyunNlsTokenProvider(TokenProvider):
    """CreateToken call against the NLS meta service, signed with the POP scheme."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        access_key_id: str,
        access_key_secret: str,
        region_id: str = "cn-shanghai",
        **kwargs
    ):
        super().__init__(http_client, **kwargs)
        self.signer = AliyunPopSigner(access_key_id, access_key_secret)
        self.region_id = region_id

    @property
    def endpoint(self) -> str:
        return f"https://nls-meta.{self.region_id}.aliyuncs.com/"

    async def fetch_token(self) -> Tuple[str, float]:
        params = self.signer.common_params("CreateToken", "2019-02-28", self.region_id)
        resp = await self.http_client.get(f"{self.endpoint}?{self.signer.signed_query(params)}")
        self._raise_for_token_status(resp)
        token = resp.json()["Token"]
        expires_in = float(token["ExpireTime"]) - time.time()
        return token["Id"], max(expires_in, 0.0)


class BearerTokenSigner(RequestSigner):
    def __init__(self, token_provider: TokenProvider, header: str = "Authorization", scheme: str = "Bearer"):
        self.token_provider = token_provider
        self.header = header
        self.scheme = scheme

    async def sign(self, request: httpx.Request) -> None:
        token = await self.token_provider.get_token()
        request.headers[self.header] = f"{self.scheme} {token}" if self.scheme else token
