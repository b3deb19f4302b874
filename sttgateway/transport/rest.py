import asyncio
import logging
from typing import Awaitable, Callable
import httpx
from ..retry import RetryPolicy, with_retry
from ..signing import RequestSigner, NoopSigner

logger = logging.getLogger(__name__)


def strip_query(url) -> str:
    return str(url).split("?", 1)[0]


class RestTransport:
    """
    One request, one response, signed and retried.

    The request is rebuilt and re-signed on every attempt so that
    time-bound signatures stay fresh across retries.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        signer: RequestSigner = None,
        *,
        retry_policy: RetryPolicy = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        debug: bool = False
    ):
        self.http_client = http_client
        self.signer = signer or NoopSigner()
        self.retry_policy = retry_policy or RetryPolicy()
        self.sleep = sleep
        self.debug = debug

    async def request(
        self,
        method: str,
        url: str,
        *,
        signer: RequestSigner = None,
        raise_for_status: bool = True,
        **kwargs
    ) -> httpx.Response:
        signer = signer or self.signer

        async def send() -> httpx.Response:
            request = self.http_client.build_request(method, url, **kwargs)
            await signer.sign(request)
            resp = await self.http_client.send(request)
            if self.debug:
                logger.info(f"{method} {strip_query(request.url)} -> {resp.status_code}")
            if raise_for_status:
                resp.raise_for_status()
            return resp

        return await with_retry(
            send,
            policy=self.retry_policy,
            sleep=self.sleep,
            label=f"{method} {strip_query(url)}"
        )

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("POST", url, **kwargs)
