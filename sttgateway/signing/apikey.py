import httpx
from .base import RequestSigner


class ApiKeyQuerySigner(RequestSigner):
    def __init__(self, api_key: str, param: str = "key"):
        self.api_key = api_key
        self.param = param

    async def sign(self, request: httpx.Request) -> None:
        request.url = request.url.copy_set_param(self.param, self.api_key)


class ApiKeyHeaderSigner(RequestSigner):
    """
    Sends the key in a header, optionally prefixed with a scheme.

    Some providers expect the bare key as the Authorization value
    (AssemblyAI), others a custom scheme such as `Token` (Deepgram)
    or a dedicated header (Azure).
    """

    def __init__(self, api_key: str, header: str = "Authorization", scheme: str = None):
        self.api_key = api_key
        self.header = header
        self.scheme = scheme

    @property
    def header_value(self) -> str:
        return f"{self.scheme} {self.api_key}" if self.scheme else self.api_key

    async def sign(self, request: httpx.Request) -> None:
        request.headers[self.header] = self.header_value
